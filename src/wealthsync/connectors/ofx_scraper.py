"""Statement scraper reading OFX/QFX downloads with ofxparse.

The bank download job drops Open Financial Exchange statements into one
directory per provider. This scraper parses every statement in that
directory, merges overlapping statements by FITID and keeps the
transactions that fall inside the requested date range.

Documentation: https://github.com/jseutter/ofxparse
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Any

import ofxparse

from ..crypto import BankCredentials
from ..models import BankProvider
from .scraper import ImportedTransaction, ProviderResult, ScrapedAccount, StatementScraper

logger = logging.getLogger(__name__)

STATEMENT_SUFFIXES = (".ofx", ".qfx")

_SGML_HEADERS = (
    "DATA:",
    "VERSION:",
    "SECURITY:",
    "ENCODING:",
    "CHARSET:",
    "COMPRESSION:",
    "OLDFILEUID:",
    "NEWFILEUID:",
)


def preprocess_ofx_content(content: str) -> str:
    """Split single-line SGML headers so ofxparse can read them.

    Args:
        content: Raw OFX file content

    Returns:
        str: Content with one header per line
    """
    if not (content.startswith("OFXHEADER:") and "\n" not in content[:100]):
        return content
    if "<OFX>" not in content:
        return content

    header_part, body = content.split("<OFX>", 1)
    for header in _SGML_HEADERS:
        header_part = header_part.replace(header, f"\n{header}")
    return header_part.strip("\n") + "\n<OFX>" + body


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


class OFXStatementScraper(StatementScraper):
    """Scraper over a directory of OFX/QFX statement downloads."""

    def __init__(self, statements_dir: Path, encryption_key: str | None = None):
        """Initialize the scraper.

        Args:
            statements_dir: Directory holding the provider's statements
            encryption_key: Key for stored credentials, defaults to settings
        """
        super().__init__(encryption_key)
        self.statements_dir = Path(statements_dir)

    def statement_files(self) -> list[Path]:
        """Statement files in the directory, oldest name first."""
        return sorted(
            p
            for p in self.statements_dir.iterdir()
            if p.is_file() and p.suffix.lower() in STATEMENT_SUFFIXES
        )

    def parse_file(self, file_path: Path) -> Any:
        """Parse a single statement file."""
        with open(file_path, "rb") as f:
            content = f.read().decode("utf-8", errors="ignore")
        content = preprocess_ofx_content(content)
        # ofxparse library has incomplete type annotations
        return ofxparse.OfxParser.parse(BytesIO(content.encode("utf-8")))  # type: ignore[reportUnknownMemberType]

    def fetch(
        self,
        bank: BankProvider,
        credentials: BankCredentials,
        start_date: date,
        end_date: date,
        otp: str | None = None,
    ) -> ProviderResult:
        """Read statements for ``bank`` between ``start_date`` and ``end_date``.

        Statements are already downloaded, so ``credentials`` and ``otp``
        are only used by the login step that produced them.
        """
        if not self.statements_dir.is_dir():
            return ProviderResult(
                success=False,
                error_type="GENERIC",
                error_message=f"No statement directory for {bank.value}",
            )

        accounts: dict[str, ScrapedAccount] = {}
        seen: set[tuple[str, str]] = set()

        for file_path in self.statement_files():
            try:
                ofx = self.parse_file(file_path)
            except Exception as e:
                logger.error(f"Failed to parse OFX file {file_path}: {e}")
                return ProviderResult(
                    success=False,
                    error_type="GENERIC",
                    error_message=f"Invalid OFX file format: {file_path.name}",
                )

            for ofx_account in ofx.accounts:
                account_id = str(ofx_account.account_id)
                statement = ofx_account.statement
                account = accounts.setdefault(
                    account_id, ScrapedAccount(account_number=account_id)
                )
                balance = getattr(statement, "balance", None)
                if balance is not None:
                    account.balance = Decimal(str(balance))

                for txn in statement.transactions:
                    posted = _as_date(txn.date)
                    if posted < start_date or posted > end_date:
                        continue
                    key = (account_id, str(txn.id))
                    if key in seen:
                        continue
                    seen.add(key)
                    account.transactions.append(
                        ImportedTransaction(
                            date=posted,
                            processed_date=posted,
                            amount=Decimal(str(txn.amount)),
                            description=(txn.payee or txn.memo or "").strip(),
                            memo=txn.memo or None,
                        )
                    )

        logger.debug(
            f"Read {len(seen)} statement transactions for {bank.value} "
            f"from {self.statements_dir}"
        )
        return ProviderResult(success=True, accounts=list(accounts.values()))
