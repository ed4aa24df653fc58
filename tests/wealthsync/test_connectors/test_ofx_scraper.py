# ruff: noqa: S101
"""Tests for the OFX statement scraper."""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from wealthsync.connectors.ofx_scraper import OFXStatementScraper, preprocess_ofx_content
from wealthsync.crypto import BankCredentials
from wealthsync.models import BankProvider

CREDENTIALS = BankCredentials(user_id="bankuser", password="s3cret")


def _statement(*transactions: str, balance: str = "1000.00") -> str:
    return f"""OFXHEADER:100
DATA:OFXSGML
VERSION:102
SECURITY:NONE
ENCODING:USASCII
CHARSET:1252
COMPRESSION:NONE
OLDFILEUID:NONE
NEWFILEUID:NONE

<OFX>
<SIGNONMSGSRSV1>
<SONRS>
<STATUS>
<CODE>0
<SEVERITY>INFO
</STATUS>
<DTSERVER>20240331120000
<LANGUAGE>ENG
</SONRS>
</SIGNONMSGSRSV1>
<BANKMSGSRSV1>
<STMTTRNRS>
<TRNUID>1
<STATUS>
<CODE>0
<SEVERITY>INFO
</STATUS>
<STMTRS>
<CURDEF>USD
<BANKACCTFROM>
<BANKID>123456789
<ACCTID>00001234
<ACCTTYPE>CHECKING
</BANKACCTFROM>
<BANKTRANLIST>
<DTSTART>20240101
<DTEND>20240331
{"".join(transactions)}</BANKTRANLIST>
<LEDGERBAL>
<BALAMT>{balance}
<DTASOF>20240331
</LEDGERBAL>
</STMTRS>
</STMTTRNRS>
</BANKMSGSRSV1>
</OFX>
"""


def _stmttrn(fitid: str, posted: str, amount: str, name: str, memo: str = "") -> str:
    memo_line = f"<MEMO>{memo}\n" if memo else ""
    return (
        "<STMTTRN>\n"
        "<TRNTYPE>DEBIT\n"
        f"<DTPOSTED>{posted}\n"
        f"<TRNAMT>{amount}\n"
        f"<FITID>{fitid}\n"
        f"<NAME>{name}\n"
        f"{memo_line}"
        "</STMTTRN>\n"
    )


class TestPreprocess:
    """Single-line SGML header handling."""

    @pytest.mark.unit
    def test_splits_single_line_headers(self) -> None:
        content = "OFXHEADER:100DATA:OFXSGMLVERSION:102<OFX><X>1</OFX>"
        processed = preprocess_ofx_content(content)
        assert processed.splitlines()[:3] == ["OFXHEADER:100", "DATA:OFXSGML", "VERSION:102"]
        assert processed.endswith("<OFX><X>1</OFX>")

    @pytest.mark.unit
    def test_multiline_content_unchanged(self) -> None:
        content = _statement()
        assert preprocess_ofx_content(content) == content


class TestOFXStatementScraper:
    """Reading statement directories."""

    @pytest.fixture
    def statements_dir(self, tmp_path: Path) -> Path:
        directory = tmp_path / "fibi"
        directory.mkdir()
        return directory

    @pytest.mark.unit
    def test_missing_directory_is_generic_failure(self, tmp_path: Path) -> None:
        scraper = OFXStatementScraper(tmp_path / "missing")
        result = scraper.fetch(
            BankProvider.FIBI, CREDENTIALS, date(2024, 3, 1), date(2024, 3, 31)
        )
        assert not result.success
        assert result.error_type == "GENERIC"

    @pytest.mark.integration
    def test_parses_statement_in_range(self, statements_dir: Path) -> None:
        (statements_dir / "march.ofx").write_text(
            _statement(
                _stmttrn("FIT001", "20240305", "-42.50", "SHUFERSAL", "Groceries"),
                _stmttrn("FIT002", "20240210", "-10.00", "OLD PURCHASE"),
            )
        )
        scraper = OFXStatementScraper(statements_dir)

        result = scraper.fetch(
            BankProvider.FIBI, CREDENTIALS, date(2024, 3, 1), date(2024, 3, 31)
        )

        assert result.success
        [account] = result.accounts
        assert account.account_number == "00001234"
        assert account.balance == Decimal("1000.00")
        [txn] = account.transactions
        assert txn.date == date(2024, 3, 5)
        assert txn.amount == Decimal("-42.50")
        assert txn.description == "SHUFERSAL"
        assert txn.memo == "Groceries"

    @pytest.mark.unit
    def test_overlapping_statements_merge_by_fitid(
        self, statements_dir: Path, mocker: Any
    ) -> None:
        def ofx_with(*fitids: str) -> SimpleNamespace:
            transactions = [
                SimpleNamespace(
                    id=fitid,
                    date=datetime(2024, 3, 5),
                    amount=Decimal("-5.00"),
                    payee=f"SHOP {fitid}",
                    memo="",
                )
                for fitid in fitids
            ]
            statement = SimpleNamespace(balance=Decimal("50"), transactions=transactions)
            return SimpleNamespace(
                accounts=[SimpleNamespace(account_id="ACC1", statement=statement)]
            )

        (statements_dir / "a.qfx").write_text("x")
        (statements_dir / "b.QFX").write_text("x")
        (statements_dir / "notes.txt").write_text("ignored")
        scraper = OFXStatementScraper(statements_dir)
        mocker.patch.object(
            scraper, "parse_file", side_effect=[ofx_with("1", "2"), ofx_with("2", "3")]
        )

        result = scraper.fetch(
            BankProvider.FIBI, CREDENTIALS, date(2024, 3, 1), date(2024, 3, 31)
        )

        [account] = result.accounts
        assert [t.description for t in account.transactions] == [
            "SHOP 1",
            "SHOP 2",
            "SHOP 3",
        ]
        assert account.transactions[0].memo is None

    @pytest.mark.unit
    def test_unparseable_file_is_generic_failure(
        self, statements_dir: Path, mocker: Any
    ) -> None:
        (statements_dir / "broken.ofx").write_text("this is not ofx")
        scraper = OFXStatementScraper(statements_dir)
        mocker.patch.object(scraper, "parse_file", side_effect=ValueError("bad header"))

        result = scraper.fetch(
            BankProvider.FIBI, CREDENTIALS, date(2024, 3, 1), date(2024, 3, 31)
        )

        assert not result.success
        assert result.error_type == "GENERIC"
        assert "broken.ofx" in (result.error_message or "")
