"""Scraper-based transaction import with duplicate detection.

Pipeline:
1. Fetch the bank connection and validate ownership
2. Find or create the linked account
3. Scrape transactions for the date range
4. Load recent transactions on the account
5. Drop duplicates using three-factor matching
6. Batch insert the new transactions and move the account balance atomically
7. Categorize the new transactions from the merchant-category cache
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal

from ..config import get_settings
from ..connectors.scraper import (
    BankScraper,
    ImportedTransaction,
    ScrapeOptions,
    default_registry,
)
from ..db import Repository, new_id, transaction
from ..errors import ConfigurationError, NotFoundError, UnauthorizedError
from ..models import (
    Account,
    AccountType,
    BankConnection,
    BankProvider,
    ImportSource,
    Transaction,
)
from .categorize import categorize_from_cache
from .dedup import deduplicate

logger = logging.getLogger(__name__)

NO_TRANSACTIONS_FOUND = "No transactions found"

INSTITUTION_NAMES: dict[BankProvider, str] = {
    BankProvider.FIBI: "First International Bank",
    BankProvider.VISA_CAL: "Visa CAL",
    BankProvider.OFX: "OFX Statement",
}

IMPORT_SOURCES: dict[BankProvider, ImportSource] = {
    BankProvider.FIBI: ImportSource.FIBI,
    BankProvider.VISA_CAL: ImportSource.CAL,
    BankProvider.OFX: ImportSource.OFX,
}


@dataclass
class ImportResult:
    """Outcome of one scraper import."""

    imported: int = 0
    skipped: int = 0
    categorized: int = 0
    errors: list[str] = field(default_factory=list)


def load_bank_connection(
    repo: Repository, bank_connection_id: str, user_id: str
) -> BankConnection:
    """Fetch a bank connection owned by ``user_id``.

    Raises:
        NotFoundError: If the connection does not exist
        UnauthorizedError: If it belongs to another user
    """
    connection = repo.get_bank_connection(bank_connection_id)
    if connection is None:
        raise NotFoundError("Bank connection not found")
    if connection.user_id != user_id:
        raise UnauthorizedError("Unauthorized access to bank connection")
    return connection


def find_or_create_account(
    repo: Repository, connection: BankConnection, user_id: str
) -> Account:
    """Return the active account the connection imports into, creating it if needed."""
    institution = INSTITUTION_NAMES[connection.bank]

    account = repo.find_active_account(user_id, connection.account_type, institution)
    if account is not None:
        logger.debug(f"Found existing account: {account.id}")
        return account

    kind = "Checking" if connection.account_type == AccountType.CHECKING else "Credit Card"
    account = repo.create_account(
        user_id=user_id,
        account_type=connection.account_type,
        name=f"{institution} {kind} (...{connection.account_identifier})",
        institution=institution,
        balance=Decimal("0"),
        currency="NIS",
        is_manual=False,
    )
    logger.info(f"Created account {account.id} for {connection.bank.value} connection")
    return account


def _to_records(
    transactions: list[ImportedTransaction],
    account: Account,
    category_id: str,
    source: ImportSource,
) -> list[Transaction]:
    now = datetime.now()
    return [
        Transaction(
            id=new_id("txn"),
            user_id=account.user_id,
            account_id=account.id,
            date=t.date,
            amount=Decimal(t.amount),
            payee=t.description,
            raw_merchant_name=t.description,
            category_id=category_id,
            notes=t.memo,
            tags=[],
            is_manual=False,
            import_source=source,
            imported_at=now,
        )
        for t in transactions
    ]


def import_transactions(
    repo: Repository,
    bank_connection_id: str,
    user_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    scraper: BankScraper | None = None,
) -> ImportResult:
    """Import scraped transactions for a bank connection.

    Args:
        repo: Repository bound to a writable connection
        bank_connection_id: Connection to import for
        user_id: Owner of the connection
        start_date: First day to scrape, defaults to the lookback window
        end_date: Last day to scrape, defaults to today
        scraper: Scraper to use, defaults to the provider registry

    Returns:
        ImportResult: Imported, skipped and categorized counts

    Raises:
        NotFoundError: If the connection does not exist
        UnauthorizedError: If the connection belongs to another user
        ConfigurationError: If the default category is missing
        BankScraperError: If the scrape fails
    """
    settings = get_settings().sync
    connection = load_bank_connection(repo, bank_connection_id, user_id)
    account = find_or_create_account(repo, connection, user_id)

    today = date.today()
    end = end_date or today
    start = start_date or end - timedelta(days=settings.default_lookback_days)

    logger.info(f"Scraping {connection.bank.value} from {start} to {end}")
    scraper = scraper or default_registry()
    result = scraper.scrape(
        ScrapeOptions(
            bank=connection.bank,
            encrypted_credentials=connection.encrypted_credentials,
            start_date=start,
            end_date=end,
        )
    )

    if not result.success or not result.transactions:
        logger.info("No transactions found from scraper")
        return ImportResult(errors=[NO_TRANSACTIONS_FOUND])

    since = min(start, today - timedelta(days=settings.duplicate_window_days))
    existing = repo.list_account_transactions_since(user_id, account.id, since)
    logger.debug(f"Loaded {len(existing)} existing transactions for duplicate detection")

    new_transactions, skipped = deduplicate(result.transactions, existing)
    logger.info(
        f"Duplicate detection: {len(new_transactions)} new, {skipped} skipped"
    )
    if not new_transactions:
        return ImportResult(skipped=skipped)

    category = repo.get_default_category(user_id)
    if category is None:
        raise ConfigurationError("Miscellaneous category not found")

    records = _to_records(
        new_transactions, account, category.id, IMPORT_SOURCES[connection.bank]
    )
    total = sum((r.amount for r in records), Decimal("0"))

    with transaction(repo.conn):
        inserted = repo.insert_transactions(records)
        repo.increment_account_balance(account.id, total, datetime.now())

    logger.info(f"Inserted {inserted} transactions into account {account.id}")

    categorized = categorize_from_cache(repo, records)

    return ImportResult(imported=inserted, skipped=skipped, categorized=categorized)
