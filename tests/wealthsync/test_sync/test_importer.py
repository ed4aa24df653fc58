# ruff: noqa: S101
"""Tests for scraper imports with duplicate detection."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from wealthsync.connectors.scraper import ImportedTransaction, ScrapeOptions, ScrapeResult
from wealthsync.db import Repository, new_id
from wealthsync.errors import NotFoundError, UnauthorizedError
from wealthsync.models import (
    AccountType,
    BankConnection,
    CategorizedBy,
    ImportSource,
    Transaction,
)
from wealthsync.sync.importer import NO_TRANSACTIONS_FOUND, import_transactions


class StubScraper:
    """Scraper returning fixed transactions and recording its options."""

    def __init__(self, transactions: list[ImportedTransaction]):
        self.transactions = transactions
        self.options: list[ScrapeOptions] = []

    def scrape(self, options: ScrapeOptions) -> ScrapeResult:
        self.options.append(options)
        return ScrapeResult(success=True, transactions=self.transactions)


def _imported(day: date, amount: str, description: str) -> ImportedTransaction:
    return ImportedTransaction(
        date=day, processed_date=day, amount=Decimal(amount), description=description
    )


class TestImportTransactions:
    """End-to-end import into DuckDB."""

    @pytest.mark.integration
    def test_creates_account_and_imports(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        today = date.today()
        scraper = StubScraper(
            [
                _imported(today - timedelta(days=2), "-120.00", "Shufersal"),
                _imported(today - timedelta(days=1), "5000.00", "Salary"),
            ]
        )

        result = import_transactions(repo, bank_connection.id, "user_1", scraper=scraper)

        assert result.imported == 2
        assert result.skipped == 0
        assert result.errors == []
        account = repo.find_active_account(
            "user_1", AccountType.CHECKING, "First International Bank"
        )
        assert account is not None
        assert account.name == "First International Bank Checking (...1234)"
        assert account.currency == "NIS"
        assert account.balance == Decimal("4880.00")
        stored = repo.list_user_transactions("user_1")
        assert {t.import_source for t in stored} == {ImportSource.FIBI}
        assert all(t.category_id == "cat_miscellaneous" for t in stored)

    @pytest.mark.integration
    def test_default_window_is_lookback_days(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        scraper = StubScraper([])
        import_transactions(repo, bank_connection.id, "user_1", scraper=scraper)

        options = scraper.options[0]
        assert options.end_date == date.today()
        assert options.start_date == date.today() - timedelta(days=30)
        assert options.encrypted_credentials == bank_connection.encrypted_credentials

    @pytest.mark.integration
    def test_empty_scrape_reports_no_transactions(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        result = import_transactions(
            repo, bank_connection.id, "user_1", scraper=StubScraper([])
        )
        assert result.imported == 0
        assert result.errors == [NO_TRANSACTIONS_FOUND]

    @pytest.mark.integration
    def test_second_import_skips_duplicates(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        day = date.today() - timedelta(days=3)
        scraper = StubScraper([_imported(day, "-42.00", "Aroma Cafe")])
        import_transactions(repo, bank_connection.id, "user_1", scraper=scraper)

        scraper.transactions = [
            _imported(day + timedelta(days=1), "-42.00", "AROMA CAFE"),
            _imported(day, "-15.00", "Cinema City"),
        ]
        result = import_transactions(repo, bank_connection.id, "user_1", scraper=scraper)

        assert result.imported == 1
        assert result.skipped == 1
        assert len(repo.list_user_transactions("user_1")) == 2

    @pytest.mark.integration
    def test_duplicate_window_reaches_back_ninety_days(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        scraper = StubScraper([])
        import_transactions(repo, bank_connection.id, "user_1", scraper=scraper)
        account = repo.find_active_account(
            "user_1", AccountType.CHECKING, "First International Bank"
        )
        assert account is not None

        old_day = date.today() - timedelta(days=60)
        repo.insert_transactions(
            [
                Transaction(
                    id=new_id("txn"),
                    user_id="user_1",
                    account_id=account.id,
                    date=old_day,
                    amount=Decimal("-80.00"),
                    payee="Electric Company",
                    category_id="cat_miscellaneous",
                )
            ]
        )
        scraper.transactions = [_imported(old_day, "-80.00", "Electric Company")]

        result = import_transactions(
            repo,
            bank_connection.id,
            "user_1",
            start_date=old_day,
            end_date=old_day,
            scraper=scraper,
        )

        assert result.imported == 0
        assert result.skipped == 1

    @pytest.mark.integration
    def test_cached_merchant_categories_applied(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        groceries = repo.create_category("Groceries", user_id="user_1")
        repo.remember_merchant_category("shufersal", groceries.id)
        scraper = StubScraper([_imported(date.today(), "-60.00", "  SHUFERSAL ")])

        result = import_transactions(repo, bank_connection.id, "user_1", scraper=scraper)

        assert result.categorized == 1
        [stored] = repo.list_user_transactions("user_1")
        assert stored.category_id == groceries.id
        assert stored.categorized_by == CategorizedBy.AI_CACHED
        assert stored.categorization_confidence == "HIGH"

    @pytest.mark.integration
    def test_ownership(self, repo: Repository, bank_connection: BankConnection) -> None:
        with pytest.raises(NotFoundError, match="Bank connection not found"):
            import_transactions(repo, "missing", "user_1", scraper=StubScraper([]))
        with pytest.raises(UnauthorizedError):
            import_transactions(repo, bank_connection.id, "user_2", scraper=StubScraper([]))
