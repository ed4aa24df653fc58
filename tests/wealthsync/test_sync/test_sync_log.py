# ruff: noqa: S101
"""Tests for sync logs and connection status reconciliation."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from wealthsync.connectors.scraper import ImportedTransaction, ScrapeOptions, ScrapeResult
from wealthsync.db import Repository
from wealthsync.errors import (
    BankScraperError,
    NotFoundError,
    ScraperErrorType,
    UnauthorizedError,
)
from wealthsync.models import BankConnection, ConnectionStatus, SyncStatus
from wealthsync.sync import sync_log
from wealthsync.sync.sync_log import (
    STALE_SYNC_ERROR,
    get_sync_history,
    get_sync_status,
    reconcile_stale_syncs,
    trigger_sync,
)


class StubScraper:
    """Scraper that returns a result or raises a prepared error."""

    def __init__(
        self,
        transactions: list[ImportedTransaction] | None = None,
        error: Exception | None = None,
    ):
        self.transactions = transactions or []
        self.error = error
        self.options: list[ScrapeOptions] = []

    def scrape(self, options: ScrapeOptions) -> ScrapeResult:
        self.options.append(options)
        if self.error is not None:
            raise self.error
        return ScrapeResult(
            success=True, transactions=self.transactions, account_number="12-345"
        )


def _purchase(description: str) -> ImportedTransaction:
    today = date.today()
    return ImportedTransaction(
        date=today, processed_date=today, amount=Decimal("-10.00"), description=description
    )


class TestTriggerSync:
    """Sync log lifecycle around an import."""

    @pytest.mark.integration
    def test_success_closes_log_and_marks_connection_active(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        repo.mark_connection_failed(bank_connection.id, ConnectionStatus.ERROR, "old")

        outcome = trigger_sync(
            repo,
            bank_connection.id,
            "user_1",
            scraper=StubScraper([_purchase("Aroma"), _purchase("Cinema City")]),
        )

        assert outcome.imported == 2
        log = repo.get_sync_log(outcome.sync_log_id)
        assert log is not None
        assert log.status == SyncStatus.SUCCESS
        assert log.transactions_imported == 2
        assert log.completed_at is not None
        connection = repo.get_bank_connection(bank_connection.id)
        assert connection is not None
        assert connection.status == ConnectionStatus.ACTIVE
        assert connection.error_message is None
        assert connection.last_successful_sync is not None

    @pytest.mark.integration
    @pytest.mark.parametrize(
        ("error_type", "expected_status"),
        [
            (ScraperErrorType.PASSWORD_EXPIRED, ConnectionStatus.EXPIRED),
            (ScraperErrorType.INVALID_CREDENTIALS, ConnectionStatus.ERROR),
            (ScraperErrorType.NETWORK_ERROR, ConnectionStatus.ERROR),
        ],
    )
    def test_scraper_failure_updates_log_and_connection(
        self,
        repo: Repository,
        bank_connection: BankConnection,
        error_type: ScraperErrorType,
        expected_status: ConnectionStatus,
    ) -> None:
        error = BankScraperError(error_type, "Bank said no")

        with pytest.raises(BankScraperError):
            trigger_sync(
                repo, bank_connection.id, "user_1", scraper=StubScraper(error=error)
            )

        [log] = repo.list_sync_logs(bank_connection.id, 10)
        assert log.status == SyncStatus.FAILED
        assert log.error_details == f"{error_type.value}: Bank said no"
        connection = repo.get_bank_connection(bank_connection.id)
        assert connection is not None
        assert connection.status == expected_status
        assert connection.error_message == "Bank said no"

    @pytest.mark.integration
    def test_unexpected_failure(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        with pytest.raises(RuntimeError):
            trigger_sync(
                repo,
                bank_connection.id,
                "user_1",
                scraper=StubScraper(error=RuntimeError("boom")),
            )

        [log] = repo.list_sync_logs(bank_connection.id, 10)
        assert log.status == SyncStatus.FAILED
        assert log.error_details == "boom"

    @pytest.mark.integration
    def test_requires_ownership_before_logging(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        with pytest.raises(UnauthorizedError):
            trigger_sync(repo, bank_connection.id, "user_2", scraper=StubScraper())
        assert repo.list_sync_logs(bank_connection.id, 10) == []


class TestConnectionTest:
    """Credential checks without importing."""

    @pytest.mark.integration
    def test_scrapes_today_only_and_imports_nothing(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        scraper = StubScraper([_purchase("Aroma")])

        result = sync_log.test_connection(
            repo, bank_connection.id, "user_1", otp="123456", scraper=scraper
        )

        assert result.success
        assert result.message == "Connection successful"
        assert result.account_number == "12-345"
        options = scraper.options[0]
        assert options.start_date == options.end_date == date.today()
        assert options.otp == "123456"
        assert repo.list_user_transactions("user_1") == []
        [log] = repo.list_sync_logs(bank_connection.id, 10)
        assert log.status == SyncStatus.SUCCESS

    @pytest.mark.integration
    def test_failure_expires_connection(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        error = BankScraperError(ScraperErrorType.PASSWORD_EXPIRED, "Password expired")
        with pytest.raises(BankScraperError):
            sync_log.test_connection(
                repo, bank_connection.id, "user_1", scraper=StubScraper(error=error)
            )
        connection = repo.get_bank_connection(bank_connection.id)
        assert connection is not None
        assert connection.status == ConnectionStatus.EXPIRED


class TestStatusAndHistory:
    """Polling and history queries."""

    @pytest.mark.integration
    def test_get_sync_status(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        outcome = trigger_sync(repo, bank_connection.id, "user_1", scraper=StubScraper())

        log = get_sync_status(repo, outcome.sync_log_id, "user_1")
        assert log.status == SyncStatus.SUCCESS

        with pytest.raises(NotFoundError, match="Sync log not found"):
            get_sync_status(repo, "missing", "user_1")
        with pytest.raises(UnauthorizedError, match="Access denied"):
            get_sync_status(repo, outcome.sync_log_id, "user_2")

    @pytest.mark.integration
    def test_history_is_newest_first_and_limited(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        start = datetime(2024, 3, 1, 8, 0)
        for hour in range(12):
            repo.create_sync_log(
                bank_connection.id, start + timedelta(hours=hour), SyncStatus.SUCCESS
            )

        history = get_sync_history(repo, bank_connection.id, "user_1")

        assert len(history) == 10
        assert history[0].started_at == start + timedelta(hours=11)
        assert len(get_sync_history(repo, bank_connection.id, "user_1", limit=3)) == 3


class TestReconcileStaleSyncs:
    """Failing abandoned in-progress logs."""

    @pytest.mark.integration
    def test_only_old_in_progress_logs_fail(
        self, repo: Repository, bank_connection: BankConnection
    ) -> None:
        now = datetime(2024, 3, 1, 12, 0)
        stale = repo.create_sync_log(
            bank_connection.id, now - timedelta(minutes=45), SyncStatus.IN_PROGRESS
        )
        fresh = repo.create_sync_log(
            bank_connection.id, now - timedelta(minutes=5), SyncStatus.IN_PROGRESS
        )
        done = repo.create_sync_log(
            bank_connection.id, now - timedelta(hours=2), SyncStatus.SUCCESS
        )

        assert reconcile_stale_syncs(repo, now=now) == 1

        stale_log = repo.get_sync_log(stale.id)
        assert stale_log is not None
        assert stale_log.status == SyncStatus.FAILED
        assert stale_log.error_details == STALE_SYNC_ERROR
        assert stale_log.completed_at == now
        for log_id, status in ((fresh.id, SyncStatus.IN_PROGRESS), (done.id, SyncStatus.SUCCESS)):
            log = repo.get_sync_log(log_id)
            assert log is not None
            assert log.status == status

        assert reconcile_stale_syncs(repo, now=now) == 0
