"""Sync status reconciliation for scraper bank connections.

Every sync attempt opens a sync log in IN_PROGRESS and closes it as SUCCESS
or FAILED. The connection's health follows the outcome: ACTIVE after a
success, EXPIRED when the bank asks for a new password and ERROR otherwise.
Logs left IN_PROGRESS by a crashed worker are failed by
``reconcile_stale_syncs``.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from ..config import get_settings
from ..connectors.scraper import BankScraper, ScrapeOptions, default_registry
from ..db import Repository
from ..errors import BankScraperError, NotFoundError, ScraperErrorType, UnauthorizedError
from ..models import BankConnection, ConnectionStatus, SyncLog, SyncStatus
from .importer import import_transactions, load_bank_connection

logger = logging.getLogger(__name__)

STALE_SYNC_ERROR = "Sync timed out"


@dataclass
class SyncOutcome:
    """Result of a triggered sync, returned to the caller for polling."""

    sync_log_id: str
    imported: int
    skipped: int
    categorized: int


@dataclass
class ConnectionTestResult:
    """Result of a successful connection test."""

    success: bool
    message: str
    account_number: str | None = None


def _record_failure(
    repo: Repository, connection: BankConnection, log: SyncLog, error: Exception
) -> None:
    now = datetime.now()
    if isinstance(error, BankScraperError):
        status = (
            ConnectionStatus.EXPIRED
            if error.error_type == ScraperErrorType.PASSWORD_EXPIRED
            else ConnectionStatus.ERROR
        )
        repo.mark_connection_failed(connection.id, status, str(error))
        details = f"{error.error_type.value}: {error}"
    else:
        message = str(error) or "Unknown error"
        repo.mark_connection_failed(connection.id, ConnectionStatus.ERROR, message)
        details = message

    repo.finish_sync_log(log.id, SyncStatus.FAILED, now, error_details=details)


def trigger_sync(
    repo: Repository,
    bank_connection_id: str,
    user_id: str,
    start_date: date | None = None,
    end_date: date | None = None,
    scraper: BankScraper | None = None,
) -> SyncOutcome:
    """Import transactions for a connection and record the attempt.

    Args:
        repo: Repository bound to a writable connection
        bank_connection_id: Connection to sync
        user_id: Owner of the connection
        start_date: First day to import, defaults to the lookback window
        end_date: Last day to import, defaults to today
        scraper: Scraper to use, defaults to the provider registry

    Returns:
        SyncOutcome: Log id and import counts

    Raises:
        NotFoundError: If the connection does not exist
        UnauthorizedError: If the connection belongs to another user
        BankScraperError: If the scrape fails; the log and connection are updated first
    """
    connection = load_bank_connection(repo, bank_connection_id, user_id)
    log = repo.create_sync_log(connection.id, datetime.now(), SyncStatus.IN_PROGRESS)
    logger.info(f"Sync {log.id} started for connection {connection.id}")

    try:
        result = import_transactions(
            repo, connection.id, user_id, start_date, end_date, scraper=scraper
        )
    except Exception as e:
        logger.error(f"Sync {log.id} failed: {e}")
        _record_failure(repo, connection, log, e)
        raise

    now = datetime.now()
    repo.mark_connection_healthy(connection.id, now)
    repo.finish_sync_log(
        log.id,
        SyncStatus.SUCCESS,
        now,
        imported=result.imported,
        skipped=result.skipped,
    )
    logger.info(
        f"Sync {log.id} succeeded: {result.imported} imported, {result.skipped} skipped"
    )
    return SyncOutcome(
        sync_log_id=log.id,
        imported=result.imported,
        skipped=result.skipped,
        categorized=result.categorized,
    )


def test_connection(
    repo: Repository,
    bank_connection_id: str,
    user_id: str,
    otp: str | None = None,
    scraper: BankScraper | None = None,
) -> ConnectionTestResult:
    """Check a connection's credentials by scraping today only.

    Nothing is imported; the attempt is recorded as a sync log and the
    connection status is updated.

    Raises:
        NotFoundError: If the connection does not exist
        UnauthorizedError: If the connection belongs to another user
        BankScraperError: If the bank rejects the login
    """
    connection = load_bank_connection(repo, bank_connection_id, user_id)
    log = repo.create_sync_log(connection.id, datetime.now(), SyncStatus.IN_PROGRESS)

    today = date.today()
    scraper = scraper or default_registry()
    try:
        result = scraper.scrape(
            ScrapeOptions(
                bank=connection.bank,
                encrypted_credentials=connection.encrypted_credentials,
                start_date=today,
                end_date=today,
                otp=otp,
            )
        )
    except Exception as e:
        logger.error(f"Connection test for {connection.id} failed: {e}")
        _record_failure(repo, connection, log, e)
        raise

    now = datetime.now()
    repo.mark_connection_healthy(connection.id, now)
    repo.finish_sync_log(log.id, SyncStatus.SUCCESS, now, imported=0)
    return ConnectionTestResult(
        success=True,
        message="Connection successful",
        account_number=result.account_number,
    )


def get_sync_status(repo: Repository, sync_log_id: str, user_id: str) -> SyncLog:
    """Fetch a sync log for polling after checking the caller owns it.

    Raises:
        NotFoundError: If the log does not exist
        UnauthorizedError: If the log's connection belongs to another user
    """
    log = repo.get_sync_log(sync_log_id)
    if log is None:
        raise NotFoundError("Sync log not found")

    connection = repo.get_bank_connection(log.bank_connection_id)
    if connection is None or connection.user_id != user_id:
        raise UnauthorizedError("Access denied")
    return log


def get_sync_history(
    repo: Repository, bank_connection_id: str, user_id: str, limit: int | None = None
) -> list[SyncLog]:
    """Newest sync logs for a connection the caller owns."""
    connection = load_bank_connection(repo, bank_connection_id, user_id)
    return repo.list_sync_logs(connection.id, limit or get_settings().sync.history_limit)


def reconcile_stale_syncs(repo: Repository, now: datetime | None = None) -> int:
    """Fail sync logs that stayed IN_PROGRESS past the timeout.

    Args:
        repo: Repository bound to a writable connection
        now: Reference time, defaults to the current time

    Returns:
        int: Number of logs marked FAILED
    """
    now = now or datetime.now()
    cutoff = now - timedelta(minutes=get_settings().sync.stale_sync_minutes)
    failed = repo.fail_stale_sync_logs(cutoff, now, STALE_SYNC_ERROR)
    if failed:
        logger.warning(f"Marked {failed} stale sync logs as failed")
    return failed
