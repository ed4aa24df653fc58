"""Scraper bank connections: linking, syncing, testing and sync history."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from ...config import get_settings
from ...connectors.scraper import BankScraper
from ...crypto import BankCredentials
from ...db import Repository
from ...sync import get_sync_history, get_sync_status, trigger_sync
from ...sync import sync_log
from ...sync.connections import add_bank_connection
from ..dependencies import get_current_user, get_repository, get_scraper
from ..schemas import (
    BankConnectionCreate,
    BankConnectionOut,
    ConnectionTestRequest,
    SyncRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["bank-connections"])


@router.post("/bank-connections", status_code=201)
def create_bank_connection(
    body: BankConnectionCreate,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> BankConnectionOut:
    connection = add_bank_connection(
        repo,
        user_id,
        body.bank,
        body.account_type,
        BankCredentials(user_id=body.username, password=body.password),
        body.account_identifier,
    )
    return BankConnectionOut.of(connection)


@router.get("/bank-connections")
def list_bank_connections(
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> list[BankConnectionOut]:
    return [BankConnectionOut.of(c) for c in repo.list_bank_connections(user_id)]


@router.post("/bank-connections/{connection_id}/sync")
def sync_bank_connection(
    connection_id: str,
    body: SyncRequest | None = None,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    scraper: BankScraper = Depends(get_scraper),
) -> dict[str, Any]:
    """Import from the bank now; poll the returned sync log for the outcome."""
    body = body or SyncRequest()
    outcome = trigger_sync(
        repo, connection_id, user_id, body.start_date, body.end_date, scraper=scraper
    )
    return {
        "success": True,
        "syncLogId": outcome.sync_log_id,
        "imported": outcome.imported,
        "skipped": outcome.skipped,
        "categorized": outcome.categorized,
    }


@router.post("/bank-connections/{connection_id}/test")
def test_bank_connection(
    connection_id: str,
    body: ConnectionTestRequest | None = None,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    scraper: BankScraper = Depends(get_scraper),
) -> dict[str, Any]:
    body = body or ConnectionTestRequest()
    result = sync_log.test_connection(
        repo, connection_id, user_id, otp=body.otp, scraper=scraper
    )
    return {
        "success": result.success,
        "message": result.message,
        "accountNumber": result.account_number,
    }


@router.get("/bank-connections/{connection_id}/sync-history")
def sync_history(
    connection_id: str,
    limit: int | None = Query(None, ge=1, le=100),
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> list[dict[str, Any]]:
    logs = get_sync_history(
        repo, connection_id, user_id, limit or get_settings().sync.history_limit
    )
    return [log.model_dump(mode="json") for log in logs]


@router.get("/sync-logs/{sync_log_id}")
def sync_status(
    sync_log_id: str,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> dict[str, Any]:
    return get_sync_status(repo, sync_log_id, user_id).model_dump(mode="json")
