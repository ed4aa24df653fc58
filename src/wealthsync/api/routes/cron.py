"""Scheduled job triggers.

A scheduler calls these endpoints with ``Authorization: Bearer <secret>``.
GET and POST are both accepted so a job can also be triggered by hand.
"""

import hmac
import logging
from typing import Any

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from ...config import get_settings
from ...db import Repository
from ...jobs import cleanup_expired_exports, generate_pending_recurring_transactions
from ...jobs.exports import BlobStore
from ...sync import reconcile_stale_syncs
from ..dependencies import get_blob_store, get_repository
from ..errors import HTTPError
from .health import iso_timestamp

logger = logging.getLogger(__name__)


def verify_cron_secret(authorization: str | None = Header(None)) -> None:
    """Reject requests that do not carry the configured cron secret."""
    secret = get_settings().cron.secret
    if not secret:
        logger.error("CRON_SECRET not configured")
        raise HTTPError(500, "Cron configuration error")

    expected = f"Bearer {secret}"
    if not hmac.compare_digest((authorization or "").encode(), expected.encode()):
        logger.warning("Unauthorized cron request attempt")
        raise HTTPError(401, "Unauthorized")


router = APIRouter(
    prefix="/api/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)]
)


def _success(message: str, results: dict[str, Any]) -> dict[str, Any]:
    return {
        "success": True,
        "message": message,
        "results": results,
        "timestamp": iso_timestamp(),
    }


def _failure(error: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(error) or "Unknown error",
            "timestamp": iso_timestamp(),
        },
    )


@router.api_route("/generate-recurring", methods=["GET", "POST"], response_model=None)
def generate_recurring(
    repo: Repository = Depends(get_repository),
) -> dict[str, Any] | JSONResponse:
    logger.info("Starting recurring transaction generation...")
    try:
        results = generate_pending_recurring_transactions(repo)
    except Exception as e:
        logger.error(f"Error generating recurring transactions: {e}")
        return _failure(e)

    return _success("Recurring transactions generated successfully", results.to_dict())


@router.api_route("/cleanup-exports", methods=["GET", "POST"], response_model=None)
def cleanup_exports(
    repo: Repository = Depends(get_repository),
    store: BlobStore = Depends(get_blob_store),
) -> dict[str, Any] | JSONResponse:
    logger.info("Starting expired exports cleanup...")
    try:
        results = cleanup_expired_exports(repo, store)
    except Exception as e:
        logger.error(f"Error cleaning up exports: {e}")
        return _failure(e)

    return _success(
        "Export cleanup completed",
        {
            "exportsDeleted": results.exports_deleted,
            "blobsDeleted": results.blobs_deleted,
            "bytesFreed": results.bytes_freed,
        },
    )


@router.api_route("/reconcile-syncs", methods=["GET", "POST"], response_model=None)
def reconcile_syncs(
    repo: Repository = Depends(get_repository),
) -> dict[str, Any] | JSONResponse:
    try:
        failed = reconcile_stale_syncs(repo)
    except Exception as e:
        logger.error(f"Error reconciling stale syncs: {e}")
        return _failure(e)

    return _success("Stale syncs reconciled", {"staleSyncsFailed": failed})
