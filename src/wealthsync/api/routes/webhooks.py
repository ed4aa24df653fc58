"""Inbound webhooks from the transaction aggregator."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from ...connectors.plaid_client import PlaidClient
from ...db import Repository
from ...sync import handle_plaid_webhook
from ..dependencies import get_plaid_client, get_repository
from ..errors import error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/plaid", response_model=None)
async def plaid_webhook(
    request: Request,
    repo: Repository = Depends(get_repository),
    client: PlaidClient | None = Depends(get_plaid_client),
) -> dict[str, Any] | JSONResponse:
    """Acknowledge a Plaid webhook after pulling any announced changes."""
    try:
        payload = await request.json()
        return await run_in_threadpool(handle_plaid_webhook, repo, payload, client)
    except Exception as e:
        logger.error(f"Plaid webhook error: {e}")
        return error_response(500, "Webhook processing failed")
