"""Plaid Link and on-demand Plaid transaction sync."""

import logging
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends

from ...config import get_settings
from ...connectors.plaid_client import PlaidClient
from ...db import Repository
from ...errors import ConfigurationError
from ...sync import sync_all_plaid_accounts, sync_transactions_from_plaid
from ...sync.connections import link_plaid_item
from ..dependencies import get_current_user, get_plaid_client, get_repository
from ..schemas import AccountOut, PlaidExchangeRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plaid", tags=["plaid"])


def _require_client(client: PlaidClient | None) -> PlaidClient:
    if client is None:
        raise ConfigurationError("Plaid is not configured")
    return client


@router.post("/link-token")
def create_link_token(
    user_id: str = Depends(get_current_user),
    client: PlaidClient | None = Depends(get_plaid_client),
) -> dict[str, str]:
    token = _require_client(client).create_link_token(
        user_id, get_settings().plaid.webhook_url
    )
    return {"linkToken": token}


@router.post("/exchange", status_code=201)
def exchange_public_token(
    body: PlaidExchangeRequest,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    client: PlaidClient | None = Depends(get_plaid_client),
) -> list[AccountOut]:
    accounts = link_plaid_item(
        repo,
        user_id,
        body.public_token,
        body.institution_name,
        client=_require_client(client),
    )
    return [AccountOut.of(a) for a in accounts]


@router.post("/accounts/{account_id}/sync")
def sync_account(
    account_id: str,
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    client: PlaidClient | None = Depends(get_plaid_client),
) -> dict[str, Any]:
    counts = sync_transactions_from_plaid(
        repo, user_id, account_id, client=_require_client(client)
    )
    return {"success": True, **asdict(counts)}


@router.post("/sync")
def sync_all_accounts(
    user_id: str = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
    client: PlaidClient | None = Depends(get_plaid_client),
) -> dict[str, Any]:
    summary = sync_all_plaid_accounts(repo, user_id, client=_require_client(client))
    return {"success": True, **asdict(summary)}
