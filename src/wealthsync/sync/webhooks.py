"""Plaid webhook handling.

Plaid posts a webhook whenever an item has new transaction data. The
handler looks up the item's accounts and pulls the changes through the
regular cursor sync. Webhooks are always acknowledged so Plaid does not
retry deliveries the application has already seen.
"""

import logging
from typing import Any

from ..connectors.plaid_client import PlaidClient
from ..connectors.plaid_schemas import PlaidWebhook
from ..db import Repository
from .plaid_sync import sync_transactions_from_plaid

logger = logging.getLogger(__name__)

SYNC_TRIGGER_CODES = frozenset(
    {
        "INITIAL_UPDATE",
        "HISTORICAL_UPDATE",
        "DEFAULT_UPDATE",
        "SYNC_UPDATES_AVAILABLE",
    }
)

ACKNOWLEDGED: dict[str, bool] = {"received": True}


def handle_plaid_webhook(
    repo: Repository,
    payload: dict[str, Any] | PlaidWebhook,
    client: PlaidClient | None = None,
    encryption_key: str | None = None,
) -> dict[str, bool]:
    """Process one Plaid webhook.

    Args:
        repo: Repository bound to a writable connection
        payload: Parsed webhook body
        client: Plaid client used for the follow-up sync
        encryption_key: Key for stored access tokens, defaults to settings

    Returns:
        dict[str, bool]: Always ``{"received": True}``

    Raises:
        pydantic.ValidationError: If the body is not a Plaid webhook
    """
    webhook = (
        payload if isinstance(payload, PlaidWebhook) else PlaidWebhook.model_validate(payload)
    )
    logger.info(
        f"Plaid webhook received: {webhook.webhook_type}/{webhook.webhook_code} "
        f"item={webhook.item_id}"
    )

    if webhook.webhook_type == "TRANSACTIONS":
        _handle_transactions_webhook(repo, webhook, client, encryption_key)
    elif webhook.webhook_type == "ITEM" and webhook.webhook_code == "ERROR":
        accounts = repo.list_accounts_by_plaid_item(webhook.item_id or "")
        error_code = (webhook.error or {}).get("error_code", "UNKNOWN")
        for account in accounts:
            logger.error(f"Plaid item error for account {account.id}: {error_code}")
        if not accounts:
            logger.error(f"Plaid item error for unknown item {webhook.item_id}: {error_code}")

    return dict(ACKNOWLEDGED)


def _handle_transactions_webhook(
    repo: Repository,
    webhook: PlaidWebhook,
    client: PlaidClient | None,
    encryption_key: str | None,
) -> None:
    accounts = repo.list_accounts_by_plaid_item(webhook.item_id or "")
    if not accounts:
        logger.warning(f"Account not found for item_id: {webhook.item_id}")
        return

    if webhook.webhook_code == "TRANSACTIONS_REMOVED":
        logger.info("TRANSACTIONS_REMOVED webhook received, will be handled in next sync")
        return

    if webhook.webhook_code not in SYNC_TRIGGER_CODES:
        logger.info(f"Unhandled TRANSACTIONS webhook code: {webhook.webhook_code}")
        return

    for account in accounts:
        try:
            counts = sync_transactions_from_plaid(
                repo,
                account.user_id,
                account.id,
                client=client,
                encryption_key=encryption_key,
            )
            logger.info(
                f"Synced transactions for account {account.id}: {counts.added} added"
            )
        except Exception as e:
            logger.error(f"Error syncing transactions from webhook for {account.id}: {e}")
