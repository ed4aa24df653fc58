"""Transaction ingestion: Plaid sync, scraper import, dedup and sync logs."""

from .dedup import deduplicate, is_duplicate, is_merchant_similar, normalize_merchant
from .importer import ImportResult, import_transactions
from .plaid_sync import (
    PlaidSyncSummary,
    SyncCounts,
    sync_all_plaid_accounts,
    sync_transactions_from_plaid,
)
from .sync_log import (
    SyncOutcome,
    get_sync_history,
    get_sync_status,
    reconcile_stale_syncs,
    trigger_sync,
)
from .webhooks import handle_plaid_webhook

__all__ = [
    "ImportResult",
    "PlaidSyncSummary",
    "SyncCounts",
    "SyncOutcome",
    "deduplicate",
    "get_sync_history",
    "get_sync_status",
    "handle_plaid_webhook",
    "import_transactions",
    "is_duplicate",
    "is_merchant_similar",
    "normalize_merchant",
    "reconcile_stale_syncs",
    "sync_all_plaid_accounts",
    "sync_transactions_from_plaid",
    "trigger_sync",
]
