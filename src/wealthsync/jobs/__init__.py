"""Scheduled maintenance jobs run by the cron endpoints."""

from .exports import (
    BlobStore,
    CleanupResults,
    LocalBlobStore,
    cleanup_expired_exports,
    create_transactions_export,
)
from .recurring import (
    GenerationResults,
    calculate_first_scheduled_date,
    calculate_next_scheduled_date,
    create_recurring_transaction,
    delete_recurring_transaction,
    generate_pending_recurring_transactions,
    pause_recurring_transaction,
    resume_recurring_transaction,
)

__all__ = [
    "BlobStore",
    "CleanupResults",
    "GenerationResults",
    "LocalBlobStore",
    "calculate_first_scheduled_date",
    "calculate_next_scheduled_date",
    "cleanup_expired_exports",
    "create_recurring_transaction",
    "create_transactions_export",
    "delete_recurring_transaction",
    "generate_pending_recurring_transactions",
    "pause_recurring_transaction",
    "resume_recurring_transaction",
]
