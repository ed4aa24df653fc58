"""Scheduled maintenance jobs for WealthSync CLI."""

import logging
from dataclasses import asdict

import typer

from ...jobs import (
    LocalBlobStore,
    cleanup_expired_exports,
    generate_pending_recurring_transactions,
)
from ...sync import reconcile_stale_syncs
from ..context import echo_json, open_repository

app = typer.Typer(help="Run scheduled maintenance jobs")
logger = logging.getLogger(__name__)


@app.command("generate-recurring")
def generate_recurring(
    user_id: str | None = typer.Option(
        None, "--user", "-u", help="Only generate this user's templates"
    ),
) -> None:
    """Create every due occurrence of active recurring transactions."""
    try:
        with open_repository() as repo:
            results = generate_pending_recurring_transactions(repo, user_id=user_id)
    except Exception as e:
        logger.error(f"❌ Recurring generation failed: {e}")
        raise typer.Exit(1) from e

    echo_json(results.to_dict())
    if results.errors:
        raise typer.Exit(1)


@app.command("cleanup-exports")
def cleanup_exports() -> None:
    """Delete expired export files and their history records."""
    try:
        with open_repository() as repo:
            results = cleanup_expired_exports(repo, LocalBlobStore())
    except Exception as e:
        logger.error(f"❌ Export cleanup failed: {e}")
        raise typer.Exit(1) from e

    echo_json(asdict(results))


@app.command("reconcile-syncs")
def reconcile_syncs() -> None:
    """Fail sync logs stuck in progress past the timeout."""
    try:
        with open_repository() as repo:
            failed = reconcile_stale_syncs(repo)
    except Exception as e:
        logger.error(f"❌ Sync reconciliation failed: {e}")
        raise typer.Exit(1) from e

    echo_json({"staleSyncsFailed": failed})
