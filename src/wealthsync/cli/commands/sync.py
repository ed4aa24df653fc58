"""Transaction sync commands for WealthSync CLI.

These run the same services as the API so a sync can be started from a
shell or an external scheduler.
"""

import logging
from dataclasses import asdict
from datetime import datetime

import typer

from ...config import get_settings
from ...sync import (
    get_sync_history,
    sync_all_plaid_accounts,
    sync_transactions_from_plaid,
    trigger_sync,
)
from ...sync import sync_log
from ..context import as_date, echo_json, open_repository

app = typer.Typer(help="Sync transactions from Plaid and bank scrapers")
logger = logging.getLogger(__name__)


@app.command("plaid")
def sync_plaid(
    user_id: str = typer.Option(..., "--user", "-u", help="User whose accounts to sync"),
    account_id: str | None = typer.Option(
        None, "--account", "-a", help="Sync only this account"
    ),
) -> None:
    """Pull new, modified and removed transactions from Plaid."""
    try:
        get_settings().validate_plaid_credentials()
    except ValueError as e:
        logger.error(f"❌ {e}")
        raise typer.Exit(1) from e

    try:
        with open_repository() as repo:
            if account_id:
                counts = sync_transactions_from_plaid(repo, user_id, account_id)
                result = asdict(counts)
            else:
                summary = sync_all_plaid_accounts(repo, user_id)
                result = asdict(summary)
    except Exception as e:
        logger.error(f"❌ Plaid sync failed: {e}")
        raise typer.Exit(1) from e

    logger.info("✅ Plaid sync completed")
    echo_json(result)


@app.command("connection")
def sync_connection(
    connection_id: str = typer.Argument(..., help="Bank connection to sync"),
    user_id: str = typer.Option(..., "--user", "-u", help="Owner of the connection"),
    start_date: datetime | None = typer.Option(
        None, "--start", formats=["%Y-%m-%d"], help="First day to import"
    ),
    end_date: datetime | None = typer.Option(
        None, "--end", formats=["%Y-%m-%d"], help="Last day to import"
    ),
) -> None:
    """Scrape a bank connection and import the new transactions."""
    try:
        with open_repository() as repo:
            outcome = trigger_sync(
                repo, connection_id, user_id, as_date(start_date), as_date(end_date)
            )
    except Exception as e:
        logger.error(f"❌ Sync failed: {e}")
        raise typer.Exit(1) from e

    logger.info(
        f"✅ Imported {outcome.imported} transactions, skipped {outcome.skipped} duplicates"
    )
    echo_json(asdict(outcome))


@app.command("test")
def test_connection(
    connection_id: str = typer.Argument(..., help="Bank connection to test"),
    user_id: str = typer.Option(..., "--user", "-u", help="Owner of the connection"),
    otp: str | None = typer.Option(None, "--otp", help="One-time password, if required"),
) -> None:
    """Check a connection's credentials without importing anything."""
    try:
        with open_repository() as repo:
            result = sync_log.test_connection(repo, connection_id, user_id, otp=otp)
    except Exception as e:
        logger.error(f"❌ Connection test failed: {e}")
        raise typer.Exit(1) from e

    logger.info(f"✅ {result.message}")


@app.command("history")
def history(
    connection_id: str = typer.Argument(..., help="Bank connection"),
    user_id: str = typer.Option(..., "--user", "-u", help="Owner of the connection"),
    limit: int | None = typer.Option(None, "--limit", "-n", help="Number of logs"),
) -> None:
    """Show the most recent sync attempts for a connection."""
    try:
        with open_repository() as repo:
            logs = get_sync_history(repo, connection_id, user_id, limit)
    except Exception as e:
        logger.error(f"❌ Could not load sync history: {e}")
        raise typer.Exit(1) from e

    echo_json([log.model_dump(mode="json") for log in logs])
