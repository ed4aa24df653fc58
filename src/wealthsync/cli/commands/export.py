"""Data export commands for WealthSync CLI."""

import logging
from datetime import datetime

import typer

from ...jobs import LocalBlobStore, create_transactions_export
from ...models import ExportFormat
from ..context import as_date, echo_json, open_repository

app = typer.Typer(help="Export transaction data")
logger = logging.getLogger(__name__)


@app.command("transactions")
def export_transactions(
    user_id: str = typer.Option(..., "--user", "-u", help="Whose transactions to export"),
    fmt: ExportFormat = typer.Option(
        ExportFormat.CSV, "--format", "-f", case_sensitive=False, help="File format"
    ),
    start_date: datetime | None = typer.Option(
        None, "--start", formats=["%Y-%m-%d"], help="Earliest transaction date"
    ),
    end_date: datetime | None = typer.Option(
        None, "--end", formats=["%Y-%m-%d"], help="Latest transaction date"
    ),
) -> None:
    """Write a user's transactions to blob storage."""
    try:
        with open_repository() as repo:
            export = create_transactions_export(
                repo,
                LocalBlobStore(),
                user_id,
                fmt,
                start_date=as_date(start_date),
                end_date=as_date(end_date),
            )
    except Exception as e:
        logger.error(f"❌ Export failed: {e}")
        raise typer.Exit(1) from e

    if export.blob_key is None:
        logger.warning("⚠️  Export recorded but the file could not be stored")
    else:
        logger.info(f"✅ Exported {export.record_count} transactions to {export.blob_key}")
    echo_json(export.model_dump(mode="json"))
