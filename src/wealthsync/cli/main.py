"""Main CLI application for WealthSync.

This module provides the unified entry point for all WealthSync CLI
operations, organizing commands into groups for database setup, syncing,
scheduled jobs, exports and the API server.
"""

import logging
from typing import Annotated

import typer
from dotenv import load_dotenv

from ..config import set_current_profile
from ..logging import setup_logging
from .commands import cron, db, export, serve, sync

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="wealthsync",
    help="WealthSync: bank transaction sync and scheduled reconciliation",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    profile: Annotated[
        str,
        typer.Option(
            "--profile",
            "-p",
            help="Settings profile to use. Default: default",
            envvar="WEALTHSYNC_PROFILE",
        ),
    ] = "default",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose debug logging",
        ),
    ] = False,
) -> None:
    """Global options for WealthSync CLI.

    Each profile loads its settings from .env.{profile} when that file
    exists, so separate databases and credentials can live side by side.

    Examples:
      wealthsync db init
      wealthsync --profile=prod cron generate-recurring
      wealthsync sync connection conn_123 --user user_1
    """
    load_dotenv()

    try:
        set_current_profile(profile)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--profile") from e

    setup_logging(cli_mode=True, verbose=verbose)

    logger.debug(f"Using profile: {profile}")


app.add_typer(db.app, name="db", help="Database setup commands")
app.add_typer(sync.app, name="sync", help="Sync transactions from external sources")
app.add_typer(cron.app, name="cron", help="Run scheduled maintenance jobs")
app.add_typer(export.app, name="export", help="Export transaction data")
app.add_typer(serve.app, name="serve", help="Run the HTTP API")


def main() -> None:
    """Entry point for the WealthSync CLI application."""
    app()


if __name__ == "__main__":
    main()
