"""Database setup commands for WealthSync CLI."""

import logging

import typer

from ...db import check_connection, init_schema, seed_default_categories
from ..context import open_repository

app = typer.Typer(help="Database setup commands")
logger = logging.getLogger(__name__)


@app.command("init")
def init() -> None:
    """Create missing tables and the default Miscellaneous category.

    Safe to run repeatedly; existing tables and data are left untouched.
    """
    try:
        with open_repository() as repo:
            applied = init_schema(repo.conn)
            created = seed_default_categories(repo.conn)
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise typer.Exit(1) from e

    logger.info(f"✅ Applied {len(applied)} schema files")
    if created:
        logger.info("✅ Created default category")


@app.command("check")
def check() -> None:
    """Verify the database answers queries."""
    with open_repository() as repo:
        healthy = check_connection(repo.conn)

    if not healthy:
        logger.error("❌ Database connection failed")
        raise typer.Exit(1)
    logger.info("✅ Database connection OK")
