"""Shared helpers for CLI commands."""

import json
import logging
from collections.abc import Generator
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any

import typer

from ..config import get_database_path
from ..db import Repository, connect

logger = logging.getLogger(__name__)


@contextmanager
def open_repository() -> Generator[Repository, None, None]:
    """Open the current profile's database for one command."""
    db_path = get_database_path()
    logger.debug(f"Opening database: {db_path}")
    conn = connect(db_path)
    try:
        yield Repository(conn)
    finally:
        conn.close()


def as_date(value: datetime | None) -> date | None:
    return value.date() if value else None


def echo_json(data: Any) -> None:
    """Write machine-readable output to stdout."""
    typer.echo(json.dumps(data, indent=2, default=str))
