"""Request-scoped dependencies shared by the routers."""

import logging
from collections.abc import Generator

import duckdb
from fastapi import Header

from ..config import get_database_path, get_settings
from ..connectors.plaid_client import PlaidClient
from ..connectors.scraper import BankScraper, default_registry
from ..db import Repository, connect
from ..jobs.exports import BlobStore, LocalBlobStore
from .errors import HTTPError

logger = logging.getLogger(__name__)


def get_repository() -> Generator[Repository, None, None]:
    """Open a DuckDB connection for the duration of one request."""
    conn = connect(get_database_path())
    try:
        yield Repository(conn)
    finally:
        conn.close()


def get_health_repository() -> Generator[Repository | None, None, None]:
    """Like ``get_repository``, but yields None when the database cannot be opened."""
    try:
        conn = connect(get_database_path())
    except (duckdb.Error, OSError) as e:
        logger.error(f"Health check could not open the database: {e}")
        yield None
        return
    try:
        yield Repository(conn)
    finally:
        conn.close()


def get_current_user(x_user_id: str | None = Header(None, alias="X-User-Id")) -> str:
    """Authenticated user id, set by the session layer in front of the API."""
    if not x_user_id:
        raise HTTPError(401, "Unauthorized")
    return x_user_id


def get_plaid_client() -> PlaidClient | None:
    """Plaid client, or None when Plaid is not configured."""
    plaid = get_settings().plaid
    if not plaid.client_id or not plaid.secret:
        return None
    return PlaidClient(plaid)


def get_scraper() -> BankScraper:
    return default_registry()


def get_blob_store() -> BlobStore:
    return LocalBlobStore()
