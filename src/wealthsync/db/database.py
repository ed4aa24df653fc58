"""DuckDB connection and schema lifecycle.

The canonical table definitions live in ``wealthsync/sql/schema``. They are
applied with ``CREATE TABLE IF NOT EXISTS`` so ``init_schema`` is safe to run
on every start.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

import duckdb

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "sql" / "schema"

# Order matters only for readability; tables carry no foreign keys
SCHEMA_FILES = [
    "users.sql",
    "categories.sql",
    "accounts.sql",
    "bank_connections.sql",
    "transactions.sql",
    "sync_logs.sql",
    "recurring_transactions.sql",
    "export_history.sql",
    "merchant_category_cache.sql",
]

DEFAULT_CATEGORY_NAME = "Miscellaneous"


def connect(db_path: Path | str, read_only: bool = False) -> duckdb.DuckDBPyConnection:
    """Open a DuckDB connection, creating the parent directory if needed.

    Args:
        db_path: Path to the DuckDB database file, or ``:memory:``
        read_only: Open the database without write access

    Returns:
        duckdb.DuckDBPyConnection: The open connection
    """
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(db_path), read_only=read_only)


def init_schema(conn: duckdb.DuckDBPyConnection) -> list[str]:
    """Create all WealthSync tables that do not exist yet.

    Args:
        conn: Writable DuckDB connection

    Returns:
        list[str]: Schema files that were applied
    """
    applied: list[str] = []
    for sql_file in SCHEMA_FILES:
        conn.execute((SCHEMA_DIR / sql_file).read_text())
        applied.append(sql_file)
    logger.debug(f"Applied {len(applied)} schema files")
    return applied


def seed_default_categories(conn: duckdb.DuckDBPyConnection) -> bool:
    """Ensure the shared Miscellaneous category exists.

    Imports assign this category before categorization runs.

    Returns:
        bool: True if the category was created, False if it already existed
    """
    result = conn.execute(
        """
        SELECT COUNT(*) FROM categories
        WHERE name = ? AND user_id IS NULL AND is_default
        """,
        [DEFAULT_CATEGORY_NAME],
    ).fetchone()
    if result and result[0] > 0:
        return False

    conn.execute(
        "INSERT INTO categories (id, user_id, name, is_default) VALUES (?, NULL, ?, TRUE)",
        ["cat_miscellaneous", DEFAULT_CATEGORY_NAME],
    )
    logger.info(f"Seeded default category: {DEFAULT_CATEGORY_NAME}")
    return True


@contextmanager
def transaction(conn: duckdb.DuckDBPyConnection) -> Generator[duckdb.DuckDBPyConnection, None, None]:
    """Run a block of statements atomically.

    Commits when the block exits normally and rolls back on any exception,
    which is then re-raised.
    """
    conn.begin()
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


def check_connection(conn: duckdb.DuckDBPyConnection) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        result = conn.execute("SELECT 1").fetchone()
        return bool(result and result[0] == 1)
    except duckdb.Error as e:
        logger.error(f"Database health check failed: {e}")
        return False
