"""DuckDB storage for WealthSync: connections, schema and typed queries."""

from .database import (
    DEFAULT_CATEGORY_NAME,
    check_connection,
    connect,
    init_schema,
    seed_default_categories,
    transaction,
)
from .repository import Repository, new_id

__all__ = [
    "DEFAULT_CATEGORY_NAME",
    "Repository",
    "check_connection",
    "connect",
    "init_schema",
    "new_id",
    "seed_default_categories",
    "transaction",
]
