"""FastAPI application factory.

Run with ``uvicorn wealthsync.api.app:create_app --factory`` or
``wealthsync serve``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .. import __version__
from ..config import get_database_path
from ..db import connect, init_schema, seed_default_categories
from .errors import register_exception_handlers
from .routes import (
    bank_connections,
    cron,
    exports,
    health,
    plaid,
    recurring,
    transactions,
    webhooks,
)

logger = logging.getLogger(__name__)


def _prepare_database() -> None:
    db_path = get_database_path()
    conn = connect(db_path)
    try:
        init_schema(conn)
        seed_default_categories(conn)
    finally:
        conn.close()
    logger.info(f"Database ready at {db_path}")


def create_app(prepare_database: bool = True) -> FastAPI:
    """Build the API application.

    Args:
        prepare_database: Create missing tables and the default category on startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if prepare_database:
            _prepare_database()
        yield

    app = FastAPI(title="WealthSync API", version=__version__, lifespan=lifespan)
    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(cron.router)
    app.include_router(webhooks.router)
    app.include_router(plaid.router)
    app.include_router(bank_connections.router)
    app.include_router(recurring.router)
    app.include_router(exports.router)
    app.include_router(transactions.router)
    return app
