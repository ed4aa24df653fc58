"""Shared pytest fixtures for wealthsync tests.

Every test runs against the "test" profile with its database, export and
statement paths redirected into ``tmp_path``, so nothing touches the
working directory or a developer's real configuration.
"""

from collections.abc import Generator
from decimal import Decimal
from pathlib import Path

import duckdb
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from wealthsync.api import create_app
from wealthsync.api.dependencies import (
    get_blob_store,
    get_health_repository,
    get_plaid_client,
    get_repository,
)
from wealthsync.config import clear_settings_cache, set_current_profile
from wealthsync.crypto import BankCredentials, encrypt, encrypt_bank_credentials
from wealthsync.db import Repository, connect, init_schema, seed_default_categories
from wealthsync.jobs.exports import LocalBlobStore
from wealthsync.models import Account, AccountType, BankConnection, BankProvider

TEST_KEY = "0123456789abcdef" * 4
USER_ID = "user_1"
OTHER_USER_ID = "user_2"

_LEGACY_ENV_VARS = (
    "DUCKDB_PATH",
    "PLAID_CLIENT_ID",
    "PLAID_SECRET",
    "PLAID_ENV",
    "CRON_SECRET",
    "ENCRYPTION_KEY",
)


@pytest.fixture(autouse=True)
def clean_profile_state(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[None, None, None]:
    """Isolate settings and filesystem paths for each test."""
    for var in _LEGACY_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("WEALTHSYNC_DATABASE__PATH", str(tmp_path / "db" / "test.duckdb"))
    monkeypatch.setenv("WEALTHSYNC_EXPORTS__BLOB_PATH", str(tmp_path / "exports"))
    monkeypatch.setenv("WEALTHSYNC_SYNC__STATEMENTS_PATH", str(tmp_path / "statements"))

    clear_settings_cache()
    set_current_profile("test")

    yield

    clear_settings_cache()
    set_current_profile("test")


@pytest.fixture
def encryption_key(monkeypatch: pytest.MonkeyPatch) -> str:
    """Configure a valid AES-256 key through the legacy environment variable."""
    monkeypatch.setenv("ENCRYPTION_KEY", TEST_KEY)
    clear_settings_cache()
    return TEST_KEY


@pytest.fixture
def db_conn() -> Generator[duckdb.DuckDBPyConnection, None, None]:
    """In-memory database with the schema and default category."""
    conn = connect(":memory:")
    init_schema(conn)
    seed_default_categories(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(db_conn: duckdb.DuckDBPyConnection) -> Repository:
    return Repository(db_conn)


@pytest.fixture
def plaid_account(repo: Repository, encryption_key: str) -> Account:
    """A Plaid-linked checking account holding an encrypted access token."""
    return repo.create_account(
        user_id=USER_ID,
        account_type=AccountType.CHECKING,
        name="Plaid Checking",
        institution="Chase",
        balance=Decimal("100.00"),
        currency="USD",
        is_manual=False,
        plaid_account_id="plaid-acc-1",
        plaid_item_id="item-1",
        plaid_access_token=encrypt("access-sandbox-123", encryption_key),
    )


@pytest.fixture
def bank_connection(repo: Repository, encryption_key: str) -> BankConnection:
    """An ACTIVE FIBI checking connection with encrypted credentials."""
    return repo.create_bank_connection(
        user_id=USER_ID,
        bank=BankProvider.FIBI,
        account_type=AccountType.CHECKING,
        account_identifier="1234",
        encrypted_credentials=encrypt_bank_credentials(
            BankCredentials(user_id="bankuser", password="s3cret"), encryption_key
        ),
    )


@pytest.fixture
def api_app(repo: Repository, tmp_path: Path) -> FastAPI:
    """API app bound to the in-memory repository with local blob storage."""
    app = create_app(prepare_database=False)
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_health_repository] = lambda: repo
    app.dependency_overrides[get_blob_store] = lambda: LocalBlobStore(tmp_path / "blobs")
    app.dependency_overrides[get_plaid_client] = lambda: None
    return app


@pytest.fixture
def api_client(api_app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(api_app) as client:
        yield client


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {"X-User-Id": USER_ID}
