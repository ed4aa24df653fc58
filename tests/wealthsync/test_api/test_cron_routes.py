# ruff: noqa: S101
"""Tests for the cron job endpoints."""

from typing import Any

import pytest
from fastapi.testclient import TestClient

from wealthsync.config import clear_settings_cache

SECRET = "cron-test-secret"


@pytest.fixture
def cron_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setenv("CRON_SECRET", SECRET)
    clear_settings_cache()
    return SECRET


@pytest.fixture
def auth(cron_secret: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {cron_secret}"}


class TestCronAuthorization:
    """Bearer secret checks shared by every cron route."""

    @pytest.mark.unit
    def test_missing_configuration(self, api_client: TestClient) -> None:
        response = api_client.get(
            "/api/cron/generate-recurring", headers={"Authorization": "Bearer x"}
        )
        assert response.status_code == 500
        assert response.json() == {"error": "Cron configuration error"}

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "headers",
        [{}, {"Authorization": "Bearer wrong"}, {"Authorization": SECRET}],
    )
    def test_rejects_bad_credentials(
        self, api_client: TestClient, cron_secret: str, headers: dict[str, str]
    ) -> None:
        response = api_client.post("/api/cron/cleanup-exports", headers=headers)
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}


class TestCronJobs:
    """Job results and failure reporting."""

    @pytest.mark.integration
    @pytest.mark.parametrize("method", ["GET", "POST"])
    def test_generate_recurring(
        self, api_client: TestClient, auth: dict[str, str], method: str
    ) -> None:
        response = api_client.request(method, "/api/cron/generate-recurring", headers=auth)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Recurring transactions generated successfully"
        assert body["results"] == {"processed": 0, "created": 0, "errors": 0}
        assert body["timestamp"].endswith("Z")

    @pytest.mark.integration
    def test_cleanup_exports(self, api_client: TestClient, auth: dict[str, str]) -> None:
        response = api_client.post("/api/cron/cleanup-exports", headers=auth)

        assert response.status_code == 200
        assert response.json()["results"] == {
            "exportsDeleted": 0,
            "blobsDeleted": 0,
            "bytesFreed": 0,
        }

    @pytest.mark.integration
    def test_reconcile_syncs(self, api_client: TestClient, auth: dict[str, str]) -> None:
        response = api_client.get("/api/cron/reconcile-syncs", headers=auth)

        assert response.status_code == 200
        assert response.json()["message"] == "Stale syncs reconciled"
        assert response.json()["results"] == {"staleSyncsFailed": 0}

    @pytest.mark.unit
    def test_job_failure_reported(
        self, api_client: TestClient, auth: dict[str, str], mocker: Any
    ) -> None:
        mocker.patch(
            "wealthsync.api.routes.cron.generate_pending_recurring_transactions",
            side_effect=RuntimeError("database locked"),
        )

        response = api_client.post("/api/cron/generate-recurring", headers=auth)

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "database locked"
        assert "timestamp" in body
