# ruff: noqa: S101
"""Tests for the health endpoint and request-level error handling."""

from typing import Any

import duckdb
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from wealthsync.api.dependencies import get_health_repository


class TestHealth:
    """Database health reporting."""

    @pytest.mark.integration
    def test_healthy(self, api_client: TestClient) -> None:
        response = api_client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["checks"] == {"database": "ok"}
        assert "message" not in body
        assert response.headers["cache-control"] == "no-store, must-revalidate"

    @pytest.mark.unit
    def test_database_down(self, api_client: TestClient, mocker: Any) -> None:
        mocker.patch("wealthsync.api.routes.health.check_connection", return_value=False)

        response = api_client.get("/api/health")

        assert response.status_code == 503
        assert response.json()["status"] == "error"
        assert response.json()["message"] == "Database connection failed"

    @pytest.mark.unit
    def test_database_cannot_be_opened(
        self, api_app: FastAPI, api_client: TestClient, mocker: Any
    ) -> None:
        del api_app.dependency_overrides[get_health_repository]
        mocker.patch(
            "wealthsync.api.dependencies.connect",
            side_effect=duckdb.IOException("Could not set lock on file"),
        )

        response = api_client.get("/api/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "error"
        assert body["checks"] == {"database": "error"}
        assert body["message"] == "Database connection failed"
        assert "timestamp" in body
        assert response.headers["cache-control"] == "no-store, must-revalidate"


class TestUserAuthentication:
    """User routes require the X-User-Id header."""

    @pytest.mark.unit
    def test_missing_user(self, api_client: TestClient) -> None:
        response = api_client.get("/api/bank-connections")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    @pytest.mark.unit
    def test_invalid_body_is_bad_request(
        self, api_client: TestClient, user_headers: dict[str, str]
    ) -> None:
        response = api_client.post("/api/exports", json={"format": "XML"}, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["error"].startswith("format")
