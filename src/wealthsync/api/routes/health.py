"""Liveness and database health endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...db import Repository, check_connection
from ..dependencies import get_health_repository

router = APIRouter(prefix="/api", tags=["health"])

NO_STORE = {"Cache-Control": "no-store, must-revalidate"}


def iso_timestamp() -> str:
    """Current UTC time in ISO 8601 with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


@router.get("/health")
def health(repo: Repository | None = Depends(get_health_repository)) -> JSONResponse:
    healthy = repo is not None and check_connection(repo.conn)
    body: dict[str, object] = {
        "status": "ok" if healthy else "error",
        "timestamp": iso_timestamp(),
        "checks": {"database": "ok" if healthy else "error"},
    }
    if not healthy:
        body["message"] = "Database connection failed"
    return JSONResponse(body, status_code=200 if healthy else 503, headers=NO_STORE)
