"""Translation of domain errors into JSON error responses.

Every error body has the shape ``{"error": "<message>"}``.
"""

import logging

import duckdb
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from ..errors import (
    AggregatorError,
    BankScraperError,
    ConfigurationError,
    EncryptionError,
    NotFoundError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


class HTTPError(Exception):
    """Error raised by route code that maps directly to a status code."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _http_error(request: Request, exc: HTTPError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return error_response(404, str(exc))


async def _forbidden(request: Request, exc: UnauthorizedError) -> JSONResponse:
    return error_response(403, str(exc))


async def _bad_request(request: Request, exc: Exception) -> JSONResponse:
    return error_response(400, str(exc))


async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request")
    return error_response(400, f"{location}: {message}" if location else message)


async def _scraper_error(request: Request, exc: BankScraperError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": str(exc), "errorType": exc.error_type.value},
    )


async def _database_unavailable(request: Request, exc: duckdb.Error) -> JSONResponse:
    logger.error(f"Database error on {request.url.path}: {exc}")
    return error_response(503, "Database unavailable")


async def _server_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return error_response(500, str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain error handlers on ``app``."""
    app.add_exception_handler(HTTPError, _http_error)  # type: ignore[arg-type]
    app.add_exception_handler(NotFoundError, _not_found)  # type: ignore[arg-type]
    app.add_exception_handler(UnauthorizedError, _forbidden)  # type: ignore[arg-type]
    app.add_exception_handler(BankScraperError, _scraper_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _invalid_request)  # type: ignore[arg-type]
    app.add_exception_handler(ConfigurationError, _bad_request)
    app.add_exception_handler(ValueError, _bad_request)
    app.add_exception_handler(AggregatorError, _server_error)
    app.add_exception_handler(EncryptionError, _server_error)
    app.add_exception_handler(duckdb.Error, _database_unavailable)  # type: ignore[arg-type]
