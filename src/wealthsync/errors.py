"""Exception hierarchy shared by the sync services, jobs and HTTP layer."""

from enum import Enum


class WealthSyncError(Exception):
    """Base class for all WealthSync domain errors."""


class NotFoundError(WealthSyncError):
    """Raised when a requested record does not exist."""


class UnauthorizedError(WealthSyncError):
    """Raised when a user touches a record they do not own."""


class ConfigurationError(WealthSyncError):
    """Raised when required configuration or seed data is missing."""


class EncryptionError(WealthSyncError):
    """Raised when an encrypted payload cannot be decoded."""


class AggregatorError(WealthSyncError):
    """Raised when the bank aggregator API rejects a request."""

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.error_code = error_code


class ScraperErrorType(str, Enum):
    """Categorized failure reasons reported by bank scrapers."""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    OTP_REQUIRED = "OTP_REQUIRED"
    OTP_TIMEOUT = "OTP_TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    SCRAPER_BROKEN = "SCRAPER_BROKEN"
    BANK_MAINTENANCE = "BANK_MAINTENANCE"
    ACCOUNT_BLOCKED = "ACCOUNT_BLOCKED"
    PASSWORD_EXPIRED = "PASSWORD_EXPIRED"


class BankScraperError(WealthSyncError):
    """Raised for every scraper failure, carrying a user-facing message."""

    def __init__(
        self,
        error_type: ScraperErrorType,
        message: str,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.original_error = original_error

    def __str__(self) -> str:
        return self.args[0] if self.args else ""
