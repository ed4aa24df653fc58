"""Bank scraper interface shared by every statement source.

A scraper logs into (or reads from) one bank on the user's behalf and
returns completed transactions for a date range. Concrete sources subclass
``StatementScraper`` and implement ``fetch``; the base class handles
credential decryption, provider error mapping and pending-transaction
filtering so every source fails in the same categorized way.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Literal, Protocol

from ..config import get_settings
from ..crypto import BankCredentials, decrypt_bank_credentials
from ..errors import BankScraperError, ConfigurationError, ScraperErrorType
from ..logging import mask_identifier
from ..models import BankProvider

logger = logging.getLogger(__name__)

TransactionStatus = Literal["completed", "pending"]


@dataclass
class ScrapeOptions:
    """What to scrape and with which stored credentials."""

    bank: BankProvider
    encrypted_credentials: str
    start_date: date | None = None
    end_date: date | None = None
    otp: str | None = None


@dataclass
class ImportedTransaction:
    """A transaction as reported by the bank, before it becomes a record."""

    date: date
    processed_date: date
    amount: Decimal
    description: str
    memo: str | None = None
    status: TransactionStatus = "completed"


@dataclass
class ScrapeResult:
    """Completed transactions for the first scraped account."""

    success: bool
    transactions: list[ImportedTransaction] = field(default_factory=list)
    account_number: str | None = None
    balance: Decimal | None = None


@dataclass
class ScrapedAccount:
    """One account as returned by a provider."""

    account_number: str | None
    balance: Decimal | None = None
    transactions: list[ImportedTransaction] = field(default_factory=list)


@dataclass
class ProviderResult:
    """Raw outcome of a provider login and download."""

    success: bool
    accounts: list[ScrapedAccount] = field(default_factory=list)
    error_type: str | None = None
    error_message: str | None = None


class BankScraper(Protocol):
    """Anything that can scrape a bank for transactions."""

    def scrape(self, options: ScrapeOptions) -> ScrapeResult:
        """Scrape completed transactions.

        Raises:
            BankScraperError: For every scraper failure
        """
        ...


def map_scraper_error(error_type: str, message: str) -> BankScraperError:
    """Translate a provider error code into a categorized, user-facing error.

    Args:
        error_type: Provider error code such as ``INVALID_PASSWORD``
        message: Provider error message, shown only for unknown codes

    Returns:
        BankScraperError: Error carrying a message safe to show the user
    """
    if error_type == "INVALID_PASSWORD":
        return BankScraperError(
            ScraperErrorType.INVALID_CREDENTIALS,
            "Invalid username or password. Please check your credentials and try again.",
        )
    if error_type == "CHANGE_PASSWORD":
        return BankScraperError(
            ScraperErrorType.PASSWORD_EXPIRED,
            "Your password has expired. Please update it via your bank's website, "
            "then update your credentials here.",
        )
    if error_type == "ACCOUNT_BLOCKED":
        return BankScraperError(
            ScraperErrorType.ACCOUNT_BLOCKED,
            "Account locked due to too many failed login attempts. Please contact your bank.",
        )
    if error_type == "TIMEOUT":
        return BankScraperError(
            ScraperErrorType.NETWORK_ERROR,
            "Connection timed out. Please check your internet connection and try again.",
        )
    if error_type in ("GENERIC", "UNKNOWN_ERROR"):
        return BankScraperError(
            ScraperErrorType.SCRAPER_BROKEN,
            "Sync temporarily unavailable. The bank may have changed their website. "
            "Our team has been notified.",
        )

    logger.error(f"Unknown scraper error type: {error_type}, message: {message}")
    return BankScraperError(
        ScraperErrorType.SCRAPER_BROKEN, f"Unexpected scraper error: {message}"
    )


class StatementScraper(ABC):
    """Base class for scrapers backed by a provider download."""

    def __init__(self, encryption_key: str | None = None):
        self._encryption_key = encryption_key

    @property
    def encryption_key(self) -> str | None:
        """Key used to decrypt stored credentials."""
        if self._encryption_key is not None:
            return self._encryption_key
        return get_settings().security.encryption_key

    @abstractmethod
    def fetch(
        self,
        bank: BankProvider,
        credentials: BankCredentials,
        start_date: date,
        end_date: date,
        otp: str | None = None,
    ) -> ProviderResult:
        """Log in and download accounts and transactions from the provider."""

    def scrape(self, options: ScrapeOptions) -> ScrapeResult:
        """Scrape completed transactions for ``options``.

        Args:
            options: Bank, encrypted credentials and optional date range

        Returns:
            ScrapeResult: Completed transactions of the first account

        Raises:
            BankScraperError: For every scraper failure
        """
        credentials = decrypt_bank_credentials(
            options.encrypted_credentials, self.encryption_key
        )
        logger.info(
            f"Scraping {options.bank.value} for user {mask_identifier(credentials.user_id)}"
        )

        end_date = options.end_date or date.today()
        start_date = options.start_date or end_date - timedelta(
            days=get_settings().sync.default_lookback_days
        )

        try:
            result = self.fetch(
                options.bank, credentials, start_date, end_date, options.otp
            )
        except BankScraperError:
            raise
        except (OSError, TimeoutError) as e:
            logger.error(f"Scraper connection error for {options.bank.value}: {e}")
            raise BankScraperError(
                ScraperErrorType.NETWORK_ERROR,
                "Failed to connect to bank. Please check your internet connection "
                "and try again.",
                e,
            ) from e

        if not result.success:
            raise map_scraper_error(
                result.error_type or "UNKNOWN_ERROR",
                result.error_message or "Unknown error",
            )

        transactions: list[ImportedTransaction] = []
        for account in result.accounts:
            for txn in account.transactions:
                if txn.status == "pending":
                    logger.debug(f"Skipping pending transaction: {txn.description}")
                    continue
                transactions.append(txn)

        logger.info(f"Scraped {len(transactions)} completed transactions")

        first = result.accounts[0] if result.accounts else None
        return ScrapeResult(
            success=True,
            transactions=transactions,
            account_number=first.account_number if first else None,
            balance=first.balance if first else None,
        )


class ScraperRegistry:
    """Maps each supported bank provider to the scraper that serves it."""

    def __init__(self, scrapers: dict[BankProvider, BankScraper] | None = None):
        self._scrapers: dict[BankProvider, BankScraper] = dict(scrapers or {})

    def register(self, bank: BankProvider, scraper: BankScraper) -> None:
        """Register or replace the scraper for a provider."""
        self._scrapers[bank] = scraper

    def get(self, bank: BankProvider) -> BankScraper:
        """Return the scraper for ``bank``.

        Raises:
            ConfigurationError: If no scraper serves the provider
        """
        try:
            return self._scrapers[bank]
        except KeyError:
            raise ConfigurationError(f"Unsupported bank: {bank.value}") from None

    def scrape(self, options: ScrapeOptions) -> ScrapeResult:
        """Scrape with the provider's registered scraper."""
        return self.get(options.bank).scrape(options)


def default_registry() -> ScraperRegistry:
    """Registry serving every provider from the statement drop directory."""
    from .ofx_scraper import OFXStatementScraper

    statements_path = get_settings().sync.statements_path
    registry = ScraperRegistry()
    for bank in BankProvider:
        registry.register(bank, OFXStatementScraper(statements_path / bank.value.lower()))
    return registry
