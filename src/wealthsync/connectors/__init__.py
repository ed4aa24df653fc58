"""Connectors to external transaction sources: Plaid and bank scrapers."""

from .plaid_client import PlaidClient, map_plaid_account_type
from .plaid_schemas import (
    PlaidAccount,
    PlaidRemovedTransaction,
    PlaidTransaction,
    PlaidWebhook,
    TransactionsSyncPage,
)
from .scraper import (
    BankScraper,
    ImportedTransaction,
    ScrapeOptions,
    ScrapeResult,
    ScraperRegistry,
    default_registry,
    map_scraper_error,
)

__all__ = [
    "BankScraper",
    "ImportedTransaction",
    "PlaidAccount",
    "PlaidClient",
    "PlaidRemovedTransaction",
    "PlaidTransaction",
    "PlaidWebhook",
    "ScrapeOptions",
    "ScrapeResult",
    "ScraperRegistry",
    "TransactionsSyncPage",
    "default_registry",
    "map_plaid_account_type",
    "map_scraper_error",
]
