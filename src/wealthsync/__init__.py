"""WealthSync: bank transaction synchronization for personal finance data.

This package keeps a user's bank transactions in step with their banks:
- Plaid aggregation via webhooks and cursor-based transaction pulls
- Bank scraper imports with three-factor duplicate detection
- Sync logs that track every attempt and reconcile stalled ones
- Cron-driven recurring transaction generation and export cleanup

All state lives in a DuckDB database and is exposed through a FastAPI
service and a Typer CLI.
"""

__version__ = "0.1.0"
