"""HTTP surface: cron triggers, the Plaid webhook and user sync routes."""

from .app import create_app

__all__ = ["create_app"]
