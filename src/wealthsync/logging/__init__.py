"""Logging for WealthSync.

Configure once at startup, then log through module loggers::

    import logging
    from wealthsync.logging import setup_logging

    setup_logging()
    logger = logging.getLogger(__name__)
"""

from .config import RedactingFilter, mask_identifier, redact, setup_logging

__all__ = ["RedactingFilter", "mask_identifier", "redact", "setup_logging"]
