"""Logging setup for the WealthSync CLI, API server and cron jobs.

Levels and file output come from the active profile's ``logging`` settings.
Every handler carries a ``RedactingFilter`` so Plaid access tokens, bearer
secrets and bank passwords never reach a log line, even when an exception
message echoes a request.
"""

import logging
import re
import sys
from logging.handlers import RotatingFileHandler

from ..config import LoggingConfig, get_settings

SERVICE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CLI_FORMAT = "%(message)s"

REDACTED = "[REDACTED]"

# access-sandbox-..., public-production-..., link-development-...
_PLAID_TOKEN = re.compile(
    r"\b(access|public|link)-(sandbox|development|production)-[0-9a-f-]+\b",
    re.IGNORECASE,
)
_BEARER = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)
_PASSWORD_FIELD = re.compile(r"""("?password"?\s*[:=]\s*"?)[^"\s,}]+""", re.IGNORECASE)

_QUIET_LOGGERS = {
    "urllib3": logging.WARNING,
    "plaid": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
}


def redact(message: str) -> str:
    """Replace tokens, bearer secrets and passwords in a log message.

    Examples:
        >>> redact("exchanged access-sandbox-1a2b-3c4d")
        'exchanged [REDACTED]'
        >>> redact("Authorization: Bearer s3cret")
        'Authorization: Bearer [REDACTED]'
    """
    message = _PLAID_TOKEN.sub(REDACTED, message)
    message = _BEARER.sub(rf"\1{REDACTED}", message)
    return _PASSWORD_FIELD.sub(rf"\1{REDACTED}", message)


class RedactingFilter(logging.Filter):
    """Scrub secrets from a record's rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def setup_logging(
    config: LoggingConfig | None = None,
    cli_mode: bool = False,
    verbose: bool = False,
    force: bool = False,
) -> None:
    """Configure the root logger once for the process.

    Args:
        config: Logging settings, defaults to the active profile's
        cli_mode: Print bare messages instead of timestamped service lines
        verbose: Log at DEBUG regardless of the configured level
        force: Replace handlers installed by an earlier call
    """
    if config is None:
        config = get_settings().logging

    level = logging.DEBUG if verbose else getattr(logging, config.level)
    redacting = RedactingFilter()

    # stderr keeps JSON written to stdout by the CLI parseable
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(CLI_FORMAT if cli_mode else SERVICE_FORMAT))
    console.addFilter(redacting)
    handlers: list[logging.Handler] = [console]

    if config.log_to_file:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            config.log_file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(logging.Formatter(SERVICE_FORMAT))
        file_handler.addFilter(redacting)
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=force)

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def mask_identifier(value: str | None, visible: int = 3) -> str:
    """Mask a credential identifier for log output.

    Args:
        value: Identifier to mask (username, account number, token)
        visible: Number of leading characters left readable

    Returns:
        str: The first characters followed by ``***``
    """
    if not value:
        return "***"
    return f"{value[:visible]}***"

