# ruff: noqa: S101
"""Tests for logging setup and secret redaction."""

import logging
import sys
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from wealthsync.config import LoggingConfig, clear_settings_cache
from wealthsync.logging.config import (
    REDACTED,
    RedactingFilter,
    mask_identifier,
    redact,
    setup_logging,
)


class TestSetupLogging:
    """Tests for setup_logging handler configuration."""

    @pytest.fixture(autouse=True)
    def _reset_root_logger(self) -> Generator[None, Any, None]:
        """Restore the root logger after each test."""
        root = logging.getLogger()
        original_handlers = list(root.handlers)
        original_level = root.level
        yield
        for handler in root.handlers:
            if handler not in original_handlers:
                handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)

    @pytest.mark.unit
    def test_console_handler_uses_stderr(self) -> None:
        """JSON written to stdout by the CLI must not be mixed with logs."""
        setup_logging(config=LoggingConfig(), cli_mode=True, force=True)
        stream_handlers = [
            h
            for h in logging.getLogger().handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]
        assert stream_handlers
        assert all(h.stream is sys.stderr for h in stream_handlers)

    @pytest.mark.unit
    def test_configured_level(self) -> None:
        setup_logging(config=LoggingConfig(level="ERROR"), force=True)
        assert logging.getLogger().level == logging.ERROR

    @pytest.mark.unit
    def test_verbose_overrides_level(self) -> None:
        setup_logging(config=LoggingConfig(level="WARNING"), verbose=True, force=True)
        assert logging.getLogger().level == logging.DEBUG

    @pytest.mark.unit
    def test_file_logging(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "wealthsync.log"
        setup_logging(
            config=LoggingConfig(log_to_file=True, log_file_path=log_file), force=True
        )
        assert log_file.parent.is_dir()
        assert any(
            isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers
        )

    @pytest.mark.unit
    def test_every_handler_redacts(self, tmp_path: Path) -> None:
        setup_logging(
            config=LoggingConfig(
                log_to_file=True, log_file_path=tmp_path / "wealthsync.log"
            ),
            force=True,
        )
        for handler in logging.getLogger().handlers:
            assert any(isinstance(f, RedactingFilter) for f in handler.filters)

    @pytest.mark.unit
    def test_settings_used_without_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("WEALTHSYNC_LOGGING__LEVEL", "ERROR")
        clear_settings_cache()
        setup_logging(force=True)
        assert logging.getLogger().level == logging.ERROR


class TestRedaction:
    """Tests for scrubbing secrets from log messages."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "message",
        [
            "Exchanged token access-sandbox-de3ce8ef-33f8-452c-a685-8671031fc0f6",
            "Link token link-production-840204-193734 created",
            "Public token public-development-0a1b2c received",
        ],
    )
    def test_plaid_tokens(self, message: str) -> None:
        cleaned = redact(message)
        assert REDACTED in cleaned
        assert "-sandbox-" not in cleaned
        assert "-production-" not in cleaned
        assert "-development-" not in cleaned

    @pytest.mark.unit
    def test_bearer_secret(self) -> None:
        assert redact("Authorization: Bearer cron-s3cret") == (
            f"Authorization: Bearer {REDACTED}"
        )

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "message",
        ['{"username": "bankuser", "password": "hunter2"}', "password=hunter2 rejected"],
    )
    def test_password_fields(self, message: str) -> None:
        cleaned = redact(message)
        assert "hunter2" not in cleaned
        assert REDACTED in cleaned

    @pytest.mark.unit
    def test_plain_message_unchanged(self) -> None:
        message = "Synced 12 transactions for account acc_123"
        assert redact(message) == message

    @pytest.mark.unit
    def test_filter_rewrites_formatted_record(self) -> None:
        record = logging.LogRecord(
            name="wealthsync.sync",
            level=logging.ERROR,
            pathname=__file__,
            lineno=1,
            msg="Plaid call failed for %s",
            args=("access-sandbox-1234abcd",),
            exc_info=None,
        )
        assert RedactingFilter().filter(record) is True
        assert record.getMessage() == f"Plaid call failed for {REDACTED}"
        assert record.args is None

    @pytest.mark.unit
    def test_filter_keeps_clean_record_args(self) -> None:
        record = logging.LogRecord(
            name="wealthsync.sync",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Synced %d transactions",
            args=(3,),
            exc_info=None,
        )
        RedactingFilter().filter(record)
        assert record.args == (3,)
        assert record.getMessage() == "Synced 3 transactions"


class TestMaskIdentifier:
    """Tests for credential masking in log output."""

    @pytest.mark.unit
    def test_keeps_prefix_only(self) -> None:
        assert mask_identifier("bankuser") == "ban***"

    @pytest.mark.unit
    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_values(self, value: str | None) -> None:
        assert mask_identifier(value) == "***"
