"""Centralized configuration management for WealthSync.

This module provides a Pydantic Settings-based configuration system that
consolidates database, aggregator, sync, cron, export and logging settings
with environment variable integration and validation.
"""

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, DotEnvSettingsSource, SettingsConfigDict

_PROFILE_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

# Unprefixed variables used by existing deployments: name -> (section, field)
_LEGACY_ENV_VARS: dict[str, tuple[str, str]] = {
    "DUCKDB_PATH": ("database", "path"),
    "PLAID_CLIENT_ID": ("plaid", "client_id"),
    "PLAID_SECRET": ("plaid", "secret"),
    "PLAID_ENV": ("plaid", "environment"),
    "CRON_SECRET": ("cron", "secret"),
    "ENCRYPTION_KEY": ("security", "encryption_key"),
}


class DatabaseConfig(BaseModel):
    """Database configuration settings."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(
        default=Path("data/duckdb/wealthsync.duckdb"),
        description="Path to DuckDB database file",
    )
    create_dirs: bool = Field(
        default=True, description="Automatically create database directories"
    )

    @field_validator("path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Ensure database path has correct extension."""
        if not str(v).endswith((".db", ".duckdb")):
            raise ValueError("Database path must end with .db or .duckdb")
        return v


class PlaidConfig(BaseModel):
    """Plaid API configuration settings."""

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(default="", description="Plaid client ID")
    secret: str = Field(default="", description="Plaid secret key")
    environment: Literal["sandbox", "development", "production"] = Field(
        default="sandbox", description="Plaid environment"
    )
    webhook_url: str | None = Field(
        default=None, description="Public URL Plaid posts webhooks to"
    )
    max_retries: int = Field(
        default=3, ge=0, le=10, description="Maximum API retry attempts"
    )
    retry_delay: float = Field(
        default=1.0, ge=0.0, le=10.0, description="Delay between retries in seconds"
    )


class SyncConfig(BaseModel):
    """Transaction import and sync log settings."""

    model_config = ConfigDict(frozen=True)

    default_lookback_days: int = Field(
        default=30, ge=1, le=730, description="Default scrape window in days"
    )
    duplicate_window_days: int = Field(
        default=90,
        ge=1,
        le=730,
        description="How far back existing transactions are compared for duplicates",
    )
    stale_sync_minutes: int = Field(
        default=30,
        ge=1,
        description="Minutes after which an in-progress sync is considered dead",
    )
    history_limit: int = Field(
        default=10, ge=1, le=100, description="Sync logs returned by history"
    )
    statements_path: Path = Field(
        default=Path("data/statements"),
        description="Directory the bank statement drop writes OFX files to",
    )


class CronConfig(BaseModel):
    """Cron endpoint settings."""

    model_config = ConfigDict(frozen=True)

    secret: str | None = Field(
        default=None, description="Shared secret expected as a Bearer token"
    )


class ExportConfig(BaseModel):
    """Data export storage settings."""

    model_config = ConfigDict(frozen=True)

    blob_path: Path = Field(
        default=Path("data/exports"), description="Directory used as blob storage"
    )
    retention_days: int = Field(
        default=30, ge=1, le=365, description="Days an export stays downloadable"
    )


class SecurityConfig(BaseModel):
    """Encryption settings for stored aggregator tokens and bank credentials."""

    model_config = ConfigDict(frozen=True)

    encryption_key: str | None = Field(
        default=None, description="AES-256 key as 64 hexadecimal characters"
    )

    @field_validator("encryption_key")
    @classmethod
    def validate_encryption_key(cls, v: str | None) -> str | None:
        """Ensure the key decodes to exactly 32 bytes."""
        if v is None or v == "":
            return None
        if not re.fullmatch(r"[0-9a-fA-F]{64}", v):
            raise ValueError("Encryption key must be 64 hexadecimal characters")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration settings."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_to_file: bool = Field(default=False, description="Enable file logging")
    log_file_path: Path = Field(
        default=Path("logs/wealthsync.log"), description="Path to log file"
    )
    max_file_size_mb: int = Field(
        default=50, ge=1, le=1000, description="Maximum log file size in MB"
    )
    backup_count: int = Field(
        default=5, ge=1, le=50, description="Number of log file backups to keep"
    )


class WealthSyncSettings(BaseSettings):
    """Main application settings with environment variable integration.

    Environment variables are loaded with the WEALTHSYNC_ prefix.
    For nested configs, use double underscores: WEALTHSYNC_DATABASE__PATH

    Profile Support:
    - Loads from .env.{profile} files (e.g., .env.dev, .env.prod)
    - Falls back to .env for backward compatibility
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    plaid: PlaidConfig = Field(default_factory=PlaidConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    cron: CronConfig = Field(default_factory=CronConfig)
    exports: ExportConfig = Field(default_factory=ExportConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    debug: bool = Field(default=False, description="Enable debug mode")
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Application environment"
    )
    profile: str = Field(default="default", description="Settings profile name")

    @field_validator("profile")
    @classmethod
    def validate_profile_name(cls, v: str) -> str:
        """Ensure profile name is safe for use as a filename."""
        if not v:
            raise ValueError("Profile name cannot be empty")
        if not _PROFILE_PATTERN.match(v):
            raise ValueError(
                "Profile name must contain only alphanumeric characters, "
                "dashes, and underscores"
            )
        return v

    def __init__(self, **kwargs: Any):
        """Initialize settings, honouring the unprefixed deployment variables.

        Args:
            **kwargs: Additional configuration overrides
        """
        legacy: dict[str, dict[str, str]] = {}
        for var, (section, field) in _LEGACY_ENV_VARS.items():
            value = os.getenv(var)
            if value and section not in kwargs:
                legacy.setdefault(section, {})[field] = value

        # partial Plaid credentials are ignored
        plaid = legacy.get("plaid", {})
        if not (plaid.get("client_id") and plaid.get("secret")):
            legacy.pop("plaid", None)
        elif plaid.get("environment") not in (None, "sandbox", "development", "production"):
            del plaid["environment"]

        kwargs.update(legacy)
        super().__init__(**kwargs)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Load .env.{profile} when it exists, otherwise .env."""
        init_dict = init_settings.init_kwargs if init_settings else {}
        profile = init_dict.get("profile", "dev")  # type: ignore[reportUnknownMemberType]

        profile_env_file = Path(f".env.{profile}")
        env_file = str(profile_env_file) if profile_env_file.exists() else ".env"

        custom_dotenv = DotEnvSettingsSource(
            settings_cls,
            env_file=env_file,
            env_file_encoding="utf-8",
        )

        return (
            init_settings,
            env_settings,
            custom_dotenv,
            file_secret_settings,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WEALTHSYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate application environment."""
        if v == "production" and os.getenv("DEBUG", "").lower() in ("true", "1"):
            raise ValueError("DEBUG mode cannot be enabled in production")
        return v

    def create_directories(self) -> None:
        """Create the directories the application writes into."""
        directories = [
            self.database.path.parent,
            self.exports.blob_path,
            self.sync.statements_path,
        ]
        if self.logging.log_to_file:
            directories.append(self.logging.log_file_path.parent)

        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)

    def validate_plaid_credentials(self) -> None:
        """Validate that Plaid credentials are present.

        Raises:
            ValueError: If the client id or secret is missing
        """
        errors: list[str] = []

        if not self.plaid.client_id:
            errors.append("PLAID_CLIENT_ID is required")
        if not self.plaid.secret:
            errors.append("PLAID_SECRET is required")

        if errors:
            raise ValueError(f"Missing required configuration: {', '.join(errors)}")


_settings_cache: dict[str, WealthSyncSettings] = {}
_current_profile: str = "default"


def _validate_profile(profile: str) -> None:
    if not profile:
        raise ValueError("Profile name cannot be empty")
    if not _PROFILE_PATTERN.match(profile):
        raise ValueError(
            f"Invalid profile: {profile}. "
            "Profile name must contain only alphanumeric characters, dashes, and underscores"
        )


def get_settings(profile: str | None = None) -> WealthSyncSettings:
    """Get the settings instance for the specified profile.

    Settings are loaded once per profile and cached.

    Args:
        profile: Profile name. Defaults to the current profile.

    Returns:
        WealthSyncSettings: The configuration instance for the profile

    Raises:
        ValueError: If configuration is invalid
    """
    if profile is None:
        profile = _current_profile

    if profile in _settings_cache:
        return _settings_cache[profile]

    try:
        settings = WealthSyncSettings(profile=profile)

        if settings.database.create_dirs:
            settings.create_directories()

        _settings_cache[profile] = settings
        return settings

    except Exception as e:
        raise ValueError(f"Configuration error for profile '{profile}': {e}") from e


def set_current_profile(profile: str) -> None:
    """Set the current active profile.

    Raises:
        ValueError: If profile name contains invalid characters
    """
    global _current_profile

    _validate_profile(profile)
    _current_profile = profile


def clear_settings_cache() -> None:
    """Drop every cached settings instance."""
    _settings_cache.clear()


def get_database_path() -> Path:
    """Get the configured database path for the current profile."""
    return get_settings().database.path
