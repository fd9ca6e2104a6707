"""
Configuration Management for Personal Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see where the ledger keeps its data and
ensures all configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["sqlite", "memory"] = Field(
        default="sqlite",
        description="Which storage backend holds the ledger collections"
    )
    database_path: str = Field(
        default="data/ledger.db",
        description="Path to the SQLite database file"
    )
    settings_path: str = Field(
        default="data/settings.json",
        description="Path to the JSON file holding user settings"
    )
    echo: bool = Field(
        default=False,
        description="Echo SQL statements (debugging only)"
    )

    @field_validator('database_path', 'settings_path')
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Paths must not be blank."""
        if not v.strip():
            raise ValueError("Storage path cannot be blank")
        return v

    @property
    def database_url(self) -> str:
        """SQLAlchemy connection URL for the configured database file."""
        if self.database_path == ":memory:":
            return "sqlite://"
        return f"sqlite:///{Path(self.database_path)}"


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Input limits
    max_goal_name_length: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Maximum length of a savings goal name"
    )
    max_name_length: int = Field(
        default=50,
        ge=1,
        le=200,
        description="Maximum length of account and category names"
    )
    max_note_length: int = Field(
        default=500,
        ge=0,
        le=5000,
        description="Maximum length of a transaction note"
    )

    # Savings projection
    projection_window_months: int = Field(
        default=3,
        ge=1,
        le=24,
        description="Trailing window (in months) used for the savings velocity"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
