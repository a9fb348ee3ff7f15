"""Application settings and configuration."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_default_data_dir() -> Path:
    """Return the default portfolio directory."""
    return Path.home() / ".config" / "stockfolio" / "portfolios"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_name: str = "Stockfolio"
    app_version: str = "0.1.0"

    # Demo mode swaps the portfolio files for a built-in sample portfolio
    # and the live provider for the deterministic stub. Read once at startup.
    demo: bool = False
    # Fetch quotes for every portfolio in the background when the API starts
    refresh_on_startup: bool = True

    # Directory holding one <name>.conf file per portfolio
    data_dir: Optional[Path] = None

    log_level: str = "INFO"
    # Optional log file, written in addition to stdout
    log_file: Optional[Path] = None

    # Cache lifetimes
    quote_cache_ttl_seconds: int = Field(default=60, gt=0)
    history_cache_ttl_seconds: int = Field(default=6 * 60 * 60, gt=0)
    # How long past its TTL a quote may still be shown (flagged stale)
    stale_grace_seconds: int = Field(default=15 * 60, ge=0)
    # Interval of the periodic refresh while live mode is on
    live_refresh_seconds: float = Field(default=5.0, gt=0)

    # Provider calls
    fetch_timeout_seconds: float = Field(default=5.0, gt=0)
    history_fetch_timeout_seconds: float = Field(default=10.0, gt=0)
    max_fetch_workers: int = Field(default=4, ge=1)
    quote_batch_size: int = Field(default=50, ge=1)
    history_days: int = Field(default=30, ge=1)

    # Currency of cross-market totals
    reference_currency: Literal["USD", "TWD"] = "USD"

    def get_data_dir(self) -> Path:
        """Get the portfolio directory, creating it if needed."""
        data_dir = self.data_dir or get_default_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir


# Global settings instance (can be replaced at runtime)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the current settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings to force reload."""
    global _settings
    _settings = None
