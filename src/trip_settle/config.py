"""Configuration management for TripSettle."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .currencies import CurrencyCode
from .exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Exchange rate source
    exchange_rate_api_url: str = "https://api.exchangerate-api.com/v4/latest"
    rate_base_currency: CurrencyCode = "USD"
    rate_cache_ttl_seconds: int = 3600  # Snapshot validity window
    rate_fetch_timeout: float = 10.0  # Seconds before falling back to static rates

    # Settlement settings
    display_currency: CurrencyCode = "JPY"
    strict_group_state: bool = False  # Raise on dangling member references

    # Database path
    database_path: Path = Path.home() / ".trip_settle" / "trip_settle.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the TripSettle variables in your "
            f".env file. See .env.example for reference.\n"
            f"Error: {e}"
        ) from e
