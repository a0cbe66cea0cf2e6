"""Feed configuration."""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseSettings):
    """Feed settings loaded from environment variables (SIGNAL_ prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="SIGNAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Instrument and bar construction
    symbol: str = "R_50"
    candle_interval_seconds: int = 120
    max_candles: int = 200

    # Engine rule set
    preset: str = "canonical"
    presets_file: str = ""  # Optional YAML with preset selection and overrides

    # Display history
    signal_history_size: int = 30

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logging from settings."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
