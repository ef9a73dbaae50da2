"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Instrument
    symbol: str = "EUR/USD"
    timeframes: list[str] = ["5m", "15m", "30m", "45m", "1h"]

    # Engine tuning (indicators, scoring, payouts) lives in YAML
    engine_config_path: Path | None = None

    # Runtime
    resolution_interval_s: float = 1.0
    oracle_timeout_s: float = 0.25
    max_history: int = 3500  # 1m bars kept in memory
    tick_queue_size: int = 10000  # Full queue blocks producers, never drops

    # News simulation
    news_min_interval_s: float = 180.0
    news_max_interval_s: float = 300.0
    random_seed: int | None = None

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
