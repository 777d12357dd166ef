"""Application configuration via environment variables.

Uses pydantic-settings to load from .env file and environment variables.
Import `get_settings()` rather than instantiating Settings directly.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ─── App ───
    environment: str = "development"
    log_level: str = "INFO"

    # ─── Data Sources ───
    data_dir: Path = Path("data")
    default_symbol: str = "BTCUSD"
    default_timeframe: str = "1h"
    timeline_cache_ttl_seconds: float = 300.0  # 5 minutes

    # ─── Pagination ───
    default_page_limit: int = 500

    # ─── Playback ───
    playback_strategy: str = "timestamp_gap"  # or "fixed_tick"
    frame_interval_seconds: float = 1 / 60
    fixed_tick_step: int = 1

    # ─── Preferences ───
    redis_url: str = "redis://localhost:6379/0"
    preference_key_prefix: str = "timemachine:pref:"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton.

    In tests, call `get_settings.cache_clear()` to reset.
    """
    return Settings()
