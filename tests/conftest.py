"""Root test configuration — shared fixtures for all test modules.

IMPORTANT: Environment variables are set BEFORE any timemachine imports
so that config.py loads Settings without a .env file.
"""

from __future__ import annotations

import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATA_DIR", "/nonexistent-timemachine-data")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")  # Test DB 15

# Now safe to import timemachine modules
import pytest

from timemachine.common.config import Settings, get_settings
from timemachine.playback.scheduler import ManualScheduler

# ─── Clear cached settings so test env vars are used ───
get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Settings as loaded from the test environment."""
    return get_settings()


@pytest.fixture
def clock() -> ManualScheduler:
    """Deterministic scheduler starting at t=0."""
    return ManualScheduler()
