"""API test fixtures — httpx.AsyncClient with the timeline service overridden.

The service is backed by the in-memory FakeSource so endpoint tests never
touch the filesystem.
"""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from tests.factories import make_candle, make_trade, make_wallet
from tests.timeline.conftest import HOUR_0, FakeSource
from timemachine.api.deps import get_timeline_service
from timemachine.main import app
from timemachine.timeline.cache import TimelineCache
from timemachine.timeline.service import TimelineService


@pytest.fixture
def api_source() -> FakeSource:
    """Five hourly candles with a trade and a wallet sample."""
    return FakeSource(
        candles={"1h": [make_candle(HOUR_0 + i * 3_600, close=100 + i) for i in range(5)]},
        trades=[make_trade(HOUR_0 + 60, quantity=1.5)],
        wallet=[make_wallet(HOUR_0, 500.0)],
    )


@pytest.fixture
async def client(api_source, test_settings) -> AsyncClient:
    """Async client with get_timeline_service overridden."""
    service = TimelineService(api_source, cache=TimelineCache(), settings=test_settings)
    app.dependency_overrides[get_timeline_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
