"""Playback test fixtures — points at uneven gaps and a ready engine."""

from __future__ import annotations

import pytest

from tests.factories import make_points
from timemachine.playback.engine import PlaybackEngine


@pytest.fixture
def points():
    """Three points with gaps of 10 and 20 time units."""
    return make_points(0, 10, 30)


@pytest.fixture
def engine(points, clock) -> PlaybackEngine:
    engine = PlaybackEngine(points, scheduler=clock)
    yield engine
    engine.close()
