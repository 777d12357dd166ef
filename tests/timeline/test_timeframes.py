"""Tests for timeframe validation and the bucketizer."""

from __future__ import annotations

import pytest

from timemachine.common.exceptions import UnknownTimeframeError
from timemachine.timeline.timeframes import (
    DEFAULT_WINDOW_DAYS,
    SOURCE_TIMEFRAME,
    TIMEFRAME_SECONDS,
    bucket_of,
    timeframe_seconds,
    validate_timeframe,
)


class TestValidateTimeframe:
    @pytest.mark.parametrize("tf", ["1m", "5m", "15m", "30m", "1h", "4h", "1d", "1w"])
    def test_supported(self, tf):
        assert validate_timeframe(tf) == tf

    @pytest.mark.parametrize("tf", ["", "2h", "1H", "60", "1M"])
    def test_unknown_raises(self, tf):
        with pytest.raises(UnknownTimeframeError) as exc_info:
            validate_timeframe(tf)
        assert exc_info.value.context["timeframe"] == tf

    def test_widths(self):
        assert timeframe_seconds("1m") == 60
        assert timeframe_seconds("4h") == 14_400
        assert timeframe_seconds("1w") == 604_800


class TestSourceTimeframes:
    def test_every_timeframe_has_a_source(self):
        assert set(SOURCE_TIMEFRAME) == set(TIMEFRAME_SECONDS)

    def test_targets_are_whole_multiples_of_sources(self):
        """Derived timeframes divide evenly into their stored series."""
        for target, source in SOURCE_TIMEFRAME.items():
            assert TIMEFRAME_SECONDS[target] % TIMEFRAME_SECONDS[source] == 0

    def test_default_windows_for_fine_timeframes(self):
        assert DEFAULT_WINDOW_DAYS == {"1m": 30, "5m": 60}


class TestBucketOf:
    def test_start_of_interval(self):
        assert bucket_of(1_700_000_123, "1h") == 1_699_999_200

    def test_boundary_belongs_to_its_own_bucket(self):
        assert bucket_of(3_600, "1h") == 3_600
        assert bucket_of(3_599, "1h") == 0

    def test_idempotent(self):
        """bucket_of(bucket_of(t)) == bucket_of(t)."""
        for t in (0, 59, 60, 61, 1_700_000_123, 1_700_003_599):
            once = bucket_of(t, "5m")
            assert bucket_of(once, "5m") == once

    def test_bucket_contains_timestamp(self):
        """b <= t < b + width for every timeframe."""
        t = 1_700_123_457
        for tf, width in TIMEFRAME_SECONDS.items():
            b = bucket_of(t, tf)
            assert b <= t < b + width
            assert b % width == 0

    def test_negative_timestamps_floor(self):
        """Pre-epoch times floor toward negative infinity."""
        assert bucket_of(-1, "1m") == -60

    def test_fractional_seconds(self):
        assert bucket_of(119.9, "1m") == 60

    def test_unknown_timeframe(self):
        with pytest.raises(UnknownTimeframeError):
            bucket_of(0, "3h")
