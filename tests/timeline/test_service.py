"""Tests for TimelineService — loading, partial failure, caching and queries."""

from __future__ import annotations

import pytest

from tests.factories import make_candle
from tests.timeline.conftest import HOUR_0, FakeSource
from timemachine.common.exceptions import UnknownTimeframeError
from timemachine.common.schemas import TimelineQuery
from timemachine.timeline.cache import TimelineCache
from timemachine.timeline.exceptions import TimelineNotFoundError
from timemachine.timeline.loader import CsvTimelineSource
from timemachine.timeline.service import TimelineService


@pytest.fixture
def service(fake_source, test_settings) -> TimelineService:
    return TimelineService(fake_source, cache=TimelineCache(), settings=test_settings)


class TestBuildTimeline:
    def test_merges_all_sources(self, service):
        timeline = service.build_timeline("BTCUSD", "1h")
        assert [p.time for p in timeline.points] == [HOUR_0, HOUR_0 + 3_600, HOUR_0 + 7_200]
        assert timeline.warnings == []
        assert timeline.range.start == HOUR_0
        assert timeline.range.end == HOUR_0 + 7_200
        first = timeline.points[0]
        assert first.equity == 1_000.0
        assert first.net_exposure == 2.0
        assert [m.kind for m in first.markers] == ["opened"]

    def test_reaggregates_coarser_timeframe(self, service, fake_source):
        """4h is derived from the stored 1h series."""
        timeline = service.build_timeline("BTCUSD", "4h")
        assert len(timeline.points) == 1
        candle = timeline.points[0].candle
        assert candle.open == 100
        assert candle.close == 103
        assert fake_source.calls["candles"] == 1

    def test_missing_source_becomes_warning(self, service, fake_source):
        fake_source.missing = {"wallet"}
        timeline = service.build_timeline("BTCUSD", "1h")
        assert len(timeline.points) == 3
        assert timeline.warnings == ["wallet file not found"]
        assert all(p.equity is None for p in timeline.points)

    def test_every_source_missing_is_empty(self, service, fake_source):
        fake_source.missing = {"candles", "trades", "wallet", "positions"}
        timeline = service.build_timeline("BTCUSD", "1h")
        assert timeline.points == []
        assert len(timeline.warnings) == 4
        assert timeline.range is None

    def test_loads_are_cached(self, service, fake_source):
        service.build_timeline("BTCUSD", "1h")
        service.build_timeline("BTCUSD", "1h")
        assert fake_source.calls == {"candles": 1, "trades": 1, "wallet": 1, "positions": 1}

    def test_empty_loads_not_cached(self, test_settings):
        source = FakeSource()
        service = TimelineService(source, settings=test_settings)
        service.build_timeline("BTCUSD", "1h")
        service.build_timeline("BTCUSD", "1h")
        assert source.calls["candles"] == 2

    def test_projected_candles_are_future(self, service):
        timeline = service.build_timeline(
            "BTCUSD", "1h", projected_candles=[make_candle(HOUR_0 + 10_800)]
        )
        assert timeline.points[-1].time == HOUR_0 + 10_800
        assert timeline.points[-1].is_future
        assert not timeline.points[-2].is_future

    def test_unknown_timeframe(self, service):
        with pytest.raises(UnknownTimeframeError):
            service.build_timeline("BTCUSD", "2h")


class TestQuery:
    def test_newest_page(self, service):
        page = service.query(TimelineQuery(symbol="BTCUSD", timeframe="1h", limit=2))
        assert [p.time for p in page.points] == [HOUR_0 + 3_600, HOUR_0 + 7_200]
        assert page.total == 3
        assert page.has_more
        assert page.range.start == HOUR_0 + 3_600
        assert page.range.end == HOUR_0 + 7_200
        assert not page.window_applied

    def test_second_page(self, service):
        page = service.query(TimelineQuery(timeframe="1h", page=2, limit=2))
        assert [p.time for p in page.points] == [HOUR_0]
        assert not page.has_more

    def test_page_past_end_has_no_range(self, service):
        page = service.query(TimelineQuery(timeframe="1h", page=5, limit=2))
        assert page.points == []
        assert page.range is None

    def test_explicit_range(self, service):
        page = service.query(
            TimelineQuery(timeframe="1h", start_time=HOUR_0 + 1, end_time=HOUR_0 + 3_600)
        )
        assert [p.time for p in page.points] == [HOUR_0 + 3_600]
        assert page.total == 1

    def test_trailing_window(self, service):
        page = service.query(TimelineQuery(timeframe="1h", window_days=1 / 24))
        assert page.window_applied
        assert [p.time for p in page.points] == [HOUR_0 + 3_600, HOUR_0 + 7_200]

    def test_warnings_carried_to_page(self, service, fake_source):
        fake_source.missing = {"positions"}
        page = service.query(TimelineQuery(timeframe="1h"))
        assert page.warnings == ["positions file not found"]

    def test_not_found(self, service, fake_source):
        fake_source.missing = {"candles", "trades", "wallet", "positions"}
        with pytest.raises(TimelineNotFoundError) as exc_info:
            service.query(TimelineQuery(timeframe="1h"))
        assert len(exc_info.value.context["warnings"]) == 4


class TestCsvBackedService:
    def test_end_to_end(self, data_dir, test_settings):
        service = TimelineService(CsvTimelineSource(data_dir), settings=test_settings)
        page = service.query(TimelineQuery(symbol="BTCUSD", timeframe="1h"))
        assert page.total == 3
        assert page.warnings == []
        assert page.points[0].trades[0].id == "t1"
        assert page.points[1].trades[0].id == "t2"
        assert page.points[-1].equity == 1_012.5
