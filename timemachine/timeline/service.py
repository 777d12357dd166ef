"""Timeline query service — load, merge, window and paginate.

Each source is loaded independently. A source that is missing or
unreadable becomes a warning on the timeline instead of failing the
whole build; only a timeline with no points at all is reported as
not found.

Usage:
    from timemachine.timeline.service import TimelineService

    service = TimelineService(CsvTimelineSource(settings.data_dir))
    page = service.query(TimelineQuery(symbol="BTCUSD", timeframe="4h"))
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import TypeVar

from timemachine.common.config import Settings, get_settings
from timemachine.common.exceptions import SourceUnavailableError
from timemachine.common.logging import get_logger
from timemachine.common.metrics import (
    SOURCE_FAILURES_TOTAL,
    TIMELINE_BUILD_DURATION_SECONDS,
    TIMELINE_BUILDS_TOTAL,
)
from timemachine.common.schemas import (
    CandleRecord,
    Timeline,
    TimelinePage,
    TimelineQuery,
    TimeRange,
)
from timemachine.timeline.aggregator import reaggregate_candles
from timemachine.timeline.cache import TimelineCache
from timemachine.timeline.exceptions import TimelineNotFoundError
from timemachine.timeline.loader import TimelineSource, to_internal_symbol
from timemachine.timeline.merger import merge_timeline
from timemachine.timeline.timeframes import SOURCE_TIMEFRAME, validate_timeframe
from timemachine.timeline.windowing import apply_window, paginate

logger = get_logger("TIMELINE")

R = TypeVar("R")


def _range_of(points: list) -> TimeRange | None:
    if not points:
        return None
    return TimeRange(start=points[0].time, end=points[-1].time)


class TimelineService:
    """Builds timelines from a TimelineSource, caching loaded series.

    Args:
        source: Supplier of the raw candle/trade/wallet/position series.
        cache: Cache for loaded series. A private one is created if omitted.
        settings: Application settings (cache TTL, defaults).
    """

    def __init__(
        self,
        source: TimelineSource,
        cache: TimelineCache | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.source = source
        self.cache = cache if cache is not None else TimelineCache()
        self.settings = settings or get_settings()

    def build_timeline(
        self,
        symbol: str,
        timeframe: str,
        projected_candles: Iterable[CandleRecord] = (),
    ) -> Timeline:
        """Load every source and merge them into a Timeline.

        Raises:
            UnknownTimeframeError: If the timeframe is not supported.
        """
        tf = validate_timeframe(timeframe)
        source_tf = SOURCE_TIMEFRAME[tf]
        internal = to_internal_symbol(symbol)
        warnings: list[str] = []
        start = time.perf_counter()

        candles = self._load(
            "candles",
            f"candles:{internal}:{source_tf}",
            lambda: self.source.load_candles(symbol, source_tf),
            warnings,
        )
        if candles and source_tf != tf:
            candles = reaggregate_candles(candles, source_tf, tf)

        trades = self._load(
            "trades", f"trades:{internal}", lambda: self.source.load_trades(symbol), warnings
        )
        wallet = self._load("wallet", "wallet", self.source.load_wallet, warnings)
        positions = self._load(
            "positions",
            f"positions:{internal}",
            lambda: self.source.load_positions(symbol),
            warnings,
        )

        points = merge_timeline(
            candles, trades, wallet, positions, tf, projected_candles=projected_candles
        )
        TIMELINE_BUILD_DURATION_SECONDS.observe(time.perf_counter() - start)

        if not points:
            outcome = "empty"
        elif warnings:
            outcome = "partial"
        else:
            outcome = "ok"
        TIMELINE_BUILDS_TOTAL.labels(timeframe=tf, outcome=outcome).inc()

        logger.info(
            "Timeline built",
            extra={
                "data": {
                    "symbol": symbol,
                    "timeframe": tf,
                    "source_timeframe": source_tf,
                    "points": len(points),
                    "warnings": len(warnings),
                }
            },
        )

        return Timeline(
            symbol=symbol,
            timeframe=tf,
            points=points,
            warnings=warnings,
            range=_range_of(points),
        )

    def query(self, query: TimelineQuery) -> TimelinePage:
        """Build, window and paginate a timeline for one request.

        Raises:
            UnknownTimeframeError: If the timeframe is not supported.
            TimelineNotFoundError: If no source produced any data.
        """
        timeline = self.build_timeline(query.symbol, query.timeframe)
        if not timeline.points:
            raise TimelineNotFoundError(
                f"No timeline data found for {query.symbol} {query.timeframe}",
                context={
                    "symbol": query.symbol,
                    "timeframe": query.timeframe,
                    "warnings": timeline.warnings,
                },
            )

        window = apply_window(
            timeline.points,
            timeline.timeframe,
            start=query.start_time,
            end=query.end_time,
            window_days=query.window_days,
        )
        page = paginate(window.points, query.page, query.limit)

        return TimelinePage(
            symbol=timeline.symbol,
            timeframe=timeline.timeframe,
            points=page.points,
            page=page.page,
            limit=page.limit,
            total=page.total,
            has_more=page.has_more,
            window_applied=window.window_applied,
            range=_range_of(page.points),
            warnings=timeline.warnings,
        )

    def _load(
        self,
        name: str,
        key: str,
        loader: Callable[[], list[R]],
        warnings: list[str],
    ) -> list[R]:
        """Load one source through the cache; unavailability becomes a warning."""
        try:
            records = self.cache.get_or_load(
                key,
                self.settings.timeline_cache_ttl_seconds,
                lambda: loader() or None,
            )
        except SourceUnavailableError as exc:
            SOURCE_FAILURES_TOTAL.labels(source=name).inc()
            logger.warning(f"Source omitted from merge: {name}", extra={"data": exc.context})
            warnings.append(exc.args[0])
            return []
        return records or []
