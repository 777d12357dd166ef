"""Timeline merger — folds every source onto one bucketed timeline.

Each source is bucketed with bucket_of() and folded into a single
bucket → point mapping:

- candles set the point's candle (chronologically last candle wins)
- trades and position markers are appended, never overwritten
- wallet samples set equity/wallet_balance (chronologically last wins)
- projected candles fill candle slots no historical candle occupies

Once everything is folded in, points are sorted, net exposure is carried
forward as a running sum over trades, and points strictly later than the
newest historical event are flagged ``is_future``.

Usage:
    from timemachine.timeline.merger import merge_timeline

    points = merge_timeline(candles, trades, wallet, positions, "1h")
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from timemachine.common.logging import get_logger
from timemachine.common.metrics import RECORDS_DROPPED_TOTAL
from timemachine.common.schemas import (
    AggregatedCandle,
    CandleRecord,
    MarkerEvent,
    PositionRecord,
    TimelinePoint,
    TradeRecord,
    WalletSample,
)
from timemachine.timeline.aggregator import is_valid_candle
from timemachine.timeline.timeframes import bucket_of, validate_timeframe

logger = get_logger("TIMELINE")

_MARKER_ORDER = {"opened": 0, "closed": 1}


@dataclass
class _PointBuilder:
    """Mutable in-progress point; frozen into a TimelinePoint at the end."""

    time: int
    candle: AggregatedCandle | None = None
    projected: AggregatedCandle | None = None
    trades: list[TradeRecord] = field(default_factory=list)
    markers: list[MarkerEvent] = field(default_factory=list)
    equity: float | None = None
    wallet_balance: float | None = None


class _Fold:
    """Bucket → builder mapping plus the newest historical timestamp."""

    def __init__(self, timeframe: str) -> None:
        self.timeframe = timeframe
        self.points: dict[int, _PointBuilder] = {}
        self.last_historical_time: int | None = None
        self.dropped: dict[str, int] = {}

    def at(self, timestamp: int) -> _PointBuilder:
        bucket = bucket_of(timestamp, self.timeframe)
        builder = self.points.get(bucket)
        if builder is None:
            builder = _PointBuilder(time=bucket)
            self.points[bucket] = builder
        return builder

    def observe(self, timestamp: int) -> None:
        if self.last_historical_time is None or timestamp > self.last_historical_time:
            self.last_historical_time = timestamp

    def drop(self, source: str) -> None:
        self.dropped[source] = self.dropped.get(source, 0) + 1


def _to_candle(record: CandleRecord) -> AggregatedCandle:
    return AggregatedCandle(
        open=record.open,
        high=record.high,
        low=record.low,
        close=record.close,
        volume=record.volume,
    )


def _fold_candles(fold: _Fold, candles: Iterable[CandleRecord], *, projected: bool) -> None:
    source = "projected" if projected else "candles"
    for record in sorted(candles, key=lambda c: c.time):
        if not is_valid_candle(record):
            fold.drop(source)
            continue
        builder = fold.at(record.time)
        if projected:
            builder.projected = _to_candle(record)
        else:
            builder.candle = _to_candle(record)
            fold.observe(record.time)


def _fold_trades(fold: _Fold, trades: Iterable[TradeRecord]) -> None:
    for trade in sorted(trades, key=lambda t: (t.time, t.id)):
        if not (math.isfinite(trade.price) and math.isfinite(trade.quantity)):
            fold.drop("trades")
            continue
        fold.at(trade.time).trades.append(trade)
        fold.observe(trade.time)


def _fold_wallet(fold: _Fold, samples: Iterable[WalletSample]) -> None:
    for sample in sorted(samples, key=lambda s: s.time):
        if not math.isfinite(sample.balance):
            fold.drop("wallet")
            continue
        builder = fold.at(sample.time)
        builder.equity = sample.balance
        builder.wallet_balance = sample.balance
        fold.observe(sample.time)


def _fold_positions(fold: _Fold, positions: Iterable[PositionRecord]) -> None:
    for position in sorted(positions, key=lambda p: (p.open_time, p.id)):
        fold.at(position.open_time).markers.append(
            MarkerEvent(
                position_id=position.id,
                side=position.side,
                kind="opened",
                time=position.open_time,
                size=position.max_size,
            )
        )
        fold.observe(position.open_time)

        if position.close_time is not None:
            fold.at(position.close_time).markers.append(
                MarkerEvent(
                    position_id=position.id,
                    side=position.side,
                    kind="closed",
                    time=position.close_time,
                    size=position.max_size,
                )
            )
            fold.observe(position.close_time)


def merge_timeline(
    candles: Iterable[CandleRecord],
    trades: Iterable[TradeRecord],
    wallet: Iterable[WalletSample],
    positions: Iterable[PositionRecord],
    timeframe: str,
    *,
    projected_candles: Iterable[CandleRecord] = (),
) -> list[TimelinePoint]:
    """Merge all sources into one time-ordered list of TimelinePoint.

    Args:
        candles: Historical candles (already at ``timeframe`` granularity).
        trades: Executed trades.
        wallet: Wallet/equity balance samples.
        positions: Position lifecycles; open ones only yield an "opened" marker.
        timeframe: Bucket width for the merged timeline.
        projected_candles: Forecast candles. They never move the
            historical horizon, so buckets holding only projections are
            flagged ``is_future``.

    Returns:
        Points sorted ascending by bucket time, one per bucket.

    Raises:
        UnknownTimeframeError: If the timeframe is not supported.
    """
    fold = _Fold(validate_timeframe(timeframe))

    _fold_candles(fold, candles, projected=False)
    _fold_candles(fold, projected_candles, projected=True)
    _fold_trades(fold, trades)
    _fold_wallet(fold, wallet)
    _fold_positions(fold, positions)

    for source, count in fold.dropped.items():
        RECORDS_DROPPED_TOTAL.labels(source=source).inc(count)
    if fold.dropped:
        logger.debug("Dropped malformed records during merge", extra={"data": fold.dropped})

    horizon = fold.last_historical_time
    net_exposure = 0.0
    points: list[TimelinePoint] = []

    for bucket in sorted(fold.points):
        builder = fold.points[bucket]
        for trade in builder.trades:
            net_exposure += trade.quantity if trade.side == "buy" else -trade.quantity
        builder.markers.sort(key=lambda m: (m.time, _MARKER_ORDER[m.kind], m.position_id))

        points.append(
            TimelinePoint(
                time=bucket,
                candle=builder.candle if builder.candle is not None else builder.projected,
                trades=builder.trades,
                equity=builder.equity,
                wallet_balance=builder.wallet_balance,
                net_exposure=net_exposure,
                markers=builder.markers,
                is_future=horizon is None or bucket > horizon,
            )
        )

    return points

