"""Candle aggregator — reduces samples sharing a bucket into one OHLCV candle.

Two entry points share one reducer:
1. build_candles(): raw price prints → candles for a timeframe
2. reaggregate_candles(): finer candles → coarser candles (e.g. 5m → 30m)

The reducer always sorts its input by time itself; callers do not need
to pre-sort.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from timemachine.common.logging import get_logger
from timemachine.common.metrics import RECORDS_DROPPED_TOTAL
from timemachine.common.schemas import AggregatedCandle, CandleRecord, PriceSample
from timemachine.timeline.exceptions import EmptyBucketError
from timemachine.timeline.timeframes import bucket_of, timeframe_seconds

logger = get_logger("TIMELINE")


def _is_finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def is_valid_candle(candle: CandleRecord) -> bool:
    """True when every OHLCV field is finite and volume is non-negative."""
    return (
        _is_finite(candle.open, candle.high, candle.low, candle.close, candle.volume)
        and candle.volume >= 0
    )


def reduce_candles(candles: Sequence[CandleRecord]) -> AggregatedCandle:
    """Reduce candles in one bucket into a single AggregatedCandle.

    Open comes from the chronologically first candle, close from the last,
    high/low are the extremes and volume is the sum.

    Raises:
        EmptyBucketError: If ``candles`` is empty.
    """
    if not candles:
        raise EmptyBucketError("Cannot aggregate an empty bucket")

    ordered = sorted(candles, key=lambda c: c.time)
    return AggregatedCandle(
        open=ordered[0].open,
        high=max(c.high for c in ordered),
        low=min(c.low for c in ordered),
        close=ordered[-1].close,
        volume=sum(c.volume for c in ordered),
    )


def aggregate_samples(samples: Sequence[PriceSample]) -> AggregatedCandle:
    """Reduce raw price samples from one bucket into an AggregatedCandle.

    A single sample yields open == high == low == close == its price.

    Raises:
        EmptyBucketError: If ``samples`` is empty.
    """
    if not samples:
        raise EmptyBucketError("Cannot aggregate an empty bucket")

    # A raw print is a degenerate candle
    return reduce_candles(
        [
            CandleRecord(
                time=s.time, open=s.price, high=s.price, low=s.price, close=s.price, volume=s.size
            )
            for s in samples
        ]
    )


def build_candles(samples: Iterable[PriceSample], timeframe: str) -> list[CandleRecord]:
    """Group raw price samples by bucket and aggregate each bucket.

    Samples with non-finite price or size are dropped.

    Returns:
        Candles sorted ascending by bucket time.
    """
    buckets: dict[int, list[PriceSample]] = {}
    dropped = 0
    for sample in samples:
        if not _is_finite(sample.time, sample.price, sample.size) or sample.size < 0:
            dropped += 1
            continue
        buckets.setdefault(bucket_of(sample.time, timeframe), []).append(sample)

    if dropped:
        RECORDS_DROPPED_TOTAL.labels(source="samples").inc(dropped)
        logger.debug("Dropped malformed price samples", extra={"data": {"count": dropped}})

    return [
        _as_record(bucket, aggregate_samples(bucket_samples))
        for bucket, bucket_samples in sorted(buckets.items())
    ]


def reaggregate_candles(
    candles: Sequence[CandleRecord],
    source_timeframe: str,
    target_timeframe: str,
) -> list[CandleRecord]:
    """Derive coarser candles from finer ones.

    The target width must be a whole multiple (> 1) of the source width;
    otherwise the source candles are returned unchanged.

    Args:
        candles: Source candles, any order.
        source_timeframe: Timeframe the candles were built for.
        target_timeframe: Timeframe to roll them up into.

    Returns:
        Candles sorted ascending by bucket time.
    """
    source_width = timeframe_seconds(source_timeframe)
    target_width = timeframe_seconds(target_timeframe)

    if target_width % source_width != 0 or target_width // source_width <= 1:
        logger.debug(
            "Skipping re-aggregation",
            extra={"data": {"source": source_timeframe, "target": target_timeframe}},
        )
        return list(candles)

    buckets: dict[int, list[CandleRecord]] = {}
    for candle in candles:
        if not is_valid_candle(candle):
            RECORDS_DROPPED_TOTAL.labels(source="candles").inc()
            continue
        buckets.setdefault(bucket_of(candle.time, target_timeframe), []).append(candle)

    return [
        _as_record(bucket, reduce_candles(bucket_candles))
        for bucket, bucket_candles in sorted(buckets.items())
    ]


def _as_record(bucket: int, candle: AggregatedCandle) -> CandleRecord:
    return CandleRecord(
        time=bucket,
        open=candle.open,
        high=candle.high,
        low=candle.low,
        close=candle.close,
        volume=candle.volume,
    )
