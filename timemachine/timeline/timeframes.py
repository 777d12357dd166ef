"""Supported timeframes and the bucketizer.

A bucket is identified by the start of its fixed-width interval:
``floor(timestamp / width) * width``. Every sample that lands in the
same bucket is treated as simultaneous.

Usage:
    from timemachine.timeline.timeframes import bucket_of

    bucket_of(1_700_000_123, "1h")  # -> 1_699_999_200
"""

from __future__ import annotations

from typing import cast

from timemachine.common.exceptions import UnknownTimeframeError
from timemachine.common.schemas import Timeframe

SECONDS_PER_DAY = 86_400

TIMEFRAME_SECONDS: dict[str, int] = {
    "1m": 60,
    "5m": 300,
    "15m": 900,
    "30m": 1_800,
    "1h": 3_600,
    "4h": 14_400,
    "1d": 86_400,
    "1w": 604_800,
}

# Stored candle series each requested timeframe is derived from
SOURCE_TIMEFRAME: dict[str, str] = {
    "1m": "1m",
    "5m": "5m",
    "15m": "5m",
    "30m": "5m",
    "1h": "1h",
    "4h": "1h",
    "1d": "1d",
    "1w": "1d",
}

# Trailing window applied when the caller does not pass one
DEFAULT_WINDOW_DAYS: dict[str, float] = {
    "1m": 30,
    "5m": 60,
}


def validate_timeframe(value: str) -> Timeframe:
    """Check a timeframe string against the supported set.

    Raises:
        UnknownTimeframeError: If the value is not a supported timeframe.
    """
    if value not in TIMEFRAME_SECONDS:
        raise UnknownTimeframeError(
            f"Unknown timeframe: {value!r}",
            context={"timeframe": value, "supported": list(TIMEFRAME_SECONDS)},
        )
    return cast(Timeframe, value)


def timeframe_seconds(timeframe: str) -> int:
    """Return the bucket width in seconds for a timeframe."""
    return TIMEFRAME_SECONDS[validate_timeframe(timeframe)]


def bucket_of(timestamp: float, timeframe: str) -> int:
    """Map a timestamp (seconds) onto the start of its enclosing bucket.

    Args:
        timestamp: Epoch seconds. Must be finite.
        timeframe: One of the supported timeframe strings.

    Returns:
        The bucket start as integer epoch seconds.

    Raises:
        UnknownTimeframeError: If the timeframe is not supported.
    """
    width = timeframe_seconds(timeframe)
    return int(timestamp // width) * width
