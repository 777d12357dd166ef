"""Timeline-specific exceptions."""

from __future__ import annotations

from timemachine.common.exceptions import TimeMachineError


class EmptyBucketError(TimeMachineError):
    """Aggregation was asked to reduce a bucket with no samples."""


class TimelineNotFoundError(TimeMachineError):
    """No source produced usable data for the requested symbol/timeframe."""
