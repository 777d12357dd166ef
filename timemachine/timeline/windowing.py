"""Windowing and pagination over a chronologically sorted point list.

Two mutually exclusive range modes narrow the timeline first:
1. explicit range — keep points with start <= time <= end
2. trailing window — keep the last N days, N defaulting per timeframe

Pagination then slices newest-first: page 1 is the most recent ``limit``
points, page 2 the ``limit`` points before those, and so on.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from timemachine.timeline.timeframes import DEFAULT_WINDOW_DAYS, SECONDS_PER_DAY

MAX_PAGE_LIMIT = 5_000


class _Timed(Protocol):
    time: int


T = TypeVar("T", bound=_Timed)


@dataclass(frozen=True)
class WindowResult(Generic[T]):
    points: list[T]
    window_applied: bool


@dataclass(frozen=True)
class PageSlice(Generic[T]):
    points: list[T]
    page: int
    limit: int
    total: int
    has_more: bool


def filter_range(points: Sequence[T], start: int | None = None, end: int | None = None) -> list[T]:
    """Keep points whose time lies in [start, end]; a missing bound is open."""
    return [
        p
        for p in points
        if (start is None or p.time >= start) and (end is None or p.time <= end)
    ]


def apply_trailing_window(
    points: Sequence[T],
    timeframe: str,
    window_days: float | None = None,
) -> WindowResult[T]:
    """Keep points within ``window_days`` of the newest point.

    Falls back to DEFAULT_WINDOW_DAYS for the timeframe. Nothing is
    filtered when the list is empty or no window applies.
    """
    days = window_days if window_days is not None else DEFAULT_WINDOW_DAYS.get(timeframe)
    if not days or not points:
        return WindowResult(points=list(points), window_applied=False)

    window_start = points[-1].time - days * SECONDS_PER_DAY
    return WindowResult(
        points=[p for p in points if p.time >= window_start],
        window_applied=True,
    )


def apply_window(
    points: Sequence[T],
    timeframe: str,
    start: int | None = None,
    end: int | None = None,
    window_days: float | None = None,
) -> WindowResult[T]:
    """Apply either the explicit range or the trailing window.

    An explicit bound takes precedence; ``window_days`` is then ignored and
    ``window_applied`` is False.
    """
    if start is not None or end is not None:
        return WindowResult(points=filter_range(points, start, end), window_applied=False)
    return apply_trailing_window(points, timeframe, window_days)


def paginate(points: Sequence[T], page: int = 1, limit: int = 500) -> PageSlice[T]:
    """Slice one newest-first page out of a chronologically sorted list.

    ``page`` is floored at 1 and ``limit`` clamped to [1, MAX_PAGE_LIMIT].
    The returned slice stays in chronological order.
    """
    total = len(points)
    safe_page = max(page, 1)
    safe_limit = max(1, min(limit, MAX_PAGE_LIMIT))

    end_index = max(0, total - (safe_page - 1) * safe_limit)
    start_index = max(0, end_index - safe_limit)

    return PageSlice(
        points=list(points[start_index:end_index]),
        page=safe_page,
        limit=safe_limit,
        total=total,
        has_more=start_index > 0,
    )
