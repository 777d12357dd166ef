"""Clock capabilities used by the playback engine.

A Scheduler hands out one-shot callbacks: ``request_frame`` for the next
redraw-rate frame, ``call_later`` for a fixed delay. Each callback
receives the scheduler's current time in seconds. The engine keeps at
most one pending request and must cancel it when playback stops.

Two implementations:
1. AsyncioScheduler — backed by the running asyncio event loop
2. ManualScheduler — time only moves when advance() is called
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from fractions import Fraction
from typing import Any, Protocol

ClockCallback = Callable[[float | Fraction], None]

# Float durations are snapped to this denominator, so 0.1 or 1/3 add up exactly
MAX_DENOMINATOR = 1_000_000


def to_fraction(value: float | Fraction) -> Fraction:
    """Convert a clock reading or duration to an exact Fraction."""
    if isinstance(value, Fraction):
        return value
    if isinstance(value, int):
        return Fraction(value)
    return Fraction(value).limit_denominator(MAX_DENOMINATOR)


class Scheduler(Protocol):
    """One-shot frame/timer scheduling with cancellation."""

    def now(self) -> float | Fraction: ...

    def request_frame(self, callback: ClockCallback) -> Any: ...

    def call_later(self, delay: float, callback: ClockCallback) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class AsyncioScheduler:
    """Schedules frames and timers on an asyncio event loop.

    Args:
        frame_interval: Seconds between frames (default 60 fps).
        loop: Event loop to use. Defaults to the running loop at first use.
    """

    def __init__(
        self,
        frame_interval: float = 1 / 60,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.frame_interval = frame_interval
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def request_frame(self, callback: ClockCallback) -> asyncio.TimerHandle:
        return self.call_later(self.frame_interval, callback)

    def call_later(self, delay: float, callback: ClockCallback) -> asyncio.TimerHandle:
        loop = self.loop
        return loop.call_later(delay, lambda: callback(loop.time()))

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class ManualScheduler:
    """Deterministic scheduler whose clock moves only via advance().

    The clock is an exact Fraction: every start, delay and elapsed value
    goes through to_fraction(), so readings never pick up float drift.

    Frames requested before an advance() fire once at the new time.
    Timers fire at their exact due time, in due order, including timers
    scheduled by earlier callbacks within the same advance() window.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = to_fraction(start)
        self._ids = itertools.count(1)
        self._frames: dict[int, ClockCallback] = {}
        self._timers: list[tuple[Fraction, int]] = []
        self._timer_callbacks: dict[int, ClockCallback] = {}

    def now(self) -> Fraction:
        return self._now

    def request_frame(self, callback: ClockCallback) -> int:
        handle = next(self._ids)
        self._frames[handle] = callback
        return handle

    def call_later(self, delay: float, callback: ClockCallback) -> int:
        handle = next(self._ids)
        heapq.heappush(self._timers, (self._now + to_fraction(delay), handle))
        self._timer_callbacks[handle] = callback
        return handle

    def cancel(self, handle: int) -> None:
        self._frames.pop(handle, None)
        self._timer_callbacks.pop(handle, None)

    @property
    def pending(self) -> int:
        """Number of frame and timer callbacks still waiting to fire."""
        return len(self._frames) + len(self._timer_callbacks)

    def advance(self, elapsed: float) -> None:
        """Move the clock forward and fire everything that became due."""
        target = self._now + to_fraction(elapsed)

        while self._timers and self._timers[0][0] <= target:
            due, handle = heapq.heappop(self._timers)
            callback = self._timer_callbacks.pop(handle, None)
            if callback is None:
                continue
            self._now = due
            callback(due)

        self._now = target
        frames, self._frames = self._frames, {}
        for callback in frames.values():
            callback(target)
