"""Advancement strategies — how playback time turns into index steps.

Two named strategies with different pacing on unevenly spaced points:

- TIMESTAMP_GAP: every frame, elapsed time × speed feeds an accumulator.
  The index advances one point each time the accumulator covers the gap
  to the next point (gaps below one time unit count as one).
- FIXED_TICK: a timer fires every ``1 / speed`` seconds and advances a
  fixed number of points regardless of their timestamps.

Strategies are pure: they schedule the next callback and compute the
next (index, remainder) pair. The engine owns all state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Any, ClassVar

from timemachine.playback.scheduler import ClockCallback, Scheduler

MIN_GAP = Fraction(1)


class AdvancementMode(str, Enum):
    TIMESTAMP_GAP = "timestamp_gap"
    FIXED_TICK = "fixed_tick"


@dataclass(frozen=True)
class Advance:
    index: int
    remainder: Fraction


class AdvancementStrategy(ABC):
    """Contract shared by the playback strategies."""

    mode: ClassVar[AdvancementMode]

    @abstractmethod
    def schedule(self, scheduler: Scheduler, speed: Fraction, callback: ClockCallback) -> Any:
        """Request the next clock callback and return its handle."""

    @abstractmethod
    def advance(
        self,
        times: Sequence[int],
        index: int,
        remainder: Fraction,
        elapsed: Fraction,
        speed: Fraction,
    ) -> Advance:
        """Compute the position after one clock callback."""


class TimestampGapStrategy(AdvancementStrategy):
    """Frame-driven advancement proportional to the gaps between points."""

    mode = AdvancementMode.TIMESTAMP_GAP

    def schedule(self, scheduler: Scheduler, speed: Fraction, callback: ClockCallback) -> Any:
        return scheduler.request_frame(callback)

    def advance(
        self,
        times: Sequence[int],
        index: int,
        remainder: Fraction,
        elapsed: Fraction,
        speed: Fraction,
    ) -> Advance:
        last = len(times) - 1
        accumulated = remainder + elapsed * speed

        while index < last:
            gap = max(Fraction(times[index + 1] - times[index]), MIN_GAP)
            if accumulated < gap:
                break
            accumulated -= gap
            index += 1

        return Advance(index=index, remainder=accumulated)


class FixedTickStrategy(AdvancementStrategy):
    """Timer-driven advancement by ``step`` points every ``1 / speed`` seconds.

    Args:
        step: Points to advance per tick (at least 1).
    """

    mode = AdvancementMode.FIXED_TICK

    def __init__(self, step: int = 1) -> None:
        self.step = max(1, step)

    def interval(self, speed: Fraction) -> float:
        return float(1 / speed)

    def schedule(self, scheduler: Scheduler, speed: Fraction, callback: ClockCallback) -> Any:
        return scheduler.call_later(self.interval(speed), callback)

    def advance(
        self,
        times: Sequence[int],
        index: int,
        remainder: Fraction,
        elapsed: Fraction,
        speed: Fraction,
    ) -> Advance:
        return Advance(index=min(index + self.step, len(times) - 1), remainder=Fraction(0))


def make_strategy(mode: AdvancementMode | str, *, tick_step: int = 1) -> AdvancementStrategy:
    """Build a strategy from its configured name.

    Raises:
        ValueError: If ``mode`` is not a known AdvancementMode.
    """
    mode = AdvancementMode(mode)
    if mode is AdvancementMode.FIXED_TICK:
        return FixedTickStrategy(step=tick_step)
    return TimestampGapStrategy()
