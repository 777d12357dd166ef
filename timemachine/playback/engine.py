"""Playback engine — a resumable, frame-accurate clock over timeline points.

States:
    idle    — no visible points
    paused  — initial state once points exist
    playing — a clock callback is pending

Scrubbing is an orthogonal flag: it neither advances nor halts the
clock, it only tells views to hold off on externally driven updates.

Every operation clamps instead of raising. Observers receive a
PlaybackState snapshot synchronously whenever the state changes.

Usage:
    from timemachine.playback.engine import PlaybackEngine
    from timemachine.playback.scheduler import ManualScheduler

    clock = ManualScheduler()
    engine = PlaybackEngine(points, scheduler=clock)
    engine.play()
    clock.advance(10)
"""

from __future__ import annotations

import bisect
import math
from collections.abc import Callable, Sequence
from fractions import Fraction
from typing import Any

from timemachine.common.config import Settings, get_settings
from timemachine.common.logging import get_logger
from timemachine.common.schemas import TimelinePoint
from timemachine.playback.preferences import BooleanPreference, KeyValueStore
from timemachine.playback.scheduler import AsyncioScheduler, Scheduler, to_fraction
from timemachine.playback.schemas import PlaybackState, PlaybackStatus
from timemachine.playback.strategies import (
    AdvancementStrategy,
    FixedTickStrategy,
    TimestampGapStrategy,
    make_strategy,
)

logger = get_logger("PLAYBACK")

Observer = Callable[[PlaybackState], None]

def _clamp(value: int, low: int, high: int) -> int:
    return min(max(value, low), high)


class PlaybackEngine:
    """Steps through a sequence of TimelinePoint under an injected clock.

    The engine copies and sorts the points it is given and never mutates
    them. Only one clock callback is pending at a time; the next one is
    requested after the previous one has been processed.

    Args:
        points: Timeline points (any order; sorted by time internally).
        scheduler: Clock capability used for frames and timers.
        strategy: Advancement strategy. Defaults to TimestampGapStrategy.
        speed: Initial speed multiplier (must be > 0, else 1).
        show_future: Whether points flagged ``is_future`` are visible.
        initial_index: Starting index, clamped into range.
        show_candles: Persisted "show candles" preference, if any.
    """

    def __init__(
        self,
        points: Sequence[TimelinePoint],
        *,
        scheduler: Scheduler,
        strategy: AdvancementStrategy | None = None,
        speed: float = 1,
        show_future: bool = True,
        initial_index: int = 0,
        show_candles: BooleanPreference | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.strategy = strategy or TimestampGapStrategy()
        self._show_candles_pref = show_candles
        self._show_candles = show_candles.value if show_candles is not None else True

        self._all_points: tuple[TimelinePoint, ...] = tuple(sorted(points, key=lambda p: p.time))
        self._show_future = show_future
        self._visible: tuple[TimelinePoint, ...] = ()
        self._times: list[int] = []

        self._speed = to_fraction(speed) if self._valid_speed(speed) else Fraction(1)
        self._index = 0
        self._remainder = Fraction(0)
        self._progress = 0.0
        self._playing = False
        self._scrubbing = False
        self._closed = False

        self._handle: Any = None
        self._last_tick: float | Fraction | None = None
        self._observers: list[Observer] = []
        self._published: PlaybackState | None = None

        self._apply_filter()
        self._index = _clamp(initial_index, 0, max(len(self._visible) - 1, 0))
        self._recompute_progress()
        self._published = self.state

    # ─── Read-only views ───

    @property
    def points(self) -> tuple[TimelinePoint, ...]:
        """Currently visible points (future points removed when hidden)."""
        return self._visible

    @property
    def all_points(self) -> tuple[TimelinePoint, ...]:
        return self._all_points

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_point(self) -> TimelinePoint | None:
        return self._visible[self._index] if self._visible else None

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def is_scrubbing(self) -> bool:
        return self._scrubbing

    @property
    def speed(self) -> float:
        return float(self._speed)

    @property
    def show_future(self) -> bool:
        return self._show_future

    @property
    def show_candles(self) -> bool:
        return self._show_candles

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def status(self) -> PlaybackStatus:
        if not self._visible:
            return "idle"
        return "playing" if self._playing else "paused"

    @property
    def state(self) -> PlaybackState:
        point = self.current_point
        return PlaybackState(
            status=self.status,
            current_index=self._index,
            point_count=len(self._visible),
            current_time=point.time if point is not None else None,
            is_playing=self._playing,
            is_scrubbing=self._scrubbing,
            speed=float(self._speed),
            show_future=self._show_future,
            show_candles=self._show_candles,
            progress=self._progress,
            strategy=self.strategy.mode.value,
        )

    # ─── Observers ───

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    # ─── Transport ───

    def play(self) -> None:
        """Start playback. No-op with fewer than two visible points."""
        if self._closed or self._playing or len(self._visible) < 2:
            return
        self._playing = True
        self._last_tick = self.scheduler.now()
        self._schedule()
        logger.debug(
            "Playback started",
            extra={"data": {"index": self._index, "speed": float(self._speed)}},
        )
        self._notify()

    def pause(self) -> None:
        if not self._playing:
            return
        self._stop_clock()
        self._notify()

    def toggle_play(self) -> None:
        if self._playing:
            self.pause()
        else:
            self.play()

    def set_speed(self, value: float) -> None:
        """Change the speed multiplier. Non-positive values are ignored."""
        if not self._valid_speed(value):
            logger.warning("Ignoring invalid playback speed", extra={"data": {"speed": value}})
            return
        if self._playing and not isinstance(self.strategy, FixedTickStrategy):
            # Time since the last frame is banked at the old speed
            now = self.scheduler.now()
            self._remainder += self._elapsed_since(now) * self._speed
            self._last_tick = now
        self._speed = to_fraction(value)
        # A pending fixed-tick timer was sized for the old speed
        if self._playing and isinstance(self.strategy, FixedTickStrategy):
            self._cancel_pending()
            self._schedule()
        self._notify()

    # ─── Seeking ───

    def seek_to_index(self, index: int) -> None:
        """Jump to ``index`` (clamped), resetting any partial step."""
        self._index = _clamp(index, 0, max(len(self._visible) - 1, 0))
        self._remainder = Fraction(0)
        self._recompute_progress()
        self._notify(force=True)

    def seek_to_progress(self, value: float) -> None:
        """Jump to the point nearest the time at fraction ``value`` of the span.

        Ties resolve to the earliest index.
        """
        if not self._visible:
            return
        if math.isnan(value):
            value = 0.0
        fraction = to_fraction(min(max(value, 0.0), 1.0))
        if fraction == 1:
            self.seek_to_index(len(self._times) - 1)
            return
        first, last = self._times[0], self._times[-1]
        target = first + fraction * (last - first)
        nearest = min(range(len(self._times)), key=lambda i: (abs(self._times[i] - target), i))
        self.seek_to_index(nearest)

    def jump_to_time(self, timestamp: int) -> None:
        """Seek to the first visible point at or after ``timestamp``."""
        index = bisect.bisect_left(self._times, timestamp)
        if index < len(self._times):
            self.seek_to_index(index)

    def step_forward(self) -> None:
        self.seek_to_index(self._index + 1)

    def step_backward(self) -> None:
        self.seek_to_index(self._index - 1)

    def begin_scrub(self) -> None:
        self._scrubbing = True
        self._notify()

    def end_scrub(self) -> None:
        self._scrubbing = False
        self._notify()

    # ─── Visibility / data ───

    def set_show_future(self, value: bool) -> None:
        """Show or hide future points, re-clamping the index."""
        if value == self._show_future:
            return
        self._show_future = value
        self._refilter()

    def set_points(self, points: Sequence[TimelinePoint]) -> None:
        """Replace the underlying point sequence."""
        self._all_points = tuple(sorted(points, key=lambda p: p.time))
        self._refilter()

    def set_show_candles(self, value: bool) -> None:
        """Toggle candle visibility, persisting it when a preference is attached."""
        self._show_candles = bool(value)
        if self._show_candles_pref is not None:
            self._show_candles_pref.set(self._show_candles)
        self._notify()

    def close(self) -> None:
        """Release the pending clock callback and all observers."""
        self._cancel_pending()
        self._playing = False
        self._last_tick = None
        self._observers.clear()
        self._closed = True

    # ─── Internals ───

    @staticmethod
    def _valid_speed(value: float) -> bool:
        try:
            return math.isfinite(value) and value > 0
        except TypeError:
            return False

    def _apply_filter(self) -> None:
        if self._show_future:
            self._visible = self._all_points
        else:
            self._visible = tuple(p for p in self._all_points if not p.is_future)
        self._times = [p.time for p in self._visible]

    def _refilter(self) -> None:
        self._apply_filter()
        self._index = _clamp(self._index, 0, max(len(self._visible) - 1, 0))
        self._remainder = Fraction(0)
        if self._playing and len(self._visible) < 2:
            self._stop_clock()
        self._recompute_progress()
        self._notify()

    def _recompute_progress(self) -> None:
        count = len(self._times)
        if count < 2:
            self._progress = 0.0
            return
        first, last = self._times[0], self._times[-1]
        if last <= first:
            # Degenerate span: fall back to index position
            self._progress = self._index / (count - 1)
            return
        projected = self._times[self._index] + self._remainder
        ratio = (projected - first) / (last - first)
        self._progress = float(min(max(ratio, Fraction(0)), Fraction(1)))

    def _schedule(self) -> None:
        self._handle = self.strategy.schedule(self.scheduler, self._speed, self._on_clock)

    def _cancel_pending(self) -> None:
        if self._handle is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None

    def _stop_clock(self) -> None:
        self._cancel_pending()
        self._playing = False
        self._last_tick = None

    def _elapsed_since(self, reading: float | Fraction) -> Fraction:
        # Only the per-frame delta is converted; readings stay as the scheduler gave them
        if self._last_tick is None:
            return Fraction(0)
        return max(to_fraction(reading - self._last_tick), Fraction(0))

    def _on_clock(self, timestamp: float | Fraction) -> None:
        self._handle = None
        if not self._playing:
            return

        elapsed = self._elapsed_since(timestamp)
        self._last_tick = timestamp

        last_index = len(self._visible) - 1
        if self._index < last_index:
            step = self.strategy.advance(
                self._times, self._index, self._remainder, elapsed, self._speed
            )
            self._index, self._remainder = step.index, step.remainder

        if self._index >= last_index:
            self._remainder = Fraction(0)
            self._stop_clock()
            logger.debug("Playback reached the last point", extra={"data": {"index": self._index}})
        else:
            self._schedule()

        self._recompute_progress()
        self._notify()

    def _notify(self, force: bool = False) -> None:
        state = self.state
        if not force and state == self._published:
            return
        self._published = state
        for observer in list(self._observers):
            try:
                observer(state)
            except Exception:
                logger.exception("Playback observer failed")


def engine_from_settings(
    points: Sequence[TimelinePoint],
    *,
    scheduler: Scheduler | None = None,
    store: KeyValueStore | None = None,
    settings: Settings | None = None,
    **kwargs: Any,
) -> PlaybackEngine:
    """Build an engine using the configured strategy and preference store.

    Args:
        points: Timeline points to play.
        scheduler: Clock capability. Defaults to an AsyncioScheduler ticking
            every settings.frame_interval_seconds.
        store: Key-value store for the "show candles" preference. Omit to
            keep the preference in memory only.
        settings: Application settings. Defaults to get_settings().
        **kwargs: Passed through to PlaybackEngine.
    """
    settings = settings or get_settings()
    if scheduler is None:
        scheduler = AsyncioScheduler(frame_interval=settings.frame_interval_seconds)
    strategy = make_strategy(settings.playback_strategy, tick_step=settings.fixed_tick_step)
    preference = None
    if store is not None:
        preference = BooleanPreference(store, "show-candles", default=True)
    return PlaybackEngine(
        points, scheduler=scheduler, strategy=strategy, show_candles=preference, **kwargs
    )
