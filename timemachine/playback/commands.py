"""Command table mapping abstract input events onto engine calls.

Views translate their own input (keys, buttons, remote commands) into
InputEvent values; dispatch() routes them to the engine. A default key
binding table is provided for keyboard-driven views.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from timemachine.playback.engine import PlaybackEngine

SPEED_PRESETS: tuple[float, ...] = (0.5, 1, 2, 5, 10)


class PlaybackCommand(str, Enum):
    NEXT_FRAME = "next_frame"
    PREVIOUS_FRAME = "previous_frame"
    TOGGLE_PLAY = "toggle_play"
    SELECT_SPEED = "select_speed"


@dataclass(frozen=True)
class InputEvent:
    """An abstract input; ``argument`` is the 1-based preset for SELECT_SPEED."""

    command: PlaybackCommand
    argument: int | None = None


def _select_speed(engine: PlaybackEngine, preset: int | None) -> None:
    if preset is None or not 1 <= preset <= len(SPEED_PRESETS):
        return
    engine.set_speed(SPEED_PRESETS[preset - 1])


COMMAND_TABLE: dict[PlaybackCommand, Callable[[PlaybackEngine, int | None], None]] = {
    PlaybackCommand.NEXT_FRAME: lambda engine, _: engine.step_forward(),
    PlaybackCommand.PREVIOUS_FRAME: lambda engine, _: engine.step_backward(),
    PlaybackCommand.TOGGLE_PLAY: lambda engine, _: engine.toggle_play(),
    PlaybackCommand.SELECT_SPEED: _select_speed,
}

DEFAULT_KEY_BINDINGS: dict[str, InputEvent] = {
    "ArrowRight": InputEvent(PlaybackCommand.NEXT_FRAME),
    "ArrowLeft": InputEvent(PlaybackCommand.PREVIOUS_FRAME),
    "Space": InputEvent(PlaybackCommand.TOGGLE_PLAY),
    " ": InputEvent(PlaybackCommand.TOGGLE_PLAY),
    **{
        str(n): InputEvent(PlaybackCommand.SELECT_SPEED, n)
        for n in range(1, len(SPEED_PRESETS) + 1)
    },
}


def dispatch(engine: PlaybackEngine, event: InputEvent) -> None:
    """Run the engine call bound to ``event.command``."""
    COMMAND_TABLE[event.command](engine, event.argument)


def event_for_key(key: str, bindings: dict[str, InputEvent] | None = None) -> InputEvent | None:
    """Translate a key name into an InputEvent, or None if unbound."""
    return (bindings if bindings is not None else DEFAULT_KEY_BINDINGS).get(key)


def handle_key(
    engine: PlaybackEngine,
    key: str,
    bindings: dict[str, InputEvent] | None = None,
) -> bool:
    """Dispatch the event bound to ``key``. Returns False for unbound keys."""
    event = event_for_key(key, bindings)
    if event is None:
        return False
    dispatch(engine, event)
    return True
