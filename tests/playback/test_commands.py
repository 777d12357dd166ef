"""Tests for the playback command table and key bindings."""

from __future__ import annotations

import pytest

from timemachine.playback.commands import (
    DEFAULT_KEY_BINDINGS,
    SPEED_PRESETS,
    InputEvent,
    PlaybackCommand,
    dispatch,
    event_for_key,
    handle_key,
)


class TestKeyBindings:
    def test_arrow_right_steps_forward(self, engine):
        assert handle_key(engine, "ArrowRight")
        assert engine.current_index == 1

    def test_arrow_left_steps_backward(self, engine):
        engine.seek_to_index(2)
        handle_key(engine, "ArrowLeft")
        assert engine.current_index == 1

    @pytest.mark.parametrize("key", ["Space", " "])
    def test_space_toggles_play(self, engine, key):
        handle_key(engine, key)
        assert engine.is_playing
        handle_key(engine, key)
        assert not engine.is_playing

    @pytest.mark.parametrize(("key", "speed"), [("1", 0.5), ("2", 1.0), ("3", 2.0), ("5", 10.0)])
    def test_number_keys_select_speed(self, engine, key, speed):
        handle_key(engine, key)
        assert engine.speed == speed

    def test_unbound_key(self, engine):
        assert handle_key(engine, "x") is False
        assert event_for_key("Escape") is None

    def test_custom_bindings(self, engine):
        bindings = {"l": InputEvent(PlaybackCommand.NEXT_FRAME)}
        assert handle_key(engine, "l", bindings)
        assert engine.current_index == 1
        assert handle_key(engine, "ArrowRight", bindings) is False

    def test_one_binding_per_preset(self):
        speed_keys = [
            key
            for key, event in DEFAULT_KEY_BINDINGS.items()
            if event.command is PlaybackCommand.SELECT_SPEED
        ]
        assert len(speed_keys) == len(SPEED_PRESETS)


class TestDispatch:
    @pytest.mark.parametrize("preset", [None, 0, 6, -1])
    def test_out_of_range_preset_ignored(self, engine, preset):
        engine.set_speed(2)
        dispatch(engine, InputEvent(PlaybackCommand.SELECT_SPEED, preset))
        assert engine.speed == 2.0

    def test_next_frame_at_end_stays(self, engine):
        engine.seek_to_index(2)
        dispatch(engine, InputEvent(PlaybackCommand.NEXT_FRAME))
        assert engine.current_index == 2
