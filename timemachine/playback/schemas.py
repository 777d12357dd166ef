"""Pydantic schemas for playback state snapshots."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PlaybackStatus = Literal["idle", "paused", "playing"]


class PlaybackState(BaseModel):
    """Immutable snapshot of a PlaybackEngine, published to observers."""

    model_config = ConfigDict(frozen=True)

    status: PlaybackStatus
    current_index: int = Field(ge=0)
    point_count: int = Field(ge=0)
    current_time: int | None = None
    is_playing: bool = False
    is_scrubbing: bool = False
    speed: float = Field(gt=0)
    show_future: bool = True
    show_candles: bool = True
    progress: float = Field(ge=0.0, le=1.0)
    strategy: str
