"""Time Machine — timeline aggregation and playback core.

Folds candles, trades, wallet balances and position events onto one
bucketed timeline and replays it through a deterministic playback clock.
"""

from __future__ import annotations

__version__ = "0.1.0"
