"""Playback module — a deterministic replay clock over timeline points.

The engine owns its own index, sub-step accumulator and pending timer
handle. Time comes from an injected Scheduler so the same engine runs
under asyncio or under a manually stepped clock in tests.
"""

from __future__ import annotations
