"""FastAPI dependencies for the timeline API.

The service (and its cache) is a process-wide singleton so cached source
series survive between requests. Tests override get_timeline_service
through ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from timemachine.common.config import get_settings
from timemachine.timeline.cache import TimelineCache
from timemachine.timeline.loader import CsvTimelineSource
from timemachine.timeline.service import TimelineService


@lru_cache
def get_timeline_service() -> TimelineService:
    """Build the CSV-backed timeline service from settings (cached)."""
    settings = get_settings()
    return TimelineService(
        CsvTimelineSource(settings.data_dir),
        cache=TimelineCache(),
        settings=settings,
    )
