"""Timeline API endpoint — windowed, paginated timeline queries.

GET /api/timeline?symbol=BTCUSD&timeframe=1h&page=1&limit=500
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from timemachine.api.deps import get_timeline_service
from timemachine.common.exceptions import UnknownTimeframeError
from timemachine.common.logging import get_logger
from timemachine.common.schemas import TimelinePage, TimelineQuery
from timemachine.timeline.exceptions import TimelineNotFoundError
from timemachine.timeline.service import TimelineService

router = APIRouter()
logger = get_logger("API")


@router.get("", response_model=TimelinePage)
def get_timeline(
    symbol: str | None = None,
    timeframe: str | None = None,
    start: int | None = None,
    end: int | None = None,
    window_days: float | None = Query(default=None, gt=0),
    page: int = 1,
    limit: int | None = None,
    service: TimelineService = Depends(get_timeline_service),
) -> TimelinePage:
    """Return one newest-first page of the merged timeline.

    Args:
        symbol: Display symbol (defaults to settings.default_symbol).
        timeframe: Bucket width (defaults to settings.default_timeframe).
        start: Inclusive lower time bound (epoch seconds).
        end: Inclusive upper time bound (epoch seconds).
        window_days: Trailing window; ignored when start/end is given.
        page: 1-based page, newest first.
        limit: Page size, clamped to [1, 5000].
        service: Timeline service from dependency injection.

    Returns:
        TimelinePage with the requested slice.
    """
    settings = service.settings
    query = TimelineQuery(
        symbol=symbol or settings.default_symbol,
        timeframe=timeframe or settings.default_timeframe,
        start_time=start,
        end_time=end,
        window_days=window_days,
        page=page,
        limit=limit if limit is not None else settings.default_page_limit,
    )

    try:
        result = service.query(query)
    except UnknownTimeframeError as exc:
        raise HTTPException(status_code=422, detail=str(exc.args[0])) from exc
    except TimelineNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc.args[0])) from exc

    logger.info(
        "Timeline page served",
        extra={
            "data": {
                "symbol": result.symbol,
                "timeframe": result.timeframe,
                "page": result.page,
                "points": len(result.points),
                "total": result.total,
            }
        },
    )
    return result
