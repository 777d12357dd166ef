"""Pydantic schemas — the data shapes shared across modules.

Loaders produce the raw record types, the merger turns them into
TimelinePoint objects, the service wraps those in Timeline/TimelinePage,
and the playback engine consumes sequences of TimelinePoint.

RULES:
- All times are integer epoch SECONDS. Loaders normalize milliseconds.
- Modules exchange these types, never ad-hoc dicts.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# ─── Enumerations ───

Timeframe = Literal["1m", "5m", "15m", "30m", "1h", "4h", "1d", "1w"]
TradeSide = Literal["buy", "sell"]
PositionSide = Literal["long", "short"]
MarkerKind = Literal["opened", "closed"]


# ─── Raw Source Records (loader → aggregator/merger) ───


class PriceSample(BaseModel):
    """A single raw price print, reduced into candles by the aggregator."""

    time: int
    price: float
    size: float = 0.0


class CandleRecord(BaseModel):
    """An OHLCV candle keyed by the start of its interval."""

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class TradeRecord(BaseModel):
    """An executed trade. Also stored verbatim on timeline points."""

    id: str
    time: int
    side: TradeSide
    price: float
    quantity: float


class WalletSample(BaseModel):
    """Wallet/equity balance observed at a moment in time."""

    time: int
    balance: float


class PositionRecord(BaseModel):
    """A position lifecycle; close_time is None while still open."""

    id: str
    side: PositionSide
    open_time: int
    close_time: int | None = None
    max_size: float = 0.0


# ─── Timeline ───


class AggregatedCandle(BaseModel):
    """OHLCV values for one bucket (low <= open, close <= high)."""

    open: float
    high: float
    low: float
    close: float
    volume: float = Field(default=0.0, ge=0.0)


class MarkerEvent(BaseModel):
    """A position open or close marker attached to a bucket."""

    position_id: str
    side: PositionSide
    kind: MarkerKind
    time: int
    size: float = 0.0


class TimelinePoint(BaseModel):
    """One bucket's merged view across all sources."""

    time: int
    candle: AggregatedCandle | None = None
    trades: list[TradeRecord] = []
    equity: float | None = None
    wallet_balance: float | None = None
    net_exposure: float | None = None
    markers: list[MarkerEvent] = []
    is_future: bool = False


class TimeRange(BaseModel):
    """Inclusive time span covered by a list of points."""

    start: int
    end: int


class Timeline(BaseModel):
    """A fully merged timeline plus per-source warnings."""

    symbol: str
    timeframe: Timeframe
    points: list[TimelinePoint] = []
    warnings: list[str] = []
    range: TimeRange | None = None


# ─── Query Interface ───


class TimelineQuery(BaseModel):
    """Parameters of a timeline request.

    ``timeframe`` is left as a plain string so the service can reject
    unknown values with UnknownTimeframeError instead of a validation error.
    """

    symbol: str = "BTCUSD"
    timeframe: str = "1h"
    start_time: int | None = None
    end_time: int | None = None
    window_days: float | None = None
    page: int = 1
    limit: int = 500


class TimelinePage(BaseModel):
    """One newest-first page of a windowed timeline."""

    symbol: str
    timeframe: Timeframe
    points: list[TimelinePoint] = []
    page: int
    limit: int
    total: int
    has_more: bool
    window_applied: bool
    range: TimeRange | None = None
    warnings: list[str] = []
