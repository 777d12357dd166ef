"""Test data factories for generating timeline records.

Usage:
    from tests.factories import make_candle, make_point, make_trade

    candle = make_candle(3_600, close=101.0)
    point = make_point(7_200, close=99.5, is_future=True)
"""

from __future__ import annotations

from timemachine.common.schemas import (
    AggregatedCandle,
    CandleRecord,
    PositionRecord,
    PriceSample,
    TimelinePoint,
    TradeRecord,
    WalletSample,
)


def make_candle(
    time: int,
    *,
    open: float = 100.0,
    high: float | None = None,
    low: float | None = None,
    close: float = 100.0,
    volume: float = 1.0,
) -> CandleRecord:
    """Create a CandleRecord; high/low default to the open/close extremes."""
    return CandleRecord(
        time=time,
        open=open,
        high=high if high is not None else max(open, close),
        low=low if low is not None else min(open, close),
        close=close,
        volume=volume,
    )


def make_sample(time: int, price: float, size: float = 1.0) -> PriceSample:
    return PriceSample(time=time, price=price, size=size)


def make_trade(
    time: int,
    *,
    side: str = "buy",
    quantity: float = 1.0,
    price: float = 100.0,
    trade_id: str | None = None,
) -> TradeRecord:
    """Create a TradeRecord with an id derived from its time and side."""
    return TradeRecord(
        id=trade_id or f"t-{time}-{side}",
        time=time,
        side=side,
        price=price,
        quantity=quantity,
    )


def make_wallet(time: int, balance: float) -> WalletSample:
    return WalletSample(time=time, balance=balance)


def make_position(
    position_id: str,
    open_time: int,
    close_time: int | None = None,
    *,
    side: str = "long",
    max_size: float = 1.0,
) -> PositionRecord:
    return PositionRecord(
        id=position_id,
        side=side,
        open_time=open_time,
        close_time=close_time,
        max_size=max_size,
    )


def make_point(time: int, *, close: float | None = None, is_future: bool = False) -> TimelinePoint:
    """Create a TimelinePoint, optionally with a flat candle."""
    candle = None
    if close is not None:
        candle = AggregatedCandle(open=close, high=close, low=close, close=close, volume=1.0)
    return TimelinePoint(time=time, candle=candle, is_future=is_future)


def make_points(*times: int, future_from: int | None = None) -> list[TimelinePoint]:
    """Create flat points at ``times``; those at or after ``future_from`` are future."""
    return [
        make_point(t, close=100.0, is_future=future_from is not None and t >= future_from)
        for t in times
    ]
