"""CSV-backed data source for timeline building.

Directory layout under ``data_dir``:
    ohlcv/{SYMBOL}_{tf}.csv  timestamp,open,high,low,close,volume
    trades.csv               id,datetime,symbol,side,price,amount
    wallet.csv               timestamp,walletBalance
    positions.csv            id,symbol,side,openTime,closeTime,maxSize

Timestamps may be ISO-8601 strings or epoch numbers; epoch values above
1e11 are read as milliseconds. Rows that fail to parse or carry
non-finite numbers are dropped. A missing or unreadable file raises
SourceUnavailableError so the caller can omit that source from a merge.

Usage:
    from timemachine.timeline.loader import CsvTimelineSource

    source = CsvTimelineSource(Path("data"))
    candles = source.load_candles("BTCUSD", "1h")
"""

from __future__ import annotations

import csv
import math
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, TypeVar

from timemachine.common.exceptions import MalformedRecordError, SourceUnavailableError
from timemachine.common.logging import get_logger
from timemachine.common.metrics import RECORDS_DROPPED_TOTAL
from timemachine.common.schemas import (
    CandleRecord,
    PositionRecord,
    TradeRecord,
    WalletSample,
)

logger = get_logger("LOADER")

# Display symbol → symbol used in stored file names
SYMBOL_ALIASES: dict[str, str] = {
    "BTCUSD": "XBTUSD",
    "BTCUSDT": "XBTUSDT",
    "ETHUSD": "ETHUSD",
    "ETHUSDT": "ETHUSDT",
}

_MS_THRESHOLD = 100_000_000_000  # 1e11: later than year 5138 in seconds

R = TypeVar("R")


class TimelineSource(Protocol):
    """Anything that can supply the four raw series for one symbol."""

    def load_candles(self, symbol: str, timeframe: str) -> list[CandleRecord]: ...

    def load_trades(self, symbol: str) -> list[TradeRecord]: ...

    def load_wallet(self) -> list[WalletSample]: ...

    def load_positions(self, symbol: str) -> list[PositionRecord]: ...


def to_internal_symbol(symbol: str) -> str:
    """Map a display symbol (BTCUSD) to the stored symbol (XBTUSD)."""
    upper = symbol.upper()
    return SYMBOL_ALIASES.get(upper, upper.replace("BTC", "XBT"))


def to_display_symbol(symbol: str) -> str:
    """Map a stored symbol (XBTUSD) back to its display form (BTCUSD)."""
    return symbol.upper().replace("XBT", "BTC")


def parse_timestamp(value: str) -> int:
    """Parse an ISO-8601 string or epoch number into integer epoch seconds.

    Raises:
        ValueError: If the value is empty or cannot be parsed.
    """
    text = value.strip()
    if not text:
        msg = "empty timestamp"
        raise ValueError(msg)

    try:
        number = float(text)
    except ValueError:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return math.floor(parsed.timestamp())

    if not math.isfinite(number):
        msg = f"non-finite timestamp: {text}"
        raise ValueError(msg)
    if abs(number) >= _MS_THRESHOLD:
        number /= 1000
    return math.floor(number)


def _finite(value: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise MalformedRecordError("Non-finite numeric field", context={"value": value})
    return number


class CsvTimelineSource:
    """Reads the raw timeline series from CSV files under ``data_dir``."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)

    # ─── Public loaders ───

    def load_candles(self, symbol: str, timeframe: str) -> list[CandleRecord]:
        path = self.data_dir / "ohlcv" / f"{to_internal_symbol(symbol)}_{timeframe}.csv"

        def parse(row: dict[str, str]) -> CandleRecord:
            volume = row.get("volume") or "0"
            return CandleRecord(
                time=parse_timestamp(row["timestamp"]),
                open=_finite(row["open"]),
                high=_finite(row["high"]),
                low=_finite(row["low"]),
                close=_finite(row["close"]),
                volume=_finite(volume),
            )

        candles = self._read(path, "candles", parse)
        return sorted(candles, key=lambda c: c.time)

    def load_trades(self, symbol: str) -> list[TradeRecord]:
        wanted = to_display_symbol(symbol)

        def parse(row: dict[str, str]) -> TradeRecord | None:
            if to_display_symbol(row.get("symbol", "")) != wanted:
                return None
            return TradeRecord(
                id=row["id"],
                time=parse_timestamp(row["datetime"]),
                side=row["side"].strip().lower(),
                price=_finite(row["price"]),
                quantity=_finite(row["amount"]),
            )

        return self._read(self.data_dir / "trades.csv", "trades", parse)

    def load_wallet(self) -> list[WalletSample]:
        def parse(row: dict[str, str]) -> WalletSample:
            return WalletSample(
                time=parse_timestamp(row["timestamp"]),
                balance=_finite(row["walletBalance"]),
            )

        return self._read(self.data_dir / "wallet.csv", "wallet", parse)

    def load_positions(self, symbol: str) -> list[PositionRecord]:
        wanted = to_display_symbol(symbol)

        def parse(row: dict[str, str]) -> PositionRecord | None:
            if to_display_symbol(row.get("symbol", "")) != wanted:
                return None
            close_raw = (row.get("closeTime") or "").strip()
            return PositionRecord(
                id=row["id"],
                side=row["side"].strip().lower(),
                open_time=parse_timestamp(row["openTime"]),
                close_time=parse_timestamp(close_raw) if close_raw else None,
                max_size=_finite(row.get("maxSize") or "0"),
            )

        return self._read(self.data_dir / "positions.csv", "positions", parse)

    # ─── Internals ───

    def _rows(self, path: Path, source: str) -> Iterator[dict[str, str]]:
        if not path.is_file():
            raise SourceUnavailableError(
                f"{source} file not found: {path.name}",
                context={"source": source, "path": str(path)},
            )
        try:
            with path.open(newline="", encoding="utf-8") as fh:
                yield from csv.DictReader(fh)
        except (OSError, UnicodeDecodeError, csv.Error) as exc:
            raise SourceUnavailableError(
                f"{source} file could not be read: {path.name}",
                context={"source": source, "path": str(path), "error": str(exc)},
            ) from exc

    def _read(
        self,
        path: Path,
        source: str,
        parse: Callable[[dict[str, str]], R | None],
    ) -> list[R]:
        records: list[R] = []
        dropped = 0
        for row in self._rows(path, source):
            try:
                record = parse(row)
            except (KeyError, ValueError, TypeError, AttributeError, MalformedRecordError):
                # pydantic.ValidationError subclasses ValueError
                dropped += 1
                continue
            if record is not None:
                records.append(record)

        if dropped:
            RECORDS_DROPPED_TOTAL.labels(source=source).inc(dropped)
            logger.warning(
                "Dropped malformed rows",
                extra={"data": {"source": source, "path": path.name, "dropped": dropped}},
            )
        logger.debug(
            "Loaded source",
            extra={"data": {"source": source, "path": path.name, "records": len(records)}},
        )
        return records
