"""Timeline test fixtures — a CSV data directory and an in-memory source."""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.factories import make_candle, make_position, make_trade, make_wallet
from timemachine.common.exceptions import SourceUnavailableError

# ─── CSV Fixture Data ───

OHLCV_1H = """timestamp,open,high,low,close,volume
2024-01-01T00:00:00Z,100,105,99,104,10
2024-01-01T01:00:00Z,104,106,101,102,8
2024-01-01T02:00:00Z,102,103,98,99,12
"""

TRADES = """id,datetime,symbol,side,price,amount
t1,2024-01-01T00:15:00Z,BTCUSD,Buy,101.5,2
t2,1704071100000,XBTUSD,sell,103,1
t3,2024-01-01T00:20:00Z,ETHUSD,buy,2300,5
"""

WALLET = """timestamp,walletBalance
2024-01-01T00:00:00Z,1000
2024-01-01T02:30:00Z,1012.5
"""

POSITIONS = """id,symbol,side,openTime,closeTime,maxSize
p1,BTCUSD,Long,2024-01-01T00:15:00Z,2024-01-01T01:15:00Z,2
p2,BTCUSD,short,2024-01-01T02:05:00Z,,1
p3,ETHUSD,long,2024-01-01T00:00:00Z,,3
"""

HOUR_0 = 1_704_067_200  # 2024-01-01T00:00:00Z


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """A populated data directory in the CSV source layout."""
    (tmp_path / "ohlcv").mkdir()
    (tmp_path / "ohlcv" / "XBTUSD_1h.csv").write_text(OHLCV_1H)
    (tmp_path / "trades.csv").write_text(TRADES)
    (tmp_path / "wallet.csv").write_text(WALLET)
    (tmp_path / "positions.csv").write_text(POSITIONS)
    return tmp_path


class FakeSource:
    """In-memory TimelineSource that counts loads and can mark sources missing."""

    def __init__(self, candles=None, trades=None, wallet=None, positions=None) -> None:
        self.candles = candles if candles is not None else {}
        self.trades = trades or []
        self.wallet = wallet or []
        self.positions = positions or []
        self.missing: set[str] = set()
        self.calls: dict[str, int] = {}

    def _hit(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if name in self.missing:
            raise SourceUnavailableError(f"{name} file not found", context={"source": name})

    def load_candles(self, symbol, timeframe):
        self._hit("candles")
        return list(self.candles.get(timeframe, []))

    def load_trades(self, symbol):
        self._hit("trades")
        return list(self.trades)

    def load_wallet(self):
        self._hit("wallet")
        return list(self.wallet)

    def load_positions(self, symbol):
        self._hit("positions")
        return list(self.positions)


@pytest.fixture
def fake_source() -> FakeSource:
    """A source with three 1h candles and one record of every other kind."""
    return FakeSource(
        candles={
            "1h": [
                make_candle(HOUR_0 + i * 3_600, open=100 + i, close=101 + i) for i in range(3)
            ]
        },
        trades=[make_trade(HOUR_0 + 900, quantity=2.0)],
        wallet=[make_wallet(HOUR_0, 1_000.0)],
        positions=[make_position("p1", HOUR_0 + 900, HOUR_0 + 4_500)],
    )
