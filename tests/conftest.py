"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from rsi_watch.config.defaults import (
    AuditParams,
    MarketDataParams,
    MonitorConfig,
    PositionParams,
    TelegramParams,
    UniverseParams,
)
from rsi_watch.data.gateway import MarketDataGateway
from rsi_watch.data.models import TickerSnapshot
from rsi_watch.delivery.base import BaseNotifier
from rsi_watch.errors import MarketDataError, NotificationRetryableError

RSI_PERIOD = 14


def rsi_series(gains: int, start: float = 100.0, period: int = RSI_PERIOD) -> list[float]:
    """
    Closing prices whose RSI is exactly ``100 * gains / period``.

    The series rises by 1 ``gains`` times, then falls by 1 for the rest of
    the period; it ends at ``start + gains - (period - gains)``.
    """
    closes = [start]
    for i in range(period):
        step = 1.0 if i < gains else -1.0
        closes.append(closes[-1] + step)
    return closes


def passing_closes(entry_price: float = 100.0) -> dict[str, list[float]]:
    """Closes that satisfy the default threshold table, 1m ending at ``entry_price``."""
    # 1m: 6 gains -> RSI 42.86, ends at start - 2
    return {
        "1d": rsi_series(7),                       # 50.00 in [0, 100]
        "4h": rsi_series(8),                       # 57.14 in [45, 70]
        "15m": rsi_series(7),                      # 50.00 in [0, 80]
        "1m": rsi_series(6, start=entry_price + 2),
    }


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, minutes: float = 0) -> datetime:
        self.now += timedelta(seconds=seconds, minutes=minutes)
        return self.now


class FakeGateway(MarketDataGateway):
    """In-memory market data with scripted ticker prices."""

    def __init__(self):
        self.closes: dict[tuple[str, str], list[float]] = {}
        self.prices: dict[str, list[float]] = {}
        self.price_change: dict[str, float] = {}
        self.failing: set[str] = set()
        self.broken: set[str] = set()
        self.broken_tickers: set[str] = set()
        self.kline_calls: list[tuple[str, str, int]] = []
        self.ticker_calls: list[str] = []

    def set_closes(self, symbol: str, closes_by_timeframe: dict[str, list[float]]) -> None:
        for timeframe, closes in closes_by_timeframe.items():
            self.closes[(symbol, timeframe)] = list(closes)

    def set_prices(self, symbol: str, *prices: float) -> None:
        """Each ticker call consumes one price; the last one repeats."""
        self.prices[symbol] = list(prices)

    def get_closing_prices(self, symbol: str, timeframe: str, count: int) -> list[float]:
        self.kline_calls.append((symbol, timeframe, count))
        if symbol in self.broken:
            raise RuntimeError(f"unexpected kline payload for {symbol}")
        if symbol in self.failing:
            raise MarketDataError("connection reset", symbol=symbol, timeframe=timeframe)
        if (symbol, timeframe) not in self.closes:
            raise MarketDataError("no data", symbol=symbol, timeframe=timeframe)
        return self.closes[(symbol, timeframe)][-count:]

    def get_ticker(self, symbol: str) -> TickerSnapshot:
        self.ticker_calls.append(symbol)
        if symbol in self.broken_tickers:
            raise RuntimeError(f"unexpected ticker payload for {symbol}")
        if symbol in self.failing or symbol not in self.prices:
            raise MarketDataError("ticker unavailable", symbol=symbol)

        queue = self.prices[symbol]
        price = queue.pop(0) if len(queue) > 1 else queue[0]
        return TickerSnapshot(
            symbol=symbol,
            last_price=price,
            price_change_pct=self.price_change.get(symbol),
        )


class FakeNotifier(BaseNotifier):
    """Records messages; channels listed in ``failing_*`` raise retryable errors."""

    def __init__(self):
        super().__init__("fake", max_retries=0, retry_delay=0, sleep=lambda _: None)
        self.sent: list[tuple[str, int, str]] = []
        self.edits: list[tuple[str, int, str]] = []
        self.failing_send: set[str] = set()
        self.failing_edit: set[str] = set()
        self._next_id = 100

    def send(self, channel: str, text: str) -> int:
        if channel in self.failing_send:
            raise NotificationRetryableError("send failed", channel=channel, operation="send")
        self._next_id += 1
        self.sent.append((channel, self._next_id, text))
        return self._next_id

    def edit(self, channel: str, message_id: int, text: str) -> None:
        if channel in self.failing_edit:
            raise NotificationRetryableError("edit failed", channel=channel, operation="edit")
        self.edits.append((channel, message_id, text))

    def health_check(self) -> bool:
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def monitor_config() -> MonitorConfig:
    """Default rule table, two symbols, one chat, no reference asset, no audit file."""
    return MonitorConfig(
        position=PositionParams(markup_factor=1.011, cooldown_seconds=30 * 60, max_completion_attempts=3),
        universe=UniverseParams(
            quote_suffix="USDT",
            tracked_symbols=("AAAUSDT", "BBBUSDT"),
            excluded_symbols=(),
        ),
        market_data=MarketDataParams(reference_symbol=None),
        telegram=TelegramParams(bot_token="test-token", chat_ids=("chat-1",)),
        audit=AuditParams(enabled=False),
    )
