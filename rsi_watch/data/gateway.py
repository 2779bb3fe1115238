"""Market data gateway over the exchange's public REST API."""

import socket
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

import structlog

from ..config.defaults import MarketDataParams
from ..errors import MarketDataError
from .models import TickerSnapshot
from .parsers import parse_json_payload, parse_kline_closes, parse_ticker

logger = structlog.get_logger(__name__)

KLINES_PATH = "/api/v3/klines"
TICKER_24H_PATH = "/api/v3/ticker/24hr"

# 418 is the exchange's IP ban after ignored 429s; both clear with time
RETRYABLE_STATUS = frozenset({418, 429})


class MarketDataGateway(ABC):
    """Source of closing prices and ticker snapshots."""

    @abstractmethod
    def get_closing_prices(self, symbol: str, timeframe: str, count: int) -> list[float]:
        """
        Closing prices for the most recent ``count`` candles, oldest first.

        Raises:
            MarketDataError: on network, API or format failure
        """

    @abstractmethod
    def get_ticker(self, symbol: str) -> TickerSnapshot:
        """
        Latest 24h ticker for ``symbol``.

        Raises:
            MarketDataError: on network, API or format failure
        """


class _RetryableFetchError(MarketDataError):
    pass


class BinanceMarketData(MarketDataGateway):
    """Binance spot public endpoints with bounded retries."""

    def __init__(
        self,
        config: MarketDataParams,
        opener: Callable[..., Any] = urlopen,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.config = config
        self.logger = logger
        self._opener = opener
        self._sleep = sleep

    def get_closing_prices(self, symbol: str, timeframe: str, count: int) -> list[float]:
        payload = self._get(
            KLINES_PATH,
            {"symbol": symbol, "interval": timeframe, "limit": count},
            symbol=symbol,
            timeframe=timeframe
        )
        return parse_kline_closes(payload, symbol=symbol, timeframe=timeframe)

    def get_ticker(self, symbol: str) -> TickerSnapshot:
        payload = self._get(TICKER_24H_PATH, {"symbol": symbol}, symbol=symbol)
        return parse_ticker(payload, symbol=symbol)

    def _get(
        self,
        path: str,
        params: dict[str, Any],
        symbol: str,
        timeframe: Optional[str] = None
    ) -> Any:
        """GET ``path`` with retries on network errors, 5xx and rate limits."""
        url = f"{self.config.base_url.rstrip('/')}{path}?{urlencode(params)}"
        attempt = 0

        while True:
            try:
                return self._fetch_once(url, symbol, timeframe)
            except _RetryableFetchError as e:
                attempt += 1
                if attempt > self.config.retry_attempts:
                    raise MarketDataError(
                        f"Giving up after {attempt} attempts: {e}",
                        symbol=symbol,
                        timeframe=timeframe
                    )

                self.logger.warning(
                    "Market data request failed, retrying",
                    symbol=symbol,
                    timeframe=timeframe,
                    attempt=attempt,
                    retry_in_seconds=self.config.retry_delay_seconds,
                    error=str(e)
                )
                self._sleep(self.config.retry_delay_seconds)

    def _fetch_once(self, url: str, symbol: str, timeframe: Optional[str]) -> Any:
        req = Request(url, headers={"User-Agent": "rsi-watch/0.1"}, method="GET")

        try:
            with self._opener(req, timeout=self.config.timeout_seconds) as response:
                raw = response.read()

        except HTTPError as e:
            error_msg = f"HTTP {e.code}: {e.reason}"
            if e.code >= 500 or e.code in RETRYABLE_STATUS:
                raise _RetryableFetchError(error_msg, symbol=symbol, timeframe=timeframe)
            raise MarketDataError(error_msg, symbol=symbol, timeframe=timeframe)

        except (URLError, OSError, socket.timeout) as e:
            raise _RetryableFetchError(
                f"Network error: {getattr(e, 'reason', e)}",
                symbol=symbol,
                timeframe=timeframe
            )

        return parse_json_payload(raw, symbol=symbol)
