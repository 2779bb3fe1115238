"""Tests for the Binance market data gateway."""

import io
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qs, urlparse

import orjson
import pytest

from rsi_watch.config.defaults import MarketDataParams
from rsi_watch.data.gateway import BinanceMarketData
from rsi_watch.errors import MalformedDataError, MarketDataError


class FakeOpener:
    """Replays scripted responses and records requested URLs."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.urls = []

    def __call__(self, req, timeout=None):
        self.urls.append(req.full_url)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, bytes):
            return io.BytesIO(response)
        return io.BytesIO(orjson.dumps(response))


def http_error(code):
    return HTTPError("https://api.binance.com", code, "error", {}, io.BytesIO(b"{}"))


def make_gateway(opener, retry_attempts=2):
    sleeps = []
    gateway = BinanceMarketData(
        MarketDataParams(retry_attempts=retry_attempts, retry_delay_seconds=0.5),
        opener=opener,
        sleep=sleeps.append,
    )
    return gateway, sleeps


def kline(close):
    return [0, "0", "0", "0", close, "0"]


class TestBinanceMarketData:
    """Test BinanceMarketData."""

    def test_closing_prices_request(self):
        """Test klines query parameters and parsed closes."""
        opener = FakeOpener([kline("1.5"), kline("2.5")])
        gateway, _ = make_gateway(opener)

        closes = gateway.get_closing_prices("BTCUSDT", "15m", 15)

        assert closes == [1.5, 2.5]
        url = urlparse(opener.urls[0])
        assert url.path == "/api/v3/klines"
        assert parse_qs(url.query) == {"symbol": ["BTCUSDT"], "interval": ["15m"], "limit": ["15"]}

    def test_ticker_request(self):
        """Test 24h ticker endpoint."""
        opener = FakeOpener({"symbol": "ETHUSDT", "lastPrice": "2000", "priceChangePercent": "3.1"})
        gateway, _ = make_gateway(opener)

        ticker = gateway.get_ticker("ETHUSDT")

        assert ticker.last_price == 2000.0
        assert ticker.price_change_pct == 3.1
        assert urlparse(opener.urls[0]).path == "/api/v3/ticker/24hr"

    def test_retries_server_errors(self):
        """Test 5xx and network errors are retried."""
        opener = FakeOpener(http_error(503), URLError("reset"), [kline("3")])
        gateway, sleeps = make_gateway(opener, retry_attempts=2)

        assert gateway.get_closing_prices("BTCUSDT", "1m", 1) == [3.0]
        assert sleeps == [0.5, 0.5]

    def test_gives_up_after_retries(self):
        """Test the last failure surfaces as MarketDataError."""
        opener = FakeOpener(http_error(429), http_error(429), http_error(429))
        gateway, _ = make_gateway(opener, retry_attempts=2)

        with pytest.raises(MarketDataError) as exc_info:
            gateway.get_closing_prices("BTCUSDT", "1m", 15)

        assert exc_info.value.symbol == "BTCUSDT"
        assert exc_info.value.timeframe == "1m"
        assert len(opener.urls) == 3

    def test_client_error_not_retried(self):
        """Test 4xx errors other than rate limits fail immediately."""
        opener = FakeOpener(http_error(400))
        gateway, sleeps = make_gateway(opener)

        with pytest.raises(MarketDataError):
            gateway.get_ticker("NOPEUSDT")

        assert sleeps == []

    def test_malformed_body_not_retried(self):
        """Test invalid JSON is a malformed payload."""
        opener = FakeOpener(b"not json")
        gateway, _ = make_gateway(opener)

        with pytest.raises(MalformedDataError):
            gateway.get_ticker("BTCUSDT")
        assert len(opener.urls) == 1
