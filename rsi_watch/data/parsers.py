"""
Exchange payload parsers.

Converts raw public REST responses (klines and 24h ticker) into plain
closing-price series and ticker snapshots, raising ``MalformedDataError``
for anything that does not match the expected shape.
"""

import math
from typing import Any, Optional

import orjson

from ..errors import MalformedDataError, MarketDataError
from .models import TickerSnapshot

KLINE_CLOSE_INDEX = 4


def parse_json_payload(raw_data: bytes, symbol: Optional[str] = None) -> Any:
    """
    Parse a raw JSON response body.

    Raises:
        MalformedDataError: If JSON parsing fails
    """
    try:
        return orjson.loads(raw_data)
    except orjson.JSONDecodeError as e:
        raise MalformedDataError(
            f"Invalid JSON: {e}",
            symbol=symbol,
            raw_data=raw_data[:200].decode("utf-8", errors="replace") if raw_data else None,
            expected_format="json"
        )


def validate_api_response(payload: Any, symbol: Optional[str] = None) -> None:
    """
    Reject exchange error envelopes such as ``{"code": -1121, "msg": "Invalid symbol."}``.

    Raises:
        MarketDataError: If the response is an error object
    """
    if isinstance(payload, dict) and "code" in payload and "msg" in payload:
        raise MarketDataError(
            f"Exchange API error - code: {payload['code']}, msg: {payload['msg']}",
            symbol=symbol
        )


def _to_price(raw: Any, field: str, symbol: Optional[str]) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise MalformedDataError(
            f"Invalid {field}: {raw!r}",
            symbol=symbol,
            raw_data=repr(raw),
            expected_format="numeric string"
        )

    if not math.isfinite(value):
        raise MalformedDataError(f"Non-finite {field}: {raw!r}", symbol=symbol)
    return value


def parse_kline_closes(
    payload: Any,
    symbol: Optional[str] = None,
    timeframe: Optional[str] = None
) -> list[float]:
    """
    Extract closing prices from a klines response, oldest first.

    Each kline is ``[open_time, open, high, low, close, volume, ...]``.
    """
    validate_api_response(payload, symbol)

    if not isinstance(payload, list):
        raise MalformedDataError(
            f"Klines payload must be a list, got {type(payload).__name__}",
            symbol=symbol,
            timeframe=timeframe,
            expected_format="list of klines"
        )

    closes = []
    for i, kline in enumerate(payload):
        if not isinstance(kline, (list, tuple)) or len(kline) <= KLINE_CLOSE_INDEX:
            raise MalformedDataError(
                f"Invalid kline at index {i}",
                symbol=symbol,
                timeframe=timeframe,
                raw_data=repr(kline)[:200],
                expected_format="[open_time, open, high, low, close, ...]"
            )
        closes.append(_to_price(kline[KLINE_CLOSE_INDEX], "close", symbol))

    return closes


def parse_ticker(payload: Any, symbol: Optional[str] = None) -> TickerSnapshot:
    """Extract last price and 24h change percent from a 24h ticker response."""
    validate_api_response(payload, symbol)

    if not isinstance(payload, dict) or "lastPrice" not in payload:
        raise MalformedDataError(
            "Ticker payload has no lastPrice",
            symbol=symbol,
            raw_data=repr(payload)[:200],
            expected_format="24hr ticker object"
        )

    change = payload.get("priceChangePercent")
    return TickerSnapshot(
        symbol=payload.get("symbol", symbol),
        last_price=_to_price(payload["lastPrice"], "lastPrice", symbol),
        price_change_pct=_to_price(change, "priceChangePercent", symbol) if change is not None else None,
    )
