"""
Market data error classifications.

These exceptions describe failures while fetching or interpreting exchange
data. They are recoverable: the affected symbol is skipped for the current
cycle and no state is mutated.
"""

from typing import Optional, Dict, Any


class MonitorError(Exception):
    """Base class for recoverable errors raised inside an evaluation cycle."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class MarketDataError(MonitorError):
    """Network or API failure while fetching market data."""

    def __init__(self, message: str, symbol: Optional[str] = None,
                 timeframe: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.symbol = symbol
        self.timeframe = timeframe


class MalformedDataError(MarketDataError):
    """Exchange responded but the payload is not in the expected format."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 expected_format: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.expected_format = expected_format

