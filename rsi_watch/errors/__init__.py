"""
Error classification for the RSI monitoring loop.

Market data failures and notification failures are isolated per symbol and
per cycle; configuration failures are fatal and abort startup.
"""

from .config import ConfigurationError
from .market_data import (
    MonitorError,
    MarketDataError,
    MalformedDataError,
)
from .notification import (
    NotificationError,
    NotificationRetryableError,
    NotificationPermanentError,
)
from .state import StateTransitionError

__all__ = [
    "MonitorError",
    # Market data
    "MarketDataError",
    "MalformedDataError",
    # Notification
    "NotificationError",
    "NotificationRetryableError",
    "NotificationPermanentError",
    # State
    "StateTransitionError",
    # Fatal
    "ConfigurationError",
]
