"""
Notification error classifications.

Retryable errors are worth another attempt (network trouble, 5xx, rate
limits); permanent errors are not (bad token, unknown chat, bad markup).
"""

from typing import Optional

from .market_data import MonitorError


class NotificationError(MonitorError):
    """Base exception for messaging channel failures."""

    def __init__(self, message: str, channel: Optional[str] = None,
                 operation: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.channel = channel
        self.operation = operation


class NotificationRetryableError(NotificationError):
    """Transient notification failure."""
    pass


class NotificationPermanentError(NotificationError):
    """Notification failure that should not be retried."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.recoverable = False
