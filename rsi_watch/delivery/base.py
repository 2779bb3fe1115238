"""Base classes for alert delivery over a messaging channel."""

import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

import structlog

from ..errors import (
    NotificationError,
    NotificationPermanentError,
    NotificationRetryableError,
)

T = TypeVar("T")


class DeliveryStatus(Enum):
    """Alert delivery status."""
    SUCCESS = "success"
    FAILED = "failed"
    DEAD_LETTER = "dead_letter"


@dataclass
class DeliveryResult:
    """Result of a send or edit attempt on one channel."""
    status: DeliveryStatus
    channel: str
    message_id: Optional[int] = None
    message: Optional[str] = None
    delivery_time_ms: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.SUCCESS


@dataclass(frozen=True)
class MessageHandle:
    """
    Opaque reference to a sent alert, one message id per channel.

    Handles live only in process memory; they cannot be recovered after a
    restart.
    """
    message_ids: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_results(cls, results: Iterable[DeliveryResult]) -> "MessageHandle":
        return cls({
            r.channel: r.message_id
            for r in results
            if r.ok and r.message_id is not None
        })

    @property
    def channels(self) -> list[str]:
        return list(self.message_ids)

    def only(self, channels: Iterable[str]) -> "MessageHandle":
        """Restrict the handle to the given channels."""
        keep = set(channels)
        return MessageHandle({c: m for c, m in self.message_ids.items() if c in keep})

    def __bool__(self) -> bool:
        return bool(self.message_ids)


class BaseNotifier(ABC):
    """Base class for messaging channels that can send and later edit alerts."""

    def __init__(
        self,
        name: str,
        max_retries: int = 2,
        retry_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.name = name
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.logger = structlog.get_logger(f"rsi_watch.delivery.{name}")
        self._sleep = sleep
        self._delivery_count = 0
        self._error_count = 0

    @abstractmethod
    def send(self, channel: str, text: str) -> int:
        """
        Send a new message.

        Returns:
            Message id usable with ``edit``

        Raises:
            NotificationError: on failure
        """

    @abstractmethod
    def edit(self, channel: str, message_id: int, text: str) -> None:
        """
        Replace the text of a previously sent message.

        Raises:
            NotificationError: on failure
        """

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the messaging channel is reachable."""

    def call_with_retry(self, operation: str, channel: str, func: Callable[..., T], *args: Any) -> T:
        """
        Run a send or edit with bounded retries.

        Permanent errors are raised immediately; retryable and unexpected
        errors are retried ``max_retries`` times before the last one is
        raised.
        """
        attempt = 0

        while True:
            try:
                return func(*args)
            except NotificationPermanentError:
                raise
            except NotificationError as e:
                last_error: Exception = e
            except Exception as e:
                # Unknown error - treat as retryable
                last_error = e

            attempt += 1
            if attempt > self.max_retries:
                if isinstance(last_error, NotificationError):
                    raise last_error
                raise NotificationRetryableError(
                    f"{operation} failed: {last_error}",
                    channel=channel,
                    operation=operation
                ) from last_error

            self.logger.warning(
                "Notification attempt failed, retrying",
                operation=operation,
                channel=channel,
                attempt=attempt,
                retry_in_seconds=self.retry_delay,
                error=str(last_error)
            )
            self._sleep(self.retry_delay)

    def broadcast(self, channels: Iterable[str], text: str) -> list[DeliveryResult]:
        """Send ``text`` to every channel, collecting one result per channel."""
        return [
            self._attempt("send", channel, self.send, channel, text)
            for channel in channels
        ]

    def edit_all(self, handle: MessageHandle, text: str) -> list[DeliveryResult]:
        """Edit every message referenced by ``handle``."""
        return [
            self._attempt("edit", channel, self.edit, channel, message_id, text)
            for channel, message_id in handle.message_ids.items()
        ]

    def _attempt(self, operation: str, channel: str, func: Callable[..., Any], *args: Any) -> DeliveryResult:
        start_time = time.monotonic()
        try:
            message_id = self.call_with_retry(operation, channel, func, *args)
        except NotificationError as e:
            self._error_count += 1
            self.logger.error(
                "Notification failed",
                operation=operation,
                channel=channel,
                error=str(e),
                permanent=not e.recoverable
            )
            return DeliveryResult(
                status=DeliveryStatus.FAILED if not e.recoverable else DeliveryStatus.DEAD_LETTER,
                channel=channel,
                message=str(e),
                error=e
            )

        self._delivery_count += 1
        if operation == "edit":
            message_id = args[1]

        return DeliveryResult(
            status=DeliveryStatus.SUCCESS,
            channel=channel,
            message_id=message_id,
            delivery_time_ms=int((time.monotonic() - start_time) * 1000)
        )

    def get_stats(self) -> dict[str, Any]:
        """Get delivery statistics."""
        return {
            "name": self.name,
            "delivery_count": self._delivery_count,
            "error_count": self._error_count,
            "success_rate": (
                self._delivery_count / (self._delivery_count + self._error_count)
                if (self._delivery_count + self._error_count) > 0 else 0.0
            )
        }
