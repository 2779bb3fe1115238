"""Tests for BaseNotifier retry and fan-out behaviour."""

import pytest

from rsi_watch.delivery.base import DeliveryStatus, MessageHandle
from rsi_watch.errors import NotificationPermanentError, NotificationRetryableError

from conftest import FakeNotifier


class FlakyNotifier(FakeNotifier):
    """Fails the first ``failures`` sends with the given error type."""

    def __init__(self, failures, error_type=NotificationRetryableError, max_retries=2):
        super().__init__()
        self.max_retries = max_retries
        self.failures = failures
        self.error_type = error_type
        self.send_attempts = 0
        self.sleeps = []
        self._sleep = self.sleeps.append

    def send(self, channel, text):
        self.send_attempts += 1
        if self.send_attempts <= self.failures:
            raise self.error_type("boom", channel=channel, operation="send")
        return super().send(channel, text)


class TestMessageHandle:
    """Test MessageHandle helpers."""

    def test_empty_is_falsy(self):
        """Test an empty handle means nothing was delivered."""
        assert not MessageHandle()
        assert MessageHandle({"a": 1})

    def test_only(self):
        """Test restricting a handle to some channels."""
        handle = MessageHandle({"a": 1, "b": 2, "c": 3})

        assert handle.only(["b", "x"]).message_ids == {"b": 2}


class TestRetry:
    """Test call_with_retry."""

    def test_retryable_error_then_success(self):
        """Test a transient failure is retried."""
        notifier = FlakyNotifier(failures=2, max_retries=2)

        results = notifier.broadcast(["chat-1"], "hello")

        assert results[0].status == DeliveryStatus.SUCCESS
        assert notifier.send_attempts == 3
        assert notifier.sleeps == [0, 0]

    def test_retries_exhausted(self):
        """Test the last retryable error becomes a dead letter."""
        notifier = FlakyNotifier(failures=5, max_retries=2)

        results = notifier.broadcast(["chat-1"], "hello")

        assert results[0].status == DeliveryStatus.DEAD_LETTER
        assert isinstance(results[0].error, NotificationRetryableError)
        assert notifier.send_attempts == 3

    def test_permanent_error_not_retried(self):
        """Test permanent errors fail immediately."""
        notifier = FlakyNotifier(failures=5, error_type=NotificationPermanentError, max_retries=2)

        results = notifier.broadcast(["chat-1"], "hello")

        assert results[0].status == DeliveryStatus.FAILED
        assert notifier.send_attempts == 1

    def test_unexpected_error_wrapped(self):
        """Test unknown exceptions are retried and wrapped."""
        notifier = FlakyNotifier(failures=0, max_retries=1)

        def explode():
            raise RuntimeError("socket gone")

        with pytest.raises(NotificationRetryableError) as exc_info:
            notifier.call_with_retry("send", "chat-1", explode)

        assert "socket gone" in str(exc_info.value)
        assert len(notifier.sleeps) == 1


class TestFanOut:
    """Test broadcast and edit_all."""

    def test_broadcast_collects_message_ids(self, notifier):
        """Test one result per channel with its message id."""
        notifier.failing_send.add("chat-2")

        results = notifier.broadcast(["chat-1", "chat-2", "chat-3"], "hello")
        handle = MessageHandle.from_results(results)

        assert [r.ok for r in results] == [True, False, True]
        assert handle.message_ids == {"chat-1": 101, "chat-3": 102}

    def test_edit_all_reports_per_channel(self, notifier):
        """Test edits report the original message id on success."""
        notifier.failing_edit.add("chat-2")
        handle = MessageHandle({"chat-1": 7, "chat-2": 8})

        results = notifier.edit_all(handle, "done")

        assert results[0].ok and results[0].message_id == 7
        assert not results[1].ok
        assert notifier.edits == [("chat-1", 7, "done")]

    def test_stats(self, notifier):
        """Test delivery statistics."""
        notifier.failing_send.add("chat-2")
        notifier.broadcast(["chat-1", "chat-2"], "hello")

        stats = notifier.get_stats()
        assert stats["delivery_count"] == 1
        assert stats["error_count"] == 1
        assert stats["success_rate"] == 0.5
