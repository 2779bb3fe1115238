"""Telegram Bot API alert delivery."""

import socket
import time
from typing import Any, Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import orjson

from ..config.defaults import TelegramParams
from ..errors import NotificationPermanentError, NotificationRetryableError
from .base import BaseNotifier

PARSE_MODE = "MarkdownV2"

# Telegram rejects an edit whose text is identical to the current one.
NOT_MODIFIED = "message is not modified"


class TelegramNotifier(BaseNotifier):
    """Sends and edits MarkdownV2 messages through the Bot API."""

    def __init__(
        self,
        config: TelegramParams,
        opener: Callable[..., Any] = urlopen,
        sleep: Callable[[float], None] = time.sleep
    ):
        super().__init__(
            "telegram",
            max_retries=config.retry_attempts,
            retry_delay=config.retry_delay_seconds,
            sleep=sleep
        )
        if not config.bot_token:
            raise NotificationPermanentError("Telegram bot token is not configured")

        self.config = config
        self._opener = opener
        self._api_url = f"{config.api_base_url.rstrip('/')}/bot{config.bot_token}"

    def send(self, channel: str, text: str) -> int:
        """Send a message and return its message id."""
        result = self._call("sendMessage", channel, {
            "chat_id": channel,
            "text": text,
            "parse_mode": PARSE_MODE,
            "disable_web_page_preview": True,
        })

        message_id = result.get("message_id") if isinstance(result, dict) else None
        if not isinstance(message_id, int):
            raise NotificationPermanentError(
                "sendMessage response has no message_id",
                channel=channel,
                operation="sendMessage"
            )

        self.logger.info("Alert sent", channel=channel, message_id=message_id)
        return message_id

    def edit(self, channel: str, message_id: int, text: str) -> None:
        """Replace the text of a sent message."""
        try:
            self._call("editMessageText", channel, {
                "chat_id": channel,
                "message_id": message_id,
                "text": text,
                "parse_mode": PARSE_MODE,
                "disable_web_page_preview": True,
            })
        except NotificationPermanentError as e:
            if NOT_MODIFIED not in str(e):
                raise
            self.logger.debug("Alert already up to date", channel=channel, message_id=message_id)
            return

        self.logger.info("Alert edited", channel=channel, message_id=message_id)

    def health_check(self) -> bool:
        """Check that the bot token is accepted."""
        try:
            self._call("getMe", None, {})
            return True
        except (NotificationPermanentError, NotificationRetryableError) as e:
            self.logger.warning("Health check failed", error=str(e))
            return False

    def _call(self, method: str, channel: Optional[str], body: dict[str, Any]) -> Any:
        """POST a Bot API method and return its ``result`` field."""
        data = orjson.dumps(body)
        req = Request(
            f"{self._api_url}/{method}",
            data=data,
            headers={
                "Content-Type": "application/json",
                "Content-Length": str(len(data)),
                "User-Agent": "rsi-watch/0.1",
            },
            method="POST"
        )

        try:
            with self._opener(req, timeout=self.config.timeout_seconds) as response:
                raw = response.read()

        except HTTPError as e:
            description = _error_description(e)
            error_msg = f"{method} HTTP {e.code}: {description}"

            # Rate limits and server errors are retryable
            if e.code == 429 or e.code >= 500:
                raise NotificationRetryableError(error_msg, channel=channel, operation=method)
            raise NotificationPermanentError(error_msg, channel=channel, operation=method)

        except (URLError, OSError, socket.timeout) as e:
            # The URL embeds the bot token; only the reason is reported
            reason = getattr(e, "reason", e)
            raise NotificationRetryableError(
                f"{method} network error: {reason}",
                channel=channel,
                operation=method
            )

        try:
            payload = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise NotificationRetryableError(
                f"{method} returned invalid JSON: {e}",
                channel=channel,
                operation=method
            )

        if not isinstance(payload, dict) or not payload.get("ok"):
            description = payload.get("description") if isinstance(payload, dict) else payload
            raise NotificationPermanentError(
                f"{method} rejected: {description}",
                channel=channel,
                operation=method
            )

        return payload.get("result", {})


def _error_description(error: HTTPError) -> str:
    """Telegram puts the reason in a JSON body; fall back to the HTTP reason."""
    try:
        payload = orjson.loads(error.read())
    except (orjson.JSONDecodeError, AttributeError, OSError, TypeError, ValueError):
        return str(error.reason)

    if isinstance(payload, dict) and payload.get("description"):
        return str(payload["description"])
    return str(error.reason)
