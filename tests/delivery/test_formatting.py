"""Tests for alert text rendering."""

from datetime import datetime, timedelta, timezone

import pytest

from rsi_watch.delivery.formatting import (
    escape_markdown_v2,
    format_price,
    format_rsi,
    render_completion_message,
    render_signal_message,
)
from rsi_watch.state.models import OpenPosition

OPENED_AT = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def position():
    return OpenPosition.create(
        symbol="SOL_USDT",
        entry_price=100.0,
        markup_factor=1.011,
        opened_at=OPENED_AT,
        rsi_snapshot={"1d": 50.0, "4h": 57.14, "15m": 50.0, "1m": 42.857},
        price_change_pct=-3.5,
        reference_price=42000.5,
    )


class TestEscapeMarkdownV2:
    """Test MarkdownV2 escaping."""

    def test_every_reserved_character(self):
        """Test each reserved character gets a backslash."""
        reserved = "_*[]()~`>#+-=|{}.!"

        escaped = escape_markdown_v2(reserved)

        assert escaped == "".join("\\" + c for c in reserved)

    def test_plain_text_untouched(self):
        """Test letters, digits, spaces and percent signs pass through."""
        assert escape_markdown_v2("BTCUSDT 42 % up") == "BTCUSDT 42 % up"

    def test_mixed(self):
        """Test a price and a symbol with an underscore."""
        assert escape_markdown_v2("SOL_USDT 101.1") == "SOL\\_USDT 101\\.1"


class TestFormatters:
    """Test value formatters."""

    @pytest.mark.parametrize("price, expected", [
        (101.1, "101.1"),
        (95.0, "95"),
        (0.00001234, "0.00001234"),
        (0.0, "0"),
    ])
    def test_format_price(self, price, expected):
        """Test trailing zeros are dropped."""
        assert format_price(price) == expected

    def test_format_rsi(self):
        """Test RSI values are listed in order with two decimals."""
        assert format_rsi({"4h": 57.142, "1m": None}) == "4h 57.14 | 1m n/a"


class TestRenderSignalMessage:
    """Test the opening alert."""

    def test_contains_entry_fields(self, position):
        """Test the alert lists symbol, entry, target, RSI and time."""
        text = render_signal_message(position)

        assert "*SOL\\_USDT*" in text
        assert "*Entry:* 100" in text
        assert "*Target:* 101\\.1 \\(\\+1\\.10%\\)" in text
        assert "1m 42\\.86" in text
        assert "*24h change:* \\-3\\.50%" in text
        assert "*Time:* 2024\\-01\\-01 12:00:00 UTC" in text

    def test_reference_price_optional(self, position):
        """Test the reference asset line appears only when named."""
        assert "42000" not in render_signal_message(position)
        assert "*BTCUSDT:* 42000\\.5" in render_signal_message(position, "BTCUSDT")

    def test_no_unescaped_dots_in_values(self, position):
        """Test numeric values never carry a bare reserved character."""
        text = render_signal_message(position, "BTCUSDT")
        for i, char in enumerate(text):
            if char == ".":
                assert text[i - 1] == "\\"


class TestRenderCompletionMessage:
    """Test the completion edit."""

    def test_extends_signal_message(self, position):
        """Test completion text starts with the opening alert."""
        closed = position.with_observed_price(95.0).with_target_reached(
            101.1, OPENED_AT + timedelta(minutes=4), reference_price=42100.0
        )

        text = render_completion_message(closed, "BTCUSDT")

        assert text.startswith(render_signal_message(closed, "BTCUSDT"))
        assert "Target reached" in text
        assert "*Exit:* 101\\.1" in text
        assert "*Duration:* 0h 4m 0s" in text
        assert "*Max drawdown:* \\-5\\.00%" in text
        assert "*BTCUSDT at exit:* 42100" in text
        assert "*Closed:* 2024\\-01\\-01 12:04:00 UTC" in text

    def test_requires_completion(self, position):
        """Test rendering an open position is an error."""
        with pytest.raises(ValueError):
            render_completion_message(position)
