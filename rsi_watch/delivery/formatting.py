"""Alert text rendering for Telegram MarkdownV2."""

import re
from collections.abc import Mapping
from typing import Optional

from ..state.models import OpenPosition
from ..utils.time import format_duration, format_timestamp

MARKDOWN_V2_RESERVED = "_*[]()~`>#+-=|{}.!"

_RESERVED_PATTERN = re.compile("([" + re.escape(MARKDOWN_V2_RESERVED) + "])")


def escape_markdown_v2(text: str) -> str:
    """Prefix every MarkdownV2 reserved character with a backslash."""
    return _RESERVED_PATTERN.sub(r"\\\1", text)


def format_price(price: float) -> str:
    """Up to 8 decimals, trailing zeros dropped: 101.1, 95, 0.00001234."""
    text = f"{price:.8f}".rstrip("0").rstrip(".")
    return text or "0"


def format_rsi(rsi_by_timeframe: Mapping[str, Optional[float]]) -> str:
    parts = []
    for timeframe, value in rsi_by_timeframe.items():
        shown = "n/a" if value is None else f"{value:.2f}"
        parts.append(f"{timeframe} {shown}")
    return " | ".join(parts)


def _field(label: str, value: str) -> str:
    return f"*{escape_markdown_v2(label)}:* {escape_markdown_v2(value)}"


def render_signal_message(position: OpenPosition, reference_symbol: Optional[str] = None) -> str:
    """Opening alert for a freshly signalled position."""
    markup_pct = (position.target_price / position.entry_price - 1) * 100

    lines = [
        f"🚀 *{escape_markdown_v2(position.symbol)}* {escape_markdown_v2('buy signal')}",
        "",
        _field("Entry", format_price(position.entry_price)),
        _field("Target", f"{format_price(position.target_price)} (+{markup_pct:.2f}%)"),
        _field("RSI", format_rsi(position.rsi_snapshot)),
    ]

    if position.price_change_pct is not None:
        lines.append(_field("24h change", f"{position.price_change_pct:+.2f}%"))

    if reference_symbol and position.reference_price is not None:
        lines.append(_field(reference_symbol, format_price(position.reference_price)))

    lines.append(_field("Time", format_timestamp(position.opened_at)))
    return "\n".join(lines)


def render_completion_message(position: OpenPosition, reference_symbol: Optional[str] = None) -> str:
    """Opening alert extended with the frozen outcome of a completed position."""
    completion = position.completion
    if completion is None:
        raise ValueError(f"Position {position.symbol} has not reached its target")

    lines = [
        render_signal_message(position, reference_symbol),
        "",
        f"✅ *{escape_markdown_v2('Target reached')}*",
        _field("Exit", format_price(completion.exit_price)),
        _field("Duration", format_duration(completion.duration_seconds)),
        _field("Max drawdown", f"{completion.drop_pct:.2f}%"),
    ]

    if reference_symbol and completion.reference_price is not None:
        lines.append(_field(f"{reference_symbol} at exit", format_price(completion.reference_price)))

    lines.append(_field("Closed", format_timestamp(completion.closed_at)))
    return "\n".join(lines)
