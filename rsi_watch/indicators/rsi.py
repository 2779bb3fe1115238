"""RSI (Relative Strength Index) calculations"""

from collections.abc import Mapping, Sequence
from typing import Optional


def compute_rsi(prices: Sequence[float], period: int = 14) -> Optional[float]:
    """
    Calculate RSI from simple average gains and losses.

    RS = avg_gain / avg_loss over the last ``period`` price changes
    RSI = 100 - 100 / (1 + RS)

    Only the trailing ``period + 1`` closes are used. When there were no
    losses the result is exactly 100, which includes a completely flat
    series (no gains and no losses).

    Args:
        prices: Closing prices in chronological order (oldest first)
        period: Number of price changes to average (default 14)

    Returns:
        RSI value in [0, 100] or None if insufficient data
    """
    if period <= 0:
        raise ValueError(f"RSI period must be positive, got {period}")

    if len(prices) < period + 1:
        return None

    window = prices[-(period + 1):]

    gains = 0.0
    losses = 0.0
    for i in range(1, period + 1):
        diff = window[i] - window[i - 1]
        if diff > 0:
            gains += diff
        elif diff < 0:
            losses -= diff

    avg_gain = gains / period
    avg_loss = losses / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def compute_rsi_by_timeframe(
    closes_by_timeframe: Mapping[str, Sequence[float]],
    period: int = 14
) -> dict[str, Optional[float]]:
    """
    Calculate RSI for every timeframe series.

    Args:
        closes_by_timeframe: Closing prices keyed by timeframe label
        period: RSI period applied to every series

    Returns:
        RSI value (or None) keyed by timeframe label
    """
    return {
        timeframe: compute_rsi(closes, period)
        for timeframe, closes in closes_by_timeframe.items()
    }
