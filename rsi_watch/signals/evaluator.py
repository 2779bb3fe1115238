"""Threshold rule evaluation for buy signals."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from ..config.defaults import SignalParams


@dataclass(frozen=True)
class GateResult:
    """Outcome of a rule table evaluation."""
    passed: bool
    reason: str
    failed_timeframe: Optional[str] = None


def check_conditions(
    rsi_by_timeframe: Mapping[str, Optional[float]],
    price_change_pct: Optional[float],
    params: SignalParams
) -> GateResult:
    """
    Evaluate every rule and report the first one that fails.

    A missing RSI for any configured timeframe fails closed. When a price
    change gate is configured a missing change value fails closed too.
    All bounds are inclusive.
    """
    for rule in params.thresholds:
        value = rsi_by_timeframe.get(rule.timeframe)
        if value is None:
            return GateResult(
                passed=False,
                reason=f"rsi_{rule.timeframe} unavailable",
                failed_timeframe=rule.timeframe
            )
        if not rule.contains(value):
            return GateResult(
                passed=False,
                reason=(
                    f"rsi_{rule.timeframe}={value:.2f} outside "
                    f"[{rule.min_value:g}, {rule.max_value:g}]"
                ),
                failed_timeframe=rule.timeframe
            )

    gate = params.price_change
    if gate is not None:
        if price_change_pct is None:
            return GateResult(passed=False, reason="price change unavailable")
        if not gate.contains(price_change_pct):
            return GateResult(
                passed=False,
                reason=(
                    f"price_change={price_change_pct:.2f}% outside "
                    f"[{gate.min_pct:g}, {gate.max_pct:g}]"
                )
            )

    return GateResult(passed=True, reason="all thresholds satisfied")


def evaluate_conditions(
    rsi_by_timeframe: Mapping[str, Optional[float]],
    price_change_pct: Optional[float],
    params: SignalParams
) -> bool:
    """True iff every configured rule is satisfied."""
    return check_conditions(rsi_by_timeframe, price_change_pct, params).passed
