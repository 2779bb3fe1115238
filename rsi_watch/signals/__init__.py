"""
Signal evaluation module.

Combines per-timeframe RSI values and the optional 24h price change against
a configured rule table to decide whether a buy signal fires.
"""

from ..config.defaults import PriceChangeGate, SignalParams, ThresholdRule
from .evaluator import GateResult, check_conditions, evaluate_conditions

__all__ = [
    "GateResult",
    "PriceChangeGate",
    "SignalParams",
    "ThresholdRule",
    "check_conditions",
    "evaluate_conditions",
]
