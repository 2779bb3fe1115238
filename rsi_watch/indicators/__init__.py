"""Momentum indicators computed from closing-price series"""

from .rsi import compute_rsi, compute_rsi_by_timeframe

__all__ = [
    "compute_rsi",
    "compute_rsi_by_timeframe",
]
