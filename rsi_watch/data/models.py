"""
Market data models.

Immutable snapshots of the exchange data the monitor consumes.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TickerSnapshot:
    """24h rolling ticker for one symbol."""
    symbol: str
    last_price: float
    price_change_pct: Optional[float] = None
