"""
Position tracking data models.

This module defines immutable data structures for hypothetical positions,
their completion outcome, and the per-cycle market snapshot of a symbol.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from ..delivery.base import MessageHandle
from ..utils.time import time_elapsed_seconds


class PositionStatus(str, Enum):
    """Lifecycle of a tracked position. Absent positions are not stored."""
    OPEN = "open"
    TARGET_REACHED = "target_reached"      # closed, completion edit pending


def calculate_drop_percent(entry_price: float, lowest_price: float) -> float:
    """Percent move from entry to the lowest observed price (<= 0 when price only rose)."""
    return (lowest_price - entry_price) / entry_price * 100


@dataclass(frozen=True)
class SymbolSnapshot:
    """Market data for one symbol gathered during one evaluation cycle."""

    symbol: str
    fetched_at: datetime
    closes: Mapping[str, Sequence[float]] = field(default_factory=dict)
    rsi: Mapping[str, Optional[float]] = field(default_factory=dict)
    last_close: Optional[float] = None           # latest close of the entry timeframe
    price_change_pct: Optional[float] = None     # 24h change, when fetched


@dataclass(frozen=True)
class CompletedPosition:
    """Outcome of a position whose target price was reached."""

    exit_price: float
    closed_at: datetime
    duration_seconds: float
    drop_pct: float
    reference_price: Optional[float] = None      # reference asset at close


@dataclass(frozen=True)
class OpenPosition:
    """One hypothetical trade in flight."""

    symbol: str
    entry_price: float
    target_price: float                          # fixed at creation
    opened_at: datetime
    lowest_price: float                          # running minimum since entry
    message: MessageHandle = field(default_factory=MessageHandle)

    # Context captured at entry
    rsi_snapshot: Mapping[str, Optional[float]] = field(default_factory=dict)
    price_change_pct: Optional[float] = None
    reference_price: Optional[float] = None

    status: PositionStatus = PositionStatus.OPEN
    completion: Optional[CompletedPosition] = None
    completion_attempts: int = 0

    @classmethod
    def create(
        cls,
        symbol: str,
        entry_price: float,
        markup_factor: float,
        opened_at: datetime,
        rsi_snapshot: Optional[Mapping[str, Optional[float]]] = None,
        price_change_pct: Optional[float] = None,
        reference_price: Optional[float] = None
    ) -> "OpenPosition":
        """Create a position with target = entry * markup_factor and lowest = entry."""
        return cls(
            symbol=symbol,
            entry_price=entry_price,
            target_price=entry_price * markup_factor,
            opened_at=opened_at,
            lowest_price=entry_price,
            rsi_snapshot=dict(rsi_snapshot or {}),
            price_change_pct=price_change_pct,
            reference_price=reference_price,
        )

    @property
    def is_open(self) -> bool:
        return self.status == PositionStatus.OPEN

    @property
    def drop_pct(self) -> float:
        return calculate_drop_percent(self.entry_price, self.lowest_price)

    def with_message(self, message: MessageHandle) -> "OpenPosition":
        """Attach the handle of the opening alert."""
        return replace(self, message=message)

    def with_observed_price(self, price: float) -> "OpenPosition":
        """Fold a new price into the running minimum."""
        if price >= self.lowest_price:
            return self
        return replace(self, lowest_price=price)

    def with_target_reached(
        self,
        exit_price: float,
        closed_at: datetime,
        reference_price: Optional[float] = None
    ) -> "OpenPosition":
        """Freeze the outcome figures; later retries reuse them unchanged."""
        return replace(
            self,
            status=PositionStatus.TARGET_REACHED,
            completion=CompletedPosition(
                exit_price=exit_price,
                closed_at=closed_at,
                duration_seconds=time_elapsed_seconds(self.opened_at, closed_at),
                drop_pct=self.drop_pct,
                reference_price=reference_price,
            ),
        )

    def with_completion_failure(self, pending: MessageHandle) -> "OpenPosition":
        """Record a failed completion edit; only ``pending`` still needs editing."""
        return replace(
            self,
            message=pending,
            completion_attempts=self.completion_attempts + 1,
        )
