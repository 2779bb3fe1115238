"""
In-memory position tracking for signalled symbols.

Per symbol the tracker moves between three situations:

    absent --signal--> OPEN --price >= target--> TARGET_REACHED --edit ok--> absent

TARGET_REACHED only exists while the completion alert has not been
delivered; the position keeps blocking new signals until it is removed,
either by a successful edit or after ``max_completion_attempts`` failures.

Signals are additionally gated by a per-symbol cooldown measured from the
last time a position was opened, whether or not that position is still
tracked.
"""

from datetime import datetime, timedelta
from typing import Optional

from ..config.defaults import PositionParams
from ..delivery.base import MessageHandle
from ..errors import StateTransitionError
from ..logging.config import get_state_logger, log_state_transition
from .models import OpenPosition, PositionStatus

state_logger = get_state_logger(__name__)

ABSENT = "absent"


class PositionTracker:
    """Owns the open-position and cooldown mappings for one scheduler."""

    def __init__(self, params: Optional[PositionParams] = None):
        self.params = params or PositionParams()
        self.logger = state_logger
        self.positions: dict[str, OpenPosition] = {}
        self.cooldowns: dict[str, datetime] = {}

    @property
    def cooldown(self) -> timedelta:
        return timedelta(seconds=self.params.cooldown_seconds)

    def get(self, symbol: str) -> Optional[OpenPosition]:
        return self.positions.get(symbol)

    def has_position(self, symbol: str) -> bool:
        return symbol in self.positions

    def in_cooldown(self, symbol: str, now: datetime) -> bool:
        """True while less than the cooldown window has passed since the last signal."""
        last_signal = self.cooldowns.get(symbol)
        if last_signal is None:
            return False
        return now - last_signal < self.cooldown

    def cooldown_remaining(self, symbol: str, now: datetime) -> float:
        """Seconds until ``symbol`` may signal again (0 when not cooling down)."""
        last_signal = self.cooldowns.get(symbol)
        if last_signal is None:
            return 0.0
        return max((last_signal + self.cooldown - now).total_seconds(), 0.0)

    def open_block_reason(self, symbol: str, now: datetime) -> Optional[str]:
        """Why a new position may not be opened for ``symbol``, or None if it may."""
        if self.has_position(symbol):
            return f"position already {self.positions[symbol].status.value}"
        if self.in_cooldown(symbol, now):
            return f"cooldown active for {self.cooldown_remaining(symbol, now):.0f}s"
        return None

    def build_position(
        self,
        symbol: str,
        entry_price: float,
        now: datetime,
        **context
    ) -> OpenPosition:
        """Prepare a position for ``symbol`` without tracking it yet."""
        return OpenPosition.create(
            symbol=symbol,
            entry_price=entry_price,
            markup_factor=self.params.markup_factor,
            opened_at=now,
            **context
        )

    def open_position(self, position: OpenPosition) -> OpenPosition:
        """
        Start tracking ``position`` and start its symbol's cooldown.

        Raises:
            StateTransitionError: if the symbol is already tracked or the
                position has no message handle to edit on completion
        """
        symbol = position.symbol

        if self.has_position(symbol):
            raise StateTransitionError(
                f"Position already tracked for {symbol}",
                current_state=self.positions[symbol].status.value,
                attempted_transition=f"{ABSENT}->{PositionStatus.OPEN.value}"
            )

        if not position.message:
            raise StateTransitionError(
                f"Refusing to open {symbol} without a delivered alert",
                current_state=ABSENT,
                attempted_transition=f"{ABSENT}->{PositionStatus.OPEN.value}"
            )

        self.positions[symbol] = position
        self.cooldowns[symbol] = position.opened_at

        log_state_transition(
            self.logger,
            symbol=symbol,
            from_state=ABSENT,
            to_state=PositionStatus.OPEN.value,
            trigger="buy_signal",
            context={
                "entry_price": position.entry_price,
                "target_price": position.target_price,
                "opened_at": position.opened_at.isoformat(),
            }
        )
        return position

    def observe_price(
        self,
        symbol: str,
        price: float,
        now: datetime,
        reference_price: Optional[float] = None
    ) -> OpenPosition:
        """
        Apply the latest price to an open position.

        Lowers the running minimum when ``price`` is below it and freezes the
        outcome when ``price`` reaches the target. Positions already past
        their target are returned unchanged.
        """
        position = self._require(symbol)
        if not position.is_open:
            return position

        position = position.with_observed_price(price)

        if price >= position.target_price:
            position = position.with_target_reached(
                exit_price=price,
                closed_at=now,
                reference_price=reference_price
            )
            log_state_transition(
                self.logger,
                symbol=symbol,
                from_state=PositionStatus.OPEN.value,
                to_state=PositionStatus.TARGET_REACHED.value,
                trigger="target_price",
                context={
                    "price": price,
                    "target_price": position.target_price,
                    "lowest_price": position.lowest_price,
                    "drop_pct": round(position.completion.drop_pct, 4),
                    "duration_seconds": position.completion.duration_seconds,
                }
            )

        self.positions[symbol] = position
        return position

    def complete(self, symbol: str) -> OpenPosition:
        """Remove a position whose completion alert was delivered."""
        position = self._require(symbol)
        if position.status != PositionStatus.TARGET_REACHED:
            raise StateTransitionError(
                f"Cannot complete {symbol} before its target is reached",
                current_state=position.status.value,
                attempted_transition=f"{position.status.value}->{ABSENT}"
            )

        del self.positions[symbol]
        log_state_transition(
            self.logger,
            symbol=symbol,
            from_state=PositionStatus.TARGET_REACHED.value,
            to_state=ABSENT,
            trigger="completion_delivered",
            context={"attempts": position.completion_attempts + 1}
        )
        return position

    def record_completion_failure(self, symbol: str, pending: MessageHandle) -> bool:
        """
        Keep the position for another completion attempt.

        Returns:
            True when the attempt budget is exhausted and the position was
            dropped without its completion alert
        """
        position = self._require(symbol).with_completion_failure(pending)

        if position.completion_attempts >= self.params.max_completion_attempts:
            del self.positions[symbol]
            self.logger.error(
                "Completion alert undeliverable, position expired",
                symbol=symbol,
                attempts=position.completion_attempts,
                pending_channels=pending.channels
            )
            return True

        self.positions[symbol] = position
        self.logger.warning(
            "Completion alert failed, will retry next cycle",
            symbol=symbol,
            attempts=position.completion_attempts,
            max_attempts=self.params.max_completion_attempts,
            pending_channels=pending.channels
        )
        return False

    def _require(self, symbol: str) -> OpenPosition:
        position = self.positions.get(symbol)
        if position is None:
            raise StateTransitionError(
                f"No position tracked for {symbol}",
                current_state=ABSENT
            )
        return position
