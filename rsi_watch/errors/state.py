"""Position state machine errors."""

from typing import Optional, Dict, Any


class StateTransitionError(Exception):
    """Invalid position transition that would corrupt tracked state."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.current_state = current_state
        self.attempted_transition = attempted_transition
        self.context = context or {}
        self.recoverable = False
