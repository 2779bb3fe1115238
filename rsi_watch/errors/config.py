"""Fatal configuration errors raised during startup."""

from typing import Optional


class ConfigurationError(Exception):
    """Missing secrets or invalid parameters; the process must not start."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []
        self.recoverable = False

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        return base + ": " + "; ".join(str(e) for e in self.errors)
