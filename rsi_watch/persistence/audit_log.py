"""
JSON Lines audit trail.

Every record is appended as one line and never read back by the running
process; the file exists for offline analysis of signals and outcomes.
Write failures are logged and do not interrupt the evaluation cycle.
"""

import fcntl
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import orjson
import structlog

from ..state.models import OpenPosition, SymbolSnapshot

RECORD_SNAPSHOT = "rsi_snapshot"
RECORD_SIGNAL = "signal"
RECORD_COMPLETION = "completion"


class AuditLog:
    """Appends audit records to a JSONL file."""

    def __init__(self, path: str, enabled: bool = True, create_dirs: bool = True):
        self.path = Path(path)
        self.enabled = enabled
        self.logger = structlog.get_logger(__name__)

        if enabled and create_dirs:
            self.path.parent.mkdir(parents=True, exist_ok=True)

    def record_snapshot(self, snapshot: SymbolSnapshot) -> None:
        """Per-symbol RSI values and price for one cycle."""
        self._append({
            "type": RECORD_SNAPSHOT,
            "timestamp": snapshot.fetched_at,
            "symbol": snapshot.symbol,
            "rsi": _rounded(snapshot.rsi),
            "price": snapshot.last_close,
            "price_change_pct": snapshot.price_change_pct,
        })

    def record_signal(self, position: OpenPosition) -> None:
        """A position opened by a buy signal."""
        self._append({
            "type": RECORD_SIGNAL,
            "timestamp": position.opened_at,
            "symbol": position.symbol,
            "rsi": _rounded(position.rsi_snapshot),
            "entry_price": position.entry_price,
            "target_price": position.target_price,
            "price_change_pct": position.price_change_pct,
            "reference_price": position.reference_price,
        })

    def record_completion(self, position: OpenPosition) -> None:
        """A position whose target price was reached."""
        completion = position.completion
        if completion is None:
            return

        self._append({
            "type": RECORD_COMPLETION,
            "timestamp": completion.closed_at,
            "symbol": position.symbol,
            "rsi_at_entry": _rounded(position.rsi_snapshot),
            "entry_price": position.entry_price,
            "exit_price": completion.exit_price,
            "lowest_price": position.lowest_price,
            "opened_at": position.opened_at,
            "duration_seconds": completion.duration_seconds,
            "drop_pct": round(completion.drop_pct, 4),
            "reference_price_entry": position.reference_price,
            "reference_price_exit": completion.reference_price,
        })

    def _append(self, record: dict[str, Any]) -> None:
        if not self.enabled:
            return

        try:
            line = orjson.dumps(record, option=orjson.OPT_APPEND_NEWLINE)
            with open(self.path, "ab") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                f.write(line)
        except (OSError, TypeError, orjson.JSONEncodeError) as e:
            self.logger.warning(
                "Audit record not written",
                record_type=record.get("type"),
                symbol=record.get("symbol"),
                output_path=str(self.path),
                error=str(e)
            )


def _rounded(values: Mapping[str, Optional[float]]) -> dict[str, Optional[float]]:
    return {k: (round(v, 4) if v is not None else None) for k, v in values.items()}
