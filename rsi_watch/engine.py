"""
Main evaluation loop coordinator.

Every tick runs two passes over shared state owned by the engine:

1. Signal scan: fetch closes per timeframe for every tracked symbol
   (concurrently), compute RSI, evaluate the rule table and open a position
   for symbols that pass and are neither tracked nor cooling down.
2. Position scan: fetch the latest price of every tracked position, update
   its running low and deliver the completion alert once the target is hit.

Fetching is concurrent; every state decision happens on the loop thread, one
symbol at a time, and ticks never overlap.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import structlog

from .config.defaults import MonitorConfig
from .config.universe import filter_universe
from .data.gateway import MarketDataGateway
from .delivery.base import BaseNotifier, MessageHandle
from .delivery.formatting import render_completion_message, render_signal_message
from .errors import MarketDataError, MonitorError
from .indicators.rsi import compute_rsi_by_timeframe
from .logging.config import get_gating_logger, log_gate_decision
from .persistence.audit_log import AuditLog
from .signals.evaluator import check_conditions
from .state.models import OpenPosition, PositionStatus, SymbolSnapshot
from .state.tracker import PositionTracker
from .utils.time import Clock, utc_now

logger = structlog.get_logger(__name__)
gating_logger = get_gating_logger(__name__)

_UNSET = object()


@dataclass
class CycleReport:
    """What happened during one tick."""
    started_at: datetime
    evaluated: list[str] = field(default_factory=list)
    fetch_failures: list[str] = field(default_factory=list)
    opened: list[str] = field(default_factory=list)
    suppressed: list[str] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)
    expired: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class MonitorEngine:
    """
    Drives the repeating evaluation cycle over the tracked symbol universe.

    Manages the evaluation pipeline:
    Market Data -> RSI -> Rule Table -> Position Tracker -> Notifier
    """

    def __init__(
        self,
        config: MonitorConfig,
        gateway: MarketDataGateway,
        notifier: BaseNotifier,
        channels: Optional[list[str]] = None,
        audit_log: Optional[AuditLog] = None,
        tracker: Optional[PositionTracker] = None,
        clock: Clock = utc_now
    ) -> None:
        self.config = config
        self.gateway = gateway
        self.notifier = notifier
        self.channels = list(channels if channels is not None else config.telegram.chat_ids)
        self.audit_log = audit_log
        self.tracker = tracker or PositionTracker(config.position)
        self.clock = clock
        self.logger = logger

        self.symbols = filter_universe(
            config.universe.tracked_symbols,
            config.universe.excluded_symbols,
            config.universe.quote_suffix
        )
        self.timeframes = self._required_timeframes()
        self._reference_price_cache: object = _UNSET

        self.logger.info(
            "Monitor engine initialized",
            symbols=len(self.symbols),
            timeframes=self.timeframes,
            channels=len(self.channels)
        )

    def run_forever(
        self,
        stop_event: Optional[threading.Event] = None,
        max_cycles: Optional[int] = None
    ) -> int:
        """
        Run cycles back to back, one every ``interval_seconds``.

        A cycle starts only after the previous one finished; when a cycle
        overruns the interval the next starts immediately.

        Returns:
            Number of completed cycles
        """
        stop_event = stop_event or threading.Event()
        interval = self.config.scheduler.interval_seconds
        cycles = 0

        while not stop_event.is_set():
            started = time.monotonic()
            try:
                self.run_cycle()
            except Exception:
                self.logger.exception("Evaluation cycle failed")

            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break

            stop_event.wait(max(0.0, interval - (time.monotonic() - started)))

        self.logger.info("Monitor stopped", cycles=cycles, delivery=self.notifier.get_stats())
        return cycles

    def run_cycle(self) -> CycleReport:
        """Run the signal scan followed by the position scan."""
        report = CycleReport(started_at=self.clock())
        self._reference_price_cache = _UNSET

        if self.symbols:
            self.logger.info("Monitoring started", symbols=len(self.symbols))
            snapshots = self.fetch_snapshots(self.symbols, report)
            for symbol in self.symbols:
                snapshot = snapshots.get(symbol)
                if snapshot is None:
                    continue
                try:
                    self.process_signal(snapshot, report)
                except Exception as e:
                    report.errors.append(symbol)
                    self.logger.exception("Signal processing failed", symbol=symbol, error=str(e))
        else:
            self.logger.warning("No tracked symbols match the universe filter")

        self.check_open_positions(report)

        self.logger.info(
            "Monitoring completed",
            evaluated=len(report.evaluated),
            fetch_failures=len(report.fetch_failures),
            opened=report.opened,
            completed=report.completed,
            open_positions=len(self.tracker.positions)
        )
        return report

    def fetch_snapshot(self, symbol: str) -> SymbolSnapshot:
        """
        Gather closes for every required timeframe and compute RSI.

        Raises:
            MarketDataError: if any fetch fails
        """
        period = self.config.rsi.period
        closes = {
            timeframe: self.gateway.get_closing_prices(symbol, timeframe, period + 1)
            for timeframe in self.timeframes
        }

        price_change_pct = None
        if self.config.signal.price_change is not None:
            price_change_pct = self.gateway.get_ticker(symbol).price_change_pct

        entry_closes = closes.get(self.config.position.entry_timeframe)
        return SymbolSnapshot(
            symbol=symbol,
            fetched_at=self.clock(),
            closes=closes,
            rsi=compute_rsi_by_timeframe(closes, period),
            last_close=entry_closes[-1] if entry_closes else None,
            price_change_pct=price_change_pct,
        )

    def fetch_snapshots(self, symbols: list[str], report: CycleReport) -> dict[str, SymbolSnapshot]:
        """Fetch snapshots concurrently; failed symbols are logged and left out."""
        snapshots: dict[str, SymbolSnapshot] = {}
        workers = min(self.config.scheduler.max_workers, len(symbols)) or 1

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fetch") as pool:
            futures = {symbol: pool.submit(self.fetch_snapshot, symbol) for symbol in symbols}

            for symbol, future in futures.items():
                try:
                    snapshots[symbol] = future.result()
                except MonitorError as e:
                    report.fetch_failures.append(symbol)
                    self.logger.warning(
                        "Market data fetch failed, skipping symbol this cycle",
                        symbol=symbol,
                        timeframe=getattr(e, "timeframe", None),
                        error=str(e)
                    )
                except Exception as e:
                    report.errors.append(symbol)
                    self.logger.exception("Unexpected fetch error", symbol=symbol, error=str(e))

        return snapshots

    def process_signal(self, snapshot: SymbolSnapshot, report: CycleReport) -> Optional[OpenPosition]:
        """Evaluate one symbol's snapshot and open a position when it qualifies."""
        symbol = snapshot.symbol
        report.evaluated.append(symbol)

        if self.audit_log:
            self.audit_log.record_snapshot(snapshot)

        gate = check_conditions(snapshot.rsi, snapshot.price_change_pct, self.config.signal)
        log_gate_decision(
            gating_logger,
            gate_name="rsi_thresholds",
            passed=gate.passed,
            symbol=symbol,
            reason=gate.reason,
            context={"rsi": {k: _round(v) for k, v in snapshot.rsi.items()}}
        )
        if not gate.passed:
            return None

        now = self.clock()
        block_reason = self.tracker.open_block_reason(symbol, now)
        if block_reason:
            report.suppressed.append(symbol)
            self.logger.info("Signal suppressed", symbol=symbol, reason=block_reason)
            return None

        if snapshot.last_close is None:
            self.logger.warning(
                "No entry price available",
                symbol=symbol,
                entry_timeframe=self.config.position.entry_timeframe
            )
            return None

        draft = self.tracker.build_position(
            symbol,
            snapshot.last_close,
            now,
            rsi_snapshot=snapshot.rsi,
            price_change_pct=snapshot.price_change_pct,
            reference_price=self.reference_price(),
        )

        text = render_signal_message(draft, self.config.market_data.reference_symbol)
        handle = MessageHandle.from_results(self.notifier.broadcast(self.channels, text))
        if not handle:
            self.logger.error(
                "Opening alert not delivered to any channel, position not opened",
                symbol=symbol,
                entry_price=draft.entry_price
            )
            return None

        position = self.tracker.open_position(draft.with_message(handle))
        report.opened.append(symbol)
        if self.audit_log:
            self.audit_log.record_signal(position)
        return position

    def check_open_positions(self, report: CycleReport) -> None:
        """Update every tracked position and deliver due completion alerts."""
        for symbol in list(self.tracker.positions):
            try:
                self._check_position(symbol, report)
            except MarketDataError as e:
                report.fetch_failures.append(symbol)
                self.logger.warning("Price check failed", symbol=symbol, error=str(e))
            except Exception as e:
                report.errors.append(symbol)
                self.logger.exception("Position check failed", symbol=symbol, error=str(e))

    def _check_position(self, symbol: str, report: CycleReport) -> None:
        position = self.tracker.get(symbol)

        if position.status == PositionStatus.OPEN:
            price = self.gateway.get_ticker(symbol).last_price
            reference = self.reference_price() if price >= position.target_price else None
            position = self.tracker.observe_price(symbol, price, self.clock(), reference_price=reference)
            if position.status != PositionStatus.TARGET_REACHED:
                return

            if self.audit_log:
                self.audit_log.record_completion(position)

        self._deliver_completion(position, report)

    def _deliver_completion(self, position: OpenPosition, report: CycleReport) -> None:
        text = render_completion_message(position, self.config.market_data.reference_symbol)
        results = self.notifier.edit_all(position.message, text)
        pending = position.message.only(r.channel for r in results if not r.ok)

        if not pending:
            self.tracker.complete(position.symbol)
            report.completed.append(position.symbol)
            return

        if self.tracker.record_completion_failure(position.symbol, pending):
            report.expired.append(position.symbol)

    def reference_price(self) -> Optional[float]:
        """Last price of the reference asset, fetched at most once per cycle."""
        reference_symbol = self.config.market_data.reference_symbol
        if not reference_symbol:
            return None

        if self._reference_price_cache is _UNSET:
            try:
                self._reference_price_cache = self.gateway.get_ticker(reference_symbol).last_price
            except MonitorError as e:
                self.logger.warning(
                    "Reference price unavailable",
                    reference_symbol=reference_symbol,
                    error=str(e)
                )
                self._reference_price_cache = None

        return self._reference_price_cache  # type: ignore[return-value]

    def _required_timeframes(self) -> list[str]:
        timeframes = list(self.config.signal.timeframes)
        entry_timeframe = self.config.position.entry_timeframe
        if entry_timeframe not in timeframes:
            timeframes.append(entry_timeframe)
        return timeframes


def _round(value: Optional[float]) -> Optional[float]:
    return round(value, 2) if value is not None else None
