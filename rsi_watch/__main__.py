"""Process entry point: load configuration, then run the monitor until stopped."""

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

import structlog

from .config.loader import ConfigLoader
from .data.gateway import BinanceMarketData
from .delivery.telegram import TelegramNotifier
from .engine import MonitorEngine
from .errors import ConfigurationError
from .logging.config import configure_logging
from .persistence.audit_log import AuditLog


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rsi-watch",
        description="Multi-timeframe RSI buy-signal monitor with Telegram alerts"
    )
    parser.add_argument("--config", type=Path, default=None,
                        help="YAML config file (default: $RSI_WATCH_CONFIG)")
    parser.add_argument("--env-file", type=Path, default=None,
                        help="dotenv file with secrets (default: .env)")
    parser.add_argument("--once", action="store_true",
                        help="run a single evaluation cycle and exit")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    try:
        config = ConfigLoader.create(config_path=args.config, env_file=args.env_file).load()
    except ConfigurationError as e:
        print(f"rsi-watch: configuration error: {e}", file=sys.stderr)
        return 1

    configure_logging(level=config.logging.level, format_json=config.logging.format_json)
    logger = structlog.get_logger("rsi_watch")

    notifier = TelegramNotifier(config.telegram)
    if not notifier.health_check():
        logger.warning("Telegram bot token check failed, alerts may not be delivered")

    engine = MonitorEngine(
        config=config,
        gateway=BinanceMarketData(config.market_data),
        notifier=notifier,
        audit_log=AuditLog(config.audit.path, enabled=config.audit.enabled),
    )

    stop_event = threading.Event()

    def _request_stop(signum, _frame):
        logger.info("Stop requested", signal=signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    logger.info(
        "Starting monitor",
        symbols=engine.symbols,
        interval_seconds=config.scheduler.interval_seconds,
        cooldown_seconds=config.position.cooldown_seconds,
        markup_factor=config.position.markup_factor
    )
    engine.run_forever(stop_event, max_cycles=1 if args.once else None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
