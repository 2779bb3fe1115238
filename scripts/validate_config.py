#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path

from rsi_watch.config.loader import ConfigLoader
from rsi_watch.config.universe import filter_universe
from rsi_watch.errors import ConfigurationError


def main():
    """Main validation function."""
    config_path = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    print("🔍 Validating rsi-watch configuration...")

    try:
        config = ConfigLoader.create(config_path=config_path).load()
    except ConfigurationError as e:
        print("❌ Configuration is invalid:")
        for error in e.errors or [e]:
            print(f"  • {error}")
        return 1

    symbols = filter_universe(
        config.universe.tracked_symbols,
        config.universe.excluded_symbols,
        config.universe.quote_suffix
    )

    print("\n📊 Rule table:")
    for rule in config.signal.thresholds:
        print(f"  • {rule.timeframe}: [{rule.min_value}, {rule.max_value}]")
    if config.signal.price_change:
        gate = config.signal.price_change
        print(f"  • 24h change: [{gate.min_pct}%, {gate.max_pct}%]")

    print(f"\n📋 Monitoring {len(symbols)} symbols every {config.scheduler.interval_seconds}s")
    print(f"  • markup factor: {config.position.markup_factor}")
    print(f"  • cooldown: {config.position.cooldown_seconds}s")
    print(f"  • chats: {len(config.telegram.chat_ids)}")

    print("\n✅ Configuration is valid")
    return 0


if __name__ == "__main__":
    sys.exit(main())
