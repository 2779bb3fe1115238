"""Default configuration parameters for the RSI monitor."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ThresholdRule:
    """Inclusive RSI bound for one timeframe."""
    timeframe: str
    min_value: float
    max_value: float

    def contains(self, value: float) -> bool:
        return self.min_value <= value <= self.max_value


@dataclass(frozen=True)
class PriceChangeGate:
    """Inclusive bound on the 24h price change percent."""
    min_pct: float
    max_pct: float

    def contains(self, value: float) -> bool:
        return self.min_pct <= value <= self.max_pct


DEFAULT_THRESHOLDS: tuple[ThresholdRule, ...] = (
    ThresholdRule("1d", 0.0, 100.0),
    ThresholdRule("4h", 45.0, 70.0),
    ThresholdRule("15m", 0.0, 80.0),
    ThresholdRule("1m", 30.0, 50.0),
)


@dataclass(frozen=True)
class RSIParams:
    """RSI calculation parameters."""
    period: int = 14


@dataclass(frozen=True)
class SignalParams:
    """Rule table evaluated against per-timeframe RSI values."""
    thresholds: tuple[ThresholdRule, ...] = DEFAULT_THRESHOLDS
    price_change: Optional[PriceChangeGate] = None   # 24h change gate, off by default

    @property
    def timeframes(self) -> tuple[str, ...]:
        return tuple(rule.timeframe for rule in self.thresholds)


@dataclass(frozen=True)
class PositionParams:
    """Hypothetical position tracking parameters."""
    markup_factor: float = 1.011                     # target = entry * markup_factor
    cooldown_seconds: int = 30 * 60                  # min gap between signals per symbol
    max_completion_attempts: int = 5                 # completion edits before expiring
    entry_timeframe: str = "1m"                      # series whose last close is the entry


@dataclass(frozen=True)
class SchedulerParams:
    """Evaluation loop parameters."""
    interval_seconds: float = 60.0
    max_workers: int = 8                             # concurrent per-symbol fetches


@dataclass(frozen=True)
class UniverseParams:
    """Tracked symbol universe."""
    quote_suffix: str = "USDT"
    tracked_symbols: tuple[str, ...] = (
        "BTCUSDT", "ETHUSDT", "BNBUSDT", "SOLUSDT", "XRPUSDT",
        "ADAUSDT", "DOGEUSDT", "AVAXUSDT", "LINKUSDT", "DOTUSDT",
    )
    excluded_symbols: tuple[str, ...] = ("USDCUSDT", "FDUSDUSDT", "TUSDUSDT")


@dataclass(frozen=True)
class MarketDataParams:
    """Exchange public REST API parameters."""
    base_url: str = "https://api.binance.com"
    timeout_seconds: float = 10.0
    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0
    reference_symbol: Optional[str] = "BTCUSDT"      # market context captured at entry/exit


@dataclass(frozen=True)
class TelegramParams:
    """Messaging channel parameters. Secrets come from the environment."""
    bot_token: Optional[str] = None
    chat_ids: tuple[str, ...] = ()
    api_base_url: str = "https://api.telegram.org"
    timeout_seconds: float = 10.0
    retry_attempts: int = 2
    retry_delay_seconds: float = 1.0


@dataclass(frozen=True)
class AuditParams:
    """Append-only audit trail parameters."""
    enabled: bool = True
    path: str = "logs/rsi_watch.jsonl"


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False


@dataclass(frozen=True)
class MonitorConfig:
    """Complete monitor configuration."""
    rsi: RSIParams = field(default_factory=RSIParams)
    signal: SignalParams = field(default_factory=SignalParams)
    position: PositionParams = field(default_factory=PositionParams)
    scheduler: SchedulerParams = field(default_factory=SchedulerParams)
    universe: UniverseParams = field(default_factory=UniverseParams)
    market_data: MarketDataParams = field(default_factory=MarketDataParams)
    telegram: TelegramParams = field(default_factory=TelegramParams)
    audit: AuditParams = field(default_factory=AuditParams)
    logging: LoggingParams = field(default_factory=LoggingParams)


def get_default_config() -> MonitorConfig:
    """Get the default configuration instance."""
    return MonitorConfig(
        rsi=RSIParams(),
        signal=SignalParams(),
        position=PositionParams(),
        scheduler=SchedulerParams(),
        universe=UniverseParams(),
        market_data=MarketDataParams(),
        telegram=TelegramParams(),
        audit=AuditParams(),
        logging=LoggingParams(),
    )
