"""Configuration loader: defaults, then YAML file, then environment."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from ..errors import ConfigurationError
from .defaults import (
    AuditParams,
    LoggingParams,
    MarketDataParams,
    MonitorConfig,
    PositionParams,
    PriceChangeGate,
    RSIParams,
    SchedulerParams,
    SignalParams,
    TelegramParams,
    ThresholdRule,
    UniverseParams,
    get_default_config,
)
from .validation import ConfigValidator

CONFIG_PATH_ENV = "RSI_WATCH_CONFIG"

# Keys whose value replaces the default wholesale instead of deep-merging.
REPLACE_KEYS = frozenset({"thresholds"})

_TRUTHY = {"1", "true", "yes", "on"}


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


# environment variable -> (section, key, converter)
ENV_OVERRIDES = {
    "TELEGRAM_BOT_TOKEN": ("telegram", "bot_token", str.strip),
    "TELEGRAM_CHAT_IDS": ("telegram", "chat_ids", _split_list),
    "MARKET_DATA_BASE_URL": ("market_data", "base_url", str.strip),
    "TRACKED_PAIRS": ("universe", "tracked_symbols", _split_list),
    "EXCLUDED_PAIRS": ("universe", "excluded_symbols", _split_list),
    "LOG_LEVEL": ("logging", "level", str.strip),
    "LOG_JSON": ("logging", "format_json", lambda raw: raw.strip().lower() in _TRUTHY),
    "AUDIT_LOG_PATH": ("audit", "path", str.strip),
}


@dataclass(frozen=True)
class ConfigLoader:
    """Builds a MonitorConfig with defaults < YAML file < environment precedence."""

    config_path: Optional[Path]
    environ: Mapping[str, str]
    defaults: MonitorConfig

    @classmethod
    def create(
        cls,
        config_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[Path] = None
    ) -> "ConfigLoader":
        """
        Create a ConfigLoader instance.

        When no explicit environment mapping is given, a ``.env`` file is
        loaded into the process environment first.
        """
        if environ is None:
            load_dotenv(env_file)
            environ = os.environ

        if config_path is None and environ.get(CONFIG_PATH_ENV):
            config_path = Path(environ[CONFIG_PATH_ENV])

        return cls(
            config_path=config_path,
            environ=environ,
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load YAML overrides. An explicitly configured file must exist."""
        if self.config_path is None:
            return {}

        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path) as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}")

        if file_config is None:
            return {}
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"Config file {self.config_path} must contain a mapping")

        return file_config

    def load_env_config(self) -> dict[str, Any]:
        """Collect overrides from environment variables."""
        overrides: dict[str, Any] = {}

        for env_name, (section, key, convert) in ENV_OVERRIDES.items():
            raw = self.environ.get(env_name)
            if raw is None or raw == "":
                continue
            overrides.setdefault(section, {})[key] = convert(raw)

        return overrides

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Environment variables (highest priority)
        2. YAML config file
        3. Global defaults (lowest priority)

        ``overrides`` are applied last; tests use them to inject values.
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_file_config())
        config = self._deep_merge(config, self.load_env_config())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(
        self,
        overrides: Optional[dict[str, Any]] = None,
        require_secrets: bool = True
    ) -> MonitorConfig:
        """
        Load, validate and build the configuration.

        Raises:
            ConfigurationError: on any validation problem or missing secret
        """
        config = self.merge_config(overrides)

        errors = ConfigValidator.validate_config(config)
        if require_secrets:
            errors.extend(ConfigValidator.validate_secrets(config))

        if errors:
            raise ConfigurationError("Invalid configuration", errors=errors)

        try:
            return self._build(config)
        except (TypeError, KeyError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}")

    def _build(self, config: dict[str, Any]) -> MonitorConfig:
        """Turn a validated dictionary into frozen parameter dataclasses."""
        signal = config["signal"]
        price_change = signal.get("price_change")

        return MonitorConfig(
            rsi=RSIParams(**config["rsi"]),
            signal=SignalParams(
                thresholds=tuple(
                    ThresholdRule(str(timeframe), *_bounds(value))
                    for timeframe, value in signal["thresholds"].items()
                ),
                price_change=PriceChangeGate(*_bounds(price_change)) if price_change is not None else None,
            ),
            position=PositionParams(**config["position"]),
            scheduler=SchedulerParams(**config["scheduler"]),
            universe=UniverseParams(
                quote_suffix=config["universe"]["quote_suffix"],
                tracked_symbols=tuple(config["universe"]["tracked_symbols"]),
                excluded_symbols=tuple(config["universe"]["excluded_symbols"]),
            ),
            market_data=MarketDataParams(**config["market_data"]),
            telegram=TelegramParams(**{
                **config["telegram"],
                "chat_ids": tuple(str(c) for c in config["telegram"]["chat_ids"]),
            }),
            audit=AuditParams(**config["audit"]),
            logging=LoggingParams(
                level=str(config["logging"]["level"]).upper(),
                format_json=bool(config["logging"]["format_json"]),
            ),
        )

    def _dataclass_to_dict(self, obj: Any) -> Any:
        """Convert nested parameter dataclasses to plain dictionaries."""
        if isinstance(obj, SignalParams):
            return {
                "thresholds": {
                    rule.timeframe: [rule.min_value, rule.max_value]
                    for rule in obj.thresholds
                },
                "price_change": (
                    [obj.price_change.min_pct, obj.price_change.max_pct]
                    if obj.price_change else None
                ),
            }
        if is_dataclass(obj):
            return {f.name: self._dataclass_to_dict(getattr(obj, f.name)) for f in fields(obj)}
        if isinstance(obj, tuple):
            return list(obj)
        return obj

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if (key not in REPLACE_KEYS and key in result
                    and isinstance(result[key], dict) and isinstance(value, dict)):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def _bounds(value: Any) -> tuple[float, float]:
    if isinstance(value, dict):
        return float(value["min"]), float(value["max"])
    low, high = value
    return float(low), float(high)
