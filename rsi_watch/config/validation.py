"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any

    def __str__(self) -> str:
        return f"{self.field}: {self.message} (got: {self.value!r})"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_rsi_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate RSI parameters."""
        errors = []

        if "period" in params and not _is_positive_int(params["period"]):
            errors.append(ValidationError(
                field="rsi.period",
                message="Must be a positive integer",
                value=params["period"]
            ))

        return errors

    @staticmethod
    def validate_bounds(field: str, bounds: Any) -> list[ValidationError]:
        """Validate a single inclusive (min, max) pair."""
        if isinstance(bounds, dict):
            pair = (bounds.get("min"), bounds.get("max"))
        elif isinstance(bounds, (list, tuple)) and len(bounds) == 2:
            pair = tuple(bounds)
        else:
            return [ValidationError(
                field=field,
                message="Must be a [min, max] pair or a mapping with min and max",
                value=bounds
            )]

        low, high = pair
        if not _is_number(low) or not _is_number(high):
            return [ValidationError(
                field=field,
                message="Bounds must be numbers",
                value=bounds
            )]

        if low > high:
            return [ValidationError(
                field=field,
                message="Minimum must not exceed maximum",
                value=bounds
            )]

        return []

    @staticmethod
    def validate_signal_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate the threshold table and optional price change gate."""
        errors = []

        thresholds = params.get("thresholds")
        if thresholds is not None:
            if not isinstance(thresholds, dict) or not thresholds:
                errors.append(ValidationError(
                    field="signal.thresholds",
                    message="Must be a non-empty mapping of timeframe to bounds",
                    value=thresholds
                ))
            else:
                for timeframe, bounds in thresholds.items():
                    errors.extend(ConfigValidator.validate_bounds(
                        f"signal.thresholds.{timeframe}", bounds
                    ))

        price_change = params.get("price_change")
        if price_change is not None:
            errors.extend(ConfigValidator.validate_bounds(
                "signal.price_change", price_change
            ))

        return errors

    @staticmethod
    def validate_position_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate position tracking parameters."""
        errors = []

        if "markup_factor" in params:
            value = params["markup_factor"]
            if not _is_number(value) or value <= 1:
                errors.append(ValidationError(
                    field="position.markup_factor",
                    message="Must be a number greater than 1",
                    value=value
                ))

        if "cooldown_seconds" in params:
            value = params["cooldown_seconds"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="position.cooldown_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        if "max_completion_attempts" in params:
            value = params["max_completion_attempts"]
            if not _is_positive_int(value):
                errors.append(ValidationError(
                    field="position.max_completion_attempts",
                    message="Must be a positive integer",
                    value=value
                ))

        if "entry_timeframe" in params:
            value = params["entry_timeframe"]
            if not isinstance(value, str) or not value.strip():
                errors.append(ValidationError(
                    field="position.entry_timeframe",
                    message="Must be a non-empty timeframe label",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_market_data_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate exchange API parameters."""
        errors = []

        base_url = params.get("base_url")
        if base_url is not None and (not isinstance(base_url, str) or not base_url.startswith(("http://", "https://"))):
            errors.append(ValidationError(
                field="market_data.base_url",
                message="Must be an http(s) URL",
                value=base_url
            ))

        if "timeout_seconds" in params:
            value = params["timeout_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="market_data.timeout_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        if "retry_attempts" in params:
            value = params["retry_attempts"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="market_data.retry_attempts",
                    message="Must be a non-negative integer",
                    value=value
                ))

        if "retry_delay_seconds" in params:
            value = params["retry_delay_seconds"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="market_data.retry_delay_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_scheduler_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate scheduler parameters."""
        errors = []

        if "interval_seconds" in params:
            value = params["interval_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="scheduler.interval_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        if "max_workers" in params and not _is_positive_int(params["max_workers"]):
            errors.append(ValidationError(
                field="scheduler.max_workers",
                message="Must be a positive integer",
                value=params["max_workers"]
            ))

        return errors

    @staticmethod
    def validate_universe_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate the tracked symbol universe."""
        errors = []

        suffix = params.get("quote_suffix")
        if suffix is not None and (not isinstance(suffix, str) or not suffix):
            errors.append(ValidationError(
                field="universe.quote_suffix",
                message="Must be a non-empty string",
                value=suffix
            ))

        for key in ("tracked_symbols", "excluded_symbols"):
            value = params.get(key)
            if value is None:
                continue
            if not isinstance(value, (list, tuple)) or not all(isinstance(s, str) for s in value):
                errors.append(ValidationError(
                    field=f"universe.{key}",
                    message="Must be a list of symbol strings",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        level = params.get("level")
        if level is not None and str(level).upper() not in VALID_LOG_LEVELS:
            errors.append(ValidationError(
                field="logging.level",
                message=f"Must be one of {', '.join(VALID_LOG_LEVELS)}",
                value=level
            ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        section_validators = {
            "rsi": ConfigValidator.validate_rsi_params,
            "signal": ConfigValidator.validate_signal_params,
            "position": ConfigValidator.validate_position_params,
            "scheduler": ConfigValidator.validate_scheduler_params,
            "universe": ConfigValidator.validate_universe_params,
            "market_data": ConfigValidator.validate_market_data_params,
            "telegram": None,
            "audit": None,
            "logging": ConfigValidator.validate_logging_params,
        }

        for section, validate in section_validators.items():
            if section not in config:
                continue
            params = config[section]
            if not isinstance(params, dict):
                errors.append(ValidationError(
                    field=section,
                    message="Must be a mapping",
                    value=params
                ))
            elif validate is not None:
                errors.extend(validate(params))

        return errors

    @staticmethod
    def validate_secrets(config: dict[str, Any]) -> list[ValidationError]:
        """Validate that the secrets required to run are present."""
        errors = []
        telegram = config.get("telegram")
        if not isinstance(telegram, dict):
            telegram = {}

        if not telegram.get("bot_token"):
            errors.append(ValidationError(
                field="TELEGRAM_BOT_TOKEN",
                message="Required environment variable is not set",
                value=None
            ))

        if not telegram.get("chat_ids"):
            errors.append(ValidationError(
                field="TELEGRAM_CHAT_IDS",
                message="Required environment variable is not set",
                value=None
            ))

        return errors
