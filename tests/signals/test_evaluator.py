"""Tests for threshold rule evaluation."""

import pytest

from rsi_watch.config.defaults import PriceChangeGate, SignalParams, ThresholdRule
from rsi_watch.signals.evaluator import check_conditions, evaluate_conditions

DEFAULT_RSI = {"1d": 50.0, "4h": 57.0, "15m": 50.0, "1m": 40.0}


class TestEvaluateConditions:
    """Test evaluate_conditions with the default rule table."""

    def test_all_within_bounds(self):
        """Test signal fires when every timeframe is inside its bound."""
        assert evaluate_conditions(DEFAULT_RSI, None, SignalParams()) is True

    @pytest.mark.parametrize("timeframe", ["1d", "4h", "15m", "1m"])
    def test_missing_rsi_fails_closed(self, timeframe):
        """Test any absent RSI blocks the signal."""
        rsi = dict(DEFAULT_RSI, **{timeframe: None})
        assert evaluate_conditions(rsi, None, SignalParams()) is False

    def test_timeframe_absent_from_mapping(self):
        """Test a timeframe missing from the mapping is treated as absent."""
        rsi = {k: v for k, v in DEFAULT_RSI.items() if k != "4h"}
        assert evaluate_conditions(rsi, None, SignalParams()) is False

    @pytest.mark.parametrize("value", [45.0, 70.0])
    def test_bounds_are_inclusive(self, value):
        """Test exact min and max values pass."""
        rsi = dict(DEFAULT_RSI, **{"4h": value})
        assert evaluate_conditions(rsi, None, SignalParams()) is True

    @pytest.mark.parametrize("value", [44.99, 70.01])
    def test_just_outside_bounds(self, value):
        """Test values just outside the bound fail."""
        rsi = dict(DEFAULT_RSI, **{"4h": value})
        assert evaluate_conditions(rsi, None, SignalParams()) is False

    def test_one_minute_above_range(self):
        """Test 1m RSI above 50 fails."""
        rsi = dict(DEFAULT_RSI, **{"1m": 71.4})
        assert evaluate_conditions(rsi, None, SignalParams()) is False

    def test_extra_timeframes_ignored(self):
        """Test RSI for timeframes without a rule does not matter."""
        rsi = dict(DEFAULT_RSI, **{"5m": 99.0})
        assert evaluate_conditions(rsi, None, SignalParams()) is True


class TestCustomRules:
    """Test configuration-driven rule tables."""

    def test_custom_table(self):
        """Test a deployment-specific table replaces the defaults."""
        params = SignalParams(thresholds=(ThresholdRule("1h", 20.0, 30.0),))

        assert evaluate_conditions({"1h": 25.0}, None, params) is True
        assert evaluate_conditions({"1h": 35.0}, None, params) is False

    def test_price_change_gate(self):
        """Test the 24h change gate with inclusive bounds."""
        params = SignalParams(price_change=PriceChangeGate(-5.0, 10.0))

        assert evaluate_conditions(DEFAULT_RSI, 2.5, params) is True
        assert evaluate_conditions(DEFAULT_RSI, -5.0, params) is True
        assert evaluate_conditions(DEFAULT_RSI, 10.0, params) is True
        assert evaluate_conditions(DEFAULT_RSI, 10.5, params) is False

    def test_price_change_missing_with_gate(self):
        """Test missing change percent fails when the gate is configured."""
        params = SignalParams(price_change=PriceChangeGate(-5.0, 10.0))
        assert evaluate_conditions(DEFAULT_RSI, None, params) is False

    def test_price_change_ignored_without_gate(self):
        """Test change percent is irrelevant when no gate is configured."""
        assert evaluate_conditions(DEFAULT_RSI, 99.0, SignalParams()) is True


class TestCheckConditions:
    """Test failure reporting."""

    def test_reports_failed_timeframe(self):
        """Test the first failing timeframe is reported."""
        rsi = dict(DEFAULT_RSI, **{"15m": 85.0})

        result = check_conditions(rsi, None, SignalParams())

        assert result.passed is False
        assert result.failed_timeframe == "15m"
        assert "outside" in result.reason

    def test_reports_unavailable(self):
        """Test absent RSI is reported as unavailable."""
        result = check_conditions(dict(DEFAULT_RSI, **{"1d": None}), None, SignalParams())

        assert result.passed is False
        assert result.reason == "rsi_1d unavailable"
