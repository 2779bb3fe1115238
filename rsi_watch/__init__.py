"""
RSI Watch - multi-timeframe RSI signal monitor

Polls an exchange's public market data on a fixed interval, evaluates a
configurable RSI rule table across several timeframes per trading pair,
alerts on buy signals and tracks the resulting hypothetical position until
its take-profit target is reached.
"""

__version__ = "0.1.0"
__author__ = "RSI Watch Team"
