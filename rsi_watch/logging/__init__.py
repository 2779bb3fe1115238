"""
Logging configuration and utilities for the RSI monitor.
"""
from .config import configure_logging

__all__ = ["configure_logging"]
