"""
Core module: Configuration, logging, and exception handling.
"""

from .config import Config, config
from .exceptions import (
    ConfigurationError,
    DataValidationError,
    MetricIngestionError,
    OutOfOrderTickError,
    SentinelError,
    SessionClosedError,
    SessionNotFoundError,
)

__all__ = [
    "Config",
    "config",
    "SentinelError",
    "DataValidationError",
    "ConfigurationError",
    "OutOfOrderTickError",
    "SessionNotFoundError",
    "SessionClosedError",
    "MetricIngestionError",
]
