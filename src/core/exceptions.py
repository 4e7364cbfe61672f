"""
Custom exceptions for the Service Risk Sentinel.

These exceptions provide clear error semantics across the system.
Use them to distinguish between data issues, stream-ordering problems,
session lifecycle misuse, and configuration errors.
"""


class SentinelError(Exception):
    """Base exception for risk scoring failures."""
    pass


class DataValidationError(SentinelError):
    """Raised when a metric snapshot fails validation."""
    pass


class ConfigurationError(SentinelError):
    """Raised when configuration is invalid or missing."""
    pass


class OutOfOrderTickError(SentinelError):
    """Raised when a tick arrives with a tick index not after the last one."""
    pass


class SessionNotFoundError(SentinelError):
    """Raised when a session id is not registered."""
    pass


class SessionClosedError(SentinelError):
    """Raised when a tick is pushed to a session that has ended."""
    pass


class MetricIngestionError(SentinelError):
    """Raised when a recorded metric file cannot be read."""
    pass
