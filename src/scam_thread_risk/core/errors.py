"""Custom exceptions for scam_thread_risk."""


class ScamThreadRiskError(Exception):
    """Base exception for application-level errors."""


class ConfigError(ScamThreadRiskError):
    """Raised when configuration cannot be loaded or validated."""


class PoolLoadError(ScamThreadRiskError):
    """Raised when a reference pool source cannot be read or decoded."""
