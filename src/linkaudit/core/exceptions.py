"""
Custom exceptions for linkaudit.

These exceptions provide clear error semantics across the system.
Use them to distinguish between configuration problems, unreadable external
stores, and records that fail validation.
"""


class AnomalyDetectionError(Exception):
    """Base exception for anomaly scoring failures."""
    pass


class ConfigurationError(AnomalyDetectionError):
    """Raised when scoring configuration is invalid or out of range."""
    pass


class DataSourceError(AnomalyDetectionError):
    """Raised when an entity or relation store is missing or unreadable."""
    pass


class DataValidationError(DataSourceError):
    """Raised when loaded records are inconsistent (e.g. duplicate entity ids)."""
    pass
