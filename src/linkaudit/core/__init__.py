"""
Core module: Configuration, logging, and exception handling.
"""

from .config import Config, ScoringConfig, config, load_scoring_config, validate_scoring
from .exceptions import (
    AnomalyDetectionError,
    ConfigurationError,
    DataSourceError,
    DataValidationError,
)
from .logging_config import setup_logging

__all__ = [
    "Config",
    "ScoringConfig",
    "config",
    "load_scoring_config",
    "validate_scoring",
    "setup_logging",
    "AnomalyDetectionError",
    "ConfigurationError",
    "DataSourceError",
    "DataValidationError",
]
