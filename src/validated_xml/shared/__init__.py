"""Shared utilities for validated XML trees.

This module provides the configuration objects, severity levels and logging
helpers used by every model component.
"""

from .config import (
    ConfigError,
    ConfigValidationError,
    GlobalConfig,
    LibraryConfig,
    SerializationConfig,
    ValidationConfig,
)
from .logging import (
    CorrelationLogger,
    apply_logging_level,
    get_logger,
)
from .result import DiagnosticSeverity

__all__ = [
    "ConfigError",
    "ConfigValidationError",
    "GlobalConfig",
    "LibraryConfig",
    "SerializationConfig",
    "ValidationConfig",
    "CorrelationLogger",
    "apply_logging_level",
    "get_logger",
    "DiagnosticSeverity",
]
