"""
Core Module Package.

This package contains the core infrastructure components
that all other modules depend on.

Components:
- exceptions: Custom exception hierarchy
- constants: System-wide constants
- logging_utils: Logging setup for the worker process
"""

from core.exceptions import (
    ChainNotConfiguredError,
    ConfigurationError,
    ConflictError,
    DecodeError,
    ErrorClassification,
    PersistenceError,
    RetryExhaustedError,
    Severity,
    SourceDecodeError,
    SourceError,
    SourceRequestError,
    SyncException,
    TransientSourceError,
)
from core.logging_utils import setup_logging


__all__ = [
    "SyncException",
    "Severity",
    "ErrorClassification",
    "ConfigurationError",
    "ChainNotConfiguredError",
    "SourceError",
    "TransientSourceError",
    "RetryExhaustedError",
    "SourceDecodeError",
    "SourceRequestError",
    "DecodeError",
    "PersistenceError",
    "ConflictError",
    "setup_logging",
]
