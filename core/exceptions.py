"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions for the attestation sync engine.

- Provides clear exception hierarchy
- Separates retryable source failures from permanent ones
- Supports error categorization for the run statistics
- Includes context for debugging

============================================================
EXCEPTION HIERARCHY
============================================================
SyncException (base)
├── ConfigurationError
│   └── ChainNotConfiguredError
├── SourceError
│   ├── TransientSourceError
│   │   └── RetryExhaustedError
│   ├── SourceDecodeError
│   └── SourceRequestError
├── DecodeError
├── PersistenceError
└── ConflictError

============================================================
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels."""

    LOW = "low"
    """Minor issue, informational."""

    MEDIUM = "medium"
    """Moderate issue, requires attention."""

    HIGH = "high"
    """Serious issue, a chain or store is not progressing."""


# ============================================================
# ERROR CLASSIFICATION
# ============================================================

class ErrorClassification(Enum):
    """Classification of error recoverability."""

    TRANSIENT = "transient"
    """Temporary error, retry may succeed."""

    PERMANENT = "permanent"
    """Retrying the same call will fail the same way."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class SyncException(Exception):
    """
    Base exception for all sync engine errors.

    All exceptions carry:
    - severity: for logging and the error ring buffer
    - context: for debugging
    - classification: for retry decisions
    - chain: the chain the failure belongs to, when known
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM
    default_classification: ErrorClassification = ErrorClassification.PERMANENT

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        classification: Optional[ErrorClassification] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.chain = chain
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.classification = classification or self.default_classification
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    @property
    def is_retryable(self) -> bool:
        """Check if the failed call may succeed when repeated."""
        return self.classification == ErrorClassification.TRANSIENT

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging/storage."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "chain": self.chain,
            "severity": self.severity.value,
            "classification": self.classification.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.chain:
            parts.append(f"[chain={self.chain}]")
        if self.cause:
            parts.append(f"(caused by: {self.cause})")
        return " ".join(parts)


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(SyncException):
    """Error in configuration."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if config_key:
            context["config_key"] = config_key
        super().__init__(message, context=context, **kwargs)
        self.config_key = config_key


class ChainNotConfiguredError(ConfigurationError):
    """Requested chain is not part of the active chain set."""

    def __init__(self, chain: str, active_chains: Optional[list] = None):
        active = sorted(active_chains or [])
        super().__init__(
            message=(
                f"Unsupported chain: {chain}. "
                f"Supported chains are: {', '.join(active) or 'none'}"
            ),
            chain=chain,
            context={"active_chains": active},
        )
        self.active_chains = active


# ============================================================
# SOURCE ERRORS
# ============================================================

class SourceError(SyncException):
    """Base class for errors talking to an attestation indexer."""

    def __init__(
        self,
        message: str,
        chain: Optional[str] = None,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if endpoint:
            context["endpoint"] = endpoint
        if status_code is not None:
            context["status_code"] = status_code
        super().__init__(message, chain=chain, context=context, **kwargs)
        self.endpoint = endpoint
        self.status_code = status_code


class TransientSourceError(SourceError):
    """Timeout, connection or server-side failure. Retryable."""

    default_classification = ErrorClassification.TRANSIENT


class RetryExhaustedError(TransientSourceError):
    """All retry attempts for a source call failed."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        attempts: int,
        chain: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            message,
            chain=chain,
            context={"attempts": attempts},
            cause=cause,
        )
        self.attempts = attempts


class SourceDecodeError(SourceError):
    """Response was malformed or did not match the expected schema."""


class SourceRequestError(SourceError):
    """Request rejected by the indexer (client-side HTTP error)."""


# ============================================================
# PIPELINE ERRORS
# ============================================================

class DecodeError(SyncException):
    """A single attestation could not be turned into a proof."""

    default_severity = Severity.LOW

    def __init__(
        self,
        message: str,
        uid: Optional[str] = None,
        field: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if uid:
            context["uid"] = uid
        if field:
            context["field"] = field
        super().__init__(message, context=context, **kwargs)
        self.uid = uid
        self.field = field


class PersistenceError(SyncException):
    """A checkpoint or record store operation failed."""

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.TRANSIENT


class ConflictError(SyncException):
    """Operation rejected because a pass of the same kind is in progress."""

    default_severity = Severity.LOW

    def __init__(self, message: str, pass_kind: str, **kwargs):
        context = kwargs.pop("context", {})
        context["pass_kind"] = pass_kind
        super().__init__(message, context=context, **kwargs)
        self.pass_kind = pass_kind
