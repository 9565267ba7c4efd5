"""
Data Ingestion - Type Definitions.

============================================================
PURPOSE
============================================================
Shared types for the ingestion and reconciliation layer.

- The persisted proof record
- Per-chain ingestion result
- Revocation pass result

============================================================
DESIGN PRINCIPLES
============================================================
- Clear typing for all fields
- No business logic
- Serializable for monitoring

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from core.constants import (
    DEFAULT_LOCATION_TYPE,
    DEFAULT_SRS,
    MAX_LATITUDE,
    MAX_LONGITUDE,
)


# =============================================================
# ENUMS
# =============================================================

class IngestionStatus(str, Enum):
    """Status of a chain pass."""
    SUCCESS = "success"
    PARTIAL = "partial"


class RevocationMode(str, Enum):
    """How revocations were discovered."""
    PUSH = "push"
    PULL = "pull"


# =============================================================
# PERSISTED RECORD
# =============================================================

@dataclass
class NormalizedProof:
    """
    Canonical location proof as stored locally.

    Identity is ``(chain, uid)``. Longitude and latitude are either
    both set and in range, or both None.
    """
    uid: str
    chain: str
    prover: str
    subject: str
    observed_at: datetime
    event_time: datetime
    srs: str = DEFAULT_SRS
    location_type: str = DEFAULT_LOCATION_TYPE
    raw_location: str = ""
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    recipe_types: List[Any] = field(default_factory=list)
    recipe_payloads: List[Any] = field(default_factory=list)
    media_types: List[Any] = field(default_factory=list)
    media_data: List[Any] = field(default_factory=list)
    memo: str = ""
    revoked: bool = False
    first_seen_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if (self.longitude is None) != (self.latitude is None):
            raise ValueError(
                f"Proof {self.uid}: longitude and latitude must both be set or both be None"
            )
        if self.longitude is not None and (
            abs(self.latitude) > MAX_LATITUDE or abs(self.longitude) > MAX_LONGITUDE
        ):
            raise ValueError(
                f"Proof {self.uid}: coordinates out of range "
                f"({self.longitude}, {self.latitude})"
            )

    @property
    def key(self) -> tuple[str, str]:
        """Global identity."""
        return (self.chain, self.uid)

    @property
    def has_coordinates(self) -> bool:
        return self.longitude is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/monitoring."""
        return {
            "uid": self.uid,
            "chain": self.chain,
            "prover": self.prover,
            "subject": self.subject,
            "observed_at": self.observed_at.isoformat(),
            "event_time": self.event_time.isoformat(),
            "srs": self.srs,
            "location_type": self.location_type,
            "raw_location": self.raw_location,
            "longitude": self.longitude,
            "latitude": self.latitude,
            "recipe_types": list(self.recipe_types),
            "recipe_payloads": list(self.recipe_payloads),
            "media_types": list(self.media_types),
            "media_data": list(self.media_data),
            "memo": self.memo,
            "revoked": self.revoked,
            "first_seen_at": self.first_seen_at.isoformat() if self.first_seen_at else None,
            "last_updated_at": self.last_updated_at.isoformat() if self.last_updated_at else None,
        }


# =============================================================
# RESULT TYPES
# =============================================================

@dataclass
class ChainIngestionResult:
    """Result of one ingestion pass over one chain."""
    chain: str
    status: IngestionStatus = IngestionStatus.SUCCESS

    # Counts
    records_fetched: int = 0
    records_stored: int = 0
    records_duplicate: int = 0
    records_failed: int = 0

    # Watermark
    checkpoint_before: int = 0
    checkpoint_after: int = 0

    # Timing
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    # Errors
    errors: List[str] = field(default_factory=list)

    @property
    def stored(self) -> int:
        return self.records_stored

    @property
    def checkpoint_advanced(self) -> bool:
        return self.checkpoint_after > self.checkpoint_before

    def mark_complete(self, completed_at: datetime) -> None:
        """Mark the pass as complete and calculate duration."""
        self.completed_at = completed_at
        if self.started_at:
            delta = completed_at - self.started_at
            self.duration_seconds = delta.total_seconds()

    def add_error(self, error: str) -> None:
        """Add a per-record error message."""
        self.errors.append(error)
        self.records_failed += 1
        if self.status == IngestionStatus.SUCCESS:
            self.status = IngestionStatus.PARTIAL

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/monitoring."""
        return {
            "chain": self.chain,
            "status": self.status.value,
            "records_fetched": self.records_fetched,
            "records_stored": self.records_stored,
            "records_duplicate": self.records_duplicate,
            "records_failed": self.records_failed,
            "checkpoint_before": self.checkpoint_before,
            "checkpoint_after": self.checkpoint_after,
            "duration_seconds": self.duration_seconds,
            "error_count": len(self.errors),
            "errors": self.errors[:5],  # Limit for logging
        }


@dataclass
class RevocationResult:
    """Result of one revocation pass over one chain."""
    chain: str
    mode: RevocationMode
    checked: int = 0
    revoked: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    def mark_complete(self, completed_at: datetime) -> None:
        """Mark the pass as complete and calculate duration."""
        self.completed_at = completed_at
        if self.started_at:
            self.duration_seconds = (completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/monitoring."""
        return {
            "chain": self.chain,
            "mode": self.mode.value,
            "checked": self.checked,
            "revoked": self.revoked,
            "duration_seconds": self.duration_seconds,
        }
