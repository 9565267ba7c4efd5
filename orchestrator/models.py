"""
Orchestrator - Models.

============================================================
RESPONSIBILITY
============================================================
Defines data models for the sync scheduler.

- Scheduler lifecycle state and pass guards
- Configuration dataclass
- Run statistics and their immutable snapshot

============================================================
"""

import os
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Deque, Dict, List, Mapping, Optional

from attestation_sources.retry import RetryPolicy
from core.constants import (
    DEFAULT_ERROR_BUFFER_SIZE,
    DEFAULT_FETCH_LIMIT,
    DEFAULT_INGESTION_INTERVAL_SECONDS,
    DEFAULT_RETRY_BACKOFF_FACTOR,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    DEFAULT_RETRY_MAX_ATTEMPTS,
    DEFAULT_REVOCATION_INTERVAL_SECONDS,
    HISTORICAL_EPOCH,
)


# ============================================================
# LIFECYCLE
# ============================================================

class SchedulerState(Enum):
    """Scheduler lifecycle state."""

    STOPPED = "stopped"
    """No timers armed. Manual triggers still work."""

    RUNNING = "running"
    """Both repeating tasks armed."""


class PassKind(Enum):
    """Kinds of scheduled pass. Each kind has its own guard."""

    INGESTION = "ingestion"
    REVOCATION = "revocation"


@dataclass
class PassGuards:
    """
    In-progress flags, one per pass kind.

    A pass of one kind never waits on or excludes the other kind.
    """

    ingestion_running: bool = False
    revocation_running: bool = False

    def is_running(self, kind: PassKind) -> bool:
        if kind == PassKind.INGESTION:
            return self.ingestion_running
        return self.revocation_running

    def set_running(self, kind: PassKind, running: bool) -> None:
        if kind == PassKind.INGESTION:
            self.ingestion_running = running
        else:
            self.revocation_running = running


# ============================================================
# CONFIGURATION
# ============================================================

@dataclass
class SchedulerConfig:
    """Configuration for the sync scheduler."""

    # Timers
    ingestion_interval_seconds: float = DEFAULT_INGESTION_INTERVAL_SECONDS
    """Seconds between ingestion passes."""

    revocation_interval_seconds: float = DEFAULT_REVOCATION_INTERVAL_SECONDS
    """Seconds between revocation passes."""

    # Batching
    batch_limit: int = DEFAULT_FETCH_LIMIT
    """Max records fetched per chain per ingestion pass."""

    revocation_sweep_limit: int = DEFAULT_FETCH_LIMIT
    """Max active proofs re-checked per chain per revocation pass."""

    historical_epoch: int = HISTORICAL_EPOCH
    """Checkpoint used for a chain that was never synced."""

    # Retries
    retry_max_attempts: int = DEFAULT_RETRY_MAX_ATTEMPTS
    retry_base_delay_seconds: float = DEFAULT_RETRY_BASE_DELAY_SECONDS
    retry_backoff_factor: float = DEFAULT_RETRY_BACKOFF_FACTOR

    # Normalization
    allow_zero_coordinates: bool = False
    """Accept 0 longitude/latitude from GeoJSON locations."""

    # Stats
    error_buffer_size: int = DEFAULT_ERROR_BUFFER_SIZE
    """Recent errors kept in the stats ring buffer."""

    # Shutdown
    drain_timeout_seconds: float = 30.0
    """How long stop(drain=True) waits for in-flight passes."""

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> "SchedulerConfig":
        """Load configuration from environment variables."""
        return cls(
            ingestion_interval_seconds=float(os.getenv(
                "SYNC_INGESTION_INTERVAL_SECONDS", str(DEFAULT_INGESTION_INTERVAL_SECONDS)
            )),
            revocation_interval_seconds=float(os.getenv(
                "SYNC_REVOCATION_INTERVAL_SECONDS", str(DEFAULT_REVOCATION_INTERVAL_SECONDS)
            )),
            batch_limit=int(os.getenv("SYNC_BATCH_LIMIT", str(DEFAULT_FETCH_LIMIT))),
            revocation_sweep_limit=int(os.getenv("SYNC_REVOCATION_SWEEP_LIMIT", str(DEFAULT_FETCH_LIMIT))),
            historical_epoch=int(os.getenv("SYNC_HISTORICAL_EPOCH", str(HISTORICAL_EPOCH))),
            retry_max_attempts=int(os.getenv("SYNC_RETRY_MAX_ATTEMPTS", str(DEFAULT_RETRY_MAX_ATTEMPTS))),
            retry_base_delay_seconds=float(os.getenv(
                "SYNC_RETRY_BASE_DELAY_SECONDS", str(DEFAULT_RETRY_BASE_DELAY_SECONDS)
            )),
            retry_backoff_factor=float(os.getenv(
                "SYNC_RETRY_BACKOFF_FACTOR", str(DEFAULT_RETRY_BACKOFF_FACTOR)
            )),
            allow_zero_coordinates=os.getenv("SYNC_ALLOW_ZERO_COORDINATES", "false").lower() == "true",
            error_buffer_size=int(os.getenv("SYNC_ERROR_BUFFER_SIZE", str(DEFAULT_ERROR_BUFFER_SIZE))),
            drain_timeout_seconds=float(os.getenv("SYNC_DRAIN_TIMEOUT_SECONDS", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )

    def retry_policy(self, attempt_timeout_seconds: Optional[float] = None) -> RetryPolicy:
        """Retry policy for source calls."""
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            base_delay_seconds=self.retry_base_delay_seconds,
            backoff_factor=self.retry_backoff_factor,
            attempt_timeout_seconds=attempt_timeout_seconds,
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.ingestion_interval_seconds <= 0:
            errors.append("ingestion_interval_seconds must be positive")

        if self.revocation_interval_seconds <= 0:
            errors.append("revocation_interval_seconds must be positive")

        if self.batch_limit < 1:
            errors.append("batch_limit must be at least 1")

        if self.revocation_sweep_limit < 1:
            errors.append("revocation_sweep_limit must be at least 1")

        if self.historical_epoch < 0:
            errors.append("historical_epoch must not be negative")

        if self.retry_max_attempts < 1:
            errors.append("retry_max_attempts must be at least 1")

        if self.error_buffer_size < 1:
            errors.append("error_buffer_size must be at least 1")

        return errors


# ============================================================
# STATISTICS
# ============================================================

@dataclass(frozen=True)
class SyncErrorEntry:
    """One entry of the error ring buffer."""

    timestamp: datetime
    message: str
    chain: Optional[str] = None
    pass_kind: Optional[str] = None
    error_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "chain": self.chain,
            "pass_kind": self.pass_kind,
            "error_type": self.error_type,
        }


@dataclass(frozen=True)
class RevocationStatsSnapshot:
    """Revocation pass counters."""

    last_run: Optional[datetime] = None
    checked_count: int = 0
    revoked_count: int = 0
    total_runs: int = 0
    total_revoked: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "checked_count": self.checked_count,
            "revoked_count": self.revoked_count,
            "total_runs": self.total_runs,
            "total_revoked": self.total_revoked,
        }


@dataclass(frozen=True)
class SyncStatsSnapshot:
    """Immutable view of the scheduler statistics."""

    state: SchedulerState
    start_time: Optional[datetime]
    last_successful_run: Optional[datetime]
    last_run_duration_seconds: Optional[float]
    total_runs: int
    successful_runs: int
    failed_runs: int
    total_ingested: Mapping[str, int]
    last_run_ingested: Mapping[str, int]
    errors: tuple[SyncErrorEntry, ...]
    revocation: RevocationStatsSnapshot
    ingestion_running: bool
    revocation_running: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/monitoring."""
        return {
            "state": self.state.value,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "last_successful_run": (
                self.last_successful_run.isoformat() if self.last_successful_run else None
            ),
            "last_run_duration_seconds": self.last_run_duration_seconds,
            "total_runs": self.total_runs,
            "successful_runs": self.successful_runs,
            "failed_runs": self.failed_runs,
            "total_ingested": dict(self.total_ingested),
            "last_run_ingested": dict(self.last_run_ingested),
            "errors": [e.to_dict() for e in self.errors],
            "revocation": self.revocation.to_dict(),
            "ingestion_running": self.ingestion_running,
            "revocation_running": self.revocation_running,
        }


@dataclass
class SyncRunStats:
    """
    Mutable statistics owned by the scheduler.

    Only the scheduler writes to it; readers get a snapshot().
    """

    error_buffer_size: int = DEFAULT_ERROR_BUFFER_SIZE
    start_time: Optional[datetime] = None
    last_successful_run: Optional[datetime] = None
    last_run_duration_seconds: Optional[float] = None
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    total_ingested: Dict[str, int] = field(default_factory=dict)
    last_run_ingested: Dict[str, int] = field(default_factory=dict)
    revocation_last_run: Optional[datetime] = None
    revocation_checked: int = 0
    revocation_revoked: int = 0
    revocation_runs: int = 0
    revocation_total_revoked: int = 0
    errors: Deque[SyncErrorEntry] = field(init=False)

    def __post_init__(self) -> None:
        self.errors = deque(maxlen=self.error_buffer_size)

    def record_error(
        self,
        message: str,
        chain: Optional[str] = None,
        pass_kind: Optional[PassKind] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """Append to the ring buffer, evicting the oldest entry when full."""
        self.errors.append(SyncErrorEntry(
            timestamp=datetime.now(timezone.utc),
            message=message,
            chain=chain,
            pass_kind=pass_kind.value if pass_kind else None,
            error_type=type(error).__name__ if error else None,
        ))

    def record_chain_ingested(self, chain: str, count: int) -> None:
        self.last_run_ingested[chain] = count
        self.total_ingested[chain] = self.total_ingested.get(chain, 0) + count

    def record_ingestion_pass(self, success: bool, finished_at: datetime, duration_seconds: float) -> None:
        self.total_runs += 1
        self.last_run_duration_seconds = duration_seconds
        if success:
            self.successful_runs += 1
            self.last_successful_run = finished_at
        else:
            self.failed_runs += 1

    def record_revocation_pass(self, finished_at: datetime, checked: int, revoked: int) -> None:
        self.revocation_runs += 1
        self.revocation_last_run = finished_at
        self.revocation_checked = checked
        self.revocation_revoked = revoked
        self.revocation_total_revoked += revoked

    def snapshot(self, state: SchedulerState, guards: PassGuards) -> SyncStatsSnapshot:
        """Copy the current values into an immutable snapshot."""
        return SyncStatsSnapshot(
            state=state,
            start_time=self.start_time,
            last_successful_run=self.last_successful_run,
            last_run_duration_seconds=self.last_run_duration_seconds,
            total_runs=self.total_runs,
            successful_runs=self.successful_runs,
            failed_runs=self.failed_runs,
            total_ingested=MappingProxyType(dict(self.total_ingested)),
            last_run_ingested=MappingProxyType(dict(self.last_run_ingested)),
            errors=tuple(self.errors),
            revocation=RevocationStatsSnapshot(
                last_run=self.revocation_last_run,
                checked_count=self.revocation_checked,
                revoked_count=self.revocation_revoked,
                total_runs=self.revocation_runs,
                total_revoked=self.revocation_total_revoked,
            ),
            ingestion_running=guards.ingestion_running,
            revocation_running=guards.revocation_running,
        )
