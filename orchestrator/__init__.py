"""
Orchestrator Package - Sync Coordination Layer.

============================================================
PACKAGE OVERVIEW
============================================================
Runs the ingestion pipeline and the revocation reconciler on
independent timers across every active chain.

============================================================
CORE PRINCIPLES
============================================================
1. The scheduler has no sync logic of its own
2. One chain failing never stops the others
3. Passes of the same kind never overlap
4. Stopping never interrupts a pass in flight

============================================================
USAGE
============================================================
    from orchestrator import build_scheduler

    scheduler = build_scheduler()
    await scheduler.start()
    ...
    await scheduler.shutdown()

============================================================
"""

from orchestrator.factory import build_scheduler, build_stores
from orchestrator.models import (
    PassGuards,
    PassKind,
    RevocationStatsSnapshot,
    SchedulerConfig,
    SchedulerState,
    SyncErrorEntry,
    SyncRunStats,
    SyncStatsSnapshot,
)
from orchestrator.runner import run_worker
from orchestrator.scheduler import RepeatingTask, SyncScheduler


__all__ = [
    # Scheduler
    "SyncScheduler",
    "RepeatingTask",
    "build_scheduler",
    "build_stores",
    "run_worker",
    # Models
    "SchedulerConfig",
    "SchedulerState",
    "PassKind",
    "PassGuards",
    "SyncRunStats",
    "SyncStatsSnapshot",
    "SyncErrorEntry",
    "RevocationStatsSnapshot",
]
