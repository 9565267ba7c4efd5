"""
Orchestrator - Sync Scheduler.

============================================================
RESPONSIBILITY
============================================================
Drives periodic ingestion and revocation passes over every
active chain and exposes a small operational surface.

- Two independent repeating timers (ingestion, revocation)
- Same-kind overlap guard: a tick that finds its pass still
  running is skipped, never queued
- Manual single-chain ingestion and manual revocation sweep
- Run statistics with a bounded error ring buffer

============================================================
CONCURRENCY MODEL
============================================================
Single event loop. Chains run one after another within a pass.
A timer tick spawns its pass as a separate task, so stopping
the timers never interrupts a pass already in flight.

============================================================
LIFECYCLE
============================================================
STOPPED --start()--> RUNNING --stop()--> STOPPED

start():
  1. Initialise missing checkpoints to the historical epoch
  2. Run one ingestion pass immediately
  3. Arm both timers

A stop() issued while start() is still in steps 1-2 wins: the
timers are never armed. A second start() during startup is a
no-op.

============================================================
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from attestation_sources.registry import SourceRegistry
from core.exceptions import ChainNotConfiguredError, ConflictError, SyncException
from data_ingestion.ingestion_pipeline import IngestionPipeline
from data_ingestion.revocation_reconciler import RevocationReconciler
from orchestrator.models import (
    PassGuards,
    PassKind,
    SchedulerConfig,
    SchedulerState,
    SyncRunStats,
    SyncStatsSnapshot,
)

if TYPE_CHECKING:
    from storage.repositories.base import CheckpointStore


logger = logging.getLogger(__name__)


class RepeatingTask:
    """
    Calls ``callback`` every ``interval_seconds`` until cancelled.

    The callback must not block; it is expected to spawn work.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], None],
    ) -> None:
        self._name = name
        self._interval_seconds = interval_seconds
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def is_armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_armed:
            return
        self._task = asyncio.create_task(self._run(), name=f"timer-{self._name}")

    async def cancel(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                self._callback()
            except Exception as e:
                logger.error(f"Timer '{self._name}' callback failed: {e}", exc_info=True)


class SyncScheduler:
    """
    Periodic multi-chain sync.

    Usage:
        scheduler = SyncScheduler(registry, pipeline, reconciler, checkpoints)
        await scheduler.start()
        ...
        stored = await scheduler.trigger_chain("sepolia")
        stats = scheduler.get_stats()
        await scheduler.stop()
    """

    def __init__(
        self,
        sources: SourceRegistry,
        pipeline: IngestionPipeline,
        reconciler: RevocationReconciler,
        checkpoints: "CheckpointStore",
        config: Optional[SchedulerConfig] = None,
    ) -> None:
        self._sources = sources
        self._pipeline = pipeline
        self._reconciler = reconciler
        self._checkpoints = checkpoints
        self._config = config or SchedulerConfig()

        self._state = SchedulerState.STOPPED
        self._guards = PassGuards()
        self._stats = SyncRunStats(error_buffer_size=self._config.error_buffer_size)

        self._ingestion_timer = RepeatingTask(
            "ingestion",
            self._config.ingestion_interval_seconds,
            lambda: self._on_tick(PassKind.INGESTION),
        )
        self._revocation_timer = RepeatingTask(
            "revocation",
            self._config.revocation_interval_seconds,
            lambda: self._on_tick(PassKind.REVOCATION),
        )
        self._inflight: set[asyncio.Task] = set()

        # Set between the first and last await of start()
        self._starting = False
        self._stop_requested = False

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SchedulerState.RUNNING

    @property
    def guards(self) -> PassGuards:
        return self._guards

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    # --------------------------------------------------------
    # Lifecycle
    # --------------------------------------------------------

    async def start(self) -> None:
        """Initialise checkpoints, run one ingestion pass, arm the timers."""
        if self._state == SchedulerState.RUNNING or self._starting:
            logger.warning("Scheduler already running")
            return

        self._starting = True
        self._stop_requested = False

        chains = self._sources.chains()
        logger.info(f"=== SYNC SCHEDULER STARTING | chains={', '.join(chains) or 'none'} ===")
        self._stats.start_time = datetime.now(timezone.utc)

        try:
            await self._initialize_checkpoints()
            if self._stop_requested:
                logger.info("Stop requested during startup, timers not armed")
                return
            self._state = SchedulerState.RUNNING

            if self._try_begin(PassKind.INGESTION):
                await self._run_ingestion_pass()

            # stop() may have run while the first pass was awaited
            if self._stop_requested:
                logger.info("Stop requested during startup, timers not armed")
                return

            self._ingestion_timer.start()
            self._revocation_timer.start()
        finally:
            self._starting = False

        logger.info(
            f"=== SYNC SCHEDULER RUNNING | ingestion every {self._config.ingestion_interval_seconds}s, "
            f"revocation every {self._config.revocation_interval_seconds}s ==="
        )

    async def stop(self, drain: bool = False) -> None:
        """
        Disarm both timers.

        In-flight passes are never cancelled. With ``drain`` the call
        waits (up to the drain timeout) for them to finish.
        """
        if self._state == SchedulerState.STOPPED and not self._starting:
            return

        logger.info("=== SYNC SCHEDULER STOPPING ===")
        if self._starting:
            self._stop_requested = True
        await self._ingestion_timer.cancel()
        await self._revocation_timer.cancel()
        self._state = SchedulerState.STOPPED

        if drain and self._inflight:
            logger.info(f"Waiting for {len(self._inflight)} in-flight passes")
            _, pending = await asyncio.wait(
                set(self._inflight),
                timeout=self._config.drain_timeout_seconds,
            )
            if pending:
                logger.warning(f"{len(pending)} passes still running after drain timeout")

        logger.info("=== SYNC SCHEDULER STOPPED ===")

    async def shutdown(self) -> None:
        """Stop, drain in-flight passes and release source connections."""
        await self.stop(drain=True)
        await self._sources.close()

    async def run_once(self) -> SyncStatsSnapshot:
        """One ingestion pass followed by one revocation pass, without timers."""
        await self._initialize_checkpoints()
        if self._try_begin(PassKind.INGESTION):
            await self._run_ingestion_pass()
        if self._try_begin(PassKind.REVOCATION):
            await self._run_revocation_pass()
        return self.get_stats()

    # --------------------------------------------------------
    # Operational surface
    # --------------------------------------------------------

    async def trigger_chain(self, chain: str) -> int:
        """
        Run ingestion for a single chain now.

        Returns:
            Number of proofs newly stored

        Raises:
            ChainNotConfiguredError: Chain is not in the active set
            ConflictError: An ingestion pass is already in progress
        """
        if chain not in self._sources:
            raise ChainNotConfiguredError(chain, self._sources.chains())
        if not self._try_begin(PassKind.INGESTION):
            raise ConflictError(
                "Ingestion already in progress, try again later",
                pass_kind=PassKind.INGESTION.value,
            )

        logger.info(f"[{chain}] Manual ingestion triggered")
        try:
            result = await self._pipeline.run_chain(chain)
        except Exception as e:
            self._stats.record_chain_ingested(chain, 0)
            self._stats.record_error(str(e), chain, PassKind.INGESTION, e)
            raise
        finally:
            self._guards.set_running(PassKind.INGESTION, False)

        self._stats.record_chain_ingested(chain, result.stored)
        for error in result.errors:
            self._stats.record_error(error, chain, PassKind.INGESTION)
        return result.stored

    async def trigger_revocation_sweep(self) -> None:
        """
        Run a revocation pass over every chain now.

        Raises:
            ConflictError: A revocation pass is already in progress
        """
        if not self._try_begin(PassKind.REVOCATION):
            raise ConflictError(
                "Revocation check already in progress, try again later",
                pass_kind=PassKind.REVOCATION.value,
            )

        logger.info("Manual revocation sweep triggered")
        await self._run_revocation_pass()

    def get_stats(self) -> SyncStatsSnapshot:
        """Immutable snapshot of the run statistics."""
        return self._stats.snapshot(self._state, self._guards)

    # --------------------------------------------------------
    # Timer handling
    # --------------------------------------------------------

    def _on_tick(self, kind: PassKind) -> None:
        if not self._try_begin(kind):
            logger.info(f"Previous {kind.value} pass still running, skipping this tick")
            return

        if kind == PassKind.INGESTION:
            self._spawn(self._run_ingestion_pass(), kind)
        else:
            self._spawn(self._run_revocation_pass(), kind)

    def _spawn(self, coro: Awaitable[None], kind: PassKind) -> None:
        task = asyncio.create_task(coro, name=f"{kind.value}-pass")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def _try_begin(self, kind: PassKind) -> bool:
        # Check and set happen without an await in between
        if self._guards.is_running(kind):
            return False
        self._guards.set_running(kind, True)
        return True

    # --------------------------------------------------------
    # Passes
    # --------------------------------------------------------

    async def _initialize_checkpoints(self) -> None:
        for chain in self._sources.chains():
            try:
                if await self._checkpoints.get(chain) is None:
                    await self._checkpoints.set(chain, self._config.historical_epoch)
                    logger.info(
                        f"[{chain}] Checkpoint initialised to {self._config.historical_epoch}"
                    )
            except SyncException as e:
                logger.error(f"[{chain}] Could not initialise checkpoint: {e}")
                self._stats.record_error(str(e), chain, PassKind.INGESTION, e)

    async def _run_ingestion_pass(self) -> None:
        """Ingest every chain once. Expects the ingestion guard to be set."""
        started = time.monotonic()
        success = True
        stored_total = 0

        try:
            for chain in self._sources.chains():
                try:
                    result = await self._pipeline.run_chain(chain)
                except SyncException as e:
                    success = False
                    logger.error(f"[{chain}] Ingestion failed: {e}")
                    self._stats.record_chain_ingested(chain, 0)
                    self._stats.record_error(str(e), chain, PassKind.INGESTION, e)
                    continue
                except Exception as e:
                    success = False
                    logger.error(f"[{chain}] Unexpected ingestion error: {e}", exc_info=True)
                    self._stats.record_chain_ingested(chain, 0)
                    self._stats.record_error(str(e), chain, PassKind.INGESTION, e)
                    continue

                stored_total += result.stored
                self._stats.record_chain_ingested(chain, result.stored)
                for error in result.errors:
                    self._stats.record_error(error, chain, PassKind.INGESTION)
        finally:
            duration = time.monotonic() - started
            self._stats.record_ingestion_pass(success, datetime.now(timezone.utc), duration)
            self._guards.set_running(PassKind.INGESTION, False)

        logger.info(
            f"Ingestion pass {'completed' if success else 'completed with failures'}: "
            f"stored {stored_total} in {duration:.2f}s"
        )

    async def _run_revocation_pass(self) -> None:
        """Reconcile then sweep every chain. Expects the revocation guard to be set."""
        checked = 0
        revoked = 0

        try:
            for chain in self._sources.chains():
                for label, run in (
                    ("reconcile", self._reconciler.reconcile_chain),
                    ("sweep", self._reconciler.sweep_chain),
                ):
                    try:
                        result = await run(chain)
                    except Exception as e:
                        log_exc = not isinstance(e, SyncException)
                        logger.error(f"[{chain}] Revocation {label} failed: {e}", exc_info=log_exc)
                        self._stats.record_error(str(e), chain, PassKind.REVOCATION, e)
                        continue
                    checked += result.checked
                    revoked += result.revoked
        finally:
            self._stats.record_revocation_pass(datetime.now(timezone.utc), checked, revoked)
            self._guards.set_running(PassKind.REVOCATION, False)

        logger.info(f"Revocation pass completed: checked {checked}, revoked {revoked}")
