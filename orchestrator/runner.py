"""
Orchestrator - Worker Runner.

Runs a scheduler until asked to stop:

1. Configure logging
2. Build and start the scheduler
3. Wait for SIGINT / SIGTERM (or an external stop event)
4. Shut down, draining in-flight passes
"""

import asyncio
import logging
import signal
import sys
from typing import Any, Optional

from core.logging_utils import setup_logging
from orchestrator.factory import build_scheduler
from orchestrator.models import SchedulerConfig, SyncStatsSnapshot


logger = logging.getLogger(__name__)

_SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def _install_signal_handlers(stop_event: asyncio.Event) -> bool:
    if sys.platform == "win32":
        return False

    loop = asyncio.get_running_loop()
    for sig in _SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, stop_event.set)
    return True


def _restore_signal_handlers() -> None:
    loop = asyncio.get_running_loop()
    for sig in _SHUTDOWN_SIGNALS:
        loop.remove_signal_handler(sig)


async def run_worker(
    config: Optional[SchedulerConfig] = None,
    stop_event: Optional[asyncio.Event] = None,
    install_signal_handlers: bool = True,
    **scheduler_kwargs: Any,
) -> SyncStatsSnapshot:
    """
    Run the sync worker until ``stop_event`` is set or a shutdown
    signal arrives.

    Args:
        config: Scheduler configuration (or load from environment)
        stop_event: Event that ends the run when set
        install_signal_handlers: Stop on SIGINT / SIGTERM
        **scheduler_kwargs: Passed through to build_scheduler

    Returns:
        Final statistics snapshot
    """
    config = config or SchedulerConfig.from_env()
    setup_logging(config.log_level, config.log_format)

    stop_event = stop_event or asyncio.Event()
    scheduler = build_scheduler(config=config, **scheduler_kwargs)

    handlers_installed = install_signal_handlers and _install_signal_handlers(stop_event)
    try:
        await scheduler.start()
        await stop_event.wait()
        logger.info("Shutdown requested")
    finally:
        await scheduler.shutdown()
        if handlers_installed:
            _restore_signal_handlers()

    stats = scheduler.get_stats()
    logger.info(
        f"Worker stopped after {stats.total_runs} ingestion passes "
        f"({stats.failed_runs} failed)"
    )
    return stats
