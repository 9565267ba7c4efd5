"""
Tests for scheduler wiring and the worker runner.
"""

import asyncio

import pytest

from attestation_sources.config import ChainSourceConfig, SourceSettings
from core.exceptions import ConfigurationError
from orchestrator import runner
from orchestrator.factory import build_scheduler, build_stores
from orchestrator.models import SchedulerConfig, SchedulerState
from orchestrator.scheduler import SyncScheduler
from storage.database import DatabaseConfig
from storage.repositories import (
    CheckpointRepository,
    FallbackCheckpointStore,
    FallbackProofStore,
    InMemoryCheckpointStore,
    InMemoryProofStore,
    ProofRepository,
)


SLOW = SchedulerConfig(ingestion_interval_seconds=3600, revocation_interval_seconds=3600)


class TestBuildStores:

    def test_in_memory_without_database(self):
        records, checkpoints = build_stores(None)
        assert isinstance(records, InMemoryProofStore)
        assert isinstance(checkpoints, InMemoryCheckpointStore)

    def test_sql_stores(self):
        records, checkpoints = build_stores(DatabaseConfig(url="sqlite://"))
        assert isinstance(records, ProofRepository)
        assert isinstance(checkpoints, CheckpointRepository)

    def test_unreachable_database(self):
        with pytest.raises(ConfigurationError):
            build_stores(DatabaseConfig(url="sqlite:////nonexistent-dir/sync.db"))

    @pytest.mark.asyncio
    async def test_two_tier_stores(self):
        records, checkpoints = build_stores(
            DatabaseConfig(url="sqlite://"),
            DatabaseConfig(url="sqlite://"),
        )
        assert isinstance(records, FallbackProofStore)
        assert isinstance(checkpoints, FallbackCheckpointStore)

        await checkpoints.set("sepolia", 1700000000)
        assert await checkpoints.get("sepolia") == 1700000000


class TestBuildScheduler:

    @pytest.mark.asyncio
    async def test_injected_collaborators(self, registry, sepolia_source, proof_store, checkpoint_store, make_record):
        scheduler = build_scheduler(
            config=SLOW,
            source_settings=SourceSettings(),
            registry=registry,
            records=proof_store,
            checkpoints=checkpoint_store,
        )
        sepolia_source.records = [make_record("0xa")]

        assert isinstance(scheduler, SyncScheduler)
        assert await scheduler.trigger_chain("sepolia") == 1
        assert len(proof_store) == 1

    @pytest.mark.asyncio
    async def test_zero_coordinate_policy_wired(self, registry, sepolia_source, proof_store, checkpoint_store, make_record):
        config = SchedulerConfig(allow_zero_coordinates=True)
        scheduler = build_scheduler(
            config=config,
            source_settings=SourceSettings(),
            registry=registry,
            records=proof_store,
            checkpoints=checkpoint_store,
        )
        sepolia_source.records = [make_record("0xa", location='{"type":"Point","coordinates":[0,51.4779]}')]

        await scheduler.trigger_chain("sepolia")

        assert proof_store.get("sepolia", "0xa").longitude == 0.0

    def test_invalid_config_rejected(self, registry):
        with pytest.raises(ConfigurationError):
            build_scheduler(config=SchedulerConfig(batch_limit=0), registry=registry)

    def test_invalid_source_settings_rejected(self):
        settings = SourceSettings(
            chains=(ChainSourceConfig("sepolia", "https://a"),),
            request_timeout_seconds=-1,
        )
        with pytest.raises(ConfigurationError):
            build_scheduler(config=SLOW, source_settings=settings)

    def test_registry_built_from_settings(self, proof_store, checkpoint_store):
        settings = SourceSettings(chains=(
            ChainSourceConfig("sepolia", "https://sepolia.easscan.org/graphql"),
            ChainSourceConfig("celo", None),
        ))

        scheduler = build_scheduler(
            config=SLOW,
            source_settings=settings,
            records=proof_store,
            checkpoints=checkpoint_store,
        )

        assert scheduler.get_stats().state == SchedulerState.STOPPED
        assert scheduler._sources.chains() == ["sepolia"]


class TestRunWorker:

    @pytest.mark.asyncio
    async def test_runs_until_stopped(
        self, monkeypatch, registry, sepolia_source, proof_store, checkpoint_store, make_record
    ):
        monkeypatch.setattr(runner, "setup_logging", lambda *args, **kwargs: None)
        sepolia_source.records = [make_record("0xa")]
        stop_event = asyncio.Event()
        stop_event.set()

        stats = await runner.run_worker(
            config=SLOW,
            stop_event=stop_event,
            install_signal_handlers=False,
            source_settings=SourceSettings(),
            registry=registry,
            records=proof_store,
            checkpoints=checkpoint_store,
        )

        assert stats.state == SchedulerState.STOPPED
        assert stats.total_runs == 1
        assert stats.total_ingested["sepolia"] == 1
