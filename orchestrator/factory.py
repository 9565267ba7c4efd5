"""
Orchestrator - Factory.

Assembles a SyncScheduler and its collaborators from configuration.
"""

import logging
from typing import Optional

from attestation_sources.config import SourceSettings
from attestation_sources.registry import SourceRegistry
from core.exceptions import ConfigurationError
from data_ingestion.ingestion_pipeline import IngestionPipeline, PipelineConfig
from data_ingestion.normalizers.geometry_normalizer import GeometryNormalizer
from data_ingestion.normalizers.proof_normalizer import ProofNormalizer
from data_ingestion.revocation_reconciler import RevocationReconciler
from orchestrator.models import SchedulerConfig
from orchestrator.scheduler import SyncScheduler
from storage.database import Database, DatabaseConfig
from storage.repositories import (
    CheckpointRepository,
    CheckpointStore,
    FallbackCheckpointStore,
    FallbackProofStore,
    InMemoryCheckpointStore,
    InMemoryProofStore,
    ProofRepository,
    RecordStore,
)


logger = logging.getLogger(__name__)


def _sql_stores(config: DatabaseConfig) -> tuple[RecordStore, CheckpointStore]:
    database = Database(config)
    if not database.verify_connection():
        raise ConfigurationError(f"Cannot connect to database {database.url}")
    database.create_all_tables()
    return ProofRepository(database), CheckpointRepository(database)


def build_stores(
    primary: Optional[DatabaseConfig] = None,
    fallback: Optional[DatabaseConfig] = None,
) -> tuple[RecordStore, CheckpointStore]:
    """
    Build the record and checkpoint stores.

    Without a primary database the stores are in-memory. A fallback
    database adds a secondary tier behind the primary.
    """
    if primary is None:
        logger.warning("DATABASE_URL not set, using in-memory stores")
        return InMemoryProofStore(), InMemoryCheckpointStore()

    records, checkpoints = _sql_stores(primary)

    if fallback is not None:
        logger.info("Fallback database configured, enabling two-tier stores")
        fallback_records, fallback_checkpoints = _sql_stores(fallback)
        records = FallbackProofStore(records, fallback_records)
        checkpoints = FallbackCheckpointStore(checkpoints, fallback_checkpoints)

    return records, checkpoints


def build_scheduler(
    config: Optional[SchedulerConfig] = None,
    source_settings: Optional[SourceSettings] = None,
    registry: Optional[SourceRegistry] = None,
    records: Optional[RecordStore] = None,
    checkpoints: Optional[CheckpointStore] = None,
) -> SyncScheduler:
    """
    Factory function to create a sync scheduler.

    Args:
        config: Scheduler configuration (or load from environment)
        source_settings: Indexer settings (or load from environment)
        registry: Prebuilt source registry (skips source settings)
        records: Record store (or build from DATABASE_URL)
        checkpoints: Checkpoint store (or build from DATABASE_URL)

    Returns:
        Configured SyncScheduler instance

    Raises:
        ConfigurationError: Configuration is invalid
    """
    config = config or SchedulerConfig.from_env()
    errors = config.validate()
    if errors:
        raise ConfigurationError(f"Invalid scheduler configuration: {'; '.join(errors)}")

    source_settings = source_settings or SourceSettings.from_env()
    if registry is None:
        errors = source_settings.validate()
        if errors:
            raise ConfigurationError(f"Invalid source configuration: {'; '.join(errors)}")
        registry = SourceRegistry.from_settings(source_settings)

    if records is None or checkpoints is None:
        built_records, built_checkpoints = build_stores(
            DatabaseConfig.from_env(),
            DatabaseConfig.from_env(fallback=True),
        )
        if records is None:
            records = built_records
        if checkpoints is None:
            checkpoints = built_checkpoints

    retry_policy = config.retry_policy(source_settings.request_timeout_seconds)
    normalizer = ProofNormalizer(GeometryNormalizer(config.allow_zero_coordinates))

    pipeline = IngestionPipeline(
        registry,
        records,
        checkpoints,
        normalizer=normalizer,
        config=PipelineConfig(
            batch_limit=config.batch_limit,
            historical_epoch=config.historical_epoch,
            retry_policy=retry_policy,
        ),
    )
    reconciler = RevocationReconciler(
        registry,
        records,
        retry_policy=retry_policy,
        sweep_limit=config.revocation_sweep_limit,
    )

    return SyncScheduler(registry, pipeline, reconciler, checkpoints, config)
