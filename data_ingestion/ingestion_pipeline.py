"""
Data Ingestion - Ingestion Pipeline.

============================================================
RESPONSIBILITY
============================================================
Runs one incremental sync pass for one chain.

- Reads the chain checkpoint
- Fetches the next window of attestations
- Normalizes and stores records not seen before
- Advances the checkpoint past the fetched window

============================================================
DESIGN PRINCIPLES
============================================================
- Idempotent: replaying a window stores nothing twice
- Failure isolation: one bad record never fails the pass
- The checkpoint moves only forward, and only after the
  batch has been processed
- A crash between storing and checkpointing is harmless;
  the existence check absorbs the replay

============================================================
WORKFLOW
============================================================
1. checkpoint = stored value, or the historical epoch
2. records = fetch_window(checkpoint, limit), with retries
3. For each record in order:
   a. skip if (chain, uid) already stored
   b. build the proof (fields, geometry, times)
   c. create; a duplicate-key race is a no-op
4. watermark = max creation time over the whole batch
5. checkpoint = max(checkpoint, watermark + 1)

============================================================
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from attestation_sources.models import AttestationRecord
from attestation_sources.registry import SourceRegistry
from attestation_sources.retry import RetryPolicy, retry_with_backoff
from core.constants import DEFAULT_FETCH_LIMIT, HISTORICAL_EPOCH, WATERMARK_EPSILON
from core.exceptions import DecodeError, PersistenceError
from data_ingestion.normalizers.proof_normalizer import ProofNormalizer
from data_ingestion.types import ChainIngestionResult

if TYPE_CHECKING:
    from storage.repositories.base import CheckpointStore, RecordStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineConfig:
    """Settings for ingestion passes."""
    batch_limit: int = DEFAULT_FETCH_LIMIT
    historical_epoch: int = HISTORICAL_EPOCH
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)


class IngestionPipeline:
    """
    Per-chain incremental ingestion.

    Usage:
        pipeline = IngestionPipeline(registry, proof_store, checkpoint_store)
        stored = await pipeline.process_chain("sepolia")
    """

    def __init__(
        self,
        sources: SourceRegistry,
        records: "RecordStore",
        checkpoints: "CheckpointStore",
        normalizer: Optional[ProofNormalizer] = None,
        config: Optional[PipelineConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._sources = sources
        self._records = records
        self._checkpoints = checkpoints
        self._normalizer = normalizer or ProofNormalizer()
        self._config = config or PipelineConfig()
        self._sleep = sleep

    @property
    def config(self) -> PipelineConfig:
        return self._config

    async def process_chain(self, chain: str) -> int:
        """
        Run one pass for ``chain``.

        Returns:
            Number of proofs newly stored
        """
        result = await self.run_chain(chain)
        return result.stored

    async def run_chain(self, chain: str) -> ChainIngestionResult:
        """
        Run one pass for ``chain`` and report what happened.

        Raises:
            ChainNotConfiguredError: Chain is not in the active set
            SourceError: Fetch failed after retries (checkpoint unchanged)
            PersistenceError: Checkpoint could not be read or written
        """
        client = self._sources.get(chain)
        result = ChainIngestionResult(chain=chain, started_at=datetime.now(timezone.utc))

        checkpoint = await self._checkpoints.get(chain)
        if checkpoint is None:
            checkpoint = self._config.historical_epoch
        result.checkpoint_before = checkpoint
        result.checkpoint_after = checkpoint

        records = await retry_with_backoff(
            lambda: client.fetch_window(checkpoint, self._config.batch_limit),
            self._config.retry_policy,
            description="fetch_window",
            chain=chain,
            sleep=self._sleep,
        )
        result.records_fetched = len(records)

        if not records:
            logger.info(f"[{chain}] No new attestations since {checkpoint}")
            result.mark_complete(datetime.now(timezone.utc))
            return result

        watermark: Optional[int] = None
        for record in records:
            created_at = record.created_at()
            if created_at is not None and (watermark is None or created_at > watermark):
                watermark = created_at

            try:
                stored = await self._ingest_record(chain, record)
            except DecodeError as e:
                logger.warning(f"[{chain}] Skipping attestation {record.id}: {e}")
                result.add_error(f"{record.id}: {e.message}")
                continue
            except PersistenceError as e:
                logger.error(f"[{chain}] Failed to store attestation {record.id}: {e}")
                result.add_error(f"{record.id}: {e.message}")
                continue
            except Exception as e:
                logger.error(
                    f"[{chain}] Unexpected error on attestation {record.id}: {e}",
                    exc_info=True,
                )
                result.add_error(f"{record.id}: {e}")
                continue

            if stored:
                result.records_stored += 1
            else:
                result.records_duplicate += 1

        if watermark is not None:
            new_checkpoint = max(checkpoint, watermark + WATERMARK_EPSILON)
            if new_checkpoint > checkpoint:
                await self._checkpoints.set(chain, new_checkpoint)
                result.checkpoint_after = new_checkpoint
        else:
            logger.warning(f"[{chain}] No parsable creation time in batch, checkpoint unchanged")

        result.mark_complete(datetime.now(timezone.utc))
        logger.info(
            f"[{chain}] Stored {result.records_stored}/{result.records_fetched} "
            f"(duplicates={result.records_duplicate}, failed={result.records_failed}), "
            f"checkpoint {result.checkpoint_before} -> {result.checkpoint_after}"
        )
        return result

    async def _ingest_record(self, chain: str, record: AttestationRecord) -> bool:
        if await self._records.exists(chain, record.id):
            return False

        proof = self._normalizer.build(chain, record)
        return await self._records.create(proof)
