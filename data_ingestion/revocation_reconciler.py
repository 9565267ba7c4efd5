"""
Data Ingestion - Revocation Reconciler.

Two ways of learning that stored proofs were revoked at the source:

- push: ask the source which ids are revoked (one bounded page)
  and mark the ones stored locally
- pull: take locally active proofs and ask the source which of
  them are revoked

Both only ever set ``revoked`` to True.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from attestation_sources.registry import SourceRegistry
from attestation_sources.retry import RetryPolicy, retry_with_backoff
from core.constants import DEFAULT_FETCH_LIMIT
from data_ingestion.types import RevocationMode, RevocationResult

if TYPE_CHECKING:
    from storage.repositories.base import RecordStore


logger = logging.getLogger(__name__)


class RevocationReconciler:
    """Propagates source revocations into the record store."""

    def __init__(
        self,
        sources: SourceRegistry,
        records: "RecordStore",
        retry_policy: Optional[RetryPolicy] = None,
        sweep_limit: int = DEFAULT_FETCH_LIMIT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._sources = sources
        self._records = records
        self._retry_policy = retry_policy or RetryPolicy()
        self._sweep_limit = sweep_limit
        self._sleep = sleep

    async def reconcile(self, chain: str) -> int:
        """Push-style pass. Returns how many proofs were newly revoked."""
        result = await self.reconcile_chain(chain)
        return result.revoked

    async def sweep_active(self, chain: str, limit: Optional[int] = None) -> int:
        """Pull-style pass. Returns how many proofs were newly revoked."""
        result = await self.sweep_chain(chain, limit)
        return result.revoked

    async def reconcile_chain(self, chain: str) -> RevocationResult:
        """Mark stored proofs that appear in the source's revoked list."""
        client = self._sources.get(chain)
        result = RevocationResult(
            chain=chain,
            mode=RevocationMode.PUSH,
            started_at=datetime.now(timezone.utc),
        )

        revoked_ids = await retry_with_backoff(
            lambda: client.fetch_revoked_ids(client.schema_id),
            self._retry_policy,
            description="fetch_revoked_ids",
            chain=chain,
            sleep=self._sleep,
        )
        result.checked = len(revoked_ids)

        known = []
        for uid in dict.fromkeys(revoked_ids):
            if await self._records.exists(chain, uid):
                known.append(uid)

        if known:
            result.revoked = await self._records.batch_set_revoked(chain, known)

        result.mark_complete(datetime.now(timezone.utc))
        logger.info(
            f"[{chain}] Revocation reconcile: {len(revoked_ids)} revoked at source, "
            f"{len(known)} stored locally, {result.revoked} updated"
        )
        return result

    async def sweep_chain(self, chain: str, limit: Optional[int] = None) -> RevocationResult:
        """Re-check locally active proofs against the source."""
        client = self._sources.get(chain)
        result = RevocationResult(
            chain=chain,
            mode=RevocationMode.PULL,
            started_at=datetime.now(timezone.utc),
        )

        active = await self._records.list_active(chain, limit or self._sweep_limit)
        result.checked = len(active)
        if not active:
            result.mark_complete(datetime.now(timezone.utc))
            return result

        ids = [proof.uid for proof in active]
        revoked_ids = await retry_with_backoff(
            lambda: client.check_revocation_status(ids),
            self._retry_policy,
            description="check_revocation_status",
            chain=chain,
            sleep=self._sleep,
        )

        wanted = set(ids)
        revoked_ids = [uid for uid in revoked_ids if uid in wanted]
        if revoked_ids:
            result.revoked = await self._records.batch_set_revoked(chain, revoked_ids)

        result.mark_complete(datetime.now(timezone.utc))
        logger.info(
            f"[{chain}] Revocation sweep: checked {result.checked}, revoked {result.revoked}"
        )
        return result
