"""
Two-tier stores.

Each call goes to the primary store first. When the primary raises
PersistenceError the call is repeated against the secondary store;
if that fails too, the secondary's error propagates.
"""

import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from core.exceptions import PersistenceError
from data_ingestion.types import NormalizedProof
from storage.repositories.base import CheckpointStore, RecordStore


logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _with_fallback(
    operation: str,
    primary: Callable[[], Awaitable[T]],
    secondary: Callable[[], Awaitable[T]],
) -> T:
    try:
        return await primary()
    except PersistenceError as e:
        logger.warning(f"Primary store failed in {operation}, using fallback: {e}")
    return await secondary()


class FallbackProofStore:
    """Record store that degrades to a secondary tier."""

    def __init__(self, primary: RecordStore, secondary: RecordStore) -> None:
        self._primary = primary
        self._secondary = secondary

    async def exists(self, chain: str, uid: str) -> bool:
        return await _with_fallback(
            "exists",
            lambda: self._primary.exists(chain, uid),
            lambda: self._secondary.exists(chain, uid),
        )

    async def create(self, proof: NormalizedProof) -> bool:
        return await _with_fallback(
            "create",
            lambda: self._primary.create(proof),
            lambda: self._secondary.create(proof),
        )

    async def batch_set_revoked(self, chain: str, uids: Sequence[str]) -> int:
        return await _with_fallback(
            "batch_set_revoked",
            lambda: self._primary.batch_set_revoked(chain, uids),
            lambda: self._secondary.batch_set_revoked(chain, uids),
        )

    async def list_active(self, chain: str, limit: int) -> list[NormalizedProof]:
        return await _with_fallback(
            "list_active",
            lambda: self._primary.list_active(chain, limit),
            lambda: self._secondary.list_active(chain, limit),
        )


class FallbackCheckpointStore:
    """Checkpoint store that degrades to a secondary tier."""

    def __init__(self, primary: CheckpointStore, secondary: CheckpointStore) -> None:
        self._primary = primary
        self._secondary = secondary

    async def get(self, chain: str) -> Optional[int]:
        return await _with_fallback(
            "get",
            lambda: self._primary.get(chain),
            lambda: self._secondary.get(chain),
        )

    async def set(self, chain: str, timestamp: int) -> None:
        await _with_fallback(
            "set",
            lambda: self._primary.set(chain, timestamp),
            lambda: self._secondary.set(chain, timestamp),
        )
