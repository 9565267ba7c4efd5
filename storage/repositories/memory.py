"""
In-memory stores.

Same contracts as the SQL repositories, kept in dictionaries. Used
for local runs without a database and in tests.
"""

import copy
from datetime import datetime, timezone
from typing import Optional, Sequence

from data_ingestion.types import NormalizedProof


class InMemoryProofStore:
    """Record store backed by a dict keyed on (chain, uid)."""

    def __init__(self) -> None:
        self._proofs: dict[tuple[str, str], NormalizedProof] = {}

    async def exists(self, chain: str, uid: str) -> bool:
        return (chain, uid) in self._proofs

    async def create(self, proof: NormalizedProof) -> bool:
        if proof.key in self._proofs:
            return False
        self._proofs[proof.key] = copy.deepcopy(proof)
        return True

    async def batch_set_revoked(self, chain: str, uids: Sequence[str]) -> int:
        updated = 0
        now = datetime.now(timezone.utc)
        for uid in dict.fromkeys(uids):
            proof = self._proofs.get((chain, uid))
            if proof is not None and not proof.revoked:
                proof.revoked = True
                proof.last_updated_at = now
                updated += 1
        return updated

    async def list_active(self, chain: str, limit: int) -> list[NormalizedProof]:
        active = [
            p for p in self._proofs.values()
            if p.chain == chain and not p.revoked
        ]
        active.sort(key=lambda p: p.observed_at, reverse=True)
        return [copy.deepcopy(p) for p in active[:limit]]

    def get(self, chain: str, uid: str) -> Optional[NormalizedProof]:
        """Direct lookup (synchronous, for inspection)."""
        return self._proofs.get((chain, uid))

    def __len__(self) -> int:
        return len(self._proofs)


class InMemoryCheckpointStore:
    """Checkpoint store backed by a dict. Never moves a value backwards."""

    def __init__(self, initial: Optional[dict[str, int]] = None) -> None:
        self._checkpoints: dict[str, int] = dict(initial or {})

    async def get(self, chain: str) -> Optional[int]:
        return self._checkpoints.get(chain)

    async def set(self, chain: str, timestamp: int) -> None:
        current = self._checkpoints.get(chain)
        if current is None or timestamp >= current:
            self._checkpoints[chain] = timestamp

    def snapshot(self) -> dict[str, int]:
        return dict(self._checkpoints)
