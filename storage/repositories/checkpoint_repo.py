"""
Chain Checkpoint Repository.

One row per chain holding the next fetch lower bound. Writes never
move a checkpoint backwards.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from storage.database import Database
from storage.models.location_proofs import ChainCheckpointModel
from storage.repositories.base import BaseRepository


class CheckpointRepository(BaseRepository):
    """SQL checkpoint store."""

    def __init__(self, database: Database) -> None:
        super().__init__(database, "CheckpointRepository")

    async def get(self, chain: str) -> Optional[int]:
        """Stored checkpoint, None if the chain was never synced."""

        def work(session: Session) -> Optional[int]:
            row = session.get(ChainCheckpointModel, chain)
            return row.last_timestamp if row is not None else None

        return await self._run("get", work, {"chain": chain})

    async def set(self, chain: str, timestamp: int) -> None:
        """
        Store a checkpoint.

        Raises:
            PersistenceError: Write failed
        """

        def work(session: Session) -> None:
            now = datetime.now(timezone.utc)
            row = session.get(ChainCheckpointModel, chain)
            if row is None:
                session.add(ChainCheckpointModel(
                    chain=chain,
                    last_timestamp=timestamp,
                    updated_at=now,
                ))
                return

            if timestamp < row.last_timestamp:
                self._logger.warning(
                    f"[{chain}] Refusing to move checkpoint back "
                    f"from {row.last_timestamp} to {timestamp}"
                )
                return

            row.last_timestamp = timestamp
            row.updated_at = now

        await self._run("set", work, {"chain": chain, "timestamp": timestamp})
