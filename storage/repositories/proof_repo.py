"""
Location Proof Repository.

============================================================
PURPOSE
============================================================
Record store for normalized location proofs.

- Insert is idempotent on (chain, uid)
- Revocation is a one-way bulk update
- No deletes

============================================================
"""

from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from data_ingestion.types import NormalizedProof
from storage.database import Database
from storage.models.location_proofs import LocationProofModel
from storage.repositories.base import BaseRepository
from storage.repositories.exceptions import DuplicateRecordError


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_model(proof: NormalizedProof) -> LocationProofModel:
    """Map a domain proof to its ORM row."""
    now = datetime.now(timezone.utc)
    return LocationProofModel(
        chain=proof.chain,
        uid=proof.uid,
        prover=proof.prover,
        subject=proof.subject,
        observed_at=proof.observed_at,
        event_time=proof.event_time,
        srs=proof.srs,
        location_type=proof.location_type,
        raw_location=proof.raw_location,
        longitude=proof.longitude,
        latitude=proof.latitude,
        recipe_types=list(proof.recipe_types),
        recipe_payloads=list(proof.recipe_payloads),
        media_types=list(proof.media_types),
        media_data=list(proof.media_data),
        memo=proof.memo,
        revoked=proof.revoked,
        first_seen_at=proof.first_seen_at or now,
        last_updated_at=proof.last_updated_at or now,
    )


def to_domain(row: LocationProofModel) -> NormalizedProof:
    """Map an ORM row back to a domain proof."""
    return NormalizedProof(
        uid=row.uid,
        chain=row.chain,
        prover=row.prover,
        subject=row.subject,
        observed_at=_utc(row.observed_at),
        event_time=_utc(row.event_time),
        srs=row.srs,
        location_type=row.location_type,
        raw_location=row.raw_location,
        longitude=row.longitude,
        latitude=row.latitude,
        recipe_types=list(row.recipe_types or []),
        recipe_payloads=list(row.recipe_payloads or []),
        media_types=list(row.media_types or []),
        media_data=list(row.media_data or []),
        memo=row.memo,
        revoked=row.revoked,
        first_seen_at=_utc(row.first_seen_at),
        last_updated_at=_utc(row.last_updated_at),
    )


class ProofRepository(BaseRepository):
    """
    SQL record store for location proofs.

    Usage:
        repo = ProofRepository(database)
        if not await repo.exists("sepolia", uid):
            await repo.create(proof)
    """

    def __init__(self, database: Database) -> None:
        super().__init__(database, "ProofRepository")

    async def exists(self, chain: str, uid: str) -> bool:
        """Check whether a proof is already stored."""

        def work(session: Session) -> bool:
            stmt = select(LocationProofModel.uid).where(
                LocationProofModel.chain == chain,
                LocationProofModel.uid == uid,
            )
            return session.execute(stmt).first() is not None

        return await self._run("exists", work, {"key": f"{chain}:{uid}"})

    async def create(self, proof: NormalizedProof) -> bool:
        """
        Insert a proof.

        Returns:
            True if inserted, False if (chain, uid) already existed
        """

        def work(session: Session) -> bool:
            session.add(to_model(proof))
            session.flush()
            return True

        try:
            return await self._run("create", work, {"key": f"{proof.chain}:{proof.uid}"})
        except DuplicateRecordError:
            self._logger.debug(f"[{proof.chain}] Proof {proof.uid} already stored")
            return False

    async def batch_set_revoked(self, chain: str, uids: Sequence[str]) -> int:
        """
        Mark the given proofs revoked.

        Rows already revoked or not stored are left alone.

        Returns:
            Number of rows changed
        """
        if not uids:
            return 0

        unique_uids = list(dict.fromkeys(uids))

        def work(session: Session) -> int:
            stmt = (
                update(LocationProofModel)
                .where(
                    LocationProofModel.chain == chain,
                    LocationProofModel.uid.in_(unique_uids),
                    LocationProofModel.revoked.is_(False),
                )
                .values(revoked=True, last_updated_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            return session.execute(stmt).rowcount or 0

        updated = await self._run(
            "batch_set_revoked", work, {"chain": chain, "count": len(unique_uids)}
        )
        self._logger.info(f"[{chain}] Marked {updated} proofs revoked")
        return updated

    async def list_active(self, chain: str, limit: int) -> list[NormalizedProof]:
        """Non-revoked proofs for a chain, newest first."""

        def work(session: Session) -> list[NormalizedProof]:
            stmt = (
                select(LocationProofModel)
                .where(
                    LocationProofModel.chain == chain,
                    LocationProofModel.revoked.is_(False),
                )
                .order_by(LocationProofModel.observed_at.desc())
                .limit(limit)
            )
            return [to_domain(row) for row in session.execute(stmt).scalars()]

        return await self._run("list_active", work, {"chain": chain, "limit": limit})

    async def get(self, chain: str, uid: str) -> Optional[NormalizedProof]:
        """Get a single proof by key."""

        def work(session: Session) -> Optional[NormalizedProof]:
            row = session.get(LocationProofModel, (chain, uid))
            return to_domain(row) if row is not None else None

        return await self._run("get", work, {"key": f"{chain}:{uid}"})
