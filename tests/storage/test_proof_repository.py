"""
Tests for the SQL repositories against an in-memory SQLite database.
"""

from datetime import datetime, timezone

import pytest

from core.exceptions import PersistenceError
from data_ingestion.types import NormalizedProof
from storage.database import Database, DatabaseConfig
from storage.repositories import (
    CheckpointRepository,
    CheckpointStore,
    ProofRepository,
    RecordStore,
)


@pytest.fixture
def database():
    database = Database(DatabaseConfig(url="sqlite://"))
    database.create_all_tables()
    yield database
    database.dispose()


@pytest.fixture
def proofs(database):
    return ProofRepository(database)


@pytest.fixture
def checkpoints(database):
    return CheckpointRepository(database)


def proof(uid, chain="sepolia", observed=1700000100, **overrides):
    observed_at = datetime.fromtimestamp(observed, tz=timezone.utc)
    values = dict(
        uid=uid,
        chain=chain,
        prover="0xattester",
        subject="0xrecipient",
        observed_at=observed_at,
        event_time=observed_at,
        raw_location="40.7128,-74.0060",
        longitude=-74.006,
        latitude=40.7128,
    )
    values.update(overrides)
    return NormalizedProof(**values)


class TestContracts:

    def test_repositories_satisfy_store_contracts(self, proofs, checkpoints):
        assert isinstance(proofs, RecordStore)
        assert isinstance(checkpoints, CheckpointStore)


class TestProofRepository:

    @pytest.mark.asyncio
    async def test_create_and_get(self, proofs):
        assert await proofs.create(proof("0xa", recipe_types=["gps"], memo="hi")) is True

        stored = await proofs.get("sepolia", "0xa")

        assert stored.uid == "0xa"
        assert stored.recipe_types == ["gps"]
        assert stored.memo == "hi"
        assert (stored.longitude, stored.latitude) == (-74.006, 40.7128)
        assert stored.observed_at == datetime.fromtimestamp(1700000100, tz=timezone.utc)
        assert stored.first_seen_at is not None

    @pytest.mark.asyncio
    async def test_duplicate_create_returns_false(self, proofs):
        assert await proofs.create(proof("0xa")) is True
        assert await proofs.create(proof("0xa", memo="second copy")) is False

        assert (await proofs.get("sepolia", "0xa")).memo == ""

    @pytest.mark.asyncio
    async def test_same_uid_on_two_chains(self, proofs):
        assert await proofs.create(proof("0xa", chain="sepolia")) is True
        assert await proofs.create(proof("0xa", chain="base")) is True

    @pytest.mark.asyncio
    async def test_exists(self, proofs):
        await proofs.create(proof("0xa"))

        assert await proofs.exists("sepolia", "0xa") is True
        assert await proofs.exists("base", "0xa") is False
        assert await proofs.exists("sepolia", "0xb") is False

    @pytest.mark.asyncio
    async def test_missing_coordinates_round_trip(self, proofs):
        await proofs.create(proof("0xa", raw_location="", longitude=None, latitude=None))
        stored = await proofs.get("sepolia", "0xa")
        assert stored.longitude is None and stored.latitude is None

    @pytest.mark.asyncio
    async def test_batch_set_revoked_counts_changes(self, proofs):
        for uid in ("0xa", "0xb", "0xc"):
            await proofs.create(proof(uid))

        assert await proofs.batch_set_revoked("sepolia", ["0xa", "0xb", "0xa", "0xunknown"]) == 2
        assert await proofs.batch_set_revoked("sepolia", ["0xa", "0xc"]) == 1
        assert await proofs.batch_set_revoked("sepolia", []) == 0

        assert (await proofs.get("sepolia", "0xc")).revoked is True

    @pytest.mark.asyncio
    async def test_batch_set_revoked_scoped_to_chain(self, proofs):
        await proofs.create(proof("0xa", chain="base"))

        assert await proofs.batch_set_revoked("sepolia", ["0xa"]) == 0
        assert (await proofs.get("base", "0xa")).revoked is False

    @pytest.mark.asyncio
    async def test_list_active_newest_first(self, proofs):
        await proofs.create(proof("0xold", observed=1700000100))
        await proofs.create(proof("0xnew", observed=1700000300))
        await proofs.create(proof("0xmid", observed=1700000200))
        await proofs.create(proof("0xgone", observed=1700000400, revoked=True))
        await proofs.create(proof("0xother", chain="celo", observed=1700000500))

        active = await proofs.list_active("sepolia", 10)
        assert [p.uid for p in active] == ["0xnew", "0xmid", "0xold"]

        limited = await proofs.list_active("sepolia", 2)
        assert [p.uid for p in limited] == ["0xnew", "0xmid"]


class TestCheckpointRepository:

    @pytest.mark.asyncio
    async def test_unknown_chain(self, checkpoints):
        assert await checkpoints.get("sepolia") is None

    @pytest.mark.asyncio
    async def test_set_and_advance(self, checkpoints):
        await checkpoints.set("sepolia", 1700000000)
        await checkpoints.set("sepolia", 1700000301)

        assert await checkpoints.get("sepolia") == 1700000301

    @pytest.mark.asyncio
    async def test_never_moves_back(self, checkpoints):
        await checkpoints.set("sepolia", 1700000301)
        await checkpoints.set("sepolia", 1700000000)

        assert await checkpoints.get("sepolia") == 1700000301

    @pytest.mark.asyncio
    async def test_chains_independent(self, checkpoints):
        await checkpoints.set("sepolia", 1700000301)
        await checkpoints.set("base", 1600000000)

        assert await checkpoints.get("sepolia") == 1700000301
        assert await checkpoints.get("base") == 1600000000


class TestFailures:

    @pytest.mark.asyncio
    async def test_missing_tables_raise_persistence_error(self):
        database = Database(DatabaseConfig(url="sqlite://"))
        try:
            with pytest.raises(PersistenceError):
                await CheckpointRepository(database).get("sepolia")
        finally:
            database.dispose()
