"""
Shared fixtures for the sync engine tests.

============================================================
PURPOSE
============================================================
- Scriptable in-process attestation source
- Record builders in indexer shape
- In-memory stores and a registry wired to the fake source

============================================================
"""

import json
from typing import Any, Optional, Sequence

import pytest

from attestation_sources.models import AttestationRecord, EncodedField
from attestation_sources.registry import SourceRegistry
from attestation_sources.retry import RetryPolicy
from storage.repositories.memory import InMemoryCheckpointStore, InMemoryProofStore


SCHEMA_ID = "0xschema"


class FakeSource:
    """
    In-process attestation source.

    ``records`` is the full chain history; fetch_window filters and
    orders it like the indexer does. ``failures`` is a list of
    exceptions raised by successive fetch_window calls before the
    records are served.
    """

    def __init__(
        self,
        chain: str,
        records: Optional[list[AttestationRecord]] = None,
        revoked_ids: Optional[list[str]] = None,
        schema_id: str = SCHEMA_ID,
    ) -> None:
        self._chain = chain
        self._schema_id = schema_id
        self.records = list(records or [])
        self.revoked_ids = list(revoked_ids or [])
        self.failures: list[Exception] = []
        self.revocation_failures: list[Exception] = []
        self.fetch_calls: list[tuple[int, int]] = []
        self.status_calls: list[list[str]] = []

    @property
    def chain(self) -> str:
        return self._chain

    @property
    def schema_id(self) -> str:
        return self._schema_id

    async def fetch_window(self, since_exclusive_unix: int, limit: int) -> list[AttestationRecord]:
        self.fetch_calls.append((since_exclusive_unix, limit))
        if self.failures:
            raise self.failures.pop(0)
        window = [
            r for r in self.records
            if r.created_at() is None or r.created_at() > since_exclusive_unix
        ]
        window.sort(key=lambda r: r.created_at() or 0)
        return window[:limit]

    async def fetch_revoked_ids(self, schema_id: str) -> list[str]:
        if self.revocation_failures:
            raise self.revocation_failures.pop(0)
        return list(self.revoked_ids)

    async def check_revocation_status(self, ids: Sequence[str]) -> list[str]:
        self.status_calls.append(list(ids))
        if self.revocation_failures:
            raise self.revocation_failures.pop(0)
        return [uid for uid in ids if uid in self.revoked_ids]


def build_record(
    uid: str,
    created_at: Any = 1700000100,
    location: Optional[str] = '{"type":"Point","coordinates":[-74.006,40.7128]}',
    attester: str = "0xattester",
    recipient: Optional[str] = "0xrecipient",
    revocation_time: str = "0",
    extra_fields: Optional[dict[str, Any]] = None,
    undecodable: bool = False,
) -> AttestationRecord:
    fields = []
    if location is not None:
        fields.append(EncodedField("location", "string", location))
    for name, value in (extra_fields or {}).items():
        fields.append(EncodedField(name, "string", value))

    return AttestationRecord(
        id=uid,
        attester=attester,
        recipient=recipient,
        revocation_time_unix=revocation_time,
        created_at_unix=str(created_at),
        encoded_fields=None if undecodable else tuple(fields),
    )


async def instant_sleep(_seconds: float) -> None:
    return None


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def make_record():
    """Factory for indexer-shaped attestation records."""
    return build_record


@pytest.fixture
def fake_source_factory():
    """Factory for FakeSource instances."""
    return FakeSource


@pytest.fixture
def proof_store():
    return InMemoryProofStore()


@pytest.fixture
def checkpoint_store():
    return InMemoryCheckpointStore()


@pytest.fixture
def fast_retry():
    """Retry policy without real waiting."""
    return RetryPolicy(max_attempts=3, base_delay_seconds=0.0, backoff_factor=2.0)


@pytest.fixture
def no_sleep():
    return instant_sleep


@pytest.fixture
def sepolia_source():
    return FakeSource("sepolia")


@pytest.fixture
def registry(sepolia_source):
    registry = SourceRegistry()
    registry.register(sepolia_source)
    return registry


@pytest.fixture
def decoded_data_json():
    """A decodedDataJson payload as the EAS indexer returns it."""
    return json.dumps([
        {"name": "eventTimestamp", "type": "uint256", "value": {"name": "eventTimestamp", "type": "uint256", "value": 1700000050}},
        {"name": "srs", "type": "string", "value": {"name": "srs", "type": "string", "value": "EPSG:4326"}},
        {"name": "locationType", "type": "string", "value": {"name": "locationType", "type": "string", "value": "geojson"}},
        {"name": "location", "type": "string", "value": {"name": "location", "type": "string", "value": "40.7128,-74.0060"}},
        {"name": "recipeType", "type": "string[]", "value": {"name": "recipeType", "type": "string[]", "value": ["gps"]}},
        {"name": "memo", "type": "string", "value": {"name": "memo", "type": "string", "value": "hello"}},
    ])
