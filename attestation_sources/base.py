"""
Attestation Source Contract - Capability set every per-chain client offers.

Clients are selected per chain at startup and held in a mapping from
chain identifier to client. Any object with these three coroutines
qualifies; no base class is required.

Failure classification expected from implementations:
- TransientSourceError: timeouts, transport and server errors (retryable)
- SourceDecodeError: malformed or schema-incompatible responses
- SourceRequestError: requests rejected by the indexer
"""

from typing import Protocol, Sequence, runtime_checkable

from attestation_sources.models import AttestationRecord


@runtime_checkable
class AttestationSourceClient(Protocol):
    """Windowed fetch and revocation queries against one chain's indexer."""

    @property
    def chain(self) -> str:
        """Chain this client talks to."""
        ...

    @property
    def schema_id(self) -> str:
        """Schema identifier the client filters on."""
        ...

    async def fetch_window(
        self,
        since_exclusive_unix: int,
        limit: int,
    ) -> list[AttestationRecord]:
        """
        Fetch attestations created strictly after ``since_exclusive_unix``.

        Results are ordered ascending by creation time and capped at
        ``limit``. The timestamp is clamped to the transport maximum
        before being sent.
        """
        ...

    async def fetch_revoked_ids(self, schema_id: str) -> list[str]:
        """Return one bounded page of ids whose revocation time is set."""
        ...

    async def check_revocation_status(self, ids: Sequence[str]) -> list[str]:
        """Return the subset of ``ids`` currently revoked at the source."""
        ...
