"""
EAS GraphQL Source - Attestation indexer client for one chain.

Talks to the Ethereum Attestation Service GraphQL indexer that each
chain deployment exposes. All three capabilities are plain POSTed
GraphQL queries.

Error mapping:
- Connection errors, timeouts, HTTP 429 and 5xx -> TransientSourceError
- Other HTTP 4xx -> SourceRequestError
- Unparsable bodies, GraphQL ``errors``, wrong shape -> SourceDecodeError
"""

import asyncio
import json
import logging
import time
from typing import Any, Optional, Sequence

import aiohttp

from attestation_sources.models import AttestationRecord, EncodedField
from core.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_REVOKED_PAGE_SIZE,
    SYSTEM_NAME,
    SYSTEM_VERSION,
    TRANSPORT_MAX_INT,
)
from core.exceptions import (
    SourceDecodeError,
    SourceRequestError,
    TransientSourceError,
)


logger = logging.getLogger(__name__)


ATTESTATIONS_QUERY = """
query GetAttestations($schemaId: String!, $timestamp: Int!, $take: Int!) {
  attestations(
    where: {
      schemaId: { equals: $schemaId }
      timeCreated: { gt: $timestamp }
    }
    take: $take
    orderBy: { timeCreated: asc }
  ) {
    id
    attester
    recipient
    revocationTime
    timeCreated
    decodedDataJson
  }
}
"""

REVOKED_QUERY = """
query GetRevokedAttestations($schemaId: String!, $take: Int!) {
  attestations(
    where: {
      schemaId: { equals: $schemaId }
      revocationTime: { not: { equals: 0 } }
    }
    take: $take
  ) {
    id
    revocationTime
  }
}
"""

REVOCATION_STATUS_QUERY = """
query GetRevocationStatus($ids: [String!]!, $take: Int!) {
  attestations(
    where: {
      id: { in: $ids }
      revocationTime: { not: { equals: 0 } }
    }
    take: $take
  ) {
    id
    revocationTime
  }
}
"""


def clamp_timestamp(timestamp: int) -> int:
    """Clamp a unix timestamp into the GraphQL Int range."""
    return max(0, min(int(timestamp), TRANSPORT_MAX_INT))


def parse_encoded_fields(raw: Any) -> Optional[tuple[EncodedField, ...]]:
    """
    Turn an indexer ``decodedDataJson`` payload into field triples.

    Returns None when the payload is not a JSON list of field objects.
    Entries without a name are dropped.
    """
    if raw is None:
        return None

    try:
        items = json.loads(raw) if isinstance(raw, str) else raw
    except (TypeError, ValueError):
        return None

    if not isinstance(items, list):
        return None

    fields = []
    for item in items:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        value = item.get("value")
        # The indexer nests the actual value one level down
        if isinstance(value, dict) and "value" in value:
            value = value["value"]
        fields.append(EncodedField(
            name=str(item["name"]),
            type=str(item.get("type", "")),
            value=value,
        ))
    return tuple(fields)


class EasGraphQLSource:
    """
    Attestation source backed by an EAS GraphQL indexer.

    Usage:
        async with EasGraphQLSource("sepolia", endpoint, schema_uid) as source:
            records = await source.fetch_window(1700000000, 100)
    """

    def __init__(
        self,
        chain: str,
        endpoint: str,
        schema_id: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        revoked_page_size: int = DEFAULT_REVOKED_PAGE_SIZE,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._chain = chain
        self._endpoint = endpoint
        self._schema_id = schema_id
        self._timeout = timeout
        self._revoked_page_size = revoked_page_size
        self._session = session
        self._owns_session = session is None
        self._latency_ms: Optional[float] = None

    @property
    def chain(self) -> str:
        """Chain this client talks to."""
        return self._chain

    @property
    def schema_id(self) -> str:
        """Schema identifier the client filters on."""
        return self._schema_id

    @property
    def endpoint(self) -> str:
        """Indexer endpoint URL."""
        return self._endpoint

    @property
    def last_latency_ms(self) -> Optional[float]:
        """Latency of the most recent request."""
        return self._latency_ms

    # ─────────────────────────────────────────────────────────────
    # Capabilities
    # ─────────────────────────────────────────────────────────────

    async def fetch_window(
        self,
        since_exclusive_unix: int,
        limit: int,
    ) -> list[AttestationRecord]:
        """Fetch attestations created after the given timestamp."""
        timestamp = clamp_timestamp(since_exclusive_unix)
        if timestamp != since_exclusive_unix:
            logger.debug(
                f"[{self._chain}] Window start {since_exclusive_unix} clamped to {timestamp}"
            )

        items = await self._query_attestations(
            ATTESTATIONS_QUERY,
            {"schemaId": self._schema_id, "timestamp": timestamp, "take": limit},
        )
        records = [self._parse_record(item) for item in items]

        logger.info(f"[{self._chain}] Fetched {len(records)} attestations since {timestamp}")
        return records

    async def fetch_revoked_ids(self, schema_id: str) -> list[str]:
        """Fetch the first page of revoked attestation ids."""
        items = await self._query_attestations(
            REVOKED_QUERY,
            {"schemaId": schema_id, "take": self._revoked_page_size},
        )
        return self._extract_ids(items)

    async def check_revocation_status(self, ids: Sequence[str]) -> list[str]:
        """Return which of the given ids are revoked at the source."""
        if not ids:
            return []

        items = await self._query_attestations(
            REVOCATION_STATUS_QUERY,
            {"ids": list(ids), "take": len(ids)},
        )
        wanted = set(ids)
        return [uid for uid in self._extract_ids(items) if uid in wanted]

    # ─────────────────────────────────────────────────────────────
    # Response handling
    # ─────────────────────────────────────────────────────────────

    async def _query_attestations(
        self,
        query: str,
        variables: dict[str, Any],
    ) -> list[Any]:
        payload = await self._post(query, variables)

        if payload.get("errors"):
            raise SourceDecodeError(
                f"GraphQL errors: {payload['errors']}",
                chain=self._chain,
                endpoint=self._endpoint,
            )

        data = payload.get("data")
        items = data.get("attestations") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise SourceDecodeError(
                "Response is missing data.attestations",
                chain=self._chain,
                endpoint=self._endpoint,
            )
        return items

    def _parse_record(self, item: Any) -> AttestationRecord:
        if not isinstance(item, dict):
            raise SourceDecodeError(
                f"Attestation entry is not an object: {str(item)[:100]}",
                chain=self._chain,
                endpoint=self._endpoint,
            )

        encoded_fields = parse_encoded_fields(item.get("decodedDataJson"))
        if encoded_fields is None:
            logger.warning(f"[{self._chain}] Undecodable field data for attestation {item.get('id')}")

        return AttestationRecord(
            id=str(item.get("id") or ""),
            attester=str(item.get("attester") or ""),
            recipient=item.get("recipient") or None,
            revocation_time_unix=str(item.get("revocationTime", "0")),
            created_at_unix=str(item.get("timeCreated", "")),
            encoded_fields=encoded_fields,
        )

    def _extract_ids(self, items: list[Any]) -> list[str]:
        ids = []
        for item in items:
            if not isinstance(item, dict) or not item.get("id"):
                raise SourceDecodeError(
                    f"Attestation entry without id: {str(item)[:100]}",
                    chain=self._chain,
                    endpoint=self._endpoint,
                )
            ids.append(str(item["id"]))
        return ids

    # ─────────────────────────────────────────────────────────────
    # HTTP Helpers
    # ─────────────────────────────────────────────────────────────

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                    "User-Agent": f"{SYSTEM_NAME}/{SYSTEM_VERSION}",
                },
            )
            self._owns_session = True
        return self._session

    async def _post(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """POST a GraphQL query and return the decoded body."""
        session = await self._get_session()

        start_time = time.time()
        try:
            async with session.post(
                self._endpoint,
                json={"query": query, "variables": variables},
            ) as response:
                self._latency_ms = (time.time() - start_time) * 1000

                if response.status == 429 or response.status >= 500:
                    raise TransientSourceError(
                        f"HTTP {response.status}",
                        chain=self._chain,
                        endpoint=self._endpoint,
                        status_code=response.status,
                    )

                if response.status >= 400:
                    body = await response.text()
                    raise SourceRequestError(
                        f"HTTP {response.status}: {body[:500]}",
                        chain=self._chain,
                        endpoint=self._endpoint,
                        status_code=response.status,
                    )

                try:
                    payload = await response.json(content_type=None)
                except ValueError as e:
                    raise SourceDecodeError(
                        "Response body is not JSON",
                        chain=self._chain,
                        endpoint=self._endpoint,
                        cause=e,
                    ) from e

        except asyncio.TimeoutError as e:
            raise TransientSourceError(
                f"Request timed out after {self._timeout}s",
                chain=self._chain,
                endpoint=self._endpoint,
                cause=e,
            ) from e
        except aiohttp.ClientError as e:
            raise TransientSourceError(
                f"Connection error: {e}",
                chain=self._chain,
                endpoint=self._endpoint,
                cause=e,
            ) from e

        if not isinstance(payload, dict):
            raise SourceDecodeError(
                "Response body is not a JSON object",
                chain=self._chain,
                endpoint=self._endpoint,
            )
        return payload

    # ─────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "EasGraphQLSource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(chain={self._chain}, endpoint={self._endpoint})>"
