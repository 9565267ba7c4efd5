"""
Attestation Source Models - Source-shaped records as returned by an indexer.

These records are ephemeral: they are created by a fetch call and
discarded once the ingestion pipeline has turned them into proofs.
"""

from dataclasses import dataclass
from typing import Any, Optional

from core.constants import NOT_REVOKED


@dataclass(frozen=True)
class EncodedField:
    """One decoded schema field (name / type / value triple)."""
    name: str
    type: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"name": self.name, "type": self.type, "value": self.value}


@dataclass(frozen=True)
class AttestationRecord:
    """
    A single attestation as published on a chain.

    Timestamps stay string numerals exactly as the indexer returns
    them. ``encoded_fields`` is None when the payload for this record
    could not be decoded; the pipeline treats that as a per-record
    decode failure.
    """
    id: str
    attester: str
    recipient: Optional[str]
    revocation_time_unix: str
    created_at_unix: str
    encoded_fields: Optional[tuple[EncodedField, ...]] = None

    @property
    def is_revoked(self) -> bool:
        """Check if the source reports this attestation as revoked."""
        return str(self.revocation_time_unix).strip() not in (NOT_REVOKED, "")

    def created_at(self) -> Optional[int]:
        """Creation time as an integer, None when not a numeral."""
        try:
            return int(str(self.created_at_unix).strip())
        except (TypeError, ValueError):
            return None

    def field_value(self, name: str) -> Any:
        """Look up a decoded field by name (None when absent)."""
        for encoded in self.encoded_fields or ():
            if encoded.name == name:
                return encoded.value
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "id": self.id,
            "attester": self.attester,
            "recipient": self.recipient,
            "revocation_time_unix": self.revocation_time_unix,
            "created_at_unix": self.created_at_unix,
            "encoded_fields": (
                [f.to_dict() for f in self.encoded_fields]
                if self.encoded_fields is not None else None
            ),
        }
