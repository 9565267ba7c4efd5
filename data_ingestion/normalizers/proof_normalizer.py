"""
Data Ingestion - Proof Normalizer.

Builds a NormalizedProof from a source-shaped AttestationRecord.
Fields are looked up by name; missing optional fields take their
defaults. Raises DecodeError only when the record cannot be turned
into a proof at all.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from attestation_sources.models import AttestationRecord
from core.constants import DEFAULT_LOCATION_TYPE, DEFAULT_SRS
from core.exceptions import DecodeError
from data_ingestion.normalizers.geometry_normalizer import GeometryNormalizer
from data_ingestion.types import NormalizedProof


logger = logging.getLogger(__name__)


def parse_unix_seconds(value: Any) -> Optional[datetime]:
    """Parse a unix-seconds value (number or numeral string) into UTC."""
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, str):
            text = value.strip()
            seconds = int(text) if text.lstrip("-").isdigit() else int(float(text))
        else:
            seconds = int(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def _as_list(value: Any) -> list:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _as_text(value: Any, default: str = "") -> str:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value
    return json.dumps(value)


class ProofNormalizer:
    """Decodes attestation fields into the canonical proof shape."""

    def __init__(
        self,
        geometry: Optional[GeometryNormalizer] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._geometry = geometry or GeometryNormalizer()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def geometry(self) -> GeometryNormalizer:
        return self._geometry

    def build(self, chain: str, record: AttestationRecord) -> NormalizedProof:
        """
        Build a proof for ``record`` observed on ``chain``.

        Raises:
            DecodeError: Identity missing or field payload undecodable
        """
        if not record.id:
            raise DecodeError("Attestation has no id", field="id", chain=chain)
        if record.encoded_fields is None:
            raise DecodeError(
                f"Undecodable field data for attestation {record.id}",
                uid=record.id,
                field="decodedDataJson",
                chain=chain,
            )

        now = self._clock()

        observed_at = parse_unix_seconds(record.created_at_unix)
        if observed_at is None:
            logger.warning(
                f"[{chain}] Invalid creation time '{record.created_at_unix}' "
                f"for {record.id}, using current time"
            )
            observed_at = now

        event_time = observed_at
        raw_event_time = record.field_value("eventTimestamp")
        if raw_event_time:
            parsed = parse_unix_seconds(raw_event_time)
            if parsed is None:
                logger.warning(
                    f"[{chain}] Invalid event timestamp for {record.id}, using creation time"
                )
            else:
                event_time = parsed

        raw_location = _as_text(record.field_value("location"))
        coords = self._geometry.normalize(raw_location)
        longitude, latitude = coords if coords else (None, None)

        return NormalizedProof(
            uid=record.id,
            chain=chain,
            prover=record.attester,
            subject=record.recipient or record.attester,
            observed_at=observed_at,
            event_time=event_time,
            srs=_as_text(record.field_value("srs"), DEFAULT_SRS),
            location_type=_as_text(record.field_value("locationType"), DEFAULT_LOCATION_TYPE),
            raw_location=raw_location,
            longitude=longitude,
            latitude=latitude,
            recipe_types=_as_list(record.field_value("recipeType")),
            recipe_payloads=_as_list(record.field_value("recipePayload")),
            media_types=_as_list(record.field_value("mediaType")),
            media_data=_as_list(record.field_value("mediaData")),
            memo=_as_text(record.field_value("memo")),
            revoked=record.is_revoked,
            first_seen_at=now,
            last_updated_at=now,
        )
