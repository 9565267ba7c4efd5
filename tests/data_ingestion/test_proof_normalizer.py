"""
Tests for building proofs from attestation records.
"""

from datetime import datetime, timezone

import pytest

from attestation_sources.models import AttestationRecord
from core.exceptions import DecodeError
from data_ingestion.normalizers.geometry_normalizer import GeometryNormalizer
from data_ingestion.normalizers.proof_normalizer import ProofNormalizer, parse_unix_seconds


FIXED_NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def normalizer():
    return ProofNormalizer(clock=lambda: FIXED_NOW)


class TestParseUnixSeconds:

    def test_numeral_string(self):
        assert parse_unix_seconds("1700000000") == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_integer(self):
        assert parse_unix_seconds(1700000000) == parse_unix_seconds("1700000000")

    def test_fractional_string(self):
        assert parse_unix_seconds("1700000000.9") == parse_unix_seconds("1700000000")

    @pytest.mark.parametrize("value", [None, "", "soon", True, "1e400"])
    def test_unparsable(self, value):
        assert parse_unix_seconds(value) is None


class TestProofNormalizer:

    def test_defaults_for_missing_fields(self, normalizer, make_record):
        proof = normalizer.build("sepolia", make_record("0x1", location=None))

        assert proof.uid == "0x1"
        assert proof.chain == "sepolia"
        assert proof.srs == "WGS84"
        assert proof.location_type == "point"
        assert proof.raw_location == ""
        assert proof.longitude is None and proof.latitude is None
        assert proof.recipe_types == []
        assert proof.recipe_payloads == []
        assert proof.media_types == []
        assert proof.media_data == []
        assert proof.memo == ""
        assert proof.revoked is False
        assert proof.first_seen_at == FIXED_NOW

    def test_fields_decoded_by_name(self, normalizer, make_record):
        record = make_record(
            "0x2",
            location="40.7128,-74.0060",
            extra_fields={
                "srs": "EPSG:4326",
                "locationType": "coordinate-decimal",
                "recipeType": ["gps", "wifi"],
                "recipePayload": ["0xaa", "0xbb"],
                "mediaType": ["image/jpeg"],
                "mediaData": ["ipfs://cid"],
                "memo": "at the office",
            },
        )
        proof = normalizer.build("base", record)

        assert proof.srs == "EPSG:4326"
        assert proof.location_type == "coordinate-decimal"
        assert proof.raw_location == "40.7128,-74.0060"
        assert (proof.longitude, proof.latitude) == (-74.006, 40.7128)
        assert proof.recipe_types == ["gps", "wifi"]
        assert proof.recipe_payloads == ["0xaa", "0xbb"]
        assert proof.media_types == ["image/jpeg"]
        assert proof.media_data == ["ipfs://cid"]
        assert proof.memo == "at the office"

    def test_subject_falls_back_to_attester(self, normalizer, make_record):
        proof = normalizer.build("celo", make_record("0x3", recipient=None, attester="0xabc"))
        assert proof.prover == "0xabc"
        assert proof.subject == "0xabc"

    def test_subject_is_recipient_when_present(self, normalizer, make_record):
        proof = normalizer.build("celo", make_record("0x3", recipient="0xdef", attester="0xabc"))
        assert proof.subject == "0xdef"

    def test_event_time_from_field(self, normalizer, make_record):
        record = make_record("0x4", created_at=1700000100, extra_fields={"eventTimestamp": "1700000050"})
        proof = normalizer.build("sepolia", record)

        assert proof.observed_at == parse_unix_seconds(1700000100)
        assert proof.event_time == parse_unix_seconds(1700000050)

    def test_event_time_defaults_to_observed_at(self, normalizer, make_record):
        record = make_record("0x5", created_at=1700000100, extra_fields={"eventTimestamp": "yesterday"})
        proof = normalizer.build("sepolia", record)
        assert proof.event_time == proof.observed_at

    def test_invalid_creation_time_uses_clock(self, normalizer, make_record):
        proof = normalizer.build("sepolia", make_record("0x6", created_at="garbage"))
        assert proof.observed_at == FIXED_NOW
        assert proof.event_time == FIXED_NOW

    def test_revoked_at_first_sight(self, normalizer, make_record):
        proof = normalizer.build("sepolia", make_record("0x7", revocation_time="1700000500"))
        assert proof.revoked is True

    def test_undecodable_payload_raises(self, normalizer, make_record):
        with pytest.raises(DecodeError) as exc_info:
            normalizer.build("sepolia", make_record("0x8", undecodable=True))
        assert exc_info.value.uid == "0x8"
        assert exc_info.value.chain == "sepolia"

    def test_missing_id_raises(self, normalizer):
        record = AttestationRecord(
            id="",
            attester="0xabc",
            recipient=None,
            revocation_time_unix="0",
            created_at_unix="1700000000",
            encoded_fields=(),
        )
        with pytest.raises(DecodeError):
            normalizer.build("sepolia", record)

    def test_zero_policy_passed_through(self, make_record):
        location = '{"type":"Point","coordinates":[0,51.4779]}'
        strict = ProofNormalizer(GeometryNormalizer(allow_zero_coordinates=False))
        lenient = ProofNormalizer(GeometryNormalizer(allow_zero_coordinates=True))

        assert strict.build("base", make_record("0x9", location=location)).longitude is None
        assert lenient.build("base", make_record("0x9", location=location)).longitude == 0.0
