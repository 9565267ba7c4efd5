"""
Data Ingestion - Normalizers Package.

Normalizers:
- geometry_normalizer: location string -> (longitude, latitude)
- proof_normalizer: attestation record -> NormalizedProof
"""

from data_ingestion.normalizers.geometry_normalizer import GeometryNormalizer, normalize
from data_ingestion.normalizers.proof_normalizer import ProofNormalizer, parse_unix_seconds


__all__ = [
    "GeometryNormalizer",
    "normalize",
    "ProofNormalizer",
    "parse_unix_seconds",
]
