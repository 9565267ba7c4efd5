"""
Data Ingestion Package.

Turns attestations fetched from chain indexers into stored
location proofs and keeps their revocation state current.

Sub-packages:
- normalizers: geometry and proof normalization

Main services:
- ingestion_pipeline: per-chain incremental sync
- revocation_reconciler: push and pull revocation passes
"""

from data_ingestion.ingestion_pipeline import IngestionPipeline, PipelineConfig
from data_ingestion.normalizers import GeometryNormalizer, ProofNormalizer, normalize
from data_ingestion.revocation_reconciler import RevocationReconciler
from data_ingestion.types import (
    ChainIngestionResult,
    IngestionStatus,
    NormalizedProof,
    RevocationMode,
    RevocationResult,
)


__all__ = [
    # Services
    "IngestionPipeline",
    "PipelineConfig",
    "RevocationReconciler",
    # Normalizers
    "GeometryNormalizer",
    "ProofNormalizer",
    "normalize",
    # Types
    "NormalizedProof",
    "ChainIngestionResult",
    "IngestionStatus",
    "RevocationResult",
    "RevocationMode",
]
