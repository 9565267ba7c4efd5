"""
Tests for data ingestion.

This package contains tests for:
- Geometry and proof normalization
- The per-chain ingestion pipeline
- Revocation reconciliation
"""
