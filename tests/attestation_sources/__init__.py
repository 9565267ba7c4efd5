"""
Tests for attestation sources.

This package contains tests for:
- The EAS GraphQL source and its failure classification
- The retry wrapper
- The source registry
"""
