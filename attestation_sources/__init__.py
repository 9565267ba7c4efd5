"""
Attestation Sources Package - Per-chain access to attestation indexers.

Quick Start:
    from attestation_sources import SourceRegistry, SourceSettings

    registry = SourceRegistry.from_settings(SourceSettings.from_env())
    client = registry.get("sepolia")
    records = await client.fetch_window(1700000000, 100)

Adding New Sources:
    Any object exposing ``chain``, ``schema_id`` and the three
    coroutines of ``AttestationSourceClient`` can be registered.
"""

from attestation_sources.base import AttestationSourceClient
from attestation_sources.config import ChainSourceConfig, SourceSettings
from attestation_sources.models import AttestationRecord, EncodedField
from attestation_sources.providers import EasGraphQLSource
from attestation_sources.registry import SourceRegistry
from attestation_sources.retry import RetryPolicy, retry_with_backoff


__all__ = [
    # Contract
    "AttestationSourceClient",
    # Models
    "AttestationRecord",
    "EncodedField",
    # Config
    "ChainSourceConfig",
    "SourceSettings",
    # Providers
    "EasGraphQLSource",
    # Registry
    "SourceRegistry",
    # Retry
    "RetryPolicy",
    "retry_with_backoff",
]
