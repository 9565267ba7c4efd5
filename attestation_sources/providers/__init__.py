"""
Providers package - Attestation source implementations.
"""

from attestation_sources.providers.eas_graphql import EasGraphQLSource


__all__ = [
    "EasGraphQLSource",
]
