"""
Attestation Source Registry - Chain to client mapping.

The active chain set is fixed when the registry is built. Chains with
no configured endpoint are dropped with a warning and never polled.
"""

import logging
from typing import Callable, Iterator, Optional

from attestation_sources.base import AttestationSourceClient
from attestation_sources.config import ChainSourceConfig, SourceSettings
from attestation_sources.providers.eas_graphql import EasGraphQLSource
from core.exceptions import ChainNotConfiguredError


logger = logging.getLogger(__name__)


SourceFactory = Callable[[ChainSourceConfig, SourceSettings], AttestationSourceClient]


def _default_factory(
    chain_config: ChainSourceConfig,
    settings: SourceSettings,
) -> AttestationSourceClient:
    return EasGraphQLSource(
        chain=chain_config.chain,
        endpoint=chain_config.endpoint,
        schema_id=chain_config.schema_uid,
        timeout=settings.request_timeout_seconds,
    )


class SourceRegistry:
    """
    Registry of per-chain attestation source clients.

    Usage:
        registry = SourceRegistry.from_settings(SourceSettings.from_env())
        client = registry.get("sepolia")
    """

    def __init__(self) -> None:
        self._clients: dict[str, AttestationSourceClient] = {}

    @classmethod
    def from_settings(
        cls,
        settings: SourceSettings,
        factory: Optional[SourceFactory] = None,
    ) -> "SourceRegistry":
        """Build a registry with one client per configured chain."""
        registry = cls()
        factory = factory or _default_factory

        for chain_config in settings.chains:
            if not chain_config.is_configured:
                logger.warning(
                    f"[{chain_config.chain}] No endpoint configured "
                    f"(EAS_ENDPOINT_{chain_config.chain.upper()}), chain disabled"
                )
                continue
            registry.register(factory(chain_config, settings))

        logger.info(f"Active chains: {', '.join(registry.chains()) or 'none'}")
        return registry

    def register(self, client: AttestationSourceClient) -> None:
        """Register a client under its chain name."""
        if client.chain in self._clients:
            logger.warning(f"[{client.chain}] Source already registered, replacing")
        self._clients[client.chain] = client

    def get(self, chain: str) -> AttestationSourceClient:
        """
        Get the client for a chain.

        Raises:
            ChainNotConfiguredError: Chain is not in the active set
        """
        client = self._clients.get(chain)
        if client is None:
            raise ChainNotConfiguredError(chain, list(self._clients))
        return client

    def chains(self) -> list[str]:
        """Active chain names in registration order."""
        return list(self._clients)

    def __contains__(self, chain: object) -> bool:
        return chain in self._clients

    def __iter__(self) -> Iterator[str]:
        return iter(self._clients)

    def __len__(self) -> int:
        return len(self._clients)

    async def close(self) -> None:
        """Close every client that holds resources."""
        for chain, client in self._clients.items():
            close = getattr(client, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.warning(f"[{chain}] Error closing source: {e}")
