"""
Attestation source configuration.

Endpoints are read from ``EAS_ENDPOINT_<CHAIN>`` variables. A chain
without an endpoint stays in the settings but is left out of the
active chain set when the registry is built.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from core.constants import (
    DEFAULT_CHAINS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SCHEMA_UID,
)


@dataclass(frozen=True)
class ChainSourceConfig:
    """Indexer settings for one chain."""
    chain: str
    endpoint: Optional[str]
    schema_uid: str = DEFAULT_SCHEMA_UID

    @property
    def is_configured(self) -> bool:
        """Check if an indexer endpoint is set."""
        return bool(self.endpoint and self.endpoint.strip())


@dataclass(frozen=True)
class SourceSettings:
    """Indexer settings for every known chain."""
    chains: tuple[ChainSourceConfig, ...] = field(default_factory=tuple)
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "SourceSettings":
        """Load source settings from environment variables."""
        schema_uid = os.getenv("EAS_SCHEMA_UID") or DEFAULT_SCHEMA_UID

        chain_names = list(DEFAULT_CHAINS)
        extra = os.getenv("EAS_CHAINS", "")
        for name in (c.strip().lower() for c in extra.split(",")):
            if name and name not in chain_names:
                chain_names.append(name)

        chains = tuple(
            ChainSourceConfig(
                chain=name,
                endpoint=os.getenv(f"EAS_ENDPOINT_{name.upper()}"),
                schema_uid=os.getenv(f"EAS_SCHEMA_UID_{name.upper()}") or schema_uid,
            )
            for name in chain_names
        )

        return cls(
            chains=chains,
            request_timeout_seconds=float(
                os.getenv("EAS_REQUEST_TIMEOUT_SECONDS", str(DEFAULT_REQUEST_TIMEOUT_SECONDS))
            ),
        )

    def configured_chains(self) -> list[ChainSourceConfig]:
        """Chains with an endpoint, in declaration order."""
        return [c for c in self.chains if c.is_configured]

    def validate(self) -> list[str]:
        """Validate settings, return list of errors."""
        errors = []

        if self.request_timeout_seconds <= 0:
            errors.append("request_timeout_seconds must be positive")

        seen = set()
        for chain_config in self.chains:
            if chain_config.chain in seen:
                errors.append(f"duplicate chain '{chain_config.chain}'")
            seen.add(chain_config.chain)
            if not chain_config.schema_uid:
                errors.append(f"schema_uid missing for chain '{chain_config.chain}'")

        return errors
