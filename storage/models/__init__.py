"""
Storage Models Package.

ORM models for the sync engine database.

- LocationProofModel (location_proofs)
- ChainCheckpointModel (chain_checkpoints)
"""

from storage.models.base import Base, JSONColumn
from storage.models.location_proofs import ChainCheckpointModel, LocationProofModel


__all__ = [
    "Base",
    "JSONColumn",
    "LocationProofModel",
    "ChainCheckpointModel",
]
