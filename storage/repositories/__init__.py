"""
Repository Layer Package.

============================================================
PURPOSE
============================================================
The Repository Layer is the ONLY gateway to persistent storage.
The pipeline and reconciler depend on the store contracts; any
implementation below satisfies them.

============================================================
IMPLEMENTATIONS
============================================================
- ProofRepository / CheckpointRepository: SQLAlchemy
- InMemoryProofStore / InMemoryCheckpointStore: dictionaries
- FallbackProofStore / FallbackCheckpointStore: two-tier wrappers

============================================================
"""

from storage.repositories.base import BaseRepository, CheckpointStore, RecordStore
from storage.repositories.checkpoint_repo import CheckpointRepository
from storage.repositories.exceptions import (
    DuplicateRecordError,
    QueryError,
    RecordIntegrityError,
    RepositoryConnectionError,
    RepositoryException,
)
from storage.repositories.fallback import FallbackCheckpointStore, FallbackProofStore
from storage.repositories.memory import InMemoryCheckpointStore, InMemoryProofStore
from storage.repositories.proof_repo import ProofRepository


__all__ = [
    # Contracts
    "CheckpointStore",
    "RecordStore",
    "BaseRepository",
    # SQL
    "ProofRepository",
    "CheckpointRepository",
    # In-memory
    "InMemoryProofStore",
    "InMemoryCheckpointStore",
    # Two-tier
    "FallbackProofStore",
    "FallbackCheckpointStore",
    # Exceptions
    "RepositoryException",
    "DuplicateRecordError",
    "RecordIntegrityError",
    "RepositoryConnectionError",
    "QueryError",
]
