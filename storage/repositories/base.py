"""
Base Repository Class.

============================================================
PURPOSE
============================================================
Provides common functionality for all repositories including:
- Store contracts the pipeline and reconciler depend on
- Running blocking session work off the event loop
- Error handling wrappers
- Logging setup

============================================================
USAGE
============================================================
SQL repositories inherit from BaseRepository and describe each
operation as a function of a Session. Every call is one
transaction and one awaited suspension point.

============================================================
"""

import asyncio
import logging
from typing import Callable, Optional, Protocol, Sequence, TypeVar, runtime_checkable

from sqlalchemy.exc import (
    IntegrityError as SQLAlchemyIntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from data_ingestion.types import NormalizedProof
from storage.database import Database
from storage.repositories.exceptions import (
    DuplicateRecordError,
    QueryError,
    RecordIntegrityError,
    RepositoryConnectionError,
)


R = TypeVar("R")


# =========================================================
# STORE CONTRACTS
# =========================================================

@runtime_checkable
class CheckpointStore(Protocol):
    """Per-chain watermark storage."""

    async def get(self, chain: str) -> Optional[int]:
        """Last stored watermark, None for a never-synced chain."""
        ...

    async def set(self, chain: str, timestamp: int) -> None:
        """Store a watermark. Raises PersistenceError on failure."""
        ...


@runtime_checkable
class RecordStore(Protocol):
    """Keyed proof storage with a one-way revocation flag."""

    async def exists(self, chain: str, uid: str) -> bool:
        ...

    async def create(self, proof: NormalizedProof) -> bool:
        """Insert a proof. False when ``(chain, uid)`` already exists."""
        ...

    async def batch_set_revoked(self, chain: str, uids: Sequence[str]) -> int:
        """Mark proofs revoked; returns how many changed."""
        ...

    async def list_active(self, chain: str, limit: int) -> list[NormalizedProof]:
        """Non-revoked proofs, newest first."""
        ...


# =========================================================
# SQL BASE
# =========================================================

class BaseRepository:
    """
    Base class for SQL repositories.

    ============================================================
    RESPONSIBILITIES
    ============================================================
    - Runs session work in a worker thread
    - Wraps database errors in repository exceptions
    - Manages logging for all operations

    ============================================================
    """

    def __init__(self, database: Database, repository_name: str) -> None:
        """
        Initialize the repository.

        Args:
            database: Database to run against (injected)
            repository_name: Name for logging and error messages
        """
        self._database = database
        self._repository_name = repository_name
        self._logger = logging.getLogger(f"repository.{repository_name}")

    @property
    def database(self) -> Database:
        return self._database

    @property
    def repository_name(self) -> str:
        return self._repository_name

    # =========================================================
    # PROTECTED HELPER METHODS
    # =========================================================

    async def _run(
        self,
        operation: str,
        work: Callable[[Session], R],
        context: Optional[dict] = None,
    ) -> R:
        """Run ``work`` in its own transaction on a worker thread."""

        def execute() -> R:
            try:
                with self._database.transaction_scope() as session:
                    return work(session)
            except SQLAlchemyError as e:
                self._handle_db_error(e, operation, context)
                raise  # Never reached, but satisfies type checker

        return await asyncio.to_thread(execute)

    def _handle_db_error(
        self,
        error: Exception,
        operation: str,
        context: Optional[dict] = None
    ) -> None:
        """
        Handle database errors by wrapping in repository exceptions.

        Args:
            error: The original exception
            operation: Name of the operation that failed
            context: Additional context for logging

        Raises:
            RepositoryException: Always raises appropriate exception
        """
        context = context or {}

        if isinstance(error, SQLAlchemyIntegrityError):
            # Check for duplicate key
            error_str = str(error).lower()
            if "duplicate" in error_str or "unique" in error_str:
                self._logger.debug(f"Duplicate key in {operation}: {context}")
                raise DuplicateRecordError(
                    repository_name=self._repository_name,
                    constraint_field="key",
                    value=context.get("key", "unknown"),
                ) from error

            self._logger.error(f"Integrity error in {operation}: {error}", extra={"context": context})
            raise RecordIntegrityError(
                repository_name=self._repository_name,
                operation=operation,
                message=str(error),
            ) from error

        self._logger.error(
            f"Database error in {operation}: {error}",
            extra={"context": context},
            exc_info=True
        )

        if isinstance(error, OperationalError):
            raise RepositoryConnectionError(
                repository_name=self._repository_name,
                operation=operation,
                original_error=str(error)
            ) from error

        raise QueryError(
            repository_name=self._repository_name,
            operation=operation,
            original_error=str(error)
        ) from error

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(database={self._database.url})>"
