"""
Repository Layer Exceptions.

============================================================
PURPOSE
============================================================
Defines repository-specific exceptions for proper error handling
and propagation. All database errors must be caught and wrapped
in these exceptions.

============================================================
USAGE
============================================================
Repositories catch SQLAlchemy/database exceptions and re-raise
as repository exceptions with context. Every repository exception
is a PersistenceError, so the pipeline and the fallback stores can
handle store failures without knowing about SQLAlchemy.

============================================================
"""

from typing import Any, Optional

from core.exceptions import PersistenceError


class RepositoryException(PersistenceError):
    """
    Base exception for all repository operations.

    Business layers can catch this (or PersistenceError) for
    generic error handling.
    """

    def __init__(
        self,
        message: str,
        repository_name: str,
        operation: str,
        details: Optional[dict] = None
    ) -> None:
        self.repository_name = repository_name
        self.operation = operation
        self.details = details or {}
        super().__init__(
            f"[{repository_name}] {operation}: {message}",
            context=dict(self.details),
        )


class DuplicateRecordError(RepositoryException):
    """
    Raised when attempting to create a duplicate record.

    Use when unique constraint violations occur during insert.
    """

    def __init__(
        self,
        repository_name: str,
        constraint_field: str,
        value: Any
    ) -> None:
        super().__init__(
            message=f"Duplicate record: {constraint_field}={value} already exists",
            repository_name=repository_name,
            operation="create",
            details={"field": constraint_field, "value": str(value)}
        )
        self.constraint_field = constraint_field
        self.value = value


class RecordIntegrityError(RepositoryException):
    """
    Raised when database integrity constraints are violated.

    Includes not-null and check constraint violations.
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        message: str
    ) -> None:
        super().__init__(
            message=f"Integrity constraint violated: {message}",
            repository_name=repository_name,
            operation=operation,
        )


class RepositoryConnectionError(RepositoryException):
    """
    Raised when database connection fails.

    Use for connection timeouts, pool exhaustion, etc.
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Database connection failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error}
        )


class QueryError(RepositoryException):
    """
    Raised when a query execution fails.

    Use for syntax errors, invalid parameters, etc.
    """

    def __init__(
        self,
        repository_name: str,
        operation: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Query failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error}
        )
