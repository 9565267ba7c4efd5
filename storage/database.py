"""
Storage - Database.

============================================================
RESPONSIBILITY
============================================================
Manages database connections and sessions.

- Provides connection pooling
- Manages database sessions
- Handles connection lifecycle
- Explicit transaction boundaries

============================================================
DESIGN PRINCIPLES
============================================================
- Synchronous engine; async callers go through asyncio.to_thread
- One Database object per store tier (primary, fallback)
- Each repository call is its own transaction

============================================================
"""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from storage.models.base import Base


# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def get_database_url(fallback: bool = False) -> Optional[str]:
    """
    Get database URL from environment.

    Args:
        fallback: Read the secondary tier URL instead

    Returns:
        Synchronous driver URL, or None when not configured
    """
    if fallback:
        url = os.getenv("FALLBACK_DATABASE_URL")
    else:
        url = os.getenv("DATABASE_URL_SYNC") or os.getenv("DATABASE_URL")

    if url and url.startswith("postgresql+asyncpg"):
        # Convert async URL to sync
        url = url.replace("postgresql+asyncpg", "postgresql")

    return url or None


def _redact(url: str) -> str:
    return url.split("@")[-1]


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for one database."""
    url: str
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 1800
    echo: bool = False

    @classmethod
    def from_env(cls, fallback: bool = False) -> Optional["DatabaseConfig"]:
        """Load database settings from environment variables."""
        url = get_database_url(fallback=fallback)
        if url is None:
            return None
        return cls(
            url=url,
            pool_size=int(os.getenv("DATABASE_POOL_SIZE", "10")),
            max_overflow=int(os.getenv("DATABASE_MAX_OVERFLOW", "20")),
            echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
        )


def create_database_engine(config: DatabaseConfig) -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    SQLite URLs get a single shared connection so an in-memory
    database survives across sessions and worker threads.
    """
    logger.info(f"Creating database engine for: {_redact(config.url)}")

    if config.url.startswith("sqlite"):
        engine = create_engine(
            config.url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=config.echo,
        )
    else:
        engine = create_engine(
            config.url,
            poolclass=QueuePool,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
            echo=config.echo,
        )

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Database connection established")

    return engine


class Database:
    """
    Engine plus session factory for one database.

    Usage:
        database = Database(DatabaseConfig(url="sqlite://"))
        database.create_all_tables()
        with database.transaction_scope() as session:
            session.add(row)
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def url(self) -> str:
        return _redact(self._config.url)

    @property
    def engine(self) -> Engine:
        """Get the database engine, creating if necessary."""
        if self._engine is None:
            self._engine = create_database_engine(self._config)
        return self._engine

    def get_session(self) -> Session:
        """
        Get a new database session.

        IMPORTANT: Caller is responsible for committing/closing.
        Prefer using transaction_scope() instead.
        """
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory()

    @contextmanager
    def transaction_scope(self) -> Generator[Session, None, None]:
        """
        Context manager for explicit transaction boundaries.

        Commits only if no exception occurs. Rolls back on any
        exception and re-raises it unchanged.
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def verify_connection(self) -> bool:
        """Verify database connection is working."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            logger.info(f"Database connection verified: {self.url}")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database connection failed: {e}")
            return False

    def create_all_tables(self) -> None:
        """Create all tables defined in ORM models."""
        # Register models with Base
        from storage import models  # noqa: F401

        logger.info(f"Creating database tables on {self.url}")
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        """Release pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
