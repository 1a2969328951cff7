"""Database engine and transaction management.

``Database`` is the process-scoped resource handle shared by every repository.
Each logical mutation runs inside ``transaction()`` so that a failure part way
through leaves no partial rows behind.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from nook_ordering_service.models.db_models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine for the given URL.

    In-memory SQLite databases share a single connection so that every session
    sees the same data.

    Args:
        database_url: SQLAlchemy database URL
        echo: Whether to log SQL statements

    Returns:
        Configured engine
    """
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


class Database:
    """Owns the engine and session factory."""

    def __init__(self, engine: Engine) -> None:
        """Initialize the database handle.

        Args:
            engine: SQLAlchemy engine to bind sessions to
        """
        self.engine = engine
        self.session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> "Database":
        """Create a handle with a new engine for ``database_url``."""
        return cls(create_db_engine(database_url, echo=echo))

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Open a session wrapped in a single transaction.

        Commits when the block exits normally, rolls back on any exception.

        Yields:
            Session bound to the open transaction
        """
        session = self.session_factory()
        try:
            with session.begin():
                yield session
        finally:
            session.close()

    def create_all(self) -> None:
        """Create all tables that do not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info("Database tables ensured")

    def ping(self) -> bool:
        """Run a trivial round-trip query.

        Returns:
            True if the database answered, False otherwise
        """
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False
