"""
Database connection management for CountyFix
PostgreSQL in production, SQLite for local runs and the test suite
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, make_url, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.core.config import settings
from .models import Base

logger = logging.getLogger(__name__)


def _engine_options(url: URL, echo: bool) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}

    if url.get_backend_name() == "sqlite":
        # Sessions are handed to FastAPI's threadpool
        options["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            # In-memory databases live in a single connection
            options["poolclass"] = StaticPool

    return options


class DatabaseConnection:
    """
    Engine and session factory for the reports, messages, upvotes and users
    tables.

    Sessions never expire loaded attributes on commit: workflows keep using a
    report after committing (for example to build the owner's message).
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        echo: Optional[bool] = None
    ):
        """
        Args:
            database_url: SQLAlchemy URL (defaults to DATABASE_URL)
            echo: Log emitted SQL (defaults to DB_ECHO)
        """
        self.url = make_url(database_url or settings.database_url)

        self.engine = create_engine(
            self.url,
            **_engine_options(self.url, settings.db_echo if echo is None else echo),
        )
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

        logger.info(f"Database ready: {self.url.render_as_string(hide_password=True)}")

    def create_tables(self) -> None:
        """Create missing tables and indexes (no-op for existing ones)."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create tables: {e}")
            raise
        logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")

    def drop_tables(self) -> None:
        """Drop every table. Test and reset use only."""
        try:
            Base.metadata.drop_all(bind=self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Failed to drop tables: {e}")
            raise
        logger.warning("All tables dropped")

    def check_connection(self) -> bool:
        """Round-trip a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False
        return True

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Session scoped to a unit of work: committed on success, rolled back
        on a database error, always closed.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Rolled back session: {e}")
            raise
        finally:
            session.close()

    def close(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")


# Process-wide connection, created on first use
_db: Optional[DatabaseConnection] = None


def get_db() -> DatabaseConnection:
    """Process-wide connection; tables are created on first use."""
    global _db
    if _db is None:
        _db = init_db()
    return _db


def init_db(database_url: Optional[str] = None) -> DatabaseConnection:
    """
    Replace the process-wide connection.

    Args:
        database_url: Override for DATABASE_URL

    Returns:
        The new DatabaseConnection, with tables created
    """
    global _db
    if _db is not None:
        _db.close()
    _db = DatabaseConnection(database_url=database_url)
    _db.create_tables()
    return _db


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request."""
    with get_db().get_session() as session:
        yield session
