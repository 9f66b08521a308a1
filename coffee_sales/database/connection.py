"""
Database Connection Management

SQLAlchemy 2.0 engine and session handling. A Database instance is the
explicit store handle passed to every component; nothing here is global.
"""

import threading
import time
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Iterator, Optional

import structlog
from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from coffee_sales.config.settings import DatabaseSettings
from coffee_sales.database.models import Base

logger = structlog.get_logger(__name__)


class Database:
    """
    Engine plus session factory for one relational store.

    Example:
        db = create_database(settings.database)
        with db.session() as session:
            session.execute(query)
    """

    def __init__(self, engine: Engine, serialize_sessions: bool = False):
        self.engine = engine
        # One shared connection: a session holds it for its whole transaction
        self._session_lock = threading.RLock() if serialize_sessions else None
        self._session_factory = sessionmaker(
            bind=engine,
            class_=Session,
            expire_on_commit=False,
            autoflush=False,
        )

    def create_schema(self) -> None:
        """Create all tables that do not exist yet"""
        Base.metadata.create_all(self.engine)
        logger.info("Database schema ensured", tables=sorted(Base.metadata.tables))

    def drop_schema(self) -> None:
        """Drop all tables"""
        Base.metadata.drop_all(self.engine)
        logger.warning("Database schema dropped")

    def _guard(self):
        return self._session_lock if self._session_lock is not None else nullcontext()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Get a database session.

        Commits when the block exits cleanly and rolls back otherwise, so a
        block is one transaction.

        With serialized sessions, other threads wait until the block exits.

        Yields:
            Session: Database session
        """
        with self._guard():
            session = self._session_factory()
            try:
                yield session
                session.commit()
                logger.debug("Database session committed successfully")
            except Exception as e:
                logger.debug("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
                session.rollback()
                raise
            finally:
                session.close()

    def check_health(self) -> dict:
        """
        Check database health status.

        Returns:
            dict: Health status with latency information
        """
        try:
            start = time.perf_counter()
            with self._guard(), self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "status": "healthy",
                "latency_ms": round(latency_ms, 2),
                "dialect": self.engine.dialect.name,
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e),
            }

    def dispose(self) -> None:
        """Close all pooled connections"""
        self.engine.dispose()
        logger.info("Database connection pool closed")


def create_database(settings: DatabaseSettings, create_schema: bool = True) -> Database:
    """
    Build a Database from settings.

    In-memory SQLite shares a single connection across threads so every
    session sees the same data. Sessions on it are serialized so a
    reader never sees or commits another thread's open transaction.

    Args:
        settings: Database settings
        create_schema: Create missing tables immediately

    Returns:
        Database: The initialized store handle
    """
    engine_config: dict = {
        "echo": settings.echo,
        "future": True,
    }

    if settings.is_in_memory:
        engine_config.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })
    elif settings.is_sqlite:
        engine_config["connect_args"] = {"check_same_thread": False}
        _ensure_sqlite_directory(settings.url)
    else:
        engine_config["pool_pre_ping"] = True

    engine = create_engine(settings.url, **engine_config)
    database = Database(engine, serialize_sessions=settings.is_in_memory)

    if create_schema:
        database.create_schema()

    logger.info("Database initialized", dialect=engine.dialect.name, in_memory=settings.is_in_memory)
    return database


def _ensure_sqlite_directory(url: str) -> None:
    """Create the parent directory of a file-backed SQLite database"""
    path: Optional[str] = url.split("///", 1)[1] if "///" in url else None
    if path:
        Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
