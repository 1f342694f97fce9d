"""Database engine and session management for the remote backend."""

from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config.logging import get_logger

# Get logger for this module
logger = get_logger(__name__)

# Base class for all ORM models
Base = declarative_base()


def _configure_sqlite(dbapi_connection, connection_record):
    """Configure SQLite for reliability."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def create_engine_for_url(database_url: str, echo_sql: bool = False) -> Engine:
    """Create a database engine for ``database_url``."""
    logger.info(
        "Creating database engine",
        url_type="sqlite" if "sqlite" in database_url else "other",
        echo_sql=echo_sql,
    )

    engine_kwargs: Dict[str, Any] = {"echo": echo_sql, "pool_pre_ping": True}

    # SQLite-specific configuration
    if "sqlite" in database_url:
        engine_kwargs.update(
            {
                "connect_args": {"check_same_thread": False, "timeout": 30},
                "poolclass": StaticPool,
            }
        )

    engine = create_engine(database_url, **engine_kwargs)

    if "sqlite" in database_url:
        event.listen(engine, "connect", _configure_sqlite)

    return engine


class Database:
    """
    Engine plus session factory for one backend.

    Constructed explicitly and handed to whatever needs it; tests build one
    against an in-memory SQLite URL.
    """

    def __init__(self, database_url: str, echo_sql: bool = False):
        self.database_url = database_url
        self.engine = create_engine_for_url(database_url, echo_sql)
        self.session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            expire_on_commit=False,  # Keep objects accessible after commit
        )

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(settings.get_database_url(), settings.database_echo_sql)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Get a database session with automatic cleanup.

        Yields:
            Session: committed on success, rolled back on error
        """
        session = self.session_factory()

        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error("Database session rolled back", error=str(e), exc_info=True)
            raise
        finally:
            session.close()

    def create_tables(self) -> None:
        """Create all database tables."""
        # Models must be imported so their tables are registered on Base
        from . import models  # noqa: F401

        logger.info("Creating database tables")
        Base.metadata.create_all(bind=self.engine)

    def check_health(self) -> Dict[str, Any]:
        """
        Check database connectivity.

        Returns:
            dict: Database health status
        """
        try:
            with self.session() as session:
                health_check = session.execute(text("SELECT 1")).scalar()

            return {
                "status": "healthy",
                "connectivity": health_check == 1,
                "database_url": self.database_url.split("@")[-1],
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e), exc_info=True)
            return {"status": "unhealthy", "error": str(e), "connectivity": False}

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(settings=None, url: Optional[str] = None) -> Database:
    """Build a ``Database`` with its tables created."""
    if url is None:
        if settings is None:
            from ..config.settings import get_settings

            settings = get_settings()
        database = Database.from_settings(settings)
    else:
        database = Database(url)
    database.create_tables()
    return database
