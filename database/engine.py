"""
Database Persistence Layer - Core Engine.

============================================================
ALERT HISTORY PERSISTENCE
============================================================

This module owns the SQLAlchemy engine, the session factory
and the transaction boundaries used by the alert lifecycle
store.

Requirements:
- SQLAlchemy 2.0 ORM (PostgreSQL in production, SQLite locally)
- Explicit transaction management
- Structured logging
- Hard failures on persistence errors

============================================================
"""

import os
import logging
from typing import Generator, Optional
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import DateTime, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./maintenance_alerts.db"

# =============================================================
# DECLARATIVE BASE
# =============================================================


class Base(DeclarativeBase):
    """Declarative base for all ORM models. Timestamps are timezone-aware."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


# =============================================================
# DATABASE ENGINE
# =============================================================

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


def get_database_url() -> str:
    """Get database URL from environment."""
    url = os.getenv("DATABASE_URL_SYNC")
    if not url:
        url = os.getenv("DATABASE_URL")
        if url and url.startswith("postgresql+asyncpg"):
            # Convert async URL to sync
            url = url.replace("postgresql+asyncpg", "postgresql")

    if not url:
        url = DEFAULT_DATABASE_URL
        logger.warning(f"DATABASE_URL not set, using default: {url}")

    return url


def create_database_engine(
    database_url: Optional[str] = None,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> Engine:
    """
    Create a SQLAlchemy engine.

    Server databases get a QueuePool. SQLite in-memory databases
    share a single connection (StaticPool) so every session sees
    the same tables.

    Args:
        database_url: Explicit URL (defaults to environment)
        pool_size: Number of connections to keep in pool
        max_overflow: Max connections beyond pool_size
        pool_timeout: Seconds to wait for available connection
        pool_recycle: Recycle connections after N seconds
        echo: Log SQL statements
    """
    database_url = database_url or get_database_url()

    logger.info(f"Creating database engine for: {database_url.split('@')[-1]}")

    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)
    else:
        engine = create_engine(
            database_url,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            echo=echo,
        )

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Database connection established")

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine."""
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


def configure_database(database_url: Optional[str] = None, echo: bool = False) -> sessionmaker:
    """
    (Re)configure the process-wide engine and session factory.

    Returns:
        The new session factory
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()

    _engine = create_database_engine(database_url, echo=echo)
    _SessionFactory = create_session_factory(_engine)
    return _SessionFactory


def get_engine() -> Engine:
    """Get the database engine, creating if necessary."""
    if _engine is None:
        configure_database()
    return _engine


def get_session_factory() -> sessionmaker:
    """Get session factory, creating if necessary."""
    if _SessionFactory is None:
        configure_database()
    return _SessionFactory


# =============================================================
# SESSION MANAGEMENT
# =============================================================


@contextmanager
def transaction_scope(
    session_factory: Optional[sessionmaker] = None,
) -> Generator[Session, None, None]:
    """
    Context manager for explicit transaction boundaries.

    Commits only if no exception occurs.
    Rolls back on ANY exception. SQLAlchemy errors are re-raised as
    DatabasePersistenceError; other exceptions propagate unchanged.

    Usage:
        with transaction_scope() as session:
            session.add(record)
            # Commits automatically at end
    """
    factory = session_factory or get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
        logger.debug("Database transaction committed successfully")
    except SQLAlchemyError as e:
        logger.error(f"Database transaction failed, rolling back: {e}")
        session.rollback()
        raise DatabasePersistenceError(f"Transaction failed: {e}") from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================
# DATABASE INITIALIZATION
# =============================================================


def verify_database_connection(engine: Optional[Engine] = None) -> bool:
    """
    Verify database connection is working.

    Raises:
        DatabaseConnectionError if connection fails
    """
    engine = engine or get_engine()

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection verified successfully")
            return True
    except OperationalError as e:
        logger.error(f"Database connection failed: {e}")
        raise DatabaseConnectionError(f"Cannot connect to database: {e}") from e


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """
    Create all tables defined in ORM models.

    Raises:
        DatabaseInitializationError if table creation fails
    """
    engine = engine or get_engine()

    # Register models with Base
    import maintenance_alerts.models  # noqa: F401

    try:
        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}")
        raise DatabaseInitializationError(f"Table creation failed: {e}") from e


def initialize_database(engine: Optional[Engine] = None) -> None:
    """
    Full database initialization sequence.

    1. Verify connection
    2. Create tables if not exist
    3. Abort on any failure
    """
    logger.info("=" * 60)
    logger.info("INITIALIZING DATABASE PERSISTENCE LAYER")
    logger.info("=" * 60)

    try:
        verify_database_connection(engine)
        create_all_tables(engine)
    except DatabasePersistenceError as e:
        logger.critical(f"DATABASE INITIALIZATION FAILED: {e}")
        raise

    logger.info("DATABASE INITIALIZATION COMPLETE")


# =============================================================
# CUSTOM EXCEPTIONS
# =============================================================


class DatabasePersistenceError(Exception):
    """Raised when database persistence fails."""
    pass


class DatabaseConnectionError(DatabasePersistenceError):
    """Raised when database connection fails."""
    pass


class DatabaseInitializationError(DatabasePersistenceError):
    """Raised when database initialization fails."""
    pass
