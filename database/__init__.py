"""
Database Package Initialization.

============================================================
ALERT HISTORY PERSISTENCE LAYER
============================================================

Engine, session factory and transaction boundaries shared by
the maintenance alert lifecycle store.

REQUIRED:
- Every failure raises hard exceptions
- All transactions are explicit with commit/rollback

============================================================
"""

from .engine import (
    # Declarative base
    Base,

    # Engine creation
    DEFAULT_DATABASE_URL,
    configure_database,
    create_database_engine,
    create_session_factory,
    get_database_url,
    get_engine,
    get_session_factory,

    # Session management
    transaction_scope,

    # Database initialization
    create_all_tables,
    initialize_database,
    verify_database_connection,

    # Exceptions
    DatabasePersistenceError,
    DatabaseConnectionError,
    DatabaseInitializationError,
)


__all__ = [
    "Base",
    "DEFAULT_DATABASE_URL",
    "configure_database",
    "create_database_engine",
    "create_session_factory",
    "get_database_url",
    "get_engine",
    "get_session_factory",
    "transaction_scope",
    "create_all_tables",
    "initialize_database",
    "verify_database_connection",
    "DatabasePersistenceError",
    "DatabaseConnectionError",
    "DatabaseInitializationError",
]
