"""
SQLite database engine and session management for the reconciliation jobs.

This module provides SQLite-specific database connectivity with:
- Session-per-operation pattern for the stores
- NullPool connection pooling to avoid SQLite locking issues
- Comprehensive error handling and file-based logging
- SQLite optimization settings (WAL mode, foreign keys, timeouts)

The engine is created by ``configure_database()`` (called once by the
scheduler wiring, or by tests with a temporary file) rather than on import.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional
from urllib.parse import urlparse

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool

from .models import Base
from src.logger import setup_logging, log_function


db_logger = setup_logging(
    logger_name="database",
    log_file="logs/database.log",
    verbose=False,  # Only file logging, no console output
)


engine: Optional[Engine] = None
SessionLocal: Optional[sessionmaker] = None


def validate_database_url(url: Optional[str]) -> tuple[bool, str]:
    """Validate the database URL format and path."""
    if not url:
        return False, "DATABASE_URL is empty"
    try:
        parsed = urlparse(url)
        if parsed.scheme != "sqlite":
            return False, f"Only SQLite databases are supported, got: {parsed.scheme}"

        # sqlite:///relative.db -> "relative.db", sqlite:////abs.db -> "/abs.db"
        db_path = url[len("sqlite:///"):]
        if not db_path:
            return False, "Database file path is empty"

        parent_dir = Path(db_path).parent
        if not parent_dir.exists():
            return False, f"Database directory does not exist: {parent_dir}"

        return True, db_path

    except Exception as e:
        return False, f"Invalid database URL format: {e}"


def optimize_sqlite_connection(dbapi_connection, connection_record):
    """Apply SQLite-specific optimizations when connection is created."""
    cursor = dbapi_connection.cursor()

    # Enable WAL mode for better concurrent access
    cursor.execute("PRAGMA journal_mode=WAL")

    # Set busy timeout to 30 seconds to handle locks
    cursor.execute("PRAGMA busy_timeout=30000")

    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA synchronous=NORMAL")

    cursor.close()


@log_function(logger_name="database", log_args=True, log_execution_time=True)
def configure_database(database_url: str, create_tables: bool = True) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    Args:
        database_url: SQLite URL (``sqlite:///path/to/file.db``)
        create_tables: If True, create missing tables

    Returns:
        The configured engine

    Raises:
        ValueError: If the URL is not a usable SQLite URL
    """
    global engine, SessionLocal

    is_valid, db_info = validate_database_url(database_url)
    if not is_valid:
        db_logger.error(f"Database configuration error: {db_info}")
        raise ValueError(f"Database configuration error: {db_info}")

    engine = create_engine(
        database_url,
        poolclass=NullPool,  # Avoid connection pooling issues with SQLite
        echo=False,
        connect_args={
            "check_same_thread": False,  # Stores run in worker threads
            "timeout": 30,
        },
    )
    event.listen(engine, "connect", optimize_sqlite_connection)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db_logger.info(f"Database configured: {db_info}")

    if create_tables:
        init_database()
    return engine


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions (session-per-operation pattern).

    Usage:
        with get_db_session() as session:
            session.add(row)
            session.commit()
    """
    if SessionLocal is None:
        raise RuntimeError("Database is not configured, call configure_database()")

    session = SessionLocal()
    try:
        db_logger.debug("Database session created")
        yield session

    except OperationalError as e:
        db_logger.error(f"Database operational error: {e}")
        session.rollback()

        error_msg = str(e.orig) if hasattr(e, "orig") else str(e)
        if "database is locked" in error_msg.lower():
            raise OperationalError(
                "Database is locked. This may be due to another process accessing the database. "
                "Please try again or check for long-running database operations.",
                None,
                None,
            )
        elif "no such table" in error_msg.lower():
            raise OperationalError(
                "Database table does not exist. Please initialize the database first.",
                None,
                None,
            )
        else:
            raise

    except SQLAlchemyError as e:
        db_logger.error(f"Database error: {e}")
        session.rollback()
        raise

    except Exception as e:
        db_logger.error(f"Unexpected database error: {e}")
        session.rollback()
        raise

    finally:
        session.close()
        db_logger.debug("Database session closed")


def check_database_connection() -> bool:
    """
    Check if database connection is working.

    Returns:
        bool: True if connection is successful, False otherwise
    """
    try:
        with get_db_session() as session:
            session.execute(text("SELECT 1"))
            db_logger.info("Database connection test successful")
            return True

    except Exception as e:
        db_logger.error(f"Database connection test failed: {e}")
        return False


def init_database() -> bool:
    """
    Create all tables defined in models.

    Returns:
        bool: True if initialization successful, False otherwise
    """
    if engine is None:
        db_logger.error("Cannot initialize database: engine not configured")
        return False
    try:
        Base.metadata.create_all(bind=engine)
        db_logger.info("Database tables created successfully")
        return True

    except Exception as e:
        db_logger.error(f"Failed to initialize database: {e}")
        return False
