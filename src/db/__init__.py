"""
Database package for the reconciliation jobs.

Structure:
- models.py: SQLAlchemy ORM models (User, PlayRecordRow, FavoriteRow, ...)
- database.py: Database connection, engine, and session factory
- __init__.py: Package initialization and exports

SQLite uses session-per-operation with the get_db_session() context manager.
"""

from .models import (
    Base,
    TimestampMixin,
    User,
    UserRole,
    PlayRecordRow,
    FavoriteRow,
    NotificationRow,
    AdminConfigRow,
)
from .database import (
    configure_database,
    get_db_session,
    check_database_connection,
    init_database,
)

__all__ = [
    # Models
    "Base",
    "TimestampMixin",
    "User",
    "UserRole",
    "PlayRecordRow",
    "FavoriteRow",
    "NotificationRow",
    "AdminConfigRow",
    # Database utilities
    "configure_database",
    "get_db_session",
    "check_database_connection",
    "init_database",
]
