"""
Storage module for the config document and per-user records.

This module provides abstract interfaces consumed by the reconciliation jobs
and their SQLAlchemy-backed implementations.
"""

from .base import BaseConfigStore, BaseRecordStore
from .sql import SQLConfigStore, SQLRecordStore

__all__ = [
    "BaseConfigStore",
    "BaseRecordStore",
    "SQLConfigStore",
    "SQLRecordStore",
]
