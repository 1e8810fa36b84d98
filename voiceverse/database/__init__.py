"""
Database Module

Async SQLAlchemy models, session management and repositories.
"""

from .base import (
    Base,
    TimestampMixin,
    DatabaseManager,
    get_database,
    init_database,
    close_database,
    get_session,
)


__all__ = [
    "Base",
    "TimestampMixin",
    "DatabaseManager",
    "get_database",
    "init_database",
    "close_database",
    "get_session",
]
