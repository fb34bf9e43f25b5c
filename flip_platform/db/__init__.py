"""Database module."""

from flip_platform.db.base import Base, TimestampMixin
from flip_platform.db.session import (
    close_db,
    create_session_factory,
    init_db,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Session
    "init_db",
    "close_db",
    "create_session_factory",
]
