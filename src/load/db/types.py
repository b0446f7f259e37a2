"""Shared types and exceptions for the database layer."""

from enum import Enum
from typing import Any


class DatabaseType(str, Enum):
    """Supported database types."""

    SQLITE = "sqlite"


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class ConnectionError(DatabaseError):
    """Error connecting to database."""

    pass


class IntegrityError(DatabaseError):
    """Database integrity constraint violation (e.g. duplicate book ID)."""

    pass


class SchemaError(DatabaseError):
    """Error creating or reading the episodes/books schema."""

    pass


# Type alias for database rows
Row = dict[str, Any]
