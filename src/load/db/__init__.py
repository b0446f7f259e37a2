"""Database abstraction layer for podcast-books.

Example:
    >>> from load.db import DatabaseConfig, create_database
    >>>
    >>> config = DatabaseConfig(db_type="sqlite", db_path="data/podcast_books.db")
    >>> adapter = create_database(config)
    >>> adapter.connect()
    >>> adapter.create_schema()
    >>> adapter.fetchscalar("SELECT COUNT(*) FROM books")
    0
    >>> adapter.close()
"""

from .factory import DatabaseConfig, create_database, get_adapter
from .interface import DatabaseAdapter
from .types import (
    ConnectionError,
    DatabaseError,
    DatabaseType,
    IntegrityError,
    Row,
    SchemaError,
)

__all__ = [
    # Factory
    "DatabaseConfig",
    "create_database",
    "get_adapter",
    # Interface
    "DatabaseAdapter",
    # Types and exceptions
    "DatabaseType",
    "DatabaseError",
    "ConnectionError",
    "IntegrityError",
    "SchemaError",
    "Row",
]
