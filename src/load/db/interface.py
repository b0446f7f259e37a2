"""Abstract database adapter interface.

The book store talks to the database only through this interface, so the
storage backend can change without touching extraction or quality code.
"""

from abc import ABC, abstractmethod
from typing import Any

from .types import Row


class DatabaseAdapter(ABC):
    """Abstract database adapter interface."""

    @abstractmethod
    def connect(self) -> None:
        """Establish database connection.

        Raises:
            ConnectionError: If connection fails
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close database connection."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit current transaction.

        Raises:
            DatabaseError: If commit fails
        """
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Rollback current transaction.

        Raises:
            DatabaseError: If rollback fails
        """
        pass

    @abstractmethod
    def create_schema(self) -> None:
        """Create the episodes and books tables (idempotent).

        Raises:
            SchemaError: If schema creation fails
        """
        pass

    @abstractmethod
    def get_tables(self) -> list[str]:
        """Get list of all tables in database.

        Raises:
            DatabaseError: If query fails
        """
        pass

    @abstractmethod
    def execute(self, query: str, params: tuple | None = None) -> Any:
        """Execute a query and return cursor.

        Raises:
            DatabaseError: If execution fails
            IntegrityError: If integrity constraint violated
        """
        pass

    @abstractmethod
    def fetchone(self, query: str, params: tuple | None = None) -> Row | None:
        """Execute query and fetch one result as dictionary (None if no rows)."""
        pass

    @abstractmethod
    def fetchall(self, query: str, params: tuple | None = None) -> list[Row]:
        """Execute query and fetch all results as dictionaries."""
        pass

    @abstractmethod
    def fetchscalar(self, query: str, params: tuple | None = None) -> Any:
        """Execute query and return first column of first row.

        Useful for COUNT(*) style queries.
        """
        pass

    @property
    @abstractmethod
    def placeholder(self) -> str:
        """Database-specific parameter placeholder ('?' for SQLite)."""
        pass

    @abstractmethod
    def exists(self) -> bool:
        """Check if the database exists."""
        pass

    @abstractmethod
    def drop_schema(self) -> None:
        """Drop all tables in the database."""
        pass

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()
        self.close()
        return False
