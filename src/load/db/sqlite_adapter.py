"""SQLite implementation of the database adapter."""

import sqlite3
from pathlib import Path
from typing import Any

from .interface import DatabaseAdapter
from .types import ConnectionError as DBConnectionError
from .types import DatabaseError, Row, SchemaError
from .types import IntegrityError as DBIntegrityError


class SQLiteAdapter(DatabaseAdapter):
    """SQLite database adapter.

    The connection may be used from worker threads (enrichment runs blocking
    calls through ``asyncio.to_thread``), but never from two at once.
    """

    def __init__(self, db_path: str | Path):
        """Initialize SQLite adapter.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._schema_file = Path(__file__).parent / "schema_sqlite.sql"

    @property
    def _in_memory(self) -> bool:
        return str(self.db_path) == ":memory:"

    def _connection(self) -> sqlite3.Connection:
        if not self._conn:
            raise DatabaseError("No active connection")
        return self._conn

    def connect(self) -> None:
        """Establish database connection."""
        try:
            if not self._in_memory:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
        except (sqlite3.Error, OSError) as e:
            raise DBConnectionError(f"Failed to connect to SQLite database: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def commit(self) -> None:
        """Commit current transaction."""
        try:
            self._connection().commit()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to commit transaction: {e}") from e

    def rollback(self) -> None:
        """Rollback current transaction."""
        try:
            self._connection().rollback()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to rollback transaction: {e}") from e

    def create_schema(self) -> None:
        """Create tables and indexes from the bundled SQL file."""
        conn = self._connection()
        try:
            schema_sql = self._schema_file.read_text()
        except OSError as e:
            raise SchemaError(f"Failed to read schema file {self._schema_file}: {e}") from e

        try:
            conn.executescript(schema_sql)
            conn.commit()
        except sqlite3.Error as e:
            raise SchemaError(f"Failed to create schema: {e}") from e

    def get_tables(self) -> list[str]:
        """Get list of all tables in database."""
        rows = self.fetchall("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
        return [row["name"] for row in rows]

    def execute(self, query: str, params: tuple | None = None) -> Any:
        """Execute a query and return cursor."""
        conn = self._connection()
        try:
            return conn.execute(query, params or ())
        except sqlite3.IntegrityError as e:
            raise DBIntegrityError(f"Integrity constraint violation: {e}") from e
        except sqlite3.Error as e:
            raise DatabaseError(f"Query execution failed: {e}") from e

    def fetchone(self, query: str, params: tuple | None = None) -> Row | None:
        """Execute query and fetch one result as dictionary."""
        row = self.execute(query, params).fetchone()
        return dict(row) if row is not None else None

    def fetchall(self, query: str, params: tuple | None = None) -> list[Row]:
        """Execute query and fetch all results as list of dictionaries."""
        return [dict(row) for row in self.execute(query, params).fetchall()]

    def fetchscalar(self, query: str, params: tuple | None = None) -> Any:
        """Execute query and return first column of first row."""
        row = self.execute(query, params).fetchone()
        return row[0] if row is not None else None

    @property
    def placeholder(self) -> str:
        return "?"

    def exists(self) -> bool:
        """Check if SQLite database file exists."""
        return self._in_memory or self.db_path.exists()

    def drop_schema(self) -> None:
        """Drop all tables in SQLite database."""
        tables = [t for t in self.get_tables() if t != "sqlite_sequence"]
        for table in tables:
            self.execute(f"DROP TABLE IF EXISTS {table}")
        self.commit()

    def __repr__(self) -> str:
        status = "connected" if self._conn else "disconnected"
        return f"SQLiteAdapter(db_path={self.db_path}, status={status})"
