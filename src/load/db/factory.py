"""Database factory for creating database adapters."""

from dataclasses import dataclass
from pathlib import Path

from .interface import DatabaseAdapter
from .sqlite_adapter import SQLiteAdapter
from .types import DatabaseType


@dataclass
class DatabaseConfig:
    """Database configuration container.

    Attributes:
        db_type: Type of database (only 'sqlite' is supported)
        db_path: Path to SQLite database file
    """

    db_type: DatabaseType | str
    db_path: Path | str | None = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.db_type, str):
            try:
                self.db_type = DatabaseType(self.db_type.lower())
            except ValueError as e:
                raise ValueError(
                    f"Unsupported database type: {self.db_type}. "
                    f"Must be one of: {', '.join(t.value for t in DatabaseType)}"
                ) from e

        if self.db_path is None:
            raise ValueError("db_path is required for SQLite")
        if isinstance(self.db_path, str):
            self.db_path = Path(self.db_path)


def create_database(config: DatabaseConfig) -> DatabaseAdapter:
    """Create the adapter for a configuration.

    Example:
        >>> config = DatabaseConfig(db_type="sqlite", db_path=Path("./data/podcast_books.db"))
        >>> adapter = create_database(config)
    """
    if config.db_type == DatabaseType.SQLITE:
        return SQLiteAdapter(config.db_path)

    # Unreachable while DatabaseType only has SQLITE
    raise ValueError(f"Unsupported database type: {config.db_type}")


def get_adapter() -> DatabaseAdapter:
    """Get database adapter using DATABASE_TYPE / DATABASE_PATH from the environment."""
    from common.env import env

    config = DatabaseConfig(db_type=env.database_type(), db_path=env.database_path())
    return create_database(config)
