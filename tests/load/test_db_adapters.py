"""Tests for database adapters."""

from pathlib import Path

import pytest

from load.db import DatabaseConfig, DatabaseError, IntegrityError, create_database
from load.db.sqlite_adapter import SQLiteAdapter


class TestSQLiteAdapter:
    """Tests for SQLite adapter."""

    def test_create_adapter(self, tmp_path):
        """Test creating a SQLite adapter."""
        db_path = tmp_path / "test.db"
        adapter = SQLiteAdapter(db_path)
        assert adapter.db_path == db_path
        assert adapter._conn is None

    def test_connect_and_close(self, tmp_path):
        """Test connecting to and closing database."""
        adapter = SQLiteAdapter(tmp_path / "test.db")

        adapter.connect()
        assert adapter._conn is not None

        adapter.close()
        assert adapter._conn is None

    def test_connect_creates_parent_directory(self, tmp_path):
        """Test that a missing data directory is created."""
        db_path = tmp_path / "data" / "nested" / "podcast_books.db"
        adapter = SQLiteAdapter(db_path)
        adapter.connect()
        assert db_path.parent.is_dir()
        adapter.close()

    def test_create_schema(self, tmp_path):
        """Test creating database schema."""
        adapter = SQLiteAdapter(tmp_path / "test.db")
        adapter.connect()

        adapter.create_schema()

        assert adapter.get_tables() == ["books", "episodes"]
        adapter.close()

    def test_create_schema_is_idempotent(self, tmp_path):
        adapter = SQLiteAdapter(tmp_path / "test.db")
        adapter.connect()
        adapter.create_schema()
        adapter.create_schema()
        assert adapter.get_tables() == ["books", "episodes"]
        adapter.close()

    def test_drop_schema(self, tmp_path):
        adapter = SQLiteAdapter(tmp_path / "test.db")
        adapter.connect()
        adapter.create_schema()

        adapter.drop_schema()

        assert adapter.get_tables() == []
        adapter.close()

    def test_fetch_helpers(self, tmp_path):
        """Test fetchone, fetchall and fetchscalar."""
        adapter = SQLiteAdapter(":memory:")
        adapter.connect()
        adapter.create_schema()
        adapter.execute(
            "INSERT INTO episodes (id, guid, title) VALUES (?, ?, ?)",
            ("ep-1", "guid-1", "#1 Steve Jobs"),
        )

        assert adapter.fetchscalar("SELECT COUNT(*) FROM episodes") == 1
        assert adapter.fetchone("SELECT title FROM episodes WHERE id = ?", ("ep-1",)) == {
            "title": "#1 Steve Jobs"
        }
        assert adapter.fetchone("SELECT title FROM episodes WHERE id = ?", ("missing",)) is None
        assert len(adapter.fetchall("SELECT * FROM episodes")) == 1
        adapter.close()

    def test_integrity_error(self):
        """Test that duplicate keys raise IntegrityError."""
        adapter = SQLiteAdapter(":memory:")
        adapter.connect()
        adapter.create_schema()
        insert = "INSERT INTO episodes (id, guid, title) VALUES (?, ?, ?)"
        adapter.execute(insert, ("ep-1", "guid-1", "#1"))

        with pytest.raises(IntegrityError):
            adapter.execute(insert, ("ep-2", "guid-1", "#2"))
        adapter.close()

    def test_invalid_status_rejected(self):
        """Test that the schema only accepts known enhancement statuses."""
        adapter = SQLiteAdapter(":memory:")
        adapter.connect()
        adapter.create_schema()

        with pytest.raises(IntegrityError):
            adapter.execute(
                "INSERT INTO books (id, title, author, enhancement_status, date_added) "
                "VALUES (?, ?, ?, ?, ?)",
                ("b1", "Sapiens", "Yuval Noah Harari", "done", "2024-01-01"),
            )
        adapter.close()

    def test_query_without_connection(self, tmp_path):
        adapter = SQLiteAdapter(tmp_path / "test.db")
        with pytest.raises(DatabaseError, match="No active connection"):
            adapter.execute("SELECT 1")

    def test_context_manager_commits(self, tmp_path):
        """Test that leaving the context commits and closes."""
        db_path = tmp_path / "test.db"
        with SQLiteAdapter(db_path) as adapter:
            adapter.create_schema()
            adapter.execute(
                "INSERT INTO episodes (id, guid, title) VALUES (?, ?, ?)", ("ep-1", "guid-1", "#1")
            )
        assert adapter._conn is None

        with SQLiteAdapter(db_path) as adapter:
            assert adapter.fetchscalar("SELECT COUNT(*) FROM episodes") == 1

    def test_exists(self, tmp_path):
        db_path = tmp_path / "test.db"
        adapter = SQLiteAdapter(db_path)
        assert not adapter.exists()
        adapter.connect()
        assert adapter.exists()
        adapter.close()

    def test_placeholder(self, tmp_path):
        assert SQLiteAdapter(tmp_path / "test.db").placeholder == "?"


class TestDatabaseFactory:
    """Tests for database factory."""

    def test_create_sqlite_adapter(self, tmp_path):
        config = DatabaseConfig(db_type="sqlite", db_path=tmp_path / "test.db")
        adapter = create_database(config)
        assert isinstance(adapter, SQLiteAdapter)

    def test_string_path_converted(self):
        config = DatabaseConfig(db_type="SQLITE", db_path="data/podcast_books.db")
        assert config.db_path == Path("data/podcast_books.db")

    def test_unsupported_type(self):
        with pytest.raises(ValueError, match="Unsupported database type"):
            DatabaseConfig(db_type="postgresql", db_path="x.db")

    def test_missing_path(self):
        with pytest.raises(ValueError, match="db_path is required"):
            DatabaseConfig(db_type="sqlite")

    def test_get_adapter_from_env(self, tmp_path, monkeypatch):
        from load.db import get_adapter

        monkeypatch.setenv("DATABASE_TYPE", "sqlite")
        monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "env.db"))
        adapter = get_adapter()
        assert isinstance(adapter, SQLiteAdapter)
        assert adapter.db_path == tmp_path / "env.db"
