"""Book and episode persistence on top of a database adapter."""

from dataclasses import fields
from typing import Any

from common.logger import get_logger

from .db import DatabaseAdapter, DatabaseError, get_adapter
from .models import Book, EnhancementStatus, Episode, utc_now_iso

logger = get_logger(__name__)

_BOOK_COLUMNS = tuple(f.name for f in fields(Book))
_EPISODE_COLUMNS = ("id", "guid", "title", "description", "pub_date", "link")


class StorageError(Exception):
    """A store operation failed for one record."""

    def __init__(self, message: str, record_id: str | None = None):
        super().__init__(message)
        self.record_id = record_id


class BookStore:
    """CRUD access to stored books and episodes.

    Every write commits immediately; there is no multi-row atomicity.
    Failures surface as ``StorageError`` so batch callers can record them
    per record and keep going.

    Example:
        >>> with BookStore.open() as store:
        ...     books = store.get_all()
    """

    def __init__(self, adapter: DatabaseAdapter):
        """Initialize store.

        Args:
            adapter: Connected database adapter with the schema created
        """
        self.adapter = adapter
        self._ph = adapter.placeholder

    @classmethod
    def open(cls, adapter: DatabaseAdapter | None = None) -> "BookStore":
        """Connect (default: adapter from environment) and ensure the schema exists."""
        adapter = adapter or get_adapter()
        adapter.connect()
        adapter.create_schema()
        return cls(adapter)

    def close(self) -> None:
        self.adapter.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _write(self, query: str, params: tuple, record_id: str | None, action: str) -> int:
        try:
            cursor = self.adapter.execute(query, params)
            self.adapter.commit()
        except DatabaseError as e:
            try:
                self.adapter.rollback()
            except DatabaseError as rollback_error:
                logger.debug(f"Rollback after failed write also failed: {rollback_error}")
            raise StorageError(f"Failed to {action} {record_id or 'record'}: {e}", record_id) from e
        return cursor.rowcount

    def _read(self, query: str, params: tuple | None = None) -> list[dict[str, Any]]:
        try:
            return self.adapter.fetchall(query, params)
        except DatabaseError as e:
            raise StorageError(f"Failed to read from database: {e}") from e

    # Books

    def get_all(self) -> list[Book]:
        """All stored books, oldest first."""
        rows = self._read("SELECT * FROM books ORDER BY date_added, id")
        return [Book.from_row(row) for row in rows]

    def get_by_id(self, book_id: str) -> Book | None:
        rows = self._read(f"SELECT * FROM books WHERE id = {self._ph}", (book_id,))
        return Book.from_row(rows[0]) if rows else None

    def get_by_enhancement_status(
        self, status: EnhancementStatus | str, limit: int | None = None
    ) -> list[Book]:
        status = EnhancementStatus(status)
        query = f"SELECT * FROM books WHERE enhancement_status = {self._ph} ORDER BY date_added, id"
        params: tuple = (status.value,)
        if limit is not None:
            query += f" LIMIT {self._ph}"
            params += (limit,)
        return [Book.from_row(row) for row in self._read(query, params)]

    def insert(self, book: Book) -> Book:
        """Insert a new book.

        Raises:
            StorageError: If the insert fails (e.g. duplicate ID)
        """
        row = book.to_row()
        columns = ", ".join(_BOOK_COLUMNS)
        placeholders = ", ".join([self._ph] * len(_BOOK_COLUMNS))
        self._write(
            f"INSERT INTO books ({columns}) VALUES ({placeholders})",
            tuple(row[c] for c in _BOOK_COLUMNS),
            book.id,
            "insert book",
        )
        logger.debug(f"Stored book '{book.title}' by {book.author}")
        return book

    def update(self, book_id: str, patch: dict[str, Any]) -> Book:
        """Apply a partial update to a book.

        Args:
            book_id: ID of the book to update
            patch: Field name to new value (``id`` cannot be changed)

        Returns:
            The updated book

        Raises:
            StorageError: If the book doesn't exist, a field is unknown, or the update fails
        """
        if "id" in patch:
            raise StorageError("Book ID cannot be changed", book_id)
        unknown = set(patch) - set(_BOOK_COLUMNS)
        if unknown:
            raise StorageError(f"Unknown book fields: {', '.join(sorted(unknown))}", book_id)

        current = self.get_by_id(book_id)
        if current is None:
            raise StorageError(f"Book not found: {book_id}", book_id)
        if not patch:
            return current

        merged = Book.from_row({**current.to_dict(), **patch})
        row = merged.to_row()
        assignments = ", ".join(f"{column} = {self._ph}" for column in patch)
        self._write(
            f"UPDATE books SET {assignments} WHERE id = {self._ph}",
            (*(row[column] for column in patch), book_id),
            book_id,
            "update book",
        )
        return merged

    def delete(self, book_id: str) -> bool:
        """Delete a book.

        Returns:
            True if a row was deleted
        """
        deleted = self._write(
            f"DELETE FROM books WHERE id = {self._ph}", (book_id,), book_id, "delete book"
        )
        return deleted > 0

    def count_by_status(self) -> dict[str, int]:
        rows = self._read(
            "SELECT enhancement_status, COUNT(*) AS count FROM books GROUP BY enhancement_status"
        )
        counts = {status.value: 0 for status in EnhancementStatus}
        counts.update({row["enhancement_status"]: row["count"] for row in rows})
        return counts

    # Episodes

    def upsert_episode(self, episode: Episode) -> Episode:
        """Insert an episode or update the stored one with the same GUID."""
        guid = episode.guid or episode.pub_date
        values = {**episode.to_dict(), "guid": guid}
        columns = ", ".join(_EPISODE_COLUMNS)
        placeholders = ", ".join([self._ph] * len(_EPISODE_COLUMNS))
        updates = ", ".join(
            f"{column} = excluded.{column}" for column in _EPISODE_COLUMNS if column not in ("id", "guid")
        )
        self._write(
            f"INSERT INTO episodes ({columns}) VALUES ({placeholders}) "
            f"ON CONFLICT(guid) DO UPDATE SET {updates}, updated_at = {self._ph}",
            (*(values[c] for c in _EPISODE_COLUMNS), utc_now_iso()),
            guid,
            "store episode",
        )
        stored = self.get_episode_by_guid(guid)
        if stored is None:
            raise StorageError(f"Episode vanished after upsert: {guid}", guid)
        return stored

    def get_episode_by_guid(self, guid: str) -> Episode | None:
        rows = self._read(f"SELECT * FROM episodes WHERE guid = {self._ph}", (guid,))
        return Episode.from_row(rows[0]) if rows else None

    def get_episodes(self) -> list[Episode]:
        rows = self._read("SELECT * FROM episodes ORDER BY pub_date DESC")
        return [Episode.from_row(row) for row in rows]
