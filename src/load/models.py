"""Persisted entities: podcast episodes and extracted books."""

import json
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class EnhancementStatus(str, Enum):
    """Outcome of the latest metadata enrichment attempt.

    Every attempt moves a book from PENDING to one of the terminal states.
    Re-running enrichment may retry a book in any terminal state.
    """

    PENDING = "pending"
    ENHANCED = "enhanced"
    FAILED = "failed"
    NOT_FOUND = "not_found"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Episode:
    """A podcast episode from the RSS feed."""

    id: str
    title: str
    description: str = ""
    pub_date: str = ""
    link: str = ""
    guid: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Episode":
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in row.items() if k in names and v is not None})


# Columns stored as JSON text
_LIST_COLUMNS = ("extracted_links", "categories")


@dataclass
class Book:
    """A book mentioned in an episode, with optional enrichment metadata."""

    id: str
    title: str
    author: str
    episode_id: str = ""
    episode_title: str = ""
    episode_date: str = ""
    extracted_links: list[str] = field(default_factory=list)
    context: str | None = None
    isbn: str | None = None
    isbn13: str | None = None
    isbn10: str | None = None
    publisher: str | None = None
    published_date: str | None = None
    description: str | None = None
    page_count: int | None = None
    categories: list[str] = field(default_factory=list)
    average_rating: float | None = None
    ratings_count: int | None = None
    language: str | None = None
    info_link: str | None = None
    cover_image: str | None = None
    google_books_id: str | None = None
    enhancement_status: EnhancementStatus = EnhancementStatus.PENDING
    enhancement_date: str | None = None
    enhancement_error: str | None = None
    confidence: float | None = None
    needs_review: bool = False
    date_added: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["enhancement_status"] = self.enhancement_status.value
        return data

    def to_row(self) -> dict[str, Any]:
        """Serialize for the database (lists as JSON, booleans as integers)."""
        row = self.to_dict()
        for column in _LIST_COLUMNS:
            row[column] = json.dumps(row[column])
        row["needs_review"] = int(self.needs_review)
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Book":
        """Build a Book from a database row or a plain dictionary."""
        names = {f.name for f in fields(cls)}
        data = {k: v for k, v in row.items() if k in names}

        for column in _LIST_COLUMNS:
            value = data.get(column)
            if isinstance(value, str):
                try:
                    value = json.loads(value)
                except json.JSONDecodeError:
                    value = [value]
            data[column] = list(value or [])

        status = data.get("enhancement_status")
        data["enhancement_status"] = EnhancementStatus(status) if status else EnhancementStatus.PENDING
        data["needs_review"] = bool(data.get("needs_review") or False)
        if not data.get("date_added"):
            data.pop("date_added", None)

        return cls(**data)
