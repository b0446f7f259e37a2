"""Basic sanity checks for extracted book candidates."""

import re
from dataclasses import dataclass, field
from typing import Any

_HAS_ALNUM = re.compile(r"[A-Za-z0-9]")

TITLE_MIN_LENGTH = 2
TITLE_MAX_LENGTH = 200
AUTHOR_MIN_LENGTH = 2
AUTHOR_MAX_LENGTH = 100


class ValidationError(ValueError):
    """A candidate book failed basic title/author checks."""

    def __init__(self, errors: list[str]):
        super().__init__(", ".join(errors))
        self.errors = errors


@dataclass
class BookValidationResult:
    """Outcome of validating one candidate."""

    valid: bool
    errors: list[str] = field(default_factory=list)

    def raise_if_invalid(self) -> None:
        if not self.valid:
            raise ValidationError(self.errors)


def _check_field(value: str, label: str, min_length: int, max_length: int) -> list[str]:
    if not value:
        return [f"{label} is required"]
    if len(value) < min_length:
        return [f"{label} is too short"]
    if len(value) > max_length:
        return [f"{label} is too long"]
    if not _HAS_ALNUM.search(value):
        return [f"{label} must contain letters or numbers"]
    return []


def validate_book_data(book: Any) -> BookValidationResult:
    """Validate title and author of a candidate (object or dict).

    Example:
        >>> validate_book_data({"title": "Steve Jobs", "author": "Walter Isaacson"}).valid
        True
    """
    if isinstance(book, dict):
        title, author = book.get("title"), book.get("author")
    else:
        title, author = getattr(book, "title", None), getattr(book, "author", None)

    title = str(title or "").strip()
    author = str(author or "").strip()

    errors = _check_field(title, "Book title", TITLE_MIN_LENGTH, TITLE_MAX_LENGTH)
    errors += _check_field(author, "Author name", AUTHOR_MIN_LENGTH, AUTHOR_MAX_LENGTH)
    return BookValidationResult(valid=not errors, errors=errors)
