"""Field-level checks and normalizers for stored book records.

Every normalizer is deterministic and a fixed point: applying it to its own
output changes nothing.
"""

import re
from datetime import datetime, timezone
from urllib.parse import urlparse

from common.constants import TITLE_CASE_SMALL_WORDS
from common.dates import parse_date, to_utc

_WHITESPACE = re.compile(r"\s+")
_TITLE_PREFIX = re.compile(r"^(?:(?:book|title):\s*)+", re.IGNORECASE)
_TITLE_SUFFIX = re.compile(r"(?:\s*\(book\))+\s*$", re.IGNORECASE)
_AUTHOR_PREFIX = re.compile(r"^(?:(?:by|author):\s*)+", re.IGNORECASE)
_AUTHOR_SUFFIX = re.compile(r"(?:\s*\(author\))+\s*$", re.IGNORECASE)

_ISBN_NOISE = re.compile(r"[^0-9X]", re.IGNORECASE)
_EMBEDDED_ISBN = re.compile(r"(\d{13}|\d{10})")
_VALID_ISBN = re.compile(r"^(\d{9}[\dX]|\d{13})$")

# (pattern, group order as year, month, day)
_DATE_PATTERNS: tuple[tuple[re.Pattern[str], tuple[int, int, int]], ...] = (
    (re.compile(r"(\d{4})-(\d{2})-(\d{2})"), (1, 2, 3)),  # YYYY-MM-DD
    (re.compile(r"(\d{2})/(\d{2})/(\d{4})"), (3, 1, 2)),  # MM/DD/YYYY
    (re.compile(r"(\d{2})-(\d{2})-(\d{4})"), (3, 1, 2)),  # MM-DD-YYYY
)


# Checks


def is_valid_date(value: str | None) -> bool:
    return parse_date(value) is not None


def is_valid_url(url: str) -> bool:
    """Whether ``url`` is an absolute URL with a scheme."""
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def is_valid_isbn(isbn: str) -> bool:
    """ISBN-10 (X check digit allowed) or ISBN-13, ignoring separators."""
    cleaned = re.sub(r"[^0-9A-Za-z]", "", isbn).upper()
    return bool(_VALID_ISBN.match(cleaned))


def has_uniform_casing(text: str) -> bool:
    """Whether text has letters, all upper- or all lowercase (e.g. "SAPIENS", "sapiens")."""
    if not any(char.isalpha() for char in text):
        return False
    return text == text.upper() or text == text.lower()


# Normalizers


def to_title_case(text: str) -> str:
    """Title-case ``text``, keeping small words lowercase unless first or last.

    Example:
        >>> to_title_case("the lord of the rings")
        'The Lord of the Rings'
    """
    words = text.lower().split(" ")
    last = len(words) - 1
    cased = []
    for index, word in enumerate(words):
        if index not in (0, last) and word in TITLE_CASE_SMALL_WORDS:
            cased.append(word)
        else:
            cased.append(word[:1].upper() + word[1:])
    return " ".join(cased)


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def normalize_title(title: str | None) -> str | None:
    """Trim, collapse whitespace, strip extraction artifacts and fix uniform casing.

    Example:
        >>> normalize_title("Title:  THE LEAN STARTUP (book)")
        'The Lean Startup'
    """
    if not title:
        return title

    normalized = _collapse(title)
    normalized = _TITLE_PREFIX.sub("", normalized)
    normalized = _TITLE_SUFFIX.sub("", normalized).strip()

    if has_uniform_casing(normalized):
        normalized = to_title_case(normalized)
    return normalized


def _normalize_author_once(author: str) -> str:
    normalized = _collapse(author)
    normalized = _AUTHOR_PREFIX.sub("", normalized)
    normalized = _AUTHOR_SUFFIX.sub("", normalized).strip()

    parts = normalized.split(",")
    if len(parts) == 2:
        last, first = (part.strip() for part in parts)
        if first and last:
            normalized = f"{first} {last}"

    if has_uniform_casing(normalized):
        normalized = to_title_case(normalized)
    return normalized


def normalize_author(author: str | None) -> str | None:
    """Like ``normalize_title``, and reflow "Last, First" into "First Last".

    Example:
        >>> normalize_author("by: harari, yuval noah")
        'Yuval Noah Harari'
    """
    if not author:
        return author

    # Reflowing can expose another prefix, so repeat until stable
    normalized = _normalize_author_once(author)
    while (again := _normalize_author_once(normalized)) != normalized:
        normalized = again
    return normalized


def clean_isbn(isbn: str | None) -> str | None:
    """Strip separators from an ISBN; leave it unchanged if no ISBN can be found.

    Example:
        >>> clean_isbn("978-0-7432-7356-5")
        '9780743273565'
    """
    if not isbn:
        return isbn

    cleaned = _ISBN_NOISE.sub("", isbn).upper()
    if len(cleaned) in (10, 13):
        return cleaned

    match = _EMBEDDED_ISBN.search(isbn)
    if match:
        return match.group(1)

    return isbn


def clean_urls(urls: list[str]) -> list[str]:
    """Trim, drop malformed URLs and de-duplicate, keeping first occurrences."""
    trimmed = (url.strip() for url in urls)
    return list(dict.fromkeys(url for url in trimmed if is_valid_url(url)))


def fix_date_format(value: str | None) -> str | None:
    """Re-normalize a date to an ISO timestamp, or None if no known format matches.

    Tries a direct parse, then YYYY-MM-DD, MM/DD/YYYY and MM-DD-YYYY in turn.
    """
    if not value:
        return None

    parsed = parse_date(value)
    if parsed is not None:
        return to_utc(parsed).isoformat()

    for pattern, (year, month, day) in _DATE_PATTERNS:
        match = pattern.search(value)
        if not match:
            continue
        try:
            fixed = datetime(
                int(match.group(year)), int(match.group(month)), int(match.group(day)),
                tzinfo=timezone.utc,
            )
        except ValueError:
            continue
        return fixed.isoformat()

    return None


def clean_categories(categories: list[str]) -> list[str]:
    """Trim, drop empties, title-case, de-duplicate and sort."""
    cased = (to_title_case(c.strip()) for c in categories if c.strip())
    return sorted(set(cased))
