"""Deterministic ID generation for episodes and books."""

import hashlib
import re


def _digest(canonical: str) -> str:
    hash_obj = hashlib.sha256(canonical.encode("utf-8"))
    return f"sha256:{hash_obj.hexdigest()}"


def generate_book_id(title: str, author: str, episode_id: str = "") -> str:
    """
    Generate deterministic SHA256-based book ID.

    ID is based on the episode plus the normalized (title, author) pair. The
    same book mentioned by two episodes gets two records, which the
    maintenance merge can later fold together.

    Args:
        title: Book title
        author: Author name
        episode_id: ID of the episode the book was extracted from

    Returns:
        SHA256 hash prefixed with "sha256:"
    """
    canonical = f"{episode_id}|{title.strip().lower()}|{author.strip().lower()}"
    return _digest(canonical)


def validate_book_id(book_id: str) -> bool:
    """
    Validate book ID format.

    Args:
        book_id: ID to validate

    Returns:
        True if valid, False otherwise
    """
    # Must match: sha256:<64 hex characters>
    pattern = r"^sha256:[0-9a-f]{64}$"
    return bool(re.match(pattern, book_id))
