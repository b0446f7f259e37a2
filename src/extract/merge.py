"""Merge duplicate book records by their normalized (title, author) key."""

from collections.abc import Iterable
from dataclasses import replace

from common.dates import parse_date, to_utc
from load.models import Book

CONTEXT_SEPARATOR = " | "


def normalized_key(title: str, author: str) -> str:
    """Case- and whitespace-insensitive identity of a book.

    Example:
        >>> normalized_key(" sapiens ", "YUVAL NOAH HARARI")
        'sapiens|yuval noah harari'
    """
    return f"{title.strip().lower()}|{author.strip().lower()}"


def merge_links(first: Iterable[str], second: Iterable[str]) -> list[str]:
    """Union of two link lists, keeping first-seen order."""
    return list(dict.fromkeys([*first, *second]))


def merge_contexts(existing: str | None, incoming: str | None) -> str:
    """Append ``incoming`` unless it is empty or already contained."""
    existing = existing or ""
    if not incoming or incoming in existing:
        return existing
    return f"{existing}{CONTEXT_SEPARATOR}{incoming}" if existing else incoming


def earliest_date(first: str, second: str) -> str:
    """Earlier of two date strings; blanks lose, unparsable dates compare lexically."""
    if not first:
        return second
    if not second:
        return first

    first_parsed, second_parsed = parse_date(first), parse_date(second)
    if first_parsed is not None and second_parsed is not None:
        return second if to_utc(second_parsed) < to_utc(first_parsed) else first
    return second if second < first else first


def merge_book_pair(existing: Book, incoming: Book) -> Book:
    """Fold ``incoming`` into ``existing``.

    Episode ID and title stay those of ``existing``; only the date moves to
    the earliest one.
    """
    return replace(
        existing,
        extracted_links=merge_links(existing.extracted_links, incoming.extracted_links),
        context=merge_contexts(existing.context, incoming.context),
        episode_date=earliest_date(existing.episode_date, incoming.episode_date),
    )


def merge_duplicate_books(books: Iterable[Book]) -> list[Book]:
    """Merge books sharing a normalized (title, author) key.

    Output keeps first-seen order. Inputs are never mutated and merging an
    already merged list changes nothing.

    Args:
        books: Books in extraction order

    Returns:
        One book per normalized key
    """
    merged: dict[str, Book] = {}

    for book in books:
        key = normalized_key(book.title, book.author)
        if key not in merged:
            merged[key] = replace(
                book,
                extracted_links=merge_links(book.extracted_links, []),
                context=book.context or "",
            )
        else:
            merged[key] = merge_book_pair(merged[key], book)

    return list(merged.values())
