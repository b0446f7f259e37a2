"""Normalize stored book records and merge stored duplicates."""

from functools import reduce
from typing import Any

from common.logger import get_logger
from extract.merge import merge_book_pair, normalized_key
from load.book_store import BookStore, StorageError
from load.models import Book

from .models import BulkCleaningResult, CleaningResult, CleaningSuggestion, CleaningSummary
from .normalizers import (
    clean_categories,
    clean_isbn,
    clean_urls,
    fix_date_format,
    is_valid_date,
    normalize_author,
    normalize_title,
)

logger = get_logger(__name__)


def plan_cleaning(book: Book) -> tuple[dict[str, Any], list[str], list[str]]:
    """Work out the full-rule-set patch for a book without touching the store.

    Returns:
        Tuple of (patch, change descriptions, errors)
    """
    patch: dict[str, Any] = {}
    changes: list[str] = []
    errors: list[str] = []

    title = normalize_title(book.title)
    if title != book.title:
        patch["title"] = title
        changes.append(f'Title normalized from "{book.title}" to "{title}"')

    author = normalize_author(book.author)
    if author != book.author:
        patch["author"] = author
        changes.append(f'Author normalized from "{book.author}" to "{author}"')

    if book.isbn:
        isbn = clean_isbn(book.isbn)
        if isbn != book.isbn:
            patch["isbn"] = isbn
            changes.append(f'ISBN cleaned from "{book.isbn}" to "{isbn}"')

    links = clean_urls(book.extracted_links)
    if links != book.extracted_links:
        patch["extracted_links"] = links
        changes.append(f"Cleaned {len(book.extracted_links) - len(links)} invalid or duplicate URLs")

    if book.episode_date and not is_valid_date(book.episode_date):
        fixed = fix_date_format(book.episode_date)
        if fixed:
            patch["episode_date"] = fixed
            changes.append(f'Fixed episode date from "{book.episode_date}" to "{fixed}"')
        else:
            errors.append(f"Could not fix invalid date: {book.episode_date}")

    if book.average_rating is not None and not 0 <= book.average_rating <= 5:
        rating = max(0.0, min(5.0, book.average_rating))
        patch["average_rating"] = rating
        changes.append(f"Fixed rating from {book.average_rating} to {rating}")

    if book.page_count is not None and book.page_count < 0:
        patch["page_count"] = None
        changes.append(f"Removed invalid negative page count: {book.page_count}")

    if book.categories:
        categories = clean_categories(book.categories)
        if categories != book.categories:
            patch["categories"] = categories
            changes.append(
                f"Cleaned categories from {len(book.categories)} to {len(categories)} items"
            )

    return patch, changes, errors


def plan_low_risk_fixes(book: Book) -> tuple[dict[str, Any], list[str]]:
    """Patch limited to whitespace trimming and exact-duplicate link removal."""
    patch: dict[str, Any] = {}
    changes: list[str] = []

    if book.title and book.title != book.title.strip():
        patch["title"] = book.title.strip()
        changes.append("Trimmed title whitespace")

    if book.author and book.author != book.author.strip():
        patch["author"] = book.author.strip()
        changes.append("Trimmed author whitespace")

    unique_links = list(dict.fromkeys(book.extracted_links))
    if len(unique_links) != len(book.extracted_links):
        patch["extracted_links"] = unique_links
        changes.append(f"Removed {len(book.extracted_links) - len(unique_links)} duplicate URLs")

    return patch, changes


def find_duplicate_groups(books: list[Book]) -> list[list[Book]]:
    """Groups of two or more books sharing a normalized (title, author) key."""
    groups: dict[str, list[Book]] = {}
    for book in books:
        groups.setdefault(normalized_key(book.title, book.author), []).append(book)
    return [group for group in groups.values() if len(group) > 1]


class DataCleaner:
    """Applies field-level fixes to stored books.

    Nothing runs implicitly: each method is an explicit maintenance action.
    Per-book storage failures are reported in the results, never raised.
    """

    def __init__(self, store: BookStore):
        """Initialize the cleaner.

        Args:
            store: Book store to read from and write back to
        """
        self.store = store

    def _save(self, book: Book, patch: dict[str, Any]) -> str | None:
        """Write a patch; return an error message instead of raising."""
        if not patch:
            return None
        try:
            self.store.update(book.id, patch)
        except StorageError as e:
            logger.warning(f"Failed to save cleaned data for '{book.title}': {e}")
            return f"Failed to save cleaned book data for {book.title}: {e}"
        return None

    def clean_book(self, book: Book) -> CleaningResult:
        """Apply the full rule set to one book and save the changes.

        A date that cannot be fixed is left as is and reported in ``errors``.
        """
        patch, changes, errors = plan_cleaning(book)

        save_error = self._save(book, patch)
        if save_error:
            return CleaningResult(book_id=book.id, success=False, errors=[save_error])

        return CleaningResult(
            book_id=book.id,
            success=True,
            changes=changes,
            errors=errors,
            changed_fields=list(patch),
        )

    def perform_bulk_cleaning(self) -> BulkCleaningResult:
        """Clean every stored book, then merge stored duplicates."""
        books = self.store.get_all()
        logger.info(f"Cleaning {len(books)} book(s)...")

        results = [self.clean_book(book) for book in books]

        summary = CleaningSummary()
        for result in results:
            if not result.success:
                continue
            summary.titles_normalized += "title" in result.changed_fields
            summary.authors_normalized += "author" in result.changed_fields
            summary.isbns_cleaned += "isbn" in result.changed_fields
            summary.urls_fixed += "extracted_links" in result.changed_fields

        summary.duplicates_removed = self.merge_duplicate_books()

        bulk = BulkCleaningResult(total_processed=len(books), results=results, summary=summary)
        logger.info(
            f"Cleaning completed. Processed {bulk.total_processed} books, "
            f"{bulk.successful} successful, {bulk.failed} failed."
        )
        return bulk

    def apply_automatic_fixes(self) -> list[CleaningResult]:
        """Apply only the low-risk fixes to every stored book.

        Returns:
            Results for books that had something to fix
        """
        results = []
        for book in self.store.get_all():
            patch, changes = plan_low_risk_fixes(book)
            if not changes:
                continue
            save_error = self._save(book, patch)
            results.append(
                CleaningResult(
                    book_id=book.id,
                    success=save_error is None,
                    changes=changes,
                    errors=[save_error] if save_error else [],
                    changed_fields=list(patch),
                )
            )
        logger.info(f"Applied automatic fixes to {len(results)} book(s)")
        return results

    def generate_cleaning_suggestions(self) -> list[CleaningSuggestion]:
        """Title, author and ISBN changes the full rule set would make. Nothing is saved."""
        suggestions = []
        for book in self.store.get_all():
            title = normalize_title(book.title)
            if title != book.title:
                suggestions.append(
                    CleaningSuggestion(
                        book.id, "title_case", "Normalize title casing", book.title, title, 0.9
                    )
                )

            author = normalize_author(book.author)
            if author != book.author:
                suggestions.append(
                    CleaningSuggestion(
                        book.id, "author_case", "Normalize author name", book.author, author, 0.85
                    )
                )

            if book.isbn:
                isbn = clean_isbn(book.isbn)
                if isbn != book.isbn:
                    suggestions.append(
                        CleaningSuggestion(
                            book.id, "normalize_isbn", "Clean ISBN format", book.isbn, isbn, 0.95
                        )
                    )
        return suggestions

    def merge_duplicate_books(self) -> int:
        """Merge stored books sharing a normalized key into the first-added one.

        The survivor gets the union of links, the joined contexts and the
        earliest episode date; the rest are deleted. Writes are not atomic
        across a group.

        Returns:
            Number of books deleted
        """
        removed = 0
        for group in find_duplicate_groups(self.store.get_all()):
            survivor = group[0]
            merged = reduce(merge_book_pair, group[1:], survivor)
            try:
                self.store.update(
                    survivor.id,
                    {
                        "extracted_links": merged.extracted_links,
                        "context": merged.context,
                        "episode_date": merged.episode_date,
                    },
                )
                for duplicate in group[1:]:
                    if self.store.delete(duplicate.id):
                        removed += 1
            except StorageError as e:
                logger.error(f"Failed to merge duplicates of '{survivor.title}': {e}")

        if removed:
            logger.info(f"Merged away {removed} duplicate book(s)")
        return removed
