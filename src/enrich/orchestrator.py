"""High-level orchestration for book enrichment."""

import asyncio
from dataclasses import replace
from typing import Any

from common.logger import get_logger
from common.similarity import similarity
from load.book_store import BookStore, StorageError
from load.models import Book, EnhancementStatus, utc_now_iso

from .clients.base import APIClient, EnrichmentError
from .clients.google_books import GoogleBooksClient
from .normalizers.book_normalizer import GoogleBooksNormalizer

logger = get_logger(__name__)

# Weighted title/author similarity a search result must exceed to be accepted
MATCH_THRESHOLD = 0.6

NO_RESULTS_MESSAGE = "No matching books found in Google Books API"
NO_MATCH_MESSAGE = "No suitable match found in search results"


def match_score(book: Book, item: dict[str, Any]) -> float:
    """Title similarity weighted 0.6 plus best author similarity weighted 0.4."""
    volume = item.get("volumeInfo") or {}
    title_score = similarity(book.title, volume.get("title") or "")
    authors = volume.get("authors") or []
    author_score = max((similarity(book.author, author) for author in authors), default=0.0)
    return title_score * 0.6 + author_score * 0.4


def find_best_match(book: Book, items: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Best-scoring search result, if it clears ``MATCH_THRESHOLD``."""
    if not items:
        return None
    best = max(items, key=lambda item: match_score(book, item))
    return best if match_score(book, best) > MATCH_THRESHOLD else None


class EnrichmentOrchestrator:
    """Enrich stored books with Google Books metadata.

    Every attempt moves a book out of ``pending``: to ``enhanced`` on a
    match, ``not_found`` when nothing matched, ``failed`` on API errors.
    """

    def __init__(
        self,
        store: BookStore | None = None,
        client: APIClient | None = None,
        normalizer: GoogleBooksNormalizer | None = None,
    ):
        """Initialize orchestrator.

        Args:
            store: Book store (required for ``enrich_books``)
            client: Metadata API client (default: ``GoogleBooksClient()``)
            normalizer: Response normalizer (default: ``GoogleBooksNormalizer()``)
        """
        self.store = store
        self.client = client or GoogleBooksClient()
        self.normalizer = normalizer or GoogleBooksNormalizer()

    def _apply_metadata(self, book: Book, item: dict[str, Any]) -> Book:
        metadata = self.normalizer.normalize(item, "google_books")
        # Keep existing values where the API has nothing
        patch = {field: value or getattr(book, field) for field, value in metadata.items()}
        return replace(
            book,
            **patch,
            enhancement_status=EnhancementStatus.ENHANCED,
            enhancement_date=utc_now_iso(),
            enhancement_error=None,
        )

    def _mark(self, book: Book, status: EnhancementStatus, error: str) -> Book:
        return replace(
            book, enhancement_status=status, enhancement_date=utc_now_iso(), enhancement_error=error
        )

    def enhance(self, book: Book) -> Book:
        """Look a book up and return an enriched copy (the input is not modified).

        Never raises for API problems; they end up as ``failed`` status.
        """
        try:
            if book.isbn:
                items = self.client.search_by_isbn(book.isbn)
                if items:
                    return self._apply_metadata(book, items[0])

            items = self.client.search_by_title_and_author(book.title, book.author)
            if not items:
                return self._mark(book, EnhancementStatus.NOT_FOUND, NO_RESULTS_MESSAGE)

            best = find_best_match(book, items)
            if best is None:
                return self._mark(book, EnhancementStatus.NOT_FOUND, NO_MATCH_MESSAGE)

            return self._apply_metadata(book, best)

        except (EnrichmentError, ValueError) as e:
            logger.warning(f"Enrichment failed for '{book.title}': {e}")
            return self._mark(book, EnhancementStatus.FAILED, str(e))

    async def enrich_books(
        self, status: EnhancementStatus | str | None = None, limit: int | None = None
    ) -> dict[str, Any]:
        """Enrich stored books and write the results back.

        Args:
            status: Which books to (re)try (default: pending)
            limit: Maximum number of books

        Returns:
            Statistics: attempted, enhanced, not_found, failed, errors
        """
        if self.store is None:
            raise ValueError("A BookStore is required to enrich stored books")

        stats: dict[str, Any] = {"attempted": 0, "enhanced": 0, "not_found": 0, "failed": 0, "errors": []}

        status = EnhancementStatus(status or EnhancementStatus.PENDING)
        books = self.store.get_by_enhancement_status(status, limit=limit)
        if not books:
            logger.info(f"No {status.value} books found")
            return stats

        logger.info(f"Found {len(books)} book(s) to enrich")

        for i, book in enumerate(books):
            logger.info(f"[{i + 1}/{len(books)}] Enriching '{book.title}' by {book.author}")
            # Blocking HTTP and rate-limit waits stay off the event loop
            enhanced = await asyncio.to_thread(self.enhance, book)
            stats["attempted"] += 1
            stats[enhanced.enhancement_status.value] += 1

            original = book.to_dict()
            patch = {
                key: value
                for key, value in enhanced.to_dict().items()
                if key != "id" and value != original[key]
            }
            try:
                self.store.update(book.id, patch)
            except StorageError as e:
                logger.error(f"Could not save enrichment for '{book.title}': {e}")
                stats["errors"].append(str(e))

        logger.info(
            f"\n[green]✓[/green] Enrichment complete!\n"
            f"  Attempted: {stats['attempted']}\n"
            f"  Enhanced: {stats['enhanced']}\n"
            f"  Not found: {stats['not_found']}\n"
            f"  Failed: {stats['failed']}"
        )

        return stats

    def get_enrichment_coverage(self) -> dict[str, Any]:
        """Enrichment status counts and metadata coverage over stored books."""
        if self.store is None:
            raise ValueError("A BookStore is required for coverage statistics")

        books = self.store.get_all()
        total = len(books)

        def percent(count: int) -> float:
            return count / total * 100 if total else 0.0

        with_isbn = sum(1 for b in books if b.isbn)
        with_cover = sum(1 for b in books if b.cover_image)
        with_description = sum(1 for b in books if b.description)

        return {
            "total_books": total,
            "by_status": self.store.count_by_status(),
            "isbn_count": with_isbn,
            "isbn_percent": percent(with_isbn),
            "cover_count": with_cover,
            "cover_percent": percent(with_cover),
            "description_count": with_description,
            "description_percent": percent(with_description),
        }

    def close(self) -> None:
        """Close API client connections."""
        close = getattr(self.client, "close", None)
        if close is not None:
            close()
