"""Tests for the enrichment orchestrator."""

import asyncio

import pytest

from enrich.clients.base import APIClient, APIError
from enrich.orchestrator import (
    NO_MATCH_MESSAGE,
    NO_RESULTS_MESSAGE,
    EnrichmentOrchestrator,
    find_best_match,
    match_score,
)
from load.book_store import BookStore
from load.db.sqlite_adapter import SQLiteAdapter
from load.models import Book, EnhancementStatus


def volume(title, authors, **info):
    return {"id": f"gb-{title}", "volumeInfo": {"title": title, "authors": authors, **info}}


SAPIENS = volume(
    "Sapiens",
    ["Yuval Noah Harari"],
    description="A brief history of humankind.",
    industryIdentifiers=[{"type": "ISBN_13", "identifier": "9780062316097"}],
    imageLinks={"thumbnail": "https://books.google.com/sapiens.jpg"},
)


class FakeClient(APIClient):
    """Canned search results keyed by query kind."""

    def __init__(self, title_results=None, isbn_results=None, error=None):
        self.title_results = title_results or []
        self.isbn_results = isbn_results or []
        self.error = error
        self.calls = []
        self.closed = False

    def search_by_title_and_author(self, title, author):
        self.calls.append(("title", title, author))
        if self.error:
            raise self.error
        return self.title_results

    def search_by_isbn(self, isbn):
        self.calls.append(("isbn", isbn))
        return self.isbn_results

    def get_rate_limit(self):
        return (100, 60)

    def close(self):
        self.closed = True


def make_book(book_id="b1", title="Sapiens", author="Yuval Noah Harari", **kwargs):
    return Book(id=book_id, title=title, author=author, episode_id="ep-1", **kwargs)


@pytest.fixture
def store(tmp_path):
    book_store = BookStore.open(SQLiteAdapter(tmp_path / "books.db"))
    yield book_store
    book_store.close()


class TestMatching:
    """Tests for search result matching."""

    def test_exact_match_scores_one(self):
        assert match_score(make_book(), SAPIENS) == pytest.approx(1.0)

    def test_best_match_chosen(self):
        other = volume("Homo Deus", ["Yuval Noah Harari"])
        assert find_best_match(make_book(), [other, SAPIENS]) is SAPIENS

    def test_weak_match_rejected(self):
        unrelated = volume("Cooking for Beginners", ["Jane Smith"])
        assert find_best_match(make_book(), [unrelated]) is None

    def test_no_authors(self):
        assert match_score(make_book(), {"volumeInfo": {"title": "Sapiens"}}) == pytest.approx(0.6)


class TestEnhance:
    """Tests for single-book enhancement."""

    def test_match_enhances(self):
        orchestrator = EnrichmentOrchestrator(client=FakeClient(title_results=[SAPIENS]))

        book = make_book()
        enhanced = orchestrator.enhance(book)

        assert enhanced.enhancement_status is EnhancementStatus.ENHANCED
        assert enhanced.isbn == "9780062316097"
        assert enhanced.cover_image == "https://books.google.com/sapiens.jpg"
        assert enhanced.enhancement_date is not None
        assert enhanced.enhancement_error is None
        # Input untouched
        assert book.enhancement_status is EnhancementStatus.PENDING

    def test_isbn_lookup_first(self):
        client = FakeClient(isbn_results=[SAPIENS])
        enhanced = EnrichmentOrchestrator(client=client).enhance(make_book(isbn="9780062316097"))

        assert client.calls == [("isbn", "9780062316097")]
        assert enhanced.enhancement_status is EnhancementStatus.ENHANCED

    def test_existing_values_kept(self):
        item = volume("Sapiens", ["Yuval Noah Harari"])
        enhanced = EnrichmentOrchestrator(client=FakeClient(title_results=[item])).enhance(
            make_book(description="Kept description")
        )
        assert enhanced.description == "Kept description"

    def test_no_results(self):
        enhanced = EnrichmentOrchestrator(client=FakeClient()).enhance(make_book())
        assert enhanced.enhancement_status is EnhancementStatus.NOT_FOUND
        assert enhanced.enhancement_error == NO_RESULTS_MESSAGE

    def test_no_suitable_match(self):
        client = FakeClient(title_results=[volume("Cooking for Beginners", ["Jane Smith"])])
        enhanced = EnrichmentOrchestrator(client=client).enhance(make_book())
        assert enhanced.enhancement_status is EnhancementStatus.NOT_FOUND
        assert enhanced.enhancement_error == NO_MATCH_MESSAGE

    def test_api_error_marks_failed(self):
        client = FakeClient(error=APIError("Google Books API error: 503 Service Unavailable"))
        enhanced = EnrichmentOrchestrator(client=client).enhance(make_book())
        assert enhanced.enhancement_status is EnhancementStatus.FAILED
        assert "503" in enhanced.enhancement_error


class TestEnrichBooks:
    """Tests for enriching stored books."""

    def test_enrich_pending_books(self, store):
        store.insert(make_book("b1"))
        store.insert(make_book("b2", title="Cooking", author="Nobody"))
        store.insert(make_book("b3", enhancement_status=EnhancementStatus.ENHANCED))
        client = FakeClient(title_results=[SAPIENS])
        orchestrator = EnrichmentOrchestrator(store, client=client)

        stats = asyncio.run(orchestrator.enrich_books())

        assert stats["attempted"] == 2
        assert stats["enhanced"] == 1
        assert stats["not_found"] == 1
        assert stats["errors"] == []
        assert store.get_by_id("b1").isbn == "9780062316097"
        assert store.get_by_id("b2").enhancement_status is EnhancementStatus.NOT_FOUND
        assert store.count_by_status()["pending"] == 0

    def test_retry_failed_with_limit(self, store):
        store.insert(make_book("b1", enhancement_status=EnhancementStatus.FAILED))
        store.insert(make_book("b2", enhancement_status=EnhancementStatus.FAILED))
        orchestrator = EnrichmentOrchestrator(store, client=FakeClient(title_results=[SAPIENS]))

        stats = asyncio.run(orchestrator.enrich_books(status="failed", limit=1))

        assert stats["attempted"] == 1
        assert store.count_by_status()["failed"] == 1

    def test_nothing_to_enrich(self, store):
        stats = asyncio.run(EnrichmentOrchestrator(store, client=FakeClient()).enrich_books())
        assert stats["attempted"] == 0

    def test_store_required(self):
        orchestrator = EnrichmentOrchestrator(client=FakeClient())
        with pytest.raises(ValueError, match="BookStore is required"):
            asyncio.run(orchestrator.enrich_books())

    def test_coverage(self, store):
        store.insert(make_book("b1", isbn="9780062316097", description="d"))
        store.insert(make_book("b2"))
        coverage = EnrichmentOrchestrator(store, client=FakeClient()).get_enrichment_coverage()

        assert coverage["total_books"] == 2
        assert coverage["isbn_count"] == 1
        assert coverage["isbn_percent"] == 50.0
        assert coverage["cover_percent"] == 0.0
        assert coverage["by_status"]["pending"] == 2

    def test_close_closes_client(self):
        client = FakeClient()
        EnrichmentOrchestrator(client=client).close()
        assert client.closed
