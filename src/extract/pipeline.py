"""End-to-end feed processing: fetch, extract, score, merge, validate, store."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Protocol

from common.logger import get_logger
from load.book_store import BookStore, StorageError
from load.models import Episode

from .batch import BatchProcessor
from .merge import merge_duplicate_books
from .validation import validate_book_data

logger = get_logger(__name__)


class TextSource(Protocol):
    def fetch_episodes(self) -> list[Episode]: ...


@dataclass
class ProcessingSummary:
    """Counts and per-record errors from one feed run."""

    episodes_checked: int = 0
    episodes_skipped: int = 0
    episodes_processed: int = 0
    books_extracted: int = 0
    books_merged: int = 0
    books_rejected: int = 0
    books_stored: int = 0
    books_need_review: int = 0
    errors: list[str] = field(default_factory=list)
    processing_time: float = 0.0
    has_more: bool = False
    next_start_from: int | None = None


class ExtractionPipeline:
    """Processes a podcast feed into stored, pending books.

    Already-stored episodes (by GUID) are skipped when ``skip_existing`` is
    set. Books are stored with enhancement status ``pending``; enrichment is
    a separate step.
    """

    def __init__(
        self,
        source: TextSource,
        store: BookStore,
        processor: BatchProcessor,
        skip_existing: bool = True,
    ):
        self.source = source
        self.store = store
        self.processor = processor
        self.skip_existing = skip_existing

    def _select_episodes(
        self, episodes: list[Episode], summary: ProcessingSummary
    ) -> list[Episode]:
        selected = []
        for episode in episodes:
            guid = episode.guid or episode.pub_date
            try:
                if self.skip_existing and self.store.get_episode_by_guid(guid):
                    summary.episodes_skipped += 1
                    continue
                stored = self.store.upsert_episode(episode)
            except StorageError as e:
                logger.warning(f"Could not store episode '{episode.title}': {e}")
                summary.errors.append(f"Episode {guid}: {e}")
                continue
            selected.append(stored)
        return selected

    async def process_feed(self, limit: int | None = None, start_from: int = 0) -> ProcessingSummary:
        """Run the whole pipeline once.

        Args:
            limit: Maximum number of feed episodes to look at
            start_from: Index of the first feed episode to look at

        Returns:
            Processing summary
        """
        started = time.monotonic()
        summary = ProcessingSummary()

        all_episodes = await asyncio.to_thread(self.source.fetch_episodes)
        end = len(all_episodes) if limit is None else min(start_from + limit, len(all_episodes))
        window = all_episodes[start_from:end]
        summary.episodes_checked = len(window)
        summary.has_more = end < len(all_episodes)
        summary.next_start_from = end if summary.has_more else None

        episodes = self._select_episodes(window, summary)
        logger.info(
            f"Processing {len(episodes)} episode(s) "
            f"({summary.episodes_skipped} already stored, {len(all_episodes)} in feed)"
        )

        batch = await self.processor.process_episodes(episodes)
        summary.episodes_processed = batch.processed_episodes
        summary.books_extracted = len(batch.books)
        summary.errors.extend(batch.errors)

        merged = merge_duplicate_books(batch.books)
        summary.books_merged = len(batch.books) - len(merged)

        for book in merged:
            validation = validate_book_data(book)
            if not validation.valid:
                summary.books_rejected += 1
                summary.errors.append(f"Invalid book data: {', '.join(validation.errors)}")
                continue
            try:
                self.store.insert(book)
            except StorageError as e:
                logger.warning(str(e))
                summary.errors.append(str(e))
                continue
            summary.books_stored += 1
            if book.needs_review:
                summary.books_need_review += 1

        summary.processing_time = round(time.monotonic() - started, 2)
        logger.info(
            f"Stored {summary.books_stored} book(s) from {summary.episodes_processed} episode(s) "
            f"with {len(summary.errors)} error(s)"
        )
        return summary
