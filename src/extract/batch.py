"""Batched, concurrent book extraction over many episodes."""

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field

from common.env import env
from common.logger import get_logger
from load.models import Book, Episode
from scoring.confidence import calculate_enhanced_confidence

from .book_id import generate_book_id
from .extractor import BookExtractor
from .models import ExtractionState, MultiPassExtractionResult

logger = get_logger(__name__)


class ExtractionCache:
    """Per-episode extraction results, kept for ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float | None = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else env.extraction_cache_ttl_seconds()
        )
        self._clock = clock
        self._entries: dict[str, tuple[float, MultiPassExtractionResult]] = {}

    def get(self, episode_id: str) -> MultiPassExtractionResult | None:
        entry = self._entries.get(episode_id)
        if entry is None:
            return None
        stored_at, result = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[episode_id]
            return None
        return result

    def set(self, episode_id: str, result: MultiPassExtractionResult) -> None:
        self._entries[episode_id] = (self._clock(), result)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class BatchResult:
    """Union of per-episode outcomes; failures are collected, never raised."""

    books: list[Book] = field(default_factory=list)
    processed_episodes: int = 0
    errors: list[str] = field(default_factory=list)
    results: dict[str, MultiPassExtractionResult] = field(default_factory=dict)


def build_books(episode: Episode, result: MultiPassExtractionResult) -> list[Book]:
    """Turn an extraction result into scored, pending Book records for an episode."""
    method = "multi-pass" if result.multi_pass else "simple"
    books = []
    for candidate in result.final_books:
        confidence = calculate_enhanced_confidence(candidate, candidate.confidence, method)
        books.append(
            Book(
                id=generate_book_id(candidate.title, candidate.author, episode.id),
                title=candidate.title,
                author=candidate.author,
                episode_id=episode.id,
                episode_title=episode.title,
                episode_date=episode.pub_date,
                extracted_links=list(candidate.links),
                context=candidate.context,
                confidence=confidence.score,
                needs_review=confidence.needs_review,
            )
        )
    return books


class BatchProcessor:
    """Runs extraction for episodes in fixed-size concurrent batches.

    Episodes within a batch run concurrently; one episode's failure never
    cancels its siblings. Batches are separated by a fixed delay on top of
    the LLM client's own rate limiting.
    """

    def __init__(
        self,
        extractor: BookExtractor,
        batch_size: int | None = None,
        batch_delay: float | None = None,
        cache: ExtractionCache | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize batch processor.

        Args:
            extractor: Book extractor
            batch_size: Episodes per batch (default: EXTRACTION_BATCH_SIZE)
            batch_delay: Seconds between batches (default: EXTRACTION_BATCH_DELAY_SECONDS)
            cache: Per-episode result cache (default: new cache)
            sleep: Async sleep used between batches
        """
        self.extractor = extractor
        self.batch_size = batch_size or env.extraction_batch_size()
        self.batch_delay = batch_delay if batch_delay is not None else env.extraction_batch_delay()
        self.cache = cache if cache is not None else ExtractionCache()
        self._sleep = sleep

    async def _extract(self, episode: Episode) -> MultiPassExtractionResult:
        cached = self.cache.get(episode.id)
        if cached is not None:
            logger.debug(f"Using cached extraction for '{episode.title}'")
            return cached

        result = await self.extractor.extract_books_from_episode(
            episode.description, episode_id=episode.id
        )
        if result.state is not ExtractionState.FAILED:
            self.cache.set(episode.id, result)
        return result

    async def process_episodes(self, episodes: Sequence[Episode]) -> BatchResult:
        """Extract books from episodes.

        Args:
            episodes: Episodes in feed order

        Returns:
            Books from all episodes that succeeded, plus collected errors
        """
        batch_result = BatchResult()
        total_batches = (len(episodes) + self.batch_size - 1) // self.batch_size

        for start in range(0, len(episodes), self.batch_size):
            batch = episodes[start : start + self.batch_size]
            batch_number = start // self.batch_size + 1
            logger.info(f"Batch {batch_number}/{total_batches}: extracting {len(batch)} episode(s)")

            outcomes = await asyncio.gather(
                *(self._extract(episode) for episode in batch), return_exceptions=True
            )

            for episode, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    message = f'Failed to process episode "{episode.title}": {outcome}'
                    logger.error(message)
                    batch_result.errors.append(message)
                    continue

                batch_result.results[episode.id] = outcome
                if outcome.state is ExtractionState.FAILED:
                    reason = outcome.processing_notes[-1] if outcome.processing_notes else "unknown error"
                    message = f'Failed to extract books from episode "{episode.title}": {reason}'
                    logger.error(message)
                    batch_result.errors.append(message)
                    continue

                if not outcome.final_books:
                    logger.warning(f"No books found for episode: {episode.title}")
                batch_result.books.extend(build_books(episode, outcome))
                batch_result.processed_episodes += 1

            if start + self.batch_size < len(episodes):
                await self._sleep(self.batch_delay)

        logger.info(
            f"Extracted {len(batch_result.books)} book(s) from "
            f"{batch_result.processed_episodes}/{len(episodes)} episode(s)"
        )
        return batch_result
