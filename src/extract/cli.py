#!/usr/bin/env python3
"""CLI interface for book extraction."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from common.env import env
from common.logger import error, get_logger, setup_logging, success, warning
from ingest.feed import FeedError, RssFeedSource
from llm.base import LLMError
from llm.gemini import GeminiClient
from load.book_store import BookStore, StorageError
from load.db import DatabaseError

from .batch import BatchProcessor
from .context_store import ContextStore
from .extractor import BookExtractor
from .pipeline import ExtractionPipeline

logger = get_logger(__name__)


async def _run_feed(args) -> int:
    source = RssFeedSource(args.feed_url)
    async with GeminiClient() as client:
        extractor = BookExtractor(client, context_store=ContextStore())
        processor = BatchProcessor(extractor, batch_size=args.batch_size)
        with BookStore.open() as store:
            pipeline = ExtractionPipeline(
                source, store, processor, skip_existing=not args.reprocess
            )
            summary = await pipeline.process_feed(limit=args.limit, start_from=args.start_from)

    logger.info("\nExtraction summary")
    logger.info("=" * 50)
    logger.info(f"  Episodes checked:   {summary.episodes_checked}")
    logger.info(f"  Already stored:     {summary.episodes_skipped}")
    logger.info(f"  Processed:          {summary.episodes_processed}")
    logger.info(f"  Books extracted:    {summary.books_extracted}")
    logger.info(f"  Merged duplicates:  {summary.books_merged}")
    logger.info(f"  Rejected:           {summary.books_rejected}")
    logger.info(f"  Stored:             {summary.books_stored}")
    logger.info(f"  Need review:        {summary.books_need_review}")
    logger.info(f"  Time:               {summary.processing_time:.1f}s")
    if summary.has_more:
        logger.info(f"\nMore episodes available; continue with --start-from {summary.next_start_from}")

    for message in summary.errors:
        warning(message)

    return 1 if summary.errors and not summary.books_stored else 0


def cmd_feed(args) -> int:
    """Extract books from a podcast feed and store them.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    try:
        return asyncio.run(_run_feed(args))
    except ValueError as e:
        error(str(e))
        return 1
    except FeedError as e:
        error(f"{e} ({e.code})")
        return 1
    except (StorageError, DatabaseError) as e:
        error(f"Database error: {e}")
        return 1


async def _run_episode(description: str, simple: bool) -> dict:
    async with GeminiClient() as client:
        extractor = BookExtractor(client)
        if simple:
            result = await extractor.extract_books_simple(description)
        else:
            result = await extractor.extract_books_from_episode(description)
    return result.to_dict()


def cmd_episode(args) -> int:
    """Extract books from one description and print the result as JSON."""
    if args.file:
        path = Path(args.file)
        if not path.is_file():
            error(f"{path} is not a file")
            return 1
        description = path.read_text(encoding="utf-8")
    elif args.text:
        description = args.text
    else:
        description = sys.stdin.read()

    if not description.strip():
        error("Episode description is empty")
        return 1

    try:
        result = asyncio.run(_run_episode(description, args.simple))
    except ValueError as e:
        error(str(e))
        return 1

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


async def _run_test_llm() -> bool:
    async with GeminiClient() as client:
        return await client.test_connection()


def cmd_test_llm(args) -> int:
    """Check that the Gemini API key and model work."""
    problems = env.validate()
    if problems:
        for problem in problems:
            error(problem)
        return 1

    try:
        ok = asyncio.run(_run_test_llm())
    except LLMError as e:
        error(str(e))
        return 1

    if ok:
        success(f"Gemini API connection OK ({env.gemini_model()})")
        return 0
    error("Gemini API did not answer as expected")
    return 1


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Extract book mentions from podcast episodes")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    feed_parser = subparsers.add_parser(
        "feed",
        help="Extract books from every new episode of a podcast feed",
        description=(
            "Fetch the RSS feed, extract books from episodes not yet stored,\n"
            "score and merge them, and store them with enhancement status 'pending'.\n\n"
            "Examples:\n"
            "  extract-books feed --limit 10\n"
            "  extract-books feed --limit 10 --start-from 10\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    feed_parser.add_argument(
        "--feed-url", default=None, help="RSS feed URL (default: PODCAST_FEED_URL)"
    )
    feed_parser.add_argument(
        "--limit", type=int, default=None, help="Maximum number of feed episodes to look at"
    )
    feed_parser.add_argument(
        "--start-from", type=int, default=0, help="Index of the first feed episode (default: 0)"
    )
    feed_parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Episodes extracted concurrently (default: EXTRACTION_BATCH_SIZE)",
    )
    feed_parser.add_argument(
        "--reprocess",
        action="store_true",
        help="Also extract episodes that are already stored",
    )

    episode_parser = subparsers.add_parser(
        "episode",
        help="Extract books from a single description and print JSON",
        description="Reads the description from --text, --file or standard input.",
    )
    source_group = episode_parser.add_mutually_exclusive_group()
    source_group.add_argument("--text", help="Episode description text")
    source_group.add_argument("--file", help="File containing the episode description")
    episode_parser.add_argument(
        "--simple", action="store_true", help="Force single-pass extraction"
    )

    subparsers.add_parser("test-llm", help="Check the Gemini API connection")

    args = parser.parse_args()
    setup_logging(args.log_level)

    commands = {"feed": cmd_feed, "episode": cmd_episode, "test-llm": cmd_test_llm}
    sys.exit(commands[args.command](args))


if __name__ == "__main__":
    main()
