"""CLI for book enrichment operations."""

import argparse
import asyncio
import sys

from common.logger import error, get_logger, setup_logging
from load.book_store import BookStore, StorageError
from load.db import DatabaseError
from load.models import EnhancementStatus

from .orchestrator import EnrichmentOrchestrator

logger = get_logger(__name__)


def cmd_enrich(args):
    """Enrich stored books from Google Books."""
    logger.info("Starting enrichment...")

    with BookStore.open() as store:
        orchestrator = EnrichmentOrchestrator(store)
        try:
            stats = asyncio.run(orchestrator.enrich_books(status=args.status, limit=args.limit))
        finally:
            orchestrator.close()

    if stats["errors"]:
        logger.warning(f"{len(stats['errors'])} book(s) could not be saved")
        return 1
    return 0


def cmd_status(args):
    """Show enrichment status and coverage."""
    with BookStore.open() as store:
        orchestrator = EnrichmentOrchestrator(store)
        coverage = orchestrator.get_enrichment_coverage()
        orchestrator.close()

    logger.info("\nEnrichment Status Report")
    logger.info("=" * 50)
    logger.info(f"\nBooks ({coverage['total_books']} total):")
    for status, count in coverage["by_status"].items():
        logger.info(f"  {status:18s} {count:5d}")

    logger.info("\nMetadata coverage:")
    logger.info(f"  ISBN:         {coverage['isbn_count']:3d} ({coverage['isbn_percent']:5.1f}%)")
    logger.info(f"  Cover image:  {coverage['cover_count']:3d} ({coverage['cover_percent']:5.1f}%)")
    logger.info(
        f"  Description:  {coverage['description_count']:3d} ({coverage['description_percent']:5.1f}%)"
    )
    return 0


def main():
    """Main entry point for the enrichment CLI."""
    parser = argparse.ArgumentParser(
        description="Enrich extracted books with Google Books metadata",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    enrich_parser = subparsers.add_parser(
        "enrich",
        help="Look up stored books in Google Books",
        description=(
            "Enrich stored books with ISBN, description, cover, publisher and ratings.\n\n"
            "Examples:\n"
            "  # Enrich all pending books\n"
            "  enrich-books enrich\n\n"
            "  # Retry books that previously failed, 10 at a time\n"
            "  enrich-books enrich --status failed --limit 10\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    enrich_parser.add_argument(
        "--status",
        choices=[status.value for status in EnhancementStatus],
        default=EnhancementStatus.PENDING.value,
        help="Enrich books with this enhancement status (default: pending)",
    )
    enrich_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of books to enrich (default: all)",
    )

    subparsers.add_parser(
        "status",
        help="Show enrichment status and coverage",
        description="Display enhancement status counts and metadata coverage.",
    )

    args = parser.parse_args()
    setup_logging(args.log_level)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {"enrich": cmd_enrich, "status": cmd_status}
    try:
        exit_code = commands[args.command](args)
    except (StorageError, DatabaseError) as e:
        error(f"Database error: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
