"""CLI for database operations."""

import argparse
import sys

from common.env import env
from common.logger import error, get_logger, setup_logging, success

from .book_store import BookStore, StorageError
from .db import DatabaseError, get_adapter
from .models import EnhancementStatus

logger = get_logger(__name__)


def cmd_init(args) -> int:
    """Create the database schema (dropping existing tables with --force)."""
    adapter = get_adapter()
    with adapter:
        if args.force:
            adapter.drop_schema()
            logger.info("Dropped existing tables")
        adapter.create_schema()
        tables = adapter.get_tables()

    success(f"Database ready at {env.database_path()} ({', '.join(tables)})")
    return 0


def cmd_stats(args) -> int:
    """Show book and episode counts."""
    with BookStore.open() as store:
        books = store.get_all()
        episodes = store.get_episodes()
        by_status = store.count_by_status()

    need_review = sum(1 for b in books if b.needs_review)

    logger.info("\nDatabase Statistics")
    logger.info("=" * 50)
    logger.info(f"  Episodes:      {len(episodes):5d}")
    logger.info(f"  Books:         {len(books):5d}")
    logger.info(f"  Need review:   {need_review:5d}")
    logger.info("\nBy enhancement status:")
    for status, count in by_status.items():
        logger.info(f"  {status:13s} {count:5d}")
    return 0


def cmd_list(args) -> int:
    """List stored books."""
    with BookStore.open() as store:
        if args.status:
            books = store.get_by_enhancement_status(args.status, limit=args.limit)
        else:
            books = store.get_all()[: args.limit]

    if args.needs_review:
        books = [b for b in books if b.needs_review]

    for book in books:
        flag = " [yellow]⚠ review[/yellow]" if book.needs_review else ""
        confidence = f"{book.confidence:.2f}" if book.confidence is not None else "-"
        logger.info(
            f"  {book.title} by {book.author} "
            f"({book.enhancement_status.value}, confidence {confidence}){flag}"
        )
    logger.info(f"\n{len(books)} book(s)")
    return 0


def main():
    """Main entry point for the load CLI."""
    parser = argparse.ArgumentParser(
        description="Database operations for extracted books",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    init_parser = subparsers.add_parser(
        "init",
        help="Create the database schema",
        description=(
            "Create the episodes and books tables.\n\n"
            "The database file is taken from DATABASE_PATH (default: data/podcast_books.db).\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    init_parser.add_argument(
        "--force", action="store_true", help="Drop and recreate all tables"
    )

    subparsers.add_parser("stats", help="Show book and episode counts")

    list_parser = subparsers.add_parser("list", help="List stored books")
    list_parser.add_argument(
        "--status",
        choices=[status.value for status in EnhancementStatus],
        help="Only books with this enhancement status",
    )
    list_parser.add_argument("--limit", type=int, default=None, help="Maximum number of books")
    list_parser.add_argument(
        "--needs-review", action="store_true", help="Only books flagged for review"
    )

    args = parser.parse_args()
    setup_logging(args.log_level)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {"init": cmd_init, "stats": cmd_stats, "list": cmd_list}
    try:
        exit_code = commands[args.command](args)
    except (StorageError, DatabaseError) as e:
        error(f"Database error: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
