"""CLI for auditing and cleaning stored books."""

import argparse
import json
import sys
from pathlib import Path

from common.logger import error, get_logger, setup_logging, success
from load.book_store import BookStore, StorageError
from load.db import DatabaseError

from .auditor import QualityAuditor
from .cleaner import DataCleaner
from .reporters import QualityReporter, report_cleaning, report_fixes, report_suggestions

logger = get_logger(__name__)


def cmd_report(args, store: BookStore) -> int:
    """Audit all stored books.

    Args:
        args: Parsed command-line arguments
        store: Open book store

    Returns:
        Exit code (1 if critical issues were found)
    """
    auditor = QualityAuditor(store)
    reporter = QualityReporter(show_info=args.show_info)

    if args.needs_review:
        books = auditor.get_books_needing_review()
        for book in books:
            logger.info(f"  {book.id}  {book.title} by {book.author} ({book.enhancement_status.value})")
        logger.info(f"\n{len(books)} book(s) need review")
        return 0

    report = auditor.generate_quality_report()

    if args.format == "json":
        output = reporter.report_json(report)
        if args.output:
            Path(args.output).write_text(output, encoding="utf-8")
            success(f"Quality report written to {args.output}")
        else:
            print(output)
        return 1 if report.critical_issues else 0

    return reporter.report_console(report)


def cmd_clean(args, store: BookStore) -> int:
    """Run the full cleaning rule set and merge stored duplicates."""
    result = DataCleaner(store).perform_bulk_cleaning()
    report_cleaning(result)
    return 1 if result.failed else 0


def cmd_auto_fix(args, store: BookStore) -> int:
    """Apply low-risk fixes only."""
    results = DataCleaner(store).apply_automatic_fixes()
    report_fixes(results)
    return 0 if all(r.success for r in results) else 1


def cmd_suggest(args, store: BookStore) -> int:
    """List suggested changes without applying them."""
    suggestions = DataCleaner(store).generate_cleaning_suggestions()
    if args.format == "json":
        print(json.dumps([s.to_dict() for s in suggestions], indent=2))
    else:
        report_suggestions(suggestions)
    return 0


def cmd_merge(args, store: BookStore) -> int:
    """Merge stored books that share a normalized title and author."""
    removed = DataCleaner(store).merge_duplicate_books()
    success(f"Removed {removed} duplicate book(s)")
    return 0


COMMANDS = {
    "report": cmd_report,
    "clean": cmd_clean,
    "auto-fix": cmd_auto_fix,
    "suggest": cmd_suggest,
    "merge": cmd_merge,
}


def main():
    """Main entry point for the quality CLI."""
    parser = argparse.ArgumentParser(
        description="Audit and clean extracted book records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    report_parser = subparsers.add_parser(
        "report",
        help="Generate a data quality report",
        description=(
            "Check every stored book for integrity, completeness, accuracy and\n"
            "consistency issues and compute an overall quality score (0-100).\n\n"
            "Examples:\n"
            "  books-quality report\n"
            "  books-quality report --show-info\n"
            "  books-quality report --format json --output quality.json\n"
            "  books-quality report --needs-review\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    report_parser.add_argument(
        "--format", choices=["console", "json"], default="console", help="Output format"
    )
    report_parser.add_argument("--output", help="Write JSON output to this file")
    report_parser.add_argument(
        "--show-info", action="store_true", help="List info-level issues too"
    )
    report_parser.add_argument(
        "--needs-review",
        action="store_true",
        help="Only list books with critical or accuracy issues",
    )

    subparsers.add_parser(
        "clean",
        help="Normalize all books and merge duplicates",
        description="Apply the full cleaning rule set to every stored book.",
    )
    subparsers.add_parser(
        "auto-fix",
        help="Apply low-risk fixes only",
        description="Trim title/author whitespace and remove duplicate links.",
    )
    suggest_parser = subparsers.add_parser(
        "suggest",
        help="Show suggested title, author and ISBN changes",
        description="List changes the cleaner would make, without applying them.",
    )
    suggest_parser.add_argument(
        "--format", choices=["console", "json"], default="console", help="Output format"
    )
    subparsers.add_parser(
        "merge",
        help="Merge duplicate books",
        description="Merge books sharing a normalized title and author into one record.",
    )

    args = parser.parse_args()
    setup_logging(args.log_level)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        with BookStore.open() as store:
            exit_code = COMMANDS[args.command](args, store)
    except (StorageError, DatabaseError) as e:
        error(f"Database error: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
