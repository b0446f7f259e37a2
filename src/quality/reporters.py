"""Quality report and cleaning result reporters."""

import json

from common.logger import get_logger

from .models import (
    BulkCleaningResult,
    CleaningResult,
    CleaningSuggestion,
    DataQualityReport,
    IssueType,
)

logger = get_logger(__name__)

_ICONS = {
    IssueType.CRITICAL: "[red]✗[/red]",
    IssueType.WARNING: "[yellow]⚠[/yellow]",
    IssueType.INFO: "ℹ",
}

_STATUS_COLORS = {"good": "green", "warning": "yellow", "critical": "red"}


class QualityReporter:
    """Format and display quality reports."""

    def __init__(self, show_info: bool = False):
        """Initialize the reporter.

        Args:
            show_info: Whether to list info-level issues (they are always counted)
        """
        self.show_info = show_info

    def report_console(self, report: DataQualityReport) -> int:
        """Print a quality report to the console.

        Args:
            report: Report to print

        Returns:
            Exit code (0 unless critical issues were found)
        """
        by_book: dict[str, list] = {}
        for issue in report.issues:
            if issue.type == IssueType.INFO and not self.show_info:
                continue
            by_book.setdefault(issue.book_id, []).append(issue)

        for book_id, issues in by_book.items():
            logger.info(f"\n{book_id}:")
            for issue in issues:
                logger.info(f"  {_ICONS[issue.type]} {issue.message} ({issue.category.value})")
                if issue.suggested_fix:
                    logger.info(f"      Suggestion: {issue.suggested_fix}")

        m = report.metrics
        logger.info("\nMetrics")
        logger.info("=" * 60)
        logger.info(
            f"  Completeness: ISBN {m.completeness.with_isbn:5.1f}%  "
            f"description {m.completeness.with_description:5.1f}%  "
            f"cover {m.completeness.with_cover_image:5.1f}%"
        )
        logger.info(
            f"  Accuracy:     enhanced {m.accuracy.enhanced_books:5.1f}%  "
            f"failed {m.accuracy.failed_enhancements:5.1f}%  "
            f"not found {m.accuracy.not_found_books:5.1f}%"
        )
        logger.info(
            f"  Consistency:  {m.consistency.duplicate_books} duplicates, "
            f"{m.consistency.inconsistent_titles} titles and "
            f"{m.consistency.inconsistent_authors} authors with uniform casing"
        )
        logger.info(
            f"  Integrity:    dates {m.integrity.valid_dates:5.1f}%  "
            f"URLs {m.integrity.valid_urls:5.1f}%  ISBNs {m.integrity.valid_isbns:5.1f}%"
        )

        color = _STATUS_COLORS[report.health_status]
        logger.info("\n" + "=" * 60)
        logger.info(
            f"Books: [bold]{report.total_books}[/bold]  "
            f"Quality score: [{color}][bold]{report.quality_score:.1f}[/bold][/{color}] "
            f"({report.health_status})"
        )
        logger.info(
            f"Total: [bold]{report.critical_issues}[/bold] critical, "
            f"[bold]{report.warning_issues}[/bold] warnings, [bold]{report.info_issues}[/bold] info"
        )

        return 1 if report.critical_issues else 0

    def report_json(self, report: DataQualityReport) -> str:
        return json.dumps(report.to_dict(), indent=2)


def report_cleaning(result: BulkCleaningResult) -> None:
    """Print a bulk cleaning summary."""
    for item in result.results:
        _report_result(item)

    s = result.summary
    logger.info("\n" + "=" * 60)
    logger.info(
        f"Processed [bold]{result.total_processed}[/bold] books: "
        f"{result.successful} successful, {result.failed} failed"
    )
    logger.info(
        f"  Titles normalized: {s.titles_normalized}\n"
        f"  Authors normalized: {s.authors_normalized}\n"
        f"  ISBNs cleaned: {s.isbns_cleaned}\n"
        f"  URLs fixed: {s.urls_fixed}\n"
        f"  Duplicates removed: {s.duplicates_removed}"
    )


def report_fixes(results: list[CleaningResult]) -> None:
    for item in results:
        _report_result(item)
    logger.info(f"\nApplied automatic fixes to {len(results)} book(s)")


def _report_result(result: CleaningResult) -> None:
    if not result.changes and not result.errors:
        return
    logger.info(f"\n{result.book_id}:")
    for change in result.changes:
        logger.info(f"  [green]✓[/green] {change}")
    for err in result.errors:
        logger.info(f"  [red]✗[/red] {err}")


def report_suggestions(suggestions: list[CleaningSuggestion]) -> None:
    for s in suggestions:
        logger.info(
            f"  {s.book_id} ({s.type}) {s.current_value!r} → {s.suggested_value!r} "
            f"({s.confidence:.0%})"
        )
    logger.info(f"\n{len(suggestions)} suggestion(s)")
