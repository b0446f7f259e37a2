"""Quality auditor orchestrating all data quality rules."""

from common.logger import get_logger
from extract.merge import normalized_key
from extract.validation import validate_book_data
from load.book_store import BookStore
from load.models import Book, EnhancementStatus

from .models import (
    AccuracyMetrics,
    CompletenessMetrics,
    ConsistencyMetrics,
    DataQualityIssue,
    DataQualityMetrics,
    DataQualityReport,
    IntegrityMetrics,
    IssueCategory,
    IssueType,
)
from .normalizers import has_uniform_casing, is_valid_date, is_valid_isbn, is_valid_url
from .rules.accuracy_rules import AccuracyValidator
from .rules.completeness_rules import CompletenessValidator
from .rules.consistency_rules import ConsistencyValidator
from .rules.integrity_rules import IntegrityValidator

logger = get_logger(__name__)

# Each critical issue costs this many points, up to MAX_CRITICAL_PENALTY
CRITICAL_ISSUE_PENALTY = 5
MAX_CRITICAL_PENALTY = 50


def _percent(count: int, total: int) -> float:
    return count / total * 100 if total else 0.0


def calculate_quality_metrics(books: list[Book]) -> DataQualityMetrics:
    """Completeness, accuracy and integrity percentages plus consistency counts.

    With no books every percentage is 0.
    """
    total = len(books)
    if not total:
        return DataQualityMetrics()

    def share(predicate) -> float:
        return _percent(sum(1 for b in books if predicate(b)), total)

    links = [link for b in books for link in b.extracted_links]
    valid_links = sum(1 for link in links if is_valid_url(link))

    seen: set[str] = set()
    duplicates = 0
    for book in books:
        key = normalized_key(book.title or "", book.author or "")
        if key in seen:
            duplicates += 1
        seen.add(key)

    return DataQualityMetrics(
        completeness=CompletenessMetrics(
            with_isbn=share(lambda b: b.isbn or b.isbn13 or b.isbn10),
            with_description=share(lambda b: b.description),
            with_cover_image=share(lambda b: b.cover_image),
            with_publisher=share(lambda b: b.publisher),
            with_categories=share(lambda b: b.categories),
            with_ratings=share(lambda b: b.average_rating is not None),
        ),
        accuracy=AccuracyMetrics(
            enhanced_books=share(lambda b: b.enhancement_status == EnhancementStatus.ENHANCED),
            failed_enhancements=share(lambda b: b.enhancement_status == EnhancementStatus.FAILED),
            not_found_books=share(lambda b: b.enhancement_status == EnhancementStatus.NOT_FOUND),
            verified_metadata=share(lambda b: b.google_books_id),
        ),
        consistency=ConsistencyMetrics(
            duplicate_books=duplicates,
            inconsistent_authors=sum(1 for b in books if b.author and has_uniform_casing(b.author)),
            inconsistent_titles=sum(1 for b in books if b.title and has_uniform_casing(b.title)),
            orphaned_books=sum(1 for b in books if not b.episode_id),
        ),
        integrity=IntegrityMetrics(
            valid_dates=share(lambda b: is_valid_date(b.episode_date)),
            valid_urls=_percent(valid_links, len(links)) if links else 100.0,
            valid_isbns=share(lambda b: not b.isbn or is_valid_isbn(b.isbn)),
            valid_ratings=share(
                lambda b: b.average_rating is None or 0 <= b.average_rating <= 5
            ),
        ),
    )


def calculate_quality_score(
    metrics: DataQualityMetrics, issues: list[DataQualityIssue], total_books: int
) -> float:
    """Weighted blend of completeness, accuracy and integrity minus a critical-issue penalty.

    Always within [0, 100]; 0 when there are no books.
    """
    if not total_books:
        return 0.0

    c = metrics.completeness
    completeness = (
        c.with_isbn * 0.1
        + c.with_description * 0.2
        + c.with_cover_image * 0.1
        + c.with_publisher * 0.1
        + c.with_categories * 0.1
        + c.with_ratings * 0.1
    ) / 0.7

    a = metrics.accuracy
    accuracy = a.enhanced_books * 0.4 + (100 - a.failed_enhancements) * 0.3 + a.verified_metadata * 0.3

    i = metrics.integrity
    integrity = i.valid_dates * 0.3 + i.valid_urls * 0.2 + i.valid_isbns * 0.3 + i.valid_ratings * 0.2

    critical = sum(1 for issue in issues if issue.type == IssueType.CRITICAL)
    penalty = min(critical * CRITICAL_ISSUE_PENALTY, MAX_CRITICAL_PENALTY)

    raw = completeness * 0.4 + accuracy * 0.4 + integrity * 0.2 - penalty
    return max(0.0, min(100.0, raw))


class QualityAuditor:
    """Audits stored books against integrity, completeness, accuracy and consistency rules.

    Audits read a snapshot of all books and never write.

    Example:
        >>> with BookStore.open() as store:
        ...     report = QualityAuditor(store).generate_quality_report()
    """

    def __init__(self, store: BookStore | None = None):
        """Initialize the auditor.

        Args:
            store: Book store to read from (only needed by the store-level methods)
        """
        self.store = store
        self.validators = [
            IntegrityValidator(),
            CompletenessValidator(),
            AccuracyValidator(),
            ConsistencyValidator(),
        ]

    def check_book_quality(self, book: Book, all_books: list[Book]) -> list[DataQualityIssue]:
        """Run every rule on one book.

        Args:
            book: Book to check
            all_books: Full book set, for cross-record rules

        Returns:
            List of issues found
        """
        issues = []

        basic = validate_book_data(book)
        if not basic.valid:
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "basic-validation",
                    IssueType.CRITICAL,
                    IssueCategory.INTEGRITY,
                    f"Basic validation failed: {', '.join(basic.errors)}",
                    fixable=True,
                )
            )

        for validator in self.validators:
            issues.extend(validator.validate(book, all_books))

        return issues

    def audit_books(self, books: list[Book]) -> DataQualityReport:
        """Build a quality report for an in-memory book set."""
        issues = [issue for book in books for issue in self.check_book_quality(book, books)]
        metrics = calculate_quality_metrics(books)
        score = calculate_quality_score(metrics, issues, len(books))
        return DataQualityReport(
            total_books=len(books), issues=issues, metrics=metrics, quality_score=score
        )

    def _all_books(self) -> list[Book]:
        if self.store is None:
            raise ValueError("A BookStore is required to audit stored books")
        return self.store.get_all()

    def generate_quality_report(self) -> DataQualityReport:
        """Audit every stored book."""
        books = self._all_books()
        logger.info(f"Auditing {len(books)} book(s)...")
        report = self.audit_books(books)
        logger.debug(
            f"Found {len(report.issues)} issue(s); quality score {report.quality_score:.1f}"
        )
        return report

    def get_fixable_issues(self) -> list[DataQualityIssue]:
        """Issues that cleaning or re-enrichment can resolve."""
        return [issue for issue in self.generate_quality_report().issues if issue.fixable]

    def get_books_needing_review(self) -> list[Book]:
        """Books with a critical or accuracy issue, or a failed enrichment."""
        books = self._all_books()
        needs_review = []
        for book in books:
            issues = self.check_book_quality(book, books)
            if (
                any(issue.type == IssueType.CRITICAL for issue in issues)
                or any(issue.category == IssueCategory.ACCURACY for issue in issues)
                or book.enhancement_status == EnhancementStatus.FAILED
            ):
                needs_review.append(book)
        return needs_review
