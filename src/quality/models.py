"""Data models for quality audits and cleaning results."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from load.models import utc_now_iso


class IssueType(Enum):
    """Severity levels for data quality issues."""

    CRITICAL = "critical"  # Record is broken (e.g., missing author, unparsable date)
    WARNING = "warning"  # Likely wrong (e.g., bad ISBN, potential duplicate)
    INFO = "info"  # Missing or cosmetic (e.g., no cover image, all-caps title)


class IssueCategory(Enum):
    """Which aspect of data quality an issue concerns."""

    INTEGRITY = "integrity"
    COMPLETENESS = "completeness"
    ACCURACY = "accuracy"
    CONSISTENCY = "consistency"


@dataclass
class DataQualityIssue:
    """A single problem found on one book. Recomputed on every audit."""

    id: str  # e.g., "<book id>-missing-isbn"
    book_id: str
    type: IssueType
    category: IssueCategory
    message: str
    suggested_fix: str | None = None
    fixable: bool = False
    detected_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def for_book(
        cls,
        book_id: str,
        suffix: str,
        type: IssueType,
        category: IssueCategory,
        message: str,
        suggested_fix: str | None = None,
        fixable: bool = False,
    ) -> "DataQualityIssue":
        """Build an issue whose ID is ``"<book_id>-<suffix>"``."""
        return cls(f"{book_id}-{suffix}", book_id, type, category, message, suggested_fix, fixable)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["category"] = self.category.value
        return data


@dataclass
class CompletenessMetrics:
    """Percentage of books carrying each piece of metadata."""

    with_isbn: float = 0.0
    with_description: float = 0.0
    with_cover_image: float = 0.0
    with_publisher: float = 0.0
    with_categories: float = 0.0
    with_ratings: float = 0.0


@dataclass
class AccuracyMetrics:
    """Percentage of books per enrichment outcome."""

    enhanced_books: float = 0.0
    failed_enhancements: float = 0.0
    not_found_books: float = 0.0
    verified_metadata: float = 0.0


@dataclass
class ConsistencyMetrics:
    """Absolute counts of consistency problems."""

    duplicate_books: int = 0
    inconsistent_authors: int = 0
    inconsistent_titles: int = 0
    orphaned_books: int = 0


@dataclass
class IntegrityMetrics:
    """Percentage of values that are well-formed."""

    valid_dates: float = 0.0
    valid_urls: float = 0.0
    valid_isbns: float = 0.0
    valid_ratings: float = 0.0


@dataclass
class DataQualityMetrics:
    completeness: CompletenessMetrics = field(default_factory=CompletenessMetrics)
    accuracy: AccuracyMetrics = field(default_factory=AccuracyMetrics)
    consistency: ConsistencyMetrics = field(default_factory=ConsistencyMetrics)
    integrity: IntegrityMetrics = field(default_factory=IntegrityMetrics)


@dataclass
class DataQualityReport:
    """Result of auditing the full stored book set."""

    total_books: int
    issues: list[DataQualityIssue]
    metrics: DataQualityMetrics
    quality_score: float  # 0 to 100
    generated_at: str = field(default_factory=utc_now_iso)

    def count(self, issue_type: IssueType) -> int:
        return sum(1 for issue in self.issues if issue.type == issue_type)

    @property
    def critical_issues(self) -> int:
        return self.count(IssueType.CRITICAL)

    @property
    def warning_issues(self) -> int:
        return self.count(IssueType.WARNING)

    @property
    def info_issues(self) -> int:
        return self.count(IssueType.INFO)

    @property
    def health_status(self) -> str:
        """Bucket the score: good (80+), warning (60+) or critical."""
        if self.quality_score >= 80:
            return "good"
        if self.quality_score >= 60:
            return "warning"
        return "critical"

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "total_books": self.total_books,
                "issues_found": len(self.issues),
                "critical_issues": self.critical_issues,
                "warning_issues": self.warning_issues,
                "info_issues": self.info_issues,
                "quality_score": self.quality_score,
            },
            "issues": [issue.to_dict() for issue in self.issues],
            "metrics": asdict(self.metrics),
            "generated_at": self.generated_at,
        }


@dataclass
class CleaningSuggestion:
    """A proposed field change for manual review; never applied automatically."""

    book_id: str
    type: str  # "title_case", "author_case" or "normalize_isbn"
    description: str
    current_value: str
    suggested_value: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CleaningResult:
    """Outcome of cleaning one book."""

    book_id: str
    success: bool
    changes: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    changed_fields: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CleaningSummary:
    titles_normalized: int = 0
    authors_normalized: int = 0
    isbns_cleaned: int = 0
    urls_fixed: int = 0
    duplicates_removed: int = 0


@dataclass
class BulkCleaningResult:
    """Outcome of cleaning every stored book."""

    total_processed: int
    results: list[CleaningResult]
    summary: CleaningSummary = field(default_factory=CleaningSummary)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_processed": self.total_processed,
            "successful": self.successful,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
            "summary": asdict(self.summary),
        }
