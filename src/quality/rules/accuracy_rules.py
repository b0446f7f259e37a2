"""Accuracy rules: enrichment outcomes and suspicious extracted authors."""

from common.constants import SUSPICIOUS_AUTHOR_TOKENS
from load.models import Book, EnhancementStatus

from ..models import DataQualityIssue, IssueCategory, IssueType


def is_suspicious_author(author: str) -> bool:
    """Whether the author looks like an extraction placeholder (e.g. "Unknown")."""
    lowered = author.lower()
    return any(token in lowered for token in SUSPICIOUS_AUTHOR_TOKENS)


class AccuracyValidator:
    """Flags books whose data could not be confirmed against external sources."""

    CATEGORY = IssueCategory.ACCURACY

    def validate(self, book: Book, all_books: list[Book]) -> list[DataQualityIssue]:
        issues = []

        if book.enhancement_status == EnhancementStatus.FAILED:
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "enhancement-failed",
                    IssueType.WARNING,
                    self.CATEGORY,
                    f"Book enhancement failed: {book.enhancement_error or 'Unknown error'}",
                    "Retry enhancement or manually verify book data",
                    fixable=True,
                )
            )

        if book.enhancement_status == EnhancementStatus.NOT_FOUND:
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "not-found-external",
                    IssueType.WARNING,
                    self.CATEGORY,
                    "Book not found in external sources during enhancement",
                    "Manually verify book title and author, or check with alternative sources",
                )
            )

        if book.author and is_suspicious_author(book.author):
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "suspicious-author",
                    IssueType.WARNING,
                    self.CATEGORY,
                    f"Suspicious author name detected: {book.author}",
                    "Manually review and correct author name",
                    fixable=True,
                )
            )

        return issues
