"""Integrity rules: well-formed ISBNs, dates, URLs, ratings and page counts."""

from load.models import Book

from ..models import DataQualityIssue, IssueCategory, IssueType
from ..normalizers import is_valid_date, is_valid_isbn, is_valid_url


class IntegrityValidator:
    """Validates value formats and ranges."""

    CATEGORY = IssueCategory.INTEGRITY

    def validate(self, book: Book, all_books: list[Book]) -> list[DataQualityIssue]:
        """Validate one book's field formats.

        Args:
            book: Book to check
            all_books: Full stored book set (unused by this rule set)

        Returns:
            List of issues found
        """
        issues = []

        if book.isbn and not is_valid_isbn(book.isbn):
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "invalid-isbn",
                    IssueType.WARNING,
                    self.CATEGORY,
                    f"Invalid ISBN format: {book.isbn}",
                    "Validate and correct ISBN format",
                    fixable=True,
                )
            )

        if book.episode_date and not is_valid_date(book.episode_date):
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "invalid-episode-date",
                    IssueType.CRITICAL,
                    self.CATEGORY,
                    f"Invalid episode date format: {book.episode_date}",
                    "Convert to valid ISO date format",
                    fixable=True,
                )
            )

        # One issue per malformed link
        for link in book.extracted_links:
            if not is_valid_url(link):
                issues.append(
                    DataQualityIssue.for_book(
                        book.id,
                        f"invalid-url-{link[:10]}",
                        IssueType.WARNING,
                        self.CATEGORY,
                        f"Invalid URL format: {link}",
                        "Validate and correct URL format",
                        fixable=True,
                    )
                )

        if book.average_rating is not None and not 0 <= book.average_rating <= 5:
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "invalid-rating",
                    IssueType.WARNING,
                    self.CATEGORY,
                    f"Rating out of valid range (0-5): {book.average_rating}",
                    "Correct rating to valid range",
                    fixable=True,
                )
            )

        if book.page_count is not None and book.page_count < 0:
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "invalid-page-count",
                    IssueType.WARNING,
                    self.CATEGORY,
                    f"Negative page count: {book.page_count}",
                    "Set page count to null or positive value",
                    fixable=True,
                )
            )

        return issues
