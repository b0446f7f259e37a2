"""Consistency rules: potential duplicates and uniform casing."""

from common.constants import DUPLICATE_SIMILARITY_THRESHOLD
from common.similarity import similar_strings
from load.models import Book

from ..models import DataQualityIssue, IssueCategory, IssueType
from ..normalizers import has_uniform_casing


def find_potential_duplicates(
    book: Book, all_books: list[Book], threshold: float = DUPLICATE_SIMILARITY_THRESHOLD
) -> list[Book]:
    """Other books whose title or author is at least ``threshold`` similar."""
    return [
        other
        for other in all_books
        if other.id != book.id
        and (
            similar_strings(other.title, book.title, threshold)
            or similar_strings(other.author, book.author, threshold)
        )
    ]


class ConsistencyValidator:
    """Compares a book against the rest of the stored set."""

    CATEGORY = IssueCategory.CONSISTENCY

    def __init__(self, similarity_threshold: float = DUPLICATE_SIMILARITY_THRESHOLD):
        self.similarity_threshold = similarity_threshold

    def validate(self, book: Book, all_books: list[Book]) -> list[DataQualityIssue]:
        issues = []

        duplicates = find_potential_duplicates(book, all_books, self.similarity_threshold)
        if duplicates:
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "potential-duplicate",
                    IssueType.WARNING,
                    self.CATEGORY,
                    f"Potential duplicate books found: {', '.join(d.id for d in duplicates)}",
                    "Review and merge duplicate books",
                    fixable=True,
                )
            )

        for field_name, value in (("title", book.title), ("author", book.author)):
            if value and has_uniform_casing(value):
                issues.append(
                    DataQualityIssue.for_book(
                        book.id,
                        f"inconsistent-{field_name}-case",
                        IssueType.INFO,
                        self.CATEGORY,
                        f"{field_name.capitalize()} has inconsistent casing",
                        f"Normalize {field_name} casing",
                        fixable=True,
                    )
                )

        return issues
