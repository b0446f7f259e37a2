"""Completeness rules: required fields and missing enrichment metadata."""

from load.models import Book, EnhancementStatus

from ..models import DataQualityIssue, IssueCategory, IssueType


class CompletenessValidator:
    """Flags missing fields. Missing metadata is fixable by re-running enrichment."""

    CATEGORY = IssueCategory.COMPLETENESS

    def validate(self, book: Book, all_books: list[Book]) -> list[DataQualityIssue]:
        issues = []

        if not book.title or not book.title.strip():
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "missing-title",
                    IssueType.CRITICAL,
                    self.CATEGORY,
                    "Missing book title",
                    "Add book title from episode context or external sources",
                )
            )

        if not book.author or not book.author.strip():
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "missing-author",
                    IssueType.CRITICAL,
                    self.CATEGORY,
                    "Missing book author",
                    "Add author name from episode context or external sources",
                )
            )

        if book.enhancement_status == EnhancementStatus.PENDING:
            issues.append(
                DataQualityIssue.for_book(
                    book.id,
                    "enhancement-pending",
                    IssueType.INFO,
                    self.CATEGORY,
                    "Book enhancement is pending",
                    "Run book enhancement process",
                    fixable=True,
                )
            )

        missing = [
            ("isbn", "ISBN information", not (book.isbn or book.isbn13 or book.isbn10)),
            ("description", "book description", not book.description),
            ("cover", "book cover image", not book.cover_image),
        ]
        for suffix, label, is_missing in missing:
            if is_missing:
                issues.append(
                    DataQualityIssue.for_book(
                        book.id,
                        f"missing-{suffix}",
                        IssueType.INFO,
                        self.CATEGORY,
                        f"Missing {label}",
                        f"Enhance book metadata to get {label.removeprefix('book ')}",
                        fixable=True,
                    )
                )

        return issues
