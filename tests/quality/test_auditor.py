"""Tests for the quality auditor and its rules."""

import pytest

from load.book_store import BookStore
from load.db.sqlite_adapter import SQLiteAdapter
from load.models import Book, EnhancementStatus
from quality import IssueCategory, IssueType, QualityAuditor
from quality.auditor import calculate_quality_metrics, calculate_quality_score
from quality.models import DataQualityIssue, DataQualityMetrics, DataQualityReport
from quality.rules.accuracy_rules import is_suspicious_author
from quality.rules.consistency_rules import find_potential_duplicates


def make_book(book_id, title="Sapiens", author="Yuval Noah Harari", **kwargs):
    defaults = {
        "episode_id": "ep-1",
        "episode_date": "2024-01-01T00:00:00+00:00",
        "enhancement_status": EnhancementStatus.ENHANCED,
        "isbn": "9780062316097",
        "description": "A brief history of humankind.",
        "cover_image": "https://books.google.com/sapiens.jpg",
    }
    defaults.update(kwargs)
    return Book(id=book_id, title=title, author=author, **defaults)


def issue_ids(issues):
    return {issue.id for issue in issues}


@pytest.fixture
def auditor():
    return QualityAuditor()


class TestRules:
    """Tests for individual rule outcomes."""

    def test_clean_book_has_no_issues(self, auditor):
        book = make_book("b1")
        assert auditor.check_book_quality(book, [book]) == []

    def test_integrity_issues(self, auditor):
        book = make_book(
            "b1",
            isbn="12345",
            episode_date="yesterday",
            extracted_links=["not a url", "https://ok.example"],
            average_rating=7.0,
            page_count=-3,
        )
        issues = auditor.check_book_quality(book, [book])

        assert {"b1-invalid-isbn", "b1-invalid-episode-date", "b1-invalid-url-not a url",
                "b1-invalid-rating", "b1-invalid-page-count"} <= issue_ids(issues)
        date_issue = next(i for i in issues if i.id == "b1-invalid-episode-date")
        assert date_issue.type is IssueType.CRITICAL
        assert date_issue.category is IssueCategory.INTEGRITY
        assert date_issue.fixable

    def test_missing_author_is_critical(self, auditor):
        book = make_book("b1", author="")
        issues = auditor.check_book_quality(book, [book])

        missing = next(i for i in issues if i.id == "b1-missing-author")
        assert missing.type is IssueType.CRITICAL
        assert not missing.fixable
        basic = next(i for i in issues if i.id == "b1-basic-validation")
        assert "Author name is required" in basic.message

    def test_pending_and_missing_metadata(self, auditor):
        book = make_book(
            "b1",
            enhancement_status=EnhancementStatus.PENDING,
            isbn=None,
            description=None,
            cover_image=None,
        )
        issues = auditor.check_book_quality(book, [book])

        assert issue_ids(issues) == {
            "b1-enhancement-pending",
            "b1-missing-isbn",
            "b1-missing-description",
            "b1-missing-cover",
        }
        assert all(i.type is IssueType.INFO for i in issues)

    def test_accuracy_issues(self, auditor):
        failed = make_book("b1", enhancement_status=EnhancementStatus.FAILED, author="Unknown Author")
        not_found = make_book("b2", title="Shoe Dog", author="Phil Knight",
                              enhancement_status=EnhancementStatus.NOT_FOUND)

        failed_issues = auditor.check_book_quality(failed, [failed])
        assert {"b1-enhancement-failed", "b1-suspicious-author"} <= issue_ids(failed_issues)
        message = next(i.message for i in failed_issues if i.id == "b1-enhancement-failed")
        assert message == "Book enhancement failed: Unknown error"

        not_found_issues = auditor.check_book_quality(not_found, [not_found])
        assert "b2-not-found-external" in issue_ids(not_found_issues)

    def test_harari_harai_potential_duplicate(self, auditor):
        """Test that a one-letter author typo is flagged as a potential duplicate."""
        first = make_book("b1")
        second = make_book("b2", title="Homo Deus", author="Yuval Noah Harai")
        books = [first, second]

        issues = auditor.check_book_quality(second, books)

        duplicate = next(i for i in issues if i.id == "b2-potential-duplicate")
        assert duplicate.type is IssueType.WARNING
        assert duplicate.message == "Potential duplicate books found: b1"

    def test_uniform_casing_flagged(self, auditor):
        book = make_book("b1", title="SAPIENS", author="yuval noah harari")
        issues = auditor.check_book_quality(book, [book])
        assert {"b1-inconsistent-title-case", "b1-inconsistent-author-case"} <= issue_ids(issues)

    def test_find_potential_duplicates_excludes_self(self):
        book = make_book("b1")
        assert find_potential_duplicates(book, [book]) == []

    @pytest.mark.parametrize("author", ["Unknown", "Various Authors", "N/A", "TBD"])
    def test_suspicious_authors(self, author):
        assert is_suspicious_author(author)
        assert not is_suspicious_author("Walter Isaacson")


class TestScoring:
    """Tests for metrics and the quality score."""

    def test_zero_books(self, auditor):
        report = auditor.audit_books([])

        assert report.total_books == 0
        assert report.quality_score == 0.0
        assert report.metrics == DataQualityMetrics()
        assert report.health_status == "critical"

    def test_metrics(self):
        books = [
            make_book("b1"),
            make_book("b2", title="sapiens ", author="YUVAL NOAH HARARI", isbn=None, episode_id=""),
        ]
        metrics = calculate_quality_metrics(books)

        assert metrics.completeness.with_isbn == 50.0
        assert metrics.accuracy.enhanced_books == 100.0
        assert metrics.consistency.duplicate_books == 1
        assert metrics.consistency.inconsistent_authors == 1
        assert metrics.consistency.orphaned_books == 1
        assert metrics.integrity.valid_urls == 100.0

    def test_score_bounds(self, auditor):
        good = [make_book(f"b{i}", title=f"Book {i}", author=f"Author {i}") for i in range(3)]
        bad = [
            make_book(f"x{i}", title="", author="", episode_date="never", isbn="bad",
                      enhancement_status=EnhancementStatus.FAILED, description=None, cover_image=None)
            for i in range(20)
        ]
        for books in (good, bad, good + bad):
            score = auditor.audit_books(books).quality_score
            assert 0.0 <= score <= 100.0

    def test_critical_penalty_capped(self):
        metrics = DataQualityMetrics()
        report_issues = [
            DataQualityIssue.for_book(f"b{i}", "missing-title", IssueType.CRITICAL, IssueCategory.COMPLETENESS, "Missing book title")
            for i in range(30)
        ]
        assert calculate_quality_score(metrics, report_issues, 10) == 0.0

    @pytest.mark.parametrize(
        ("score", "status"), [(95.0, "good"), (80.0, "good"), (65.0, "warning"), (10.0, "critical")]
    )
    def test_health_status(self, score, status):
        report = DataQualityReport(total_books=1, issues=[], metrics=DataQualityMetrics(), quality_score=score)
        assert report.health_status == status

    def test_report_to_dict(self, auditor):
        book = make_book("b1", author="")
        data = auditor.audit_books([book]).to_dict()

        assert data["summary"]["total_books"] == 1
        assert data["summary"]["critical_issues"] == 2
        assert data["issues"][0]["type"] in {"critical", "warning", "info"}
        assert "completeness" in data["metrics"]


class TestStoreAudits:
    """Tests for audits over stored books."""

    @pytest.fixture
    def store(self, tmp_path):
        book_store = BookStore.open(SQLiteAdapter(tmp_path / "books.db"))
        yield book_store
        book_store.close()

    def test_store_required(self, auditor):
        with pytest.raises(ValueError, match="BookStore is required"):
            auditor.generate_quality_report()

    def test_generate_report_and_fixable(self, store):
        store.insert(make_book("b1"))
        store.insert(make_book("b2", title="Shoe Dog", author="Phil Knight", isbn="bad"))
        auditor = QualityAuditor(store)

        report = auditor.generate_quality_report()
        assert report.total_books == 2
        assert "b2-invalid-isbn" in issue_ids(auditor.get_fixable_issues())

    def test_books_needing_review(self, store):
        store.insert(make_book("b1"))
        store.insert(make_book("b2", title="Shoe Dog", author="Phil Knight",
                               enhancement_status=EnhancementStatus.NOT_FOUND))
        store.insert(make_book("b3", title="Steve Jobs", author="Walter Isaacson", episode_date="never"))

        review = QualityAuditor(store).get_books_needing_review()
        assert sorted(b.id for b in review) == ["b2", "b3"]
