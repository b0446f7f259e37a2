"""Tests for single-pass and multi-pass book extraction."""

import asyncio
import json

from extract.context_store import ContextStore
from extract.extractor import BookExtractor
from extract.models import ExtractionState, PassType
from llm.base import GenerationError
from scoring.confidence import calculate_enhanced_confidence

STEVE_JOBS_EPISODE = (
    "What I learned from reading Steve Jobs by Walter Isaacson. "
    "The story of how Apple was built."
)

# Mentions several books, so it always goes through the multi-pass pipeline
MULTI_BOOK_EPISODE = (
    "This episode covers several books about Andrew Carnegie: his Autobiography "
    "and the biography Andrew Carnegie by David Nasaw."
)


class FakeGenerator:
    """Returns canned responses in order and records every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def generate(self, prompt, model=None, temperature=0.7, max_tokens=2048, retries=3):
        self.calls.append({"prompt": prompt, "temperature": temperature, "max_tokens": max_tokens})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response if isinstance(response, str) else json.dumps(response)


def carnegie_books(confidence=0.8):
    return [
        {
            "title": "The Autobiography of Andrew Carnegie",
            "author": "Andrew Carnegie",
            "context": "Main source for the episode",
            "confidence": confidence,
        },
        {
            "title": "Andrew Carnegie",
            "author": "David Nasaw",
            "context": "Biography discussed in detail",
            "confidence": confidence,
        },
    ]


def run(coro):
    return asyncio.run(coro)


class TestSimpleExtraction:
    """Tests for the single-pass path."""

    def test_steve_jobs_episode(self):
        """Test that a short one-book episode uses a single pass and scores well."""
        client = FakeGenerator(
            {"books": [{"title": "Steve Jobs", "author": "Walter Isaacson", "confidence": 0.9}]}
        )
        extractor = BookExtractor(client)

        result = run(extractor.extract_books_from_episode(STEVE_JOBS_EPISODE))

        assert len(client.calls) == 1
        assert client.calls[0]["temperature"] == 0.3
        assert client.calls[0]["max_tokens"] == 1024
        assert result.state is ExtractionState.SINGLE_PASS
        assert result.multi_pass is False
        assert [(b.title, b.author) for b in result.books] == [("Steve Jobs", "Walter Isaacson")]
        assert result.overall_confidence == 0.9

        scored = calculate_enhanced_confidence(result.books[0], result.books[0].confidence, "simple")
        assert scored.score >= 0.7
        assert scored.needs_review is False

    def test_default_confidence_when_model_reports_none(self):
        """Test that books without reported confidence give the pass 0.7."""
        client = FakeGenerator({"books": [{"title": "Steve Jobs", "author": "Walter Isaacson"}]})
        result = run(BookExtractor(client).extract_books_simple(STEVE_JOBS_EPISODE))
        assert result.overall_confidence == 0.7

    def test_no_books_gives_zero_confidence(self):
        """Test that an empty book list has confidence 0."""
        client = FakeGenerator({"books": []})
        result = run(BookExtractor(client).extract_books_simple(STEVE_JOBS_EPISODE))
        assert result.books == ()
        assert result.overall_confidence == 0.0

    def test_unparsable_response(self):
        """Test that prose instead of JSON yields no books and a note."""
        client = FakeGenerator("I think the episode is about Steve Jobs.")
        result = run(BookExtractor(client).extract_books_simple(STEVE_JOBS_EPISODE))

        assert result.books == ()
        assert "Model response could not be parsed as JSON" in result.processing_notes

    def test_fenced_response(self):
        """Test that a Markdown-fenced JSON response is parsed."""
        payload = json.dumps({"books": [{"title": "Steve Jobs", "author": "Walter Isaacson"}]})
        client = FakeGenerator(f"```json\n{payload}\n```")
        result = run(BookExtractor(client).extract_books_simple(STEVE_JOBS_EPISODE))
        assert [b.title for b in result.books] == ["Steve Jobs"]

    def test_llm_failure_returns_empty_result(self):
        """Test that a failed generation never raises."""
        client = FakeGenerator(GenerationError("quota exhausted", status_code=429, attempts=3))
        result = run(BookExtractor(client).extract_books_simple(STEVE_JOBS_EPISODE))

        assert result.state is ExtractionState.FAILED
        assert result.books == ()
        assert result.overall_confidence == 0.0
        assert result.processing_notes[-1].startswith("Extraction failed:")

    def test_invalid_candidates_dropped(self):
        """Test that candidates without a usable author are removed."""
        client = FakeGenerator(
            {
                "books": [
                    {"title": "Steve Jobs", "author": "Walter Isaacson"},
                    {"title": "Untitled", "author": ""},
                ]
            }
        )
        result = run(BookExtractor(client).extract_books_simple(STEVE_JOBS_EPISODE))

        assert [b.title for b in result.books] == ["Steve Jobs"]
        assert any(note.startswith("Dropped invalid candidate 'Untitled'") for note in result.processing_notes)


class TestMultiPassExtraction:
    """Tests for the three-stage path."""

    def test_full_run(self):
        """Test initial, refinement and validation passes in order."""
        client = FakeGenerator(
            {
                "books": carnegie_books(0.8),
                "contextPreserved": "Carnegie and the steel industry",
                "overallConfidence": 0.8,
            },
            {"books": carnegie_books(0.9), "overallConfidence": 0.9},
            {
                "validations": [
                    {
                        "title": "The Autobiography of Andrew Carnegie",
                        "author": "Andrew Carnegie",
                        "verdict": "VALID",
                        "confidence": 0.95,
                    },
                    {"title": "Andrew Carnegie", "author": "David Nasaw", "verdict": "VALID"},
                ],
                "overallConfidence": 1.0,
            },
        )
        extractor = BookExtractor(client)

        result = run(extractor.extract_books_from_episode(MULTI_BOOK_EPISODE))

        assert [c["temperature"] for c in client.calls] == [0.2, 0.1, 0.1]
        assert result.multi_pass is True
        assert result.state is ExtractionState.VALIDATED
        assert [p.pass_type for p in result.passes] == [
            PassType.INITIAL,
            PassType.REFINEMENT,
            PassType.VALIDATION,
        ]
        assert len(result.books) == 2
        assert result.books[0].confidence == 0.95
        assert result.overall_confidence == 0.9
        assert result.context_preserved == "Carnegie and the steel industry"
        assert "Validation kept 2 of 2 book(s)" in result.processing_notes

    def test_initial_pass_without_books_aborts(self):
        """Test that an empty initial pass ends the run with no further calls."""
        client = FakeGenerator({"books": [], "contextPreserved": "", "overallConfidence": 0.1})

        result = run(BookExtractor(client).extract_books_from_episode(MULTI_BOOK_EPISODE))

        assert len(client.calls) == 1
        assert result.state is ExtractionState.ABORTED
        assert result.books == ()
        assert len(result.passes) == 1
        assert result.overall_confidence == 0.1

    def test_refinement_without_books_aborts(self):
        """Test that a refinement returning an empty list ends the run."""
        client = FakeGenerator(
            {"books": carnegie_books(), "overallConfidence": 0.8},
            {"books": [], "overallConfidence": 0.2},
        )

        result = run(BookExtractor(client).extract_books_from_episode(MULTI_BOOK_EPISODE))

        assert len(client.calls) == 2
        assert result.state is ExtractionState.ABORTED
        assert result.books == ()

    def test_refinement_failure_keeps_initial_books(self):
        """Test that a failed refinement falls back with confidence 0.5."""
        client = FakeGenerator(
            {"books": carnegie_books(), "overallConfidence": 0.8},
            "not json at all",
            {
                "validations": [
                    {
                        "title": "The Autobiography of Andrew Carnegie",
                        "author": "Andrew Carnegie",
                        "verdict": "VALID",
                    },
                    {"title": "Andrew Carnegie", "author": "David Nasaw", "verdict": "VALID"},
                ],
                "overallConfidence": 0.9,
            },
        )

        result = run(BookExtractor(client).extract_books_from_episode(MULTI_BOOK_EPISODE))

        refinement = result.passes[1]
        assert refinement.confidence == 0.5
        assert refinement.books == result.passes[0].books
        assert any(note.startswith("Refinement pass failed") for note in result.processing_notes)
        assert result.state is ExtractionState.VALIDATED
        assert len(result.books) == 2

    def test_validation_filters_invalid_books(self):
        """Test that only VALID verdicts survive validation."""
        client = FakeGenerator(
            {"books": carnegie_books(), "overallConfidence": 0.8},
            {"books": carnegie_books(), "overallConfidence": 0.8},
            {
                "validations": [
                    {
                        "title": "the autobiography of andrew carnegie",
                        "author": "ANDREW CARNEGIE",
                        "verdict": "valid",
                    },
                    {"title": "Andrew Carnegie", "author": "David Nasaw", "verdict": "INVALID"},
                ],
                "overallConfidence": 0.7,
            },
        )

        result = run(BookExtractor(client).extract_books_from_episode(MULTI_BOOK_EPISODE))

        assert [b.author for b in result.books] == ["Andrew Carnegie"]
        # Titles keep the refined spelling, not the validator's
        assert result.books[0].title == "The Autobiography of Andrew Carnegie"
        assert "Validation kept 1 of 2 book(s)" in result.processing_notes

    def test_validation_failure_keeps_refined_books(self):
        """Test that a validation error falls back to the refined books."""
        client = FakeGenerator(
            {"books": carnegie_books(), "overallConfidence": 0.8},
            {"books": carnegie_books(), "overallConfidence": 0.8},
            GenerationError("server error", status_code=500, attempts=3),
        )

        result = run(BookExtractor(client).extract_books_from_episode(MULTI_BOOK_EPISODE))

        assert result.state is ExtractionState.VALIDATED
        assert result.passes[2].confidence == 0.5
        assert len(result.books) == 2

    def test_initial_failure_falls_back_to_simple(self):
        """Test that an initial-pass error reruns the episode as a single pass."""
        client = FakeGenerator(
            GenerationError("server error", status_code=500, attempts=3),
            {"books": [{"title": "Andrew Carnegie", "author": "David Nasaw", "confidence": 0.8}]},
        )

        result = run(BookExtractor(client).extract_books_from_episode(MULTI_BOOK_EPISODE))

        assert result.multi_pass is False
        assert result.state is ExtractionState.SINGLE_PASS
        assert [b.author for b in result.books] == ["David Nasaw"]
        assert result.processing_notes[0].startswith("Multi-pass extraction failed")

    def test_preserved_context_carried_between_episodes(self):
        """Test that the initial pass of one episode feeds the next."""
        store = ContextStore(ttl_seconds=3600)
        client = FakeGenerator(
            {"books": [], "contextPreserved": "Carnegie and the steel industry"},
            {"books": []},
        )
        extractor = BookExtractor(client, context_store=store)

        run(extractor.extract_books_from_episode(MULTI_BOOK_EPISODE, episode_id="ep-1"))
        second = run(extractor.extract_books_from_episode(MULTI_BOOK_EPISODE, episode_id="ep-2"))

        assert store.get("ep-1") == "Carnegie and the steel industry"
        assert "Carnegie and the steel industry" in client.calls[1]["prompt"]
        assert "Used preserved context from a previous episode" in second.processing_notes


class TestMalformedModelOutput:
    """Tests that parseable but oddly shaped JSON degrades instead of failing."""

    def test_scalar_links_keep_the_book(self):
        client = FakeGenerator(
            {"books": [{"title": "The Lean Startup", "author": "Eric Ries", "links": 5}]}
        )
        result = run(BookExtractor(client).extract_books_simple(STEVE_JOBS_EPISODE))

        assert result.state is ExtractionState.SINGLE_PASS
        assert [(b.title, b.links) for b in result.books] == [("The Lean Startup", ())]

    def test_books_not_a_list(self):
        client = FakeGenerator({"books": "Steve Jobs by Walter Isaacson"})
        result = run(BookExtractor(client).extract_books_simple(STEVE_JOBS_EPISODE))

        assert result.state is ExtractionState.SINGLE_PASS
        assert result.books == ()
        assert result.overall_confidence == 0.0

    def test_non_dict_entries_skipped(self):
        client = FakeGenerator(
            {"books": ["Steve Jobs", None, {"title": "Steve Jobs", "author": "Walter Isaacson"}]}
        )
        result = run(BookExtractor(client).extract_books_simple(STEVE_JOBS_EPISODE))
        assert [b.author for b in result.books] == ["Walter Isaacson"]

    def test_string_confidence_ignored(self):
        client = FakeGenerator(
            {"books": [{"title": "Steve Jobs", "author": "Walter Isaacson", "confidence": "high"}]}
        )
        result = run(BookExtractor(client).extract_books_simple(STEVE_JOBS_EPISODE))

        assert result.books[0].confidence is None
        assert result.overall_confidence == 0.7

    def test_scalar_links_in_refinement_keep_multi_pass(self):
        """Test that odd link values in refinement do not abandon the multi-pass run."""
        refined = [dict(book, links=1) for book in carnegie_books(0.9)]
        client = FakeGenerator(
            {"books": carnegie_books(), "overallConfidence": 0.8},
            {"books": refined, "overallConfidence": 0.9},
            {
                "validations": [
                    {"index": 0, "verdict": "VALID"},
                    {"index": 1, "verdict": "VALID"},
                ],
                "overallConfidence": 0.9,
            },
        )

        result = run(BookExtractor(client).extract_books_from_episode(MULTI_BOOK_EPISODE))

        assert len(client.calls) == 3
        assert result.multi_pass is True
        assert result.state is ExtractionState.VALIDATED
        assert result.passes[1].confidence == 0.9
        assert all(book.links == () for book in result.books)
        assert not any("failed" in note for note in result.processing_notes)


class TestValidationMatching:
    """Tests for pairing validation verdicts with refined books."""

    def run_validation(self, validations):
        client = FakeGenerator(
            {"books": carnegie_books(), "overallConfidence": 0.8},
            {"books": carnegie_books(), "overallConfidence": 0.8},
            {"validations": validations, "overallConfidence": 0.8},
        )
        result = run(BookExtractor(client).extract_books_from_episode(MULTI_BOOK_EPISODE))
        assert "index" in client.calls[2]["prompt"]
        return result

    def test_verdicts_matched_by_index(self):
        """Test that a verdict echoing a longer title still applies to its book."""
        result = self.run_validation(
            [
                {
                    "index": 0,
                    "title": "The Autobiography of Andrew Carnegie and The Gospel of Wealth",
                    "author": "Andrew Carnegie",
                    "verdict": "VALID",
                },
                {"index": 1, "title": "Andrew Carnegie", "author": "David Nasaw", "verdict": "VALID"},
            ]
        )

        assert [b.title for b in result.books] == ["The Autobiography of Andrew Carnegie", "Andrew Carnegie"]
        assert "Validation kept 2 of 2 book(s)" in result.processing_notes

    def test_index_verdict_can_reject(self):
        result = self.run_validation(
            [{"index": 0, "verdict": "VALID"}, {"index": 1, "verdict": "INVALID"}]
        )
        assert [b.author for b in result.books] == ["Andrew Carnegie"]

    def test_near_title_matched_by_similarity(self):
        result = self.run_validation(
            [
                {"title": "The Autobiography of Andrew Carnegi", "author": "Andrew Carnegie", "verdict": "VALID"},
                {"title": "Andrew Carnegie", "author": "David Nasaw", "verdict": "INVALID"},
            ]
        )
        assert [b.author for b in result.books] == ["Andrew Carnegie"]

    def test_unmatched_books_are_kept(self):
        """Test that a book the model gave no verdict for is not treated as INVALID."""
        result = self.run_validation(
            [
                {
                    "title": "The Autobiography of Andrew Carnegie and The Gospel of Wealth",
                    "author": "Andrew Carnegie",
                    "verdict": "VALID",
                },
                {"title": "Andrew Carnegie", "author": "David Nasaw", "verdict": "VALID"},
            ]
        )

        assert len(result.books) == 2
        assert (
            "No validation verdict for 'The Autobiography of Andrew Carnegie'; kept it"
            in result.processing_notes
        )

    def test_entries_without_titles_or_dicts(self):
        result = self.run_validation([{"verdict": "INVALID"}, "VALID", 3, {"index": True, "verdict": "INVALID"}])

        assert result.state is ExtractionState.VALIDATED
        assert len(result.books) == 2
