"""Data models for LLM book extraction."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class PassType(str, Enum):
    """Kind of LLM round-trip that produced a set of candidates."""

    SIMPLE = "simple"
    INITIAL = "initial"
    REFINEMENT = "refinement"
    VALIDATION = "validation"


class ExtractionState(str, Enum):
    """State of a multi-pass extraction run.

    A run starts in STARTED and moves forward one stage at a time. Any stage
    that produces no books moves the run to ABORTED, which is terminal.
    """

    STARTED = "started"
    INITIAL = "initial"
    REFINED = "refined"
    VALIDATED = "validated"
    ABORTED = "aborted"
    SINGLE_PASS = "single_pass"
    FAILED = "failed"

    def can_transition_to(self, target: "ExtractionState") -> bool:
        return target in _TRANSITIONS.get(self, frozenset())

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS.get(self)


_TRANSITIONS: dict[ExtractionState, frozenset[ExtractionState]] = {
    ExtractionState.STARTED: frozenset(
        {
            ExtractionState.INITIAL,
            ExtractionState.ABORTED,
            ExtractionState.SINGLE_PASS,
            ExtractionState.FAILED,
        }
    ),
    ExtractionState.INITIAL: frozenset(
        {ExtractionState.REFINED, ExtractionState.ABORTED, ExtractionState.FAILED}
    ),
    ExtractionState.REFINED: frozenset(
        {ExtractionState.VALIDATED, ExtractionState.ABORTED, ExtractionState.FAILED}
    ),
}


def _coerce_confidence(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return None
    return min(max(confidence, 0.0), 1.0)


def _coerce_links(value: Any) -> tuple[str, ...]:
    """Keep the non-blank string links; any other shape yields no links."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list | tuple):
        return ()
    return tuple(link.strip() for link in value if isinstance(link, str) and link.strip())


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ExtractedBookCandidate:
    """A book mention produced by a single pass."""

    title: str
    author: str
    links: tuple[str, ...] = ()
    context: str | None = None
    confidence: float | None = None
    reasoning: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExtractedBookCandidate":
        """Build a candidate from raw model JSON, trimming strings and tolerating gaps."""
        return cls(
            title=str(data.get("title") or "").strip(),
            author=str(data.get("author") or "").strip(),
            links=_coerce_links(data.get("links")),
            context=_clean_text(data.get("context")),
            confidence=_coerce_confidence(data.get("confidence")),
            reasoning=_clean_text(data.get("reasoning")),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "title": self.title,
            "author": self.author,
            "links": list(self.links),
        }
        if self.context is not None:
            result["context"] = self.context
        if self.confidence is not None:
            result["confidence"] = self.confidence
        if self.reasoning is not None:
            result["reasoning"] = self.reasoning
        return result


@dataclass(frozen=True)
class ExtractionPass:
    """One completed LLM round-trip within an extraction run."""

    pass_type: PassType
    books: tuple[ExtractedBookCandidate, ...]
    context_preserved: str = ""
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "passType": self.pass_type.value,
            "books": [book.to_dict() for book in self.books],
            "contextPreserved": self.context_preserved,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class MultiPassExtractionResult:
    """Outcome of one ``extract_books_from_episode`` call."""

    final_books: tuple[ExtractedBookCandidate, ...] = ()
    passes: tuple[ExtractionPass, ...] = ()
    overall_confidence: float = 0.0
    processing_notes: tuple[str, ...] = ()
    multi_pass: bool = False
    state: ExtractionState = ExtractionState.FAILED
    context_preserved: str = ""

    @property
    def books(self) -> tuple[ExtractedBookCandidate, ...]:
        return self.final_books

    @classmethod
    def empty(cls, *notes: str) -> "MultiPassExtractionResult":
        """Result for an extraction that produced nothing usable."""
        return cls(processing_notes=tuple(notes), state=ExtractionState.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "books": [book.to_dict() for book in self.final_books],
            "multiPass": self.multi_pass,
            "confidence": self.overall_confidence,
            "processingNotes": list(self.processing_notes),
            "passes": [extraction_pass.to_dict() for extraction_pass in self.passes],
        }

