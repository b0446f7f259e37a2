"""Confidence scoring for extracted books.

Blends rule-based heuristics on title, author, context and links with the
confidence the model reported for the book, and flags books that need a
human to look at them.
"""

import re
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from common.constants import CONFIDENCE_THRESHOLDS, NEEDS_REVIEW_THRESHOLD

ExtractionMethod = Literal["simple", "multi-pass"]

MULTI_PASS = "multi-pass"

_CAUSAL_RE = re.compile(r"because|since|as|explains|describes", re.IGNORECASE)
_PROPER_NAME_RE = re.compile(r"^[A-Z][a-z]+ [A-Z][a-z]+")


@dataclass(frozen=True)
class ConfidenceFactors:
    """Sub-scores feeding the final confidence."""

    title_quality: float
    author_quality: float
    context_quality: float
    links_present: float
    llm_confidence: float | None = None
    extraction_method: str | None = None


@dataclass(frozen=True)
class ConfidenceResult:
    score: float
    factors: ConfidenceFactors
    reasoning: str
    needs_review: bool


def analyze_title_quality(title: str | None) -> float:
    if not title or not title.strip():
        return 0.0

    title = title.strip()
    score = 0.5
    if len(title) > 3:
        score += 0.2
    if len(title) > 10:
        score += 0.1
    if re.match(r"^[A-Z]", title):
        score += 0.1
    if not re.match(r"^\d+$", title):
        score += 0.1
    if ":" in title:
        score += 0.05  # subtitle
    if re.search(r"[A-Za-z]{3,}", title):
        score += 0.05
    return min(score, 1.0)


def analyze_author_quality(author: str | None) -> float:
    if not author or not author.strip():
        return 0.0

    author = author.strip()
    score = 0.5
    if len(author) > 3:
        score += 0.2
    if " " in author:
        score += 0.2
    if _PROPER_NAME_RE.match(author):
        score += 0.1
    return min(score, 1.0)


def analyze_context_quality(context: str | None) -> float:
    if not context or not context.strip():
        return 0.0

    context = context.strip()
    score = 0.3
    if len(context) > 20:
        score += 0.2
    if len(context) > 50:
        score += 0.2
    if len(context) > 100:
        score += 0.1
    if "episode" in context:
        score += 0.1
    if "discuss" in context or "based on" in context:
        score += 0.1
    if _CAUSAL_RE.search(context):
        score += 0.1
    return min(score, 1.0)


def _links_of(book: Any) -> Sequence[str]:
    links = getattr(book, "extracted_links", None)
    if links is None:
        links = getattr(book, "links", None)
    if links is None and isinstance(book, dict):
        links = book.get("extracted_links") or book.get("links")
    return links or ()


def _field(book: Any, name: str) -> str | None:
    if isinstance(book, dict):
        return book.get(name)
    return getattr(book, name, None)


def _reasoning(factors: ConfidenceFactors, score: float, needs_review: bool) -> str:
    reasons = []

    if factors.title_quality >= 0.8:
        reasons.append("excellent title quality")
    elif factors.title_quality >= 0.6:
        reasons.append("good title quality")
    elif factors.title_quality >= 0.3:
        reasons.append("moderate title quality")
    else:
        reasons.append("poor title quality")

    if factors.author_quality >= 0.8:
        reasons.append("excellent author information")
    elif factors.author_quality >= 0.6:
        reasons.append("good author information")
    elif factors.author_quality >= 0.3:
        reasons.append("basic author information")
    else:
        reasons.append("poor author information")

    if factors.context_quality >= 0.7:
        reasons.append("detailed context provided")
    elif factors.context_quality >= 0.4:
        reasons.append("basic context provided")
    elif factors.context_quality > 0:
        reasons.append("minimal context")
    else:
        reasons.append("no context provided")

    if factors.llm_confidence is not None:
        if factors.llm_confidence >= 0.8:
            reasons.append("high LLM confidence")
        elif factors.llm_confidence >= 0.6:
            reasons.append("moderate LLM confidence")
        else:
            reasons.append("low LLM confidence")

    if factors.extraction_method == MULTI_PASS:
        reasons.append("multi-pass extraction")

    if factors.links_present > 0:
        reasons.append("direct links found")

    reasoning = f"Confidence: {score * 100:.0f}% - {', '.join(reasons)}"
    if needs_review:
        reasoning += ". Requires manual review."
    return reasoning


def calculate_enhanced_confidence(
    book: Any,
    llm_confidence: float | None = None,
    method: ExtractionMethod | str | None = None,
) -> ConfidenceResult:
    """Score a book (``Book``, candidate or dict with title/author/context/links).

    Args:
        book: Book to score
        llm_confidence: Confidence the model reported for this book, if any
        method: "simple" or "multi-pass"

    Returns:
        Score in [0, 1] rounded to 2 decimals, sub-scores, reasoning and review flag
    """
    factors = ConfidenceFactors(
        title_quality=analyze_title_quality(_field(book, "title")),
        author_quality=analyze_author_quality(_field(book, "author")),
        context_quality=analyze_context_quality(_field(book, "context")),
        links_present=0.1 if _links_of(book) else 0.0,
        llm_confidence=llm_confidence,
        extraction_method=method,
    )

    heuristic = (
        factors.title_quality * 0.3
        + factors.author_quality * 0.3
        + factors.context_quality * 0.3
        + factors.links_present * 0.1
    ) * 0.4

    # Without a model confidence the heuristic stands in for the missing half
    llm_part = llm_confidence * 0.5 if llm_confidence is not None else heuristic * 1.25
    method_bonus = 0.1 if method == MULTI_PASS else 0.05

    score = round(min(max(heuristic + llm_part + method_bonus, 0.0), 1.0), 2)

    needs_review = (
        score < NEEDS_REVIEW_THRESHOLD
        or factors.title_quality < 0.5
        or factors.author_quality < 0.5
        or (llm_confidence is None and method != MULTI_PASS)
    )

    return ConfidenceResult(
        score=score,
        factors=factors,
        reasoning=_reasoning(factors, score, needs_review),
        needs_review=needs_review,
    )


def get_confidence_level(score: float) -> str:
    """Reporting bucket for a confidence score.

    Example:
        >>> get_confidence_level(0.75)
        'Good'
    """
    if score >= CONFIDENCE_THRESHOLDS["EXCELLENT"]:
        return "Excellent"
    if score >= CONFIDENCE_THRESHOLDS["GOOD"]:
        return "Good"
    if score >= CONFIDENCE_THRESHOLDS["MODERATE"]:
        return "Moderate"
    if score >= CONFIDENCE_THRESHOLDS["POOR"]:
        return "Poor"
    return "Very Poor"


def score_multiple_books(
    books: Sequence[Any],
    llm_confidences: Sequence[float | None] | None = None,
    method: ExtractionMethod | str | None = None,
) -> list[ConfidenceResult]:
    """Score books in order; ``llm_confidences[i]`` belongs to ``books[i]``."""
    results = []
    for index, book in enumerate(books):
        llm_confidence = None
        if llm_confidences is not None and index < len(llm_confidences):
            llm_confidence = llm_confidences[index]
        results.append(calculate_enhanced_confidence(book, llm_confidence, method))
    return results


def filter_books_by_confidence(
    books: Iterable[Any], min_confidence: float = CONFIDENCE_THRESHOLDS["MODERATE"]
) -> list[Any]:
    """Keep books whose stored confidence (or heuristic score) reaches ``min_confidence``."""
    kept = []
    for book in books:
        confidence = _field(book, "confidence")
        if confidence is None:
            confidence = calculate_enhanced_confidence(book).score
        if confidence >= min_confidence:
            kept.append(book)
    return kept


def confidence_distribution(results: Iterable[ConfidenceResult]) -> dict[str, int]:
    """Count results per confidence level."""
    return dict(Counter(get_confidence_level(result.score) for result in results))
