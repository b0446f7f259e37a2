"""Book extraction from episode descriptions.

Short, single-topic descriptions get one simple LLM pass. Complex ones go
through three stages:

1. Initial: strict identification of the primary books
2. Refinement: verify titles/authors and enrich context
3. Validation: independently judge each book, dropping only INVALID ones

A stage that yields no books ends the run. Refinement and validation
failures degrade to the previous stage's books; an initial-stage failure
falls back to the simple pass.
"""

from collections.abc import Sequence
from dataclasses import replace
from statistics import mean
from typing import Any, Protocol

from common.constants import DUPLICATE_SIMILARITY_THRESHOLD
from common.logger import get_logger
from common.similarity import similarity
from llm.base import LLMError
from llm.parsing import parse_json_response

from .complexity import is_complex_episode
from .context_store import ContextStore
from .merge import normalized_key
from .models import (
    ExtractedBookCandidate,
    ExtractionPass,
    ExtractionState,
    MultiPassExtractionResult,
    PassType,
)
from .prompts import PromptBuilder
from .validation import validate_book_data

logger = get_logger(__name__)

SIMPLE_TEMPERATURE = 0.3
INITIAL_TEMPERATURE = 0.2
REFINEMENT_TEMPERATURE = 0.1
VALIDATION_TEMPERATURE = 0.1
SIMPLE_MAX_TOKENS = 1024
MULTI_PASS_MAX_TOKENS = 2048

# Confidence recorded for a stage that fell back to its predecessor's books
FALLBACK_PASS_CONFIDENCE = 0.5
# Confidence of a simple pass whose books carry no model-reported confidence
SIMPLE_PASS_DEFAULT_CONFIDENCE = 0.7


class TextGenerator(Protocol):
    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
        retries: int = 3,
    ) -> str: ...


class StageError(Exception):
    """A refinement or validation stage produced unusable output."""

    pass


def _candidates(raw_books: Any) -> tuple[ExtractedBookCandidate, ...]:
    if not isinstance(raw_books, list):
        return ()
    return tuple(ExtractedBookCandidate.from_dict(b) for b in raw_books if isinstance(b, dict))


def _pass_confidence(data: dict[str, Any], books: Sequence[ExtractedBookCandidate]) -> float:
    """Model-reported overall confidence, else the mean of per-book confidences."""
    reported = data.get("overallConfidence")
    if isinstance(reported, int | float) and not isinstance(reported, bool):
        return min(max(float(reported), 0.0), 1.0)
    book_confidences = [b.confidence for b in books if b.confidence is not None]
    return mean(book_confidences) if book_confidences else 0.0


def _match_verdicts(
    books: Sequence[ExtractedBookCandidate], entries: list[dict[str, Any]]
) -> list[dict[str, Any] | None]:
    """Pair each book with its validation entry, or None when the model gave none.

    Entries are matched by echoed ``index`` first, then by exact normalized key,
    then by the most similar title/author key. Each entry is used once.
    """
    matched: list[dict[str, Any] | None] = [None] * len(books)
    unused = list(entries)

    for entry in list(unused):
        index = entry.get("index")
        if isinstance(index, int) and not isinstance(index, bool) and 0 <= index < len(books):
            if matched[index] is None:
                matched[index] = entry
                unused.remove(entry)

    def entry_key(entry: dict[str, Any]) -> str:
        return normalized_key(str(entry.get("title") or ""), str(entry.get("author") or ""))

    for i, book in enumerate(books):
        if matched[i] is not None:
            continue
        key = normalized_key(book.title, book.author)
        match = next((e for e in unused if entry_key(e) == key), None)
        if match is None:
            scored = [(similarity(entry_key(e), key), e) for e in unused]
            scored = [(score, e) for score, e in scored if score >= DUPLICATE_SIMILARITY_THRESHOLD]
            match = max(scored, key=lambda pair: pair[0])[1] if scored else None
        if match is not None:
            matched[i] = match
            unused.remove(match)

    return matched


def _apply_verdict(book: ExtractedBookCandidate, entry: dict[str, Any]) -> ExtractedBookCandidate:
    """Carry the validator's confidence and reasoning onto the refined book."""
    validated = ExtractedBookCandidate.from_dict({**entry, "title": book.title, "author": book.author})
    return replace(
        book,
        confidence=validated.confidence if validated.confidence is not None else book.confidence,
        reasoning=validated.reasoning or book.reasoning,
    )


class _MultiPassRun:
    """Bookkeeping for one multi-pass run with guarded state transitions."""

    def __init__(self) -> None:
        self.state = ExtractionState.STARTED
        self.passes: list[ExtractionPass] = []
        self.notes: list[str] = []
        self.context_preserved = ""

    def advance(self, target: ExtractionState) -> None:
        if not self.state.can_transition_to(target):
            raise RuntimeError(f"Invalid extraction transition: {self.state.value} -> {target.value}")
        self.state = target

    def record(self, extraction_pass: ExtractionPass, target: ExtractionState) -> None:
        """Append a completed pass and move to ``target``, or ABORTED if it found nothing."""
        self.passes.append(extraction_pass)
        if extraction_pass.books:
            self.advance(target)
        else:
            self.advance(ExtractionState.ABORTED)
            self.notes.append(
                f"{extraction_pass.pass_type.value.capitalize()} pass found no books; skipping remaining passes"
            )

    def result(self) -> MultiPassExtractionResult:
        last = self.passes[-1]
        return MultiPassExtractionResult(
            final_books=last.books,
            passes=tuple(self.passes),
            overall_confidence=round(mean(p.confidence for p in self.passes), 2),
            processing_notes=tuple(self.notes),
            multi_pass=True,
            state=self.state,
            context_preserved=self.context_preserved,
        )


class BookExtractor:
    """Extracts book mentions from episode descriptions through an LLM.

    Example:
        >>> async with GeminiClient() as client:
        ...     extractor = BookExtractor(client, context_store=ContextStore())
        ...     result = await extractor.extract_books_from_episode(description, episode_id="ep-1")
        >>> [b.title for b in result.books]
        ['Steve Jobs']
    """

    def __init__(
        self,
        client: TextGenerator,
        prompt_builder: PromptBuilder | None = None,
        context_store: ContextStore | None = None,
    ):
        """Initialize extractor.

        Args:
            client: LLM gateway (e.g. ``llm.gemini.GeminiClient``)
            prompt_builder: Prompt construction (default: ``PromptBuilder()``)
            context_store: Store for cross-episode context (optional)
        """
        self.client = client
        self.prompts = prompt_builder or PromptBuilder()
        self.context_store = context_store

    async def extract_books_from_episode(
        self,
        description: str,
        preserved_context: str | None = None,
        episode_id: str | None = None,
    ) -> MultiPassExtractionResult:
        """Extract the primary books of an episode.

        Never raises: failures degrade to the simple pass, then to an empty
        result with confidence 0.

        Args:
            description: Episode description text
            preserved_context: Summary of a related earlier episode. When omitted,
                the latest context of another episode in the context store is used.
            episode_id: ID under which this episode's context is preserved

        Returns:
            Extraction result
        """
        if preserved_context is None and self.context_store is not None:
            preserved_context = self.context_store.latest(exclude=episode_id)

        if is_complex_episode(description):
            try:
                result = await self._extract_multi_pass(description, preserved_context, episode_id)
            except Exception as e:
                logger.warning(f"Multi-pass extraction failed, falling back to single pass: {e}")
                note = f"Multi-pass extraction failed ({e}); fell back to single-pass extraction"
                result = await self._extract_simple_safely(description, note)
        else:
            result = await self._extract_simple_safely(description)

        return self._drop_invalid(result)

    async def extract_books_simple(self, description: str) -> MultiPassExtractionResult:
        """Force single-pass extraction (never raises)."""
        return self._drop_invalid(await self._extract_simple_safely(description))

    async def _extract_simple_safely(
        self, description: str, *notes: str
    ) -> MultiPassExtractionResult:
        try:
            result = await self._extract_simple(description)
        except Exception as e:
            logger.error(f"Book extraction failed: {e}")
            return MultiPassExtractionResult.empty(*notes, f"Extraction failed: {e}")
        return replace(result, processing_notes=(*notes, *result.processing_notes))

    async def _extract_simple(self, description: str) -> MultiPassExtractionResult:
        response = await self.client.generate(
            self.prompts.simple_extraction(description),
            temperature=SIMPLE_TEMPERATURE,
            max_tokens=SIMPLE_MAX_TOKENS,
        )
        data = parse_json_response(response)
        books = _candidates(data.get("books"))

        notes = []
        if "parseError" in data:
            notes.append("Model response could not be parsed as JSON")

        reported = [b.confidence for b in books if b.confidence is not None]
        if reported:
            confidence = mean(reported)
        else:
            confidence = SIMPLE_PASS_DEFAULT_CONFIDENCE if books else 0.0
        confidence = round(confidence, 2)

        notes.append(f"Single-pass extraction found {len(books)} book(s)")
        simple_pass = ExtractionPass(PassType.SIMPLE, books, confidence=confidence)
        return MultiPassExtractionResult(
            final_books=books,
            passes=(simple_pass,),
            overall_confidence=confidence,
            processing_notes=tuple(notes),
            multi_pass=False,
            state=ExtractionState.SINGLE_PASS,
        )

    async def _extract_multi_pass(
        self, description: str, preserved_context: str | None, episode_id: str | None
    ) -> MultiPassExtractionResult:
        run = _MultiPassRun()
        if preserved_context:
            run.notes.append("Used preserved context from a previous episode")

        initial = await self._initial_pass(description, preserved_context)
        run.context_preserved = initial.context_preserved
        if episode_id and self.context_store is not None:
            self.context_store.set(episode_id, initial.context_preserved)
        run.notes.append(f"Initial pass found {len(initial.books)} book(s)")
        run.record(initial, ExtractionState.INITIAL)
        if run.state is ExtractionState.ABORTED:
            return run.result()

        refined = await self._refinement_pass(description, initial, run.notes)
        run.record(refined, ExtractionState.REFINED)
        if run.state is ExtractionState.ABORTED:
            return run.result()

        validated = await self._validation_pass(description, refined, run.notes)
        run.passes.append(validated)
        run.advance(ExtractionState.VALIDATED)
        run.notes.append(f"Validation kept {len(validated.books)} of {len(refined.books)} book(s)")

        return run.result()

    async def _initial_pass(self, description: str, preserved_context: str | None) -> ExtractionPass:
        response = await self.client.generate(
            self.prompts.initial_pass(description, preserved_context),
            temperature=INITIAL_TEMPERATURE,
            max_tokens=MULTI_PASS_MAX_TOKENS,
        )
        data = parse_json_response(response)
        books = _candidates(data.get("books"))
        context = data.get("contextPreserved")
        return ExtractionPass(
            PassType.INITIAL,
            books,
            context_preserved=context.strip() if isinstance(context, str) else "",
            confidence=_pass_confidence(data, books),
        )

    async def _refinement_pass(
        self, description: str, initial: ExtractionPass, notes: list[str]
    ) -> ExtractionPass:
        try:
            response = await self.client.generate(
                self.prompts.refinement_pass(description, initial.books, initial.context_preserved),
                temperature=REFINEMENT_TEMPERATURE,
                max_tokens=MULTI_PASS_MAX_TOKENS,
            )
            data = parse_json_response(response)
            if "parseError" in data or not isinstance(data.get("books"), list):
                raise StageError("refinement response has no book list")
            books = _candidates(data["books"])
            confidence = _pass_confidence(data, books)
        except (LLMError, StageError, TypeError, ValueError) as e:
            logger.warning(f"Refinement pass failed, keeping initial books: {e}")
            notes.append(f"Refinement pass failed ({e}); kept initial books")
            return ExtractionPass(
                PassType.REFINEMENT,
                initial.books,
                context_preserved=initial.context_preserved,
                confidence=FALLBACK_PASS_CONFIDENCE,
            )

        notes.append(f"Refinement pass returned {len(books)} book(s)")
        return ExtractionPass(
            PassType.REFINEMENT,
            books,
            context_preserved=initial.context_preserved,
            confidence=confidence,
        )

    async def _validation_pass(
        self, description: str, refined: ExtractionPass, notes: list[str]
    ) -> ExtractionPass:
        try:
            response = await self.client.generate(
                self.prompts.validation_pass(description, refined.books),
                temperature=VALIDATION_TEMPERATURE,
                max_tokens=MULTI_PASS_MAX_TOKENS,
            )
            data = parse_json_response(response)
            validations = data.get("validations")
            if "parseError" in data or not isinstance(validations, list):
                raise StageError("validation response has no verdict list")
            verdicts = _match_verdicts(refined.books, [v for v in validations if isinstance(v, dict)])
            kept = []
            for book, entry in zip(refined.books, verdicts):
                if entry is None:
                    logger.debug(f"No verdict for '{book.title}' by {book.author}; keeping it")
                    notes.append(f"No validation verdict for '{book.title}'; kept it")
                    kept.append(book)
                elif str(entry.get("verdict", "")).strip().upper() == "VALID":
                    kept.append(_apply_verdict(book, entry))
                else:
                    logger.debug(f"Validation rejected '{book.title}' by {book.author}")
            books = tuple(kept)
            confidence = _pass_confidence(data, books)
        except (LLMError, StageError, TypeError, ValueError) as e:
            logger.warning(f"Validation pass failed, keeping refined books: {e}")
            notes.append(f"Validation pass failed ({e}); kept refined books")
            return ExtractionPass(
                PassType.VALIDATION,
                refined.books,
                context_preserved=refined.context_preserved,
                confidence=FALLBACK_PASS_CONFIDENCE,
            )

        return ExtractionPass(
            PassType.VALIDATION,
            books,
            context_preserved=refined.context_preserved,
            confidence=confidence,
        )

    def _drop_invalid(self, result: MultiPassExtractionResult) -> MultiPassExtractionResult:
        """Filter final books that fail basic title/author checks."""
        kept = []
        notes = list(result.processing_notes)
        for book in result.final_books:
            validation = validate_book_data(book)
            if validation.valid:
                kept.append(book)
            else:
                reason = ", ".join(validation.errors)
                logger.warning(f"Dropping invalid book candidate '{book.title}': {reason}")
                notes.append(f"Dropped invalid candidate '{book.title}': {reason}")

        if len(kept) == len(result.final_books):
            return result
        return replace(result, final_books=tuple(kept), processing_notes=tuple(notes))
