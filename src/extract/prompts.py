"""Prompt construction for the book extraction passes."""

import json
from collections.abc import Sequence

from .models import ExtractedBookCandidate

SIMPLE_MAX_BOOKS = 2
MULTI_PASS_MAX_BOOKS = 3


def _books_json(books: Sequence[ExtractedBookCandidate]) -> str:
    return json.dumps([book.to_dict() for book in books], indent=2, ensure_ascii=False)


def _indexed_books_json(books: Sequence[ExtractedBookCandidate]) -> str:
    indexed = [{"index": i, **book.to_dict()} for i, book in enumerate(books)]
    return json.dumps(indexed, indent=2, ensure_ascii=False)


class PromptBuilder:
    """Builds the prompts sent to the LLM for each extraction stage.

    Every prompt asks for a single JSON object so responses can go through
    ``llm.parsing.parse_json_response``.
    """

    def simple_extraction(self, description: str) -> str:
        """Single-pass prompt: at most two primary books, JSON ``{"books": [...]}``."""
        return f"""
Analyze the following podcast episode description and identify the MAIN BOOKS that this episode is specifically about or based on.

IMPORTANT: Return only the primary books (maximum {SIMPLE_MAX_BOOKS}) that the episode content is directly based on.

Look for:
- Books explicitly mentioned as the main sources
- Biographies or books about the person featured in the episode title
- Books that the episode summary clearly centers around
- Primary source materials that the episode discusses in detail

EXCLUDE:
- Secondary books mentioned in passing
- Books just mentioned as brief references
- Books that are only tangentially related
- Documentaries
- Interviews

Return only the most important books that the episode is actually about.

Respond in JSON format:
{{
  "books": [
    {{
      "title": "Exact Book Title",
      "author": "Author Name",
      "links": [],
      "confidence": 0.9
    }}
  ]
}}

"confidence" is your certainty (0.0 to 1.0) that the episode is based on that book.
If no clear main books are identified, return {{"books": []}}.

Episode description:
{description}
""".strip()

    def initial_pass(self, description: str, preserved_context: str | None = None) -> str:
        """First multi-pass stage: strict primary-book identification."""
        context_block = ""
        if preserved_context:
            context_block = f"""
Context from a related earlier episode (advisory only, do not extract books from it):
{preserved_context}
"""

        return f"""
You are extracting book references from a podcast episode description.
This is the INITIAL pass of a multi-stage extraction. Be strict.

Include a book ONLY if:
- The episode is directly based on it, or it is central to the discussion
- Both the title and the author can be identified from the description
- It is a book (not an article, documentary, film, interview or podcast)

Exclude:
- Books mentioned in passing or as brief references
- Books that are only tangentially related
- Anything you are guessing at

Return at most {MULTI_PASS_MAX_BOOKS} books.
{context_block}
Respond in JSON format:
{{
  "books": [
    {{
      "title": "Exact Book Title",
      "author": "Author Name",
      "links": [],
      "context": "Why this book matters to the episode",
      "confidence": 0.85,
      "reasoning": "Short justification for including it"
    }}
  ],
  "contextPreserved": "One or two sentences summarizing the subject of this episode for later episodes",
  "overallConfidence": 0.8
}}

If no books qualify, return {{"books": [], "contextPreserved": "...", "overallConfidence": 0.0}}.

Episode description:
{description}
""".strip()

    def refinement_pass(
        self,
        description: str,
        books: Sequence[ExtractedBookCandidate],
        context: str | None = None,
    ) -> str:
        """Second stage: re-verify titles/authors and enrich context."""
        context_block = f"\nEpisode summary from the previous pass:\n{context}\n" if context else ""

        return f"""
You are refining book references extracted from a podcast episode description.
This is the REFINEMENT pass. Verify and improve the candidate list below.

For each candidate:
- Correct the title to its exact published form (including subtitle if well known)
- Correct the author to their full name
- Expand "context" with a specific explanation of how the episode uses the book
- Recalculate "confidence" (0.0 to 1.0)

You may drop candidates that are not really central to the episode, and add a
book that was clearly missed. Return at most {MULTI_PASS_MAX_BOOKS} books.
{context_block}
Candidates from the initial pass:
{_books_json(books)}

Respond in JSON format:
{{
  "books": [
    {{
      "title": "Exact Book Title",
      "author": "Full Author Name",
      "links": [],
      "context": "Detailed explanation of the book's role in the episode",
      "confidence": 0.9,
      "reasoning": "What was verified or changed"
    }}
  ],
  "overallConfidence": 0.85
}}

Episode description:
{description}
""".strip()

    def validation_pass(self, description: str, books: Sequence[ExtractedBookCandidate]) -> str:
        """Final stage: independently judge each candidate VALID or INVALID."""
        return f"""
You are validating book references extracted from a podcast episode description.
This is the VALIDATION pass. Judge each candidate independently.

Mark a candidate VALID only if the description supports that the episode is
about or based on that specific book by that specific author. Otherwise mark it
INVALID. Return one verdict per candidate and copy its "index" unchanged.

Candidates:
{_indexed_books_json(books)}

Respond in JSON format:
{{
  "validations": [
    {{
      "index": 0,
      "title": "Exact Book Title",
      "author": "Author Name",
      "verdict": "VALID",
      "confidence": 0.9,
      "reasoning": "Why the verdict was reached"
    }}
  ],
  "overallConfidence": 0.9
}}

Episode description:
{description}
""".strip()
