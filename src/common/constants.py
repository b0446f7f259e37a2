"""Shared constants for the podcast-books application.

For environment-based configuration (API keys, database settings, etc.), use the env module:
    from common.env import env
    api_key = env.gemini_api_key()

The thresholds below were chosen empirically and are kept here so they can be
tuned in one place.
"""

import re
from pathlib import Path

# Data directories
DATA_DIR = Path("./data")
DATABASE_PATH = DATA_DIR / "podcast_books.db"

# Episodes longer than this always get the multi-pass pipeline
COMPLEXITY_LENGTH_THRESHOLD = 800

# Phrases that suggest an episode covers several books or needs careful reading
COMPLEXITY_SIGNAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(multiple|several|two|three|many)\s+books\b", re.IGNORECASE),
    re.compile(r"\bbooks\s+(by|about|on)\b", re.IGNORECASE),
    re.compile(r"\bpart\s+(\d+|one|two|three|four|five|[ivx]+)\b", re.IGNORECASE),
    re.compile(r"\bseries\b", re.IGNORECASE),
    re.compile(r"\binterview\s+with\s+(the\s+)?author\b", re.IGNORECASE),
    re.compile(r"\bvarious\s+sources\b", re.IGNORECASE),
    re.compile(r"\brecommend(ed)?\s+reading\b", re.IGNORECASE),
    re.compile(r"\b(also|additional(ly)?)\s+(mentioned|discussed|references?)\b", re.IGNORECASE),
    re.compile(r"\bcompared?\s+(with|to)\b", re.IGNORECASE),
    re.compile(r"\bbibliography\b", re.IGNORECASE),
)

# Confidence scoring
NEEDS_REVIEW_THRESHOLD = 0.7

CONFIDENCE_THRESHOLDS: dict[str, float] = {
    "EXCELLENT": 0.9,
    "GOOD": 0.7,
    "MODERATE": 0.5,
    "POOR": 0.3,
    "VERY_POOR": 0.1,
}

# Two titles (or authors) at or above this similarity are flagged as potential duplicates
DUPLICATE_SIMILARITY_THRESHOLD = 0.8

# Words left lowercase by title casing unless they are the first or last word
TITLE_CASE_SMALL_WORDS: frozenset[str] = frozenset(
    {"a", "an", "the", "and", "but", "or", "for", "nor", "on", "at", "to", "from", "by", "of", "in"}
)

# Author values that usually mean the model could not tell who wrote the book
SUSPICIOUS_AUTHOR_TOKENS: tuple[str, ...] = ("unknown", "various", "n/a", "tbd", "author name")

ENHANCEMENT_STATUSES: tuple[str, ...] = ("pending", "enhanced", "failed", "not_found")
