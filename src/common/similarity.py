"""Edit-distance string similarity used for duplicate detection and match scoring."""

import Levenshtein

from common.constants import DUPLICATE_SIMILARITY_THRESHOLD


def levenshtein_distance(s1: str, s2: str) -> int:
    """Compute the Levenshtein edit distance between two strings.

    Example:
        >>> levenshtein_distance("Harari", "Harai")
        1
    """
    return Levenshtein.distance(s1, s2)


def similarity(s1: str, s2: str) -> float:
    """Case-insensitive similarity in [0, 1].

    Defined as ``(max_len - distance) / max_len``. Two empty strings are fully
    similar.

    Example:
        >>> round(similarity("Harari", "Harai"), 2)
        0.83
    """
    longer = max(len(s1), len(s2))
    if longer == 0:
        return 1.0
    distance = levenshtein_distance(s1.lower(), s2.lower())
    return (longer - distance) / longer


def similar_strings(
    s1: str | None, s2: str | None, threshold: float = DUPLICATE_SIMILARITY_THRESHOLD
) -> bool:
    """Return True when both strings are present and at least ``threshold`` similar."""
    if not s1 or not s2:
        return False
    return similarity(s1, s2) >= threshold
