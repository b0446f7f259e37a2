"""Heuristic deciding whether an episode needs multi-pass extraction."""

from common.constants import COMPLEXITY_LENGTH_THRESHOLD, COMPLEXITY_SIGNAL_PATTERNS


def complexity_signals(description: str) -> list[str]:
    """Return the signal phrases found in an episode description."""
    signals = []
    for pattern in COMPLEXITY_SIGNAL_PATTERNS:
        match = pattern.search(description)
        if match:
            signals.append(match.group(0))
    return signals


def is_complex_episode(description: str) -> bool:
    """Decide whether an episode description warrants multi-pass extraction.

    Long descriptions always qualify. Shorter ones qualify when they mention
    several books, a multi-part series, an author interview and similar cues.

    Example:
        >>> is_complex_episode("Short one-book episode about The Lean Startup by Eric Ries.")
        False
        >>> is_complex_episode("x" * 900)
        True
    """
    if len(description) > COMPLEXITY_LENGTH_THRESHOLD:
        return True
    return any(pattern.search(description) for pattern in COMPLEXITY_SIGNAL_PATTERNS)
