"""Analytical intent classification."""

from engine.rules import INTENT_KEYWORDS, contains_any


def is_analytical(query: str) -> bool:
    """True when a lower-cased query contains any analytical keyword."""
    return contains_any(query, INTENT_KEYWORDS)
