"""
Aspect value coercion - maps a free-form value onto a category's allowed values.

Matching is deliberately strict: exact (case/whitespace-insensitive) first,
then substring in either direction. No edit-distance matching, so a
plausible-but-wrong value is never assigned to a constrained field.
"""

from typing import List, Optional


def coerce(value: str, allowed_values: Optional[List[str]]) -> Optional[str]:
    """
    Coerce value to one of allowed_values.

    Args:
        value: Candidate value (e.g. an LLM guess)
        allowed_values: Category vocabulary, in eBay's order. Empty means free text.

    Returns:
        The canonical allowed value, value itself when the vocabulary is empty,
        or None when nothing matches.
    """
    if not allowed_values:
        return value

    normalized = value.strip().lower()

    for allowed in allowed_values:
        if allowed.strip().lower() == normalized:
            return allowed

    if not normalized:
        return None

    for allowed in allowed_values:
        allowed_lower = allowed.strip().lower()
        if not allowed_lower:
            continue
        if allowed_lower in normalized or normalized in allowed_lower:
            return allowed

    return None


def matches_exactly(value: str, allowed_values: List[str]) -> bool:
    """True if value equals an allowed value modulo case and surrounding whitespace."""
    normalized = value.strip().lower()
    return any(allowed.strip().lower() == normalized for allowed in allowed_values)
