"""
Fuzzy string matching utilities.

Wraps the thefuzz library to rank near-miss names, used by
category_resolver to suggest the category an admin probably meant.
"""

import logging

from thefuzz import fuzz

logger = logging.getLogger(__name__)


def close_matches(
    value: str,
    candidates: list[str],
    threshold: int = 70,
    limit: int = 3,
) -> list[tuple[str, int]]:
    """
    Rank *candidates* by similarity to *value*.

    Uses token_sort_ratio which handles word reordering well (e.g.
    "Kitchen Home" vs "Home & Kitchen").

    Args:
        value: The string to match (compared lowercased and trimmed).
        candidates: Names to rank, in their display form.
        threshold: Minimum score (0-100) for a candidate to be returned.
        limit: Maximum number of matches to return.

    Returns:
        List of (candidate, score) pairs, best first.  Ties keep the
        candidates' original order.  Empty if nothing reaches the threshold.
    """
    if not value or not candidates:
        return []

    value_lower = value.strip().lower()

    scored: list[tuple[str, int]] = []
    for candidate in candidates:
        score = fuzz.token_sort_ratio(value_lower, candidate.strip().lower())
        if score >= threshold:
            scored.append((candidate, score))

    scored.sort(key=lambda pair: pair[1], reverse=True)
    matches = scored[:limit]

    if matches:
        logger.debug(
            f"Fuzzy matches for '{value}': "
            + ", ".join(f"'{name}' ({score})" for name, score in matches)
        )
    else:
        logger.debug(f"No fuzzy match for '{value}' above threshold {threshold}")

    return matches
