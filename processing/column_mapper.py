"""
Column mapper — maps uploaded header names to canonical product fields.

Uses a four-step cascade per header, first match wins:
  1. Normalize: lowercase + trim
  2. Exact match against the lowercased canonical field names
  3. Substring match in either direction, first canonical field in
     CANONICAL_FIELDS order
  4. Lookup in the static HEADER_SYNONYMS table
Anything else stays unmapped ("").

Also ranks canonical fields for one header (suggest_fields) so a user can
pick a better target when the automatic mapping is wrong, and holds the
user-adjustable HeaderMapping used by the import pipeline.

Public API:
    map_headers(headers) → HeaderMappingResult
    map_header(header) → str
    score_field(header, field_name) → float
    suggest_fields(header, limit) → list[str]
    HeaderMapping
"""

import logging
import re
from dataclasses import dataclass, field

from config.column_mapping import HEADER_SYNONYMS
from config.schema import CANONICAL_FIELDS, REQUIRED_MAPPED_FIELDS

logger = logging.getLogger(__name__)

UNMAPPED = ""

EXACT_SCORE = 100.0
SUBSTRING_SCORE = 80.0
WORD_OVERLAP_MAX_SCORE = 60.0
MIN_SUGGESTION_SCORE = 10.0

_WORD_SPLIT_PATTERN = re.compile(r"[\s_-]+")


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class HeaderMappingResult:
    """Result of automatically mapping uploaded headers."""

    mapping: dict[str, str] = field(default_factory=dict)
    """uploaded header → canonical field, or "" if unmapped."""

    unmapped: list[str] = field(default_factory=list)
    """Uploaded headers that matched no canonical field."""

    match_type: dict[str, str] = field(default_factory=dict)
    """uploaded header → "exact" | "substring" | "synonym" | "none"."""


class HeaderMapping:
    """
    User-adjustable association of uploaded headers to canonical fields.

    Keeps the uploaded header order.  Several headers may be unmapped, but a
    canonical field receives at most one source header: assigning a field
    that another header already holds moves it.
    """

    def __init__(self, headers: list[str], initial: dict[str, str] | None = None):
        self._mapping: dict[str, str] = {header: UNMAPPED for header in headers}

        # Pre-filled duplicates: the first header in upload order keeps the field
        for header in headers:
            field_name = (initial or {}).get(header, UNMAPPED)
            if not field_name:
                continue
            if field_name in self.mapped_fields():
                logger.info(
                    f"'{header}' also matches '{field_name}' — left unmapped"
                )
                continue
            self.assign(header, field_name)

    @classmethod
    def auto(cls, headers: list[str]) -> "HeaderMapping":
        """Build a mapping pre-filled by map_headers()."""
        return cls(headers, map_headers(headers).mapping)

    @property
    def headers(self) -> list[str]:
        return list(self._mapping)

    def assign(self, header: str, field_name: str) -> None:
        """Map *header* to *field_name*; "" clears it."""
        if header not in self._mapping:
            raise KeyError(f"Unknown uploaded header: '{header}'")
        if field_name and field_name not in CANONICAL_FIELDS:
            raise ValueError(f"'{field_name}' is not a canonical product field")

        if field_name:
            for other, current in self._mapping.items():
                if other != header and current == field_name:
                    self._mapping[other] = UNMAPPED
                    logger.debug(
                        f"'{field_name}' moved from '{other}' to '{header}'"
                    )
        self._mapping[header] = field_name

    def clear(self, header: str) -> None:
        self.assign(header, UNMAPPED)

    def field_for(self, header: str) -> str:
        return self._mapping.get(header, UNMAPPED)

    def source_for(self, field_name: str) -> str | None:
        """Return the uploaded header mapped to *field_name*, if any."""
        for header, current in self._mapping.items():
            if current == field_name:
                return header
        return None

    def mapped_fields(self) -> set[str]:
        return {value for value in self._mapping.values() if value}

    def unmapped_headers(self) -> list[str]:
        return [header for header, value in self._mapping.items() if not value]

    def missing_required(self) -> list[str]:
        """Column-mappable required fields that no header is mapped to."""
        mapped = self.mapped_fields()
        return [name for name in REQUIRED_MAPPED_FIELDS if name not in mapped]

    def as_dict(self) -> dict[str, str]:
        return dict(self._mapping)

    def __repr__(self) -> str:
        return f"HeaderMapping({self._mapping!r})"


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def map_headers(headers: list[str]) -> HeaderMappingResult:
    """
    Map every uploaded header to a canonical field name.

    Each header is matched independently; the result depends only on the
    header list, so re-running it for a new upload replaces any earlier
    manual adjustments.

    Args:
        headers: Uploaded header strings in file order.

    Returns:
        HeaderMappingResult with the mapping, the unmapped headers, and how
        each header was matched.
    """
    result = HeaderMappingResult()

    for header in headers:
        field_name, match_type = _map_single_header(header)
        result.mapping[header] = field_name
        result.match_type[header] = match_type

        if field_name == UNMAPPED:
            result.unmapped.append(header)
            logger.debug(f"Unmapped header: '{header}'")
        else:
            logger.debug(f"Mapped '{header}' → '{field_name}' ({match_type})")

    logger.info(
        f"Header mapping complete: {len(headers)} headers processed, "
        f"{len(result.unmapped)} unmapped"
    )
    return result


def map_header(header: str) -> str:
    """Return the canonical field for one header, or "" if none matches."""
    return _map_single_header(header)[0]


def score_field(header: str, field_name: str) -> float:
    """
    Score how well *field_name* fits the uploaded *header*.

    100 for an exact match, 80 when either contains the other, otherwise
    up to 60 in proportion to how many words overlap (words split on
    whitespace, "_" and "-"; a word overlaps when it contains or is
    contained in a word of the other name).
    """
    normalized_header = _normalize(header)
    normalized_field = field_name.lower()

    if not normalized_header:
        return 0.0
    if normalized_field == normalized_header:
        return EXACT_SCORE
    if normalized_header in normalized_field or normalized_field in normalized_header:
        return SUBSTRING_SCORE

    header_words = _split_words(normalized_header)
    field_words = _split_words(normalized_field)
    if not header_words or not field_words:
        return 0.0

    matching = [
        word for word in header_words
        if any(word in other or other in word for other in field_words)
    ]
    if not matching:
        return 0.0

    return len(matching) / max(len(header_words), len(field_words)) * WORD_OVERLAP_MAX_SCORE


def suggest_fields(header: str, limit: int = 3) -> list[str]:
    """
    Return up to *limit* canonical fields ranked by score_field().

    Only fields scoring above 10 are returned.  Ties keep CANONICAL_FIELDS
    order (the sort is stable).
    """
    scored = [(name, score_field(header, name)) for name in CANONICAL_FIELDS]
    ranked = sorted(
        (pair for pair in scored if pair[1] > MIN_SUGGESTION_SCORE),
        key=lambda pair: pair[1],
        reverse=True,
    )
    return [name for name, _ in ranked[:limit]]


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

_LOWER_FIELDS: list[tuple[str, str]] = [
    (name.lower(), name) for name in CANONICAL_FIELDS
]


def _normalize(header: str) -> str:
    return str(header).strip().lower()


def _split_words(text: str) -> list[str]:
    return [word for word in _WORD_SPLIT_PATTERN.split(text) if word]


def _map_single_header(header: str) -> tuple[str, str]:
    """
    Map one header through the exact → substring → synonym cascade.

    Returns:
        (field_name, match_type) — field_name is "" when nothing matches.
    """
    normalized = _normalize(header)

    # An empty header would be a substring of every field
    if not normalized:
        return UNMAPPED, "none"

    for lowered, name in _LOWER_FIELDS:
        if lowered == normalized:
            return name, "exact"

    for lowered, name in _LOWER_FIELDS:
        if normalized in lowered or lowered in normalized:
            return name, "substring"

    if normalized in HEADER_SYNONYMS:
        return HEADER_SYNONYMS[normalized], "synonym"

    return UNMAPPED, "none"
