"""
Value coercer — converts raw uploaded cells into normalized field values.

Every canonical field always receives a string (never None), even when no
uploaded header was mapped to it.  Values stay strings after coercion
because the backend's JSON contract is built from them in import_pipeline.

Rules by field type (see config/schema.py for the groups):
  - currency     strip all but digits/"."/"-", parse the leading number;
                 unparsable, <= 0 or overflowing → "" (unset)
  - stock        strip non-digits, parse integer; unparsable → "0"
  - boolean      "true" iff the value is "true", "1" or "yes"
                 (case-insensitive), else "false"
  - measurement  strip all but digits/"."/"-", parse the leading number;
                 unparsable, negative or overflowing → "0"
  - small_integer  same as stock
  - text         trimmed passthrough, "" when the cell is absent

Numbers are written back in their shortest form ("30" not "30.0").

Public API:
    coerce_value(field_name, raw_value) → str
    coerce_rows(raw_dataframe, mapping) → CoercionResult
"""

import logging
import math
import re
from dataclasses import dataclass, field

import pandas as pd

from config.schema import CANONICAL_FIELDS, FIELD_TYPES, TRUTHY_VALUES
from processing.column_mapper import HeaderMapping

logger = logging.getLogger(__name__)

_NON_DECIMAL_PATTERN = re.compile(r"[^0-9.\-]+")
_NON_DIGIT_PATTERN = re.compile(r"[^0-9]+")
_LEADING_NUMBER_PATTERN = re.compile(r"^-?(\d+\.?\d*|\.\d+)")


# ═══════════════════════════════════════════════════════════════════════════
# Data class
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class CoercionResult:
    """Output of the coerce_rows() function."""

    dataframe: pd.DataFrame = field(default_factory=pd.DataFrame)
    """Processed rows: one column per canonical field, all values str."""

    defaulted: list[dict] = field(default_factory=list)
    """Non-blank cells replaced by a default (row, field, original, value)."""


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def coerce_value(field_name: str, raw_value: object) -> str:
    """
    Coerce one raw cell for *field_name* into its normalized string form.

    Args:
        field_name: Canonical field name.  Unknown names are treated as text.
        raw_value: The raw cell (None / NaN mean "absent").

    Returns:
        The normalized string.  Never raises, never returns None.
    """
    text = _to_text(raw_value)
    field_type = FIELD_TYPES.get(field_name, "text")

    if field_type == "currency":
        number = _parse_leading_float(_NON_DECIMAL_PATTERN.sub("", text))
        return _format_number(number) if number is not None and 0 < number < math.inf else ""

    if field_type in ("stock", "small_integer"):
        number = _parse_digits(text)
        return str(number) if number is not None and number >= 0 else "0"

    if field_type == "boolean":
        return "true" if text.lower() in TRUTHY_VALUES else "false"

    if field_type == "measurement":
        number = _parse_leading_float(_NON_DECIMAL_PATTERN.sub("", text))
        return _format_number(number) if number is not None and 0 <= number < math.inf else "0"

    return text


def coerce_rows(
    raw_dataframe: pd.DataFrame,
    mapping: HeaderMapping | dict[str, str],
) -> CoercionResult:
    """
    Build processed rows from raw rows through the header mapping.

    Every canonical field becomes a column, filled from its mapped source
    header when there is one and coerced cell by cell.  Unmapped headers are
    left out.

    Args:
        raw_dataframe: Raw rows keyed by uploaded header (from file_reader).
        mapping: HeaderMapping, or a plain uploaded-header → field dict.

    Returns:
        CoercionResult with one row per raw row, in the same order.
    """
    if not isinstance(mapping, HeaderMapping):
        mapping = HeaderMapping(list(raw_dataframe.columns), mapping)

    index = raw_dataframe.index
    processed = pd.DataFrame(index=index)
    defaulted: list[dict] = []

    for field_name in CANONICAL_FIELDS:
        source = mapping.source_for(field_name)
        if source is None or source not in raw_dataframe.columns:
            raw_column = pd.Series([""] * len(index), index=index, dtype=object)
        else:
            raw_column = raw_dataframe[source]

        coerced = raw_column.map(lambda value, name=field_name: coerce_value(name, value))
        processed[field_name] = coerced

        if source is not None and FIELD_TYPES[field_name] not in ("text", "boolean"):
            defaulted.extend(_collect_defaults(raw_column, coerced, field_name))

    processed = processed.reset_index(drop=True)

    logger.info(
        f"Coercion complete: {len(processed)} rows, "
        f"{len(defaulted)} cells defaulted"
    )
    return CoercionResult(dataframe=processed, defaulted=defaulted)


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _to_text(raw_value: object) -> str:
    """Trimmed string form of a cell; "" for None / NaN."""
    if raw_value is None:
        return ""
    if isinstance(raw_value, float) and pd.isna(raw_value):
        return ""
    return str(raw_value).strip()


def _parse_leading_float(cleaned: str) -> float | None:
    """
    Parse the leading number of an already-stripped string.

    "12.5.3" → 12.5, "1-2" → 1.0, "-" → None.
    """
    match = _LEADING_NUMBER_PATTERN.match(cleaned)
    if match is None:
        return None
    return float(match.group(0))


def _parse_digits(text: str) -> int | None:
    """Keep only the digits of *text* and parse them; None if there are none."""
    digits = _NON_DIGIT_PATTERN.sub("", text)
    if not digits:
        return None
    return int(digits)


def _format_number(value: float) -> str:
    """Shortest string form: 30.0 → "30", 29.99 → "29.99"."""
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _collect_defaults(
    raw_column: pd.Series,
    coerced: pd.Series,
    field_name: str,
) -> list[dict]:
    """Record non-blank raw cells that coercion replaced with a default."""
    defaults: list[dict] = []
    default_values = {"", "0"}

    for position, (raw_value, value) in enumerate(zip(raw_column, coerced)):
        text = _to_text(raw_value)
        if text and value in default_values and text.lower() != value:
            defaults.append({
                "row": position,
                "field": field_name,
                "original": text,
                "value": value,
            })
    return defaults
