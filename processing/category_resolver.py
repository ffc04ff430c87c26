"""
Category resolver — binds an import batch to exactly one database category.

Categories are server-owned; this module only reads them.  Lookup is by
exact name.  There is no per-row category mapping: every product of a batch
goes to the single category selected here.

Public API:
    Category
    categories_from_api(payload) → list[Category]
    find_category(name, categories) → Category | None
    resolve_category(name, categories) → Category
    CategoryNotFoundError
"""

import logging
import math
from dataclasses import dataclass

from utils.fuzzy_match import close_matches

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Category:
    """A product category as returned by GET /categories/active."""

    name: str
    default_margin: float | None = None
    """Margin percent; None when the backend has none set."""

    shipping_fee: float | None = None
    """Absolute shipping fee; None when the backend has none set."""

    is_active: bool = True
    id: str | None = None

    @classmethod
    def from_api(cls, payload: dict) -> "Category":
        """Build a Category from the backend's camelCase JSON object."""
        identifier = payload.get("id", payload.get("_id"))
        return cls(
            name=str(payload.get("name", "")).strip(),
            default_margin=_optional_float(payload.get("defaultMargin")),
            shipping_fee=_optional_float(payload.get("shippingFee")),
            is_active=bool(payload.get("isActive", True)),
            id=str(identifier) if identifier is not None else None,
        )


class CategoryNotFoundError(LookupError):
    """The selected category name is not among the known categories."""

    def __init__(self, name: str, suggestions: list[str] | None = None):
        self.name = name
        self.suggestions: list[str] = suggestions or []
        message = f"Category '{name}' was not found"
        if self.suggestions:
            message += f". Did you mean: {', '.join(self.suggestions)}?"
        super().__init__(message)


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def categories_from_api(payload: dict | list) -> list[Category]:
    """
    Convert a categories response into Category objects.

    Accepts either the full response ({"success": ..., "categories": [...]})
    or the bare list.  Entries without a name are skipped.
    """
    items = payload.get("categories", []) if isinstance(payload, dict) else payload
    categories = [Category.from_api(item) for item in items or []]
    return [category for category in categories if category.name]


def find_category(name: str, categories: list[Category]) -> Category | None:
    """Return the category whose name equals *name* exactly, or None."""
    if not name:
        return None
    for category in categories:
        if category.name == name:
            return category
    return None


def resolve_category(name: str, categories: list[Category]) -> Category:
    """
    Resolve the category selected for an import batch.

    Args:
        name: The selected category name.
        categories: The active categories loaded from the backend.

    Returns:
        The matching Category.

    Raises:
        ValueError: If *name* is blank.
        CategoryNotFoundError: If no category has exactly this name.  The
            error carries up to three close names as suggestions.
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("A category must be selected for the import")

    category = find_category(name, categories)
    if category is not None:
        logger.info(f"Import batch bound to category '{category.name}'")
        return category

    suggestions = [
        match for match, _ in close_matches(name, [c.name for c in categories])
    ]
    logger.warning(
        f"Category '{name}' not found among {len(categories)} categories"
    )
    raise CategoryNotFoundError(name, suggestions)


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _optional_float(value: object) -> float | None:
    """Parse a numeric JSON value; None for missing or unparsable values."""
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number
