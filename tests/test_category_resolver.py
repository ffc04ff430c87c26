"""
Tests for processing/category_resolver.py and utils/fuzzy_match.py

Covers: Category.from_api parsing, exact-name lookup, resolution errors
with close-name suggestions.
"""

import pytest

from processing.category_resolver import (
    Category,
    CategoryNotFoundError,
    categories_from_api,
    find_category,
    resolve_category,
)
from utils.fuzzy_match import close_matches

CATEGORIES = [
    Category(name="Home & Kitchen", default_margin=20, shipping_fee=5),
    Category(name="Electronics", default_margin=30, shipping_fee=None),
    Category(name="Toys"),
]


# ═══════════════════════════════════════════════════════════════════════════
# API parsing
# ═══════════════════════════════════════════════════════════════════════════

class TestFromApi:
    def test_full_payload(self):
        category = Category.from_api({
            "_id": "abc123",
            "name": " Toys ",
            "defaultMargin": "15",
            "shippingFee": 2.5,
            "isActive": True,
        })
        assert category == Category(
            name="Toys", default_margin=15.0, shipping_fee=2.5, is_active=True, id="abc123"
        )

    def test_missing_numbers_are_none(self):
        category = Category.from_api({"name": "Toys"})
        assert category.default_margin is None
        assert category.shipping_fee is None

    def test_unparsable_numbers_are_none(self):
        category = Category.from_api({"name": "Toys", "defaultMargin": "lots"})
        assert category.default_margin is None

    def test_zero_margin_kept(self):
        category = Category.from_api({"name": "Toys", "defaultMargin": 0})
        assert category.default_margin == 0.0

    def test_categories_from_response(self):
        payload = {"success": True, "categories": [{"name": "Toys"}, {"name": ""}]}
        assert [c.name for c in categories_from_api(payload)] == ["Toys"]

    def test_categories_from_bare_list(self):
        assert len(categories_from_api([{"name": "A"}, {"name": "B"}])) == 2


# ═══════════════════════════════════════════════════════════════════════════
# Lookup
# ═══════════════════════════════════════════════════════════════════════════

class TestFindCategory:
    def test_exact_name(self):
        assert find_category("Toys", CATEGORIES).name == "Toys"

    def test_lookup_is_case_sensitive(self):
        assert find_category("toys", CATEGORIES) is None

    def test_empty_name(self):
        assert find_category("", CATEGORIES) is None


class TestResolveCategory:
    def test_resolves(self):
        assert resolve_category("Electronics", CATEGORIES).default_margin == 30

    def test_blank_name_raises_value_error(self):
        with pytest.raises(ValueError):
            resolve_category("   ", CATEGORIES)

    def test_unknown_name_suggests_close_names(self):
        with pytest.raises(CategoryNotFoundError) as exc_info:
            resolve_category("Electronic", CATEGORIES)
        assert exc_info.value.suggestions == ["Electronics"]
        assert "Did you mean: Electronics?" in str(exc_info.value)

    def test_unknown_name_without_suggestions(self):
        with pytest.raises(CategoryNotFoundError) as exc_info:
            resolve_category("Garden", CATEGORIES)
        assert exc_info.value.suggestions == []

    def test_not_found_is_a_lookup_error(self):
        with pytest.raises(LookupError):
            resolve_category("Garden", [])


# ═══════════════════════════════════════════════════════════════════════════
# Fuzzy matching
# ═══════════════════════════════════════════════════════════════════════════

class TestCloseMatches:
    def test_word_order_ignored(self):
        matches = close_matches("Kitchen & Home", ["Home & Kitchen", "Toys"])
        assert matches[0][0] == "Home & Kitchen"

    def test_below_threshold_excluded(self):
        assert close_matches("Toys", ["Electronics"]) == []

    def test_limit(self):
        candidates = ["Toy", "Toys", "Toyz", "Toy s"]
        assert len(close_matches("Toys", candidates, limit=2)) == 2

    def test_empty_inputs(self):
        assert close_matches("", ["Toys"]) == []
        assert close_matches("Toys", []) == []
