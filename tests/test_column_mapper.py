"""
Tests for processing/column_mapper.py

Covers:
  - Exact match mapping (case/whitespace-insensitive)
  - Substring match in both directions, first field in canonical order
  - Synonym table fallback (qty, cost, title, code, ...)
  - Unmapped and empty headers
  - Suggestion scoring: 100 / 80 / word overlap, ranking and threshold
  - HeaderMapping: one source per field, assign/clear, missing required
"""

import pytest

from config.column_mapping import HEADER_SYNONYMS
from config.schema import CANONICAL_FIELDS
from processing.column_mapper import (
    HeaderMapping,
    HeaderMappingResult,
    map_header,
    map_headers,
    score_field,
    suggest_fields,
)


# ═══════════════════════════════════════════════════════════════════════════
# Exact matches
# ═══════════════════════════════════════════════════════════════════════════

class TestExactMatches:
    """Headers equal to a canonical field name after lowercase + trim."""

    def test_every_canonical_field_maps_to_itself(self):
        for name in CANONICAL_FIELDS:
            assert map_header(name) == name

    def test_case_insensitive(self):
        assert map_header("regular PRICE") == "Regular price"

    def test_whitespace_trimmed(self):
        assert map_header("  SKU  ") == "SKU"

    def test_match_type_recorded(self):
        result = map_headers(["Name"])
        assert result.match_type["Name"] == "exact"


# ═══════════════════════════════════════════════════════════════════════════
# Substring matches
# ═══════════════════════════════════════════════════════════════════════════

class TestSubstringMatches:
    def test_header_contains_field(self):
        assert map_header("product_sku") == "SKU"

    def test_field_contains_header(self):
        # "price" is inside "regular price", the first price field in order
        assert map_header("Price") == "Regular price"

    def test_weight_maps_to_weight_kg(self):
        assert map_header("weight") == "Weight (kg)"

    def test_brand_name_maps_to_brand(self):
        assert map_header("brand_name") == "Brand"

    def test_match_type_recorded(self):
        result = map_headers(["product_sku"])
        assert result.match_type["product_sku"] == "substring"


# ═══════════════════════════════════════════════════════════════════════════
# Synonyms
# ═══════════════════════════════════════════════════════════════════════════

class TestSynonyms:
    @pytest.mark.parametrize("header,expected", [
        ("qty", "Stock"),
        ("Quantity", "Stock"),
        ("cost", "Regular price"),
        ("MRP", "Regular price"),
        ("Title", "Name"),
        ("Code", "SKU"),
        ("category", "Categories"),
        ("manufacturer", "Brand"),
    ])
    def test_synonym_lookup(self, header, expected):
        assert map_header(header) == expected

    def test_synonym_targets_are_canonical(self):
        for target in HEADER_SYNONYMS.values():
            assert target in CANONICAL_FIELDS

    def test_synonym_keys_are_normalized(self):
        for key in HEADER_SYNONYMS:
            assert key == key.strip().lower()

    def test_match_type_recorded(self):
        result = map_headers(["qty"])
        assert result.match_type["qty"] == "synonym"


# ═══════════════════════════════════════════════════════════════════════════
# Unmapped headers
# ═══════════════════════════════════════════════════════════════════════════

class TestUnmapped:
    def test_unknown_header_unmapped(self):
        result = map_headers(["Zorblax"])
        assert result.mapping["Zorblax"] == ""
        assert result.unmapped == ["Zorblax"]
        assert result.match_type["Zorblax"] == "none"

    def test_empty_header_unmapped(self):
        assert map_header("") == ""
        assert map_header("   ") == ""

    def test_mapping_keeps_upload_order(self):
        headers = ["Zorblax", "Name", "qty"]
        result = map_headers(headers)
        assert list(result.mapping) == headers

    def test_returns_result_dataclass(self):
        assert isinstance(map_headers([]), HeaderMappingResult)


# ═══════════════════════════════════════════════════════════════════════════
# Suggestion scoring
# ═══════════════════════════════════════════════════════════════════════════

class TestScoreField:
    def test_exact_scores_100(self):
        assert score_field("sku", "SKU") == 100

    def test_substring_scores_80(self):
        assert score_field("product_sku", "SKU") == 80

    def test_unrelated_scores_0(self):
        assert score_field("product_sku", "Weight (kg)") == 0

    def test_word_overlap_proportional(self):
        # both header words overlap; max(2 header words, 4 field words)
        score = score_field("sale_date", "Date sale price starts")
        assert score == pytest.approx(2 / 4 * 60)

    def test_partial_word_overlap(self):
        score = score_field("stock_level", "Low stock amount")
        assert score == pytest.approx(1 / 3 * 60)

    def test_empty_header_scores_0(self):
        assert score_field("", "Name") == 0


class TestSuggestFields:
    def test_product_sku_ranks_sku_first(self):
        suggestions = suggest_fields("product_sku")
        assert suggestions[0] == "SKU"
        assert "Weight (kg)" not in suggestions

    def test_at_most_three(self):
        assert len(suggest_fields("price")) <= 3

    def test_ties_keep_canonical_order(self):
        # Both "Regular price" and "Sale price" contain "price" (score 80)
        suggestions = suggest_fields("price")
        assert suggestions[:2] == ["Regular price", "Sale price"]

    def test_nothing_above_threshold(self):
        assert suggest_fields("xyzzy") == []

    def test_custom_limit(self):
        assert len(suggest_fields("price", limit=1)) == 1


# ═══════════════════════════════════════════════════════════════════════════
# HeaderMapping
# ═══════════════════════════════════════════════════════════════════════════

class TestHeaderMapping:
    def test_auto_prefills_from_map_headers(self):
        mapping = HeaderMapping.auto(["Title", "Code", "Zorblax"])
        assert mapping.field_for("Title") == "Name"
        assert mapping.field_for("Code") == "SKU"
        assert mapping.unmapped_headers() == ["Zorblax"]

    def test_duplicate_auto_match_first_header_wins(self):
        mapping = HeaderMapping.auto(["sku", "product_sku"])
        assert mapping.source_for("SKU") == "sku"
        assert mapping.field_for("product_sku") == ""

    def test_assign_moves_field_between_headers(self):
        mapping = HeaderMapping(["a", "b"], {"a": "Name"})
        mapping.assign("b", "Name")
        assert mapping.field_for("a") == ""
        assert mapping.source_for("Name") == "b"

    def test_clear(self):
        mapping = HeaderMapping(["a"], {"a": "Name"})
        mapping.clear("a")
        assert mapping.mapped_fields() == set()

    def test_assign_unknown_header_raises(self):
        mapping = HeaderMapping(["a"])
        with pytest.raises(KeyError):
            mapping.assign("missing", "Name")

    def test_assign_non_canonical_field_raises(self):
        mapping = HeaderMapping(["a"])
        with pytest.raises(ValueError):
            mapping.assign("a", "Colour")

    def test_missing_required_excludes_categories(self):
        mapping = HeaderMapping.auto(["Title", "Code"])
        assert mapping.missing_required() == ["Regular price", "Brand"]

    def test_nothing_missing_when_four_required_mapped(self):
        mapping = HeaderMapping.auto(["Name", "SKU", "Regular price", "Brand"])
        assert mapping.missing_required() == []

    def test_as_dict_is_a_copy(self):
        mapping = HeaderMapping(["a"], {"a": "Name"})
        snapshot = mapping.as_dict()
        snapshot["a"] = "SKU"
        assert mapping.field_for("a") == "Name"

    def test_headers_keep_upload_order(self):
        mapping = HeaderMapping(["z", "a", "m"])
        assert mapping.headers == ["z", "a", "m"]
