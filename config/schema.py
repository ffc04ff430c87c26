"""
Canonical product field definitions for CSV import.

Defines the fixed field order used for header matching, the required
subset, and the value-type group each field belongs to.  The field names
follow the WooCommerce product CSV layout that the back-office export also
produces.
"""

# Canonical field names in the fixed matching order.
# Substring matching in column_mapper picks the FIRST field in this list that
# matches in either direction, so short names that occur inside many other
# words ("ID", "Type", "Stock") sit after the more specific fields.
CANONICAL_FIELDS: list[str] = [
    "Brand",
    "SKU",
    "Name",
    "Categories",
    "Regular price",
    "Sale price",
    "Description",
    "Short description",
    "Images",
    "All image urls",
    "In stock?",
    "Low stock amount",
    "Stock",
    "GTIN, UPC, EAN, or ISBN",
    "Published",
    "Is featured?",
    "Visibility in catalog",
    "Date sale price starts",
    "Date sale price ends",
    "Tax status",
    "Tax class",
    "Backorders allowed?",
    "Sold individually?",
    "Weight (kg)",
    "Length (cm)",
    "Width (cm)",
    "Height (cm)",
    "Allow customer reviews?",
    "Purchase note",
    "Tags",
    "Shipping class",
    "Download limit",
    "Download expiry days",
    "Parent",
    "Grouped products",
    "Upsells",
    "Cross-sells",
    "External URL",
    "Button text",
    "Position",
    "Type",
    "ID",
]

# Every field an import batch must provide.  "Categories" is satisfied by the
# single category selected for the batch, never by a CSV column.
REQUIRED_FIELDS: list[str] = [
    "Name",
    "SKU",
    "Categories",
    "Regular price",
    "Brand",
]

CATEGORY_FIELD: str = "Categories"

# The required fields that must be present in the header mapping.
REQUIRED_MAPPED_FIELDS: list[str] = [
    name for name in REQUIRED_FIELDS if name != CATEGORY_FIELD
]

# ---------------------------------------------------------------------------
# Value-type groups used by value_coercer.py
# ---------------------------------------------------------------------------
CURRENCY_FIELDS: set[str] = {"Regular price", "Sale price"}

STOCK_FIELDS: set[str] = {"Stock"}

BOOLEAN_FIELDS: set[str] = {
    "Published",
    "In stock?",
    "Is featured?",
    "Sold individually?",
    "Backorders allowed?",
    "Allow customer reviews?",
}

MEASUREMENT_FIELDS: set[str] = {
    "Weight (kg)",
    "Length (cm)",
    "Width (cm)",
    "Height (cm)",
}

SMALL_INTEGER_FIELDS: set[str] = {
    "Low stock amount",
    "Download limit",
    "Download expiry days",
    "Position",
}

# Field → value type, derived from the groups above.  Everything not listed
# in a group is free text.
FIELD_TYPES: dict[str, str] = {
    name: (
        "currency" if name in CURRENCY_FIELDS
        else "stock" if name in STOCK_FIELDS
        else "boolean" if name in BOOLEAN_FIELDS
        else "measurement" if name in MEASUREMENT_FIELDS
        else "small_integer" if name in SMALL_INTEGER_FIELDS
        else "text"
    )
    for name in CANONICAL_FIELDS
}

# Values accepted as boolean true (compared case-insensitively).
TRUTHY_VALUES: set[str] = {"true", "1", "yes"}
