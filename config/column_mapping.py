"""
Header synonym table for CSV import.

Maps uploaded header names that neither equal nor overlap a canonical field
name to the canonical field they mean.  Consulted by column_mapper.py after
the exact and substring steps have failed.

All keys are lowercase and trimmed.
"""

HEADER_SYNONYMS: dict[str, str] = {
    # Identity
    "id": "ID",
    "product_id": "ID",
    "type": "Type",
    "product_type": "Type",
    "sku": "SKU",
    "product_sku": "SKU",
    "code": "SKU",
    "item_code": "SKU",
    "gtin": "GTIN, UPC, EAN, or ISBN",
    "upc": "GTIN, UPC, EAN, or ISBN",
    "ean": "GTIN, UPC, EAN, or ISBN",
    "isbn": "GTIN, UPC, EAN, or ISBN",
    "barcode": "GTIN, UPC, EAN, or ISBN",
    "title": "Name",
    "product_name": "Name",
    "product_title": "Name",
    # Flags
    "sold_individually": "Sold individually?",
    "individual": "Sold individually?",
    "featured": "Is featured?",
    "is_featured": "Is featured?",
    "visibility": "Visibility in catalog",
    "catalog_visibility": "Visibility in catalog",
    "active": "Published",
    "backorders": "Backorders allowed?",
    "backorders_allowed": "Backorders allowed?",
    "reviews": "Allow customer reviews?",
    "reviews_allowed": "Allow customer reviews?",
    # Text
    "short_desc": "Short description",
    "excerpt": "Short description",
    "summary": "Short description",
    "content": "Description",
    "body": "Description",
    "purchase_note": "Purchase note",
    "note": "Purchase note",
    # Pricing
    "cost": "Regular price",
    "mrp": "Regular price",
    "regular_price": "Regular price",
    "sale_price": "Sale price",
    "price_sale": "Sale price",
    "discount_price": "Sale price",
    "sale_start": "Date sale price starts",
    "sale_end": "Date sale price ends",
    "taxable": "Tax status",
    "tax_status": "Tax status",
    "tax_class": "Tax class",
    # Stock
    "qty": "Stock",
    "quantity": "Stock",
    "inventory": "Stock",
    # Dimensions
    "mass": "Weight (kg)",
    "weight_kg": "Weight (kg)",
    "depth": "Length (cm)",
    # Catalog structure
    "cat": "Categories",
    "category": "Categories",
    "labels": "Tags",
    "keywords": "Tags",
    "image": "Images",
    "image_url": "Images",
    "picture": "Images",
    "photo": "Images",
    "image_urls": "All image urls",
    "gallery": "All image urls",
    "brand_name": "Brand",
    "brands": "Brand",
    "manufacturer": "Brand",
    "make": "Brand",
    "downloads": "Download limit",
    "expiry": "Download expiry days",
    "parent_id": "Parent",
    "grouped": "Grouped products",
    "upsell": "Upsells",
    "crosssells": "Cross-sells",
    "cross_sells": "Cross-sells",
    "link": "External URL",
    "btn_text": "Button text",
    "menu_order": "Position",
    "sort_order": "Position",
}
