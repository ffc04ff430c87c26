"""
Catalog view helpers — filtering, pagination and selection for bulk actions.

"Select all" is page-scoped everywhere: toggle_page() selects or deselects
only the products on the visible page, never the whole filtered catalog.

Public API:
    filter_products(products, category, status, stock) → pd.DataFrame
    total_pages(item_count, per_page) → int
    paginate(products, page, per_page) → pd.DataFrame
    Selection
"""

import logging
import math

import pandas as pd

logger = logging.getLogger(__name__)

ALL = "all"
PUBLISH_PAGE_SIZE = 50
PRICING_PAGE_SIZE = 20

STATUS_FILTERS = {ALL, "published", "draft"}
STOCK_FILTERS = {ALL, "in-stock", "out-of-stock"}


def filter_products(
    products: pd.DataFrame,
    category: str = ALL,
    status: str = ALL,
    stock: str = ALL,
) -> pd.DataFrame:
    """
    Products matching the category, publish-status and stock filters.

    Args:
        products: Rows of GET /products.
        category: Exact category name, or "all".
        status: "all", "published" or "draft".
        stock: "all", "in-stock" (stock > 0) or "out-of-stock" (stock <= 0).

    Raises:
        ValueError: For an unknown status or stock filter.
    """
    if status not in STATUS_FILTERS:
        raise ValueError(f"Unknown status filter '{status}'")
    if stock not in STOCK_FILTERS:
        raise ValueError(f"Unknown stock filter '{stock}'")

    mask = pd.Series(True, index=products.index)

    if category != ALL and "category" in products.columns:
        mask &= products["category"] == category

    if status != ALL:
        published = (
            products["published"].fillna(False).astype(bool)
            if "published" in products.columns
            else pd.Series(False, index=products.index)
        )
        mask &= published if status == "published" else ~published

    if stock != ALL:
        levels = (
            pd.to_numeric(products["stock"], errors="coerce").fillna(0)
            if "stock" in products.columns
            else pd.Series(0, index=products.index)
        )
        mask &= levels > 0 if stock == "in-stock" else levels <= 0

    filtered = products.loc[mask].reset_index(drop=True)
    logger.debug(
        f"Filter category={category} status={status} stock={stock}: "
        f"{len(filtered)}/{len(products)} products"
    )
    return filtered


def total_pages(item_count: int, per_page: int) -> int:
    """Number of pages for *item_count* items; at least 1."""
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    return max(1, math.ceil(item_count / per_page))


def paginate(products: pd.DataFrame, page: int, per_page: int) -> pd.DataFrame:
    """Rows of 1-based *page*; pages past either end are clamped."""
    pages = total_pages(len(products), per_page)
    page = min(max(page, 1), pages)
    start = (page - 1) * per_page
    return products.iloc[start:start + per_page].reset_index(drop=True)


class Selection:
    """A set of selected product IDs, independent of filters and paging."""

    def __init__(self, ids: set[str] | None = None):
        self.ids: set[str] = set(ids or ())

    def __len__(self) -> int:
        return len(self.ids)

    def __contains__(self, product_id: str) -> bool:
        return product_id in self.ids

    def toggle(self, product_id: str) -> None:
        if product_id in self.ids:
            self.ids.remove(product_id)
        else:
            self.ids.add(product_id)

    def toggle_page(self, page_ids: list[str]) -> None:
        """
        Select every product on the visible page, or deselect them all if
        they are already all selected.  Selections on other pages are kept.
        """
        page = set(page_ids)
        if page and page <= self.ids:
            self.ids -= page
        else:
            self.ids |= page

    def clear(self) -> None:
        self.ids.clear()
