"""
Bulk updater — applies price, stock and publish changes to a product selection.

Every change runs as a best-effort batch: one PATCH/DELETE per selected
product, issued sequentially.  A failing item is counted and recorded, and
the loop moves on to the next one.  Items already applied are never rolled
back, so a BulkResult with errors describes a partially applied batch.

Price and stock changes are two-phase.  preview_*() computes a newPrice /
newStock column for the selected products without touching the network;
commit_*() sends exactly the previewed values.

Price adjustment order (fixed):
    base adjustment (percentage or fixed) → × (1 + margin/100) → + tax
    → + shipping → floored at 0

Public API:
    PricingMode, StockMode, PriceAdjustment
    calculate_new_price(current_price, adjustment) → float
    calculate_new_stock(current_stock, mode, value) → int
    BulkMutationCoordinator
    BulkResult
"""

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

import pandas as pd

from services.api_client import ApiClient

logger = logging.getLogger(__name__)

NEW_PRICE_COLUMN = "newPrice"
NEW_STOCK_COLUMN = "newStock"

_LEADING_INT_PATTERN = re.compile(r"^\s*[+-]?\d+")


class PricingMode(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class StockMode(str, Enum):
    SET = "set"
    INCREASE = "increase"
    DECREASE = "decrease"


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PriceAdjustment:
    """A bulk price change as entered in the pricing form."""

    mode: PricingMode = PricingMode.PERCENTAGE
    value: float = 0.0
    """Percent change (percentage mode) or amount added (fixed mode)."""

    profit_margin: float = 0.0
    tax: float = 0.0
    shipping: float = 0.0


@dataclass
class BulkResult:
    """Per-item accounting for one bulk operation."""

    action: str = ""
    total: int = 0
    success_count: int = 0
    error_count: int = 0
    failures: list[dict] = field(default_factory=list)
    """One entry per failed item: {"id": ..., "error": ...}."""

    @property
    def all_succeeded(self) -> bool:
        return self.error_count == 0

    @property
    def summary(self) -> str:
        if self.error_count:
            return (
                f"{self.action}: {self.success_count} succeeded, "
                f"{self.error_count} failed"
            )
        return f"{self.action}: {self.success_count} products updated"


# ═══════════════════════════════════════════════════════════════════════════
# Calculations
# ═══════════════════════════════════════════════════════════════════════════

def calculate_new_price(current_price: object, adjustment: PriceAdjustment) -> float:
    """
    Apply *adjustment* to one current price.

    Missing or unparsable numbers count as 0.  Never negative.
    """
    price = _to_float(current_price)
    value = _to_float(adjustment.value)

    if PricingMode(adjustment.mode) is PricingMode.PERCENTAGE:
        price = price * (1 + value / 100)
    else:
        price = price + value

    margin = _to_float(adjustment.profit_margin)
    if margin:
        price = price * (1 + margin / 100)

    price += _to_float(adjustment.tax)
    price += _to_float(adjustment.shipping)

    return max(0.0, price)


def calculate_new_stock(current_stock: object, mode: StockMode | str, value: object) -> int:
    """
    Apply a stock change to one current stock level.

    "set" replaces the stock; "increase"/"decrease" adjust it.  The result
    is floored at 0: decreasing 5 by 10 gives 0.

    Raises:
        ValueError: If *mode* is not a StockMode.
    """
    stock = _to_int(current_stock)
    amount = _to_int(value)
    mode = StockMode(mode)

    if mode is StockMode.SET:
        return max(0, amount)
    if mode is StockMode.INCREASE:
        return max(0, stock + amount)
    return max(0, stock - amount)


# ═══════════════════════════════════════════════════════════════════════════
# Coordinator
# ═══════════════════════════════════════════════════════════════════════════

class BulkMutationCoordinator:
    """
    Runs bulk operations over an explicit selection of product IDs.

    Products are the rows of GET /products; the ID is read from "_id"
    (or "id" when "_id" is absent).
    """

    def __init__(self, client: ApiClient):
        self.client = client

    # -----------------------------------------------------------------
    # Preview (no network)
    # -----------------------------------------------------------------

    def preview_price_update(
        self,
        products: pd.DataFrame,
        selected_ids: set[str] | list[str],
        adjustment: PriceAdjustment,
    ) -> pd.DataFrame:
        """
        Selected products with a computed newPrice column.

        The current price is adminPrice, else basePrice, else 0.
        """
        selected = _select(products, selected_ids)
        current = [
            _first_price(admin, base)
            for admin, base in zip(
                _column(selected, "adminPrice"), _column(selected, "basePrice")
            )
        ]
        selected["currentPrice"] = current
        selected[NEW_PRICE_COLUMN] = [
            calculate_new_price(price, adjustment) for price in current
        ]
        logger.info(
            f"Price preview: {len(selected)} products, mode={PricingMode(adjustment.mode).value}"
        )
        return selected

    def preview_stock_update(
        self,
        products: pd.DataFrame,
        selected_ids: set[str] | list[str],
        mode: StockMode | str,
        value: object,
    ) -> pd.DataFrame:
        """Selected products with a computed newStock column."""
        stock_mode = StockMode(mode)
        selected = _select(products, selected_ids)
        selected[NEW_STOCK_COLUMN] = [
            calculate_new_stock(stock, stock_mode, value)
            for stock in _column(selected, "stock")
        ]
        logger.info(
            f"Stock preview: {len(selected)} products, mode={stock_mode.value}"
        )
        return selected

    # -----------------------------------------------------------------
    # Commit (sequential network calls)
    # -----------------------------------------------------------------

    def commit_price_update(self, preview: pd.DataFrame) -> BulkResult:
        """Send each previewed newPrice as {"adminPrice": newPrice}."""
        changes = {
            product_id: {"adminPrice": float(new_price)}
            for product_id, new_price in zip(_ids(preview), preview[NEW_PRICE_COLUMN])
        }
        return self._run("Price update", changes)

    def commit_stock_update(self, preview: pd.DataFrame) -> BulkResult:
        """Send each previewed newStock as {"stock": newStock}."""
        changes = {
            product_id: {"stock": int(new_stock)}
            for product_id, new_stock in zip(_ids(preview), preview[NEW_STOCK_COLUMN])
        }
        return self._run("Stock update", changes)

    def set_published(self, selected_ids: set[str] | list[str], published: bool) -> BulkResult:
        """Publish or unpublish every selected product."""
        changes = {product_id: {"published": bool(published)} for product_id in selected_ids}
        action = "Publish" if published else "Unpublish"
        return self._run(action, changes, require_success_flag=True)

    def delete(self, selected_ids: set[str] | list[str]) -> BulkResult:
        """Delete every selected product, one DELETE per product."""
        result = BulkResult(action="Delete", total=len(selected_ids))
        for product_id in selected_ids:
            self._attempt(result, product_id, lambda pid=product_id: self.client.delete_product(pid))
        self._log(result)
        return result

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _run(
        self,
        action: str,
        changes: dict[str, dict],
        require_success_flag: bool = False,
    ) -> BulkResult:
        result = BulkResult(action=action, total=len(changes))
        for product_id, body in changes.items():
            self._attempt(
                result,
                product_id,
                lambda pid=product_id, b=body: self.client.update_product(pid, b),
                require_success_flag,
            )
        self._log(result)
        return result

    def _attempt(
        self,
        result: BulkResult,
        product_id: str,
        call: Callable[[], dict],
        require_success_flag: bool = False,
    ) -> None:
        """Run one item's call and account for it; failures never propagate."""
        try:
            response = call()
        except Exception as exc:
            result.error_count += 1
            result.failures.append({"id": product_id, "error": str(exc)})
            logger.warning(f"{result.action} failed for product {product_id}: {exc}")
            return

        if require_success_flag and not (response or {}).get("success"):
            result.error_count += 1
            message = (response or {}).get("message") or "Request was not successful"
            result.failures.append({"id": product_id, "error": message})
            logger.warning(f"{result.action} rejected for product {product_id}: {message}")
            return

        result.success_count += 1
        logger.debug(f"{result.action} applied to product {product_id}")

    def _log(self, result: BulkResult) -> None:
        if result.error_count:
            logger.warning(result.summary)
        else:
            logger.info(result.summary)


# ═══════════════════════════════════════════════════════════════════════════
# Module helpers
# ═══════════════════════════════════════════════════════════════════════════

def _id_column(products: pd.DataFrame) -> str:
    if "_id" in products.columns:
        return "_id"
    if "id" in products.columns:
        return "id"
    raise KeyError("Products have no '_id' or 'id' column")


def _ids(products: pd.DataFrame) -> list[str]:
    return [str(value) for value in products[_id_column(products)]]


def _select(products: pd.DataFrame, selected_ids: set[str] | list[str]) -> pd.DataFrame:
    """Copy of the selected rows, in catalog order."""
    if products.empty:
        return products.copy()
    wanted = {str(product_id) for product_id in selected_ids}
    mask = products[_id_column(products)].astype(str).isin(wanted)
    return products.loc[mask].copy().reset_index(drop=True)


def _column(products: pd.DataFrame, name: str) -> pd.Series:
    if name in products.columns:
        return products[name]
    return pd.Series([None] * len(products), index=products.index, dtype=object)


def _first_price(admin_price: object, base_price: object) -> float:
    return _to_float(admin_price) or _to_float(base_price)


def _to_float(value: object) -> float:
    """Lenient float parse; 0.0 for None, NaN, blanks and garbage."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _to_int(value: object) -> int:
    """Lenient integer parse: leading integer of the text, else 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, float):
        return 0 if math.isnan(value) or math.isinf(value) else int(value)
    if isinstance(value, int):
        return value
    match = _LEADING_INT_PATTERN.match(str(value))
    return int(match.group(0)) if match else 0
