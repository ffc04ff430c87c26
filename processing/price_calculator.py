"""
Price calculator — derives final, admin and selling prices from category rules.

Two distinct formula layers:
  - Final price (seller cost basis, base currency):
        finalPrice = adminPrice × (1 + margin/100) + shippingFee
    using the product's CURRENT category.  A final price is a view, never a
    stored fact: it is recomputed from current category data on every read.
  - Admin price (customer-facing, display currency):
        adminPrice = (basePrice × (1 + margin/100) + shippingFee) × conversionRate

Derived prices never raise.  Missing data falls back to the defaults in
config/pricing.py (fallback markup 1.5, margin 20, shipping 0, conversion
rate 400).

The conversion rate is an explicit ConversionRateConfig passed into the
functions that need it.  ConversionRateProvider keeps it current: it starts
from the local cache (or the default), refreshes from the backend with a
timeout, and can refresh periodically on a background thread.

Public API:
    compute_final_price(admin_price, category_name, categories) → float
    compute_admin_price_from_base(base_price, category, conversion) → float
    compute_selling_price(admin_price, category_name, categories) → float
    format_price(value) → str
    recalculate_final_prices(products, categories) → PriceRecalculationResult
    CatalogPriceView
    ConversionRateConfig, ConversionRateProvider
"""

import json
import logging
import math
import threading
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from config.pricing import (
    CONVERSION_RATE_CACHE_KEY,
    DEFAULT_CONVERSION_RATE,
    DEFAULT_MARGIN_PERCENT,
    DEFAULT_SHIPPING_FEE,
    FALLBACK_MARKUP,
    MAX_CONVERSION_RATE,
    MIN_CONVERSION_RATE,
)
from config.settings import get_settings
from processing.category_resolver import Category, find_category
from services.api_client import ApiClient, ApiError

logger = logging.getLogger(__name__)

FINAL_PRICE_COLUMN = "finalPrice"


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ConversionRateConfig:
    """Base → display currency rate and where it came from."""

    rate: float = DEFAULT_CONVERSION_RATE
    source: str = "default"
    """"default" | "cache" | "remote" | "manual"."""


@dataclass
class PriceRecalculationResult:
    """Output of the recalculate_final_prices() function."""

    dataframe: pd.DataFrame = field(default_factory=pd.DataFrame)
    fallback_count: int = 0
    """Products priced with the fallback markup (no usable category)."""


# ═══════════════════════════════════════════════════════════════════════════
# Price formulas
# ═══════════════════════════════════════════════════════════════════════════

def compute_final_price(
    admin_price: object,
    category_name: str | None,
    categories: list[Category],
) -> float:
    """
    Final price from an admin price and the named category's rules.

    Falls back to admin_price × 1.5 when the admin price is missing/zero,
    the category name is empty, no categories are loaded, or the name
    matches no category.  Otherwise uses the category's margin (default 20)
    and shipping fee (default 0).

    Pure: the same inputs always give the same output.
    """
    price = _to_number(admin_price)

    if not price or not category_name or not categories:
        return price * FALLBACK_MARKUP

    category = find_category(category_name, categories)
    if category is None:
        return price * FALLBACK_MARKUP

    margin = _margin_of(category)
    shipping = _shipping_of(category)
    return price * (1 + margin / 100) + shipping


def compute_admin_price_from_base(
    base_price: object,
    category: Category | None,
    conversion: ConversionRateConfig | float | None = None,
) -> float:
    """
    Customer-facing admin price in the display currency.

    ((basePrice × (1 + margin/100)) + shippingFee) × conversionRate.
    A missing category prices with the default margin and no shipping fee;
    a missing or non-positive rate uses DEFAULT_CONVERSION_RATE.
    """
    price = _to_number(base_price)
    rate = _rate_of(conversion)

    if category is None:
        return price * (1 + DEFAULT_MARGIN_PERCENT / 100) * rate

    margin = _margin_of(category)
    shipping = _shipping_of(category)
    return (price * (1 + margin / 100) + shipping) * rate


def compute_selling_price(
    admin_price: object,
    category_name: str | None,
    categories: list[Category],
) -> float:
    """Suggested seller price: admin price plus the category margin (default 20%)."""
    price = _to_number(admin_price)
    category = find_category(category_name or "", categories)
    if category is not None and category.default_margin:
        return price * (1 + category.default_margin / 100)
    return price * (1 + DEFAULT_MARGIN_PERCENT / 100)


def format_price(value: object) -> str:
    """Render a price with two decimals; unusable values render as 0.00."""
    return f"{_to_number(value):.2f}"


# ═══════════════════════════════════════════════════════════════════════════
# Catalog recalculation
# ═══════════════════════════════════════════════════════════════════════════

def recalculate_final_prices(
    products: pd.DataFrame,
    categories: list[Category],
) -> PriceRecalculationResult:
    """
    Recompute finalPrice for every product in one pass.

    Reads adminPrice (basePrice when adminPrice is missing) and category
    from each row.  The input is not modified; the returned DataFrame is a
    copy with a fresh finalPrice column, so running this twice with
    unchanged categories gives identical output.

    Args:
        products: Products as returned by GET /products (one row each).
        categories: Current active categories.

    Returns:
        PriceRecalculationResult with the repriced copy and the number of
        products that fell back to the default markup.
    """
    result_df = products.copy()
    if result_df.empty:
        result_df[FINAL_PRICE_COLUMN] = pd.Series(dtype=float)
        return PriceRecalculationResult(dataframe=result_df)

    admin_prices = _admin_price_series(result_df)
    category_names = (
        result_df["category"] if "category" in result_df.columns
        else pd.Series([None] * len(result_df), index=result_df.index)
    )

    known_names = {category.name for category in categories}
    final_prices: list[float] = []
    fallback_count = 0

    for admin_price, category_name in zip(admin_prices, category_names):
        name = category_name if isinstance(category_name, str) else None
        if not name or name not in known_names:
            fallback_count += 1
        final_prices.append(compute_final_price(admin_price, name, categories))

    result_df[FINAL_PRICE_COLUMN] = final_prices

    logger.info(
        f"Final prices recalculated: {len(result_df)} products, "
        f"{fallback_count} priced with fallback markup"
    )
    return PriceRecalculationResult(dataframe=result_df, fallback_count=fallback_count)


class CatalogPriceView:
    """
    Loaded products with final prices derived from the current categories.

    Whenever the category list changes (compared by count) while products
    are loaded, every final price is recomputed in a single pass and the
    whole frame is swapped at once, so stale and fresh prices never mix.
    """

    def __init__(self, categories: list[Category] | None = None):
        self.categories: list[Category] = list(categories or [])
        self.products: pd.DataFrame = pd.DataFrame()
        self.recalculating: bool = False
        self.fallback_count: int = 0
        self._category_count: int = len(self.categories)

    @property
    def has_products(self) -> bool:
        return not self.products.empty

    def load_products(self, products: pd.DataFrame | list[dict]) -> pd.DataFrame:
        """Replace the loaded products and price them."""
        frame = products if isinstance(products, pd.DataFrame) else pd.DataFrame(products)
        self._reprice(frame)
        return self.products

    def update_categories(self, categories: list[Category]) -> bool:
        """
        Store a new category list; reprice if the count changed.

        Returns:
            True if a recalculation ran.
        """
        changed = len(categories) != self._category_count
        self.categories = list(categories)
        self._category_count = len(categories)

        if changed and self.has_products:
            logger.info(
                f"Category count changed to {len(categories)} — "
                f"recalculating {len(self.products)} products"
            )
            self._reprice(self.products)
            return True
        return False

    def refresh(self) -> pd.DataFrame:
        """Force a recalculation with the current categories."""
        if self.has_products:
            self._reprice(self.products)
        return self.products

    def _reprice(self, frame: pd.DataFrame) -> None:
        self.recalculating = True
        try:
            result = recalculate_final_prices(frame, self.categories)
            self.products = result.dataframe
            self.fallback_count = result.fallback_count
        finally:
            self.recalculating = False


# ═══════════════════════════════════════════════════════════════════════════
# Conversion rate
# ═══════════════════════════════════════════════════════════════════════════

class ConversionRateProvider:
    """
    Keeps the current ConversionRateConfig.

    Starts from the JSON key-value cache ("conversionRate") or the default.
    refresh() asks the backend with a short timeout; an unreachable or slow
    backend leaves the current value in place.  Successful lookups are
    written back to the cache.
    """

    def __init__(
        self,
        client: ApiClient | None = None,
        cache_path: Path | None = None,
        default_rate: float | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self.client = client
        self.cache_path = Path(cache_path or settings.conversion_rate_cache_path)
        self.default_rate = default_rate or settings.default_conversion_rate
        self.timeout = timeout or settings.conversion_rate_timeout_seconds

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._config = self._load_cached()

    @property
    def config(self) -> ConversionRateConfig:
        with self._lock:
            return self._config

    @property
    def rate(self) -> float:
        return self.config.rate

    def refresh(self) -> ConversionRateConfig:
        """Fetch the rate from the backend; keep the current one on failure."""
        if self.client is None:
            return self.config

        try:
            response = self.client.get_conversion_rate(timeout=self.timeout)
        except ApiError as exc:
            logger.warning(
                f"Conversion rate lookup failed ({exc.message}) — "
                f"keeping {self.config.rate} ({self.config.source})"
            )
            return self.config

        rate = _positive_number(response.get("conversionRate"))
        if not response.get("success") or rate is None:
            logger.warning(
                f"No conversion rate in response — keeping {self.config.rate}"
            )
            return self.config

        self._swap(ConversionRateConfig(rate=rate, source="remote"))
        logger.info(f"Conversion rate refreshed: {rate}")
        return self.config

    def update_rate(self, rate: float) -> ConversionRateConfig:
        """
        Set a new rate on the backend and use it locally.

        Raises:
            ValueError: If the rate is outside the backend's accepted range.
            ApiError: If the backend rejects the update.
        """
        number = _positive_number(rate)
        if number is None or not MIN_CONVERSION_RATE <= number <= MAX_CONVERSION_RATE:
            raise ValueError(
                f"Conversion rate must be between {MIN_CONVERSION_RATE:g} "
                f"and {MAX_CONVERSION_RATE:g}"
            )

        if self.client is not None:
            self.client.set_conversion_rate(number)

        self._swap(ConversionRateConfig(rate=number, source="manual"))
        logger.info(f"Conversion rate set to {number}")
        return self.config

    def start_background_refresh(self, interval: float | None = None) -> None:
        """Refresh now and then every *interval* seconds on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        period = interval or get_settings().conversion_rate_refresh_seconds
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._refresh_loop,
            args=(period,),
            name="conversion-rate-refresh",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self.timeout)
            self._thread = None

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _refresh_loop(self, period: float) -> None:
        self.refresh()
        while not self._stop_event.wait(period):
            self.refresh()

    def _swap(self, config: ConversionRateConfig) -> None:
        """Use *config* and persist its rate, as one step under the lock."""
        with self._lock:
            self._config = config
            self._write_cache(config.rate)

    def _load_cached(self) -> ConversionRateConfig:
        try:
            data = json.loads(self.cache_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return ConversionRateConfig(rate=self.default_rate, source="default")
        except (OSError, ValueError) as exc:
            logger.warning(f"Unreadable conversion rate cache '{self.cache_path}': {exc}")
            return ConversionRateConfig(rate=self.default_rate, source="default")

        rate = _positive_number(data.get(CONVERSION_RATE_CACHE_KEY)) if isinstance(data, dict) else None
        if rate is None:
            return ConversionRateConfig(rate=self.default_rate, source="default")
        return ConversionRateConfig(rate=rate, source="cache")

    def _write_cache(self, rate: float) -> None:
        # Caller holds self._lock
        try:
            data = json.loads(self.cache_path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                data = {}
        except (OSError, ValueError):
            data = {}

        data[CONVERSION_RATE_CACHE_KEY] = rate
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            self.cache_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning(f"Cannot write conversion rate cache '{self.cache_path}': {exc}")


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _to_number(value: object) -> float:
    """Parse a price-like value; 0.0 for None, NaN, blanks and garbage."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _positive_number(value: object) -> float | None:
    number = _to_number(value)
    return number if number > 0 else None


def _margin_of(category: Category) -> float:
    if category.default_margin is None:
        return DEFAULT_MARGIN_PERCENT
    return category.default_margin


def _shipping_of(category: Category) -> float:
    if category.shipping_fee is None:
        return DEFAULT_SHIPPING_FEE
    return category.shipping_fee


def _rate_of(conversion: ConversionRateConfig | float | None) -> float:
    if isinstance(conversion, ConversionRateConfig):
        value = conversion.rate
    else:
        value = conversion
    return _positive_number(value) or DEFAULT_CONVERSION_RATE


def _admin_price_series(products: pd.DataFrame) -> pd.Series:
    """adminPrice per row, falling back to basePrice where it is missing."""
    index = products.index
    admin = products["adminPrice"] if "adminPrice" in products.columns else pd.Series([None] * len(index), index=index)
    base = products["basePrice"] if "basePrice" in products.columns else pd.Series([None] * len(index), index=index)
    return pd.Series(
        [a if _to_number(a) else b for a, b in zip(admin, base)],
        index=index,
        dtype=object,
    )
