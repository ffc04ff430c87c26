"""
Pricing constants.

Fallback values used by processing/price_calculator.py whenever category or
conversion-rate data is missing.  Derived prices never raise; they fall back
to these documented defaults instead.
"""

# Markup applied when a product's category cannot be found (or no categories
# are loaded at all).  finalPrice = adminPrice * FALLBACK_MARKUP.
FALLBACK_MARKUP: float = 1.5

# Category margin (percent) assumed when a category has no defaultMargin.
DEFAULT_MARGIN_PERCENT: float = 20.0

# Category shipping fee assumed when a category has no shippingFee.
DEFAULT_SHIPPING_FEE: float = 0.0

# Seller base currency → customer display currency (GBP → LKR).
# Used until a cached or remote rate is available.
DEFAULT_CONVERSION_RATE: float = 400.0

# Bounds accepted by the backend for POST /settings/conversion-rate.
MIN_CONVERSION_RATE: float = 1.0
MAX_CONVERSION_RATE: float = 1000.0

# Key under which the conversion rate is cached locally.
CONVERSION_RATE_CACHE_KEY: str = "conversionRate"
