"""Application-wide constants and configuration values.

Centralizes magic numbers and configuration to avoid duplication
and make changes easier.
"""

# ============== TIME CONSTANTS (seconds) ==============
SECONDS_PER_DAY = 86400

# ============== CART ==============
CART_EXPIRY_SECONDS = SECONDS_PER_DAY  # 24 hours
CART_LOCK_TTL_SECONDS = 5
CART_LOCK_WAIT_SECONDS = 2.0
DEFAULT_LINE_VARIANT = "default"
DEFAULT_STOCK_CEILING = 99

# ============== SHIPPING ==============
FEE_SPLIT_PER_LINE = "per_line"
FEE_SPLIT_WEIGHT = "weight"

# Address placeholder used for quotes before an address is chosen
QUOTE_PLACEHOLDER_ADDRESS = {
    "address": "N/A",
    "division": "",
    "district": "",
    "upazila": "",
    "postalCode": "",
}

# ============== ORDERS ==============
PAYMENT_METHOD_COD = "Cash on Delivery"
DEFAULT_FISH_CATEGORY = "Fish"

# ============== API ==============
DEFAULT_API_URL = "http://localhost:3500/api"
QUOTE_TIMEOUT_SECONDS = 10

# ============== CURRENCY ==============
CURRENCY_SYMBOL = "৳"

# ============== USER-FACING MESSAGES ==============
MSG_SELECT_ZONE = "Select a delivery zone"
MSG_FEE_CALCULATING = "Calculating…"
MSG_GENERIC_ORDER_ERROR = "There was an issue placing your order."
MSG_GENERIC_QUOTE_ERROR = "Could not calculate the shipping fee."
MSG_PLACEMENT_INTERRUPTED = "Order placement was interrupted."
