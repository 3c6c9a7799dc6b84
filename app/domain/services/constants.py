# Constants for pricing, VAT and storage.

# Spanish VAT rates accepted on expenses and invoices
VAT_RATES = frozenset({0, 4, 10, 21})
VAT_TOLERANCE_CENTS = 1  # rounding slack when validating a full triple

# Collections
COL_PRODUCTS = "products"
COL_PROMOTIONS = "promotions"
COL_RESERVATIONS = "reservations"
COL_CONSUMPTION_TYPES = "consumptiontypes"

# Invoice cache
INVOICE_CACHE_PREFIX = "invoice"
SUPPLEMENT_CONCEPT = "Suplemento"

# Substrings of a server error meaning "this deployment cannot run transactions"
# (standalone mongod: "Transaction numbers are only allowed on a replica set member or mongos")
TRANSACTION_UNSUPPORTED_MARKERS = ("transaction", "session", "replica set")
