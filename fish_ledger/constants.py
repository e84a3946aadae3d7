# fish_ledger/constants.py

APP_NAME = "Fish Ledger"

# Storage
DATA_DIR = "data"
DB_FILE_NAME = "fish_ledger.db"
TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

DATE_FORMAT = "%Y-%m-%d"

# Bill numbering (PREFIX-NNNN)
PURCHASE_BILL_PREFIX = "PB"
SALES_BILL_PREFIX = "IB"
BILL_NUMBER_PAD = 4

# Party kinds used by payments / allocations
PARTY_FARMER = "farmer"
PARTY_CUSTOMER = "customer"
PARTY_TYPES: tuple[str, ...] = (PARTY_FARMER, PARTY_CUSTOMER)

# Bill kinds used by payment_allocations.bill_type
BILL_PURCHASE = "purchase"
BILL_SALES = "sales"

# Raw purchase/sale row billing states
BILLING_UNBILLED = "unbilled"
BILLING_BILLED = "billed"

PAYMENT_METHODS: tuple[str, ...] = ("cash", "upi", "neft", "bank_transfer", "cheque", "other")
