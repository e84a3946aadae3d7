# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from fish_ledger.database.repositories import (
        # Parties & varieties
        FarmersRepo, Farmer, CustomersRepo, Customer, FishVarietiesRepo, FishVariety,
        # Raw rows waiting to be billed
        PurchasesRepo, PurchaseRow, SalesRepo, SaleRow,
        # Bills
        BillNumbersRepo, PurchaseBillsRepo, SalesBillsRepo,
        # Payments
        PaymentsRepo,
    )
"""

# ---------------- Parties ------------------
from .customers_repo import CustomersRepo, Customer
from .farmers_repo import FarmersRepo, Farmer

# ------------- Fish varieties --------------
from .fish_varieties_repo import FishVarietiesRepo, FishVariety

# ------------- Raw transactions ------------
from .purchases_repo import PurchasesRepo, PurchaseRow
from .sales_repo import SalesRepo, SaleRow

# ------------------ Bills ------------------
from .bill_numbers_repo import BillNumbersRepo
from .purchase_bills_repo import PurchaseBillsRepo
from .sales_bills_repo import SalesBillsRepo

# ---------------- Payments -----------------
from .payments_repo import PaymentsRepo

__all__ = [
    # parties
    "CustomersRepo",
    "Customer",
    "FarmersRepo",
    "Farmer",
    # varieties
    "FishVarietiesRepo",
    "FishVariety",
    # raw rows
    "PurchasesRepo",
    "PurchaseRow",
    "SalesRepo",
    "SaleRow",
    # bills
    "BillNumbersRepo",
    "PurchaseBillsRepo",
    "SalesBillsRepo",
    # payments
    "PaymentsRepo",
]
