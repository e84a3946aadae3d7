# fish_ledger/modules/billing/__init__.py
"""
Billing engine public API.

Usage:
    from fish_ledger.modules.billing import (
        LineItem, Quantity, Deduction, Payment,
        calculate_purchase_bill, calculate_sales_bill,
        derive_payment_status, derive_sales_status,
    )
"""

from .arithmetic import billable_weight, percentage_of, sum_amounts
from .models import (
    Allocation,
    AllocationResult,
    Deduction,
    LineItem,
    Outstanding,
    Payment,
    PricedItem,
    PurchaseBill,
    Quantity,
    SalesBill,
)
from .numbering import next_bill_number, parse_sequence
from .purchase_bill import (
    apply_payment_to_purchase_bill,
    calculate_purchase_bill,
    recompute_purchase_bill,
)
from .sales_bill import (
    apply_payment_to_sales_bill,
    calculate_sales_bill,
    ensure_no_duplicate_bill,
    recompute_sales_bill,
    rederive_sales_chain,
)
from .status import derive_payment_status, derive_sales_status

__all__ = [
    # arithmetic
    "billable_weight",
    "percentage_of",
    "sum_amounts",
    # models
    "Allocation",
    "AllocationResult",
    "Deduction",
    "LineItem",
    "Outstanding",
    "Payment",
    "PricedItem",
    "PurchaseBill",
    "Quantity",
    "SalesBill",
    # numbering
    "next_bill_number",
    "parse_sequence",
    # purchase bills
    "apply_payment_to_purchase_bill",
    "calculate_purchase_bill",
    "recompute_purchase_bill",
    # sales bills
    "apply_payment_to_sales_bill",
    "calculate_sales_bill",
    "ensure_no_duplicate_bill",
    "recompute_sales_bill",
    "rederive_sales_chain",
    # status
    "derive_payment_status",
    "derive_sales_status",
]
