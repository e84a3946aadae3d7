# fish_ledger/modules/billing/models.py
"""
Value objects passed between the billing engine and its callers.

Every record here is a frozen dataclass: the engine never mutates a bill in
place, it returns a new one (see dataclasses.replace in the calculators).
Dates are ISO strings ('YYYY-MM-DD'), amounts and weights are plain floats.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class Quantity:
    crates: float = 0.0
    loose_weight: float = 0.0

    def total_weight(self, crate_weight: float) -> float:
        return self.crates * crate_weight + self.loose_weight


@dataclass(frozen=True)
class LineItem:
    variety_id: int
    rate_per_unit_weight: float
    quantity: Quantity = field(default_factory=Quantity)
    actual_weight: Optional[float] = None
    variety_name: Optional[str] = None
    # kg per crate for this line; None means the configured default
    crate_weight: Optional[float] = None
    # raw purchases/sales rows rolled into this line
    source_ids: Tuple[int, ...] = ()

    def quantity_weight(self, default_crate_weight: float) -> float:
        cw = self.crate_weight if self.crate_weight is not None else default_crate_weight
        return self.quantity.total_weight(cw)

    def weight(self, default_crate_weight: float) -> float:
        """Weighed total if recorded, else crates * crate weight + loose weight."""
        if self.actual_weight is not None:
            return float(self.actual_weight)
        return self.quantity_weight(default_crate_weight)


@dataclass(frozen=True)
class PricedItem:
    item: LineItem
    actual_weight: float
    billable_weight: float
    amount: float

    @property
    def variety_id(self) -> int:
        return self.item.variety_id

    @property
    def rate_per_unit_weight(self) -> float:
        return self.item.rate_per_unit_weight

    @property
    def variety_name(self) -> Optional[str]:
        return self.item.variety_name


@dataclass(frozen=True)
class Deduction:
    """Named add-on or subtraction (ice, transport, packing, returns...)."""
    label: str
    amount: float


@dataclass(frozen=True)
class Payment:
    id: Optional[int]
    party_id: int
    date: str
    amount: float
    method: str = "cash"
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    party_type: str = "customer"


@dataclass(frozen=True)
class PurchaseBill:
    id: Optional[int]
    bill_number: Optional[str]
    farmer_id: int
    bill_date: str
    items: Tuple[PricedItem, ...]
    gross_amount: float
    weight_deduction_pct: float
    weight_deduction_amount: float
    subtotal: float
    total_billable_weight: float
    commission_per_unit_weight: float
    commission_amount: float
    other_deductions: Tuple[Deduction, ...]
    other_deductions_total: float
    total: float
    amount_paid: float
    balance_due: float
    payment_status: str
    notes: Optional[str] = None
    location: Optional[str] = None
    secondary_name: Optional[str] = None

    @property
    def party_id(self) -> int:
        return self.farmer_id

    @property
    def line_items(self) -> Tuple[LineItem, ...]:
        return tuple(p.item for p in self.items)


@dataclass(frozen=True)
class SalesBill:
    id: Optional[int]
    bill_number: Optional[str]
    customer_id: int
    bill_date: str
    items: Tuple[PricedItem, ...]
    other_charges: Tuple[Deduction, ...]
    previous_balance: float
    payments_since_previous: Tuple[Payment, ...]
    payments_total: float
    items_total: float
    charges_total: float
    subtotal: float
    discount: float
    total: float
    amount_paid: float
    balance_due: float
    status: str
    crate_weight: float
    is_active: bool = True
    notes: Optional[str] = None

    @property
    def party_id(self) -> int:
        return self.customer_id

    @property
    def line_items(self) -> Tuple[LineItem, ...]:
        return tuple(p.item for p in self.items)


@dataclass(frozen=True)
class Allocation:
    bill_id: int
    allocated_amount: float


@dataclass(frozen=True)
class AllocationResult:
    requested_amount: float
    allocations: Tuple[Allocation, ...]
    excess_amount: float

    @property
    def allocated_total(self) -> float:
        return sum(a.allocated_amount for a in self.allocations)

    def for_bill(self, bill_id: int) -> float:
        return sum(a.allocated_amount for a in self.allocations if a.bill_id == bill_id)


@dataclass(frozen=True)
class Outstanding:
    party_id: int
    total_outstanding: float
    unpaid_bills_count: int
    oldest_bill_date: Optional[str]
