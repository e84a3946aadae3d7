"""
billing/sales_bill.py

Turns a customer's sale line items plus their carried-forward balance into a
SalesBill, and re-derives a customer's chain of bills when something upstream
changes (a payment is deleted, an earlier bill is edited).

Rules:
- No weight deduction on sales: weight = crates * crate_weight + loose kg.
- Charges may be negative (returns and similar reductions).
- total = previous_balance - payments_since_previous + subtotal - discount
- A new bill starts with amount_paid = 0 and balance_due = total; payments
  made after it are applied through the allocator.
- One bill per (customer, date); only the latest bill is active and carries
  the running balance.

Pure functions; no DB.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from ...config import DEFAULT_CRATE_WEIGHT_KG
from ...errors import DuplicateBillError, ValidationError
from ...utils.validators import require_non_negative, require_positive
from .arithmetic import sum_amounts
from .models import Deduction, LineItem, Payment, PricedItem, SalesBill
from .status import derive_sales_status

_log = logging.getLogger(__name__)

__all__ = [
    "price_sales_items",
    "calculate_sales_bill",
    "ensure_no_duplicate_bill",
    "recompute_sales_bill",
    "apply_payment_to_sales_bill",
    "rederive_sales_chain",
]

_UNSET = object()


def _validate_items(items: Sequence[LineItem]) -> None:
    if not items:
        raise ValidationError("A sales bill needs at least one item.")
    for i, it in enumerate(items, start=1):
        if not it.rate_per_unit_weight > 0:
            raise ValidationError(
                f"Item {i} (variety {it.variety_id}): rate per kg must be greater than zero "
                f"(got {it.rate_per_unit_weight})."
            )
        require_non_negative(it.quantity.crates, f"Item {i} crates")
        require_non_negative(it.quantity.loose_weight, f"Item {i} loose weight")
        if it.crate_weight is not None:
            require_positive(it.crate_weight, f"Item {i} crate weight")


def price_sales_items(items: Iterable[LineItem], crate_weight: float) -> tuple[PricedItem, ...]:
    priced = []
    for it in items:
        weight = it.quantity_weight(crate_weight)
        priced.append(PricedItem(
            item=it,
            actual_weight=weight,
            billable_weight=weight,
            amount=weight * it.rate_per_unit_weight,
        ))
    return tuple(priced)


def calculate_sales_bill(
    customer_id: int,
    bill_date: str,
    items: Sequence[LineItem],
    other_charges: Iterable[Deduction] = (),
    discount: float = 0.0,
    previous_balance: float = 0.0,
    payments_since_previous: Iterable[Payment] = (),
    *,
    crate_weight: float = DEFAULT_CRATE_WEIGHT_KG,
    notes: Optional[str] = None,
    bill_id: Optional[int] = None,
    bill_number: Optional[str] = None,
    is_active: bool = True,
) -> SalesBill:
    """
    Build a sales bill.

        items_total   = Σ (crates_i * crate_weight + loose_i) * rate_i
        charges_total = Σ other_charges.amount
        subtotal      = items_total + charges_total
        total         = previous_balance - Σ payments + subtotal - discount

    Raises:
        ValidationError : no items, a rate <= 0, negative quantities
    """
    items = list(items)
    charges = tuple(other_charges)
    payments = tuple(payments_since_previous)
    _validate_items(items)
    crate_weight = require_positive(crate_weight, "Crate weight")

    priced = price_sales_items(items, crate_weight)
    items_total = sum(p.amount for p in priced)
    charges_total = sum_amounts(charges)
    subtotal = items_total + charges_total
    payments_total = sum_amounts(payments)
    total = previous_balance - payments_total + subtotal - discount

    _log.debug(
        "sales bill customer=%s date=%s previous=%r payments=%r subtotal=%r total=%r",
        customer_id, bill_date, previous_balance, payments_total, subtotal, total,
    )

    return SalesBill(
        id=bill_id,
        bill_number=bill_number,
        customer_id=customer_id,
        bill_date=bill_date,
        items=priced,
        other_charges=charges,
        previous_balance=float(previous_balance),
        payments_since_previous=payments,
        payments_total=payments_total,
        items_total=items_total,
        charges_total=charges_total,
        subtotal=subtotal,
        discount=float(discount),
        total=total,
        amount_paid=0.0,
        balance_due=total,
        status=derive_sales_status(0.0, total),
        crate_weight=crate_weight,
        is_active=is_active,
        notes=notes,
    )


def ensure_no_duplicate_bill(customer_id: int, bill_date: str, existing_bills: Iterable[SalesBill]) -> None:
    """Raise DuplicateBillError if the customer already has a bill on bill_date."""
    for b in existing_bills:
        if b.customer_id == customer_id and b.bill_date == bill_date:
            raise DuplicateBillError(customer_id, bill_date, b.id)


def recompute_sales_bill(
    bill: SalesBill,
    *,
    items=_UNSET,
    other_charges=_UNSET,
    discount=_UNSET,
    previous_balance=_UNSET,
    payments_since_previous=_UNSET,
    notes=_UNSET,
) -> SalesBill:
    """
    Rebuild every figure of `bill` from new inputs (anything not passed is kept).
    The amount already paid on the bill survives; balance/status are re-derived.
    """
    rebuilt = calculate_sales_bill(
        bill.customer_id,
        bill.bill_date,
        bill.line_items if items is _UNSET else items,
        other_charges=bill.other_charges if other_charges is _UNSET else other_charges,
        discount=bill.discount if discount is _UNSET else discount,
        previous_balance=bill.previous_balance if previous_balance is _UNSET else previous_balance,
        payments_since_previous=(
            bill.payments_since_previous if payments_since_previous is _UNSET
            else payments_since_previous
        ),
        crate_weight=bill.crate_weight,
        notes=bill.notes if notes is _UNSET else notes,
        bill_id=bill.id,
        bill_number=bill.bill_number,
        is_active=bill.is_active,
    )
    return replace(
        rebuilt,
        amount_paid=bill.amount_paid,
        balance_due=rebuilt.total - bill.amount_paid,
        status=derive_sales_status(bill.amount_paid, rebuilt.total),
    )


def apply_payment_to_sales_bill(bill: SalesBill, amount: float) -> SalesBill:
    """Add (or with a negative amount, roll back) a paid amount on the bill."""
    paid = bill.amount_paid + amount
    return replace(
        bill,
        amount_paid=paid,
        balance_due=bill.total - paid,
        status=derive_sales_status(paid, bill.total),
    )


def rederive_sales_chain(bills: Iterable[SalesBill], payments: Iterable[Payment]) -> list[SalesBill]:
    """
    Recompute a customer's bills oldest first.

    - The first bill keeps its own previous_balance (opening balance).
    - Every later bill takes the previous bill's total as previous_balance.
    - Each bill keeps only those of its payments_since_previous that still
      exist in `payments` (matched by id, using the current record).
    - Only the last bill stays active.
    """
    live = {p.id: p for p in payments}
    ordered = sorted(bills, key=lambda b: (b.bill_date, b.id or 0))
    out: list[SalesBill] = []
    prev_total: Optional[float] = None
    for i, bill in enumerate(ordered):
        kept = tuple(live[p.id] for p in bill.payments_since_previous if p.id in live)
        rebuilt = recompute_sales_bill(
            bill,
            previous_balance=bill.previous_balance if prev_total is None else prev_total,
            payments_since_previous=kept,
        )
        rebuilt = replace(rebuilt, is_active=(i == len(ordered) - 1))
        out.append(rebuilt)
        prev_total = rebuilt.total
    return out
