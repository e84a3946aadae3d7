"""
billing/purchase_bill.py

Turns a farmer's purchase line items into a PurchaseBill.

Order of operations matters: the weight deduction is applied per line first,
and commission is charged on the *billable* weight. Commission is ADDED to
the bill (it compensates the trader); other deductions are subtracted.

Pure functions; no DB. Persistence lives in
database.repositories.purchase_bills_repo.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from ...config import (
    DEFAULT_COMMISSION_PER_KG,
    DEFAULT_CRATE_WEIGHT_KG,
    DEFAULT_WEIGHT_DEDUCTION_PCT,
)
from ...errors import InvalidAmountError, ValidationError
from ...utils.validators import require_non_negative, require_percentage
from .arithmetic import billable_weight, percentage_of, sum_amounts
from .models import Deduction, LineItem, Payment, PricedItem, PurchaseBill
from .status import derive_payment_status

_log = logging.getLogger(__name__)

__all__ = [
    "price_purchase_items",
    "calculate_purchase_bill",
    "recompute_purchase_bill",
    "apply_payment_to_purchase_bill",
]

_UNSET = object()


def _validate_items(items: Sequence[LineItem]) -> None:
    if not items:
        raise ValidationError("A purchase bill needs at least one item.")
    for i, it in enumerate(items, start=1):
        if not it.rate_per_unit_weight > 0:
            raise ValidationError(
                f"Item {i} (variety {it.variety_id}): rate per kg must be greater than zero "
                f"(got {it.rate_per_unit_weight})."
            )
        if it.actual_weight is not None:
            require_non_negative(it.actual_weight, f"Item {i} actual weight")
        require_non_negative(it.quantity.crates, f"Item {i} crates")
        require_non_negative(it.quantity.loose_weight, f"Item {i} loose weight")


def price_purchase_items(
    items: Iterable[LineItem],
    weight_deduction_pct: float,
    *,
    crate_weight: float = DEFAULT_CRATE_WEIGHT_KG,
) -> tuple[PricedItem, ...]:
    """Step 1: billable weight and amount per line."""
    priced = []
    for it in items:
        actual = it.weight(crate_weight)
        billable = billable_weight(actual, weight_deduction_pct)
        priced.append(PricedItem(
            item=it,
            actual_weight=actual,
            billable_weight=billable,
            amount=billable * it.rate_per_unit_weight,
        ))
    return tuple(priced)


def calculate_purchase_bill(
    farmer_id: int,
    bill_date: str,
    items: Sequence[LineItem],
    commission_per_unit_weight: float = DEFAULT_COMMISSION_PER_KG,
    weight_deduction_pct: float = DEFAULT_WEIGHT_DEDUCTION_PCT,
    other_deductions: Iterable[Deduction] = (),
    initial_payment: Optional[Payment] = None,
    *,
    notes: Optional[str] = None,
    location: Optional[str] = None,
    secondary_name: Optional[str] = None,
    bill_id: Optional[int] = None,
    bill_number: Optional[str] = None,
    crate_weight: float = DEFAULT_CRATE_WEIGHT_KG,
) -> PurchaseBill:
    """
    Build a purchase bill.

        gross        = Σ actual_i * rate_i                 (informational)
        weight_ded   = gross * pct / 100
        subtotal     = Σ billable_i * rate_i
        commission   = Σ billable_i * commission_per_kg    (ADDED)
        total        = subtotal + commission - Σ other_deductions
        balance_due  = total - amount_paid

    Raises:
        ValidationError    : no items, a rate <= 0, a negative weight/commission,
                             or a deduction percentage outside [0, 100]
        InvalidAmountError : initial_payment with amount <= 0
    """
    items = list(items)
    deductions = tuple(other_deductions)
    _validate_items(items)
    pct = require_percentage(weight_deduction_pct, "Weight deduction %")
    commission_rate = require_non_negative(commission_per_unit_weight, "Commission per kg")

    priced = price_purchase_items(items, pct, crate_weight=crate_weight)

    gross_amount = sum(p.actual_weight * p.rate_per_unit_weight for p in priced)
    weight_deduction_amount = percentage_of(gross_amount, pct)
    subtotal = sum(p.amount for p in priced)
    total_billable_weight = sum(p.billable_weight for p in priced)
    commission_amount = total_billable_weight * commission_rate
    other_deductions_total = sum_amounts(deductions)
    total = subtotal + commission_amount - other_deductions_total

    amount_paid = 0.0
    if initial_payment is not None:
        if not initial_payment.amount > 0:
            raise InvalidAmountError(initial_payment.amount)
        amount_paid = float(initial_payment.amount)

    _log.debug(
        "purchase bill farmer=%s date=%s subtotal=%r commission=%r total=%r",
        farmer_id, bill_date, subtotal, commission_amount, total,
    )

    return PurchaseBill(
        id=bill_id,
        bill_number=bill_number,
        farmer_id=farmer_id,
        bill_date=bill_date,
        items=priced,
        gross_amount=gross_amount,
        weight_deduction_pct=pct,
        weight_deduction_amount=weight_deduction_amount,
        subtotal=subtotal,
        total_billable_weight=total_billable_weight,
        commission_per_unit_weight=commission_rate,
        commission_amount=commission_amount,
        other_deductions=deductions,
        other_deductions_total=other_deductions_total,
        total=total,
        amount_paid=amount_paid,
        balance_due=total - amount_paid,
        payment_status=derive_payment_status(amount_paid, total),
        notes=notes,
        location=location,
        secondary_name=secondary_name,
    )


def recompute_purchase_bill(
    bill: PurchaseBill,
    *,
    items=_UNSET,
    commission_per_unit_weight=_UNSET,
    weight_deduction_pct=_UNSET,
    other_deductions=_UNSET,
    notes=_UNSET,
    crate_weight: float = DEFAULT_CRATE_WEIGHT_KG,
) -> PurchaseBill:
    """
    Rebuild every figure of `bill` from new inputs (anything not passed is kept).

    Identity (id, number, farmer, date) and the amount already paid survive;
    balance_due and payment_status are re-derived against the new total.
    """
    rebuilt = calculate_purchase_bill(
        bill.farmer_id,
        bill.bill_date,
        bill.line_items if items is _UNSET else items,
        commission_per_unit_weight=(
            bill.commission_per_unit_weight if commission_per_unit_weight is _UNSET
            else commission_per_unit_weight
        ),
        weight_deduction_pct=(
            bill.weight_deduction_pct if weight_deduction_pct is _UNSET else weight_deduction_pct
        ),
        other_deductions=bill.other_deductions if other_deductions is _UNSET else other_deductions,
        notes=bill.notes if notes is _UNSET else notes,
        location=bill.location,
        secondary_name=bill.secondary_name,
        bill_id=bill.id,
        bill_number=bill.bill_number,
        crate_weight=crate_weight,
    )
    return replace(
        rebuilt,
        amount_paid=bill.amount_paid,
        balance_due=rebuilt.total - bill.amount_paid,
        payment_status=derive_payment_status(bill.amount_paid, rebuilt.total),
    )


def apply_payment_to_purchase_bill(bill: PurchaseBill, amount: float) -> PurchaseBill:
    """
    Add `amount` to what has been paid on the bill (a negative amount rolls a
    previous allocation back) and re-derive balance_due / payment_status.
    """
    paid = bill.amount_paid + amount
    return replace(
        bill,
        amount_paid=paid,
        balance_due=bill.total - paid,
        payment_status=derive_payment_status(paid, bill.total),
    )
