"""
payments/allocator.py

Splits a single incoming payment across a party's open bills.

- Greedy, oldest first: ascending bill_date, ties broken by ascending id.
- A "priority" bill (the one being created when the payment is taken) goes
  first regardless of its date.
- Each bill absorbs at most what is still open on it (total - amount_paid;
  equal to total for an unpaid bill). Bills with nothing open are skipped.
- Whatever is left after the last bill is reported as excess; the caller
  records it as an advance not tied to any bill.

Pure functions; no DB. Bills may be dataclasses (PurchaseBill / SalesBill)
or plain dicts with the same keys.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Sequence

from ...errors import InvalidAmountError
from ..billing.models import Allocation, AllocationResult, PurchaseBill, SalesBill
from ..billing.purchase_bill import apply_payment_to_purchase_bill
from ..billing.sales_bill import apply_payment_to_sales_bill

_log = logging.getLogger(__name__)

__all__ = [
    "open_amount",
    "allocation_order",
    "allocate_payment",
    "apply_allocations",
    "rollback_allocations",
]


def _get(bill: Any, key: str, default: Any = None) -> Any:
    if isinstance(bill, Mapping):
        return bill.get(key, default)
    return getattr(bill, key, default)


def open_amount(bill: Any) -> float:
    """What is still collectable/payable on a bill: total - amount_paid."""
    return float(_get(bill, "total", 0.0) or 0.0) - float(_get(bill, "amount_paid", 0.0) or 0.0)


def allocation_order(bills: Iterable[Any], priority_bill_id: Optional[int] = None) -> List[Any]:
    """Oldest first (bill_date, id); the priority bill, if present, moves to the front."""
    ordered = sorted(bills, key=lambda b: (str(_get(b, "bill_date") or ""), _get(b, "id") or 0))
    if priority_bill_id is None:
        return ordered
    front = [b for b in ordered if _get(b, "id") == priority_bill_id]
    if not front:
        _log.debug("priority bill %s is not among the open bills; using date order", priority_bill_id)
        return ordered
    return front + [b for b in ordered if _get(b, "id") != priority_bill_id]


def allocate_payment(
    amount: float,
    open_bills: Sequence[Any],
    priority_bill_id: Optional[int] = None,
) -> AllocationResult:
    """
    Returns AllocationResult(requested_amount, allocations, excess_amount) where
    Σ allocated_amount + excess_amount == amount.

    Raises:
        InvalidAmountError : if amount <= 0
    """
    if amount is None or not float(amount) > 0:
        raise InvalidAmountError(amount)
    requested = float(amount)

    remaining = requested
    allocations: list[Allocation] = []
    for bill in allocation_order(open_bills, priority_bill_id):
        if remaining <= 0:
            break
        headroom = open_amount(bill)
        if headroom <= 0:
            continue
        allocated = min(remaining, headroom)
        if allocated > 0:
            allocations.append(Allocation(bill_id=_get(bill, "id"), allocated_amount=allocated))
            remaining -= allocated

    excess = remaining if remaining > 0 else 0.0
    _log.debug(
        "allocated %r across %d bill(s); excess %r", requested - excess, len(allocations), excess
    )
    return AllocationResult(
        requested_amount=requested,
        allocations=tuple(allocations),
        excess_amount=excess,
    )


def _apply(bill, amount: float):
    if isinstance(bill, PurchaseBill):
        return apply_payment_to_purchase_bill(bill, amount)
    if isinstance(bill, SalesBill):
        return apply_payment_to_sales_bill(bill, amount)
    raise TypeError(f"Cannot apply a payment to {type(bill).__name__}")


def apply_allocations(bills: Iterable[Any], allocations: Iterable[Allocation]) -> list:
    """Return the bills touched by `allocations`, with amount_paid/balance/status updated."""
    by_id = {b.id: b for b in bills}
    touched: dict = {}
    for a in allocations:
        current = touched.get(a.bill_id, by_id.get(a.bill_id))
        if current is None:
            raise KeyError(f"Allocation refers to unknown bill id {a.bill_id!r}")
        touched[a.bill_id] = _apply(current, a.allocated_amount)
    return list(touched.values())


def rollback_allocations(bills: Iterable[Any], allocations: Iterable[Allocation]) -> list:
    """Inverse of apply_allocations: take each allocated amount back off its bill."""
    return apply_allocations(
        bills, (Allocation(a.bill_id, -a.allocated_amount) for a in allocations)
    )
