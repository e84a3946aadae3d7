# fish_ledger/modules/reporting/outstanding.py
"""
Outstanding balance per party, computed from that party's bills.

Read-side view only: recompute it whenever a bill or payment changes, never
store it as a source of truth.

- Purchase bills count while payment_status is 'pending' or 'partial'.
- Sales bills count while status is 'unpaid' and the bill is active;
  a superseded bill's balance already lives in the next bill's
  previous_balance, so counting it again would double it.
"""
from __future__ import annotations

from typing import Iterable, List

from ..billing import status as bill_status
from ..billing.models import Outstanding, PurchaseBill, SalesBill

__all__ = ["is_outstanding_bill", "open_bills", "summarize_outstanding"]


def is_outstanding_bill(bill) -> bool:
    if isinstance(bill, SalesBill):
        return bill.is_active and bill_status.is_outstanding(bill.status, sales=True)
    if isinstance(bill, PurchaseBill):
        return bill_status.is_outstanding(bill.payment_status, sales=False)
    raise TypeError(f"Not a bill: {type(bill).__name__}")


def open_bills(bills: Iterable) -> List:
    """Outstanding bills, oldest first (bill_date, id); the allocator's targets."""
    return sorted(
        (b for b in bills if is_outstanding_bill(b)),
        key=lambda b: (b.bill_date, b.id or 0),
    )


def summarize_outstanding(party_id: int, bills: Iterable) -> Outstanding:
    """
    Returns Outstanding(party_id, total_outstanding, unpaid_bills_count, oldest_bill_date).

    Raises:
        ValueError : if a bill belongs to another party
    """
    outstanding = []
    for b in bills:
        if b.party_id != party_id:
            raise ValueError(f"Bill {b.id!r} belongs to party {b.party_id}, not {party_id}")
        if is_outstanding_bill(b):
            outstanding.append(b)

    return Outstanding(
        party_id=party_id,
        total_outstanding=float(sum(b.balance_due for b in outstanding)),
        unpaid_bills_count=len(outstanding),
        oldest_bill_date=min((b.bill_date for b in outstanding), default=None),
    )
