# fish_ledger/modules/reporting/ledger.py
"""
Party statement: bills and payments merged by date with a running balance.

Debits are what a bill adds on its own (sales: subtotal - discount;
purchase: total). Carried-forward balances are not debited again. Credits are
payments. A sales history whose first bill carries an opening
previous_balance starts with an 'opening' row.

When a date window is given, everything before `start` folds into the
opening balance and rows after `end` are dropped.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from ..billing.models import Outstanding, Payment, PurchaseBill, SalesBill
from .outstanding import summarize_outstanding

KIND_OPENING = "opening"
KIND_BILL = "bill"
KIND_PAYMENT = "payment"

# same-day ordering: opening, then bills, then payments
_KIND_ORDER = {KIND_OPENING: 0, KIND_BILL: 1, KIND_PAYMENT: 2}


@dataclass(frozen=True)
class LedgerEntry:
    date: str
    kind: str
    ref_id: Optional[int]
    reference: str
    debit: float
    credit: float
    balance: float
    status: Optional[str] = None


@dataclass(frozen=True)
class Ledger:
    party_id: int
    opening_balance: float
    entries: Tuple[LedgerEntry, ...]
    total_debit: float
    total_credit: float
    closing_balance: float
    outstanding: Outstanding


def _bill_charge(bill) -> float:
    if isinstance(bill, SalesBill):
        return bill.subtotal - bill.discount
    return bill.total


def _bill_status(bill) -> str:
    return bill.status if isinstance(bill, SalesBill) else bill.payment_status


def _raw_rows(bills, payments):
    rows = []
    first_sales = min(
        (b for b in bills if isinstance(b, SalesBill)),
        key=lambda b: (b.bill_date, b.id or 0),
        default=None,
    )
    if first_sales is not None and first_sales.previous_balance:
        rows.append((first_sales.bill_date, KIND_OPENING, None, "Opening balance",
                     first_sales.previous_balance, 0.0, None))
    for b in bills:
        rows.append((b.bill_date, KIND_BILL, b.id, b.bill_number or f"Bill #{b.id}",
                     _bill_charge(b), 0.0, _bill_status(b)))
    for p in payments:
        rows.append((p.date, KIND_PAYMENT, p.id, p.reference_number or f"Payment #{p.id}",
                     0.0, float(p.amount), None))
    rows.sort(key=lambda r: (r[0], _KIND_ORDER[r[1]], r[2] or 0))
    return rows


def build_ledger(
    party_id: int,
    bills: Iterable,
    payments: Iterable[Payment],
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> Ledger:
    bills = [b for b in bills if isinstance(b, (PurchaseBill, SalesBill))]
    payments = list(payments)

    opening = 0.0
    running = 0.0
    entries: list[LedgerEntry] = []
    for date, kind, ref_id, reference, debit, credit, st in _raw_rows(bills, payments):
        if end is not None and date > end:
            break
        running += debit - credit
        if start is not None and date < start:
            opening = running
            continue
        entries.append(LedgerEntry(date, kind, ref_id, reference, debit, credit, running, st))

    total_debit = sum(e.debit for e in entries)
    total_credit = sum(e.credit for e in entries)
    return Ledger(
        party_id=party_id,
        opening_balance=opening,
        entries=tuple(entries),
        total_debit=total_debit,
        total_credit=total_credit,
        closing_balance=opening + total_debit - total_credit,
        outstanding=summarize_outstanding(party_id, bills),
    )
