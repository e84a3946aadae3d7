from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from ...constants import BILL_PURCHASE, BILL_SALES, PARTY_CUSTOMER, PARTY_FARMER, PARTY_TYPES, PAYMENT_METHODS
from ...errors import InvalidAmountError, PaymentNotFoundError, ValidationError
from ...modules.billing.models import Allocation, AllocationResult, Payment
from ...modules.payments.allocator import allocate_payment, apply_allocations, rollback_allocations
from ...utils.helpers import iso, today_str
from .customers_repo import CustomersRepo
from .farmers_repo import FarmersRepo
from .purchase_bills_repo import PurchaseBillsRepo
from .sales_bills_repo import SalesBillsRepo, payment_from_row

_log = logging.getLogger(__name__)

_BILL_TYPE_FOR_PARTY = {PARTY_FARMER: BILL_PURCHASE, PARTY_CUSTOMER: BILL_SALES}


class PaymentsRepo:
    """
    Payments from customers and to farmers.

    A payment is stored once and split across the party's open bills by the
    allocator; each split is a payment_allocations row. Whatever the bills
    could not absorb stays on the payment as unallocated (an advance).
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---------- Helpers ----------
    def _bills_repo(self, party_type: str):
        if party_type == PARTY_FARMER:
            return PurchaseBillsRepo(self.conn)
        return SalesBillsRepo(self.conn)

    def _require_party(self, party_type: str, party_id: int) -> None:
        if party_type == PARTY_FARMER:
            FarmersRepo(self.conn).require(party_id)
        elif party_type == PARTY_CUSTOMER:
            CustomersRepo(self.conn).require(party_id)
        else:
            raise ValidationError(f"party_type must be one of: {', '.join(PARTY_TYPES)}")

    @staticmethod
    def _normalize_method(method: str) -> str:
        m = (method or "").strip().lower().replace(" ", "_")
        if m not in PAYMENT_METHODS:
            raise ValidationError(f"Payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        return m

    def _apply(self, party_type: str, party_id: int, payment_id: int, amount: float,
               priority_bill_id: Optional[int]) -> AllocationResult:
        """Allocate `amount` of a stored payment and persist the result (no commit)."""
        repo = self._bills_repo(party_type)
        open_bills = repo.list_open(party_id)
        result = allocate_payment(amount, open_bills, priority_bill_id)
        for bill in apply_allocations(open_bills, result.allocations):
            repo.save_payment_state(bill)
        self.conn.executemany(
            "INSERT INTO payment_allocations(payment_id, bill_type, bill_id, amount) VALUES (?,?,?,?)",
            [
                (payment_id, _BILL_TYPE_FOR_PARTY[party_type], a.bill_id, a.allocated_amount)
                for a in result.allocations
            ],
        )
        return result

    # ---------- Query ----------
    def get(self, payment_id: int) -> Payment | None:
        r = self.conn.execute(
            "SELECT payment_id, party_id, party_type, date, CAST(amount AS REAL) AS amount, "
            "method, reference_number, notes FROM payments WHERE payment_id=?",
            (payment_id,),
        ).fetchone()
        return payment_from_row(r) if r else None

    def require(self, payment_id: int) -> Payment:
        p = self.get(payment_id)
        if p is None:
            raise PaymentNotFoundError(payment_id)
        return p

    def list_by_party(self, party_type: str, party_id: int) -> list[Payment]:
        rows = self.conn.execute(
            "SELECT payment_id, party_id, party_type, date, CAST(amount AS REAL) AS amount, "
            "method, reference_number, notes FROM payments "
            "WHERE party_type=? AND party_id=? ORDER BY date, payment_id",
            (party_type, party_id),
        ).fetchall()
        return [payment_from_row(r) for r in rows]

    def allocations_for(self, payment_id: int) -> list[Allocation]:
        rows = self.conn.execute(
            "SELECT bill_id, CAST(amount AS REAL) AS amount FROM payment_allocations "
            "WHERE payment_id=? ORDER BY allocation_id",
            (payment_id,),
        ).fetchall()
        return [Allocation(bill_id=int(r["bill_id"]), allocated_amount=r["amount"]) for r in rows]

    def unallocated_amount(self, payment_id: int) -> float:
        """The part of the payment no bill absorbed (advance / credit)."""
        p = self.require(payment_id)
        return p.amount - sum(a.allocated_amount for a in self.allocations_for(payment_id))

    # ---------- Mutations ----------
    def insert_and_allocate(
        self,
        *,
        party_type: str,
        party_id: int,
        amount: float,
        date: Optional[str] = None,
        method: str = "cash",
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
        priority_bill_id: Optional[int] = None,
    ) -> tuple[int, AllocationResult]:
        """
        Store a payment and allocate it across open bills.
        No commit here; caller controls the transaction boundary.
        """
        if amount is None or not float(amount) > 0:
            raise InvalidAmountError(amount)
        self._require_party(party_type, party_id)
        method = self._normalize_method(method)
        day = iso(date) if date else today_str()

        cur = self.conn.execute(
            """
            INSERT INTO payments(party_type, party_id, date, amount, method, reference_number, notes)
            VALUES (?,?,?,?,?,?,?)
            """,
            (party_type, party_id, day, float(amount), method, reference_number, notes),
        )
        payment_id = int(cur.lastrowid)
        result = self._apply(party_type, party_id, payment_id, float(amount), priority_bill_id)

        _log.info(
            "payment %s (%s %s, %.2f) allocated to %d bill(s)",
            payment_id, party_type, party_id, float(amount), len(result.allocations),
        )
        if result.excess_amount > 0:
            _log.warning(
                "payment %s exceeds open bills of %s %s by %.2f; kept as unallocated",
                payment_id, party_type, party_id, result.excess_amount,
            )
        return payment_id, result

    def record_payment(
        self,
        *,
        party_type: str,
        party_id: int,
        amount: float,
        date: Optional[str] = None,
        method: str = "cash",
        reference_number: Optional[str] = None,
        notes: Optional[str] = None,
        priority_bill_id: Optional[int] = None,
    ) -> tuple[int, AllocationResult]:
        """
        Record a payment in its own transaction. Returns (payment_id, AllocationResult).

        Raises:
            InvalidAmountError    : amount <= 0
            UnknownReferenceError : party does not exist
            ValidationError       : unknown party_type or method
        """
        with self.conn:
            return self.insert_and_allocate(
                party_type=party_type,
                party_id=party_id,
                amount=amount,
                date=date,
                method=method,
                reference_number=reference_number,
                notes=notes,
                priority_bill_id=priority_bill_id,
            )

    def reallocate(self, payment_id: int, amount: float) -> AllocationResult:
        """Allocate a released part of an existing payment again (no commit)."""
        p = self.require(payment_id)
        return self._apply(p.party_type, p.party_id, payment_id, amount, None)

    def delete_payment(self, payment_id: int) -> None:
        """
        Roll back every allocation of the payment, delete it, and for customer
        payments re-derive the sales chain (the payment may have been carried
        into a bill's total).
        """
        payment = self.require(payment_id)
        allocations = self.allocations_for(payment_id)
        bill_ids = {a.bill_id for a in allocations}

        with self.conn:
            if payment.party_type == PARTY_FARMER:
                repo = PurchaseBillsRepo(self.conn)
                bills = [repo.require(bid) for bid in bill_ids]
            else:
                repo = SalesBillsRepo(self.conn)
                bills = [repo.require(bid) for bid in bill_ids]
            for bill in rollback_allocations(bills, allocations):
                repo.save_payment_state(bill)
            self.conn.execute("DELETE FROM payment_allocations WHERE payment_id=?", (payment_id,))
            self.conn.execute("DELETE FROM payments WHERE payment_id=?", (payment_id,))
            if payment.party_type == PARTY_CUSTOMER:
                SalesBillsRepo(self.conn).recompute_chain(payment.party_id)

        _log.info(
            "payment %s deleted; %d allocation(s) rolled back", payment_id, len(allocations)
        )
