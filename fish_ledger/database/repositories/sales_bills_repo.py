from __future__ import annotations

from dataclasses import replace
import logging
import sqlite3
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ...config import DEFAULT_CRATE_WEIGHT_KG
from ...constants import BILL_SALES, PARTY_CUSTOMER, SALES_BILL_PREFIX
from ...errors import BillNotFoundError, DuplicateBillError, InvalidAmountError, ValidationError
from ...modules.billing.models import Deduction, LineItem, Payment, PricedItem, Quantity, SalesBill
from ...modules.billing.sales_bill import (
    calculate_sales_bill,
    ensure_no_duplicate_bill,
    recompute_sales_bill,
    rederive_sales_chain,
)
from ...utils.helpers import iso
from .bill_numbers_repo import BillNumbersRepo
from .customers_repo import CustomersRepo
from .sales_repo import SalesRepo

_log = logging.getLogger(__name__)

_HEADER_COLS = """
    bill_id, bill_number, customer_id, bill_date,
    CAST(previous_balance AS REAL) AS previous_balance,
    CAST(payments_total AS REAL) AS payments_total,
    CAST(items_total AS REAL) AS items_total,
    CAST(charges_total AS REAL) AS charges_total,
    CAST(subtotal AS REAL) AS subtotal,
    CAST(discount AS REAL) AS discount,
    CAST(total AS REAL) AS total,
    CAST(amount_paid AS REAL) AS amount_paid,
    CAST(balance_due AS REAL) AS balance_due,
    status,
    CAST(crate_weight AS REAL) AS crate_weight,
    is_active, notes
"""

_PAYMENT_COLS = """
    payment_id, party_id, party_type, date,
    CAST(amount AS REAL) AS amount,
    method, reference_number, notes
"""


def payment_from_row(r: sqlite3.Row) -> Payment:
    return Payment(
        id=int(r["payment_id"]),
        party_id=int(r["party_id"]),
        date=r["date"],
        amount=r["amount"],
        method=r["method"],
        reference_number=r["reference_number"],
        notes=r["notes"],
        party_type=r["party_type"],
    )


class SalesBillsRepo:
    """
    Sales bills with carry-forward.

    A customer has at most one active bill. Creating the next bill pulls in
    the active bill's total as previous_balance and subtracts every customer
    payment dated on/before the new bill that no earlier bill has absorbed
    yet (payments.carried_in_bill_id). The old bill is then deactivated.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.sales = SalesRepo(conn)

    # ---------- Load ----------
    def _items(self, bill_id: int) -> tuple[PricedItem, ...]:
        rows = self.conn.execute(
            """
            SELECT sale_id, variety_id, variety_name,
                   CAST(crates AS REAL) AS crates,
                   CAST(loose_weight AS REAL) AS loose_weight,
                   crate_weight,
                   CAST(weight AS REAL) AS weight,
                   CAST(rate_per_kg AS REAL) AS rate_per_kg,
                   CAST(amount AS REAL) AS amount
            FROM sales_bill_items
            WHERE bill_id=?
            ORDER BY line_no
            """,
            (bill_id,),
        ).fetchall()
        return tuple(
            PricedItem(
                item=LineItem(
                    variety_id=int(r["variety_id"]),
                    rate_per_unit_weight=r["rate_per_kg"],
                    quantity=Quantity(crates=r["crates"], loose_weight=r["loose_weight"]),
                    variety_name=r["variety_name"],
                    crate_weight=r["crate_weight"],
                    source_ids=(int(r["sale_id"]),) if r["sale_id"] is not None else (),
                ),
                actual_weight=r["weight"],
                billable_weight=r["weight"],
                amount=r["amount"],
            )
            for r in rows
        )

    def _charges(self, bill_id: int) -> tuple[Deduction, ...]:
        rows = self.conn.execute(
            "SELECT label, CAST(amount AS REAL) AS amount FROM sales_bill_charges "
            "WHERE bill_id=? ORDER BY charge_id",
            (bill_id,),
        ).fetchall()
        return tuple(Deduction(label=r["label"], amount=r["amount"]) for r in rows)

    def _carried_payments(self, bill_id: int) -> tuple[Payment, ...]:
        rows = self.conn.execute(
            f"SELECT {_PAYMENT_COLS} FROM payments WHERE carried_in_bill_id=? "
            "ORDER BY date, payment_id",
            (bill_id,),
        ).fetchall()
        return tuple(payment_from_row(r) for r in rows)

    def _from_row(self, r: sqlite3.Row) -> SalesBill:
        bill_id = int(r["bill_id"])
        return SalesBill(
            id=bill_id,
            bill_number=r["bill_number"],
            customer_id=int(r["customer_id"]),
            bill_date=r["bill_date"],
            items=self._items(bill_id),
            other_charges=self._charges(bill_id),
            previous_balance=r["previous_balance"],
            payments_since_previous=self._carried_payments(bill_id),
            payments_total=r["payments_total"],
            items_total=r["items_total"],
            charges_total=r["charges_total"],
            subtotal=r["subtotal"],
            discount=r["discount"],
            total=r["total"],
            amount_paid=r["amount_paid"],
            balance_due=r["balance_due"],
            status=r["status"],
            crate_weight=r["crate_weight"],
            is_active=bool(r["is_active"]),
            notes=r["notes"],
        )

    # ---------- Query ----------
    def get(self, bill_id: int) -> SalesBill | None:
        r = self.conn.execute(
            f"SELECT {_HEADER_COLS} FROM sales_bills WHERE bill_id=?", (bill_id,)
        ).fetchone()
        return self._from_row(r) if r else None

    def require(self, bill_id: int) -> SalesBill:
        bill = self.get(bill_id)
        if bill is None:
            raise BillNotFoundError(BILL_SALES, bill_id)
        return bill

    def list_by_customer(self, customer_id: int) -> list[SalesBill]:
        """Oldest first; the last one is the active bill."""
        rows = self.conn.execute(
            f"SELECT {_HEADER_COLS} FROM sales_bills WHERE customer_id=? "
            "ORDER BY bill_date, bill_id",
            (customer_id,),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def active_bill(self, customer_id: int) -> SalesBill | None:
        r = self.conn.execute(
            f"SELECT {_HEADER_COLS} FROM sales_bills WHERE customer_id=? AND is_active=1",
            (customer_id,),
        ).fetchone()
        return self._from_row(r) if r else None

    def list_open(self, customer_id: int) -> list[SalesBill]:
        """Allocation targets: the active bill, if anything is still owed on it."""
        bill = self.active_bill(customer_id)
        if bill is None or bill.balance_due <= 0:
            return []
        return [bill]

    def uncarried_payments(self, customer_id: int, up_to: str) -> list[Payment]:
        """Customer payments dated on/before `up_to` that no bill has absorbed yet."""
        rows = self.conn.execute(
            f"SELECT {_PAYMENT_COLS} FROM payments "
            "WHERE party_type=? AND party_id=? AND carried_in_bill_id IS NULL AND date <= ? "
            "ORDER BY date, payment_id",
            (PARTY_CUSTOMER, customer_id, up_to),
        ).fetchall()
        return [payment_from_row(r) for r in rows]

    # ---------- Low-level writes (no commit) ----------
    def _write_lines(self, bill: SalesBill) -> None:
        self.conn.execute("DELETE FROM sales_bill_items WHERE bill_id=?", (bill.id,))
        self.conn.execute("DELETE FROM sales_bill_charges WHERE bill_id=?", (bill.id,))
        self.conn.executemany(
            """
            INSERT INTO sales_bill_items(
                bill_id, line_no, sale_id, variety_id, variety_name, crates, loose_weight,
                crate_weight, weight, rate_per_kg, amount
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?)
            """,
            [
                (
                    bill.id, n, p.item.source_ids[0] if p.item.source_ids else None,
                    p.variety_id, p.item.variety_name, p.item.quantity.crates,
                    p.item.quantity.loose_weight, p.item.crate_weight, p.actual_weight,
                    p.rate_per_unit_weight, p.amount,
                )
                for n, p in enumerate(bill.items, start=1)
            ],
        )
        self.conn.executemany(
            "INSERT INTO sales_bill_charges(bill_id, label, amount) VALUES (?,?,?)",
            [(bill.id, c.label, c.amount) for c in bill.other_charges],
        )

    def _write_header(self, bill: SalesBill) -> None:
        self.conn.execute(
            """
            UPDATE sales_bills SET
                previous_balance=?, payments_total=?, items_total=?, charges_total=?,
                subtotal=?, discount=?, total=?, amount_paid=?, balance_due=?, status=?,
                is_active=?, notes=?
            WHERE bill_id=?
            """,
            (
                bill.previous_balance, bill.payments_total, bill.items_total, bill.charges_total,
                bill.subtotal, bill.discount, bill.total, bill.amount_paid, bill.balance_due,
                bill.status, 1 if bill.is_active else 0, bill.notes, bill.id,
            ),
        )

    def save_payment_state(self, bill: SalesBill) -> None:
        """Persist amount_paid / balance_due / status (no commit)."""
        self.conn.execute(
            "UPDATE sales_bills SET amount_paid=?, balance_due=?, status=? WHERE bill_id=?",
            (bill.amount_paid, bill.balance_due, bill.status, bill.id),
        )

    def recompute_chain(self, customer_id: int) -> list[SalesBill]:
        """Recompute and persist the customer's whole chain (no commit)."""
        bills = self.list_by_customer(customer_id)
        if not bills:
            return []
        live = [p for b in bills for p in b.payments_since_previous]
        chain = rederive_sales_chain(bills, live)
        # one-active index: clear first, then set the last bill
        self.conn.execute("UPDATE sales_bills SET is_active=0 WHERE customer_id=?", (customer_id,))
        for bill in chain:
            self._write_header(bill)
        return chain

    # ---------- Mutations ----------
    def _line_items_for(self, customer_id: int, bill_date: str, sale_ids: Optional[Sequence[int]]) -> list[LineItem]:
        unbilled = self.sales.list_unbilled(customer_id, up_to=bill_date)
        if sale_ids is not None:
            wanted = set(sale_ids)
            rows = [r for r in unbilled if r.sale_id in wanted]
            missing = wanted - {r.sale_id for r in rows}
            if missing:
                raise ValidationError(
                    f"Sales {sorted(missing)} are not unbilled sales of customer {customer_id}."
                )
        else:
            rows = unbilled
        return SalesRepo.to_line_items(rows)

    def create_bill(
        self,
        customer_id: int,
        bill_date: str,
        *,
        sale_ids: Optional[Sequence[int]] = None,
        items: Optional[Sequence[LineItem]] = None,
        other_charges: Iterable[Deduction] = (),
        discount: float = 0.0,
        crate_weight: float = DEFAULT_CRATE_WEIGHT_KG,
        opening_balance: float = 0.0,
        initial_payment: Optional[float] = None,
        payment_method: str = "cash",
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SalesBill:
        """
        Bill a customer's unbilled sales up to `bill_date` (or just `sale_ids`).

        `opening_balance` only applies to a customer's first bill; later bills
        take the active bill's total instead.

        Raises:
            DuplicateBillError : the customer already has a bill on bill_date
            ValidationError    : bill_date is before the active bill, no items...
        """
        CustomersRepo(self.conn).require(customer_id)
        if initial_payment is not None and not float(initial_payment) > 0:
            raise InvalidAmountError(initial_payment)
        day = iso(bill_date)

        ensure_no_duplicate_bill(customer_id, day, self.list_by_customer(customer_id))
        previous = self.active_bill(customer_id)
        if previous is not None and day < previous.bill_date:
            raise ValidationError(
                f"Bill date {day} is before the customer's latest bill ({previous.bill_date})."
            )
        if items is None:
            items = self._line_items_for(customer_id, day, sale_ids)
        carried = self.uncarried_payments(customer_id, day)

        draft = calculate_sales_bill(
            customer_id,
            day,
            items,
            other_charges=other_charges,
            discount=discount,
            previous_balance=previous.total if previous is not None else opening_balance,
            payments_since_previous=carried,
            crate_weight=crate_weight,
            notes=notes,
        )

        from .payments_repo import PaymentsRepo

        with self.conn:
            number = BillNumbersRepo(self.conn).next_number("sales_bills", SALES_BILL_PREFIX, now)
            if previous is not None:
                self.conn.execute("UPDATE sales_bills SET is_active=0 WHERE bill_id=?", (previous.id,))
            try:
                cur = self.conn.execute(
                    """
                    INSERT INTO sales_bills(
                        bill_number, customer_id, bill_date, previous_balance, payments_total,
                        items_total, charges_total, subtotal, discount, total, amount_paid,
                        balance_due, status, crate_weight, is_active, notes
                    ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,1,?)
                    """,
                    (
                        number, customer_id, day, draft.previous_balance, draft.payments_total,
                        draft.items_total, draft.charges_total, draft.subtotal, draft.discount,
                        draft.total, draft.amount_paid, draft.balance_due, draft.status,
                        draft.crate_weight, notes,
                    ),
                )
            except sqlite3.IntegrityError as e:
                # lost a race with another writer for the same (customer, date)
                raise DuplicateBillError(customer_id, day) from e
            bill_id = int(cur.lastrowid)
            bill = replace(draft, id=bill_id, bill_number=number)
            self._write_lines(bill)
            self.sales.mark_billed([sid for it in bill.line_items for sid in it.source_ids], bill_id)
            self.conn.executemany(
                "UPDATE payments SET carried_in_bill_id=? WHERE payment_id=?",
                [(bill_id, p.id) for p in carried],
            )
            if initial_payment is not None:
                PaymentsRepo(self.conn).insert_and_allocate(
                    party_type=PARTY_CUSTOMER,
                    party_id=customer_id,
                    amount=initial_payment,
                    date=day,
                    method=payment_method,
                    notes=f"Paid with bill {number}",
                    priority_bill_id=bill_id,
                )

        _log.info(
            "sales bill %s created for customer %s: previous %.2f, payments %.2f, total %.2f",
            number, customer_id, bill.previous_balance, bill.payments_total, bill.total,
        )
        return self.require(bill_id)

    def update_bill(
        self,
        bill_id: int,
        *,
        items: Optional[Sequence[LineItem]] = None,
        other_charges: Optional[Iterable[Deduction]] = None,
        discount: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> SalesBill:
        """Recompute the bill from edited inputs, then every later bill of the customer."""
        bill = self.require(bill_id)
        changes: dict = {}
        if items is not None:
            changes["items"] = list(items)
        if other_charges is not None:
            changes["other_charges"] = tuple(other_charges)
        if discount is not None:
            changes["discount"] = discount
        if notes is not None:
            changes["notes"] = notes
        updated = recompute_sales_bill(bill, **changes)

        with self.conn:
            self._write_header(updated)
            self._write_lines(updated)
            if items is not None:
                self.sales.mark_unbilled(bill_id)
                self.sales.mark_billed([sid for it in updated.line_items for sid in it.source_ids], bill_id)
            self.recompute_chain(bill.customer_id)

        _log.info("sales bill %s recomputed; chain of customer %s re-derived", bill.bill_number, bill.customer_id)
        return self.require(bill_id)

    def rederive_chain(self, customer_id: int) -> list[SalesBill]:
        with self.conn:
            chain = self.recompute_chain(customer_id)
        _log.info("re-derived %d sales bill(s) for customer %s", len(chain), customer_id)
        return chain

    def delete_bill(self, bill_id: int) -> None:
        """
        Remove a bill and heal the chain:
          - its sales rows go back to unbilled
          - payments it absorbed move to the next bill, or are released if it was the last
          - the previous bill becomes active again if this one was active
          - payment amounts allocated to it are re-allocated if their payment
            is no longer absorbed by any bill
        """
        bill = self.require(bill_id)
        chain = self.list_by_customer(bill.customer_id)
        idx = next(i for i, b in enumerate(chain) if b.id == bill_id)
        nxt = chain[idx + 1] if idx + 1 < len(chain) else None

        from .payments_repo import PaymentsRepo

        payments = PaymentsRepo(self.conn)
        with self.conn:
            self.conn.execute(
                "UPDATE payments SET carried_in_bill_id=? WHERE carried_in_bill_id=?",
                (nxt.id if nxt is not None else None, bill_id),
            )
            if nxt is not None and idx == 0:
                # the next bill becomes the first; it inherits the opening balance
                self.conn.execute(
                    "UPDATE sales_bills SET previous_balance=? WHERE bill_id=?",
                    (bill.previous_balance, nxt.id),
                )
            released = self.conn.execute(
                "SELECT a.payment_id, CAST(a.amount AS REAL) AS amount, p.carried_in_bill_id "
                "FROM payment_allocations a JOIN payments p ON p.payment_id = a.payment_id "
                "WHERE a.bill_type=? AND a.bill_id=?",
                (BILL_SALES, bill_id),
            ).fetchall()
            self.conn.execute(
                "DELETE FROM payment_allocations WHERE bill_type=? AND bill_id=?",
                (BILL_SALES, bill_id),
            )
            self.sales.mark_unbilled(bill_id)
            self.conn.execute("DELETE FROM sales_bills WHERE bill_id=?", (bill_id,))
            self.recompute_chain(bill.customer_id)
            for r in released:
                if r["carried_in_bill_id"] is None:
                    payments.reallocate(int(r["payment_id"]), r["amount"])

        _log.info(
            "sales bill %s deleted; %d allocation(s) released", bill.bill_number, len(released)
        )
