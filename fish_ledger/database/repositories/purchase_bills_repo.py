from __future__ import annotations

import logging
from dataclasses import replace
import sqlite3
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ...config import DEFAULT_COMMISSION_PER_KG, DEFAULT_WEIGHT_DEDUCTION_PCT
from ...constants import BILL_PURCHASE, PARTY_FARMER, PURCHASE_BILL_PREFIX
from ...errors import BillNotFoundError, InvalidAmountError, ValidationError
from ...modules.billing.models import Deduction, LineItem, PricedItem, PurchaseBill, Quantity
from ...modules.billing.purchase_bill import calculate_purchase_bill, recompute_purchase_bill
from ...modules.billing.status import PURCHASE_OUTSTANDING
from ...utils.helpers import iso
from .bill_numbers_repo import BillNumbersRepo
from .farmers_repo import FarmersRepo
from .purchases_repo import PurchasesRepo

_log = logging.getLogger(__name__)

_HEADER_COLS = """
    bill_id, bill_number, farmer_id, bill_date,
    CAST(gross_amount AS REAL) AS gross_amount,
    CAST(weight_deduction_pct AS REAL) AS weight_deduction_pct,
    CAST(weight_deduction_amount AS REAL) AS weight_deduction_amount,
    CAST(subtotal AS REAL) AS subtotal,
    CAST(total_billable_weight AS REAL) AS total_billable_weight,
    CAST(commission_per_kg AS REAL) AS commission_per_kg,
    CAST(commission_amount AS REAL) AS commission_amount,
    CAST(other_deductions_total AS REAL) AS other_deductions_total,
    CAST(total AS REAL) AS total,
    CAST(amount_paid AS REAL) AS amount_paid,
    CAST(balance_due AS REAL) AS balance_due,
    payment_status, notes, location, secondary_name
"""


class PurchaseBillsRepo:
    """
    Purchase bills: what we owe each farmer for their deliveries.

    Public mutators run as one transaction (`with self.conn:`); helpers that
    say "no commit" expect the caller to hold the transaction.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.purchases = PurchasesRepo(conn)

    # ---------- Load ----------
    def _items(self, bill_id: int) -> tuple[PricedItem, ...]:
        rows = self.conn.execute(
            """
            SELECT purchase_id, variety_id, variety_name,
                   CAST(crates AS REAL) AS crates,
                   CAST(loose_weight AS REAL) AS loose_weight,
                   crate_weight,
                   CAST(actual_weight AS REAL) AS actual_weight,
                   CAST(billable_weight AS REAL) AS billable_weight,
                   CAST(rate_per_kg AS REAL) AS rate_per_kg,
                   CAST(amount AS REAL) AS amount
            FROM purchase_bill_items
            WHERE bill_id=?
            ORDER BY line_no
            """,
            (bill_id,),
        ).fetchall()
        out = []
        for r in rows:
            item = LineItem(
                variety_id=int(r["variety_id"]),
                rate_per_unit_weight=r["rate_per_kg"],
                quantity=Quantity(crates=r["crates"], loose_weight=r["loose_weight"]),
                actual_weight=r["actual_weight"],
                variety_name=r["variety_name"],
                crate_weight=r["crate_weight"],
                source_ids=(int(r["purchase_id"]),) if r["purchase_id"] is not None else (),
            )
            out.append(PricedItem(
                item=item,
                actual_weight=r["actual_weight"],
                billable_weight=r["billable_weight"],
                amount=r["amount"],
            ))
        return tuple(out)

    def _deductions(self, bill_id: int) -> tuple[Deduction, ...]:
        rows = self.conn.execute(
            "SELECT label, CAST(amount AS REAL) AS amount FROM purchase_bill_deductions "
            "WHERE bill_id=? ORDER BY deduction_id",
            (bill_id,),
        ).fetchall()
        return tuple(Deduction(label=r["label"], amount=r["amount"]) for r in rows)

    def _from_row(self, r: sqlite3.Row) -> PurchaseBill:
        bill_id = int(r["bill_id"])
        return PurchaseBill(
            id=bill_id,
            bill_number=r["bill_number"],
            farmer_id=int(r["farmer_id"]),
            bill_date=r["bill_date"],
            items=self._items(bill_id),
            gross_amount=r["gross_amount"],
            weight_deduction_pct=r["weight_deduction_pct"],
            weight_deduction_amount=r["weight_deduction_amount"],
            subtotal=r["subtotal"],
            total_billable_weight=r["total_billable_weight"],
            commission_per_unit_weight=r["commission_per_kg"],
            commission_amount=r["commission_amount"],
            other_deductions=self._deductions(bill_id),
            other_deductions_total=r["other_deductions_total"],
            total=r["total"],
            amount_paid=r["amount_paid"],
            balance_due=r["balance_due"],
            payment_status=r["payment_status"],
            notes=r["notes"],
            location=r["location"],
            secondary_name=r["secondary_name"],
        )

    # ---------- Query ----------
    def get(self, bill_id: int) -> PurchaseBill | None:
        r = self.conn.execute(
            f"SELECT {_HEADER_COLS} FROM purchase_bills WHERE bill_id=?", (bill_id,)
        ).fetchone()
        return self._from_row(r) if r else None

    def require(self, bill_id: int) -> PurchaseBill:
        bill = self.get(bill_id)
        if bill is None:
            raise BillNotFoundError(BILL_PURCHASE, bill_id)
        return bill

    def list_by_farmer(self, farmer_id: int) -> list[PurchaseBill]:
        rows = self.conn.execute(
            f"SELECT {_HEADER_COLS} FROM purchase_bills WHERE farmer_id=? "
            "ORDER BY bill_date, bill_id",
            (farmer_id,),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def list_open(self, farmer_id: int) -> list[PurchaseBill]:
        """Pending/partial bills, oldest first."""
        placeholders = ",".join("?" for _ in PURCHASE_OUTSTANDING)
        rows = self.conn.execute(
            f"SELECT {_HEADER_COLS} FROM purchase_bills "
            f"WHERE farmer_id=? AND payment_status IN ({placeholders}) "
            "ORDER BY bill_date, bill_id",
            (farmer_id, *sorted(PURCHASE_OUTSTANDING)),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    # ---------- Low-level writes (no commit) ----------
    def _write_lines(self, bill: PurchaseBill) -> None:
        self.conn.execute("DELETE FROM purchase_bill_items WHERE bill_id=?", (bill.id,))
        self.conn.execute("DELETE FROM purchase_bill_deductions WHERE bill_id=?", (bill.id,))
        self.conn.executemany(
            """
            INSERT INTO purchase_bill_items(
                bill_id, line_no, purchase_id, variety_id, variety_name, crates, loose_weight,
                crate_weight, actual_weight, billable_weight, rate_per_kg, amount
            ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            [
                (
                    bill.id, n, p.item.source_ids[0] if p.item.source_ids else None,
                    p.variety_id, p.item.variety_name, p.item.quantity.crates,
                    p.item.quantity.loose_weight, p.item.crate_weight, p.actual_weight,
                    p.billable_weight, p.rate_per_unit_weight, p.amount,
                )
                for n, p in enumerate(bill.items, start=1)
            ],
        )
        self.conn.executemany(
            "INSERT INTO purchase_bill_deductions(bill_id, label, amount) VALUES (?,?,?)",
            [(bill.id, d.label, d.amount) for d in bill.other_deductions],
        )

    def _write_header(self, bill: PurchaseBill) -> None:
        self.conn.execute(
            """
            UPDATE purchase_bills SET
                gross_amount=?, weight_deduction_pct=?, weight_deduction_amount=?, subtotal=?,
                total_billable_weight=?, commission_per_kg=?, commission_amount=?,
                other_deductions_total=?, total=?, amount_paid=?, balance_due=?,
                payment_status=?, notes=?
            WHERE bill_id=?
            """,
            (
                bill.gross_amount, bill.weight_deduction_pct, bill.weight_deduction_amount,
                bill.subtotal, bill.total_billable_weight, bill.commission_per_unit_weight,
                bill.commission_amount, bill.other_deductions_total, bill.total,
                bill.amount_paid, bill.balance_due, bill.payment_status, bill.notes, bill.id,
            ),
        )

    def save_payment_state(self, bill: PurchaseBill) -> None:
        """Persist amount_paid / balance_due / payment_status (no commit)."""
        self.conn.execute(
            "UPDATE purchase_bills SET amount_paid=?, balance_due=?, payment_status=? WHERE bill_id=?",
            (bill.amount_paid, bill.balance_due, bill.payment_status, bill.id),
        )

    # ---------- Mutations ----------
    def _line_items_for(self, farmer_id: int, purchase_ids: Optional[Sequence[int]]) -> list[LineItem]:
        unbilled = self.purchases.list_unbilled(farmer_id)
        if purchase_ids is not None:
            wanted = set(purchase_ids)
            rows = [r for r in unbilled if r.purchase_id in wanted]
            missing = wanted - {r.purchase_id for r in rows}
            if missing:
                raise ValidationError(
                    f"Purchases {sorted(missing)} are not unbilled deliveries of farmer {farmer_id}."
                )
        else:
            rows = unbilled
        return PurchasesRepo.to_line_items(rows)

    def create_bill(
        self,
        farmer_id: int,
        bill_date: str,
        *,
        purchase_ids: Optional[Sequence[int]] = None,
        items: Optional[Sequence[LineItem]] = None,
        commission_per_kg: float = DEFAULT_COMMISSION_PER_KG,
        weight_deduction_pct: float = DEFAULT_WEIGHT_DEDUCTION_PCT,
        other_deductions: Iterable[Deduction] = (),
        initial_payment: Optional[float] = None,
        payment_method: str = "cash",
        notes: Optional[str] = None,
        location: Optional[str] = None,
        secondary_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PurchaseBill:
        """
        Bill a farmer's unbilled deliveries (all of them, or `purchase_ids`).
        Pass `items` to bill ad-hoc lines instead of recorded deliveries.

        The delivery rows are marked billed and any initial payment is
        allocated to this bill first, all in one transaction.
        """
        FarmersRepo(self.conn).require(farmer_id)
        if initial_payment is not None and not float(initial_payment) > 0:
            raise InvalidAmountError(initial_payment)
        day = iso(bill_date)
        if items is None:
            items = self._line_items_for(farmer_id, purchase_ids)

        draft = calculate_purchase_bill(
            farmer_id,
            day,
            items,
            commission_per_unit_weight=commission_per_kg,
            weight_deduction_pct=weight_deduction_pct,
            other_deductions=other_deductions,
            notes=notes,
            location=location,
            secondary_name=secondary_name,
        )

        from .payments_repo import PaymentsRepo

        with self.conn:
            number = BillNumbersRepo(self.conn).next_number("purchase_bills", PURCHASE_BILL_PREFIX, now)
            cur = self.conn.execute(
                """
                INSERT INTO purchase_bills(
                    bill_number, farmer_id, bill_date, gross_amount, weight_deduction_pct,
                    weight_deduction_amount, subtotal, total_billable_weight, commission_per_kg,
                    commission_amount, other_deductions_total, total, amount_paid, balance_due,
                    payment_status, notes, location, secondary_name
                ) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?,?)
                """,
                (
                    number, farmer_id, day, draft.gross_amount, draft.weight_deduction_pct,
                    draft.weight_deduction_amount, draft.subtotal, draft.total_billable_weight,
                    draft.commission_per_unit_weight, draft.commission_amount,
                    draft.other_deductions_total, draft.total, draft.amount_paid,
                    draft.balance_due, draft.payment_status, notes, location, secondary_name,
                ),
            )
            bill_id = int(cur.lastrowid)
            bill = replace(draft, id=bill_id, bill_number=number)
            self._write_lines(bill)
            self.purchases.mark_billed(
                [sid for it in bill.line_items for sid in it.source_ids], bill_id
            )
            if initial_payment is not None:
                PaymentsRepo(self.conn).insert_and_allocate(
                    party_type=PARTY_FARMER,
                    party_id=farmer_id,
                    amount=initial_payment,
                    date=day,
                    method=payment_method,
                    notes=f"Paid with bill {number}",
                    priority_bill_id=bill_id,
                )

        _log.info("purchase bill %s created for farmer %s: total %.2f", number, farmer_id, bill.total)
        return self.require(bill_id)

    def update_bill(
        self,
        bill_id: int,
        *,
        items: Optional[Sequence[LineItem]] = None,
        commission_per_kg: Optional[float] = None,
        weight_deduction_pct: Optional[float] = None,
        other_deductions: Optional[Iterable[Deduction]] = None,
        notes: Optional[str] = None,
    ) -> PurchaseBill:
        """Full recompute from edited inputs; what was already paid stays paid."""
        bill = self.require(bill_id)
        changes: dict = {}
        if items is not None:
            changes["items"] = list(items)
        if commission_per_kg is not None:
            changes["commission_per_unit_weight"] = commission_per_kg
        if weight_deduction_pct is not None:
            changes["weight_deduction_pct"] = weight_deduction_pct
        if other_deductions is not None:
            changes["other_deductions"] = tuple(other_deductions)
        if notes is not None:
            changes["notes"] = notes
        updated = recompute_purchase_bill(bill, **changes)

        with self.conn:
            self._write_header(updated)
            self._write_lines(updated)
            if items is not None:
                self.purchases.mark_unbilled(bill_id)
                self.purchases.mark_billed(
                    [sid for it in updated.line_items for sid in it.source_ids], bill_id
                )

        if updated.balance_due < 0:
            _log.warning(
                "purchase bill %s now overpaid by %.2f after edit", updated.bill_number, -updated.balance_due
            )
        _log.info("purchase bill %s recomputed: total %.2f", updated.bill_number, updated.total)
        return self.require(bill_id)

    def delete_bill(self, bill_id: int) -> None:
        """
        Remove a bill: its deliveries go back to unbilled and the payment
        amounts allocated to it become unallocated (the payments themselves stay).
        """
        bill = self.require(bill_id)
        with self.conn:
            released = self.conn.execute(
                "SELECT COALESCE(SUM(amount), 0) FROM payment_allocations WHERE bill_type=? AND bill_id=?",
                (BILL_PURCHASE, bill_id),
            ).fetchone()[0]
            self.conn.execute(
                "DELETE FROM payment_allocations WHERE bill_type=? AND bill_id=?",
                (BILL_PURCHASE, bill_id),
            )
            self.purchases.mark_unbilled(bill_id)
            self.conn.execute("DELETE FROM purchase_bills WHERE bill_id=?", (bill_id,))
        _log.info(
            "purchase bill %s deleted; %.2f of payments released as unallocated",
            bill.bill_number, float(released or 0.0),
        )
