from __future__ import annotations
from dataclasses import dataclass
import logging
import sqlite3
from typing import Iterable, Optional

from ...constants import BILLING_BILLED, BILLING_UNBILLED
from ...modules.billing.models import LineItem, Quantity
from ...utils.helpers import iso
from ...utils.validators import require_non_negative, require_positive
from .farmers_repo import FarmersRepo
from .fish_varieties_repo import FishVarietiesRepo

_log = logging.getLogger(__name__)


@dataclass
class PurchaseRow:
    purchase_id: int | None
    farmer_id: int
    variety_id: int
    purchase_date: str
    crates: float
    loose_weight: float
    actual_weight: float | None
    rate_per_kg: float
    billing_status: str = BILLING_UNBILLED
    billed_in_bill_id: int | None = None
    notes: str | None = None
    variety_name: str | None = None


_SELECT = """
    SELECT p.purchase_id, p.farmer_id, p.variety_id, p.purchase_date,
           CAST(p.crates AS REAL) AS crates,
           CAST(p.loose_weight AS REAL) AS loose_weight,
           p.actual_weight,
           CAST(p.rate_per_kg AS REAL) AS rate_per_kg,
           p.billing_status, p.billed_in_bill_id, p.notes,
           v.name AS variety_name
    FROM purchases p
    JOIN fish_varieties v ON v.variety_id = p.variety_id
"""


class PurchasesRepo:
    """Raw deliveries from farmers, waiting to be rolled into a purchase bill."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---------- Query ----------
    def get(self, purchase_id: int) -> PurchaseRow | None:
        r = self.conn.execute(_SELECT + " WHERE p.purchase_id=?", (purchase_id,)).fetchone()
        return PurchaseRow(**r) if r else None

    def list_unbilled(
        self,
        farmer_id: int,
        *,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> list[PurchaseRow]:
        sql = _SELECT + " WHERE p.farmer_id=? AND p.billing_status=?"
        params: list = [farmer_id, BILLING_UNBILLED]
        if date_from:
            sql += " AND p.purchase_date >= ?"
            params.append(iso(date_from))
        if date_to:
            sql += " AND p.purchase_date <= ?"
            params.append(iso(date_to))
        rows = self.conn.execute(sql + " ORDER BY p.purchase_date, p.purchase_id", params).fetchall()
        return [PurchaseRow(**r) for r in rows]

    def list_for_bill(self, bill_id: int) -> list[PurchaseRow]:
        rows = self.conn.execute(
            _SELECT + " WHERE p.billed_in_bill_id=? ORDER BY p.purchase_id", (bill_id,)
        ).fetchall()
        return [PurchaseRow(**r) for r in rows]

    @staticmethod
    def to_line_items(rows: Iterable[PurchaseRow]) -> list[LineItem]:
        """One bill line per delivery row, remembering the row id."""
        return [
            LineItem(
                variety_id=r.variety_id,
                rate_per_unit_weight=float(r.rate_per_kg),
                quantity=Quantity(crates=float(r.crates), loose_weight=float(r.loose_weight)),
                actual_weight=None if r.actual_weight is None else float(r.actual_weight),
                variety_name=r.variety_name,
                source_ids=(int(r.purchase_id),),
            )
            for r in rows
        ]

    # ---------- Mutations ----------
    def record(
        self,
        *,
        farmer_id: int,
        variety_id: int,
        purchase_date: str,
        rate_per_kg: float,
        crates: float = 0.0,
        loose_weight: float = 0.0,
        actual_weight: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> int:
        FarmersRepo(self.conn).require(farmer_id)
        FishVarietiesRepo(self.conn).require(variety_id)
        rate = require_positive(rate_per_kg, "Rate per kg")
        crates = require_non_negative(crates, "Crates")
        loose_weight = require_non_negative(loose_weight, "Loose weight")
        if actual_weight is not None:
            actual_weight = require_non_negative(actual_weight, "Actual weight")

        cur = self.conn.execute(
            """
            INSERT INTO purchases(
                farmer_id, variety_id, purchase_date, crates, loose_weight,
                actual_weight, rate_per_kg, notes
            ) VALUES (?,?,?,?,?,?,?,?)
            """,
            (farmer_id, variety_id, iso(purchase_date), crates, loose_weight, actual_weight, rate, notes),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def mark_billed(self, purchase_ids: Iterable[int], bill_id: int) -> None:
        """No commit here; the bill repo owns the transaction."""
        ids = list(purchase_ids)
        self.conn.executemany(
            "UPDATE purchases SET billing_status=?, billed_in_bill_id=? WHERE purchase_id=?",
            [(BILLING_BILLED, bill_id, pid) for pid in ids],
        )
        _log.debug("purchases %s billed in bill %s", ids, bill_id)

    def mark_unbilled(self, bill_id: int) -> None:
        """Release every row billed in `bill_id` (no commit)."""
        self.conn.execute(
            "UPDATE purchases SET billing_status=?, billed_in_bill_id=NULL WHERE billed_in_bill_id=?",
            (BILLING_UNBILLED, bill_id),
        )
