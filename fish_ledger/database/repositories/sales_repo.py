from __future__ import annotations
from dataclasses import dataclass
import logging
import sqlite3
from typing import Iterable, Optional

from ...constants import BILLING_BILLED, BILLING_UNBILLED
from ...modules.billing.models import LineItem, Quantity
from ...utils.helpers import iso
from ...errors import ValidationError
from ...utils.validators import require_non_negative, require_positive
from .customers_repo import CustomersRepo
from .fish_varieties_repo import FishVarietiesRepo

_log = logging.getLogger(__name__)


@dataclass
class SaleRow:
    sale_id: int | None
    customer_id: int
    variety_id: int
    sale_date: str
    crates: float
    loose_weight: float
    rate_per_kg: float
    billing_status: str = BILLING_UNBILLED
    billed_in_bill_id: int | None = None
    variety_name: str | None = None


_SELECT = """
    SELECT s.sale_id, s.customer_id, s.variety_id, s.sale_date,
           CAST(s.crates AS REAL) AS crates,
           CAST(s.loose_weight AS REAL) AS loose_weight,
           CAST(s.rate_per_kg AS REAL) AS rate_per_kg,
           s.billing_status, s.billed_in_bill_id,
           v.name AS variety_name
    FROM sales s
    JOIN fish_varieties v ON v.variety_id = s.variety_id
"""


class SalesRepo:
    """
    The daily sales sheet: one row per (customer, variety, date).

    Writing a cell twice keeps the last value (upsert). A row that already
    went into a bill cannot be overwritten.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---------- Query ----------
    def get(self, sale_id: int) -> SaleRow | None:
        r = self.conn.execute(_SELECT + " WHERE s.sale_id=?", (sale_id,)).fetchone()
        return SaleRow(**r) if r else None

    def list_unbilled(self, customer_id: int, *, up_to: Optional[str] = None) -> list[SaleRow]:
        sql = _SELECT + " WHERE s.customer_id=? AND s.billing_status=?"
        params: list = [customer_id, BILLING_UNBILLED]
        if up_to:
            sql += " AND s.sale_date <= ?"
            params.append(iso(up_to))
        rows = self.conn.execute(sql + " ORDER BY s.sale_date, s.sale_id", params).fetchall()
        return [SaleRow(**r) for r in rows]

    @staticmethod
    def to_line_items(rows: Iterable[SaleRow]) -> list[LineItem]:
        return [
            LineItem(
                variety_id=r.variety_id,
                rate_per_unit_weight=float(r.rate_per_kg),
                quantity=Quantity(crates=float(r.crates), loose_weight=float(r.loose_weight)),
                variety_name=r.variety_name,
                source_ids=(int(r.sale_id),),
            )
            for r in rows
        ]

    # ---------- Mutations ----------
    def upsert(
        self,
        *,
        customer_id: int,
        variety_id: int,
        sale_date: str,
        rate_per_kg: float,
        crates: float = 0.0,
        loose_weight: float = 0.0,
    ) -> int:
        """Insert or overwrite the (customer, variety, date) cell; returns sale_id."""
        CustomersRepo(self.conn).require(customer_id)
        FishVarietiesRepo(self.conn).require(variety_id)
        rate = require_positive(rate_per_kg, "Rate per kg")
        crates = require_non_negative(crates, "Crates")
        loose_weight = require_non_negative(loose_weight, "Loose weight")
        day = iso(sale_date)

        with self.conn:
            existing = self.conn.execute(
                "SELECT sale_id, billing_status FROM sales WHERE customer_id=? AND variety_id=? AND sale_date=?",
                (customer_id, variety_id, day),
            ).fetchone()
            if existing is None:
                cur = self.conn.execute(
                    """
                    INSERT INTO sales(customer_id, variety_id, sale_date, crates, loose_weight, rate_per_kg)
                    VALUES (?,?,?,?,?,?)
                    """,
                    (customer_id, variety_id, day, crates, loose_weight, rate),
                )
                return int(cur.lastrowid)
            if existing["billing_status"] == BILLING_BILLED:
                raise ValidationError(
                    f"Sale {existing['sale_id']} is already billed; edit the bill instead."
                )
            self.conn.execute(
                "UPDATE sales SET crates=?, loose_weight=?, rate_per_kg=? WHERE sale_id=?",
                (crates, loose_weight, rate, existing["sale_id"]),
            )
            _log.debug("sale %s overwritten", existing["sale_id"])
            return int(existing["sale_id"])

    def delete_unbilled(self, sale_id: int) -> None:
        with self.conn:
            self.conn.execute(
                "DELETE FROM sales WHERE sale_id=? AND billing_status=?", (sale_id, BILLING_UNBILLED)
            )

    def mark_billed(self, sale_ids: Iterable[int], bill_id: int) -> None:
        """No commit here; the bill repo owns the transaction."""
        self.conn.executemany(
            "UPDATE sales SET billing_status=?, billed_in_bill_id=? WHERE sale_id=?",
            [(BILLING_BILLED, bill_id, sid) for sid in sale_ids],
        )

    def mark_unbilled(self, bill_id: int) -> None:
        self.conn.execute(
            "UPDATE sales SET billing_status=?, billed_in_bill_id=NULL WHERE billed_in_bill_id=?",
            (BILLING_UNBILLED, bill_id),
        )
