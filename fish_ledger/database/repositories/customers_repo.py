from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...errors import UnknownReferenceError
from ...utils.validators import require_text


@dataclass
class Customer:
    customer_id: int | None
    name: str
    phone: str | None
    address: str | None
    is_active: int = 1


class CustomersRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    # ---- Internal helpers -------------------------------------------------

    @staticmethod
    def _normalize_text(s: str | None) -> str | None:
        if s is None:
            return None
        s = s.strip()
        return s or None

    # ---- Queries ----------------------------------------------------------

    def list_customers(self, active_only: bool = True) -> list[Customer]:
        """
        Returns customers ordered by name. By default, only active rows (is_active=1).
        """
        sql = "SELECT customer_id, name, phone, address, is_active FROM customers "
        if active_only:
            sql += "WHERE is_active = 1 "
        rows = self.conn.execute(sql + "ORDER BY name COLLATE NOCASE, customer_id").fetchall()
        return [Customer(**r) for r in rows]

    def search(self, term: str, active_only: bool = True) -> list[Customer]:
        """LIKE match over id/name/phone/address."""
        pattern = f"%{term.strip()}%"
        sql = (
            "SELECT customer_id, name, phone, address, is_active "
            "FROM customers "
            "WHERE (CAST(customer_id AS TEXT) LIKE ? OR name LIKE ? OR phone LIKE ? OR address LIKE ?) "
        )
        if active_only:
            sql += "AND is_active = 1 "
        rows = self.conn.execute(
            sql + "ORDER BY name COLLATE NOCASE", (pattern, pattern, pattern, pattern)
        ).fetchall()
        return [Customer(**r) for r in rows]

    def get(self, customer_id: int) -> Customer | None:
        r = self.conn.execute(
            "SELECT customer_id, name, phone, address, is_active "
            "FROM customers WHERE customer_id=?",
            (customer_id,),
        ).fetchone()
        return Customer(**r) if r else None

    def require(self, customer_id: int) -> Customer:
        c = self.get(customer_id)
        if c is None:
            raise UnknownReferenceError("customer", customer_id)
        return c

    # ---- Mutations --------------------------------------------------------

    def create(self, name: str, phone: str | None = None, address: str | None = None) -> int:
        name_n = require_text(name, "Name")
        cur = self.conn.execute(
            "INSERT INTO customers(name, phone, address) VALUES (?,?,?)",
            (name_n, self._normalize_text(phone), self._normalize_text(address)),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def update(self, customer_id: int, name: str, phone: str | None, address: str | None) -> None:
        self.require(customer_id)
        name_n = require_text(name, "Name")
        self.conn.execute(
            "UPDATE customers SET name=?, phone=?, address=? WHERE customer_id=?",
            (name_n, self._normalize_text(phone), self._normalize_text(address), customer_id),
        )
        self.conn.commit()

    def set_active(self, customer_id: int, active: bool) -> None:
        """Soft delete/restore; bills keep pointing at the row."""
        self.require(customer_id)
        self.conn.execute(
            "UPDATE customers SET is_active=? WHERE customer_id=?",
            (1 if active else 0, customer_id),
        )
        self.conn.commit()
