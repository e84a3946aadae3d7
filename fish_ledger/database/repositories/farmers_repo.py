from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...errors import UnknownReferenceError
from ...utils.validators import require_text


@dataclass
class Farmer:
    farmer_id: int | None
    name: str
    phone: str | None
    location: str | None
    is_active: int = 1


class FarmersRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def list_farmers(self, active_only: bool = True) -> list[Farmer]:
        sql = "SELECT farmer_id, name, phone, location, is_active FROM farmers "
        if active_only:
            sql += "WHERE is_active = 1 "
        rows = self.conn.execute(sql + "ORDER BY name COLLATE NOCASE, farmer_id").fetchall()
        return [Farmer(**r) for r in rows]

    def get(self, farmer_id: int) -> Farmer | None:
        r = self.conn.execute(
            "SELECT farmer_id, name, phone, location, is_active FROM farmers WHERE farmer_id=?",
            (farmer_id,),
        ).fetchone()
        return Farmer(**r) if r else None

    def require(self, farmer_id: int) -> Farmer:
        f = self.get(farmer_id)
        if f is None:
            raise UnknownReferenceError("farmer", farmer_id)
        return f

    def create(self, name: str, phone: str | None = None, location: str | None = None) -> int:
        cur = self.conn.execute(
            "INSERT INTO farmers(name, phone, location) VALUES (?, ?, ?)",
            (require_text(name, "Name"), (phone or "").strip() or None, (location or "").strip() or None),
        )
        self.conn.commit()
        return int(cur.lastrowid)

    def update(self, farmer_id: int, name: str, phone: str | None, location: str | None) -> None:
        self.require(farmer_id)
        self.conn.execute(
            "UPDATE farmers SET name=?, phone=?, location=? WHERE farmer_id=?",
            (require_text(name, "Name"), (phone or "").strip() or None, (location or "").strip() or None, farmer_id),
        )
        self.conn.commit()

    def set_active(self, farmer_id: int, active: bool) -> None:
        self.require(farmer_id)
        self.conn.execute(
            "UPDATE farmers SET is_active=? WHERE farmer_id=?", (1 if active else 0, farmer_id)
        )
        self.conn.commit()
