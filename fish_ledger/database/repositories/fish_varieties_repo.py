from __future__ import annotations
from dataclasses import dataclass
import sqlite3

from ...errors import UnknownReferenceError, ValidationError
from ...utils.validators import require_text


@dataclass
class FishVariety:
    variety_id: int | None
    name: str
    is_active: int = 1


class FishVarietiesRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def list_varieties(self, active_only: bool = True) -> list[FishVariety]:
        sql = "SELECT variety_id, name, is_active FROM fish_varieties "
        if active_only:
            sql += "WHERE is_active = 1 "
        rows = self.conn.execute(sql + "ORDER BY name COLLATE NOCASE").fetchall()
        return [FishVariety(**r) for r in rows]

    def get(self, variety_id: int) -> FishVariety | None:
        r = self.conn.execute(
            "SELECT variety_id, name, is_active FROM fish_varieties WHERE variety_id=?",
            (variety_id,),
        ).fetchone()
        return FishVariety(**r) if r else None

    def require(self, variety_id: int) -> FishVariety:
        v = self.get(variety_id)
        if v is None:
            raise UnknownReferenceError("fish variety", variety_id)
        return v

    def name_map(self) -> dict[int, str]:
        """{variety_id: name} for labelling bill items."""
        rows = self.conn.execute("SELECT variety_id, name FROM fish_varieties").fetchall()
        return {int(r["variety_id"]): r["name"] for r in rows}

    def create(self, name: str) -> int:
        name_n = require_text(name, "Variety name")
        try:
            cur = self.conn.execute("INSERT INTO fish_varieties(name) VALUES (?)", (name_n,))
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Variety '{name_n}' already exists.") from e
        self.conn.commit()
        return int(cur.lastrowid)

    def rename(self, variety_id: int, name: str) -> None:
        self.require(variety_id)
        name_n = require_text(name, "Variety name")
        try:
            self.conn.execute(
                "UPDATE fish_varieties SET name=? WHERE variety_id=?", (name_n, variety_id)
            )
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Variety '{name_n}' already exists.") from e
        self.conn.commit()
