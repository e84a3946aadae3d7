# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets its own SQLite file under tmp_path (repos commit,
#   so a shared DB with BEGIN/ROLLBACK would leak between tests)
# - Schema comes from fish_ledger.database.get_connection
# - Reference rows come from tests/seed_common.sql
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON
# - Provide handy ids for the seeded farmers/customers/varieties
# ---------------------------------------------------------------------

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from fish_ledger.database import get_connection

# ---------- Paths ----------
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SEED_SQL     = PROJECT_ROOT / "tests" / "seed_common.sql"


# ---------- Per-test database ----------
@pytest.fixture()
def conn(tmp_path):
    """Fresh ledger DB with the common seed applied."""
    con = get_connection(tmp_path / "ledger.db")
    try:
        con.executescript(SEED_SQL.read_text(encoding="utf-8"))
        con.commit()
        yield con
    finally:
        con.close()


# ---------- Handy lookups ----------
@pytest.fixture()
def ids(conn: sqlite3.Connection) -> dict:
    """Common IDs used throughout the repo tests."""
    def one(sql: str, *p):
        r = conn.execute(sql, p).fetchone()
        return None if r is None else r[0]

    return {
        "farmer": one("SELECT farmer_id FROM farmers WHERE name='Ramesh Farms'"),
        "farmer_2": one("SELECT farmer_id FROM farmers WHERE name='Lakshmi Aqua'"),
        "customer": one("SELECT customer_id FROM customers WHERE name='Sea Fresh Mart'"),
        "customer_2": one("SELECT customer_id FROM customers WHERE name='Coastal Fish Stall'"),
        "rohu": one("SELECT variety_id FROM fish_varieties WHERE name='Rohu'"),
        "katla": one("SELECT variety_id FROM fish_varieties WHERE name='Katla'"),
        "prawn": one("SELECT variety_id FROM fish_varieties WHERE name='Vannamei Prawn'"),
    }
