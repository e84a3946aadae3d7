# database/schema.py
from __future__ import annotations

import logging
import sqlite3

from ..constants import SCHEMA_VERSION, TABLE_SCHEMA_VERSION

_log = logging.getLogger(__name__)

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== REFERENCE TABLES ======================== */

/* -------- parties -------- */
CREATE TABLE IF NOT EXISTS farmers (
    farmer_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    phone        TEXT,
    location     TEXT,
    is_active    INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1))
);

CREATE TABLE IF NOT EXISTS customers (
    customer_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL,
    phone        TEXT,
    address      TEXT,
    is_active    INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1))
);

/* -------- fish varieties -------- */
CREATE TABLE IF NOT EXISTS fish_varieties (
    variety_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT UNIQUE NOT NULL,
    is_active    INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1))
);

/* ======================== RAW TRANSACTIONS ======================== */

/* -------- purchases (what farmers delivered) -------- */
CREATE TABLE IF NOT EXISTS purchases (
    purchase_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    farmer_id         INTEGER NOT NULL,
    variety_id        INTEGER NOT NULL,
    purchase_date     DATE    NOT NULL,
    crates            REAL    NOT NULL DEFAULT 0 CHECK (crates >= 0),
    loose_weight      REAL    NOT NULL DEFAULT 0 CHECK (loose_weight >= 0),
    actual_weight     REAL    CHECK (actual_weight IS NULL OR actual_weight >= 0),
    rate_per_kg       REAL    NOT NULL CHECK (rate_per_kg > 0),
    billing_status    TEXT    NOT NULL DEFAULT 'unbilled'
                              CHECK (billing_status IN ('unbilled','billed')),
    billed_in_bill_id INTEGER,
    notes             TEXT,
    FOREIGN KEY (farmer_id)  REFERENCES farmers(farmer_id),
    FOREIGN KEY (variety_id) REFERENCES fish_varieties(variety_id),
    FOREIGN KEY (billed_in_bill_id) REFERENCES purchase_bills(bill_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_purchases_farmer_status ON purchases(farmer_id, billing_status);

/* -------- sales (what customers took); one row per customer/variety/day -------- */
CREATE TABLE IF NOT EXISTS sales (
    sale_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_id       INTEGER NOT NULL,
    variety_id        INTEGER NOT NULL,
    sale_date         DATE    NOT NULL,
    crates            REAL    NOT NULL DEFAULT 0 CHECK (crates >= 0),
    loose_weight      REAL    NOT NULL DEFAULT 0 CHECK (loose_weight >= 0),
    rate_per_kg       REAL    NOT NULL CHECK (rate_per_kg > 0),
    billing_status    TEXT    NOT NULL DEFAULT 'unbilled'
                              CHECK (billing_status IN ('unbilled','billed')),
    billed_in_bill_id INTEGER,
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id),
    FOREIGN KEY (variety_id)  REFERENCES fish_varieties(variety_id),
    FOREIGN KEY (billed_in_bill_id) REFERENCES sales_bills(bill_id) ON DELETE SET NULL,
    UNIQUE (customer_id, variety_id, sale_date)
);
CREATE INDEX IF NOT EXISTS idx_sales_customer_status ON sales(customer_id, billing_status);

/* ======================== BILLS ======================== */

/* -------- purchase bills (what we owe a farmer) -------- */
CREATE TABLE IF NOT EXISTS purchase_bills (
    bill_id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_number                TEXT UNIQUE NOT NULL,
    farmer_id                  INTEGER NOT NULL,
    bill_date                  DATE    NOT NULL,
    gross_amount               REAL    NOT NULL,
    weight_deduction_pct       REAL    NOT NULL CHECK (weight_deduction_pct BETWEEN 0 AND 100),
    weight_deduction_amount    REAL    NOT NULL,
    subtotal                   REAL    NOT NULL,
    total_billable_weight      REAL    NOT NULL,
    commission_per_kg          REAL    NOT NULL CHECK (commission_per_kg >= 0),
    commission_amount          REAL    NOT NULL,
    other_deductions_total     REAL    NOT NULL DEFAULT 0,
    total                      REAL    NOT NULL,
    amount_paid                REAL    NOT NULL DEFAULT 0,
    balance_due                REAL    NOT NULL,
    payment_status             TEXT    NOT NULL DEFAULT 'pending'
                                       CHECK (payment_status IN ('pending','partial','paid')),
    notes                      TEXT,
    location                   TEXT,
    secondary_name             TEXT,
    FOREIGN KEY (farmer_id) REFERENCES farmers(farmer_id)
);
CREATE INDEX IF NOT EXISTS idx_purchase_bills_farmer ON purchase_bills(farmer_id, bill_date);

CREATE TABLE IF NOT EXISTS purchase_bill_items (
    item_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_id           INTEGER NOT NULL,
    line_no           INTEGER NOT NULL,
    purchase_id       INTEGER,
    variety_id        INTEGER NOT NULL,
    variety_name      TEXT,
    crates            REAL    NOT NULL DEFAULT 0,
    loose_weight      REAL    NOT NULL DEFAULT 0,
    crate_weight      REAL,
    actual_weight     REAL    NOT NULL,
    billable_weight   REAL    NOT NULL,
    rate_per_kg       REAL    NOT NULL CHECK (rate_per_kg > 0),
    amount            REAL    NOT NULL,
    FOREIGN KEY (bill_id)    REFERENCES purchase_bills(bill_id) ON DELETE CASCADE,
    FOREIGN KEY (variety_id) REFERENCES fish_varieties(variety_id)
);

CREATE TABLE IF NOT EXISTS purchase_bill_deductions (
    deduction_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_id       INTEGER NOT NULL,
    label         TEXT    NOT NULL,
    amount        REAL    NOT NULL,
    FOREIGN KEY (bill_id) REFERENCES purchase_bills(bill_id) ON DELETE CASCADE
);

/* -------- sales bills (running balance a customer owes us) -------- */
CREATE TABLE IF NOT EXISTS sales_bills (
    bill_id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_number              TEXT UNIQUE NOT NULL,
    customer_id              INTEGER NOT NULL,
    bill_date                DATE    NOT NULL,
    previous_balance         REAL    NOT NULL DEFAULT 0,
    payments_total           REAL    NOT NULL DEFAULT 0,
    items_total              REAL    NOT NULL,
    charges_total            REAL    NOT NULL DEFAULT 0,
    subtotal                 REAL    NOT NULL,
    discount                 REAL    NOT NULL DEFAULT 0,
    total                    REAL    NOT NULL,
    amount_paid              REAL    NOT NULL DEFAULT 0,
    balance_due              REAL    NOT NULL,
    status                   TEXT    NOT NULL DEFAULT 'unpaid'
                                     CHECK (status IN ('unpaid','paid')),
    crate_weight             REAL    NOT NULL CHECK (crate_weight > 0),
    is_active                INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
    notes                    TEXT,
    FOREIGN KEY (customer_id) REFERENCES customers(customer_id),
    UNIQUE (customer_id, bill_date)
);
/* exactly one active bill per customer */
CREATE UNIQUE INDEX IF NOT EXISTS idx_sales_bills_one_active
ON sales_bills(customer_id) WHERE is_active = 1;

CREATE TABLE IF NOT EXISTS sales_bill_items (
    item_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_id           INTEGER NOT NULL,
    line_no           INTEGER NOT NULL,
    sale_id           INTEGER,
    variety_id        INTEGER NOT NULL,
    variety_name      TEXT,
    crates            REAL    NOT NULL DEFAULT 0,
    loose_weight      REAL    NOT NULL DEFAULT 0,
    crate_weight      REAL,
    weight            REAL    NOT NULL,
    rate_per_kg       REAL    NOT NULL CHECK (rate_per_kg > 0),
    amount            REAL    NOT NULL,
    FOREIGN KEY (bill_id)    REFERENCES sales_bills(bill_id) ON DELETE CASCADE,
    FOREIGN KEY (variety_id) REFERENCES fish_varieties(variety_id)
);

CREATE TABLE IF NOT EXISTS sales_bill_charges (
    charge_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_id       INTEGER NOT NULL,
    label         TEXT    NOT NULL,
    amount        REAL    NOT NULL,
    FOREIGN KEY (bill_id) REFERENCES sales_bills(bill_id) ON DELETE CASCADE
);

/* ======================== PAYMENTS ======================== */

CREATE TABLE IF NOT EXISTS payments (
    payment_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    party_type         TEXT    NOT NULL CHECK (party_type IN ('farmer','customer')),
    party_id           INTEGER NOT NULL,
    date               DATE    NOT NULL,
    amount             REAL    NOT NULL CHECK (amount > 0),
    method             TEXT    NOT NULL DEFAULT 'cash'
                               CHECK (method IN ('cash','upi','neft','bank_transfer','cheque','other')),
    reference_number   TEXT,
    notes              TEXT,
    /* sales bill whose carry-forward this payment was subtracted in */
    carried_in_bill_id INTEGER,
    created_at         TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (carried_in_bill_id) REFERENCES sales_bills(bill_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_payments_party ON payments(party_type, party_id, date);

CREATE TABLE IF NOT EXISTS payment_allocations (
    allocation_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    payment_id     INTEGER NOT NULL,
    bill_type      TEXT    NOT NULL CHECK (bill_type IN ('purchase','sales')),
    bill_id        INTEGER NOT NULL,
    amount         REAL    NOT NULL CHECK (amount > 0),
    FOREIGN KEY (payment_id) REFERENCES payments(payment_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_payment_allocations_bill ON payment_allocations(bill_type, bill_id);
CREATE INDEX IF NOT EXISTS idx_payment_allocations_payment ON payment_allocations(payment_id);
"""


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS {TABLE_SCHEMA_VERSION}(
            id INTEGER PRIMARY KEY CHECK (id=1),
            version TEXT NOT NULL
        );
    """)
    row = conn.execute(
        f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1;"
    ).fetchone()
    if row is None:
        conn.execute(
            f"INSERT INTO {TABLE_SCHEMA_VERSION}(id, version) VALUES (1, ?);",
            (SCHEMA_VERSION,),
        )


def get_current_version(conn: sqlite3.Connection) -> str | None:
    row = conn.execute(f"SELECT version FROM {TABLE_SCHEMA_VERSION} WHERE id=1;").fetchone()
    return row[0] if row else None


def init_schema(conn: sqlite3.Connection) -> None:
    """Apply the (idempotent) schema on an open connection and stamp the version."""
    conn.executescript(SQL)
    _ensure_version_table(conn)
    conn.commit()
    _log.debug("schema %s applied", SCHEMA_VERSION)
