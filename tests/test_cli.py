# tests/test_cli.py
from datetime import datetime

import pytest

from fish_ledger.database.repositories import PaymentsRepo, SalesBillsRepo, SalesRepo
from fish_ledger.main import main


@pytest.fixture()
def db_path(conn, ids, tmp_path):
    """The fixture DB with one customer bill (15,000) and a 5,000 payment."""
    SalesRepo(conn).upsert(customer_id=ids["customer"], variety_id=ids["rohu"], sale_date="2024-01-01",
                           rate_per_kg=100, loose_weight=150)
    SalesBillsRepo(conn).create_bill(ids["customer"], "2024-01-01", now=datetime(2024, 1, 31))
    PaymentsRepo(conn).record_payment(party_type="customer", party_id=ids["customer"],
                                      amount=5000, date="2024-01-02")
    return str(tmp_path / "ledger.db")


def test_init_db_creates_file(tmp_path, capsys):
    path = tmp_path / "nested" / "new.db"
    assert main(["--db", str(path), "init-db"]) == 0
    assert path.exists()
    assert "Database ready." in capsys.readouterr().out


def test_outstanding_snapshot(db_path, capsys):
    assert main(["--db", db_path, "outstanding", "--party", "customer"]) == 0
    out = capsys.readouterr().out
    assert "Sea Fresh Mart" in out
    assert "Coastal Fish Stall" not in out
    assert "Total: 10,000.00" in out


def test_outstanding_for_one_party(db_path, ids, capsys):
    assert main(["--db", db_path, "outstanding", "--party", "customer", "--id", str(ids["customer"])]) == 0
    out = capsys.readouterr().out
    assert "outstanding 10,000.00 across 1 bill(s)" in out
    assert "IB-0001" in out


def test_outstanding_nothing_for_farmers(db_path, capsys):
    assert main(["--db", db_path, "outstanding", "--party", "farmer"]) == 0
    assert "Nothing outstanding." in capsys.readouterr().out


def test_ledger(db_path, ids, capsys):
    assert main(["--db", db_path, "ledger", "--id", str(ids["customer"])]) == 0
    out = capsys.readouterr().out
    assert "IB-0001" in out
    assert "Outstanding now: 10,000.00" in out


def test_bill_text(db_path, capsys):
    assert main(["--db", db_path, "bill-text", "--type", "sales", "--id", "1"]) == 0
    out = capsys.readouterr().out
    assert "Customer: Sea Fresh Mart" in out
    assert "*Total:* ₹15,000.00" in out


def test_missing_bill_returns_error_code(db_path):
    assert main(["--db", db_path, "bill-text", "--type", "purchase", "--id", "99"]) == 1
