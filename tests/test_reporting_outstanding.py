# tests/test_reporting_outstanding.py
from datetime import datetime

import pytest

from fish_ledger.database.repositories import (
    PaymentsRepo, PurchaseBillsRepo, PurchasesRepo, SalesBillsRepo, SalesRepo,
)
from fish_ledger.modules.reporting.reports import OutstandingReports

NOW = datetime(2024, 3, 31)


def _purchase_bill(conn, farmer_id, variety_id, day, weight, rate=10.0):
    PurchasesRepo(conn).record(farmer_id=farmer_id, variety_id=variety_id, purchase_date=day,
                               rate_per_kg=rate, actual_weight=weight)
    return PurchaseBillsRepo(conn).create_bill(farmer_id, day, commission_per_kg=0,
                                               weight_deduction_pct=0, now=NOW)


def _sales_bill(conn, customer_id, variety_id, day, kg, rate=100.0):
    SalesRepo(conn).upsert(customer_id=customer_id, variety_id=variety_id, sale_date=day,
                           rate_per_kg=rate, loose_weight=kg)
    return SalesBillsRepo(conn).create_bill(customer_id, day, now=NOW)


@pytest.fixture()
def reports(conn, ids):
    # farmer: 1000 + 500, 300 paid; farmer_2: nothing billed
    _purchase_bill(conn, ids["farmer"], ids["rohu"], "2024-03-01", 100)
    _purchase_bill(conn, ids["farmer"], ids["katla"], "2024-03-11", 50)
    PaymentsRepo(conn).record_payment(party_type="farmer", party_id=ids["farmer"],
                                      amount=300, date="2024-03-12")
    # two customers with one bill each; the second one is paid off with 200 extra
    _sales_bill(conn, ids["customer"], ids["prawn"], "2024-03-05", 20)
    _sales_bill(conn, ids["customer_2"], ids["rohu"], "2024-03-06", 5)
    PaymentsRepo(conn).record_payment(party_type="customer", party_id=ids["customer_2"],
                                      amount=700, date="2024-03-07")
    return OutstandingReports(conn)


def test_farmer_snapshot(reports, ids):
    rows = reports.outstanding_snapshot("farmer")
    assert [r["party_id"] for r in rows] == [ids["farmer"]]
    row = rows[0]
    assert row["name"] == "Ramesh Farms"
    assert row["total_outstanding"] == pytest.approx(1200)
    assert row["unpaid_bills_count"] == 2
    assert row["oldest_bill_date"] == "2024-03-01"
    assert row["unallocated"] == 0


def test_include_settled_lists_everyone_sorted_by_name(reports):
    names = [r["name"] for r in reports.outstanding_snapshot("farmer", include_settled=True)]
    assert names == ["Lakshmi Aqua", "Ramesh Farms"]


def test_customer_snapshot_and_advance(reports, ids):
    rows = reports.outstanding_snapshot("customer")
    assert [r["name"] for r in rows] == ["Sea Fresh Mart"]
    assert rows[0]["total_outstanding"] == pytest.approx(2000)

    settled = reports.outstanding_for("customer", ids["customer_2"])
    assert settled.unpaid_bills_count == 0
    assert reports.unallocated_total("customer", ids["customer_2"]) == pytest.approx(200)


def test_open_bills_with_age(reports, ids):
    rows = reports.list_open_bills("farmer", ids["farmer"], as_of="2024-03-31")
    assert [r["bill_number"] for r in rows] == ["PB-0001", "PB-0002"]
    assert [r["days_outstanding"] for r in rows] == [30, 20]
    assert rows[0]["balance_due"] == pytest.approx(700)
    assert rows[1]["balance_due"] == pytest.approx(500)


def test_party_statement(reports, ids):
    ledger = reports.ledger_for("farmer", ids["farmer"])
    assert [e.kind for e in ledger.entries] == ["bill", "bill", "payment"]
    assert ledger.closing_balance == pytest.approx(1200)
    assert ledger.outstanding.total_outstanding == pytest.approx(1200)

    windowed = reports.ledger_for("farmer", ids["farmer"], start="2024-03-10")
    assert windowed.opening_balance == pytest.approx(1000)
    assert len(windowed.entries) == 2


def test_unknown_party_type(reports):
    with pytest.raises(ValueError):
        reports.outstanding_for("broker", 1)
