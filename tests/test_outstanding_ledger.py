# tests/test_outstanding_ledger.py
from dataclasses import replace

import pytest

from fish_ledger.modules.billing import (
    LineItem,
    Payment,
    Quantity,
    apply_payment_to_purchase_bill,
    calculate_purchase_bill,
    calculate_sales_bill,
)
from fish_ledger.modules.reporting.ledger import build_ledger
from fish_ledger.modules.reporting.outstanding import open_bills, summarize_outstanding


def _purchase(bill_id, day, weight, farmer_id=1):
    items = [LineItem(variety_id=1, rate_per_unit_weight=100, actual_weight=weight)]
    return calculate_purchase_bill(farmer_id, day, items, 0, 0, bill_id=bill_id)


def _sale_items(kg, rate=100):
    return [LineItem(variety_id=1, rate_per_unit_weight=rate, quantity=Quantity(0, kg))]


def test_outstanding_sums_pending_and_partial_purchase_bills():
    b1 = _purchase(1, "2024-01-05", 10)                                  # 1000 pending
    b2 = apply_payment_to_purchase_bill(_purchase(2, "2024-01-02", 5), 200)  # 300 left, partial
    b3 = apply_payment_to_purchase_bill(_purchase(3, "2024-01-01", 1), 100)  # paid

    o = summarize_outstanding(1, [b1, b2, b3])
    assert o.total_outstanding == pytest.approx(1300)
    assert o.unpaid_bills_count == 2
    assert o.oldest_bill_date == "2024-01-02"
    assert [b.id for b in open_bills([b1, b2, b3])] == [2, 1]


def test_no_bills_means_nothing_outstanding():
    o = summarize_outstanding(7, [])
    assert (o.total_outstanding, o.unpaid_bills_count, o.oldest_bill_date) == (0.0, 0, None)


def test_bill_of_another_party_is_rejected():
    with pytest.raises(ValueError):
        summarize_outstanding(2, [_purchase(1, "2024-01-01", 1, farmer_id=1)])


def test_only_the_active_sales_bill_counts():
    first = calculate_sales_bill(1, "2024-01-01", _sale_items(10), bill_id=1, is_active=False)
    latest = calculate_sales_bill(1, "2024-01-03", _sale_items(5), previous_balance=first.total, bill_id=2)
    o = summarize_outstanding(1, [first, latest])
    assert o.unpaid_bills_count == 1
    assert o.total_outstanding == pytest.approx(1500)
    assert o.oldest_bill_date == "2024-01-03"


def _sales_history():
    pay = Payment(id=11, party_id=1, date="2024-01-03", amount=300)
    b1 = calculate_sales_bill(1, "2024-01-01", _sale_items(10), previous_balance=500,
                              bill_id=1, bill_number="IB-0001", is_active=False)
    b2 = calculate_sales_bill(1, "2024-01-05", _sale_items(2), previous_balance=b1.total,
                              payments_since_previous=[pay], bill_id=2, bill_number="IB-0002")
    return [b1, b2], [pay]


def test_ledger_running_balance_matches_carried_forward_total():
    bills, payments = _sales_history()
    ledger = build_ledger(1, bills, payments)

    assert [(e.kind, e.debit, e.credit, e.balance) for e in ledger.entries] == [
        ("opening", 500, 0, 500),
        ("bill", 1000, 0, 1500),
        ("payment", 0, 300, 1200),
        ("bill", 200, 0, 1400),
    ]
    assert ledger.closing_balance == pytest.approx(bills[-1].total)
    assert ledger.outstanding.total_outstanding == pytest.approx(1400)


def test_ledger_window_folds_earlier_rows_into_opening():
    bills, payments = _sales_history()
    ledger = build_ledger(1, bills, payments, start="2024-01-04")
    assert ledger.opening_balance == pytest.approx(1200)
    assert [e.reference for e in ledger.entries] == ["IB-0002"]
    assert ledger.closing_balance == pytest.approx(1400)

    early = build_ledger(1, bills, payments, end="2024-01-03")
    assert early.closing_balance == pytest.approx(1200)


def test_same_day_payment_follows_bill():
    b = replace(_purchase(1, "2024-01-01", 10), bill_number="PB-0001")
    pay = Payment(id=5, party_id=1, date="2024-01-01", amount=400, party_type="farmer")
    ledger = build_ledger(1, [b], [pay])
    assert [e.kind for e in ledger.entries] == ["bill", "payment"]
    assert ledger.closing_balance == pytest.approx(600)
