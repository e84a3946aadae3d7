# tests/test_payment_allocator.py
import pytest

from fish_ledger.errors import InvalidAmountError
from fish_ledger.modules.billing import LineItem, calculate_purchase_bill
from fish_ledger.modules.payments.allocator import (
    allocate_payment,
    allocation_order,
    apply_allocations,
    rollback_allocations,
)

BILLS = [
    {"id": 1, "total": 1000, "bill_date": "2024-01-01"},
    {"id": 2, "total": 500, "bill_date": "2024-01-02"},
]


def _pairs(result):
    return [(a.bill_id, a.allocated_amount) for a in result.allocations]


def test_oldest_first_with_remainder_on_next_bill():
    r = allocate_payment(1200, BILLS)
    assert _pairs(r) == [(1, 1000), (2, 200)]
    assert r.excess_amount == 0


def test_overpayment_reports_excess():
    r = allocate_payment(2000, BILLS)
    assert _pairs(r) == [(1, 1000), (2, 500)]
    assert r.excess_amount == pytest.approx(500)


def test_input_order_does_not_matter_and_ties_break_by_id():
    bills = [
        {"id": 9, "total": 100, "bill_date": "2024-02-01"},
        {"id": 4, "total": 100, "bill_date": "2024-01-15"},
        {"id": 3, "total": 100, "bill_date": "2024-01-15"},
    ]
    assert [b["id"] for b in allocation_order(bills)] == [3, 4, 9]
    assert _pairs(allocate_payment(150, bills)) == [(3, 100), (4, 50)]


def test_priority_bill_goes_first():
    r = allocate_payment(600, BILLS, priority_bill_id=2)
    assert _pairs(r) == [(2, 500), (1, 100)]


def test_unknown_priority_bill_falls_back_to_date_order():
    r = allocate_payment(600, BILLS, priority_bill_id=99)
    assert _pairs(r) == [(1, 600)]


def test_partially_paid_bill_absorbs_only_what_is_open():
    bills = [
        {"id": 1, "total": 1000, "amount_paid": 600, "bill_date": "2024-01-01"},
        {"id": 2, "total": 500, "amount_paid": 500, "bill_date": "2024-01-02"},
        {"id": 3, "total": 300, "bill_date": "2024-01-03"},
    ]
    r = allocate_payment(1000, bills)
    # bill 2 is already settled and gets nothing
    assert _pairs(r) == [(1, 400), (3, 300)]
    assert r.excess_amount == pytest.approx(300)


def test_no_open_bills_everything_is_excess():
    r = allocate_payment(250, [])
    assert r.allocations == ()
    assert r.excess_amount == 250


@pytest.mark.parametrize("amount", [0, -10])
def test_non_positive_amount_rejected(amount):
    with pytest.raises(InvalidAmountError):
        allocate_payment(amount, BILLS)


@pytest.mark.parametrize("amount", [0.01, 333.33, 1000, 1499.99, 1500, 1500.01, 10_000])
def test_allocations_plus_excess_equal_the_payment(amount):
    r = allocate_payment(amount, BILLS)
    assert r.allocated_total + r.excess_amount == pytest.approx(amount)
    for a in r.allocations:
        bill = next(b for b in BILLS if b["id"] == a.bill_id)
        assert 0 < a.allocated_amount <= bill["total"]


def test_apply_and_rollback_on_bills():
    items = [LineItem(variety_id=1, rate_per_unit_weight=50, actual_weight=1000)]
    b1 = calculate_purchase_bill(1, "2024-01-01", items, 0.5, 5, bill_id=1)
    b2 = calculate_purchase_bill(1, "2024-01-02", items, 0.5, 5, bill_id=2)

    r = allocate_payment(50000, [b2, b1])
    paid = {b.id: b for b in apply_allocations([b1, b2], r.allocations)}
    assert paid[1].payment_status == "paid"
    assert paid[1].balance_due == pytest.approx(0)
    assert paid[2].payment_status == "partial"
    assert paid[2].amount_paid == pytest.approx(50000 - 47975)

    back = {b.id: b for b in rollback_allocations(list(paid.values()), r.allocations)}
    assert back[1].amount_paid == pytest.approx(0)
    assert back[1].payment_status == "pending"
    assert back[2].payment_status == "pending"
