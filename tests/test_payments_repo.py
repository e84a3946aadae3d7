# tests/test_payments_repo.py
from datetime import datetime

import pytest

from fish_ledger.database.repositories import PaymentsRepo, PurchaseBillsRepo, PurchasesRepo
from fish_ledger.errors import (
    InvalidAmountError,
    PaymentNotFoundError,
    UnknownReferenceError,
    ValidationError,
)

NOW = datetime(2024, 1, 31, 12, 0, 0)


def _bill(conn, ids, day, weight, rate=10.0):
    PurchasesRepo(conn).record(
        farmer_id=ids["farmer"], variety_id=ids["katla"], purchase_date=day,
        rate_per_kg=rate, actual_weight=weight,
    )
    return PurchaseBillsRepo(conn).create_bill(
        ids["farmer"], day, commission_per_kg=0, weight_deduction_pct=0, now=NOW
    )


def _pay_farmer(conn, ids, amount, **kw):
    return PaymentsRepo(conn).record_payment(
        party_type="farmer", party_id=ids["farmer"], amount=amount, date="2024-01-20", **kw
    )


def test_oldest_bill_is_paid_first(conn, ids):
    b1 = _bill(conn, ids, "2024-01-01", 100)   # 1000
    b2 = _bill(conn, ids, "2024-01-02", 50)    # 500

    _, result = _pay_farmer(conn, ids, 1200)
    assert [(a.bill_id, a.allocated_amount) for a in result.allocations] == [(b1.id, 1000), (b2.id, 200)]
    assert result.excess_amount == 0

    bills = PurchaseBillsRepo(conn)
    assert bills.require(b1.id).payment_status == "paid"
    assert bills.require(b2.id).payment_status == "partial"
    assert [b.id for b in bills.list_open(ids["farmer"])] == [b2.id]


def test_overpayment_is_kept_unallocated(conn, ids):
    b1 = _bill(conn, ids, "2024-01-01", 50)    # 500
    pid, result = _pay_farmer(conn, ids, 800, method="Bank Transfer", reference_number="UTR123")

    assert result.allocated_total == pytest.approx(500)
    assert result.excess_amount == pytest.approx(300)
    repo = PaymentsRepo(conn)
    assert repo.unallocated_amount(pid) == pytest.approx(300)
    assert repo.require(pid).method == "bank_transfer"
    assert [a.bill_id for a in repo.allocations_for(pid)] == [b1.id]


def test_payment_with_nothing_open(conn, ids):
    pid, result = _pay_farmer(conn, ids, 250)
    assert result.allocations == ()
    assert PaymentsRepo(conn).unallocated_amount(pid) == pytest.approx(250)


@pytest.mark.parametrize("amount", [0, -10])
def test_non_positive_amount_rejected(conn, ids, amount):
    with pytest.raises(InvalidAmountError):
        _pay_farmer(conn, ids, amount)
    assert PaymentsRepo(conn).list_by_party("farmer", ids["farmer"]) == []


def test_unknown_party_and_method(conn, ids):
    repo = PaymentsRepo(conn)
    with pytest.raises(UnknownReferenceError):
        repo.record_payment(party_type="customer", party_id=999, amount=10)
    with pytest.raises(ValidationError):
        repo.record_payment(party_type="broker", party_id=1, amount=10)
    with pytest.raises(ValidationError):
        _pay_farmer(conn, ids, 10, method="barter")


def test_delete_payment_rolls_back_bills(conn, ids):
    b1 = _bill(conn, ids, "2024-01-01", 100)
    pid, _ = _pay_farmer(conn, ids, 600)
    assert PurchaseBillsRepo(conn).require(b1.id).balance_due == pytest.approx(400)

    PaymentsRepo(conn).delete_payment(pid)

    bill = PurchaseBillsRepo(conn).require(b1.id)
    assert bill.amount_paid == 0
    assert bill.balance_due == pytest.approx(1000)
    assert bill.payment_status == "pending"
    assert PaymentsRepo(conn).allocations_for(pid) == []
    with pytest.raises(PaymentNotFoundError):
        PaymentsRepo(conn).require(pid)


def test_delete_missing_payment(conn):
    with pytest.raises(PaymentNotFoundError):
        PaymentsRepo(conn).delete_payment(12345)
