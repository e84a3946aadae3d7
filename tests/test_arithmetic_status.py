# tests/test_arithmetic_status.py
import pytest

from fish_ledger.modules.billing import (
    billable_weight,
    derive_payment_status,
    derive_sales_status,
    percentage_of,
    sum_amounts,
)
from fish_ledger.modules.billing import status
from fish_ledger.modules.billing.models import Deduction, LineItem, Quantity
from fish_ledger.utils.helpers import fmt_money, fmt_weight


def test_percentage_of_and_billable_weight():
    assert percentage_of(50000, 5) == pytest.approx(2500)
    assert billable_weight(1000, 5) == pytest.approx(950)
    assert billable_weight(1000, 0) == pytest.approx(1000)
    assert billable_weight(1000, 100) == pytest.approx(0)


def test_sum_amounts_allows_negative_rows_and_empty():
    rows = [Deduction("Ice", 300), Deduction("Return", -500)]
    assert sum_amounts(rows) == pytest.approx(-200)
    assert sum_amounts([]) == 0.0


def test_line_item_weight_prefers_weighed_total():
    weighed = LineItem(variety_id=1, rate_per_unit_weight=50, quantity=Quantity(2, 10), actual_weight=78.5)
    counted = LineItem(variety_id=1, rate_per_unit_weight=50, quantity=Quantity(2, 10))
    own_crate = LineItem(variety_id=1, rate_per_unit_weight=50, quantity=Quantity(2, 10), crate_weight=30)
    assert weighed.weight(35) == pytest.approx(78.5)
    assert counted.weight(35) == pytest.approx(80)
    assert own_crate.weight(35) == pytest.approx(70)


@pytest.mark.parametrize(
    "paid,total,expected",
    [
        (0, 100, "pending"),
        (0.01, 100, "partial"),
        (99.99, 100, "partial"),
        (100, 100, "paid"),
        (150, 100, "paid"),
    ],
)
def test_purchase_status_boundaries(paid, total, expected):
    assert derive_payment_status(paid, total) == expected


@pytest.mark.parametrize(
    "paid,total,expected",
    [
        (0, 100, "unpaid"),
        (99.99, 100, "unpaid"),
        (100, 100, "paid"),
        (0, -250, "paid"),  # customer is in credit
    ],
)
def test_sales_status_boundaries(paid, total, expected):
    assert derive_sales_status(paid, total) == expected


def test_status_helpers():
    assert status.is_outstanding("Partial", sales=False)
    assert not status.is_outstanding("paid", sales=False)
    assert status.is_outstanding("unpaid", sales=True)
    assert status.label("partial") == "Partially paid"
    assert status.label("Unpaid") == "Unpaid"
    assert status.label("on hold") == "On Hold"


def test_fmt_money_rounds_only_for_display():
    assert fmt_money(47975) == "47,975.00"
    assert fmt_money(-0.0000001) == "0.00"
    assert fmt_money("n/a") == "n/a"
    assert fmt_money(None, sentinel="-") == "-"
    with pytest.raises(ValueError):
        fmt_money("abc", strict=True)
    assert fmt_weight(950) == "950.00 kg"
