# tests/test_bill_text.py
from datetime import datetime

from fish_ledger.config import COMPANY_NAME
from fish_ledger.database.repositories import PaymentsRepo, SalesBillsRepo, SalesRepo
from fish_ledger.modules.billing import Deduction, LineItem, Quantity, calculate_purchase_bill
from fish_ledger.modules.reporting.bill_text import render_purchase_bill_text, render_sales_bill_text


def test_purchase_bill_text():
    bill = calculate_purchase_bill(
        1,
        "2024-01-10",
        [LineItem(variety_id=1, rate_per_unit_weight=50, actual_weight=1000, variety_name="Rohu")],
        commission_per_unit_weight=0.5,
        weight_deduction_pct=5,
        other_deductions=[Deduction("Transport", 200)],
        secondary_name="Suresh",
        location="Pond 4",
    )
    text = render_purchase_bill_text(bill, "Ramesh Farms")

    assert text.startswith(f"*{COMPANY_NAME} - PURCHASE BILL*")
    assert "Farmer: Ramesh Farms (Suresh)" in text
    assert "Location: Pond 4" in text
    assert "Weight: 1,000.00 kg -> Billable: 950.00 kg" in text
    assert "Weight Deduction (5.00%): -₹2,500.00" in text
    assert "Commission (₹0.50/kg on 950.00 kg): +₹475.00" in text
    assert "Transport: -₹200.00" in text
    assert "*Total:* ₹47,775.00" in text
    assert "(Pending)" in text
    assert "Notes:" not in text
    assert text.endswith("\n") and not text.endswith("\n\n")


def test_purchase_bill_text_skips_location_when_missing():
    bill = calculate_purchase_bill(
        1, "2024-01-10", [LineItem(variety_id=7, rate_per_unit_weight=10, actual_weight=10)]
    )
    text = render_purchase_bill_text(bill, "Lakshmi Aqua")
    assert "Location:" not in text
    assert "Variety #7" in text
    assert "Bill No: -" in text


def test_sales_bill_text_shows_carry_forward(conn, ids):
    now = datetime(2024, 1, 31)
    sales = SalesRepo(conn)
    sales.upsert(customer_id=ids["customer"], variety_id=ids["prawn"], sale_date="2024-01-01",
                 rate_per_kg=200, crates=2, loose_weight=5)
    SalesBillsRepo(conn).create_bill(ids["customer"], "2024-01-01", now=now)
    PaymentsRepo(conn).record_payment(party_type="customer", party_id=ids["customer"],
                                      amount=5000, date="2024-01-02", method="upi")
    sales.upsert(customer_id=ids["customer"], variety_id=ids["rohu"], sale_date="2024-01-03",
                 rate_per_kg=100, loose_weight=10)
    bill = SalesBillsRepo(conn).create_bill(
        ids["customer"], "2024-01-03", other_charges=[Deduction("Ice", 50)], discount=50,
        notes="thanks", now=now,
    )

    text = render_sales_bill_text(bill, "Sea Fresh Mart")

    assert "Bill No: IB-0002" in text
    assert "Customer: Sea Fresh Mart" in text
    assert "Qty: 10 kg" in text
    assert "Items Total: ₹1,000.00" in text
    assert "Ice: ₹50.00" in text
    assert "Previous Balance: ₹15,000.00" in text
    assert "Payment 2024-01-02 (upi): -₹5,000.00" in text
    assert "*Discount:* ₹50.00" in text
    assert "*Total:* ₹11,000.00" in text
    assert "Notes: thanks" in text
    assert text.rstrip().endswith("Thank you for your business!")


def test_sales_bill_text_quantity_with_crates(conn, ids):
    SalesRepo(conn).upsert(customer_id=ids["customer_2"], variety_id=ids["katla"], sale_date="2024-02-01",
                           rate_per_kg=120, crates=2, loose_weight=5)
    bill = SalesBillsRepo(conn).create_bill(ids["customer_2"], "2024-02-01", crate_weight=35,
                                            now=datetime(2024, 2, 1))
    text = render_sales_bill_text(bill, "Coastal Fish Stall")
    assert "Qty: 2 crates + 5 kg" in text
    assert "Total Weight: 75.00 kg" in text
    assert "Previous Balance" not in text
    assert "Discount" not in text


def test_purchase_reversal_deduction_shows_as_addition():
    bill = calculate_purchase_bill(
        1,
        "2024-01-10",
        [LineItem(variety_id=1, rate_per_unit_weight=10, actual_weight=100)],
        commission_per_unit_weight=0,
        weight_deduction_pct=0,
        other_deductions=[Deduction("Ice", 50), Deduction("Crate refund", -100)],
    )
    text = render_purchase_bill_text(bill, "Ramesh Farms")
    assert "Ice: -₹50.00" in text
    assert "Crate refund: +₹100.00" in text
    assert "-₹-" not in text
    assert "*Total:* ₹1,050.00" in text
