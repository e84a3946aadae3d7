# fish_ledger/modules/reporting/bill_text.py
"""
Plain-text bill messages (the text shared from the bill screen).

Amounts are rounded to 2 decimals here and nowhere else in the engine.
"""
from __future__ import annotations

from functools import lru_cache

from jinja2 import Environment, PackageLoader, StrictUndefined

from ...config import COMPANY_NAME, COMPANY_TAGLINE, CURRENCY_SYMBOL
from ...utils.helpers import fmt_money, fmt_weight
from ..billing.models import PurchaseBill, Quantity, SalesBill
from ..billing.status import label as status_label

SALES_TEMPLATE = "sales_bill.txt.j2"
PURCHASE_TEMPLATE = "purchase_bill.txt.j2"


def _fmt_qty(q: Quantity) -> str:
    parts = []
    if q.crates:
        parts.append(f"{q.crates:g} crates")
    if q.loose_weight:
        parts.append(f"{q.loose_weight:g} kg")
    return " + ".join(parts) or "0"


@lru_cache(maxsize=1)
def _env() -> Environment:
    env = Environment(
        loader=PackageLoader("fish_ledger", "templates"),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=StrictUndefined,
    )
    env.filters["money"] = fmt_money
    env.filters["weight"] = fmt_weight
    env.filters["qty"] = _fmt_qty
    env.filters["status_label"] = status_label
    return env


def _context(**extra) -> dict:
    ctx = {
        "company_name": COMPANY_NAME,
        "company_tagline": COMPANY_TAGLINE,
        "cur": CURRENCY_SYMBOL,
    }
    ctx.update(extra)
    return ctx


def render_sales_bill_text(bill: SalesBill, customer_name: str) -> str:
    text = _env().get_template(SALES_TEMPLATE).render(_context(bill=bill, customer_name=customer_name))
    return text.strip() + "\n"


def render_purchase_bill_text(bill: PurchaseBill, farmer_name: str) -> str:
    text = _env().get_template(PURCHASE_TEMPLATE).render(_context(bill=bill, farmer_name=farmer_name))
    return text.strip() + "\n"
