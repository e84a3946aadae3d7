from __future__ import annotations
from typing import Optional

# ---------- Canonical sets ----------
# Purchase bills (what we owe a farmer)
PENDING = "pending"
PARTIAL = "partial"
PAID = "paid"
PURCHASE_OUTSTANDING: frozenset[str] = frozenset({PENDING, PARTIAL})

# Sales bills (running balance a customer owes us)
UNPAID = "unpaid"
SALES_OUTSTANDING: frozenset[str] = frozenset({UNPAID})

# ---------- Human labels ----------
LABELS = {
    PENDING: "Pending",
    PARTIAL: "Partially paid",
    UNPAID: "Unpaid",
    PAID: "Paid",
}


# ---------- Derivation ----------

def derive_payment_status(amount_paid: float, total: float) -> str:
    """
    Purchase bill status as a pure function of (amount_paid, total):
      - 'paid'    if amount_paid >= total
      - 'partial' if 0 < amount_paid < total
      - 'pending' otherwise
    """
    if amount_paid >= total:
        return PAID
    if amount_paid > 0:
        return PARTIAL
    return PENDING


def derive_sales_status(amount_paid: float, total: float) -> str:
    """
    Sales bill status: 'paid' only once nothing is left to collect
    (total - amount_paid <= 0, which includes a credit balance), else 'unpaid'.
    """
    if total - amount_paid <= 0:
        return PAID
    return UNPAID


# ---------- API ----------

def normalize(state: Optional[str]) -> Optional[str]:
    """Lowercase & strip; return None if empty."""
    if state is None:
        return None
    s = str(state).strip().lower()
    return s or None


def is_outstanding(state: Optional[str], *, sales: bool) -> bool:
    s = normalize(state)
    return s in (SALES_OUTSTANDING if sales else PURCHASE_OUTSTANDING)


def label(state: str) -> str:
    """Human label ('Partially paid'). Unknown states come back title-cased."""
    s = normalize(state)
    if s in LABELS:
        return LABELS[s]  # type: ignore[index]
    return (state or "").strip().title()
