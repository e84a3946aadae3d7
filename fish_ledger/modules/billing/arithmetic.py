"""
billing/arithmetic.py

Pure money/weight helpers shared by the purchase and sales calculators.

No rounding here. Deduction → commission → total chains keep full float
precision; formatting belongs to utils.helpers.fmt_money.
"""
from __future__ import annotations

from typing import Iterable

__all__ = [
    "percentage_of",
    "billable_weight",
    "sum_amounts",
]


def percentage_of(base: float, pct: float) -> float:
    """base * pct / 100"""
    return base * pct / 100


def billable_weight(actual_weight: float, deduction_pct: float) -> float:
    """Weight left after the moisture/ice allowance: actual * (1 - pct/100)."""
    return actual_weight * (1 - deduction_pct / 100)


def sum_amounts(rows: Iterable) -> float:
    """Σ row.amount over deductions, charges or payments (0.0 for an empty iterable)."""
    return float(sum(float(r.amount) for r in rows))
