# fish_ledger/errors.py
from __future__ import annotations


# ----------------------------
# Domain errors (friendly)
# ----------------------------
class BillingError(Exception):
    """Base class for billing/payment domain errors."""


class ValidationError(BillingError):
    """Malformed calculator input (empty items, non-positive rate, bad percentage...)."""


class InvalidAmountError(ValidationError):
    """A payment amount was zero or negative."""

    def __init__(self, amount, message: str | None = None):
        super().__init__(message or f"Payment amount must be greater than zero (got {amount}).")
        self.amount = amount


class DuplicateBillError(BillingError):
    """A sales bill already exists for this (customer, date); edit or delete it instead."""

    def __init__(self, customer_id: int, bill_date: str, existing_bill_id: int | None = None):
        super().__init__(
            f"Customer {customer_id} already has a bill dated {bill_date}"
            + (f" (bill id {existing_bill_id})." if existing_bill_id is not None else ".")
        )
        self.customer_id = customer_id
        self.bill_date = bill_date
        self.existing_bill_id = existing_bill_id


class UnknownReferenceError(BillingError):
    """A farmer/customer/variety id does not exist."""

    def __init__(self, kind: str, ref_id):
        super().__init__(f"Unknown {kind} id: {ref_id!r}")
        self.kind = kind
        self.ref_id = ref_id


class BillNumberingError(BillingError):
    """The bill-number sequence could not be read."""

    def __init__(self, message: str, *, original: BaseException | None = None):
        super().__init__(message)
        self.original = original


class BillNotFoundError(BillingError):
    def __init__(self, bill_type: str, bill_id):
        super().__init__(f"No {bill_type} bill with id {bill_id!r}")
        self.bill_type = bill_type
        self.bill_id = bill_id


class PaymentNotFoundError(BillingError):
    def __init__(self, payment_id):
        super().__init__(f"No payment with id {payment_id!r}")
        self.payment_id = payment_id


__all__ = [
    "BillingError",
    "ValidationError",
    "InvalidAmountError",
    "DuplicateBillError",
    "UnknownReferenceError",
    "BillNumberingError",
    "BillNotFoundError",
    "PaymentNotFoundError",
]
