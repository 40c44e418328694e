from enum import Enum


class PaymentMode(str, Enum):
    cash = "cash"
    upi = "upi"
    bank_transfer = "bank_transfer"
    cheque = "cheque"
    dd = "dd"


class PaymentStatus(str, Enum):
    paid = "paid"
    partially_paid = "partially_paid"
    unpaid = "unpaid"
    no_fees_due = "no_fees_due"


class FeeBasis(str, Enum):
    """Which amount payments are compared against."""

    total = "total"
    due = "due"


class LedgerView(str, Enum):
    student = "student"
    class_ = "class"


class LedgerEntryType(str, Enum):
    FEE_ASSIGNED = "FEE_ASSIGNED"
    FEE_ADJUSTMENT = "FEE_ADJUSTMENT"
    PAYMENT = "PAYMENT"
