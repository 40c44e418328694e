"""Payment status classification against a basis amount (total assigned or currently due)."""

from decimal import Decimal

from sfms.core.enums import PaymentStatus

from .records import to_decimal

# Amounts within a cent are treated as equal.
EPSILON = Decimal("0.01")

STATUS_LABELS = {
    PaymentStatus.paid: "Paid",
    PaymentStatus.partially_paid: "Partial",
    PaymentStatus.unpaid: "Unpaid",
    PaymentStatus.no_fees_due: "No Fees Due",
}


def classify(basis, total_paid) -> PaymentStatus:
    basis = to_decimal(basis)
    total_paid = to_decimal(total_paid)
    if basis <= EPSILON:
        return PaymentStatus.paid if total_paid > 0 else PaymentStatus.no_fees_due
    if total_paid >= basis - EPSILON:
        return PaymentStatus.paid
    if total_paid > EPSILON:
        return PaymentStatus.partially_paid
    return PaymentStatus.unpaid


def status_label(status: PaymentStatus) -> str:
    return STATUS_LABELS[PaymentStatus(status)]
