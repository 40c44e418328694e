"""Payment history aggregation and the running-balance statement derived from it."""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import UUID

from sfms.core.enums import LedgerEntryType
from sfms.core.exceptions import InvalidAmountError

from .records import (
    ZERO,
    AssignmentRecord,
    LedgerLine,
    PaymentRecord,
    PaymentSummary,
    as_utc,
    has_sub_cent,
    to_decimal,
)


def validate_payment_amount(amount, student_id: Optional[UUID] = None) -> Decimal:
    try:
        value = to_decimal(amount)
    except ValueError:
        value = None
    if value is None or not value.is_finite() or value <= 0:
        raise InvalidAmountError(
            f"Payment amount must be positive, got {amount}",
            entity_id=student_id,
            field="amount_paid",
        )
    if has_sub_cent(value):
        raise InvalidAmountError(
            f"Payment amount must have at most 2 decimal places, got {amount}",
            entity_id=student_id,
            field="amount_paid",
        )
    return value


def _chronological_key(p: PaymentRecord):
    # date first; same-date payments fall back to insertion time, then receipt, then id
    return (as_utc(p.date), as_utc(p.created_at), p.receipt_number or "", str(p.id))


def aggregate_payments(payments: Iterable[PaymentRecord]) -> PaymentSummary:
    payments = list(payments)
    total = sum((to_decimal(p.amount_paid) for p in payments), ZERO)
    last = max(payments, key=_chronological_key) if payments else None
    return PaymentSummary(total_paid=total, last_payment=last)


def sort_payments(payments: Iterable[PaymentRecord], newest_first: bool = False) -> List[PaymentRecord]:
    return sorted(payments, key=_chronological_key, reverse=newest_first)


def derive_ledger(
    assignments: Iterable[AssignmentRecord],
    payments: Iterable[PaymentRecord],
    opening_date: datetime,
) -> List[LedgerLine]:
    """
    Statement of account: each assignment is a debit on opening_date, each payment a credit on
    its own date. balance is what the student still owes after the line.
    """
    lines: List[LedgerLine] = []
    balance = ZERO
    for a in assignments:
        balance += a.net_amount
        description = f"{a.fee_type_name or 'Fee'} assigned"
        if a.discount > 0:
            description += f" (discount {a.discount}"
            if a.discount_description:
                description += f": {a.discount_description}"
            description += ")"
        lines.append(
            LedgerLine(
                date=opening_date,
                type=LedgerEntryType.FEE_ASSIGNED,
                description=description,
                debit=a.net_amount,
                balance=balance,
            )
        )
    for p in sort_payments(payments):
        balance -= p.amount_paid
        lines.append(
            LedgerLine(
                date=p.date,
                type=LedgerEntryType.PAYMENT,
                description=p.description or f"Payment ({p.mode_of_payment.value.replace('_', ' ')})",
                credit=p.amount_paid,
                balance=balance,
                receipt_number=p.receipt_number,
            )
        )
    return lines
