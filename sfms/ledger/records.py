"""
Fixed record shapes the fee ledger functions work on.

Storage rows (and the nested shapes joined queries return) are normalized into these
records at the service boundary; nothing below this module touches the database.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from sfms.core.enums import FeeBasis, LedgerEntryType, PaymentMode, PaymentStatus

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(val) -> Decimal:
    if val is None:
        return ZERO
    if isinstance(val, Decimal):
        return val
    try:
        return Decimal(str(val))
    except InvalidOperation:
        raise ValueError(f"Not a number: {val!r}")


def has_sub_cent(value: Decimal) -> bool:
    """More than two decimal places on a finite value; trailing zeros do not count."""
    return value.normalize().as_tuple().exponent < -2


def coerce_date(val) -> Optional[date]:
    """Date part of val; None when val is missing or not a parseable date."""
    if val is None:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    if isinstance(val, str):
        text = val.strip()
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def as_utc(val: Optional[datetime]) -> datetime:
    """Comparable UTC datetime. Naive values are taken as UTC; None sorts first."""
    if val is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if val.tzinfo is None:
        return val.replace(tzinfo=timezone.utc)
    return val.astimezone(timezone.utc)


class ClassRecord(BaseModel):
    id: UUID
    school_id: UUID
    name: str

    class Config:
        from_attributes = True


class FeeTypeRecord(BaseModel):
    id: UUID
    school_id: UUID
    name: str
    description: Optional[str] = None
    default_amount: Decimal = ZERO
    scheduled_date: Optional[date] = None
    applicable_from: Optional[date] = None

    class Config:
        from_attributes = True

    @field_validator("default_amount", mode="before")
    @classmethod
    def _amount(cls, v):
        return to_decimal(v)

    @field_validator("scheduled_date", "applicable_from", mode="before")
    @classmethod
    def _dates(cls, v):
        return coerce_date(v)


class FeeAdjustment(BaseModel):
    """Per-selection discount entered at registration or edit time."""

    discount: Optional[Decimal] = None
    description: Optional[str] = None


class AssignmentRecord(BaseModel):
    """A student fee assignment joined with the fee type fields the calculators need."""

    student_id: Optional[UUID] = None
    fee_type_id: UUID
    school_id: UUID
    assigned_amount: Decimal
    discount: Decimal = ZERO
    discount_description: Optional[str] = None
    fee_type_name: Optional[str] = None
    scheduled_date: Optional[date] = None

    class Config:
        from_attributes = True

    @field_validator("assigned_amount", "discount", mode="before")
    @classmethod
    def _amounts(cls, v):
        return to_decimal(v)

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def _scheduled(cls, v):
        return coerce_date(v)

    @property
    def net_amount(self) -> Decimal:
        return self.assigned_amount - self.discount


class ResolvedAssignments(BaseModel):
    assignments: List[AssignmentRecord]
    total_assigned: Decimal


class PaymentRecord(BaseModel):
    id: UUID
    student_id: UUID
    school_id: UUID
    date: datetime
    amount_paid: Decimal
    mode_of_payment: PaymentMode
    receipt_number: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("amount_paid", mode="before")
    @classmethod
    def _amount(cls, v):
        return to_decimal(v)


class PaymentSummary(BaseModel):
    total_paid: Decimal
    last_payment: Optional[PaymentRecord] = None


class LedgerLine(BaseModel):
    date: datetime
    type: LedgerEntryType
    description: str
    debit: Optional[Decimal] = None
    credit: Optional[Decimal] = None
    balance: Decimal
    receipt_number: Optional[str] = None


class EnrichedStudent(BaseModel):
    """Student with everything the ledger views need, already computed from assignments and payments."""

    id: UUID
    name: str
    roll_no: str
    class_id: UUID
    class_name: str
    academic_year: Optional[str] = None
    total_assigned: Decimal
    due_total: Decimal
    payments: PaymentSummary

    def basis(self, basis_kind: FeeBasis) -> Decimal:
        return self.total_assigned if basis_kind == FeeBasis.total else self.due_total


class StudentLedgerRow(BaseModel):
    student_id: UUID
    name: str
    class_name: str
    roll_no: str
    academic_year: Optional[str] = None
    basis_kind: FeeBasis
    basis_amount: Decimal
    total_paid: Decimal
    balance: Decimal
    status: PaymentStatus
    status_label: str
    last_payment_date: Optional[date] = None
    last_payment_amount: Optional[Decimal] = None
    last_payment_mode: Optional[PaymentMode] = None
    last_receipt_number: Optional[str] = None


class ClassLedgerRow(BaseModel):
    class_id: UUID
    class_name: str
    student_count: int
    basis_kind: FeeBasis
    basis_amount: Decimal
    total_paid: Decimal
    balance: Decimal
    paid_count: int = 0
    partially_paid_count: int = 0
    unpaid_count: int = 0
    no_fees_due_count: int = 0
