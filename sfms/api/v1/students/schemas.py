"""Student schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from sfms.core.enums import PaymentStatus
from sfms.ledger.records import LedgerLine, PaymentRecord


class FeeSelection(BaseModel):
    fee_type_id: UUID
    discount: Optional[Decimal] = Field(None, decimal_places=2)
    discount_description: Optional[str] = None


class StudentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    roll_no: str = Field(..., min_length=1, max_length=50)
    class_id: UUID
    academic_year: str = Field(..., min_length=1, max_length=20)
    fee_types: List[FeeSelection] = Field(default_factory=list)


class StudentUpdate(StudentCreate):
    """Full replacement: the student's assignment set becomes exactly fee_types."""


class AssignmentResponse(BaseModel):
    fee_type_id: UUID
    fee_type_name: Optional[str] = None
    assigned_amount: Decimal
    discount: Decimal
    discount_description: Optional[str] = None
    net_amount: Decimal
    scheduled_date: Optional[date] = None


class StudentSummary(BaseModel):
    id: UUID
    name: str
    roll_no: str
    class_id: UUID
    class_name: str
    academic_year: Optional[str] = None
    total_assigned: Decimal
    due_total: Decimal
    total_paid: Decimal
    balance: Decimal
    status: PaymentStatus


class StudentDetail(BaseModel):
    id: UUID
    school_id: UUID
    name: str
    roll_no: str
    class_id: UUID
    class_name: str
    academic_year: str
    version: int
    cached_total_fees: Decimal
    total_assigned: Decimal
    due_total: Decimal
    reference_date: date
    total_paid: Decimal
    balance: Decimal
    status: PaymentStatus
    due_status: PaymentStatus
    assignments: List[AssignmentResponse]
    payments: List[PaymentRecord]
    last_payment: Optional[PaymentRecord] = None
    statement: List[LedgerLine]


class TotalFeesCheckResponse(BaseModel):
    student_id: UUID
    total_fees: Decimal
    consistent: bool


class LedgerEntryResponse(BaseModel):
    id: UUID
    student_id: UUID
    date: datetime
    type: str
    description: str
    debit: Optional[Decimal] = None
    credit: Optional[Decimal] = None
    balance: Decimal
    receipt_number: Optional[str] = None

    class Config:
        from_attributes = True
