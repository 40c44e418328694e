"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from sfms.core.enums import PaymentMode, PaymentStatus
from sfms.ledger.records import PaymentRecord


class PaymentCreate(BaseModel):
    student_id: UUID
    # Positivity is checked by the service so the error carries the field name.
    amount_paid: Decimal = Field(..., decimal_places=2)
    mode_of_payment: PaymentMode = PaymentMode.cash
    date: Optional[datetime] = None
    receipt_number: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None


class PaymentResult(BaseModel):
    """The stored payment and the student's position right after it."""

    payment: PaymentRecord
    total_assigned: Decimal
    total_paid: Decimal
    balance: Decimal
    status: PaymentStatus
