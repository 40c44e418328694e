"""Payment: append-only record of money received from a student."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from sfms.db.session import Base


class Payment(Base):
    """Never updated; only deleted together with its student."""

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint("amount_paid > 0", name="chk_payment_amount_positive"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False)
    amount_paid = Column(Numeric(12, 2), nullable=False)
    mode_of_payment = Column(String(30), nullable=False)  # cash, upi, bank_transfer, cheque, dd
    receipt_number = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    student = relationship("Student")
