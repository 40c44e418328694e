"""Student fee assignment: snapshot of a fee type's default amount at assignment time, minus a discount."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from sfms.db.session import Base


class StudentFeeAssignment(Base):
    """
    assigned_amount never follows later catalog edits.
    The whole set for a student is replaced (delete-then-insert) on edit.
    """

    __tablename__ = "student_fee_types"
    __table_args__ = (
        UniqueConstraint("student_id", "fee_type_id", name="uq_student_fee_type"),
        CheckConstraint("discount >= 0 AND discount <= assigned_amount", name="chk_student_fee_type_discount"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    fee_type_id = Column(Uuid(as_uuid=True), ForeignKey("fee_types.id", ondelete="RESTRICT"), nullable=False)
    assigned_amount = Column(Numeric(12, 2), nullable=False)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    discount_description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    student = relationship("Student")
    fee_type = relationship("FeeType")
