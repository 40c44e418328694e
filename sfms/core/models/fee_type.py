"""Fee type master (Tuition, Bus, Exam) and its many-to-many link to classes."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from sfms.db.session import Base


class FeeType(Base):
    """School-scoped fee type. default_amount is the undiscounted fee."""

    __tablename__ = "fee_types"
    __table_args__ = (
        CheckConstraint("default_amount >= 0", name="chk_fee_type_default_amount"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    default_amount = Column(Numeric(12, 2), nullable=False, default=0)
    # A fee becomes "currently due" once this date has arrived; no date means never due.
    scheduled_date = Column(Date, nullable=True)
    applicable_from = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school = relationship("School")
    class_links = relationship("FeeTypeClassLink", back_populates="fee_type", cascade="all, delete-orphan")


class FeeTypeClassLink(Base):
    """A fee type applies to a class only if linked."""

    __tablename__ = "fee_type_classes"
    __table_args__ = (
        UniqueConstraint("fee_type_id", "class_id", name="uq_fee_type_class"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    fee_type_id = Column(Uuid(as_uuid=True), ForeignKey("fee_types.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)

    fee_type = relationship("FeeType", back_populates="class_links")
    school_class = relationship("SchoolClass")
