import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from sfms.db.session import Base


class Student(Base):
    """
    Student registered in a class for an academic year.
    total_fees caches the sum of net assignment amounts; it is rewritten in the same
    transaction that replaces the assignment set. version is an optimistic lock.
    """

    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("school_id", "academic_year", "roll_no", name="uq_student_school_year_roll"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_id = Column(Uuid(as_uuid=True), ForeignKey("schools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    roll_no = Column(String(50), nullable=False)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False, index=True)
    academic_year = Column(String(20), nullable=False)  # e.g. "2025-2026"
    total_fees = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String(20), nullable=True)  # paid, partially_paid, unpaid, no_fees_due
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    school = relationship("School")
    school_class = relationship("SchoolClass")
