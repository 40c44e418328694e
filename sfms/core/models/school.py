import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Uuid

from sfms.db.session import Base


class School(Base):
    """
    Tenant (school). Every other row carries school_id and every query is scoped by it.
    timezone decides what "today" means for due-fee calculations.
    """

    __tablename__ = "schools"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    timezone = Column(String(100), nullable=False, default="Asia/Kolkata")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
