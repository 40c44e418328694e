from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class SchoolContext(BaseModel):
    """Caller's tenant, passed explicitly into every service call."""

    school_id: UUID
    user_id: Optional[UUID] = None
    timezone: str = "Asia/Kolkata"
