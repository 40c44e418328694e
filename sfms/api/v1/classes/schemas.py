"""Class schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)


class ClassResponse(BaseModel):
    id: UUID
    school_id: UUID
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
