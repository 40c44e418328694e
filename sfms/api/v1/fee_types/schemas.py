"""Fee type schemas."""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from sfms.ledger.records import FeeTypeRecord


class FeeTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    default_amount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    scheduled_date: Optional[date] = None
    applicable_from: Optional[date] = None
    class_ids: List[UUID] = Field(default_factory=list)


class FeeTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    default_amount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    scheduled_date: Optional[date] = None
    applicable_from: Optional[date] = None
    class_ids: Optional[List[UUID]] = Field(None, description="Replaces the linked classes when given")


class FeeTypeResponse(FeeTypeRecord):
    class_ids: List[UUID] = Field(default_factory=list)
