"""Payments router."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sfms.auth.dependencies import get_school_context
from sfms.auth.schemas import SchoolContext
from sfms.core.exceptions import ServiceError
from sfms.db.session import get_db
from sfms.ledger.records import PaymentRecord

from .schemas import PaymentCreate, PaymentResult
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post("", response_model=PaymentResult, status_code=status.HTTP_201_CREATED)
async def record_payment(
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> PaymentResult:
    try:
        return await service.record_payment(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[PaymentRecord])
async def list_payments(
    student_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> List[PaymentRecord]:
    try:
        return await service.list_payments(db, ctx, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
