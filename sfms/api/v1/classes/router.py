"""Classes router: list/create classes and the fee types applicable to a class."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from sfms.auth.dependencies import get_school_context
from sfms.auth.schemas import SchoolContext
from sfms.core.exceptions import ServiceError
from sfms.db.session import get_db
from sfms.ledger.records import ClassRecord, FeeTypeRecord

from .schemas import ClassCreate, ClassResponse
from . import service

router = APIRouter(prefix="/api/v1/classes", tags=["classes"])


@router.get("", response_model=List[ClassRecord])
async def list_classes(
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> List[ClassRecord]:
    try:
        return await service.list_classes(db, ctx.school_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
async def create_class(
    payload: ClassCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> ClassResponse:
    try:
        return await service.create_class(db, ctx.school_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{class_id}/fee-types", response_model=List[FeeTypeRecord])
async def list_fee_types_for_class(
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> List[FeeTypeRecord]:
    try:
        return await service.list_fee_types_for_class(db, ctx.school_id, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
