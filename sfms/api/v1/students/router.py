"""Students router: registration, edit, detail, cascade delete, consistency check."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from sfms.auth.dependencies import get_school_context
from sfms.auth.schemas import SchoolContext
from sfms.core.exceptions import ServiceError
from sfms.db.session import get_db

from .schemas import (
    LedgerEntryResponse,
    StudentCreate,
    StudentDetail,
    StudentSummary,
    StudentUpdate,
    TotalFeesCheckResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get("", response_model=List[StudentSummary])
async def list_students(
    class_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None, description="Matches name, roll number or class name"),
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> List[StudentSummary]:
    try:
        return await service.list_students(db, ctx, class_id=class_id, search=search)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("", response_model=StudentDetail, status_code=status.HTTP_201_CREATED)
async def register_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> StudentDetail:
    try:
        return await service.register_student(db, ctx, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{student_id}", response_model=StudentDetail)
async def get_student(
    student_id: UUID,
    reference_date: Optional[date] = Query(None, description="Defaults to today in the school's timezone"),
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> StudentDetail:
    try:
        return await service.get_student_detail(db, ctx, student_id, reference_date=reference_date)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{student_id}", response_model=StudentDetail)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> StudentDetail:
    try:
        return await service.update_student(db, ctx, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> Response:
    try:
        await service.delete_student(db, ctx, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{student_id}/verify", response_model=TotalFeesCheckResponse)
async def verify_total_fees(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> TotalFeesCheckResponse:
    try:
        return await service.verify_total_fees(db, ctx, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{student_id}/ledger", response_model=List[LedgerEntryResponse])
async def list_ledger_entries(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> List[LedgerEntryResponse]:
    try:
        return await service.list_ledger_entries(db, ctx, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
