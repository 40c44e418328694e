"""Master ledger router: JSON rows plus CSV and Excel downloads with the same filters."""

import re
from datetime import date
from typing import Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from sfms.auth.dependencies import get_school_context
from sfms.auth.schemas import SchoolContext
from sfms.core.enums import FeeBasis, LedgerView, PaymentStatus
from sfms.core.exceptions import ServiceError
from sfms.db.session import get_db

from .schemas import LedgerReport
from . import service

router = APIRouter(prefix="/api/v1/ledger", tags=["ledger"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _attachment(filename: str) -> dict:
    """Headers are latin-1, so class names outside ASCII only travel in the RFC 5987 filename* form."""
    fallback = re.sub(r"[^A-Za-z0-9._]+", "-", filename).strip("-") or "ledger"
    return {"Content-Disposition": f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"}


@router.get("", response_model=LedgerReport)
async def get_master_ledger(
    basis: FeeBasis = Query(FeeBasis.total),
    view: LedgerView = Query(LedgerView.student),
    class_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    reference_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> LedgerReport:
    try:
        return await service.get_master_ledger(
            db,
            ctx,
            basis=basis,
            view=view,
            class_id=class_id,
            search=search,
            payment_status=payment_status,
            reference_date=reference_date,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/export.csv")
async def export_csv(
    basis: FeeBasis = Query(FeeBasis.total),
    view: LedgerView = Query(LedgerView.student),
    class_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    reference_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> Response:
    try:
        content, filename = await service.export_csv(
            db,
            ctx,
            class_id=class_id,
            basis=basis,
            view=view,
            search=search,
            payment_status=payment_status,
            reference_date=reference_date,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(content=content, media_type="text/csv; charset=utf-8", headers=_attachment(filename))


@router.get("/export.xlsx")
async def export_xlsx(
    basis: FeeBasis = Query(FeeBasis.total),
    view: LedgerView = Query(LedgerView.student),
    class_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    reference_date: Optional[date] = Query(None),
    db: AsyncSession = Depends(get_db),
    ctx: SchoolContext = Depends(get_school_context),
) -> Response:
    try:
        content, filename = await service.export_xlsx(
            db,
            ctx,
            class_id=class_id,
            basis=basis,
            view=view,
            search=search,
            payment_status=payment_status,
            reference_date=reference_date,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(content=content, media_type=XLSX_MEDIA_TYPE, headers=_attachment(filename))
