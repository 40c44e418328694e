"""Fee type management. Editing a fee type never touches existing student assignments."""

import logging
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sfms.core.exceptions import NotFoundError, ServiceError
from sfms.core.models import FeeType, FeeTypeClassLink, SchoolClass, StudentFeeAssignment
from sfms.api.v1.classes.service import get_school

from .schemas import FeeTypeCreate, FeeTypeResponse, FeeTypeUpdate

logger = logging.getLogger(__name__)


def _to_response(ft: FeeType, class_ids: Iterable[UUID]) -> FeeTypeResponse:
    return FeeTypeResponse(
        id=ft.id,
        school_id=ft.school_id,
        name=ft.name,
        description=ft.description,
        default_amount=ft.default_amount,
        scheduled_date=ft.scheduled_date,
        applicable_from=ft.applicable_from,
        class_ids=sorted(class_ids, key=str),
    )


async def _validate_class_ids(db: AsyncSession, school_id: UUID, class_ids: List[UUID]) -> List[UUID]:
    unique_ids = list(dict.fromkeys(class_ids))
    if not unique_ids:
        return []
    found = set(
        (
            await db.execute(
                select(SchoolClass.id).where(
                    SchoolClass.school_id == school_id,
                    SchoolClass.id.in_(unique_ids),
                )
            )
        ).scalars().all()
    )
    for class_id in unique_ids:
        if class_id not in found:
            raise NotFoundError(f"Class {class_id} not found", entity_id=class_id, field="class_ids")
    return unique_ids


async def _get_fee_type(db: AsyncSession, school_id: UUID, fee_type_id: UUID) -> FeeType:
    ft = (
        await db.execute(
            select(FeeType).where(
                FeeType.id == fee_type_id,
                FeeType.school_id == school_id,
            )
        )
    ).scalar_one_or_none()
    if not ft:
        raise NotFoundError(f"Fee type {fee_type_id} not found", entity_id=fee_type_id, field="fee_type_id")
    return ft


async def _class_ids_by_fee_type(db: AsyncSession, school_id: UUID) -> Dict[UUID, List[UUID]]:
    rows = (
        await db.execute(
            select(FeeTypeClassLink.fee_type_id, FeeTypeClassLink.class_id).where(
                FeeTypeClassLink.school_id == school_id
            )
        )
    ).all()
    out: Dict[UUID, List[UUID]] = {}
    for fee_type_id, class_id in rows:
        out.setdefault(fee_type_id, []).append(class_id)
    return out


async def list_fee_types(db: AsyncSession, school_id: UUID) -> List[FeeTypeResponse]:
    await get_school(db, school_id)
    result = await db.execute(
        select(FeeType).where(FeeType.school_id == school_id).order_by(FeeType.name)
    )
    links = await _class_ids_by_fee_type(db, school_id)
    return [_to_response(ft, links.get(ft.id, [])) for ft in result.scalars().all()]


async def create_fee_type(
    db: AsyncSession,
    school_id: UUID,
    payload: FeeTypeCreate,
) -> FeeTypeResponse:
    await get_school(db, school_id)
    name = payload.name.strip()
    if not name:
        raise ServiceError("Fee type name is required", status.HTTP_400_BAD_REQUEST)
    class_ids = await _validate_class_ids(db, school_id, payload.class_ids)
    try:
        ft = FeeType(
            school_id=school_id,
            name=name,
            description=(payload.description or "").strip() or None,
            default_amount=payload.default_amount,
            scheduled_date=payload.scheduled_date,
            applicable_from=payload.applicable_from,
        )
        db.add(ft)
        await db.flush()
        for class_id in class_ids:
            db.add(FeeTypeClassLink(fee_type_id=ft.id, class_id=class_id, school_id=school_id))
        await db.commit()
        await db.refresh(ft)
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Fee type could not be created", status.HTTP_409_CONFLICT)
    logger.info("Created fee type %s (%s) linked to %d classes", ft.name, ft.id, len(class_ids))
    return _to_response(ft, class_ids)


async def update_fee_type(
    db: AsyncSession,
    school_id: UUID,
    fee_type_id: UUID,
    payload: FeeTypeUpdate,
) -> FeeTypeResponse:
    ft = await _get_fee_type(db, school_id, fee_type_id)
    class_ids: Optional[List[UUID]] = None
    if payload.class_ids is not None:
        class_ids = await _validate_class_ids(db, school_id, payload.class_ids)

    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise ServiceError("Fee type name is required", status.HTTP_400_BAD_REQUEST)
        ft.name = name
    if payload.description is not None:
        ft.description = payload.description.strip() or None
    if payload.default_amount is not None:
        ft.default_amount = payload.default_amount
    fields_set = payload.model_fields_set
    if "scheduled_date" in fields_set:
        ft.scheduled_date = payload.scheduled_date
    if "applicable_from" in fields_set:
        ft.applicable_from = payload.applicable_from
    try:
        if class_ids is not None:
            await db.execute(
                delete(FeeTypeClassLink).where(
                    FeeTypeClassLink.fee_type_id == ft.id,
                    FeeTypeClassLink.school_id == school_id,
                )
            )
            for class_id in class_ids:
                db.add(FeeTypeClassLink(fee_type_id=ft.id, class_id=class_id, school_id=school_id))
        await db.commit()
        await db.refresh(ft)
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Fee type update conflict", status.HTTP_409_CONFLICT)
    links = await _class_ids_by_fee_type(db, school_id)
    logger.info("Updated fee type %s", ft.id)
    return _to_response(ft, links.get(ft.id, []))


async def delete_fee_type(db: AsyncSession, school_id: UUID, fee_type_id: UUID) -> None:
    ft = await _get_fee_type(db, school_id, fee_type_id)
    in_use = (
        await db.execute(
            select(func.count(StudentFeeAssignment.id)).where(
                StudentFeeAssignment.fee_type_id == ft.id,
                StudentFeeAssignment.school_id == school_id,
            )
        )
    ).scalar() or 0
    if in_use:
        raise ServiceError(
            f"Fee type is assigned to {in_use} student(s) and cannot be deleted",
            status.HTTP_409_CONFLICT,
        )
    await db.execute(delete(FeeTypeClassLink).where(FeeTypeClassLink.fee_type_id == ft.id))
    await db.execute(delete(FeeType).where(FeeType.id == ft.id, FeeType.school_id == school_id))
    await db.commit()
    logger.info("Deleted fee type %s", fee_type_id)
