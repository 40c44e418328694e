"""Fee catalog reads: classes and the fee types linked to a class. Every query is scoped by school."""

import logging
from typing import List
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sfms.core.exceptions import NotFoundError, ServiceError
from sfms.core.models import FeeType, FeeTypeClassLink, School, SchoolClass
from sfms.ledger.records import ClassRecord, FeeTypeRecord

from .schemas import ClassCreate, ClassResponse

logger = logging.getLogger(__name__)


async def get_school(db: AsyncSession, school_id: UUID) -> School:
    school = await db.get(School, school_id)
    if not school:
        raise NotFoundError(f"School {school_id} not found", entity_id=school_id, field="school_id")
    return school


async def get_class(db: AsyncSession, school_id: UUID, class_id: UUID) -> SchoolClass:
    """Class row of this school; a class of another school is reported as absent."""
    cl = (
        await db.execute(
            select(SchoolClass).where(
                SchoolClass.id == class_id,
                SchoolClass.school_id == school_id,
            )
        )
    ).scalar_one_or_none()
    if not cl:
        raise NotFoundError(f"Class {class_id} not found", entity_id=class_id, field="class_id")
    return cl


async def list_classes(db: AsyncSession, school_id: UUID) -> List[ClassRecord]:
    await get_school(db, school_id)
    result = await db.execute(
        select(SchoolClass).where(SchoolClass.school_id == school_id).order_by(SchoolClass.name)
    )
    return [ClassRecord.model_validate(c) for c in result.scalars().all()]


async def list_fee_types_for_class(
    db: AsyncSession,
    school_id: UUID,
    class_id: UUID,
) -> List[FeeTypeRecord]:
    """Fee types applicable to the class, i.e. those with a link row to it."""
    await get_school(db, school_id)
    await get_class(db, school_id, class_id)
    stmt = (
        select(FeeType)
        .join(FeeTypeClassLink, FeeTypeClassLink.fee_type_id == FeeType.id)
        .where(
            FeeType.school_id == school_id,
            FeeTypeClassLink.school_id == school_id,
            FeeTypeClassLink.class_id == class_id,
        )
        .order_by(FeeType.name)
    )
    result = await db.execute(stmt)
    return [FeeTypeRecord.model_validate(ft) for ft in result.scalars().unique().all()]


async def create_class(
    db: AsyncSession,
    school_id: UUID,
    payload: ClassCreate,
) -> ClassResponse:
    await get_school(db, school_id)
    name = payload.name.strip()
    if not name:
        raise ServiceError("Class name is required", status.HTTP_400_BAD_REQUEST)
    try:
        obj = SchoolClass(school_id=school_id, name=name)
        db.add(obj)
        await db.commit()
        await db.refresh(obj)
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Class name already exists for this school", status.HTTP_409_CONFLICT)
    logger.info("Created class %s (%s) for school %s", obj.name, obj.id, school_id)
    return ClassResponse.model_validate(obj)
