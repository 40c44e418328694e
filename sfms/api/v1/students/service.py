"""
Students service: registration, edit (full replacement of fee assignments), detail, cascade delete.

The cached Student.total_fees is only ever written from the resolver's total, in the same
transaction that replaces the assignment rows. Reads recompute from assignments.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from sfms.api.v1.classes.service import get_class, get_school, list_fee_types_for_class
from sfms.auth.schemas import SchoolContext
from sfms.core.config import settings
from sfms.core.enums import LedgerEntryType
from sfms.core.exceptions import InconsistentStateError, NotFoundError, ServiceError
from sfms.core.models import (
    FeeType,
    LedgerEntry,
    Payment,
    SchoolClass,
    Student,
    StudentFeeAssignment,
)
from sfms.ledger.due import compute_due
from sfms.ledger.payments import aggregate_payments, derive_ledger, sort_payments
from sfms.ledger.records import (
    ZERO,
    AssignmentRecord,
    EnrichedStudent,
    FeeAdjustment,
    PaymentRecord,
    ResolvedAssignments,
    to_decimal,
)
from sfms.ledger.resolver import check_cached_total, resolve_assignments, total_net
from sfms.ledger.status import classify

from .schemas import (
    AssignmentResponse,
    LedgerEntryResponse,
    StudentCreate,
    StudentDetail,
    StudentSummary,
    StudentUpdate,
    TotalFeesCheckResponse,
)

logger = logging.getLogger(__name__)


def school_zone(ctx: SchoolContext) -> tzinfo:
    try:
        return ZoneInfo(ctx.timezone or settings.default_timezone)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown timezone %r for school %s, using UTC", ctx.timezone, ctx.school_id)
        return timezone.utc


def today_for(ctx: SchoolContext) -> date:
    """Calendar date in the school's timezone."""
    return datetime.now(school_zone(ctx)).date()


async def get_student(db: AsyncSession, school_id: UUID, student_id: UUID) -> Student:
    student = (
        await db.execute(
            select(Student).where(
                Student.id == student_id,
                Student.school_id == school_id,
            )
        )
    ).scalar_one_or_none()
    if not student:
        raise NotFoundError(f"Student {student_id} not found", entity_id=student_id, field="student_id")
    return student


async def load_assignments(
    db: AsyncSession,
    school_id: UUID,
    student_ids: List[UUID],
) -> Dict[UUID, List[AssignmentRecord]]:
    """Assignments joined with fee type name and scheduled date, grouped by student."""
    out: Dict[UUID, List[AssignmentRecord]] = defaultdict(list)
    if not student_ids:
        return out
    rows = (
        await db.execute(
            select(StudentFeeAssignment, FeeType.name, FeeType.scheduled_date)
            .join(FeeType, FeeType.id == StudentFeeAssignment.fee_type_id)
            .where(
                StudentFeeAssignment.school_id == school_id,
                StudentFeeAssignment.student_id.in_(student_ids),
            )
            .order_by(FeeType.name)
        )
    ).all()
    for sfa, fee_type_name, scheduled_date in rows:
        out[sfa.student_id].append(
            AssignmentRecord(
                student_id=sfa.student_id,
                fee_type_id=sfa.fee_type_id,
                school_id=sfa.school_id,
                assigned_amount=sfa.assigned_amount,
                discount=sfa.discount,
                discount_description=sfa.discount_description,
                fee_type_name=fee_type_name,
                scheduled_date=scheduled_date,
            )
        )
    return out


async def load_payments(
    db: AsyncSession,
    school_id: UUID,
    student_ids: List[UUID],
) -> Dict[UUID, List[PaymentRecord]]:
    out: Dict[UUID, List[PaymentRecord]] = defaultdict(list)
    if not student_ids:
        return out
    result = await db.execute(
        select(Payment).where(
            Payment.school_id == school_id,
            Payment.student_id.in_(student_ids),
        )
    )
    for p in result.scalars().all():
        out[p.student_id].append(PaymentRecord.model_validate(p))
    return out


async def load_enriched_students(
    db: AsyncSession,
    ctx: SchoolContext,
    reference_date: Optional[date] = None,
    class_id: Optional[UUID] = None,
    search: Optional[str] = None,
) -> List[EnrichedStudent]:
    """All students of the school (optionally one class), with recomputed totals, ordered by name."""
    await get_school(db, ctx.school_id)
    if class_id is not None:
        await get_class(db, ctx.school_id, class_id)
    reference_date = reference_date or today_for(ctx)

    stmt = (
        select(Student, SchoolClass.name)
        .join(SchoolClass, SchoolClass.id == Student.class_id)
        .where(Student.school_id == ctx.school_id)
        .order_by(Student.name, Student.roll_no)
    )
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    rows = (await db.execute(stmt)).all()

    term = (search or "").strip().lower()
    if term:
        rows = [
            (s, class_name)
            for s, class_name in rows
            if term in s.name.lower() or term in s.roll_no.lower() or term in (class_name or "").lower()
        ]

    ids = [s.id for s, _ in rows]
    assignments = await load_assignments(db, ctx.school_id, ids)
    payments = await load_payments(db, ctx.school_id, ids)

    return [
        EnrichedStudent(
            id=s.id,
            name=s.name,
            roll_no=s.roll_no,
            class_id=s.class_id,
            class_name=class_name,
            academic_year=s.academic_year,
            total_assigned=total_net(assignments[s.id]),
            due_total=compute_due(assignments[s.id], reference_date),
            payments=aggregate_payments(payments[s.id]),
        )
        for s, class_name in rows
    ]


def _summary(s: EnrichedStudent) -> StudentSummary:
    paid = s.payments.total_paid
    return StudentSummary(
        id=s.id,
        name=s.name,
        roll_no=s.roll_no,
        class_id=s.class_id,
        class_name=s.class_name,
        academic_year=s.academic_year,
        total_assigned=s.total_assigned,
        due_total=s.due_total,
        total_paid=paid,
        balance=s.total_assigned - paid,
        status=classify(s.total_assigned, paid),
    )


async def list_students(
    db: AsyncSession,
    ctx: SchoolContext,
    class_id: Optional[UUID] = None,
    search: Optional[str] = None,
) -> List[StudentSummary]:
    students = await load_enriched_students(db, ctx, class_id=class_id, search=search)
    return [_summary(s) for s in students]


def _assignment_to_response(a: AssignmentRecord) -> AssignmentResponse:
    return AssignmentResponse(
        fee_type_id=a.fee_type_id,
        fee_type_name=a.fee_type_name,
        assigned_amount=a.assigned_amount,
        discount=a.discount,
        discount_description=a.discount_description,
        net_amount=a.net_amount,
        scheduled_date=a.scheduled_date,
    )


async def get_student_detail(
    db: AsyncSession,
    ctx: SchoolContext,
    student_id: UUID,
    reference_date: Optional[date] = None,
) -> StudentDetail:
    student = await get_student(db, ctx.school_id, student_id)
    cl = await get_class(db, ctx.school_id, student.class_id)
    reference_date = reference_date or today_for(ctx)

    assignments = (await load_assignments(db, ctx.school_id, [student.id]))[student.id]
    payments = (await load_payments(db, ctx.school_id, [student.id]))[student.id]
    summary = aggregate_payments(payments)
    total_assigned = total_net(assignments)
    due_total = compute_due(assignments, reference_date)

    return StudentDetail(
        id=student.id,
        school_id=student.school_id,
        name=student.name,
        roll_no=student.roll_no,
        class_id=student.class_id,
        class_name=cl.name,
        academic_year=student.academic_year,
        version=student.version,
        cached_total_fees=to_decimal(student.total_fees),
        total_assigned=total_assigned,
        due_total=due_total,
        reference_date=reference_date,
        total_paid=summary.total_paid,
        balance=total_assigned - summary.total_paid,
        status=classify(total_assigned, summary.total_paid),
        due_status=classify(due_total, summary.total_paid),
        assignments=[_assignment_to_response(a) for a in assignments],
        payments=sort_payments(payments, newest_first=True),
        last_payment=summary.last_payment,
        statement=derive_ledger(assignments, payments, opening_date=student.created_at),
    )


async def _resolve_for_class(
    db: AsyncSession,
    school_id: UUID,
    payload: StudentCreate,
    student_id: Optional[UUID] = None,
) -> ResolvedAssignments:
    """Validate the form and resolve the selections; nothing is written here."""
    if not payload.name.strip():
        raise ServiceError("Student name is required", status.HTTP_400_BAD_REQUEST)
    if not payload.roll_no.strip():
        raise ServiceError("Roll number is required", status.HTTP_400_BAD_REQUEST)
    if not payload.academic_year.strip():
        raise ServiceError("Academic year is required", status.HTTP_400_BAD_REQUEST)

    class_fee_types = await list_fee_types_for_class(db, school_id, payload.class_id)
    if class_fee_types and not payload.fee_types:
        raise ServiceError(
            "At least one fee type must be assigned when the class has fee types",
            status.HTTP_400_BAD_REQUEST,
        )
    adjustments = {
        sel.fee_type_id: FeeAdjustment(discount=sel.discount, description=sel.discount_description)
        for sel in payload.fee_types
    }
    return resolve_assignments(
        class_fee_types,
        [sel.fee_type_id for sel in payload.fee_types],
        adjustments,
        student_id=student_id,
    )


async def _sum_paid(db: AsyncSession, school_id: UUID, student_id: UUID) -> Decimal:
    payments = (await load_payments(db, school_id, [student_id]))[student_id]
    return aggregate_payments(payments).total_paid


def _assignment_rows(student: Student, resolved: ResolvedAssignments) -> List[StudentFeeAssignment]:
    return [
        StudentFeeAssignment(
            school_id=student.school_id,
            student_id=student.id,
            fee_type_id=a.fee_type_id,
            assigned_amount=a.assigned_amount,
            discount=a.discount,
            discount_description=a.discount_description,
        )
        for a in resolved.assignments
    ]


async def register_student(
    db: AsyncSession,
    ctx: SchoolContext,
    payload: StudentCreate,
) -> StudentDetail:
    resolved = await _resolve_for_class(db, ctx.school_id, payload)
    total = resolved.total_assigned
    now = datetime.now(timezone.utc)
    try:
        student = Student(
            school_id=ctx.school_id,
            name=payload.name.strip(),
            roll_no=payload.roll_no.strip(),
            class_id=payload.class_id,
            academic_year=payload.academic_year.strip(),
            total_fees=total,
            status=classify(total, ZERO).value,
        )
        db.add(student)
        await db.flush()
        for row in _assignment_rows(student, resolved):
            db.add(row)
        if resolved.assignments:
            db.add(
                LedgerEntry(
                    school_id=ctx.school_id,
                    student_id=student.id,
                    date=now,
                    type=LedgerEntryType.FEE_ASSIGNED.value,
                    description=f"Fees assigned ({len(resolved.assignments)} fee types)",
                    debit=total,
                    balance=total,
                )
            )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            "A student with this roll number already exists for this academic year",
            status.HTTP_409_CONFLICT,
        )
    logger.info(
        "Registered student %s (%s) in class %s with total fees %s",
        student.name,
        student.id,
        student.class_id,
        total,
    )
    return await get_student_detail(db, ctx, student.id)


async def update_student(
    db: AsyncSession,
    ctx: SchoolContext,
    student_id: UUID,
    payload: StudentUpdate,
) -> StudentDetail:
    """
    Replace profile fields and the whole assignment set in one transaction.
    If inserting the new set fails after the old set was deleted, the transaction is rolled
    back and InconsistentStateError is raised.
    """
    student = await get_student(db, ctx.school_id, student_id)
    if payload.class_id != student.class_id and not settings.allow_class_change_on_edit:
        raise ServiceError("Changing a student's class is not allowed", status.HTTP_400_BAD_REQUEST)
    resolved = await _resolve_for_class(db, ctx.school_id, payload, student_id=student.id)

    previous = (await load_assignments(db, ctx.school_id, [student.id]))[student.id]
    old_total = total_net(previous)
    new_total = resolved.total_assigned
    total_paid = await _sum_paid(db, ctx.school_id, student.id)

    student.name = payload.name.strip()
    student.roll_no = payload.roll_no.strip()
    student.class_id = payload.class_id
    student.academic_year = payload.academic_year.strip()
    student.total_fees = new_total
    student.status = classify(new_total, total_paid).value
    try:
        await db.flush()
    except StaleDataError:
        await db.rollback()
        raise ServiceError("Student was modified by another request, reload and retry", status.HTTP_409_CONFLICT)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            "A student with this roll number already exists for this academic year",
            status.HTTP_409_CONFLICT,
        )

    await db.execute(
        delete(StudentFeeAssignment).where(
            StudentFeeAssignment.student_id == student.id,
            StudentFeeAssignment.school_id == ctx.school_id,
        )
    )
    try:
        for row in _assignment_rows(student, resolved):
            db.add(row)
        await db.flush()
    except SQLAlchemyError:
        await db.rollback()
        logger.error("Inserting new fee assignments failed for student %s after delete", student_id)
        raise InconsistentStateError(
            "Fee assignments could not be replaced; no changes were saved",
            entity_id=student_id,
            field="fee_types",
        )

    delta = new_total - old_total
    if delta != 0:
        db.add(
            LedgerEntry(
                school_id=ctx.school_id,
                student_id=student.id,
                date=datetime.now(timezone.utc),
                type=LedgerEntryType.FEE_ADJUSTMENT.value,
                description=f"Fee assignments changed from {old_total} to {new_total}",
                debit=delta if delta > 0 else None,
                credit=-delta if delta < 0 else None,
                balance=new_total - total_paid,
            )
        )
    await db.commit()
    logger.info("Updated student %s, total fees %s -> %s", student_id, old_total, new_total)
    return await get_student_detail(db, ctx, student.id)


async def verify_total_fees(
    db: AsyncSession,
    ctx: SchoolContext,
    student_id: UUID,
) -> TotalFeesCheckResponse:
    student = await get_student(db, ctx.school_id, student_id)
    assignments = (await load_assignments(db, ctx.school_id, [student.id]))[student.id]
    check_cached_total(student.id, student.total_fees, assignments)
    return TotalFeesCheckResponse(student_id=student.id, total_fees=to_decimal(student.total_fees), consistent=True)


async def list_ledger_entries(
    db: AsyncSession,
    ctx: SchoolContext,
    student_id: UUID,
) -> List[LedgerEntryResponse]:
    """Entries in the order they were appended, which is the order their balances were computed in."""
    await get_student(db, ctx.school_id, student_id)
    result = await db.execute(
        select(LedgerEntry)
        .where(
            LedgerEntry.school_id == ctx.school_id,
            LedgerEntry.student_id == student_id,
        )
        .order_by(LedgerEntry.created_at, LedgerEntry.date)
    )
    return [LedgerEntryResponse.model_validate(e) for e in result.scalars().all()]


async def delete_student(db: AsyncSession, ctx: SchoolContext, student_id: UUID) -> None:
    """Remove the student with its ledger entries, payments and assignments in one transaction."""
    student = await get_student(db, ctx.school_id, student_id)
    try:
        for model in (LedgerEntry, Payment, StudentFeeAssignment):
            await db.execute(
                delete(model).where(
                    model.student_id == student.id,
                    model.school_id == ctx.school_id,
                )
            )
        await db.delete(student)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise
    logger.info("Deleted student %s with payments, assignments and ledger entries", student_id)
