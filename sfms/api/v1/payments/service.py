"""Payments service. Payments are append-only; recording one also appends a ledger credit."""

import logging
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from fastapi import status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from sfms.api.v1.students.service import get_student, load_assignments, load_payments
from sfms.auth.schemas import SchoolContext
from sfms.core.enums import LedgerEntryType
from sfms.core.exceptions import ServiceError
from sfms.core.models import LedgerEntry, Payment
from sfms.ledger.payments import aggregate_payments, sort_payments, validate_payment_amount
from sfms.ledger.records import PaymentRecord
from sfms.ledger.resolver import total_net
from sfms.ledger.status import classify

from .schemas import PaymentCreate, PaymentResult

logger = logging.getLogger(__name__)


def _receipt_number(now: datetime) -> str:
    return f"R-{int(now.timestamp() * 1000)}"


async def record_payment(
    db: AsyncSession,
    ctx: SchoolContext,
    payload: PaymentCreate,
) -> PaymentResult:
    """
    Validate and store a payment, then refresh the student's status.
    Overpayment is accepted; the balance simply goes negative.
    """
    student = await get_student(db, ctx.school_id, payload.student_id)
    try:
        amount = validate_payment_amount(payload.amount_paid, student_id=student.id)
    except ServiceError:
        logger.warning("Rejected payment of %s for student %s", payload.amount_paid, student.id)
        raise

    now = datetime.now(timezone.utc)
    assignments = (await load_assignments(db, ctx.school_id, [student.id]))[student.id]
    previous = (await load_payments(db, ctx.school_id, [student.id]))[student.id]
    total_assigned = total_net(assignments)

    try:
        payment = Payment(
            school_id=ctx.school_id,
            student_id=student.id,
            date=payload.date or now,
            amount_paid=amount,
            mode_of_payment=payload.mode_of_payment.value,
            receipt_number=(payload.receipt_number or "").strip() or _receipt_number(now),
            description=(payload.description or "").strip() or None,
            created_at=now,
        )
        db.add(payment)
        await db.flush()
        record = PaymentRecord.model_validate(payment)

        total_paid = aggregate_payments(previous + [record]).total_paid
        balance = total_assigned - total_paid
        new_status = classify(total_assigned, total_paid)
        student.status = new_status.value
        db.add(
            LedgerEntry(
                school_id=ctx.school_id,
                student_id=student.id,
                date=payment.date,
                type=LedgerEntryType.PAYMENT.value,
                description=record.description or f"Payment received ({record.mode_of_payment.value})",
                credit=amount,
                balance=balance,
                receipt_number=payment.receipt_number,
            )
        )
        await db.commit()
    except StaleDataError:
        await db.rollback()
        logger.warning("Payment for student %s lost a concurrent update, nothing recorded", payload.student_id)
        raise ServiceError("Student was modified by another request, reload and retry", status.HTTP_409_CONFLICT)
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Payment could not be recorded", status.HTTP_409_CONFLICT)

    logger.info(
        "Recorded payment %s of %s for student %s (receipt %s), balance %s",
        record.id,
        amount,
        student.id,
        record.receipt_number,
        balance,
    )
    return PaymentResult(
        payment=record,
        total_assigned=total_assigned,
        total_paid=total_paid,
        balance=balance,
        status=new_status,
    )


async def list_payments(db: AsyncSession, ctx: SchoolContext, student_id: UUID) -> List[PaymentRecord]:
    """Payment history of one student, newest first."""
    await get_student(db, ctx.school_id, student_id)
    payments = (await load_payments(db, ctx.school_id, [student_id]))[student_id]
    return sort_payments(payments, newest_first=True)
