"""Master ledger: per-student or per-class rows against total or currently-due fees, and exports."""

import logging
from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from sfms.api.v1.classes.service import get_class
from sfms.api.v1.students.service import load_enriched_students, school_zone, today_for
from sfms.auth.schemas import SchoolContext
from sfms.core.enums import FeeBasis, LedgerView, PaymentStatus
from sfms.ledger.export import format_class_rows, format_rows, rows_to_csv, rows_to_xlsx
from sfms.ledger.records import ZERO, EnrichedStudent
from sfms.ledger.status import classify

from .schemas import LedgerReport, LedgerTotals

logger = logging.getLogger(__name__)


def _filter_status(
    students: List[EnrichedStudent],
    basis: FeeBasis,
    payment_status: Optional[PaymentStatus],
) -> List[EnrichedStudent]:
    if payment_status is None:
        return students
    return [s for s in students if classify(s.basis(basis), s.payments.total_paid) == payment_status]


def _totals(students: List[EnrichedStudent], basis: FeeBasis) -> LedgerTotals:
    basis_amount = sum((s.basis(basis) for s in students), ZERO)
    paid = sum((s.payments.total_paid for s in students), ZERO)
    return LedgerTotals(
        student_count=len(students),
        basis_amount=basis_amount,
        total_paid=paid,
        balance=basis_amount - paid,
    )


async def get_master_ledger(
    db: AsyncSession,
    ctx: SchoolContext,
    basis: FeeBasis = FeeBasis.total,
    view: LedgerView = LedgerView.student,
    class_id: Optional[UUID] = None,
    search: Optional[str] = None,
    payment_status: Optional[PaymentStatus] = None,
    reference_date: Optional[date] = None,
) -> LedgerReport:
    """
    The status filter is applied per student against the chosen basis; the class view then
    aggregates only the students that passed it.
    """
    reference_date = reference_date or today_for(ctx)
    students = await load_enriched_students(
        db,
        ctx,
        reference_date=reference_date,
        class_id=class_id,
        search=search,
    )
    students = _filter_status(students, basis, payment_status)
    if view == LedgerView.class_:
        rows = format_class_rows(students, basis)
    else:
        rows = format_rows(students, basis, school_zone(ctx))
    return LedgerReport(
        basis=basis,
        view=view,
        reference_date=reference_date,
        rows=rows,
        totals=_totals(students, basis),
    )


def export_filename(report: LedgerReport, class_name: Optional[str], extension: str) -> str:
    scope = (class_name or "all").strip().lower().replace(" ", "-") or "all"
    return f"ledger-{report.view.value}-{scope}-{report.basis.value}-{report.reference_date.isoformat()}.{extension}"


async def _export_scope(
    db: AsyncSession,
    ctx: SchoolContext,
    class_id: Optional[UUID],
    **kwargs,
) -> Tuple[LedgerReport, Optional[str]]:
    report = await get_master_ledger(db, ctx, class_id=class_id, **kwargs)
    class_name = None
    if class_id is not None:
        class_name = (await get_class(db, ctx.school_id, class_id)).name
    return report, class_name


async def export_csv(db: AsyncSession, ctx: SchoolContext, class_id: Optional[UUID] = None, **kwargs) -> Tuple[str, str]:
    report, class_name = await _export_scope(db, ctx, class_id, **kwargs)
    logger.info("Exporting %d ledger rows as CSV for school %s", len(report.rows), ctx.school_id)
    return rows_to_csv(report.rows, report.basis, report.view), export_filename(report, class_name, "csv")


async def export_xlsx(db: AsyncSession, ctx: SchoolContext, class_id: Optional[UUID] = None, **kwargs) -> Tuple[bytes, str]:
    report, class_name = await _export_scope(db, ctx, class_id, **kwargs)
    logger.info("Exporting %d ledger rows as Excel for school %s", len(report.rows), ctx.school_id)
    return rows_to_xlsx(report.rows, report.basis, report.view), export_filename(report, class_name, "xlsx")
