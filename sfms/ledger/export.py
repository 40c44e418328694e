"""Master-ledger rows per student and per class, and their CSV / Excel renderings."""

import csv
import io
from collections import OrderedDict
from datetime import timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from openpyxl import Workbook

from sfms.core.enums import FeeBasis, LedgerView, PaymentStatus

from .records import ZERO, CENT, ClassLedgerRow, EnrichedStudent, StudentLedgerRow, as_utc
from .status import classify, status_label

BASIS_HEADERS = {
    FeeBasis.total: "Total Assigned Fees",
    FeeBasis.due: "Currently Due Fees",
}

LedgerRow = Union[StudentLedgerRow, ClassLedgerRow]


def money(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_rows(
    students: Iterable[EnrichedStudent],
    basis_kind: FeeBasis,
    tz: Optional[tzinfo] = None,
) -> List[StudentLedgerRow]:
    """last_payment_date is the calendar date in tz (UTC when not given)."""
    basis_kind = FeeBasis(basis_kind)
    tz = tz or timezone.utc
    rows = []
    for s in students:
        basis = s.basis(basis_kind)
        paid = s.payments.total_paid
        status = classify(basis, paid)
        last = s.payments.last_payment
        rows.append(
            StudentLedgerRow(
                student_id=s.id,
                name=s.name,
                class_name=s.class_name,
                roll_no=s.roll_no,
                academic_year=s.academic_year,
                basis_kind=basis_kind,
                basis_amount=basis,
                total_paid=paid,
                balance=basis - paid,
                status=status,
                status_label=status_label(status),
                last_payment_date=as_utc(last.date).astimezone(tz).date() if last else None,
                last_payment_amount=last.amount_paid if last else None,
                last_payment_mode=last.mode_of_payment if last else None,
                last_receipt_number=last.receipt_number if last else None,
            )
        )
    return rows


def format_class_rows(students: Iterable[EnrichedStudent], basis_kind: FeeBasis) -> List[ClassLedgerRow]:
    """One row per class, sorted by class name, with sums and per-status member counts."""
    basis_kind = FeeBasis(basis_kind)
    groups: "OrderedDict[str, List[EnrichedStudent]]" = OrderedDict()
    for s in sorted(students, key=lambda s: s.class_name):
        groups.setdefault(s.class_name, []).append(s)

    rows = []
    for class_name, members in groups.items():
        basis = sum((m.basis(basis_kind) for m in members), ZERO)
        paid = sum((m.payments.total_paid for m in members), ZERO)
        counts = {st: 0 for st in PaymentStatus}
        for m in members:
            counts[classify(m.basis(basis_kind), m.payments.total_paid)] += 1
        rows.append(
            ClassLedgerRow(
                class_id=members[0].class_id,
                class_name=class_name,
                student_count=len(members),
                basis_kind=basis_kind,
                basis_amount=basis,
                total_paid=paid,
                balance=basis - paid,
                paid_count=counts[PaymentStatus.paid],
                partially_paid_count=counts[PaymentStatus.partially_paid],
                unpaid_count=counts[PaymentStatus.unpaid],
                no_fees_due_count=counts[PaymentStatus.no_fees_due],
            )
        )
    return rows


def _student_table(rows: Sequence[StudentLedgerRow], basis_kind: FeeBasis) -> Tuple[list, list]:
    header = [
        "Name",
        "Class",
        "Roll Number",
        BASIS_HEADERS[basis_kind],
        "Total Paid",
        "Balance",
        "Status",
        "Last Payment Date",
        "Last Payment Amount",
        "Payment Mode",
        "Academic Year",
        "Last Receipt Number",
    ]
    body = []
    for r in rows:
        body.append([
            r.name,
            r.class_name,
            r.roll_no,
            money(r.basis_amount),
            money(r.total_paid),
            money(r.balance),
            r.status_label,
            r.last_payment_date.isoformat() if r.last_payment_date else "-",
            money(r.last_payment_amount) if r.last_payment_amount is not None else "-",
            r.last_payment_mode.value.replace("_", " ") if r.last_payment_mode else "-",
            r.academic_year or "-",
            r.last_receipt_number or "-",
        ])
    return header, body


def _class_table(rows: Sequence[ClassLedgerRow], basis_kind: FeeBasis) -> Tuple[list, list]:
    header = [
        "Class",
        "Students",
        BASIS_HEADERS[basis_kind],
        "Total Paid",
        "Balance",
        "Paid",
        "Partial",
        "Unpaid",
        "No Fees Due",
    ]
    body = [
        [
            r.class_name,
            r.student_count,
            money(r.basis_amount),
            money(r.total_paid),
            money(r.balance),
            r.paid_count,
            r.partially_paid_count,
            r.unpaid_count,
            r.no_fees_due_count,
        ]
        for r in rows
    ]
    return header, body


def ledger_table(
    rows: Sequence[LedgerRow],
    basis_kind: FeeBasis,
    view: Optional[LedgerView] = None,
) -> Tuple[list, list]:
    """Header and body cells. Without an explicit view it is taken from the row type."""
    basis_kind = FeeBasis(basis_kind)
    if view is None:
        view = LedgerView.class_ if rows and isinstance(rows[0], ClassLedgerRow) else LedgerView.student
    if view == LedgerView.class_:
        return _class_table(rows, basis_kind)
    return _student_table(rows, basis_kind)


def rows_to_csv(rows: Sequence[LedgerRow], basis_kind: FeeBasis, view: Optional[LedgerView] = None) -> str:
    header, body = ledger_table(rows, basis_kind, view)
    out = io.StringIO()
    writer = csv.writer(out, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(header)
    for row in body:
        writer.writerow([str(c) for c in row])
    return out.getvalue()


def rows_to_xlsx(rows: Sequence[LedgerRow], basis_kind: FeeBasis, view: Optional[LedgerView] = None) -> bytes:
    header, body = ledger_table(rows, basis_kind, view)
    wb = Workbook()
    ws = wb.active
    ws.title = "Ledger"
    ws.append(header)
    for row in body:
        ws.append(row)
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()
