"""Unit tests for master-ledger rows and their CSV / Excel renderings."""

import csv
import io
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest
from openpyxl import load_workbook

from sfms.core.enums import FeeBasis, LedgerView, PaymentMode, PaymentStatus
from sfms.ledger.export import format_class_rows, format_rows, rows_to_csv, rows_to_xlsx
from sfms.ledger.records import EnrichedStudent, PaymentRecord, PaymentSummary

SCHOOL = uuid4()
TENTH = uuid4()
NINTH = uuid4()


def _student(name, class_id, class_name, total, due, paid, last=None, paid_at=None) -> EnrichedStudent:
    sid = uuid4()
    payment = None
    if last:
        payment = PaymentRecord(
            id=uuid4(),
            student_id=sid,
            school_id=SCHOOL,
            date=paid_at or datetime(2025, 6, 10, tzinfo=timezone.utc),
            amount_paid=Decimal(last),
            mode_of_payment=PaymentMode.bank_transfer,
            receipt_number="R-100",
        )
    return EnrichedStudent(
        id=sid,
        name=name,
        roll_no="1",
        class_id=class_id,
        class_name=class_name,
        academic_year="2025-2026",
        total_assigned=Decimal(total),
        due_total=Decimal(due),
        payments=PaymentSummary(total_paid=Decimal(paid), last_payment=payment),
    )


@pytest.fixture()
def students():
    return [
        _student('Asha "Ash" Rao, Jr.', TENTH, "10th", "6500", "6000", "5000", last="5000"),
        _student("Bilal\nKhan", TENTH, "10th", "6500", "6000", "6000"),
        _student("Chitra", NINTH, "9th", "0", "0", "0"),
    ]


def test_format_rows_against_total(students) -> None:
    rows = format_rows(students, FeeBasis.total)
    first = rows[0]
    assert first.basis_amount == Decimal("6500")
    assert first.balance == Decimal("1500")
    assert first.status == PaymentStatus.partially_paid
    assert first.status_label == "Partial"
    assert first.last_payment_amount == Decimal("5000")
    assert first.last_payment_mode == PaymentMode.bank_transfer
    assert first.last_receipt_number == "R-100"
    assert rows[2].status == PaymentStatus.no_fees_due


def test_basis_changes_status(students) -> None:
    by_total = format_rows(students, FeeBasis.total)
    by_due = format_rows(students, FeeBasis.due)
    assert by_total[1].status == PaymentStatus.partially_paid
    assert by_due[1].status == PaymentStatus.paid
    assert by_due[1].balance == Decimal("0")


def test_class_rows_grouped_and_counted(students) -> None:
    rows = format_class_rows(students, FeeBasis.total)
    assert [r.class_name for r in rows] == ["10th", "9th"]
    tenth = rows[0]
    assert tenth.student_count == 2
    assert tenth.basis_amount == Decimal("13000")
    assert tenth.total_paid == Decimal("11000")
    assert tenth.balance == Decimal("2000")
    assert tenth.partially_paid_count == 2
    assert rows[1].no_fees_due_count == 1


def test_csv_quotes_free_text_and_recovers_totals(students) -> None:
    rows = format_rows(students, FeeBasis.total)
    text = rows_to_csv(rows, FeeBasis.total)

    parsed = list(csv.reader(io.StringIO(text)))
    header, body = parsed[0], parsed[1:]
    assert header[:4] == ["Name", "Class", "Roll Number", "Total Assigned Fees"]
    assert len(body) == 3
    assert body[0][0] == 'Asha "Ash" Rao, Jr.'
    assert body[1][0] == "Bilal\nKhan"
    assert body[0][3] == "6500.00"
    assert body[2][7] == "-"

    basis_col = header.index("Total Assigned Fees")
    paid_col = header.index("Total Paid")
    assert sum(Decimal(r[basis_col]) for r in body) == sum(r.basis_amount for r in rows)
    assert sum(Decimal(r[paid_col]) for r in body) == sum(r.total_paid for r in rows)


def test_csv_uses_due_header(students) -> None:
    text = rows_to_csv(format_rows(students, FeeBasis.due), FeeBasis.due)
    assert text.splitlines()[0].split(",")[3] == "Currently Due Fees"


def test_empty_class_export_keeps_class_header() -> None:
    text = rows_to_csv([], FeeBasis.total, LedgerView.class_)
    assert text.splitlines() == ["Class,Students,Total Assigned Fees,Total Paid,Balance,Paid,Partial,Unpaid,No Fees Due"]


def test_xlsx_contains_the_same_table(students) -> None:
    rows = format_class_rows(students, FeeBasis.total)
    data = rows_to_xlsx(rows, FeeBasis.total)

    wb = load_workbook(io.BytesIO(data))
    ws = wb["Ledger"]
    values = list(ws.iter_rows(values_only=True))
    assert values[0][0] == "Class"
    assert values[1][0] == "10th"
    assert values[1][1] == 2
    assert Decimal(str(values[1][2])) == Decimal("13000")


def test_last_payment_date_is_the_school_calendar_day() -> None:
    late_evening_utc = datetime(2025, 6, 9, 19, 30, tzinfo=timezone.utc)
    student = _student("Asha", TENTH, "10th", "6500", "6500", "500", last="500", paid_at=late_evening_utc)

    assert format_rows([student], FeeBasis.total, ZoneInfo("Asia/Kolkata"))[0].last_payment_date == date(2025, 6, 10)
    assert format_rows([student], FeeBasis.total)[0].last_payment_date == date(2025, 6, 9)
