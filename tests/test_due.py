"""Unit tests for the currently-due calculation."""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from sfms.ledger.due import compute_due, due_assignments
from sfms.ledger.records import AssignmentRecord

SCHOOL = uuid4()


def _assignment(amount: str, scheduled, discount: str = "0") -> AssignmentRecord:
    return AssignmentRecord(
        fee_type_id=uuid4(),
        school_id=SCHOOL,
        assigned_amount=Decimal(amount),
        discount=Decimal(discount),
        scheduled_date=scheduled,
    )


@pytest.fixture()
def assignments():
    return [
        _assignment("5000", date(2025, 4, 1), discount="500"),
        _assignment("1000", date(2025, 9, 15)),
        _assignment("1500", None),
    ]


def test_only_arrived_fees_are_due(assignments) -> None:
    assert compute_due(assignments, date(2025, 3, 31)) == Decimal("0")
    assert compute_due(assignments, date(2025, 4, 1)) == Decimal("4500")
    assert compute_due(assignments, date(2025, 9, 15)) == Decimal("5500")


def test_fee_without_schedule_is_never_due(assignments) -> None:
    assert compute_due(assignments, date(2999, 1, 1)) == Decimal("5500")


def test_unparseable_schedule_is_never_due() -> None:
    a = _assignment("700", "not-a-date")
    assert a.scheduled_date is None
    assert compute_due([a], date(2030, 1, 1)) == Decimal("0")


def test_comparison_uses_date_part_only() -> None:
    a = _assignment("700", "2025-06-01T23:59:00+05:30")
    assert compute_due([a], datetime(2025, 6, 1, 0, 0)) == Decimal("700")


def test_due_is_monotonic_in_reference_date(assignments) -> None:
    dates = [date(2025, 1, 1), date(2025, 4, 1), date(2025, 6, 1), date(2025, 9, 15), date(2026, 1, 1)]
    totals = [compute_due(assignments, d) for d in dates]
    assert totals == sorted(totals)


def test_due_assignments_returns_subset(assignments) -> None:
    due = due_assignments(assignments, date(2025, 5, 1))
    assert due == [assignments[0]]
