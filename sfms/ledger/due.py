"""
Currently-due fees: assignments whose fee type's scheduled date has arrived.

A fee type without a scheduled date (or with one that does not parse) is never due.
Moving the reference date forward can only add fees, never remove them.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Union

from .records import ZERO, AssignmentRecord, coerce_date


def _is_due(assignment: AssignmentRecord, reference_date: date) -> bool:
    scheduled = coerce_date(assignment.scheduled_date)
    return scheduled is not None and scheduled <= reference_date


def due_assignments(
    assignments: Iterable[AssignmentRecord],
    reference_date: Union[date, datetime],
) -> List[AssignmentRecord]:
    ref = coerce_date(reference_date)
    return [a for a in assignments if _is_due(a, ref)]


def compute_due(
    assignments: Iterable[AssignmentRecord],
    reference_date: Union[date, datetime],
) -> Decimal:
    return sum((a.net_amount for a in due_assignments(assignments, reference_date)), ZERO)
