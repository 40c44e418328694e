"""
Resolve a student's fee selections against the fee types applicable to their class.

Pure functions: the same inputs always give the same assignments and total.
"""

import logging
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Union
from uuid import UUID

from sfms.core.exceptions import InconsistentStateError, InvalidDiscountError, InvalidSelectionError

from .records import (
    ZERO,
    AssignmentRecord,
    FeeAdjustment,
    FeeTypeRecord,
    ResolvedAssignments,
    has_sub_cent,
    to_decimal,
)
from .status import EPSILON

logger = logging.getLogger(__name__)


def _adjustment(raw: Union[FeeAdjustment, Mapping, None]) -> FeeAdjustment:
    if raw is None:
        return FeeAdjustment()
    if isinstance(raw, FeeAdjustment):
        return raw
    return FeeAdjustment(**raw)


def resolve_assignments(
    class_fee_types: Iterable[FeeTypeRecord],
    selections: Iterable[UUID],
    adjustments: Optional[Mapping[UUID, Union[FeeAdjustment, Mapping]]] = None,
    student_id: Optional[UUID] = None,
) -> ResolvedAssignments:
    """
    Build one assignment per selected fee type, snapshotting default_amount and applying the discount.
    Raises InvalidSelectionError for a fee type not linked to the class and InvalidDiscountError
    for a discount outside [0, default_amount]. Duplicate selections collapse to one assignment.
    """
    by_id = {ft.id: ft for ft in class_fee_types}
    adjustments = adjustments or {}

    assignments: List[AssignmentRecord] = []
    seen = set()
    for fee_type_id in selections:
        if fee_type_id in seen:
            continue
        seen.add(fee_type_id)
        ft = by_id.get(fee_type_id)
        if ft is None:
            raise InvalidSelectionError(
                f"Fee type {fee_type_id} is not applicable to the student's class",
                entity_id=fee_type_id,
                field="fee_type_id",
            )
        adj = _adjustment(adjustments.get(fee_type_id))
        assigned = to_decimal(ft.default_amount)
        discount = to_decimal(adj.discount)
        if discount < 0 or discount > assigned:
            raise InvalidDiscountError(
                f"Discount {discount} for fee type {fee_type_id} must be between 0 and {assigned}",
                entity_id=fee_type_id,
                field="discount",
            )
        if has_sub_cent(discount):
            raise InvalidDiscountError(
                f"Discount {discount} for fee type {fee_type_id} must have at most 2 decimal places",
                entity_id=fee_type_id,
                field="discount",
            )
        description = (adj.description or "").strip() or None
        assignments.append(
            AssignmentRecord(
                student_id=student_id,
                fee_type_id=ft.id,
                school_id=ft.school_id,
                assigned_amount=assigned,
                discount=discount,
                discount_description=description,
                fee_type_name=ft.name,
                scheduled_date=ft.scheduled_date,
            )
        )

    return ResolvedAssignments(assignments=assignments, total_assigned=total_net(assignments))


def total_net(assignments: Iterable[AssignmentRecord]) -> Decimal:
    return sum((a.net_amount for a in assignments), ZERO)


def check_cached_total(
    student_id: UUID,
    cached_total,
    assignments: Iterable[AssignmentRecord],
) -> Decimal:
    """Return the recomputed total; raise InconsistentStateError when the cached value has drifted."""
    recomputed = total_net(assignments)
    cached = to_decimal(cached_total)
    if abs(cached - recomputed) > EPSILON:
        logger.warning(
            "Cached total_fees %s for student %s differs from assignments total %s",
            cached,
            student_id,
            recomputed,
        )
        raise InconsistentStateError(
            f"Cached total_fees {cached} does not match assigned total {recomputed}",
            entity_id=student_id,
            field="total_fees",
        )
    return recomputed
