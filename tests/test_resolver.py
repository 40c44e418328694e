"""Unit tests for resolving fee selections into assignments."""

from decimal import Decimal
from uuid import uuid4

import pytest

from sfms.core.exceptions import InconsistentStateError, InvalidDiscountError, InvalidSelectionError
from sfms.ledger.records import AssignmentRecord, FeeAdjustment, FeeTypeRecord
from sfms.ledger.resolver import check_cached_total, resolve_assignments, total_net

SCHOOL = uuid4()


def _fee_type(name: str, amount: str) -> FeeTypeRecord:
    return FeeTypeRecord(id=uuid4(), school_id=SCHOOL, name=name, default_amount=Decimal(amount))


@pytest.fixture()
def class_fee_types():
    return [_fee_type("Tuition", "5000"), _fee_type("Exam", "1000"), _fee_type("Bus", "1500")]


def test_total_is_sum_of_default_amounts(class_fee_types) -> None:
    tuition, exam, bus = class_fee_types
    result = resolve_assignments(class_fee_types, [tuition.id, exam.id, bus.id])
    assert result.total_assigned == Decimal("7500")
    assert [a.fee_type_id for a in result.assignments] == [tuition.id, exam.id, bus.id]
    assert all(a.discount == 0 for a in result.assignments)


def test_discount_reduces_net_amount(class_fee_types) -> None:
    tuition, exam, _ = class_fee_types
    result = resolve_assignments(
        class_fee_types,
        [tuition.id, exam.id],
        {tuition.id: FeeAdjustment(discount=Decimal("500"), description="Sibling")},
    )
    assert result.total_assigned == Decimal("5500")
    first = result.assignments[0]
    assert first.assigned_amount == Decimal("5000")
    assert first.discount == Decimal("500")
    assert first.net_amount == Decimal("4500")
    assert first.discount_description == "Sibling"


def test_adjustments_accept_plain_mappings(class_fee_types) -> None:
    tuition = class_fee_types[0]
    result = resolve_assignments(class_fee_types, [tuition.id], {tuition.id: {"discount": "5000"}})
    assert result.total_assigned == Decimal("0")


def test_empty_selection_totals_zero(class_fee_types) -> None:
    result = resolve_assignments(class_fee_types, [])
    assert result.assignments == []
    assert result.total_assigned == Decimal("0")


def test_duplicate_selection_collapses(class_fee_types) -> None:
    tuition = class_fee_types[0]
    result = resolve_assignments(class_fee_types, [tuition.id, tuition.id])
    assert len(result.assignments) == 1
    assert result.total_assigned == Decimal("5000")


def test_fee_type_outside_class_is_rejected(class_fee_types) -> None:
    stranger = uuid4()
    with pytest.raises(InvalidSelectionError) as exc:
        resolve_assignments(class_fee_types, [class_fee_types[0].id, stranger])
    assert exc.value.entity_id == stranger
    assert exc.value.field == "fee_type_id"
    assert exc.value.status_code == 400


@pytest.mark.parametrize("discount", ["-1", "5000.01"])
def test_discount_out_of_range_is_rejected(class_fee_types, discount) -> None:
    tuition = class_fee_types[0]
    with pytest.raises(InvalidDiscountError) as exc:
        resolve_assignments(class_fee_types, [tuition.id], {tuition.id: FeeAdjustment(discount=Decimal(discount))})
    assert exc.value.entity_id == tuition.id
    assert exc.value.field == "discount"


def test_sub_cent_discount_is_rejected(class_fee_types) -> None:
    tuition = class_fee_types[0]
    with pytest.raises(InvalidDiscountError) as exc:
        resolve_assignments(class_fee_types, [tuition.id], {tuition.id: FeeAdjustment(discount=Decimal("0.005"))})
    assert exc.value.entity_id == tuition.id
    assert exc.value.field == "discount"
    assert exc.value.status_code == 400


def test_resolution_is_idempotent(class_fee_types) -> None:
    ids = [ft.id for ft in class_fee_types]
    adjustments = {ids[1]: FeeAdjustment(discount=Decimal("250"))}
    assert resolve_assignments(class_fee_types, ids, adjustments) == resolve_assignments(class_fee_types, ids, adjustments)


def test_assigned_amount_is_a_snapshot(class_fee_types) -> None:
    tuition = class_fee_types[0]
    result = resolve_assignments(class_fee_types, [tuition.id])
    tuition.default_amount = Decimal("9999")
    assert result.assignments[0].assigned_amount == Decimal("5000")


def _assignment(amount: str, discount: str = "0") -> AssignmentRecord:
    return AssignmentRecord(
        fee_type_id=uuid4(),
        school_id=SCHOOL,
        assigned_amount=Decimal(amount),
        discount=Decimal(discount),
    )


def test_check_cached_total_accepts_matching_total() -> None:
    assignments = [_assignment("5000", "500"), _assignment("1000")]
    assert total_net(assignments) == Decimal("5500")
    assert check_cached_total(uuid4(), Decimal("5500.00"), assignments) == Decimal("5500")


def test_check_cached_total_rejects_drift() -> None:
    student_id = uuid4()
    with pytest.raises(InconsistentStateError) as exc:
        check_cached_total(student_id, Decimal("6000"), [_assignment("5000")])
    assert exc.value.entity_id == student_id
    assert exc.value.field == "total_fees"
    assert exc.value.status_code == 409
