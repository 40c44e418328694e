from sfms.core.models.school import School
from sfms.core.models.class_model import SchoolClass
from sfms.core.models.fee_type import FeeType, FeeTypeClassLink
from sfms.core.models.student import Student
from sfms.core.models.student_fee_assignment import StudentFeeAssignment
from sfms.core.models.payment import Payment
from sfms.core.models.ledger_entry import LedgerEntry

__all__ = [
    "School",
    "SchoolClass",
    "FeeType",
    "FeeTypeClassLink",
    "Student",
    "StudentFeeAssignment",
    "Payment",
    "LedgerEntry",
]
