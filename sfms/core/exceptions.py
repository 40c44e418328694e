from typing import Optional
from uuid import UUID

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FeeLedgerError(ServiceError):
    """Fee ledger error that points at the offending entity and field."""

    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        entity_id: Optional[UUID] = None,
        field: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, status_code or self.status_code_default)
        self.entity_id = entity_id
        self.field = field


class NotFoundError(FeeLedgerError):
    """Referenced school/class/student/fee type is absent or belongs to another school."""

    status_code_default = status.HTTP_404_NOT_FOUND


class InvalidSelectionError(FeeLedgerError):
    """Fee type is not linked to the student's class."""


class InvalidDiscountError(FeeLedgerError):
    """Discount outside [0, assigned_amount]."""


class InvalidAmountError(FeeLedgerError):
    """Non-positive payment amount."""


class InconsistentStateError(FeeLedgerError):
    """Cached totals diverge from assignments, or a replace sequence failed half-way."""

    status_code_default = status.HTTP_409_CONFLICT
