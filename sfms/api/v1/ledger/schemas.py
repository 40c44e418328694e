"""Master ledger schemas."""

from datetime import date
from decimal import Decimal
from typing import List, Union

from pydantic import BaseModel

from sfms.core.enums import FeeBasis, LedgerView
from sfms.ledger.records import ClassLedgerRow, StudentLedgerRow


class LedgerTotals(BaseModel):
    student_count: int
    basis_amount: Decimal
    total_paid: Decimal
    balance: Decimal


class LedgerReport(BaseModel):
    basis: FeeBasis
    view: LedgerView
    reference_date: date
    rows: List[Union[StudentLedgerRow, ClassLedgerRow]]
    totals: LedgerTotals
