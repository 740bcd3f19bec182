"""Status rules for the long-lived ledger aggregates."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import case
from sqlalchemy.sql.elements import ColumnElement

from expense_reconciliation.errors import InvalidTransitionError


class BillStatus(str, Enum):
    """Vendor bill status values, derived from paid vs total."""

    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"


def derive_bill_status(paid_amount: Decimal, total_amount: Decimal) -> BillStatus:
    """Derive a bill's status from its paid and total amounts."""
    if paid_amount >= total_amount:
        return BillStatus.PAID
    if paid_amount > 0:
        return BillStatus.PARTIAL
    return BillStatus.PENDING


def bill_status_expression(
    paid_amount: ColumnElement[Any], total_amount: ColumnElement[Any]
) -> ColumnElement[str]:
    """SQL form of derive_bill_status, evaluated inside an UPDATE."""
    return case(
        (paid_amount >= total_amount, BillStatus.PAID.value),
        (paid_amount > 0, BillStatus.PARTIAL.value),
        else_=BillStatus.PENDING.value,
    )


class PayrollStatus(str, Enum):
    """Payroll record status values."""

    DRAFT = "draft"
    PROCESSED = "processed"
    PAID = "paid"


class PayrollRecordStateMachine:
    """State machine for payroll record status.

    Status only moves forward:
    - draft → processed
    - draft → paid (an expense entry records an already-made payment)
    - processed → paid
    - paid is terminal for forward moves

    Reversing an expense is the one backward move: paid → processed.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollStatus.DRAFT.value: [PayrollStatus.PROCESSED.value, PayrollStatus.PAID.value],
        PayrollStatus.PROCESSED.value: [PayrollStatus.PAID.value],
        PayrollStatus.PAID.value: [],  # Terminal state
    }

    REVERSAL_TRANSITIONS: dict[str, str] = {
        PayrollStatus.PAID.value: PayrollStatus.PROCESSED.value,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(_status_value(from_status), [])
        return _status_value(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(_status_value(from_status), _status_value(to_status))

    @classmethod
    def reversal_target(cls, from_status: str) -> str:
        """Status a record returns to when its payment is reversed."""
        status = _status_value(from_status)
        if status not in cls.REVERSAL_TRANSITIONS:
            raise InvalidTransitionError(status, PayrollStatus.PROCESSED.value, "not reversible")
        return cls.REVERSAL_TRANSITIONS[status]

    @classmethod
    def statuses_allowing(cls, to_status: str) -> list[str]:
        """Statuses from which to_status can be reached in one step."""
        target = _status_value(to_status)
        return [
            from_status
            for from_status, allowed in cls.VALID_TRANSITIONS.items()
            if target in allowed
        ]


def _status_value(status: str) -> str:
    return status.value if isinstance(status, Enum) else status
