"""Exception hierarchy for expense-to-ledger reconciliation."""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class ReconciliationError(Exception):
    """Base class for all reconciliation failures."""

    code = "RECONCILIATION_ERROR"


class ValidationError(ReconciliationError):
    """Raised when integration parameters are missing or invalid.

    Always raised before any write is issued.
    """

    code = "VALIDATION_ERROR"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(ReconciliationError):
    """Raised when a referenced record does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any, detail: str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        msg = f"{entity} {entity_id} not found"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class PersistenceError(ReconciliationError):
    """Raised when the record store rejects a write."""

    code = "PERSISTENCE_ERROR"

    def __init__(self, step: str, original: Exception):
        self.step = step
        self.original = original
        super().__init__(f"Store write failed during '{step}': {original}")


class InvalidTransitionError(ReconciliationError):
    """Raised when an invalid status transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class OverpaymentError(ReconciliationError):
    """Raised when a payment would push a bill past its total."""

    code = "OVERPAYMENT"

    def __init__(self, bill_id: Any, amount: Decimal, outstanding: Decimal):
        self.bill_id = bill_id
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment of {amount} exceeds outstanding balance {outstanding} "
            f"on vendor bill {bill_id}"
        )


class DuplicateIntegrationError(ReconciliationError):
    """Raised when an expense was linked by a concurrent integration."""

    code = "DUPLICATE_INTEGRATION"

    def __init__(self, expense_id: Any):
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} is already linked to a ledger record")


class SecondaryStepError(ReconciliationError):
    """Raised when the strict policy rejects failed secondary steps."""

    code = "SECONDARY_STEP_FAILED"

    def __init__(self, failures: list[str]):
        self.failures = list(failures)
        super().__init__("Secondary reconciliation failed: " + "; ".join(self.failures))


class ReversalError(ReconciliationError):
    """Raised when an expense's ledger effects cannot be undone."""

    code = "REVERSAL_FAILED"

    def __init__(self, expense_id: Any, reason: str):
        self.expense_id = expense_id
        self.reason = reason
        super().__init__(f"Cannot reverse expense {expense_id}: {reason}")
