"""Expense-to-ledger reconciliation engine.

Attributes a posted expense to a vendor bill, an employee payroll record or
a fleet vehicle's cost log, updates that ledger and back-links the expense.
"""

from expense_reconciliation.config import ReconciliationPolicy
from expense_reconciliation.services.orchestrator import ExpenseIntegrationService
from expense_reconciliation.services.types import (
    ExpenseIntegrationParams,
    IntegrationResult,
    ReversalResult,
)

__version__ = "1.0.0"

__all__ = [
    "ExpenseIntegrationParams",
    "ExpenseIntegrationService",
    "IntegrationResult",
    "ReconciliationPolicy",
    "ReversalResult",
]
