"""Expense reconciliation services."""

from expense_reconciliation.services.classifier import (
    EntityType,
    PaymentKind,
    resolve_entity_type,
    resolve_payment_kind,
)
from expense_reconciliation.services.employee_handler import EmployeePaymentHandler
from expense_reconciliation.services.history_service import LedgerHistoryService
from expense_reconciliation.services.orchestrator import ExpenseIntegrationService
from expense_reconciliation.services.state_machine import (
    BillStatus,
    PayrollRecordStateMachine,
    PayrollStatus,
)
from expense_reconciliation.services.types import (
    ExpenseIntegrationParams,
    IntegrationResult,
    ReversalResult,
    StepResult,
    StepStatus,
)
from expense_reconciliation.services.vehicle_handler import VehicleExpenseHandler
from expense_reconciliation.services.vendor_handler import VendorPaymentHandler

__all__ = [
    "EntityType",
    "PaymentKind",
    "resolve_entity_type",
    "resolve_payment_kind",
    "BillStatus",
    "PayrollRecordStateMachine",
    "PayrollStatus",
    "ExpenseIntegrationParams",
    "IntegrationResult",
    "ReversalResult",
    "StepResult",
    "StepStatus",
    "ExpenseIntegrationService",
    "EmployeePaymentHandler",
    "VehicleExpenseHandler",
    "VendorPaymentHandler",
    "LedgerHistoryService",
]
