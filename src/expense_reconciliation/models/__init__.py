"""ORM models for the reconciliation record store."""

from expense_reconciliation.models.base import Base, IdMixin, TimestampMixin, UpdatedAtMixin
from expense_reconciliation.models.expense import Expense
from expense_reconciliation.models.payroll import PayrollRecord
from expense_reconciliation.models.vehicle import Truck, VehicleExpenseLog, VehicleMaintenanceLog
from expense_reconciliation.models.vendor import VendorBill, VendorPaymentRecord

__all__ = [
    "Base",
    "IdMixin",
    "TimestampMixin",
    "UpdatedAtMixin",
    "Expense",
    "PayrollRecord",
    "Truck",
    "VehicleExpenseLog",
    "VehicleMaintenanceLog",
    "VendorBill",
    "VendorPaymentRecord",
]
