"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from expense_reconciliation.services.classifier import EntityType, PaymentKind
from expense_reconciliation.services.types import ExpenseIntegrationParams, StepStatus


# ============================================================================
# Integration schemas
# ============================================================================


class ExpenseIntegrationRequest(BaseModel):
    """Schema for integrating a posted expense."""

    expense_id: UUID
    amount: Decimal
    expense_date: date
    category: str = ""
    subcategory: str = ""
    description: str
    payment_method: str = "cash"
    created_by: UUID
    bank_account_id: UUID | None = None
    entity_type: EntityType | None = None
    entity_id: UUID | None = None
    vendor_bill_id: UUID | None = None
    payroll_record_id: UUID | None = None
    payment_kind: PaymentKind | None = None
    odometer: Decimal | None = Field(default=None, description="Odometer reading at the time of the expense")
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    location: str | None = None
    vendor_name: str | None = None
    receipt_number: str | None = None

    def to_params(self) -> ExpenseIntegrationParams:
        return ExpenseIntegrationParams(**self.model_dump())


class StepResultResponse(BaseModel):
    """Schema for one handler step."""

    model_config = ConfigDict(from_attributes=True)

    step: str
    status: StepStatus
    record_id: UUID | None = None
    primary: bool = False
    message: str | None = None
    error_code: str | None = None


class IntegrationResultResponse(BaseModel):
    """Schema for an integration result."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    integrations: dict[str, bool] = {}
    entity_type: str | None = None
    entity_id: UUID | None = None
    reference_id: UUID | None = None
    error: str | None = None
    error_code: str | None = None
    warnings: list[str] = []
    steps: list[StepResultResponse] = []
    details: dict[str, Any] = {}
    was_duplicate: bool = False


class ReversalResultResponse(BaseModel):
    """Schema for an expense reversal result."""

    model_config = ConfigDict(from_attributes=True)

    success: bool
    expense_id: UUID
    entity_type: str | None = None
    entity_id: UUID | None = None
    reference_id: UUID | None = None
    reversed: dict[str, int] = {}
    error: str | None = None
    error_code: str | None = None


# ============================================================================
# Ledger history schemas
# ============================================================================


class VendorBillResponse(BaseModel):
    """Schema for vendor bill response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    supplier_id: UUID
    bill_number: str | None = None
    bill_date: date | None = None
    due_date: date | None = None
    description: str | None = None
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: str


class VendorPaymentResponse(BaseModel):
    """Schema for vendor payment history response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    supplier_id: UUID
    vendor_bill_id: UUID | None = None
    amount: Decimal
    payment_date: date
    payment_method: str
    reference_number: str
    bank_account_id: UUID | None = None
    notes: str | None = None
    status: str


class PayrollRecordResponse(BaseModel):
    """Schema for payroll record response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    pay_period_start: date
    pay_period_end: date
    basic_salary: Decimal
    total_allowances: Decimal
    total_deductions: Decimal
    gross_salary: Decimal
    net_salary: Decimal
    bonus: Decimal
    overtime_amount: Decimal
    overtime_hours: Decimal
    reimbursement_amount: Decimal
    working_days: int
    present_days: int
    leave_days: int
    status: str
    processed_by: UUID | None = None
    processed_at: datetime | None = None


class VehicleExpenseResponse(BaseModel):
    """Schema for vehicle expense log response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    truck_id: UUID
    expense_id: UUID
    expense_type: str
    amount: Decimal
    expense_date: date
    description: str | None = None
    odometer_reading: Decimal | None = None
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    location: str | None = None
    vendor_name: str | None = None
    receipt_number: str | None = None


class VehicleMaintenanceResponse(BaseModel):
    """Schema for vehicle maintenance log response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    truck_id: UUID
    expense_id: UUID | None = None
    maintenance_type: str
    description: str
    cost: Decimal
    maintenance_date: date
    odometer_reading: Decimal | None = None
    vendor_name: str | None = None
    receipt_number: str | None = None
    status: str


class ExpenseTypeTotalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: Decimal
    count: int


class VehicleExpenseSummaryResponse(BaseModel):
    """Schema for vehicle expense summary response."""

    model_config = ConfigDict(from_attributes=True)

    truck_id: UUID
    period: str
    since: date | None = None
    total_amount: Decimal
    record_count: int
    breakdown: dict[str, ExpenseTypeTotalResponse]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None


class ValidationErrorResponse(BaseModel):
    """Schema for integration validation errors."""

    detail: list[str]
    code: str = "VALIDATION_ERROR"
