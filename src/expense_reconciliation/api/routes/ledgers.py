"""Ledger history endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from expense_reconciliation.api.dependencies import DbSession
from expense_reconciliation.api.schemas import (
    ErrorResponse,
    PayrollRecordResponse,
    VehicleExpenseResponse,
    VehicleExpenseSummaryResponse,
    VehicleMaintenanceResponse,
    VendorBillResponse,
    VendorPaymentResponse,
)
from expense_reconciliation.errors import ValidationError
from expense_reconciliation.services.history_service import LedgerHistoryService

router = APIRouter(tags=["ledgers"])

Limit = Annotated[int, Query(ge=1, le=500)]


# ============================================================================
# Suppliers
# ============================================================================


@router.get("/suppliers/{supplier_id}/open-bills", response_model=list[VendorBillResponse])
async def list_open_bills(
    db: DbSession,
    supplier_id: Annotated[UUID, Path()],
) -> list[VendorBillResponse]:
    """Pending and partially paid bills for a supplier."""
    bills = await LedgerHistoryService(db).get_open_bills(supplier_id)
    return [VendorBillResponse.model_validate(b) for b in bills]


@router.get("/suppliers/{supplier_id}/payments", response_model=list[VendorPaymentResponse])
async def list_supplier_payments(
    db: DbSession,
    supplier_id: Annotated[UUID, Path()],
    limit: Limit = 100,
) -> list[VendorPaymentResponse]:
    """Payment history for a supplier, newest first."""
    payments = await LedgerHistoryService(db).get_supplier_payments(supplier_id, limit=limit)
    return [VendorPaymentResponse.model_validate(p) for p in payments]


# ============================================================================
# Employees
# ============================================================================


@router.get(
    "/employees/{employee_id}/pending-payroll",
    response_model=list[PayrollRecordResponse],
)
async def list_pending_payroll(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
) -> list[PayrollRecordResponse]:
    """Processed payroll records awaiting payment."""
    records = await LedgerHistoryService(db).get_pending_payroll(employee_id)
    return [PayrollRecordResponse.model_validate(r) for r in records]


@router.get("/employees/{employee_id}/payments", response_model=list[PayrollRecordResponse])
async def list_employee_payments(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
    limit: Limit = 100,
) -> list[PayrollRecordResponse]:
    """Paid payroll records for an employee."""
    records = await LedgerHistoryService(db).get_employee_payments(employee_id, limit=limit)
    return [PayrollRecordResponse.model_validate(r) for r in records]


# ============================================================================
# Trucks
# ============================================================================


@router.get("/trucks/{truck_id}/expenses", response_model=list[VehicleExpenseResponse])
async def list_vehicle_expenses(
    db: DbSession,
    truck_id: Annotated[UUID, Path()],
    limit: Limit = 100,
) -> list[VehicleExpenseResponse]:
    logs = await LedgerHistoryService(db).get_vehicle_expenses(truck_id, limit=limit)
    return [VehicleExpenseResponse.model_validate(log) for log in logs]


@router.get("/trucks/{truck_id}/maintenance", response_model=list[VehicleMaintenanceResponse])
async def list_vehicle_maintenance(
    db: DbSession,
    truck_id: Annotated[UUID, Path()],
    limit: Limit = 100,
) -> list[VehicleMaintenanceResponse]:
    logs = await LedgerHistoryService(db).get_vehicle_maintenance(truck_id, limit=limit)
    return [VehicleMaintenanceResponse.model_validate(log) for log in logs]


@router.get(
    "/trucks/{truck_id}/expense-summary",
    response_model=VehicleExpenseSummaryResponse,
    responses={400: {"model": ErrorResponse}},
)
async def get_vehicle_expense_summary(
    db: DbSession,
    truck_id: Annotated[UUID, Path()],
    period: Annotated[str | None, Query(description="30d, 90d or 1y; omit for all history")] = None,
) -> VehicleExpenseSummaryResponse:
    """Expense totals for a truck, broken down by expense type."""
    try:
        summary = await LedgerHistoryService(db).get_vehicle_expense_summary(truck_id, period)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return VehicleExpenseSummaryResponse.model_validate(summary)
