"""Read-side queries over the subsidiary ledgers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_reconciliation.errors import ValidationError
from expense_reconciliation.models import (
    PayrollRecord,
    VehicleExpenseLog,
    VehicleMaintenanceLog,
    VendorBill,
    VendorPaymentRecord,
)
from expense_reconciliation.services.state_machine import BillStatus, PayrollStatus

# Trailing windows accepted by the vehicle expense summary
SUMMARY_PERIODS: dict[str, int] = {
    "30d": 30,
    "90d": 90,
    "1y": 365,
}

DEFAULT_LIMIT = 100


@dataclass(frozen=True)
class ExpenseTypeTotal:
    total: Decimal
    count: int


@dataclass(frozen=True)
class VehicleExpenseSummary:
    """Totals of a truck's expense logs, optionally over a trailing window."""

    truck_id: UUID
    period: str
    since: date | None
    total_amount: Decimal
    record_count: int
    breakdown: dict[str, ExpenseTypeTotal] = field(default_factory=dict)


class LedgerHistoryService:
    """Service for browsing what integrations have written."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_open_bills(self, supplier_id: UUID) -> list[VendorBill]:
        """Bills still awaiting payment, soonest due first."""
        result = await self.session.execute(
            select(VendorBill)
            .where(
                VendorBill.supplier_id == supplier_id,
                VendorBill.status.in_([BillStatus.PENDING.value, BillStatus.PARTIAL.value]),
            )
            .order_by(VendorBill.due_date.asc().nulls_last(), VendorBill.created_at)
        )
        return list(result.scalars().all())

    async def get_supplier_payments(
        self, supplier_id: UUID, limit: int = DEFAULT_LIMIT
    ) -> list[VendorPaymentRecord]:
        result = await self.session.execute(
            select(VendorPaymentRecord)
            .where(VendorPaymentRecord.supplier_id == supplier_id)
            .order_by(VendorPaymentRecord.payment_date.desc(), VendorPaymentRecord.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_pending_payroll(self, employee_id: UUID) -> list[PayrollRecord]:
        """Processed payroll records that have not been paid yet."""
        result = await self.session.execute(
            select(PayrollRecord)
            .where(
                PayrollRecord.employee_id == employee_id,
                PayrollRecord.status == PayrollStatus.PROCESSED.value,
            )
            .order_by(PayrollRecord.pay_period_start.desc())
        )
        return list(result.scalars().all())

    async def get_employee_payments(
        self, employee_id: UUID, limit: int = DEFAULT_LIMIT
    ) -> list[PayrollRecord]:
        result = await self.session.execute(
            select(PayrollRecord)
            .where(
                PayrollRecord.employee_id == employee_id,
                PayrollRecord.status == PayrollStatus.PAID.value,
            )
            .order_by(PayrollRecord.processed_at.desc(), PayrollRecord.pay_period_start.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_vehicle_expenses(
        self, truck_id: UUID, limit: int = DEFAULT_LIMIT
    ) -> list[VehicleExpenseLog]:
        result = await self.session.execute(
            select(VehicleExpenseLog)
            .where(VehicleExpenseLog.truck_id == truck_id)
            .order_by(VehicleExpenseLog.expense_date.desc(), VehicleExpenseLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_vehicle_maintenance(
        self, truck_id: UUID, limit: int = DEFAULT_LIMIT
    ) -> list[VehicleMaintenanceLog]:
        result = await self.session.execute(
            select(VehicleMaintenanceLog)
            .where(VehicleMaintenanceLog.truck_id == truck_id)
            .order_by(
                VehicleMaintenanceLog.maintenance_date.desc(),
                VehicleMaintenanceLog.created_at.desc(),
            )
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_vehicle_expense_summary(
        self,
        truck_id: UUID,
        period: str | None = None,
        as_of: date | None = None,
    ) -> VehicleExpenseSummary:
        """Aggregate a truck's expense logs by expense type.

        Args:
            truck_id: Truck to summarize
            period: One of "30d", "90d", "1y"; None covers all history
            as_of: End of the trailing window (defaults to today)

        Raises:
            ValidationError: Unknown period
        """
        since: date | None = None
        if period is not None:
            if period not in SUMMARY_PERIODS:
                raise ValidationError(
                    [f"Unknown period '{period}', expected one of {', '.join(SUMMARY_PERIODS)}"]
                )
            since = (as_of or date.today()) - timedelta(days=SUMMARY_PERIODS[period])

        query = (
            select(
                VehicleExpenseLog.expense_type,
                func.sum(VehicleExpenseLog.amount),
                func.count(VehicleExpenseLog.id),
            )
            .where(VehicleExpenseLog.truck_id == truck_id)
            .group_by(VehicleExpenseLog.expense_type)
        )
        if since is not None:
            query = query.where(VehicleExpenseLog.expense_date >= since)

        result = await self.session.execute(query)
        breakdown = {
            expense_type: ExpenseTypeTotal(total=Decimal(str(total)), count=count)
            for expense_type, total, count in result.all()
        }

        return VehicleExpenseSummary(
            truck_id=truck_id,
            period=period or "all",
            since=since,
            total_amount=sum((t.total for t in breakdown.values()), Decimal("0")),
            record_count=sum(t.count for t in breakdown.values()),
            breakdown=breakdown,
        )
