"""Tests for ledger history queries."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from expense_reconciliation.errors import ValidationError
from expense_reconciliation.models import (
    PayrollRecord,
    VehicleExpenseLog,
    VehicleMaintenanceLog,
    VendorBill,
    VendorPaymentRecord,
)
from expense_reconciliation.services.history_service import LedgerHistoryService
from tests.factories import make_expense, persist

pytestmark = pytest.mark.asyncio


def bill(supplier_id, status, due, paid="0"):
    return VendorBill(
        id=uuid4(),
        supplier_id=supplier_id,
        total_amount=Decimal("1000.00"),
        paid_amount=Decimal(paid),
        status=status,
        due_date=due,
    )


def payroll(employee_id, status, start, processed_at=None):
    return PayrollRecord(
        id=uuid4(),
        employee_id=employee_id,
        pay_period_start=start,
        pay_period_end=start,
        status=status,
        processed_at=processed_at,
    )


class TestSupplierHistory:
    async def test_open_bills_by_due_date(self, session, supplier_id):
        later = bill(supplier_id, "pending", date(2024, 7, 1))
        sooner = bill(supplier_id, "partial", date(2024, 6, 1), paid="200")
        settled = bill(supplier_id, "paid", date(2024, 5, 1), paid="1000")
        other_supplier = bill(uuid4(), "pending", date(2024, 5, 15))
        await persist(session, later, sooner, settled, other_supplier)

        bills = await LedgerHistoryService(session).get_open_bills(supplier_id)

        assert [b.id for b in bills] == [sooner.id, later.id]

    async def test_payments_newest_first(self, session, supplier_id, user_id):
        def payment(day):
            return VendorPaymentRecord(
                id=uuid4(),
                supplier_id=supplier_id,
                amount=Decimal("10.00"),
                payment_date=day,
                payment_method="cash",
                reference_number=f"EXP-{day}",
                created_by=user_id,
            )

        old, new = payment(date(2024, 1, 1)), payment(date(2024, 3, 1))
        await persist(session, old, new)

        payments = await LedgerHistoryService(session).get_supplier_payments(supplier_id)

        assert [p.id for p in payments] == [new.id, old.id]


class TestEmployeeHistory:
    async def test_pending_payroll_is_processed_only(self, session, employee_id):
        march = payroll(employee_id, "processed", date(2024, 3, 1))
        april = payroll(employee_id, "processed", date(2024, 4, 1))
        draft = payroll(employee_id, "draft", date(2024, 5, 1))
        paid = payroll(employee_id, "paid", date(2024, 2, 1))
        await persist(session, march, april, draft, paid)

        records = await LedgerHistoryService(session).get_pending_payroll(employee_id)

        assert [r.id for r in records] == [april.id, march.id]

    async def test_payments_are_paid_records(self, session, employee_id):
        first = payroll(
            employee_id, "paid", date(2024, 1, 1), datetime(2024, 1, 31, tzinfo=timezone.utc)
        )
        second = payroll(
            employee_id, "paid", date(2024, 2, 1), datetime(2024, 2, 29, tzinfo=timezone.utc)
        )
        pending = payroll(employee_id, "processed", date(2024, 3, 1))
        await persist(session, first, second, pending)

        records = await LedgerHistoryService(session).get_employee_payments(employee_id)

        assert [r.id for r in records] == [second.id, first.id]


class TestVehicleHistory:
    async def seed_logs(self, session, truck, user_id):
        expense = make_expense(user_id)
        logs = [
            VehicleExpenseLog(
                id=uuid4(),
                truck_id=truck.id,
                expense_id=expense.id,
                expense_type=expense_type,
                amount=Decimal(amount),
                expense_date=day,
                created_by=user_id,
            )
            for expense_type, amount, day in [
                ("fuel", "4000.00", date(2024, 5, 20)),
                ("fuel", "3500.00", date(2024, 4, 25)),
                ("repair", "8000.00", date(2024, 5, 5)),
                ("insurance", "12000.00", date(2023, 6, 1)),
            ]
        ]
        maintenance = VehicleMaintenanceLog(
            id=uuid4(),
            truck_id=truck.id,
            expense_id=expense.id,
            maintenance_type="Repair",
            description="Clutch plate",
            cost=Decimal("8000.00"),
            maintenance_date=date(2024, 5, 5),
            created_by=user_id,
        )
        await persist(session, expense)
        await persist(session, *logs, maintenance)
        return logs, maintenance

    async def test_expenses_newest_first(self, session, truck, user_id):
        logs, _ = await self.seed_logs(session, truck, user_id)

        history = await LedgerHistoryService(session).get_vehicle_expenses(truck.id)

        assert [h.expense_date for h in history] == [
            date(2024, 5, 20),
            date(2024, 5, 5),
            date(2024, 4, 25),
            date(2023, 6, 1),
        ]

    async def test_maintenance_history(self, session, truck, user_id):
        _, maintenance = await self.seed_logs(session, truck, user_id)

        history = await LedgerHistoryService(session).get_vehicle_maintenance(truck.id)

        assert [h.id for h in history] == [maintenance.id]

    async def test_summary_all_time(self, session, truck, user_id):
        await self.seed_logs(session, truck, user_id)

        summary = await LedgerHistoryService(session).get_vehicle_expense_summary(truck.id)

        assert summary.period == "all"
        assert summary.since is None
        assert summary.record_count == 4
        assert summary.total_amount == Decimal("27500.00")
        assert summary.breakdown["fuel"].total == Decimal("7500.00")
        assert summary.breakdown["fuel"].count == 2
        assert summary.breakdown["insurance"].count == 1

    async def test_summary_trailing_window(self, session, truck, user_id):
        await self.seed_logs(session, truck, user_id)

        summary = await LedgerHistoryService(session).get_vehicle_expense_summary(
            truck.id, period="30d", as_of=date(2024, 5, 31)
        )

        assert summary.since == date(2024, 5, 1)
        assert summary.record_count == 2
        assert summary.total_amount == Decimal("12000.00")
        assert set(summary.breakdown) == {"fuel", "repair"}

    async def test_summary_rejects_unknown_period(self, session, truck):
        with pytest.raises(ValidationError):
            await LedgerHistoryService(session).get_vehicle_expense_summary(truck.id, period="2w")
