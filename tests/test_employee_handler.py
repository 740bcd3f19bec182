"""Tests for employee payment integration."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from expense_reconciliation.errors import InvalidTransitionError, NotFoundError, PersistenceError
from expense_reconciliation.models import PayrollRecord
from expense_reconciliation.services.classifier import PaymentKind
from expense_reconciliation.services.employee_handler import (
    EmployeePaymentHandler,
    PayrollLedger,
    buckets_for,
)
from expense_reconciliation.services.types import StepStatus
from tests.factories import make_expense, params_for, persist


class TestBucketsFor:
    """Test routing of an amount into payroll columns."""

    def test_salary_fills_basic(self):
        buckets = buckets_for(PaymentKind.SALARY, Decimal("50000"))
        assert buckets.basic_salary == Decimal("50000")
        assert buckets.days == 30

    def test_overtime_sets_hours(self):
        buckets = buckets_for(PaymentKind.OVERTIME, Decimal("1200"))
        assert buckets.overtime_amount == Decimal("1200")
        assert buckets.overtime_hours == Decimal("8")
        assert buckets.basic_salary == Decimal("0")
        assert buckets.days == 1

    def test_incentive_is_bonus(self):
        assert buckets_for(PaymentKind.INCENTIVE, Decimal("500")).bonus == Decimal("500")

    def test_reimbursement_has_own_bucket(self):
        buckets = buckets_for(PaymentKind.REIMBURSEMENT, Decimal("750"))
        assert buckets.reimbursement_amount == Decimal("750")
        assert buckets.bonus == Decimal("0")
        assert buckets.total_allowances == Decimal("0")

    def test_non_employee_kind_rejected(self):
        with pytest.raises(ValueError):
            buckets_for(PaymentKind.FUEL, Decimal("10"))


class TestPayrollLedger:
    """Test guarded payroll status updates."""

    async def test_mark_processed_record_paid(self, session, processed_payroll, employee_id, user_id):
        record_id = await PayrollLedger(session).mark_paid(
            payroll_record_id=processed_payroll.id,
            employee_id=employee_id,
            processed_by=user_id,
        )

        assert record_id == processed_payroll.id
        await session.refresh(processed_payroll)
        assert processed_payroll.status == "paid"
        assert processed_payroll.processed_by == user_id
        assert processed_payroll.processed_at is not None

    async def test_paying_twice_is_invalid(self, session, processed_payroll, employee_id, user_id):
        ledger = PayrollLedger(session)
        await ledger.mark_paid(
            payroll_record_id=processed_payroll.id, employee_id=employee_id, processed_by=user_id
        )

        with pytest.raises(InvalidTransitionError) as exc_info:
            await ledger.mark_paid(
                payroll_record_id=processed_payroll.id, employee_id=employee_id, processed_by=user_id
            )
        assert exc_info.value.from_status == "paid"

    async def test_record_of_other_employee_not_found(self, session, processed_payroll, user_id):
        with pytest.raises(NotFoundError):
            await PayrollLedger(session).mark_paid(
                payroll_record_id=processed_payroll.id, employee_id=uuid4(), processed_by=user_id
            )

    async def test_revert_paid_record(self, session, processed_payroll, employee_id, user_id):
        ledger = PayrollLedger(session)
        await ledger.mark_paid(
            payroll_record_id=processed_payroll.id, employee_id=employee_id, processed_by=user_id
        )

        await ledger.revert_payment(payroll_record_id=processed_payroll.id, employee_id=employee_id)

        await session.refresh(processed_payroll)
        assert processed_payroll.status == "processed"
        assert processed_payroll.processed_by is None
        assert processed_payroll.processed_at is None

    async def test_revert_unpaid_record_is_invalid(self, session, processed_payroll, employee_id):
        with pytest.raises(InvalidTransitionError) as exc_info:
            await PayrollLedger(session).revert_payment(
                payroll_record_id=processed_payroll.id, employee_id=employee_id
            )
        assert exc_info.value.from_status == "processed"


class TestEmployeePaymentHandler:
    """Test the employee handler branches."""

    async def test_salary_synthesizes_paid_record(self, session, employee_id, user_id):
        """Salary of 50000 on 2024-05-01 without a payroll record."""
        expense = make_expense(
            user_id,
            category="Salaries & Benefits",
            subcategory="Salary - Production",
            amount=Decimal("50000.00"),
            expense_date=date(2024, 5, 1),
        )
        await persist(session, expense)

        outcome = await EmployeePaymentHandler(session).handle(params_for(expense), employee_id)

        record = await session.get(PayrollRecord, outcome.reference_id)
        assert record.employee_id == employee_id
        assert record.pay_period_start == date(2024, 5, 1)
        assert record.pay_period_end == date(2024, 5, 1)
        assert record.basic_salary == Decimal("50000.00")
        assert record.gross_salary == Decimal("50000.00")
        assert record.net_salary == Decimal("50000.00")
        assert record.working_days == 30
        assert record.present_days == 30
        assert record.status == "paid"
        assert outcome.details["payroll_update_id"] == record.id
        assert outcome.details["payment_kind"] == "salary"

    async def test_salary_marks_existing_record_paid(
        self, session, processed_payroll, employee_id, user_id
    ):
        expense = make_expense(user_id, subcategory="Salary - Management", amount=Decimal("50000.00"))
        await persist(session, expense)

        outcome = await EmployeePaymentHandler(session).handle(
            params_for(expense, payroll_record_id=processed_payroll.id), employee_id
        )

        assert outcome.reference_id == processed_payroll.id
        await session.refresh(processed_payroll)
        assert processed_payroll.status == "paid"

    async def test_already_paid_record_propagates(
        self, session, processed_payroll, employee_id, user_id
    ):
        processed_payroll.status = "paid"
        await session.commit()
        expense = make_expense(user_id, subcategory="Salary - Sales")
        await persist(session, expense)

        with pytest.raises(InvalidTransitionError):
            await EmployeePaymentHandler(session).handle(
                params_for(expense, payroll_record_id=processed_payroll.id), employee_id
            )

    @pytest.mark.parametrize(
        ("subcategory", "column"),
        [
            ("Bonus - Festival", "bonus"),
            ("Allowance - Medical", "total_allowances"),
            ("Overtime Payment", "overtime_amount"),
            ("Incentive Pay", "bonus"),
        ],
    )
    async def test_supplementary_payment(self, session, employee_id, user_id, subcategory, column):
        expense = make_expense(user_id, subcategory=subcategory, amount=Decimal("1500.00"))
        await persist(session, expense)

        outcome = await EmployeePaymentHandler(session).handle(params_for(expense), employee_id)

        record = await session.get(PayrollRecord, outcome.reference_id)
        assert getattr(record, column) == Decimal("1500.00")
        assert record.basic_salary == Decimal("0")
        assert record.gross_salary == record.net_salary == Decimal("1500.00")
        assert record.working_days == record.present_days == 1
        assert record.status == "paid"
        assert outcome.details["bonus_record_id"] == record.id

    async def test_explicit_reimbursement(self, session, employee_id, user_id):
        expense = make_expense(user_id, subcategory="Travel claim", amount=Decimal("820.00"))
        await persist(session, expense)

        outcome = await EmployeePaymentHandler(session).handle(
            params_for(expense, payment_kind=PaymentKind.REIMBURSEMENT), employee_id
        )

        record = await session.get(PayrollRecord, outcome.reference_id)
        assert record.reimbursement_amount == Decimal("820.00")
        assert record.bonus == Decimal("0")

    async def test_validate_checks_explicit_kind_only(self, session, user_id):
        expense = make_expense(user_id, subcategory="Stationery")
        handler = EmployeePaymentHandler(session)

        assert handler.validate(params_for(expense)) == []
        assert handler.validate(params_for(expense, payment_kind="fuel")) == [
            "Payment kind 'fuel' cannot be paid to an employee"
        ]
        assert handler.validate(params_for(expense, payment_kind="commission")) == [
            "Unknown payment kind 'commission'"
        ]
        assert handler.validate(params_for(expense, payment_kind="bonus")) == []

    @pytest.mark.parametrize(
        "subcategory",
        ["Administrative Salaries", "Provident Fund", "Employee Benefits", "Employee Insurance"],
    )
    async def test_inferred_kind_without_bucket_is_skipped(
        self, session, employee_id, user_id, subcategory
    ):
        expense = make_expense(user_id, category="Salaries & Benefits", subcategory=subcategory)
        await persist(session, expense)

        outcome = await EmployeePaymentHandler(session).handle(params_for(expense), employee_id)

        assert outcome.reference_id is None
        assert [(s.step, s.status, s.primary) for s in outcome.steps] == [
            ("payroll_record", StepStatus.SKIPPED, True)
        ]
        assert outcome.failures == []
        assert len(outcome.warnings) == 1
        records = await session.scalar(select(func.count()).select_from(PayrollRecord))
        assert records == 0

    async def test_store_error_becomes_persistence_error(self, session, employee_id, user_id):
        """A record the store rejects is a primary failure."""
        expense = make_expense(user_id, subcategory="Bonus - Performance", amount=Decimal("100.00"))
        await persist(session, expense)

        # pay_period_start is NOT NULL
        params = params_for(expense, expense_date=None)

        with pytest.raises(PersistenceError) as exc_info:
            await EmployeePaymentHandler(session).handle(params, employee_id)
        assert exc_info.value.step == "payroll_record"
