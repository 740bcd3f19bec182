"""Employee payment integration - payroll disbursement records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from expense_reconciliation.errors import InvalidTransitionError, NotFoundError
from expense_reconciliation.models import Expense, PayrollRecord
from expense_reconciliation.services.classifier import (
    EMPLOYEE_PAYMENT_KINDS,
    EntityType,
    PaymentKind,
    resolve_payment_kind,
)
from expense_reconciliation.services.handler_base import IntegrationHandler
from expense_reconciliation.services.state_machine import (
    PayrollRecordStateMachine,
    PayrollStatus,
)
from expense_reconciliation.services.types import (
    ExpenseIntegrationParams,
    HandlerOutcome,
    StepResult,
    StepStatus,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# Days credited to a synthesized record
SALARY_DAYS = 30
SUPPLEMENTARY_DAYS = 1
OVERTIME_HOURS = Decimal("8")


@dataclass(frozen=True)
class PayBuckets:
    """How a payment amount is split across payroll record columns."""

    basic_salary: Decimal = ZERO
    total_allowances: Decimal = ZERO
    bonus: Decimal = ZERO
    overtime_amount: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    reimbursement_amount: Decimal = ZERO
    days: int = SUPPLEMENTARY_DAYS


def buckets_for(kind: PaymentKind, amount: Decimal) -> PayBuckets:
    """Route an amount into exactly one bucket for its payment kind.

    gross/net always equal the amount, which equals the sum of buckets.
    """
    if kind == PaymentKind.SALARY:
        return PayBuckets(basic_salary=amount, days=SALARY_DAYS)
    if kind == PaymentKind.ALLOWANCE:
        return PayBuckets(total_allowances=amount)
    if kind == PaymentKind.OVERTIME:
        return PayBuckets(overtime_amount=amount, overtime_hours=OVERTIME_HOURS)
    if kind in (PaymentKind.BONUS, PaymentKind.INCENTIVE):
        return PayBuckets(bonus=amount)
    if kind == PaymentKind.REIMBURSEMENT:
        return PayBuckets(reimbursement_amount=amount)
    raise ValueError(f"No payroll bucket for payment kind '{kind.value}'")


def payment_kind_for(params: ExpenseIntegrationParams) -> PaymentKind:
    """Explicit payment kind, else the one inferred from the subcategory."""
    if params.payment_kind:
        return PaymentKind(params.payment_kind)
    return resolve_payment_kind(params.subcategory)


class PayrollLedger:
    """Guarded status updates on payroll records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def mark_paid(
        self,
        *,
        payroll_record_id: UUID,
        employee_id: UUID,
        processed_by: UUID | None,
    ) -> UUID:
        """Move an existing record forward to paid.

        Raises:
            NotFoundError: No record matches (id, employee)
            InvalidTransitionError: The record cannot move to paid
        """
        result = await self.session.execute(
            update(PayrollRecord)
            .where(
                PayrollRecord.id == payroll_record_id,
                PayrollRecord.employee_id == employee_id,
                PayrollRecord.status.in_(
                    PayrollRecordStateMachine.statuses_allowing(PayrollStatus.PAID)
                ),
            )
            .values(
                status=PayrollStatus.PAID.value,
                processed_at=datetime.now(timezone.utc),
                processed_by=processed_by,
            )
            .returning(PayrollRecord.id)
            .execution_options(synchronize_session=False)
        )
        updated_id = result.scalar_one_or_none()
        if updated_id is not None:
            return updated_id

        current_status = (
            await self.session.execute(
                select(PayrollRecord.status).where(
                    PayrollRecord.id == payroll_record_id,
                    PayrollRecord.employee_id == employee_id,
                )
            )
        ).scalar_one_or_none()

        if current_status is None:
            raise NotFoundError(
                "Payroll record", payroll_record_id, f"no record for employee {employee_id}"
            )
        raise InvalidTransitionError(
            current_status, PayrollStatus.PAID.value, "payroll record already settled"
        )

    async def create_paid_record(
        self,
        *,
        employee_id: UUID,
        payment_date: date,
        amount: Decimal,
        kind: PaymentKind,
        processed_by: UUID | None,
        source_expense_id: UUID | None = None,
    ) -> UUID:
        """Synthesize a one-day payroll record that is already paid."""
        buckets = buckets_for(kind, amount)
        record = PayrollRecord(
            employee_id=employee_id,
            pay_period_start=payment_date,
            pay_period_end=payment_date,
            basic_salary=buckets.basic_salary,
            total_allowances=buckets.total_allowances,
            total_deductions=ZERO,
            gross_salary=amount,
            net_salary=amount,
            bonus=buckets.bonus,
            overtime_amount=buckets.overtime_amount,
            overtime_hours=buckets.overtime_hours,
            reimbursement_amount=buckets.reimbursement_amount,
            working_days=buckets.days,
            present_days=buckets.days,
            leave_days=0,
            status=PayrollStatus.PAID.value,
            processed_by=processed_by,
            processed_at=datetime.now(timezone.utc),
            source_expense_id=source_expense_id,
        )
        self.session.add(record)
        await self.session.flush()
        return record.id

    async def revert_payment(self, *, payroll_record_id: UUID, employee_id: UUID) -> UUID:
        """Move a paid record back to processed.

        Raises:
            NotFoundError: No record matches (id, employee)
            InvalidTransitionError: The record is not paid
        """
        result = await self.session.execute(
            update(PayrollRecord)
            .where(
                PayrollRecord.id == payroll_record_id,
                PayrollRecord.employee_id == employee_id,
                PayrollRecord.status == PayrollStatus.PAID.value,
            )
            .values(
                status=PayrollRecordStateMachine.reversal_target(PayrollStatus.PAID),
                processed_at=None,
                processed_by=None,
            )
            .returning(PayrollRecord.id)
            .execution_options(synchronize_session=False)
        )
        updated_id = result.scalar_one_or_none()
        if updated_id is not None:
            return updated_id

        current_status = await self.session.scalar(
            select(PayrollRecord.status).where(
                PayrollRecord.id == payroll_record_id,
                PayrollRecord.employee_id == employee_id,
            )
        )
        if current_status is None:
            raise NotFoundError(
                "Payroll record", payroll_record_id, f"no record for employee {employee_id}"
            )
        raise InvalidTransitionError(
            current_status, PayrollStatus.PROCESSED.value, "only a paid record can be reverted"
        )


class EmployeePaymentHandler(IntegrationHandler):
    """Employee integration.

    - salary against an existing payroll record: mark it paid
    - salary without a record: synthesize a paid salary record
    - bonus/allowance/overtime/incentive/reimbursement: synthesize a paid
      supplementary record
    - any other inferred kind (e.g. "Administrative Salaries" resolves to
      other): no payroll write, the expense is linked to the employee only
    A single primary write; every error propagates.

    Reversal deletes a record the expense synthesized, or moves a record it
    settled back from paid to processed.
    """

    entity_type = EntityType.EMPLOYEE
    integration_name = "employee"

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.payroll = PayrollLedger(session)

    def validate(self, params: ExpenseIntegrationParams) -> list[str]:
        """Reject an explicit payment kind that payroll cannot hold.

        A kind inferred from the subcategory is never an input error; see
        handle() for how unsupported inferred kinds are treated.
        """
        if not params.payment_kind:
            return []
        try:
            kind = PaymentKind(params.payment_kind)
        except ValueError:
            return [f"Unknown payment kind '{params.payment_kind}'"]

        if kind not in EMPLOYEE_PAYMENT_KINDS:
            return [f"Payment kind '{kind.value}' cannot be paid to an employee"]
        return []

    async def handle(
        self, params: ExpenseIntegrationParams, entity_id: UUID
    ) -> HandlerOutcome:
        outcome = HandlerOutcome(entity_type=self.entity_type, entity_id=entity_id)
        kind = payment_kind_for(params)
        logger.info(
            "Creating employee %s payment integration for expense %s",
            kind.value,
            params.expense_id,
        )

        if kind not in EMPLOYEE_PAYMENT_KINDS:
            logger.warning(
                "No payroll bucket for %s expense %s (subcategory=%r), linking to employee only",
                kind.value,
                params.expense_id,
                params.subcategory,
            )
            outcome.record(
                StepResult(
                    step="payroll_record",
                    status=StepStatus.SKIPPED,
                    primary=True,
                    message=f"payment kind '{kind.value}' has no payroll bucket",
                )
            )
            outcome.details["payment_kind"] = kind.value
            return outcome

        if kind == PaymentKind.SALARY and params.payroll_record_id is not None:
            record_id = await self._run_primary(
                outcome,
                "payroll_record",
                lambda: self.payroll.mark_paid(
                    payroll_record_id=params.payroll_record_id,
                    employee_id=entity_id,
                    processed_by=params.created_by,
                ),
            )
            outcome.details["payroll_update_id"] = record_id
        else:
            record_id = await self._run_primary(
                outcome,
                "payroll_record",
                lambda: self.payroll.create_paid_record(
                    employee_id=entity_id,
                    payment_date=params.expense_date,
                    amount=params.amount,
                    kind=kind,
                    processed_by=params.created_by,
                    source_expense_id=params.expense_id,
                ),
            )
            key = "payroll_update_id" if kind == PaymentKind.SALARY else "bonus_record_id"
            outcome.details[key] = record_id

        outcome.reference_id = record_id
        outcome.details["payment_kind"] = kind.value
        return outcome

    async def _reverse(self, expense: Expense) -> dict[str, int]:
        row = (
            await self.session.execute(
                select(PayrollRecord.source_expense_id).where(
                    PayrollRecord.id == expense.entity_reference_id,
                    PayrollRecord.employee_id == expense.entity_id,
                )
            )
        ).one_or_none()
        if row is None:
            raise NotFoundError("Payroll record", expense.entity_reference_id)

        # A record this expense synthesized is deleted; one it settled is reopened
        if row.source_expense_id == expense.id:
            result = await self.session.execute(
                delete(PayrollRecord)
                .where(PayrollRecord.id == expense.entity_reference_id)
                .execution_options(synchronize_session=False)
            )
            return {"payroll_record": result.rowcount}

        await self.payroll.revert_payment(
            payroll_record_id=expense.entity_reference_id,
            employee_id=expense.entity_id,
        )
        return {"payroll_status": 1}
