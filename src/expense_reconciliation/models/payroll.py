"""Payroll disbursement records."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from expense_reconciliation.models.base import Base, IdMixin, TimestampMixin, UpdatedAtMixin

ZERO = Decimal("0")


class PayrollRecord(Base, IdMixin, TimestampMixin, UpdatedAtMixin):
    """One payroll disbursement for an employee over a pay period."""

    __tablename__ = "payroll_records"

    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    pay_period_start: Mapped[date] = mapped_column(Date, nullable=False)
    pay_period_end: Mapped[date] = mapped_column(Date, nullable=False)
    basic_salary: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    total_allowances: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    gross_salary: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    net_salary: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    bonus: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    overtime_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    overtime_hours: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    reimbursement_amount: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    working_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    present_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    leave_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    processed_by: Mapped[UUID | None] = mapped_column(nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    # Set on records synthesized from an expense; such records are owned by it
    source_expense_id: Mapped[UUID | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'processed', 'paid')",
            name="payroll_records_status_check",
        ),
        CheckConstraint(
            "pay_period_end >= pay_period_start",
            name="payroll_records_period_check",
        ),
        Index("ix_payroll_records_employee_status", "employee_id", "status"),
    )
