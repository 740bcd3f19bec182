"""Accounts-payable models: vendor bills and payment history."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from expense_reconciliation.models.base import Base, IdMixin, TimestampMixin, UpdatedAtMixin


class VendorBill(Base, IdMixin, TimestampMixin, UpdatedAtMixin):
    """A supplier bill whose paid_amount aggregates posted payments."""

    __tablename__ = "vendor_bills"

    supplier_id: Mapped[UUID] = mapped_column(nullable=False)
    bill_number: Mapped[str | None] = mapped_column(String, nullable=True)
    bill_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="vendor_bills_total_check"),
        CheckConstraint(
            "paid_amount >= 0 AND paid_amount <= total_amount",
            name="vendor_bills_paid_range_check",
        ),
        CheckConstraint(
            "status IN ('pending', 'partial', 'paid')",
            name="vendor_bills_status_check",
        ),
        Index("ix_vendor_bills_supplier_status", "supplier_id", "status"),
    )

    @property
    def remaining_amount(self) -> Decimal:
        """Outstanding balance on the bill."""
        return self.total_amount - self.paid_amount


class VendorPaymentRecord(Base, IdMixin, TimestampMixin):
    """Append-only record that a payment to a supplier happened."""

    __tablename__ = "vendor_payment_history"

    supplier_id: Mapped[UUID] = mapped_column(nullable=False)
    # No foreign key: the payment is recorded even when the bill link fails
    vendor_bill_id: Mapped[UUID | None] = mapped_column(nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[str] = mapped_column(String, nullable=False)
    reference_number: Mapped[str] = mapped_column(String, nullable=False)
    bank_account_id: Mapped[UUID | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="completed")
    # Set in the same savepoint as the bill update it records
    applied_to_bill: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[UUID] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="vendor_payment_history_amount_check"),
        Index("ix_vendor_payment_history_supplier", "supplier_id", "payment_date"),
    )
