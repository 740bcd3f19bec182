"""Expense record, the source of every integration."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from expense_reconciliation.models.base import Base, IdMixin, TimestampMixin, UpdatedAtMixin


class Expense(Base, IdMixin, TimestampMixin, UpdatedAtMixin):
    """A posted cost transaction.

    The entity_* columns are the back-link to the subsidiary ledger record
    an integration produced. They are written once; a set entity_type marks
    the expense as already integrated. entity_reference_id stays empty when
    the integration recorded nothing (an employee expense with no payroll
    bucket). Reversal clears all three.
    """

    __tablename__ = "expenses"

    amount: Mapped[Decimal] = mapped_column(nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False, default="")
    subcategory: Mapped[str] = mapped_column(String, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False)
    payment_method: Mapped[str] = mapped_column(String, nullable=False, default="cash")
    bank_account_id: Mapped[UUID | None] = mapped_column(nullable=True)
    entity_type: Mapped[str | None] = mapped_column(String, nullable=True)
    entity_id: Mapped[UUID | None] = mapped_column(nullable=True)
    entity_reference_id: Mapped[UUID | None] = mapped_column(nullable=True)
    created_by: Mapped[UUID] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint("amount > 0", name="expenses_amount_check"),
        CheckConstraint(
            "entity_type IS NULL OR entity_type IN ('truck', 'employee', 'supplier')",
            name="expenses_entity_type_check",
        ),
        Index("ix_expenses_entity", "entity_type", "entity_id"),
    )

    @property
    def is_linked(self) -> bool:
        """Whether an integration already linked this expense."""
        return self.entity_type is not None
