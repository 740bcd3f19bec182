"""Fleet models: trucks and their operating-cost logs."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_reconciliation.models.base import Base, IdMixin, TimestampMixin, UpdatedAtMixin


class Truck(Base, IdMixin, TimestampMixin, UpdatedAtMixin):
    """Fleet vehicle registry entry.

    current_odometer and last_maintenance_date only ever move forward.
    """

    __tablename__ = "trucks"

    registration_number: Mapped[str | None] = mapped_column(String, nullable=True)
    current_odometer: Mapped[Decimal] = mapped_column(
        Numeric(12, 1), nullable=False, default=Decimal("0")
    )
    last_maintenance_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class VehicleExpenseLog(Base, IdMixin, TimestampMixin):
    """Append-only operating-cost entry for a truck."""

    __tablename__ = "vehicle_expense_logs"

    truck_id: Mapped[UUID] = mapped_column(ForeignKey("trucks.id"), nullable=False)
    expense_id: Mapped[UUID] = mapped_column(ForeignKey("expenses.id"), nullable=False)
    expense_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    odometer_reading: Mapped[Decimal | None] = mapped_column(Numeric(12, 1), nullable=True)
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    unit_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    vendor_name: Mapped[str | None] = mapped_column(String, nullable=True)
    receipt_number: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by: Mapped[UUID] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint(
            "expense_type IN ('fuel', 'maintenance', 'insurance', 'registration', 'repair', 'other')",
            name="vehicle_expense_logs_type_check",
        ),
        CheckConstraint("amount > 0", name="vehicle_expense_logs_amount_check"),
        Index("ix_vehicle_expense_logs_truck_date", "truck_id", "expense_date"),
    )

    # Relationships
    truck: Mapped[Truck] = relationship()


class VehicleMaintenanceLog(Base, IdMixin, TimestampMixin):
    """Append-only maintenance or repair event for a truck."""

    __tablename__ = "vehicle_maintenance_logs"

    truck_id: Mapped[UUID] = mapped_column(ForeignKey("trucks.id"), nullable=False)
    expense_id: Mapped[UUID | None] = mapped_column(ForeignKey("expenses.id"), nullable=True)
    maintenance_type: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    cost: Mapped[Decimal] = mapped_column(nullable=False)
    maintenance_date: Mapped[date] = mapped_column(Date, nullable=False)
    odometer_reading: Mapped[Decimal | None] = mapped_column(Numeric(12, 1), nullable=True)
    vendor_name: Mapped[str | None] = mapped_column(String, nullable=True)
    receipt_number: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="completed")
    created_by: Mapped[UUID] = mapped_column(nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'in_progress', 'completed', 'cancelled')",
            name="vehicle_maintenance_logs_status_check",
        ),
        Index("ix_vehicle_maintenance_logs_truck_date", "truck_id", "maintenance_date"),
    )

    # Relationships
    truck: Mapped[Truck] = relationship()
