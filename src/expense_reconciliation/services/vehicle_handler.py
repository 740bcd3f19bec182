"""Vehicle expense integration - fleet operating-cost logs."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from expense_reconciliation.errors import NotFoundError
from expense_reconciliation.models import (
    Expense,
    Truck,
    VehicleExpenseLog,
    VehicleMaintenanceLog,
)
from expense_reconciliation.services.classifier import (
    MAINTENANCE_KINDS,
    EntityType,
    PaymentKind,
    resolve_payment_kind,
    vehicle_expense_type,
)
from expense_reconciliation.services.handler_base import IntegrationHandler
from expense_reconciliation.services.types import (
    ExpenseIntegrationParams,
    HandlerOutcome,
    StepResult,
)

logger = logging.getLogger(__name__)


def expense_kind_for(params: ExpenseIntegrationParams) -> PaymentKind:
    """Vehicle expense type: explicit kind, else inferred from the subcategory."""
    if params.payment_kind:
        return vehicle_expense_type(PaymentKind(params.payment_kind))
    return vehicle_expense_type(resolve_payment_kind(params.subcategory))


class TruckRegistry:
    """Ratchet updates on truck state.

    Each update is one conditional statement that only moves the value
    forward, so concurrent reports settle on the highest value. A
    back-dated maintenance entry therefore leaves last_maintenance_date
    alone and is reported as a skipped step.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def advance_odometer(self, truck_id: UUID, reading: Decimal) -> bool:
        """Raise current_odometer to reading if it is higher.

        Returns True if the odometer moved.
        """
        result = await self.session.execute(
            update(Truck)
            .where(
                Truck.id == truck_id,
                or_(Truck.current_odometer.is_(None), Truck.current_odometer < reading),
            )
            .values(current_odometer=reading)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            return True
        await self._ensure_exists(truck_id)
        return False

    async def advance_last_maintenance(self, truck_id: UUID, maintenance_date: date) -> bool:
        """Move last_maintenance_date forward to maintenance_date.

        Returns True if the date moved.
        """
        result = await self.session.execute(
            update(Truck)
            .where(
                Truck.id == truck_id,
                or_(
                    Truck.last_maintenance_date.is_(None),
                    Truck.last_maintenance_date < maintenance_date,
                ),
            )
            .values(last_maintenance_date=maintenance_date)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            return True
        await self._ensure_exists(truck_id)
        return False

    async def _ensure_exists(self, truck_id: UUID) -> None:
        found = await self.session.scalar(select(Truck.id).where(Truck.id == truck_id))
        if found is None:
            raise NotFoundError("Truck", truck_id)


class VehicleExpenseHandler(IntegrationHandler):
    """Truck integration.

    1. Vehicle expense log (primary, always written)
    2. Maintenance log + last maintenance date (secondary, maintenance/repair)
    3. Odometer ratchet (secondary, when a reading is reported)

    Reversal deletes the expense and maintenance logs. Truck odometer and
    last maintenance date stay where they are; later reports may have
    built on them.
    """

    entity_type = EntityType.TRUCK
    integration_name = "vehicle"

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.trucks = TruckRegistry(session)

    def validate(self, params: ExpenseIntegrationParams) -> list[str]:
        errors: list[str] = []
        try:
            expense_kind_for(params)
        except ValueError:
            errors.append(f"Unknown expense kind '{params.payment_kind}'")
        if params.odometer is not None and params.odometer < 0:
            errors.append("Odometer reading cannot be negative")
        if params.quantity is not None and params.quantity < 0:
            errors.append("Quantity cannot be negative")
        if params.unit_price is not None and params.unit_price < 0:
            errors.append("Unit price cannot be negative")
        return errors

    async def handle(
        self, params: ExpenseIntegrationParams, entity_id: UUID
    ) -> HandlerOutcome:
        outcome = HandlerOutcome(entity_type=self.entity_type, entity_id=entity_id)
        kind = expense_kind_for(params)
        logger.info(
            "Creating vehicle %s expense integration for expense %s",
            kind.value,
            params.expense_id,
        )

        log_id = await self._run_primary(
            outcome,
            "vehicle_expense_log",
            lambda: self._record_expense(params, entity_id, kind),
        )
        outcome.reference_id = log_id
        outcome.details["vehicle_expense_id"] = log_id
        outcome.details["expense_type"] = kind.value

        if kind in MAINTENANCE_KINDS:
            logged = await self._run_secondary(
                outcome,
                "maintenance_log",
                lambda: self._record_maintenance(params, entity_id, kind, outcome),
            )
            if not logged.failed:
                await self._run_secondary(
                    outcome,
                    "truck_maintenance_date",
                    lambda: self._advance_maintenance_date(params, entity_id),
                )

        if params.odometer is not None and params.odometer > 0:
            await self._run_secondary(
                outcome,
                "truck_odometer",
                lambda: self._advance_odometer(params, entity_id),
            )

        return outcome

    async def _record_expense(
        self, params: ExpenseIntegrationParams, truck_id: UUID, kind: PaymentKind
    ) -> UUID:
        log = VehicleExpenseLog(
            truck_id=truck_id,
            expense_id=params.expense_id,
            expense_type=kind.value,
            amount=params.amount,
            expense_date=params.expense_date,
            description=params.description,
            odometer_reading=params.odometer,
            quantity=params.quantity,
            unit_price=params.unit_price,
            location=params.location,
            vendor_name=params.vendor_name,
            receipt_number=params.receipt_number,
            created_by=params.created_by,
        )
        self.session.add(log)
        await self.session.flush()
        return log.id

    async def _record_maintenance(
        self,
        params: ExpenseIntegrationParams,
        truck_id: UUID,
        kind: PaymentKind,
        outcome: HandlerOutcome,
    ) -> StepResult:
        log = VehicleMaintenanceLog(
            truck_id=truck_id,
            expense_id=params.expense_id,
            maintenance_type="Repair" if kind == PaymentKind.REPAIR else "Regular Maintenance",
            description=params.description,
            cost=params.amount,
            maintenance_date=params.expense_date,
            odometer_reading=params.odometer,
            vendor_name=params.vendor_name,
            receipt_number=params.receipt_number,
            status="completed",
            created_by=params.created_by,
        )
        self.session.add(log)
        await self.session.flush()
        outcome.details["maintenance_log_id"] = log.id
        return StepResult.ok("maintenance_log", record_id=log.id)

    async def _advance_maintenance_date(
        self, params: ExpenseIntegrationParams, truck_id: UUID
    ) -> StepResult:
        if await self.trucks.advance_last_maintenance(truck_id, params.expense_date):
            return StepResult.ok("truck_maintenance_date", record_id=truck_id)
        return StepResult.skipped(
            "truck_maintenance_date", "a later maintenance date is already recorded"
        )

    async def _advance_odometer(
        self, params: ExpenseIntegrationParams, truck_id: UUID
    ) -> StepResult:
        if await self.trucks.advance_odometer(truck_id, params.odometer):
            return StepResult.ok(
                "truck_odometer", record_id=truck_id, message=f"odometer now {params.odometer}"
            )
        return StepResult.skipped(
            "truck_odometer", f"reading {params.odometer} does not exceed current odometer"
        )

    async def _reverse(self, expense: Expense) -> dict[str, int]:
        maintenance = await self.session.execute(
            delete(VehicleMaintenanceLog)
            .where(
                VehicleMaintenanceLog.expense_id == expense.id,
                VehicleMaintenanceLog.truck_id == expense.entity_id,
            )
            .execution_options(synchronize_session=False)
        )
        logs = await self.session.execute(
            delete(VehicleExpenseLog)
            .where(
                VehicleExpenseLog.id == expense.entity_reference_id,
                VehicleExpenseLog.truck_id == expense.entity_id,
            )
            .execution_options(synchronize_session=False)
        )
        if logs.rowcount == 0:
            raise NotFoundError("Vehicle expense log", expense.entity_reference_id)
        return {
            "vehicle_expense_log": logs.rowcount,
            "maintenance_log": maintenance.rowcount,
        }
