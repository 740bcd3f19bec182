"""Expense integration orchestrator.

Coordinates one expense's journey into its subsidiary ledger:
1. Validate the request (no writes on failure)
2. Resolve the entity (explicit selection wins over classification)
3. Dispatch to exactly one handler inside a SAVEPOINT
4. Apply the reconciliation policy to failed secondary steps
5. Back-link the expense to the ledger record that was produced

reverse() undoes a linked expense's ledger writes and clears the link.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from expense_reconciliation.config import ReconciliationPolicy
from expense_reconciliation.errors import (
    DuplicateIntegrationError,
    NotFoundError,
    PersistenceError,
    ReconciliationError,
    ReversalError,
    SecondaryStepError,
    ValidationError,
)
from expense_reconciliation.models import Expense
from expense_reconciliation.services.classifier import EntityType, resolve_entity_type
from expense_reconciliation.services.employee_handler import EmployeePaymentHandler
from expense_reconciliation.services.handler_base import IntegrationHandler
from expense_reconciliation.services.types import (
    ExpenseIntegrationParams,
    HandlerOutcome,
    IntegrationResult,
    ReversalResult,
)
from expense_reconciliation.services.vehicle_handler import VehicleExpenseHandler
from expense_reconciliation.services.vendor_handler import VendorPaymentHandler

logger = logging.getLogger(__name__)

INTEGRATION_NAMES = {
    EntityType.SUPPLIER: VendorPaymentHandler.integration_name,
    EntityType.EMPLOYEE: EmployeePaymentHandler.integration_name,
    EntityType.TRUCK: VehicleExpenseHandler.integration_name,
}


def validate_params(params: ExpenseIntegrationParams) -> list[str]:
    """Validate integration requirements.

    Returns list of error messages (empty if valid).
    """
    errors: list[str] = []

    if not params.expense_id:
        errors.append("Expense ID is required")
    if params.amount is None or params.amount <= 0:
        errors.append("Valid amount is required")
    if not params.expense_date:
        errors.append("Date is required")
    if not (params.description or "").strip():
        errors.append("Description is required")
    if not params.created_by:
        errors.append("Created by user ID is required")

    if params.entity_type:
        if not params.entity_id:
            errors.append("Entity ID is required when entity type is specified")
        try:
            EntityType(params.entity_type)
        except ValueError:
            errors.append(f"Unknown entity type '{params.entity_type}'")

    return errors


def resolve_target(params: ExpenseIntegrationParams) -> tuple[EntityType, UUID] | None:
    """Pick the entity an expense integrates with.

    An explicit entity_type overrides classification. Returns None when no
    type resolves or there is no entity id to attach the expense to.
    """
    if params.entity_type:
        entity_type: EntityType | None = EntityType(params.entity_type)
    else:
        entity_type = resolve_entity_type(params.category, params.subcategory)

    if entity_type is None or params.entity_id is None:
        return None
    return entity_type, params.entity_id


class ExpenseIntegrationService:
    """Expense-to-ledger reconciliation entry point.

    Runs inside the caller's session and never commits; the caller owns
    the transaction. Each integration is wrapped in a SAVEPOINT so a failed
    run leaves no partial ledger writes behind.
    """

    def __init__(
        self,
        session: AsyncSession,
        policy: ReconciliationPolicy | None = None,
    ):
        self.session = session
        self.policy = policy or ReconciliationPolicy()
        self._handlers: dict[EntityType, IntegrationHandler] = {
            EntityType.SUPPLIER: VendorPaymentHandler(session),
            EntityType.EMPLOYEE: EmployeePaymentHandler(session),
            EntityType.TRUCK: VehicleExpenseHandler(session),
        }

    async def integrate(self, params: ExpenseIntegrationParams) -> IntegrationResult:
        """Integrate one posted expense with its subsidiary ledger.

        Raises:
            ValidationError: Parameters are missing or invalid

        Returns:
            IntegrationResult; handler failures are reported with success=False
        """
        errors = validate_params(params)
        if errors:
            raise ValidationError(errors)

        logger.info(
            "Processing expense integration for %s (category=%r, subcategory=%r, entity=%s %s)",
            params.expense_id,
            params.category,
            params.subcategory,
            params.entity_type,
            params.entity_id,
        )

        target = resolve_target(params)
        if target is None:
            logger.info("No entity integration required for expense %s", params.expense_id)
            return IntegrationResult(success=True)

        entity_type, entity_id = target
        handler = self._handlers[entity_type]
        handler_errors = handler.validate(params)
        if handler_errors:
            raise ValidationError(handler_errors)

        name = INTEGRATION_NAMES[entity_type]
        outcome: HandlerOutcome | None = None
        try:
            async with self.session.begin_nested():
                expense = await self._load_expense(params.expense_id)
                if expense.is_linked:
                    logger.info(
                        "Expense %s already linked to %s %s, skipping",
                        expense.id,
                        expense.entity_type,
                        expense.entity_reference_id,
                    )
                    return self._duplicate_result(expense)

                outcome = await handler.handle(params, entity_id)

                if outcome.failures and self.policy.fail_on_secondary_error:
                    raise SecondaryStepError([f"{s.step}: {s.message}" for s in outcome.failures])

                await self._link_expense(params.expense_id, outcome)
        except ReconciliationError as exc:
            logger.error("%s integration failed for expense %s: %s", name, params.expense_id, exc)
            return IntegrationResult(
                success=False,
                integrations={name: False},
                entity_type=entity_type.value,
                entity_id=entity_id,
                error=str(exc),
                error_code=exc.code,
                warnings=tuple(outcome.warnings) if outcome else (),
                steps=tuple(outcome.steps) if outcome else (),
            )

        logger.info(
            "%s integration completed for expense %s -> %s",
            name,
            params.expense_id,
            outcome.reference_id,
        )
        return IntegrationResult(
            success=True,
            integrations={name: True},
            entity_type=entity_type.value,
            entity_id=entity_id,
            reference_id=outcome.reference_id,
            warnings=tuple(outcome.warnings),
            steps=tuple(outcome.steps),
            details=dict(outcome.details),
        )

    async def reverse(self, expense_id: UUID) -> ReversalResult:
        """Undo an integrated expense's ledger effects and clear its link.

        Deletes the payment, payroll or vehicle log rows the integration
        wrote, takes a payment back off its vendor bill and reopens a
        payroll record the expense settled. The expense row itself is kept;
        deleting it is the caller's business.

        Returns:
            ReversalResult; failures are reported with success=False and
            leave every row as it was
        """
        logger.info("Reversing ledger effects of expense %s", expense_id)
        entity_type: EntityType | None = None
        try:
            async with self.session.begin_nested():
                expense = await self._load_expense(expense_id)
                if not expense.is_linked:
                    logger.info("Expense %s is not linked, nothing to reverse", expense_id)
                    return ReversalResult(success=True, expense_id=expense_id)

                entity_type = EntityType(expense.entity_type)
                entity_id = expense.entity_id
                reference_id = expense.entity_reference_id

                reversed_records: dict[str, int] = {}
                if reference_id is not None:
                    reversed_records = await self._handlers[entity_type].reverse(expense)
                await self._unlink_expense(expense_id, reference_id)
        except ReconciliationError as exc:
            logger.error("Reversal of expense %s failed: %s", expense_id, exc)
            return ReversalResult(
                success=False,
                expense_id=expense_id,
                entity_type=entity_type.value if entity_type else None,
                error=str(exc),
                error_code=exc.code,
            )

        logger.info(
            "Reversed %s integration of expense %s: %s",
            entity_type.value,
            expense_id,
            reversed_records,
        )
        return ReversalResult(
            success=True,
            expense_id=expense_id,
            entity_type=entity_type.value,
            entity_id=entity_id,
            reference_id=reference_id,
            reversed=reversed_records,
        )

    async def _load_expense(self, expense_id: UUID) -> Expense:
        try:
            expense = await self.session.scalar(
                select(Expense)
                .where(Expense.id == expense_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as exc:
            logger.exception("Loading expense %s failed", expense_id)
            raise PersistenceError("expense_load", exc) from exc
        if expense is None:
            raise NotFoundError("Expense", expense_id)
        return expense

    async def _link_expense(self, expense_id: UUID, outcome: HandlerOutcome) -> None:
        """Write the back-link, once.

        Conditional on the expense still being unlinked so a concurrent
        integration of the same expense cannot double-apply.
        """
        try:
            result = await self.session.execute(
                update(Expense)
                .where(Expense.id == expense_id, Expense.entity_type.is_(None))
                .values(
                    entity_type=outcome.entity_type.value,
                    entity_id=outcome.entity_id,
                    entity_reference_id=outcome.reference_id,
                )
            )
        except SQLAlchemyError as exc:
            logger.exception("Linking expense %s failed", expense_id)
            raise PersistenceError("expense_link", exc) from exc
        if result.rowcount != 1:
            raise DuplicateIntegrationError(expense_id)
        logger.info(
            "Linked expense %s to %s %s",
            expense_id,
            outcome.entity_type.value,
            outcome.reference_id,
        )

    async def _unlink_expense(self, expense_id: UUID, reference_id: UUID | None) -> None:
        """Clear the back-link written by _link_expense."""
        if reference_id is None:
            same_link = Expense.entity_reference_id.is_(None)
        else:
            same_link = Expense.entity_reference_id == reference_id
        try:
            result = await self.session.execute(
                update(Expense)
                .where(Expense.id == expense_id, Expense.entity_type.is_not(None), same_link)
                .values(entity_type=None, entity_id=None, entity_reference_id=None)
            )
        except SQLAlchemyError as exc:
            logger.exception("Unlinking expense %s failed", expense_id)
            raise PersistenceError("expense_unlink", exc) from exc
        if result.rowcount != 1:
            raise ReversalError(expense_id, "the link changed while it was being reversed")

    @staticmethod
    def _duplicate_result(expense: Expense) -> IntegrationResult:
        entity_type = EntityType(expense.entity_type)
        return IntegrationResult(
            success=True,
            integrations={INTEGRATION_NAMES[entity_type]: True},
            entity_type=entity_type.value,
            entity_id=expense.entity_id,
            reference_id=expense.entity_reference_id,
            was_duplicate=True,
        )
