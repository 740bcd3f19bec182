"""Base class for subsidiary-ledger integration handlers."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import ClassVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from expense_reconciliation.errors import PersistenceError, ReconciliationError
from expense_reconciliation.models import Expense
from expense_reconciliation.services.classifier import EntityType
from expense_reconciliation.services.types import (
    ExpenseIntegrationParams,
    HandlerOutcome,
    StepResult,
    StepStatus,
)

logger = logging.getLogger(__name__)


class IntegrationHandler:
    """Reconciles one kind of subsidiary ledger for a posted expense.

    Steps come in two flavours:
    - primary: the durable record that the cost/payment happened. Errors
      propagate and abort the handler.
    - secondary: aggregate updates that follow the primary record. Each runs
      in its own SAVEPOINT; a failure is rolled back to that savepoint and
      recorded on the outcome as a failed step.
    """

    entity_type: ClassVar[EntityType]
    integration_name: ClassVar[str]

    def __init__(self, session: AsyncSession):
        self.session = session

    def validate(self, params: ExpenseIntegrationParams) -> list[str]:
        """Handler-specific validation, run before any write."""
        return []

    async def handle(
        self, params: ExpenseIntegrationParams, entity_id: UUID
    ) -> HandlerOutcome:
        raise NotImplementedError

    async def reverse(self, expense: Expense) -> dict[str, int]:
        """Undo the ledger writes an earlier integration made for expense.

        Returns the number of rows removed or restored per step. Store
        errors become PersistenceError.
        """
        try:
            return await self._reverse(expense)
        except SQLAlchemyError as exc:
            logger.exception(
                "Reversal of %s expense %s failed", self.integration_name, expense.id
            )
            raise PersistenceError(f"{self.integration_name}_reversal", exc) from exc

    async def _reverse(self, expense: Expense) -> dict[str, int]:
        raise NotImplementedError

    async def _run_primary(
        self,
        outcome: HandlerOutcome,
        step: str,
        operation: Callable[[], Awaitable[UUID]],
    ) -> UUID:
        try:
            record_id = await operation()
        except SQLAlchemyError as exc:
            logger.exception("Primary step '%s' failed for %s", step, outcome.entity_type.value)
            raise PersistenceError(step, exc) from exc

        outcome.record(
            StepResult(step=step, status=StepStatus.OK, record_id=record_id, primary=True)
        )
        logger.info("Step '%s' wrote record %s", step, record_id)
        return record_id

    async def _run_secondary(
        self,
        outcome: HandlerOutcome,
        step: str,
        operation: Callable[[], Awaitable[StepResult]],
    ) -> StepResult:
        error: ReconciliationError
        try:
            async with self.session.begin_nested():
                result = await operation()
        except SQLAlchemyError as exc:
            logger.exception("Secondary step '%s' hit a store error", step)
            error = PersistenceError(step, exc)
        except ReconciliationError as exc:
            error = exc
        else:
            outcome.record(result)
            logger.info("Step '%s' finished: %s", step, result.status.value)
            return result

        logger.warning("Secondary step '%s' failed: %s", step, error)
        failed = StepResult(
            step=step,
            status=StepStatus.FAILED,
            message=str(error),
            error_code=error.code,
        )
        outcome.record(failed)
        return failed
