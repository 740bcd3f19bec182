"""Expense integration and reversal endpoints."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Response, status

from expense_reconciliation.api.dependencies import DbSession, Policy
from expense_reconciliation.api.schemas import (
    ErrorResponse,
    ExpenseIntegrationRequest,
    IntegrationResultResponse,
    ReversalResultResponse,
    ValidationErrorResponse,
)
from expense_reconciliation.errors import (
    DuplicateIntegrationError,
    InvalidTransitionError,
    NotFoundError,
    OverpaymentError,
    PersistenceError,
    ReversalError,
    SecondaryStepError,
    ValidationError,
)
from expense_reconciliation.services.orchestrator import ExpenseIntegrationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/expense-integrations", tags=["expense-integrations"])

# HTTP status for a failed integration or reversal, by error code
FAILURE_STATUS: dict[str, int] = {
    NotFoundError.code: status.HTTP_404_NOT_FOUND,
    OverpaymentError.code: status.HTTP_409_CONFLICT,
    InvalidTransitionError.code: status.HTTP_409_CONFLICT,
    DuplicateIntegrationError.code: status.HTTP_409_CONFLICT,
    SecondaryStepError.code: status.HTTP_409_CONFLICT,
    ReversalError.code: status.HTTP_409_CONFLICT,
    PersistenceError.code: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@router.post(
    "",
    response_model=IntegrationResultResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ValidationErrorResponse},
        404: {"model": IntegrationResultResponse},
        409: {"model": IntegrationResultResponse},
        500: {"model": ErrorResponse},
    },
)
async def integrate_expense(
    db: DbSession,
    policy: Policy,
    payload: ExpenseIntegrationRequest,
    response: Response,
) -> IntegrationResultResponse:
    """Reconcile a posted expense with its subsidiary ledger.

    The request transaction is committed whether or not the integration
    succeeded; a failed integration has already rolled back its own writes.
    """
    service = ExpenseIntegrationService(db, policy=policy)
    try:
        result = await service.integrate(payload.to_params())
    except ValidationError as e:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.errors,
        )

    await db.commit()

    if not result.success:
        response.status_code = FAILURE_STATUS.get(
            result.error_code or "", status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        logger.warning(
            "Integration of expense %s failed with %s", payload.expense_id, result.error_code
        )

    return IntegrationResultResponse.model_validate(result)


@router.post(
    "/{expense_id}/reversal",
    response_model=ReversalResultResponse,
    status_code=status.HTTP_200_OK,
    responses={
        404: {"model": ReversalResultResponse},
        409: {"model": ReversalResultResponse},
        500: {"model": ErrorResponse},
    },
)
async def reverse_expense(
    db: DbSession,
    expense_id: Annotated[UUID, Path(description="Expense to reverse")],
    response: Response,
) -> ReversalResultResponse:
    """Undo an integrated expense's ledger effects and clear its link."""
    service = ExpenseIntegrationService(db)
    result = await service.reverse(expense_id)

    await db.commit()

    if not result.success:
        response.status_code = FAILURE_STATUS.get(
            result.error_code or "", status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        logger.warning("Reversal of expense %s failed with %s", expense_id, result.error_code)

    return ReversalResultResponse.model_validate(result)
