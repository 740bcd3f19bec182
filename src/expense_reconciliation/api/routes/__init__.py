"""API routes."""

from expense_reconciliation.api.routes.health import router as health_router
from expense_reconciliation.api.routes.integrations import router as integrations_router
from expense_reconciliation.api.routes.ledgers import router as ledgers_router

__all__ = ["health_router", "integrations_router", "ledgers_router"]
