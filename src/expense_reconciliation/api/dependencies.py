"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from expense_reconciliation.config import ReconciliationPolicy, get_settings
from expense_reconciliation.database import init_db


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_policy() -> ReconciliationPolicy:
    """Reconciliation policy from application settings."""
    return ReconciliationPolicy.from_settings(get_settings())


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Policy = Annotated[ReconciliationPolicy, Depends(get_policy)]
