"""Pytest fixtures for expense reconciliation tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from expense_reconciliation.models import Base, PayrollRecord, Truck, VendorBill
from tests.factories import persist


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine, one database per test.

    pysqlite's own transaction handling is turned off and every transaction
    starts with BEGIN IMMEDIATE so SAVEPOINTs work and concurrent writers
    serialize instead of failing on lock upgrades.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        echo=False,
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def supplier_id() -> UUID:
    return uuid4()


@pytest.fixture
def employee_id() -> UUID:
    return uuid4()


@pytest_asyncio.fixture
async def vendor_bill(session: AsyncSession, supplier_id: UUID) -> VendorBill:
    """A 10,000 bill with 4,000 already paid."""
    bill = VendorBill(
        id=uuid4(),
        supplier_id=supplier_id,
        bill_number="BILL-001",
        bill_date=date(2024, 4, 1),
        due_date=date(2024, 5, 31),
        total_amount=Decimal("10000.00"),
        paid_amount=Decimal("4000.00"),
        status="partial",
    )
    await persist(session, bill)
    return bill


@pytest_asyncio.fixture
async def truck(session: AsyncSession) -> Truck:
    """A truck at 15,000 km, last serviced 2024-03-01."""
    truck = Truck(
        id=uuid4(),
        registration_number="KA-01-AB-1234",
        current_odometer=Decimal("15000"),
        last_maintenance_date=date(2024, 3, 1),
    )
    await persist(session, truck)
    return truck


@pytest_asyncio.fixture
async def processed_payroll(session: AsyncSession, employee_id: UUID) -> PayrollRecord:
    """A processed April salary record awaiting payment."""
    record = PayrollRecord(
        id=uuid4(),
        employee_id=employee_id,
        pay_period_start=date(2024, 4, 1),
        pay_period_end=date(2024, 4, 30),
        basic_salary=Decimal("50000.00"),
        gross_salary=Decimal("50000.00"),
        net_salary=Decimal("50000.00"),
        working_days=30,
        present_days=30,
        status="processed",
    )
    await persist(session, record)
    return record
