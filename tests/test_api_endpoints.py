"""API endpoint tests.

Tests the FastAPI endpoints against a per-test SQLite database.
"""

from collections.abc import AsyncGenerator
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from expense_reconciliation.api.app import create_app
from expense_reconciliation.api.dependencies import get_db_session
from expense_reconciliation.models import VehicleExpenseLog
from tests.factories import make_expense, persist

pytestmark = pytest.mark.asyncio


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def integration_payload(expense, **overrides):
    payload = {
        "expense_id": str(expense.id),
        "amount": str(expense.amount),
        "expense_date": expense.expense_date.isoformat(),
        "category": expense.category,
        "subcategory": expense.subcategory,
        "description": expense.description,
        "payment_method": expense.payment_method,
        "created_by": str(expense.created_by),
    }
    payload.update(overrides)
    return payload


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_liveness_check(self, client: AsyncClient):
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestExpenseIntegrationEndpoint:
    """Test POST /api/v1/expense-integrations."""

    async def test_vendor_payment_settles_bill(
        self, client, session, vendor_bill, supplier_id, user_id
    ):
        expense = make_expense(user_id, category="Vendor Payment", amount=Decimal("6000.00"))
        await persist(session, expense)

        response = await client.post(
            "/api/v1/expense-integrations",
            json=integration_payload(
                expense, entity_id=str(supplier_id), vendor_bill_id=str(vendor_bill.id)
            ),
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["success"] is True
        assert data["integrations"] == {"vendor": True}
        assert [s["step"] for s in data["steps"]] == ["vendor_payment", "vendor_bill"]
        assert data["details"]["vendor_bill"]["status"] == "paid"

        await session.refresh(vendor_bill)
        assert vendor_bill.status == "paid"
        await session.refresh(expense)
        assert str(expense.entity_reference_id) == data["reference_id"]

    async def test_validation_errors_are_400(self, client, user_id):
        expense = make_expense(user_id, description="   ")

        response = await client.post(
            "/api/v1/expense-integrations",
            json=integration_payload(expense, amount="-5"),
        )

        assert response.status_code == 400
        assert response.json()["detail"] == [
            "Valid amount is required",
            "Description is required",
        ]

    async def test_overpayment_is_409(self, client, session, vendor_bill, supplier_id, user_id):
        expense = make_expense(user_id, category="Vendor Payment", amount=Decimal("9000.00"))
        await persist(session, expense)

        response = await client.post(
            "/api/v1/expense-integrations",
            json=integration_payload(
                expense, entity_id=str(supplier_id), vendor_bill_id=str(vendor_bill.id)
            ),
        )

        assert response.status_code == 409
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "SECONDARY_STEP_FAILED"
        assert data["steps"][-1]["status"] == "failed"

    async def test_unknown_expense_is_404(self, client, user_id, supplier_id):
        expense = make_expense(user_id, category="Vendor Payment")

        response = await client.post(
            "/api/v1/expense-integrations",
            json=integration_payload(expense, entity_id=str(supplier_id)),
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"

    async def test_noop_integration(self, client, session, user_id):
        expense = make_expense(user_id, category="Office Supplies")
        await persist(session, expense)

        response = await client.post(
            "/api/v1/expense-integrations", json=integration_payload(expense)
        )

        assert response.status_code == 200
        assert response.json()["integrations"] == {}

    async def test_reversal_restores_bill(self, client, session, vendor_bill, supplier_id, user_id):
        expense = make_expense(user_id, category="Vendor Payment", amount=Decimal("6000.00"))
        await persist(session, expense)
        await client.post(
            "/api/v1/expense-integrations",
            json=integration_payload(
                expense, entity_id=str(supplier_id), vendor_bill_id=str(vendor_bill.id)
            ),
        )

        response = await client.post(f"/api/v1/expense-integrations/{expense.id}/reversal")

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["success"] is True
        assert data["reversed"] == {"vendor_bill": 1, "vendor_payment": 1}
        await session.refresh(vendor_bill)
        assert vendor_bill.paid_amount == Decimal("4000.00")

    async def test_reversal_of_unknown_expense_is_404(self, client):
        response = await client.post(f"/api/v1/expense-integrations/{uuid4()}/reversal")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"


class TestLedgerEndpoints:
    """Test ledger history endpoints."""

    async def test_open_bills(self, client, vendor_bill, supplier_id):
        response = await client.get(f"/api/v1/suppliers/{supplier_id}/open-bills")

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["id"] == str(vendor_bill.id)
        assert Decimal(data[0]["remaining_amount"]) == Decimal("6000")

    async def test_pending_payroll(self, client, processed_payroll, employee_id):
        response = await client.get(f"/api/v1/employees/{employee_id}/pending-payroll")

        assert response.status_code == 200
        assert [r["id"] for r in response.json()] == [str(processed_payroll.id)]

    async def test_truck_expense_flow(self, client, session, truck, user_id):
        expense = make_expense(
            user_id, category="Vehicle Fuel - Fleet", subcategory="Fuel", amount=Decimal("4200.00")
        )
        await persist(session, expense)

        response = await client.post(
            "/api/v1/expense-integrations",
            json=integration_payload(expense, entity_id=str(truck.id), odometer="15800"),
        )
        assert response.status_code == 200, response.text

        expenses = await client.get(f"/api/v1/trucks/{truck.id}/expenses")
        assert [e["expense_type"] for e in expenses.json()] == ["fuel"]

        summary = await client.get(f"/api/v1/trucks/{truck.id}/expense-summary")
        assert summary.status_code == 200
        data = summary.json()
        assert data["period"] == "all"
        assert data["record_count"] == 1
        assert Decimal(data["breakdown"]["fuel"]["total"]) == Decimal("4200")

        logs = await session.scalar(select(func.count()).select_from(VehicleExpenseLog))
        assert logs == 1

    async def test_summary_rejects_unknown_period(self, client):
        response = await client.get(f"/api/v1/trucks/{uuid4()}/expense-summary?period=2w")

        assert response.status_code == 400
