"""Vendor payment integration - accounts-payable reconciliation.

Records that a supplier was paid and rolls the payment into the linked
vendor bill's paid_amount/status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from expense_reconciliation.errors import (
    NotFoundError,
    OverpaymentError,
    ReconciliationError,
    ReversalError,
)
from expense_reconciliation.models import Expense, VendorBill, VendorPaymentRecord
from expense_reconciliation.services.classifier import EntityType
from expense_reconciliation.services.handler_base import IntegrationHandler
from expense_reconciliation.services.state_machine import bill_status_expression
from expense_reconciliation.services.types import (
    ExpenseIntegrationParams,
    HandlerOutcome,
    StepResult,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillBalance:
    """Bill aggregate after a payment was applied."""

    bill_id: UUID
    paid_amount: Decimal
    total_amount: Decimal
    status: str

    @property
    def remaining_amount(self) -> Decimal:
        return self.total_amount - self.paid_amount


class VendorBillLedger:
    """Atomic updates to vendor bill aggregates.

    paid_amount is only ever changed by a single UPDATE computing the new
    value server-side, so concurrent payments cannot lose updates.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def apply_payment(
        self, *, bill_id: UUID, supplier_id: UUID, amount: Decimal
    ) -> BillBalance:
        """Add a payment to a bill and re-derive its status.

        Raises:
            NotFoundError: No bill with this id belongs to the supplier
            OverpaymentError: The payment exceeds the outstanding balance
        """
        new_paid = VendorBill.paid_amount + amount
        result = await self.session.execute(
            update(VendorBill)
            .where(
                VendorBill.id == bill_id,
                VendorBill.supplier_id == supplier_id,
                new_paid <= VendorBill.total_amount,
            )
            .values(
                paid_amount=new_paid,
                status=bill_status_expression(new_paid, VendorBill.total_amount),
            )
            .returning(VendorBill.paid_amount, VendorBill.total_amount, VendorBill.status)
            .execution_options(synchronize_session=False)
        )
        row = result.one_or_none()

        if row is None:
            raise await self._rejection(bill_id, supplier_id, amount)

        return BillBalance(
            bill_id=bill_id,
            paid_amount=Decimal(str(row[0])),
            total_amount=Decimal(str(row[1])),
            status=row[2],
        )

    async def _rejection(
        self, bill_id: UUID, supplier_id: UUID, amount: Decimal
    ) -> ReconciliationError:
        """Explain why the guarded update matched no row."""
        current = (
            await self.session.execute(
                select(VendorBill.paid_amount, VendorBill.total_amount).where(
                    VendorBill.id == bill_id,
                    VendorBill.supplier_id == supplier_id,
                )
            )
        ).one_or_none()

        if current is None:
            return NotFoundError("Vendor bill", bill_id, f"no bill for supplier {supplier_id}")

        outstanding = Decimal(str(current[1])) - Decimal(str(current[0]))
        return OverpaymentError(bill_id, amount, outstanding)

    async def reverse_payment(
        self, *, bill_id: UUID, supplier_id: UUID, amount: Decimal
    ) -> BillBalance:
        """Take a payment back off a bill and re-derive its status.

        Raises:
            NotFoundError: No bill with this id belongs to the supplier
            ReversalError: The bill has less paid than the payment
        """
        new_paid = VendorBill.paid_amount - amount
        result = await self.session.execute(
            update(VendorBill)
            .where(
                VendorBill.id == bill_id,
                VendorBill.supplier_id == supplier_id,
                new_paid >= 0,
            )
            .values(
                paid_amount=new_paid,
                status=bill_status_expression(new_paid, VendorBill.total_amount),
            )
            .returning(VendorBill.paid_amount, VendorBill.total_amount, VendorBill.status)
            .execution_options(synchronize_session=False)
        )
        row = result.one_or_none()

        if row is None:
            found = await self.session.scalar(
                select(VendorBill.id).where(
                    VendorBill.id == bill_id, VendorBill.supplier_id == supplier_id
                )
            )
            if found is None:
                raise NotFoundError("Vendor bill", bill_id, f"no bill for supplier {supplier_id}")
            raise ReversalError(bill_id, f"paid amount on the bill is below {amount}")

        return BillBalance(
            bill_id=bill_id,
            paid_amount=Decimal(str(row[0])),
            total_amount=Decimal(str(row[1])),
            status=row[2],
        )


class VendorPaymentHandler(IntegrationHandler):
    """Supplier integration.

    1. Payment history record (primary, always written)
    2. Vendor bill paid_amount/status (secondary, when a bill is given)

    Reversal deletes the payment record and, if it reached the bill, takes
    the amount back off paid_amount.
    """

    entity_type = EntityType.SUPPLIER
    integration_name = "vendor"

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.bills = VendorBillLedger(session)

    async def handle(
        self, params: ExpenseIntegrationParams, entity_id: UUID
    ) -> HandlerOutcome:
        outcome = HandlerOutcome(entity_type=self.entity_type, entity_id=entity_id)
        logger.info("Creating vendor payment integration for expense %s", params.expense_id)

        payment_id = await self._run_primary(
            outcome,
            "vendor_payment",
            lambda: self._record_payment(params, entity_id),
        )
        outcome.reference_id = payment_id
        outcome.details["vendor_payment_id"] = payment_id

        if params.vendor_bill_id is not None:
            await self._run_secondary(
                outcome,
                "vendor_bill",
                lambda: self._apply_to_bill(params, entity_id, outcome),
            )

        return outcome

    async def _record_payment(
        self, params: ExpenseIntegrationParams, supplier_id: UUID
    ) -> UUID:
        payment = VendorPaymentRecord(
            supplier_id=supplier_id,
            vendor_bill_id=params.vendor_bill_id,
            amount=params.amount,
            payment_date=params.expense_date,
            payment_method=params.payment_method or "cash",
            reference_number=f"EXP-{params.expense_id}",
            bank_account_id=params.bank_account_id,
            notes=f"Expense payment: {params.description}",
            status="completed",
            created_by=params.created_by,
        )
        self.session.add(payment)
        await self.session.flush()
        return payment.id

    async def _apply_to_bill(
        self,
        params: ExpenseIntegrationParams,
        supplier_id: UUID,
        outcome: HandlerOutcome,
    ) -> StepResult:
        balance = await self.bills.apply_payment(
            bill_id=params.vendor_bill_id,
            supplier_id=supplier_id,
            amount=params.amount,
        )
        await self.session.execute(
            update(VendorPaymentRecord)
            .where(VendorPaymentRecord.id == outcome.reference_id)
            .values(applied_to_bill=True)
            .execution_options(synchronize_session=False)
        )
        outcome.details["vendor_bill"] = {
            "id": balance.bill_id,
            "paid_amount": balance.paid_amount,
            "total_amount": balance.total_amount,
            "remaining_amount": balance.remaining_amount,
            "status": balance.status,
        }
        return StepResult.ok(
            "vendor_bill",
            record_id=balance.bill_id,
            message=f"paid {balance.paid_amount}/{balance.total_amount}, status {balance.status}",
        )

    async def _reverse(self, expense: Expense) -> dict[str, int]:
        payment = await self.session.scalar(
            select(VendorPaymentRecord)
            .where(
                VendorPaymentRecord.id == expense.entity_reference_id,
                VendorPaymentRecord.supplier_id == expense.entity_id,
            )
            .execution_options(populate_existing=True)
        )
        if payment is None:
            raise NotFoundError("Vendor payment", expense.entity_reference_id)

        reversed_records: dict[str, int] = {}
        if payment.applied_to_bill and payment.vendor_bill_id is not None:
            balance = await self.bills.reverse_payment(
                bill_id=payment.vendor_bill_id,
                supplier_id=payment.supplier_id,
                amount=payment.amount,
            )
            reversed_records["vendor_bill"] = 1
            logger.info(
                "Took %s back off vendor bill %s, now %s/%s %s",
                payment.amount,
                balance.bill_id,
                balance.paid_amount,
                balance.total_amount,
                balance.status,
            )

        result = await self.session.execute(
            delete(VendorPaymentRecord)
            .where(VendorPaymentRecord.id == payment.id)
            .execution_options(synchronize_session=False)
        )
        reversed_records["vendor_payment"] = result.rowcount
        return reversed_records
