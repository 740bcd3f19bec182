"""Types for expense integration requests and their outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from expense_reconciliation.services.classifier import EntityType, PaymentKind


@dataclass(frozen=True)
class ExpenseIntegrationParams:
    """Everything needed to integrate one posted expense.

    Derived from a submitted expense form. entity_type/entity_id carry an
    explicit entity selection that overrides automatic classification;
    the remaining optional fields are handler-specific context.
    """

    expense_id: UUID | None = None
    amount: Decimal | None = None
    expense_date: date | None = None
    category: str = ""
    subcategory: str = ""
    description: str = ""
    payment_method: str = ""
    created_by: UUID | None = None
    bank_account_id: UUID | None = None
    entity_type: EntityType | str | None = None
    entity_id: UUID | None = None

    # Vendor context
    vendor_bill_id: UUID | None = None

    # Employee context
    payroll_record_id: UUID | None = None
    payment_kind: PaymentKind | str | None = None

    # Vehicle context
    odometer: Decimal | None = None
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    location: str | None = None
    vendor_name: str | None = None
    receipt_number: str | None = None


class StepStatus(str, Enum):
    """Outcome of a single handler step."""

    OK = "ok"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """Result of one write a handler attempted."""

    step: str
    status: StepStatus
    record_id: UUID | None = None
    primary: bool = False
    message: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, step: str, record_id: UUID | None = None, message: str | None = None) -> StepResult:
        return cls(step=step, status=StepStatus.OK, record_id=record_id, message=message)

    @classmethod
    def skipped(cls, step: str, message: str) -> StepResult:
        return cls(step=step, status=StepStatus.SKIPPED, message=message)

    @property
    def failed(self) -> bool:
        return self.status == StepStatus.FAILED


@dataclass
class HandlerOutcome:
    """Accumulated result of one handler run.

    reference_id is the ledger record the expense gets back-linked to.
    Failed steps are kept here rather than raised so the orchestrator can
    apply its policy.
    """

    entity_type: EntityType
    entity_id: UUID
    reference_id: UUID | None = None
    steps: list[StepResult] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    def record(self, step: StepResult) -> None:
        self.steps.append(step)

    @property
    def failures(self) -> list[StepResult]:
        return [s for s in self.steps if s.failed]

    @property
    def warnings(self) -> list[str]:
        """Failed steps plus a skipped primary step (nothing was recorded)."""
        return [
            f"{s.step}: {s.message}"
            for s in self.steps
            if s.failed or (s.primary and s.status == StepStatus.SKIPPED)
        ]


@dataclass(frozen=True)
class IntegrationResult:
    """Result of an orchestrated expense integration.

    IMPORTANT: check `was_duplicate`. A duplicate request reports success
    with the existing link and performed no writes.
    """

    success: bool
    integrations: dict[str, bool] = field(default_factory=dict)
    entity_type: str | None = None
    entity_id: UUID | None = None
    reference_id: UUID | None = None
    error: str | None = None
    error_code: str | None = None
    warnings: tuple[str, ...] = ()
    steps: tuple[StepResult, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)
    was_duplicate: bool = False


@dataclass(frozen=True)
class ReversalResult:
    """Result of undoing an integrated expense's ledger effects.

    reversed counts the rows removed or restored per step. An expense that
    was never linked reverses nothing and still reports success.
    """

    success: bool
    expense_id: UUID
    entity_type: str | None = None
    entity_id: UUID | None = None
    reference_id: UUID | None = None
    reversed: dict[str, int] = field(default_factory=dict)
    error: str | None = None
    error_code: str | None = None
