"""Expense classification rules.

Maps expense category/subcategory text to the subsidiary ledger it belongs
to and to a finer-grained payment/expense kind. Pure functions, no I/O.

Matching is case-sensitive substring containment. Rule tables are ordered;
the first matching rule wins.
"""

from __future__ import annotations

from enum import Enum


class EntityType(str, Enum):
    """Subsidiary ledger an expense can be attributed to."""

    TRUCK = "truck"
    EMPLOYEE = "employee"
    SUPPLIER = "supplier"


class PaymentKind(str, Enum):
    """Finer-grained kind of a vehicle cost or employee payment."""

    FUEL = "fuel"
    MAINTENANCE = "maintenance"
    INSURANCE = "insurance"
    REGISTRATION = "registration"
    REPAIR = "repair"
    SALARY = "salary"
    BONUS = "bonus"
    ALLOWANCE = "allowance"
    OVERTIME = "overtime"
    INCENTIVE = "incentive"
    REIMBURSEMENT = "reimbursement"
    OTHER = "other"


# Precedence: vehicle, then employee, then vendor
ENTITY_KEYWORD_RULES: tuple[tuple[EntityType, tuple[str, ...]], ...] = (
    (
        EntityType.TRUCK,
        (
            "Vehicle Fuel - Fleet",
            "Vehicle Maintenance - Fleet",
            "Vehicle Insurance",
            "Vehicle Registration",
            "Logistics & Distribution",
            "Vehicle Fleet",
        ),
    ),
    (
        EntityType.EMPLOYEE,
        (
            "Salaries & Benefits",
            "Salary - Management",
            "Salary - Production",
            "Salary - Sales",
            "Salary - Administration",
            "Bonus - Performance",
            "Bonus - Festival",
            "Allowance - Travel",
            "Allowance - Medical",
            "Overtime Payment",
            "Incentive Pay",
        ),
    ),
    (
        EntityType.SUPPLIER,
        (
            "Vendor Payment",
            "Supplier Payment",
            "Accounts Payable",
            "Raw Materials",
            "Office Supplies",
            "Marketing & Sales",
            "Technology",
            "Insurance",
            "Maintenance & Repairs",
            "Utilities",
        ),
    ),
)

# Vehicle kinds are tested before employee kinds
KIND_KEYWORD_RULES: tuple[tuple[str, PaymentKind], ...] = (
    ("Fuel", PaymentKind.FUEL),
    ("Maintenance", PaymentKind.MAINTENANCE),
    ("Insurance", PaymentKind.INSURANCE),
    ("Registration", PaymentKind.REGISTRATION),
    ("Repair", PaymentKind.REPAIR),
    ("Salary", PaymentKind.SALARY),
    ("Bonus", PaymentKind.BONUS),
    ("Allowance", PaymentKind.ALLOWANCE),
    ("Overtime", PaymentKind.OVERTIME),
    ("Incentive", PaymentKind.INCENTIVE),
)

VEHICLE_EXPENSE_KINDS = frozenset(
    {
        PaymentKind.FUEL,
        PaymentKind.MAINTENANCE,
        PaymentKind.INSURANCE,
        PaymentKind.REGISTRATION,
        PaymentKind.REPAIR,
        PaymentKind.OTHER,
    }
)

EMPLOYEE_PAYMENT_KINDS = frozenset(
    {
        PaymentKind.SALARY,
        PaymentKind.BONUS,
        PaymentKind.ALLOWANCE,
        PaymentKind.OVERTIME,
        PaymentKind.INCENTIVE,
        PaymentKind.REIMBURSEMENT,
    }
)

MAINTENANCE_KINDS = frozenset({PaymentKind.MAINTENANCE, PaymentKind.REPAIR})


def resolve_entity_type(category: str, subcategory: str) -> EntityType | None:
    """Infer the entity type from category text.

    Returns None when no rule matches.
    """
    category = category or ""
    subcategory = subcategory or ""
    for entity_type, keywords in ENTITY_KEYWORD_RULES:
        if any(kw in subcategory or kw in category for kw in keywords):
            return entity_type
    return None


def resolve_payment_kind(subcategory: str) -> PaymentKind:
    """Infer the payment/expense kind from subcategory text."""
    subcategory = subcategory or ""
    for keyword, kind in KIND_KEYWORD_RULES:
        if keyword in subcategory:
            return kind
    return PaymentKind.OTHER


def vehicle_expense_type(kind: PaymentKind) -> PaymentKind:
    """Collapse non-vehicle kinds to OTHER for vehicle expense logs."""
    return kind if kind in VEHICLE_EXPENSE_KINDS else PaymentKind.OTHER
