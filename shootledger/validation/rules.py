"""
Semantic Validation Rules

Schema validation (types, ranges, required fields) is done by the
pydantic models. The rules here are the second stage: checks that need
the current record or neighbouring records to decide.

Every rule raises from the store's error taxonomy and never mutates
anything; the store calls them before it writes.
"""

from decimal import Decimal
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from shootledger.models.entities import (
    CheckoutStatus,
    EntityKind,
    ExpenseStatus,
    TxnType,
)
from shootledger.services.storage.interface import (
    InsufficientBalanceError,
    ValidationError,
)


# Fields a patch may never touch, per entity kind.
IMMUTABLE_FIELDS: dict[EntityKind, frozenset[str]] = {
    kind: frozenset({"id", "created_at"}) for kind in EntityKind
}
IMMUTABLE_FIELDS[EntityKind.PROJECT] |= {"currency", "updated_at"}
IMMUTABLE_FIELDS[EntityKind.EXPENSE] |= {"project_id", "created_by"}
IMMUTABLE_FIELDS[EntityKind.PETTY_CASH_FLOAT] |= {"project_id", "balance", "issued_amount"}
IMMUTABLE_FIELDS[EntityKind.PETTY_CASH_TXN] |= {"float_id", "amount", "type", "date"}
IMMUTABLE_FIELDS[EntityKind.BUDGET_LINE] |= {"project_id"}
IMMUTABLE_FIELDS[EntityKind.DEPARTMENT] |= {"project_id"}
IMMUTABLE_FIELDS[EntityKind.SHOOT_DAY] |= {"project_id"}
IMMUTABLE_FIELDS[EntityKind.CREW] |= {"project_id"}
IMMUTABLE_FIELDS[EntityKind.PROP] |= {"project_id"}

# Forward order of the expense lifecycle; CANCELLED sits outside it.
_EXPENSE_ORDER = {
    ExpenseStatus.SUBMITTED: 0,
    ExpenseStatus.APPROVED: 1,
    ExpenseStatus.PAID: 2,
}


def wrap_schema_error(kind: EntityKind, error: PydanticValidationError, entity_id: Optional[str] = None) -> ValidationError:
    """Turn a pydantic error into the store's ValidationError."""
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "__root__",
            "message": err["msg"],
            "type": err["type"],
        }
        for err in error.errors()
    ]
    summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
    return ValidationError(
        f"Invalid {kind.value}: {summary}",
        entity_type=kind.value,
        entity_id=entity_id,
        details={"errors": errors},
    )


def check_patch_keys(kind: EntityKind, record_id: str, patch: Mapping[str, Any]) -> None:
    """Reject patches that touch fields fixed at creation."""
    blocked = sorted(set(patch) & IMMUTABLE_FIELDS[kind])
    if blocked:
        raise ValidationError(
            f"Cannot change {', '.join(blocked)} on {kind.value}",
            entity_type=kind.value,
            entity_id=record_id,
            details={"fields": blocked},
        )


def check_expense_transition(
    expense_id: str,
    current: ExpenseStatus,
    new: ExpenseStatus,
) -> None:
    """
    Expenses move forward only; CANCELLED is reachable from anywhere
    and nothing leaves it.
    """
    if current == ExpenseStatus.CANCELLED:
        raise ValidationError(
            "Cancelled expenses cannot be modified",
            entity_type=EntityKind.EXPENSE.value,
            entity_id=expense_id,
            details={"status": current.value},
        )
    if new == ExpenseStatus.CANCELLED or new == current:
        return
    if _EXPENSE_ORDER[new] < _EXPENSE_ORDER[current]:
        raise ValidationError(
            f"Expense status cannot move from {current.value} back to {new.value}",
            entity_type=EntityKind.EXPENSE.value,
            entity_id=expense_id,
            details={"from": current.value, "to": new.value},
        )


def check_checkout_transition(
    checkout_id: str,
    current: CheckoutStatus,
    new: CheckoutStatus,
) -> None:
    """RETURNED is terminal for a prop checkout."""
    if current == CheckoutStatus.RETURNED and new != CheckoutStatus.RETURNED:
        raise ValidationError(
            "Returned checkouts cannot be reopened",
            entity_type=EntityKind.PROP_CHECKOUT.value,
            entity_id=checkout_id,
            details={"from": current.value, "to": new.value},
        )


def next_balance(
    float_id: str,
    balance: Decimal,
    txn_type: TxnType,
    amount: Decimal,
) -> Decimal:
    """
    Petty cash state transition.

    Raises:
        InsufficientBalanceError: If a debit would go below zero
    """
    if txn_type == TxnType.CREDIT:
        return balance + amount

    result = balance - amount
    if result < 0:
        raise InsufficientBalanceError(
            f"Debit of {amount} exceeds float balance of {balance}",
            entity_type=EntityKind.PETTY_CASH_FLOAT.value,
            entity_id=float_id,
            details={"balance": str(balance), "requested": str(amount)},
        )
    return result


def require_same_scope(
    kind: EntityKind,
    field: str,
    expected: str,
    actual: str,
    entity_id: Optional[str] = None,
) -> None:
    """A referenced parent must live in the same project (or department)."""
    if expected != actual:
        raise ValidationError(
            f"{field} belongs to a different scope ({actual}) than {kind.value} ({expected})",
            entity_type=kind.value,
            entity_id=entity_id,
            details={"field": field, "expected": expected, "actual": actual},
        )


def time_to_minutes(value: str) -> int:
    """'HH:MM' → minutes past midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)
