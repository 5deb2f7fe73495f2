"""Semantic validation rules applied by the store before every write."""

from shootledger.validation.rules import (
    IMMUTABLE_FIELDS,
    check_checkout_transition,
    check_expense_transition,
    check_patch_keys,
    next_balance,
    require_same_scope,
    time_to_minutes,
    wrap_schema_error,
)

__all__ = [
    "IMMUTABLE_FIELDS",
    "check_checkout_transition",
    "check_expense_transition",
    "check_patch_keys",
    "next_balance",
    "require_same_scope",
    "time_to_minutes",
    "wrap_schema_error",
]
