"""
Tests for the semantic validation rules.
"""

import pytest
from decimal import Decimal

from shootledger.models.entities import CheckoutStatus, EntityKind, ExpenseStatus, TxnType
from shootledger.services.storage import InsufficientBalanceError, ValidationError
from shootledger.validation import (
    check_checkout_transition,
    check_expense_transition,
    check_patch_keys,
    next_balance,
    require_same_scope,
    time_to_minutes,
)


class TestExpenseTransitions:
    """Tests for check_expense_transition."""

    @pytest.mark.parametrize("current,new", [
        (ExpenseStatus.SUBMITTED, ExpenseStatus.APPROVED),
        (ExpenseStatus.SUBMITTED, ExpenseStatus.PAID),
        (ExpenseStatus.APPROVED, ExpenseStatus.APPROVED),
        (ExpenseStatus.PAID, ExpenseStatus.CANCELLED),
    ])
    def test_allowed(self, current, new):
        check_expense_transition("e1", current, new)

    @pytest.mark.parametrize("current,new", [
        (ExpenseStatus.APPROVED, ExpenseStatus.SUBMITTED),
        (ExpenseStatus.PAID, ExpenseStatus.APPROVED),
        (ExpenseStatus.CANCELLED, ExpenseStatus.CANCELLED),
        (ExpenseStatus.CANCELLED, ExpenseStatus.SUBMITTED),
    ])
    def test_rejected(self, current, new):
        with pytest.raises(ValidationError):
            check_expense_transition("e1", current, new)


class TestRules:
    """Tests for the remaining rules."""

    def test_checkout_returned_is_terminal(self):
        check_checkout_transition("c1", CheckoutStatus.OUT, CheckoutStatus.RETURNED)
        with pytest.raises(ValidationError):
            check_checkout_transition("c1", CheckoutStatus.RETURNED, CheckoutStatus.OUT)

    def test_patch_keys(self):
        check_patch_keys(EntityKind.EXPENSE, "e1", {"description": "x"})
        with pytest.raises(ValidationError) as exc_info:
            check_patch_keys(EntityKind.EXPENSE, "e1", {"id": "x", "project_id": "p2"})
        assert exc_info.value.details == {"fields": ["id", "project_id"]}

    def test_next_balance(self):
        assert next_balance("f1", Decimal("100"), TxnType.CREDIT, Decimal("50")) == Decimal("150")
        assert next_balance("f1", Decimal("100"), TxnType.DEBIT, Decimal("100")) == Decimal("0")
        with pytest.raises(InsufficientBalanceError):
            next_balance("f1", Decimal("100"), TxnType.DEBIT, Decimal("100.01"))

    def test_require_same_scope(self):
        require_same_scope(EntityKind.EXPENSE, "department_id", "p1", "p1")
        with pytest.raises(ValidationError, match="different scope"):
            require_same_scope(EntityKind.EXPENSE, "department_id", "p1", "p2")

    def test_time_to_minutes(self):
        assert time_to_minutes("00:00") == 0
        assert time_to_minutes("09:15") == 555
        assert time_to_minutes("23:59") == 1439


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
