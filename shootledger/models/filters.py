"""
Query Filter Models

Structured filters accepted by the store's typed queries. A filter is
a value, not a callable, so it can be logged, built from request
parameters, and reused across calls. Every field is optional; unset
fields do not restrict the result.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from shootledger.models.entities import (
    CheckoutStatus,
    Expense,
    ExpenseStatus,
    PaymentMethod,
    ScheduleStatus,
)


class ExpenseFilter(BaseModel):
    """Filters for expense queries. Date bounds are inclusive."""
    model_config = ConfigDict(extra="forbid")

    department_id: Optional[str] = None
    budget_line_id: Optional[str] = None
    vendor_id: Optional[str] = None
    shoot_day_id: Optional[str] = None
    status: Optional[ExpenseStatus] = None
    payment_method: Optional[PaymentMethod] = None
    reimbursable: Optional[bool] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    include_cancelled: bool = True

    @model_validator(mode='after')
    def validate_range(self) -> 'ExpenseFilter':
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to cannot be before date_from")
        return self

    def matches(self, expense: Expense) -> bool:
        if not self.include_cancelled and expense.status == ExpenseStatus.CANCELLED:
            return False
        if self.department_id and expense.department_id != self.department_id:
            return False
        if self.budget_line_id and expense.budget_line_id != self.budget_line_id:
            return False
        if self.vendor_id and expense.vendor_id != self.vendor_id:
            return False
        if self.shoot_day_id and expense.shoot_day_id != self.shoot_day_id:
            return False
        if self.status and expense.status != self.status:
            return False
        if self.payment_method and expense.payment_method != self.payment_method:
            return False
        if self.reimbursable is not None and expense.reimbursable != self.reimbursable:
            return False
        if self.date_from and expense.date < self.date_from:
            return False
        if self.date_to and expense.date > self.date_to:
            return False
        return True


class BudgetLineFilter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    department_id: Optional[str] = None


class ScheduleItemFilter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Optional[ScheduleStatus] = None


class PropCheckoutFilter(BaseModel):
    """Status is compared against the effective (read-time) status."""
    model_config = ConfigDict(extra="forbid")

    status: Optional[CheckoutStatus] = None
    prop_id: Optional[str] = None
