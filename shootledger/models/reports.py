"""
Report Models

Output shapes of the analytics engine. Every report is a plain,
serializable value: consumers (UI, CSV, PDF) receive these and never
touch the store's records directly.

Money stays Decimal; percentages and averages are floats.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from shootledger.models.entities import (
    Expense,
    PaymentMethod,
    PettyCashTxn,
    ShootDayStatus,
)


# =============================================================================
# BUDGET VARIANCE
# =============================================================================

class DepartmentSummary(BaseModel):
    department_id: str
    department_name: str
    budget_amount: Decimal = Decimal("0")
    actual_amount: Decimal = Decimal("0")
    variance: Decimal = Field(
        default=Decimal("0"),
        description="Actual minus budget (positive = over budget)"
    )
    variance_percent: float = 0.0
    expense_count: int = 0


class ProjectSummary(BaseModel):
    project_id: str
    currency: str
    total_budget: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    remaining_budget: Decimal = Decimal("0")
    variance: Decimal = Decimal("0")
    variance_percent: float = 0.0
    expense_count: int = 0
    department_summaries: list[DepartmentSummary] = Field(default_factory=list)


class BudgetVsActualRow(BaseModel):
    department: str
    budget: Decimal
    actual: Decimal
    variance: Decimal


class PaymentMethodTotal(BaseModel):
    payment_method: PaymentMethod
    amount: Decimal
    count: int


# =============================================================================
# DAILY COST REPORT
# =============================================================================

class DepartmentSpend(BaseModel):
    """One row of the daily cost report's department breakdown."""
    department_id: Optional[str] = Field(
        default=None,
        description="None for the petty cash row"
    )
    department_name: str
    amount: Decimal = Decimal("0")
    count: int = 0


class DailyCostReport(BaseModel):
    project_id: str
    date: date
    currency: str
    expense_total: Decimal = Decimal("0")
    petty_cash_total: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    expenses_by_department: list[DepartmentSpend] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    petty_cash_txns: list[PettyCashTxn] = Field(default_factory=list)


# =============================================================================
# PRODUCTION DAY
# =============================================================================

class ScheduleProgress(BaseModel):
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    dropped: int = 0
    percentage: float = 0.0


class FeedbackSummary(BaseModel):
    total_responses: int = 0
    average_rating: float = 0.0
    top_issues: list[str] = Field(default_factory=list)


class PropsStatusCounts(BaseModel):
    total: int = 0
    checked_out: int = 0
    returned: int = 0
    overdue: int = 0


class ProductionDaySummary(BaseModel):
    shoot_day_id: str
    date: date
    location: str = ""
    call_time: str = ""
    wrap_time: str = ""
    status: ShootDayStatus
    total_budget: Decimal = Decimal("0")
    total_spent: Decimal = Decimal("0")
    variance: Decimal = Decimal("0")
    variance_percent: float = 0.0
    schedule_progress: ScheduleProgress = Field(default_factory=ScheduleProgress)
    crew_feedback: FeedbackSummary = Field(default_factory=FeedbackSummary)
    props_status: PropsStatusCounts = Field(default_factory=PropsStatusCounts)


class TimeVariance(BaseModel):
    """All values in minutes."""
    over_time: int = 0
    under_time: int = 0
    average_delay: float = 0.0


class DelayReason(BaseModel):
    reason: str
    count: int
    total_delay: int


class ScheduleAdherenceReport(BaseModel):
    shoot_day_id: str
    date: date
    total_shots: int = 0
    completed_shots: int = 0
    dropped_shots: int = 0
    completion_percentage: float = 0.0
    time_variance: TimeVariance = Field(default_factory=TimeVariance)
    blocked_reasons: list[str] = Field(default_factory=list)
    top_delays: list[DelayReason] = Field(default_factory=list)


# =============================================================================
# PROPS CUSTODY
# =============================================================================

class OpenCheckoutEntry(BaseModel):
    checkout_id: str
    prop_name: str
    checked_out_by: str
    due_return: date
    days_overdue: int = 0
    condition: str = "Good"


class OverdueReturnEntry(BaseModel):
    checkout_id: str
    prop_name: str
    checked_out_by: str
    due_return: date
    days_overdue: int


class ReturnedEntry(BaseModel):
    checkout_id: str
    prop_name: str
    returned_by: str
    return_condition: str = "Good"
    returned_at: str = ""


class PropsCustodyReport(BaseModel):
    shoot_day_id: str
    date: date
    open_checkouts: list[OpenCheckoutEntry] = Field(default_factory=list)
    overdue_returns: list[OverdueReturnEntry] = Field(default_factory=list)
    returned_today: list[ReturnedEntry] = Field(default_factory=list)


# =============================================================================
# CREW PERFORMANCE
# =============================================================================

class RatingBucket(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    count: int = 0
    percentage: float = 0.0


class IssueCount(BaseModel):
    tag: str
    count: int
    percentage: float


class CrewPerformanceReport(BaseModel):
    shoot_day_id: str
    date: date
    total_responses: int = 0
    average_rating: float = 0.0
    rating_distribution: list[RatingBucket] = Field(default_factory=list)
    top_issues: list[IssueCount] = Field(default_factory=list)
    anonymous_responses: int = 0
    named_responses: int = 0
