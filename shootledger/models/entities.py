"""
Entity Models for shootledger

These models define the strict schemas for every record the store holds.
They are designed to:
1. Enforce field types and ranges at runtime
2. Provide clear validation error messages
3. Be serializable for snapshots and logging

Cross-record rules (foreign keys, locks, status transitions) are not
checked here; the store applies them through shootledger.validation.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


def new_id() -> str:
    """Generate an opaque record identifier."""
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def utc_date(moment: datetime) -> date:
    """Calendar date of a timestamp on the UTC clock; naive values are taken as UTC."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntityKind(str, Enum):
    """Every collection the store owns."""
    PROJECT = "project"
    DEPARTMENT = "department"
    BUDGET_LINE = "budget_line"
    VENDOR = "vendor"
    EXPENSE = "expense"
    PETTY_CASH_FLOAT = "petty_cash_float"
    PETTY_CASH_TXN = "petty_cash_txn"
    SHOOT_DAY = "shoot_day"
    SCHEDULE_ITEM = "schedule_item"
    CREW = "crew"
    CREW_FEEDBACK = "crew_feedback"
    PROP = "prop"
    PROP_CHECKOUT = "prop_checkout"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    UPI = "UPI"
    CARD = "Card"
    TRANSFER = "Transfer"


class ExpenseStatus(str, Enum):
    """
    Expense lifecycle.

    Moves forward only (submitted → approved → paid). CANCELLED can be
    reached from any state and is terminal.
    """
    SUBMITTED = "submitted"
    APPROVED = "approved"
    PAID = "paid"
    CANCELLED = "cancelled"


class TxnType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class ShootDayStatus(str, Enum):
    OPEN = "open"
    LOCKED = "locked"


class ScheduleStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    DROPPED = "dropped"


class CheckoutStatus(str, Enum):
    """
    Prop checkout status.

    OVERDUE is never stored: it is derived at read time from an OUT
    checkout whose due date has passed.
    """
    OUT = "out"
    RETURNED = "returned"
    OVERDUE = "overdue"


# =============================================================================
# BASE
# =============================================================================

class StoredRecord(BaseModel):
    """Fields every stored entity carries."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        extra="forbid",
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque identifier, stable for the record's lifetime"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the record was created"
    )


# =============================================================================
# BUDGET & SPEND
# =============================================================================

class Project(StoredRecord):
    """Root of every project-scoped collection."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Project title"
    )
    currency: str = Field(
        default="INR",
        min_length=3,
        max_length=3,
        description="ISO currency code, fixed at creation"
    )
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_budget: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Overall budget"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        description="Last update timestamp"
    )

    @model_validator(mode='after')
    def validate_dates(self) -> 'Project':
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("Project end date cannot be before start date")
        return self


class Department(StoredRecord):
    project_id: str = Field(..., min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Department name"
    )
    budget_amount: Decimal = Field(default=Decimal("0"), ge=0)


class BudgetLine(StoredRecord):
    """A named sub-allocation of a department's budget."""

    project_id: str = Field(..., min_length=1)
    department_id: str = Field(..., min_length=1)
    line_item: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Line item name"
    )
    budget_amount: Decimal = Field(default=Decimal("0"), ge=0)


class Vendor(StoredRecord):
    """Global (not project-scoped) supplier."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Vendor name"
    )
    gstin: Optional[str] = Field(
        default=None,
        max_length=15,
        description="GST identification number"
    )
    contacts: list[str] = Field(default_factory=list)


class Expense(StoredRecord):
    project_id: str = Field(..., min_length=1)
    department_id: str = Field(..., min_length=1)
    budget_line_id: Optional[str] = None
    vendor_id: Optional[str] = None
    shoot_day_id: Optional[str] = None
    date: date
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="What the money was spent on"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount in project currency"
    )
    tax_rate: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=100,
        description="Tax rate percentage"
    )
    payment_method: PaymentMethod
    status: ExpenseStatus = ExpenseStatus.SUBMITTED
    reimbursable: bool = False
    attachment_uri: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_by: str = Field(
        default="user",
        min_length=1,
        description="Opaque user id from the identity provider"
    )


class PettyCashFloat(StoredRecord):
    """A pool of cash issued to a person, tracked with a running balance."""

    project_id: str = Field(..., min_length=1)
    owner_user_id: str = Field(..., min_length=1)
    issued_amount: Decimal = Field(..., ge=0)
    issued_at: datetime = Field(default_factory=utc_now)
    balance: Decimal = Field(
        ...,
        ge=0,
        description="Current balance; only changes through transactions"
    )


class PettyCashTxn(StoredRecord):
    float_id: str = Field(..., min_length=1)
    date: date
    description: str = Field(..., min_length=1, max_length=500)
    amount: Decimal = Field(..., gt=0)
    type: TxnType
    attachment_uri: Optional[str] = None


# =============================================================================
# PRODUCTION DAY
# =============================================================================

class ShootDay(StoredRecord):
    """One day of production; the scope for schedule, feedback and props."""

    project_id: str = Field(..., min_length=1)
    date: date
    location: Optional[str] = Field(default=None, max_length=200)
    call_time: Optional[str] = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    wrap_time: Optional[str] = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    weather_note: Optional[str] = Field(default=None, max_length=200)
    status: ShootDayStatus = ShootDayStatus.OPEN
    notes: Optional[str] = Field(default=None, max_length=1000)

    @property
    def is_locked(self) -> bool:
        return self.status == ShootDayStatus.LOCKED


class ScheduleItem(StoredRecord):
    """A scene/shot planned for a shoot day."""

    shoot_day_id: str = Field(..., min_length=1)
    scene: str = Field(..., min_length=1, max_length=100)
    shot: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    planned_start: Optional[str] = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    planned_end: Optional[str] = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    actual_start: Optional[str] = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    actual_end: Optional[str] = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    assignees: list[str] = Field(default_factory=list)
    status: ScheduleStatus = ScheduleStatus.PLANNED
    notes: Optional[str] = Field(default=None, max_length=1000)


class Crew(StoredRecord):
    project_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    role: str = Field(..., min_length=1, max_length=100)
    contact: Optional[str] = Field(default=None, max_length=100)


class CrewFeedback(StoredRecord):
    """
    A crew member's rating of a shoot day.

    Anonymous responses carry no crew_id; named responses must.
    """

    shoot_day_id: str = Field(..., min_length=1)
    crew_id: Optional[str] = None
    is_anonymous: bool = False
    rating: int = Field(..., ge=1, le=5)
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode='after')
    def validate_identity(self) -> 'CrewFeedback':
        if self.is_anonymous and self.crew_id is not None:
            raise ValueError("Anonymous feedback cannot reference a crew member")
        if not self.is_anonymous and self.crew_id is None:
            raise ValueError("Named feedback requires a crew member")
        return self


class Prop(StoredRecord):
    project_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, max_length=100)
    serial_no: Optional[str] = Field(default=None, max_length=100)
    owner_vendor_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class PropCheckout(StoredRecord):
    prop_id: str = Field(..., min_length=1)
    shoot_day_id: str = Field(..., min_length=1)
    checked_out_by: str = Field(..., min_length=1, max_length=200)
    due_return: date
    checkout_condition: Optional[str] = None
    checkout_photo_uri: Optional[str] = None
    returned_at: Optional[datetime] = None
    return_condition: Optional[str] = None
    return_photo_uri: Optional[str] = None
    status: CheckoutStatus = CheckoutStatus.OUT

    def effective_status(self, today: date) -> CheckoutStatus:
        """Status as seen on `today`: OUT past its due date reads as OVERDUE."""
        if self.status == CheckoutStatus.OUT and self.due_return < today:
            return CheckoutStatus.OVERDUE
        return self.status

    def days_overdue(self, today: date) -> int:
        return max(0, (today - self.due_return).days)


ENTITY_MODELS: dict[EntityKind, type[StoredRecord]] = {
    EntityKind.PROJECT: Project,
    EntityKind.DEPARTMENT: Department,
    EntityKind.BUDGET_LINE: BudgetLine,
    EntityKind.VENDOR: Vendor,
    EntityKind.EXPENSE: Expense,
    EntityKind.PETTY_CASH_FLOAT: PettyCashFloat,
    EntityKind.PETTY_CASH_TXN: PettyCashTxn,
    EntityKind.SHOOT_DAY: ShootDay,
    EntityKind.SCHEDULE_ITEM: ScheduleItem,
    EntityKind.CREW: Crew,
    EntityKind.CREW_FEEDBACK: CrewFeedback,
    EntityKind.PROP: Prop,
    EntityKind.PROP_CHECKOUT: PropCheckout,
}
