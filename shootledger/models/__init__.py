"""
Data Models Package

This package contains all Pydantic models used in shootledger.
All data flowing in and out of the store must conform to these schemas.
"""

from shootledger.models.entities import (
    ENTITY_MODELS,
    BudgetLine,
    CheckoutStatus,
    Crew,
    CrewFeedback,
    Department,
    EntityKind,
    Expense,
    ExpenseStatus,
    PaymentMethod,
    PettyCashFloat,
    PettyCashTxn,
    Project,
    Prop,
    PropCheckout,
    ScheduleItem,
    ScheduleStatus,
    ShootDay,
    ShootDayStatus,
    StoredRecord,
    TxnType,
    Vendor,
)
from shootledger.models.filters import (
    BudgetLineFilter,
    ExpenseFilter,
    PropCheckoutFilter,
    ScheduleItemFilter,
)
from shootledger.models.reports import (
    BudgetVsActualRow,
    CrewPerformanceReport,
    DailyCostReport,
    DepartmentSpend,
    DepartmentSummary,
    PaymentMethodTotal,
    ProductionDaySummary,
    ProjectSummary,
    PropsCustodyReport,
    ScheduleAdherenceReport,
)
from shootledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "ENTITY_MODELS",
    "BudgetLine",
    "CheckoutStatus",
    "Crew",
    "CrewFeedback",
    "Department",
    "EntityKind",
    "Expense",
    "ExpenseStatus",
    "PaymentMethod",
    "PettyCashFloat",
    "PettyCashTxn",
    "Project",
    "Prop",
    "PropCheckout",
    "ScheduleItem",
    "ScheduleStatus",
    "ShootDay",
    "ShootDayStatus",
    "StoredRecord",
    "TxnType",
    "Vendor",
    # Filters
    "BudgetLineFilter",
    "ExpenseFilter",
    "PropCheckoutFilter",
    "ScheduleItemFilter",
    # Reports
    "BudgetVsActualRow",
    "CrewPerformanceReport",
    "DailyCostReport",
    "DepartmentSpend",
    "DepartmentSummary",
    "PaymentMethodTotal",
    "ProductionDaySummary",
    "ProjectSummary",
    "PropsCustodyReport",
    "ScheduleAdherenceReport",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
