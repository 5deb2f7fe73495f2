"""
Audit Models for shootledger

Every accepted mutation of the store is recorded as an audit event.
This provides:
1. Traceability of money movement (expenses, petty cash)
2. A history of lock/unlock decisions on shoot days
3. Debugging information when a command is rejected

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Generic entity lifecycle
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"

    # Money movement
    EXPENSE_CANCELLED = "expense_cancelled"
    PETTY_CASH_TXN_APPLIED = "petty_cash_txn_applied"
    PETTY_CASH_DEBIT_REJECTED = "petty_cash_debit_rejected"

    # Production day
    SHOOT_DAY_LOCKED = "shoot_day_locked"
    SHOOT_DAY_UNLOCKED = "shoot_day_unlocked"
    PROP_RETURNED = "prop_returned"

    # Rejected commands
    COMMAND_REJECTED = "command_rejected"

    # Adapters
    CSV_IMPORT_COMPLETED = "csv_import_completed"
    REPORT_GENERATED = "report_generated"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'shoot_day')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Who did it (opaque id from the identity provider)
    actor_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_id": self.actor_id,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created("expense", expense_id)
        event = AuditEventBuilder.shoot_day_locked(shoot_day_id)
    """

    @staticmethod
    def entity_created(
        entity_type: str,
        entity_id: str,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            description=f"Created {entity_type} {entity_id}",
        )

    @staticmethod
    def entity_updated(
        entity_type: str,
        entity_id: str,
        fields: list[str],
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            description=f"Updated {entity_type} {entity_id}",
            details={"fields_updated": fields},
        )

    @staticmethod
    def entity_deleted(
        entity_type: str,
        entity_id: str,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            description=f"Deleted {entity_type} {entity_id}",
        )

    @staticmethod
    def expense_cancelled(
        expense_id: str,
        amount: str,
        previous_status: str,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CANCELLED,
            entity_type="expense",
            entity_id=expense_id,
            actor_id=actor_id,
            description=f"Expense cancelled ({amount}) from status {previous_status}",
            details={
                "amount": amount,
                "previous_status": previous_status,
            },
        )

    @staticmethod
    def petty_cash_txn_applied(
        txn_id: str,
        float_id: str,
        txn_type: str,
        amount: str,
        balance: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PETTY_CASH_TXN_APPLIED,
            entity_type="petty_cash_txn",
            entity_id=txn_id,
            description=f"Petty cash {txn_type} of {amount} applied; balance {balance}",
            details={
                "float_id": float_id,
                "type": txn_type,
                "amount": amount,
                "balance_after": balance,
            },
        )

    @staticmethod
    def petty_cash_debit_rejected(
        float_id: str,
        amount: str,
        balance: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PETTY_CASH_DEBIT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="petty_cash_float",
            entity_id=float_id,
            description=f"Debit of {amount} rejected; balance is {balance}",
            details={
                "requested": amount,
                "balance": balance,
            },
        )

    @staticmethod
    def shoot_day_lock_changed(
        shoot_day_id: str,
        locked: bool,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.SHOOT_DAY_LOCKED
                if locked
                else AuditEventType.SHOOT_DAY_UNLOCKED
            ),
            entity_type="shoot_day",
            entity_id=shoot_day_id,
            actor_id=actor_id,
            description=f"Shoot day {'locked' if locked else 'reopened'}",
        )

    @staticmethod
    def prop_returned(
        checkout_id: str,
        prop_id: str,
        condition: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROP_RETURNED,
            entity_type="prop_checkout",
            entity_id=checkout_id,
            description="Prop returned",
            details={
                "prop_id": prop_id,
                "return_condition": condition,
            },
        )

    @staticmethod
    def command_rejected(
        entity_type: Optional[str],
        entity_id: Optional[str],
        error_code: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Command rejected: {error_code}",
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def csv_import_completed(
        import_type: str,
        project_id: str,
        imported: int,
        error_count: int,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CSV_IMPORT_COMPLETED,
            severity=AuditSeverity.WARNING if error_count else AuditSeverity.INFO,
            entity_type="project",
            entity_id=project_id,
            actor_id=actor_id,
            description=f"{import_type} import: {imported} imported, {error_count} errors",
            details={
                "import_type": import_type,
                "imported": imported,
                "error_count": error_count,
            },
        )

    @staticmethod
    def report_generated(
        report_type: str,
        scope_id: str,
        output_format: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            entity_type="report",
            entity_id=scope_id,
            description=f"{report_type} generated as {output_format}",
            details={
                "report_type": report_type,
                "format": output_format,
            },
        )
