"""
Audit Logger

DESIGN DECISION: Every accepted mutation of the store is logged.
This provides:
1. A history of money movement and lock decisions
2. Debugging capability for rejected commands
3. A feed that a persistence layer can drain later

The audit logger:
- Is synchronous, like the store it serves
- Gracefully handles failures (a broken audit backend never fails a command)
"""

from typing import Optional

import structlog

from shootledger.config import get_settings
from shootledger.models.audit import AuditEvent, AuditEventBuilder
from shootledger.services.storage import AuditStorageInterface, StorageError


_configured = False


def configure_logging(debug: Optional[bool] = None) -> None:
    """
    Configure structlog for the process.

    JSON lines by default; a human-readable console renderer when
    debug mode is on.
    """
    global _configured

    if debug is None:
        debug = get_settings().app.debug_mode

    renderer = (
        structlog.dev.ConsoleRenderer()
        if debug
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: Optional[str] = None):
    """Module loggers go through here so logging is configured exactly once."""
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend (for history), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        enabled: Optional[bool] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            enabled: Overrides the `audit_enabled` setting.
        """
        self._storage = storage
        self._enabled = get_settings().app.audit_enabled if enabled is None else enabled
        self._logger = get_logger("shootledger.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        if not self._enabled:
            return True

        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except (StorageError, OSError) as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_created(self, entity_type: str, entity_id: str, actor_id: Optional[str] = None) -> None:
        self.log(AuditEventBuilder.entity_created(entity_type, entity_id, actor_id))

    def log_updated(
        self,
        entity_type: str,
        entity_id: str,
        fields: list[str],
        actor_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.entity_updated(entity_type, entity_id, fields, actor_id))

    def log_deleted(self, entity_type: str, entity_id: str, actor_id: Optional[str] = None) -> None:
        self.log(AuditEventBuilder.entity_deleted(entity_type, entity_id, actor_id))

    def log_expense_cancelled(
        self,
        expense_id: str,
        amount: str,
        previous_status: str,
        actor_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.expense_cancelled(expense_id, amount, previous_status, actor_id))

    def log_txn_applied(
        self,
        txn_id: str,
        float_id: str,
        txn_type: str,
        amount: str,
        balance: str,
    ) -> None:
        self.log(AuditEventBuilder.petty_cash_txn_applied(txn_id, float_id, txn_type, amount, balance))

    def log_debit_rejected(self, float_id: str, amount: str, balance: str) -> None:
        self.log(AuditEventBuilder.petty_cash_debit_rejected(float_id, amount, balance))

    def log_lock_changed(self, shoot_day_id: str, locked: bool, actor_id: Optional[str] = None) -> None:
        self.log(AuditEventBuilder.shoot_day_lock_changed(shoot_day_id, locked, actor_id))

    def log_prop_returned(self, checkout_id: str, prop_id: str, condition: Optional[str]) -> None:
        self.log(AuditEventBuilder.prop_returned(checkout_id, prop_id, condition))

    def log_rejected(self, error: StorageError) -> None:
        """Log a command the store refused."""
        self.log(AuditEventBuilder.command_rejected(
            entity_type=error.entity_type,
            entity_id=error.entity_id,
            error_code=error.code,
            error_message=error.message,
        ))

    def log_import(
        self,
        import_type: str,
        project_id: str,
        imported: int,
        error_count: int,
        actor_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.csv_import_completed(
            import_type, project_id, imported, error_count, actor_id
        ))

    def log_report(self, report_type: str, scope_id: str, output_format: str) -> None:
        self.log(AuditEventBuilder.report_generated(report_type, scope_id, output_format))
