"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for the raw collections
and for the audit log. The store layers validation on top of them, so
a collection only has to keep records by id, in insertion order.

This module also defines the error taxonomy raised by the store. Every
error is recoverable and carries enough structure (entity type, id,
details) to be rendered as a user-facing message.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, Optional, TypeVar

from shootledger.models.audit import AuditEvent
from shootledger.models.entities import StoredRecord


RecordT = TypeVar("RecordT", bound=StoredRecord)


class EntityRepository(ABC, Generic[RecordT]):
    """
    Abstract keyed collection for one entity type.

    Implementations must preserve insertion order in `all()` and must
    not alias: what goes in and what comes out are independent copies.
    """

    @abstractmethod
    def insert(self, record: RecordT) -> None:
        """
        Add a new record.

        Raises:
            DuplicateError: If a record with the same id exists
        """
        pass

    @abstractmethod
    def get(self, record_id: str) -> Optional[RecordT]:
        """Return the record, or None if the id is unknown."""
        pass

    @abstractmethod
    def replace(self, record: RecordT) -> None:
        """
        Overwrite an existing record in place (order is kept).

        Raises:
            NotFoundError: If the record does not exist
        """
        pass

    @abstractmethod
    def remove(self, record_id: str) -> None:
        """
        Remove a record.

        Raises:
            NotFoundError: If the record does not exist
        """
        pass

    @abstractmethod
    def all(self) -> list[RecordT]:
        """All records in insertion order."""
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self.all())

    def __contains__(self, record_id: object) -> bool:
        return isinstance(record_id, str) and self.get(record_id) is not None


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


# =============================================================================
# ERRORS
# =============================================================================

class StorageError(Exception):
    """
    Base exception for store operations.

    Attributes:
        entity_type: Kind of record the error is about, if any
        entity_id: Id of that record, if any
        details: Structured context for the caller
    """

    code = "storage_error"

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details,
        }


class ValidationError(StorageError):
    """Input is malformed, out of range, or breaks an invariant."""
    code = "validation_error"


class NotFoundError(StorageError):
    """Unknown id, or a foreign key pointing at nothing."""
    code = "not_found"


class ConflictError(StorageError):
    """Delete blocked by live dependents."""
    code = "conflict"


class LockedError(StorageError):
    """Mutation attempted on a locked shoot day."""
    code = "locked"


class InsufficientBalanceError(StorageError):
    """Petty cash debit would take the float below zero."""
    code = "insufficient_balance"


class DuplicateError(StorageError):
    """Attempted to insert a record whose id already exists."""
    code = "duplicate"
