"""
In-Memory Storage Implementation

The only backend the core needs: one ordered dict per entity type,
keyed by generated id. Records are deep-copied on the way in and on
the way out so nothing outside the store can mutate stored state.

TRADEOFFS:
- Nothing survives the process (see ProductionStore.snapshot for a
  serializable hand-off)
- Filtering is a linear scan, which is fine at production-office scale
"""

from collections import OrderedDict
from typing import Optional

from shootledger.models.audit import AuditEvent
from shootledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    EntityRepository,
    NotFoundError,
    RecordT,
)


class InMemoryRepository(EntityRepository[RecordT]):
    """Ordered, copy-on-read collection for one entity type."""

    def __init__(self, entity_type: str):
        self._entity_type = entity_type
        self._records: "OrderedDict[str, RecordT]" = OrderedDict()

    @property
    def entity_type(self) -> str:
        return self._entity_type

    def insert(self, record: RecordT) -> None:
        if record.id in self._records:
            raise DuplicateError(
                f"{self._entity_type} {record.id} already exists",
                entity_type=self._entity_type,
                entity_id=record.id,
            )
        self._records[record.id] = record.model_copy(deep=True)

    def get(self, record_id: str) -> Optional[RecordT]:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    def replace(self, record: RecordT) -> None:
        if record.id not in self._records:
            raise NotFoundError(
                f"{self._entity_type} {record.id} not found",
                entity_type=self._entity_type,
                entity_id=record.id,
            )
        self._records[record.id] = record.model_copy(deep=True)

    def remove(self, record_id: str) -> None:
        if record_id not in self._records:
            raise NotFoundError(
                f"{self._entity_type} {record_id} not found",
                entity_type=self._entity_type,
                entity_id=record_id,
            )
        del self._records[record_id]

    def all(self) -> list[RecordT]:
        return [record.model_copy(deep=True) for record in self._records.values()]

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            event.model_copy(deep=True)
            for event in self._events
            if event.entity_type == entity_type and event.entity_id == entity_id
        ]

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return [event.model_copy(deep=True) for event in reversed(self._events[-limit:])]

    def __len__(self) -> int:
        return len(self._events)
