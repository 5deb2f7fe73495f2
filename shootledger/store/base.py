"""
Data Store Core

ProductionStoreBase owns every entity collection and provides the
shared command path the per-area mixins build on:

1. Schema validation (pydantic) of the full, merged record
2. Semantic checks (foreign keys, locks, transitions)
3. Only then a write to the collection

DESIGN DECISION: Check-then-write. No command ever needs a rollback
because nothing is written until every check has passed.

The store is single-process, single-writer and synchronous. It holds no
locks; callers running it behind a server must serialize commands
themselves (e.g. one mutex per project).
"""

import functools
from datetime import date
from typing import Any, Callable, Mapping, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from shootledger.audit.logger import AuditLogger, get_logger
from shootledger.config import Settings, get_settings
from shootledger.models.entities import (
    ENTITY_MODELS,
    CheckoutStatus,
    EntityKind,
    PropCheckout,
    ShootDay,
    StoredRecord,
    utc_today,
)
from shootledger.services.storage import (
    ConflictError,
    EntityRepository,
    InMemoryRepository,
    InsufficientBalanceError,
    LockedError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from shootledger.validation import check_patch_keys, wrap_schema_error


SNAPSHOT_VERSION = "1.0"

RecordT = TypeVar("RecordT", bound=StoredRecord)
CommandT = TypeVar("CommandT", bound=Callable[..., Any])


def command(method: CommandT) -> CommandT:
    """
    Mark a public store method as a command.

    Rejections are logged (and audited) on the way out; the original
    error is always re-raised to the caller.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except StorageError as e:
            self._on_rejected(method.__name__, e)
            raise
    return wrapper  # type: ignore[return-value]


def merge_input(data: Optional[Mapping[str, Any]], fields: Mapping[str, Any]) -> dict[str, Any]:
    """Commands accept a dict, keyword arguments, or both."""
    merged = dict(data or {})
    merged.update(fields)
    return merged


class ProductionStoreBase:
    """
    Collections, lookups and the generic add/update/delete/query surface.

    Typed commands (add_expense, lock_shoot_day, ...) are provided by
    the mixins in this package.
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        today: Optional[Callable[[], date]] = None,
        settings: Optional[Settings] = None,
        repository_factory: Callable[[str], EntityRepository] = InMemoryRepository,
    ):
        """
        Args:
            audit_logger: Receives an event for every accepted mutation.
                         If None, nothing is audited.
            today: Clock used for derived date state (overdue checkouts).
                   Defaults to the current UTC date.
            settings: Defaults to get_settings().
            repository_factory: Builds one collection per entity kind.
        """
        self._settings = settings or get_settings()
        self._audit = audit_logger
        self._today = today or utc_today
        self._logger = get_logger(__name__)
        self._repos: dict[EntityKind, EntityRepository] = {
            kind: repository_factory(kind.value) for kind in EntityKind
        }

    # =========================================================================
    # CLOCK & SETTINGS
    # =========================================================================

    def today(self) -> date:
        return self._today()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def audit_logger(self) -> Optional[AuditLogger]:
        return self._audit

    # =========================================================================
    # GENERIC SURFACE
    # =========================================================================

    def add(self, kind: EntityKind, data: Optional[Mapping[str, Any]] = None, **fields) -> StoredRecord:
        """Create a record of any kind through its typed command."""
        return self._typed(kind, "add")(data, **fields)

    def update(self, kind: EntityKind, record_id: str, patch: Optional[Mapping[str, Any]] = None, **fields) -> StoredRecord:
        """Patch a record of any kind through its typed command."""
        return self._typed(kind, "update")(record_id, patch, **fields)

    def delete(self, kind: EntityKind, record_id: str) -> None:
        """Delete (or, for expenses, cancel) a record of any kind."""
        self._typed(kind, "delete")(record_id)

    def get(self, kind: EntityKind, record_id: str) -> StoredRecord:
        """
        Raises:
            NotFoundError: If the id is unknown
        """
        kind = EntityKind(kind)
        return self._present(kind, self._require(kind, record_id))

    def query(
        self,
        kind: EntityKind,
        predicate: Optional[Callable[[Any], bool]] = None,
        **equals: Any,
    ) -> list[StoredRecord]:
        """
        Records matching every `field=value` pair and the predicate.

        Insertion order is preserved; nothing is sorted.
        """
        kind = EntityKind(kind)
        results = []
        for record in self._repos[kind].all():
            record = self._present(kind, record)
            if any(getattr(record, field) != value for field, value in equals.items()):
                continue
            if predicate is not None and not predicate(record):
                continue
            results.append(record)
        return results

    def count(self, kind: EntityKind) -> int:
        return len(self._repos[EntityKind(kind)])

    def _typed(self, kind: EntityKind, verb: str) -> Callable[..., Any]:
        kind = EntityKind(kind)
        handler = getattr(self, f"{verb}_{kind.value}", None)
        if handler is None:
            raise ValidationError(
                f"{verb} is not supported for {kind.value}",
                entity_type=kind.value,
                details={"operation": verb},
            )
        return handler

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    def snapshot(self) -> dict[str, Any]:
        """
        Versioned, JSON-compatible copy of every collection.

        Shape: {"version": "1.0", "collections": {kind: [record, ...]}}
        """
        return {
            "version": SNAPSHOT_VERSION,
            "collections": {
                kind.value: [record.model_dump(mode="json") for record in repo.all()]
                for kind, repo in self._repos.items()
            },
        }

    def load_snapshot(self, data: Mapping[str, Any]) -> None:
        """
        Replace all collections with the contents of a snapshot.

        The snapshot is fully parsed before anything is replaced.

        Raises:
            ValidationError: Unknown version, malformed records or duplicate ids
        """
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise ValidationError(
                f"Unsupported snapshot version: {version!r}",
                details={"expected": SNAPSHOT_VERSION, "actual": version},
            )

        parsed: dict[EntityKind, list[StoredRecord]] = {}
        collections = data.get("collections", {})
        for kind in EntityKind:
            model = ENTITY_MODELS[kind]
            try:
                parsed[kind] = [model.model_validate(raw) for raw in collections.get(kind.value, [])]
            except PydanticValidationError as e:
                raise wrap_schema_error(kind, e) from e

            seen: set[str] = set()
            for record in parsed[kind]:
                if record.id in seen:
                    raise ValidationError(
                        f"Snapshot has duplicate {kind.value} id {record.id!r}",
                        entity_type=kind.value,
                        entity_id=record.id,
                        details={"field": "id"},
                    )
                seen.add(record.id)

        self.clear()
        for kind, records in parsed.items():
            for record in records:
                self._repos[kind].insert(record)

        self._logger.info(
            "snapshot_loaded",
            records=sum(len(records) for records in parsed.values()),
        )

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any], **kwargs):
        store = cls(**kwargs)
        store.load_snapshot(data)
        return store

    def clear(self) -> None:
        """Remove every record from every collection."""
        for repo in self._repos.values():
            repo.clear()

    # =========================================================================
    # COMMAND PATH HELPERS
    # =========================================================================

    def _require(self, kind: EntityKind, record_id: Optional[str], field: Optional[str] = None) -> Any:
        """
        Fetch a record or fail.

        `field` names the foreign key being resolved, for error messages.
        """
        record = self._repos[kind].get(record_id) if record_id else None
        if record is None:
            label = f"{field} " if field else ""
            raise NotFoundError(
                f"{kind.value} {label}{record_id!r} not found",
                entity_type=kind.value,
                entity_id=record_id,
                details={"field": field} if field else {},
            )
        return record

    def _build(self, kind: EntityKind, data: Mapping[str, Any]) -> Any:
        """Schema-validate a new record; id and created_at are generated."""
        generated = sorted({"id", "created_at"} & set(data))
        if generated:
            raise ValidationError(
                f"{', '.join(generated)} are assigned by the store",
                entity_type=kind.value,
                details={"fields": generated},
            )
        try:
            return ENTITY_MODELS[kind].model_validate(dict(data))
        except PydanticValidationError as e:
            raise wrap_schema_error(kind, e) from e

    def _merge(self, kind: EntityKind, current: RecordT, patch: Mapping[str, Any]) -> RecordT:
        """Schema-validate the result of applying `patch` to `current`."""
        check_patch_keys(kind, current.id, patch)
        merged = current.model_dump()
        merged.update(patch)
        try:
            return ENTITY_MODELS[kind].model_validate(merged)
        except PydanticValidationError as e:
            raise wrap_schema_error(kind, e, entity_id=current.id) from e

    def _insert(self, kind: EntityKind, record: RecordT, actor_id: Optional[str] = None) -> RecordT:
        self._repos[kind].insert(record)
        self._logger.debug("entity_created", entity_type=kind.value, entity_id=record.id)
        if self._audit:
            self._audit.log_created(kind.value, record.id, actor_id)
        return self._present(kind, record)

    def _replace(
        self,
        kind: EntityKind,
        record: RecordT,
        fields: list[str],
        actor_id: Optional[str] = None,
    ) -> RecordT:
        self._repos[kind].replace(record)
        self._logger.debug("entity_updated", entity_type=kind.value, entity_id=record.id, fields=fields)
        if self._audit:
            self._audit.log_updated(kind.value, record.id, fields, actor_id)
        return self._present(kind, record)

    def _remove(self, kind: EntityKind, record_id: str) -> None:
        self._repos[kind].remove(record_id)
        self._logger.debug("entity_deleted", entity_type=kind.value, entity_id=record_id)
        if self._audit:
            self._audit.log_deleted(kind.value, record_id)

    def _children(self, kind: EntityKind, field: str, value: str) -> list[Any]:
        return [record for record in self._repos[kind].all() if getattr(record, field) == value]

    def _ensure_no_dependents(
        self,
        kind: EntityKind,
        record_id: str,
        dependents: Mapping[EntityKind, str],
    ) -> None:
        """
        Raises:
            ConflictError: Listing the count of each dependent kind still present
        """
        counts = {
            child.value: len(self._children(child, field, record_id))
            for child, field in dependents.items()
        }
        blocking = {name: n for name, n in counts.items() if n}
        if blocking:
            listing = ", ".join(f"{n} {name}" for name, n in blocking.items())
            raise ConflictError(
                f"Cannot delete {kind.value} {record_id}: still referenced by {listing}",
                entity_type=kind.value,
                entity_id=record_id,
                details={"dependents": blocking},
            )

    def _ensure_day_open(
        self,
        shoot_day_id: Optional[str],
        kind: EntityKind,
        entity_id: Optional[str] = None,
    ) -> Optional[ShootDay]:
        """
        Guard for every record scoped to a shoot day.

        Raises:
            NotFoundError: If the shoot day does not exist
            LockedError: If the shoot day is locked
        """
        if shoot_day_id is None:
            return None
        day = self._require(EntityKind.SHOOT_DAY, shoot_day_id, field="shoot_day_id")
        if day.is_locked:
            raise LockedError(
                f"Shoot day {day.date.isoformat()} is locked; {kind.value} changes are not allowed",
                entity_type=kind.value,
                entity_id=entity_id,
                details={"shoot_day_id": shoot_day_id},
            )
        return day

    def _present(self, kind: EntityKind, record: Any) -> Any:
        """Apply read-time derivations before a record leaves the store."""
        if kind == EntityKind.PROP_CHECKOUT:
            return self._with_effective_status(record)
        return record

    def _with_effective_status(self, checkout: PropCheckout) -> PropCheckout:
        status = checkout.effective_status(self.today())
        if status == CheckoutStatus.OVERDUE:
            return checkout.model_copy(update={"status": status})
        return checkout

    def _on_rejected(self, operation: str, error: StorageError) -> None:
        self._logger.warning(
            "command_rejected",
            operation=operation,
            code=error.code,
            entity_type=error.entity_type,
            entity_id=error.entity_id,
            error=error.message,
        )
        if self._audit:
            if isinstance(error, InsufficientBalanceError):
                self._audit.log_debit_rejected(
                    error.entity_id,
                    error.details.get("requested", ""),
                    error.details.get("balance", ""),
                )
            else:
                self._audit.log_rejected(error)
