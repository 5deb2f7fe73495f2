"""
Production day commands: shoot days and everything scoped to one.

While a shoot day is locked, schedule items, feedback, prop checkouts
and expenses tied to it reject every add, update and delete with
LockedError. The day itself accepts only the patch that reopens it.
"""

from typing import Any, Mapping, Optional

from shootledger.models.entities import (
    CheckoutStatus,
    Crew,
    CrewFeedback,
    EntityKind,
    Prop,
    PropCheckout,
    ScheduleItem,
    ShootDay,
    ShootDayStatus,
    utc_now,
)
from shootledger.models.filters import PropCheckoutFilter, ScheduleItemFilter
from shootledger.services.storage import LockedError, ValidationError
from shootledger.store.base import ProductionStoreBase, command, merge_input
from shootledger.validation import check_checkout_transition, require_same_scope


def _reopens(patch: Mapping[str, Any]) -> bool:
    if set(patch) != {"status"}:
        return False
    try:
        return ShootDayStatus(patch["status"]) == ShootDayStatus.OPEN
    except ValueError:
        return False


def _stored_checkout_status(data: dict[str, Any]) -> dict[str, Any]:
    # overdue is a read-time view; the stored status stays out
    if data.get("status") == CheckoutStatus.OVERDUE:
        data["status"] = CheckoutStatus.OUT
    return data


class ProductionDayMixin(ProductionStoreBase):

    # =========================================================================
    # SHOOT DAYS
    # =========================================================================

    @command
    def add_shoot_day(self, data: Optional[Mapping[str, Any]] = None, **fields) -> ShootDay:
        day = self._build(EntityKind.SHOOT_DAY, merge_input(data, fields))
        self._require(EntityKind.PROJECT, day.project_id, field="project_id")
        return self._insert(EntityKind.SHOOT_DAY, day)

    @command
    def update_shoot_day(self, shoot_day_id: str, patch: Optional[Mapping[str, Any]] = None, **fields) -> ShootDay:
        """
        Patch a shoot day.

        Raises:
            NotFoundError: Unknown shoot day
            LockedError: The day is locked and the patch does more than reopen it
            ValidationError: Schema errors
        """
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.SHOOT_DAY, shoot_day_id)
        if current.is_locked and not _reopens(patch):
            raise LockedError(
                f"Shoot day {current.date.isoformat()} is locked; only reopening is allowed",
                entity_type=EntityKind.SHOOT_DAY.value,
                entity_id=shoot_day_id,
                details={"fields": sorted(patch)},
            )
        merged = self._merge(EntityKind.SHOOT_DAY, current, patch)
        updated = self._replace(EntityKind.SHOOT_DAY, merged, sorted(patch))
        if merged.status != current.status:
            self._lock_changed(updated)
        return updated

    @command
    def lock_shoot_day(self, shoot_day_id: str) -> ShootDay:
        """Lock a day. Locking an already locked day is a no-op."""
        return self._set_day_status(shoot_day_id, ShootDayStatus.LOCKED)

    @command
    def unlock_shoot_day(self, shoot_day_id: str) -> ShootDay:
        return self._set_day_status(shoot_day_id, ShootDayStatus.OPEN)

    @command
    def delete_shoot_day(self, shoot_day_id: str) -> None:
        current = self._require(EntityKind.SHOOT_DAY, shoot_day_id)
        if current.is_locked:
            raise LockedError(
                f"Shoot day {current.date.isoformat()} is locked and cannot be deleted",
                entity_type=EntityKind.SHOOT_DAY.value,
                entity_id=shoot_day_id,
            )
        self._ensure_no_dependents(EntityKind.SHOOT_DAY, shoot_day_id, {
            EntityKind.SCHEDULE_ITEM: "shoot_day_id",
            EntityKind.EXPENSE: "shoot_day_id",
            EntityKind.CREW_FEEDBACK: "shoot_day_id",
            EntityKind.PROP_CHECKOUT: "shoot_day_id",
        })
        self._remove(EntityKind.SHOOT_DAY, shoot_day_id)

    def get_shoot_day(self, shoot_day_id: str) -> ShootDay:
        return self.get(EntityKind.SHOOT_DAY, shoot_day_id)

    def get_shoot_days(self, project_id: Optional[str] = None) -> list[ShootDay]:
        if project_id is None:
            return self.query(EntityKind.SHOOT_DAY)
        return self.query(EntityKind.SHOOT_DAY, project_id=project_id)

    def _set_day_status(self, shoot_day_id: str, status: ShootDayStatus) -> ShootDay:
        current = self._require(EntityKind.SHOOT_DAY, shoot_day_id)
        if current.status == status:
            return current
        updated = current.model_copy(update={"status": status})
        self._repos[EntityKind.SHOOT_DAY].replace(updated)
        self._lock_changed(updated)
        return updated

    def _lock_changed(self, day: ShootDay) -> None:
        self._logger.info(
            "shoot_day_locked" if day.is_locked else "shoot_day_unlocked",
            shoot_day_id=day.id,
            date=day.date.isoformat(),
        )
        if self._audit:
            self._audit.log_lock_changed(day.id, day.is_locked)

    # =========================================================================
    # SCHEDULE ITEMS
    # =========================================================================

    @command
    def add_schedule_item(self, data: Optional[Mapping[str, Any]] = None, **fields) -> ScheduleItem:
        item = self._build(EntityKind.SCHEDULE_ITEM, merge_input(data, fields))
        self._ensure_day_open(item.shoot_day_id, EntityKind.SCHEDULE_ITEM)
        return self._insert(EntityKind.SCHEDULE_ITEM, item)

    @command
    def update_schedule_item(self, item_id: str, patch: Optional[Mapping[str, Any]] = None, **fields) -> ScheduleItem:
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.SCHEDULE_ITEM, item_id)
        day = self._ensure_day_open(current.shoot_day_id, EntityKind.SCHEDULE_ITEM, item_id)
        merged = self._merge(EntityKind.SCHEDULE_ITEM, current, patch)
        if merged.shoot_day_id != current.shoot_day_id:
            self._move_to_day(EntityKind.SCHEDULE_ITEM, item_id, day, merged.shoot_day_id)
        return self._replace(EntityKind.SCHEDULE_ITEM, merged, sorted(patch))

    @command
    def delete_schedule_item(self, item_id: str) -> None:
        current = self._require(EntityKind.SCHEDULE_ITEM, item_id)
        self._ensure_day_open(current.shoot_day_id, EntityKind.SCHEDULE_ITEM, item_id)
        self._remove(EntityKind.SCHEDULE_ITEM, item_id)

    def get_schedule_item(self, item_id: str) -> ScheduleItem:
        return self.get(EntityKind.SCHEDULE_ITEM, item_id)

    def get_schedule_items(
        self,
        shoot_day_id: Optional[str] = None,
        filter: Optional[ScheduleItemFilter] = None,
    ) -> list[ScheduleItem]:
        equals = {"shoot_day_id": shoot_day_id} if shoot_day_id is not None else {}
        if filter is not None and filter.status is not None:
            equals["status"] = filter.status
        return self.query(EntityKind.SCHEDULE_ITEM, **equals)

    def _move_to_day(
        self,
        kind: EntityKind,
        entity_id: str,
        current_day: ShootDay,
        target_day_id: str,
    ) -> ShootDay:
        """A record may only move to an open day of the same project."""
        target = self._ensure_day_open(target_day_id, kind, entity_id)
        require_same_scope(kind, "shoot_day_id", current_day.project_id, target.project_id, entity_id)
        return target

    # =========================================================================
    # CREW
    # =========================================================================

    @command
    def add_crew(self, data: Optional[Mapping[str, Any]] = None, **fields) -> Crew:
        member = self._build(EntityKind.CREW, merge_input(data, fields))
        self._require(EntityKind.PROJECT, member.project_id, field="project_id")
        return self._insert(EntityKind.CREW, member)

    @command
    def update_crew(self, crew_id: str, patch: Optional[Mapping[str, Any]] = None, **fields) -> Crew:
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.CREW, crew_id)
        merged = self._merge(EntityKind.CREW, current, patch)
        return self._replace(EntityKind.CREW, merged, sorted(patch))

    @command
    def delete_crew(self, crew_id: str) -> None:
        self._require(EntityKind.CREW, crew_id)
        self._ensure_no_dependents(EntityKind.CREW, crew_id, {
            EntityKind.CREW_FEEDBACK: "crew_id",
        })
        self._remove(EntityKind.CREW, crew_id)

    def get_crew(self, crew_id: str) -> Crew:
        return self.get(EntityKind.CREW, crew_id)

    def get_crew_members(self, project_id: Optional[str] = None) -> list[Crew]:
        if project_id is None:
            return self.query(EntityKind.CREW)
        return self.query(EntityKind.CREW, project_id=project_id)

    # =========================================================================
    # CREW FEEDBACK
    # =========================================================================

    @command
    def add_crew_feedback(self, data: Optional[Mapping[str, Any]] = None, **fields) -> CrewFeedback:
        feedback = self._build(EntityKind.CREW_FEEDBACK, merge_input(data, fields))
        day = self._ensure_day_open(feedback.shoot_day_id, EntityKind.CREW_FEEDBACK)
        self._check_feedback_crew(feedback, day)
        return self._insert(EntityKind.CREW_FEEDBACK, feedback, actor_id=feedback.crew_id)

    @command
    def update_crew_feedback(
        self,
        feedback_id: str,
        patch: Optional[Mapping[str, Any]] = None,
        **fields,
    ) -> CrewFeedback:
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.CREW_FEEDBACK, feedback_id)
        day = self._ensure_day_open(current.shoot_day_id, EntityKind.CREW_FEEDBACK, feedback_id)
        merged = self._merge(EntityKind.CREW_FEEDBACK, current, patch)
        if merged.shoot_day_id != current.shoot_day_id:
            day = self._move_to_day(EntityKind.CREW_FEEDBACK, feedback_id, day, merged.shoot_day_id)
        self._check_feedback_crew(merged, day)
        return self._replace(EntityKind.CREW_FEEDBACK, merged, sorted(patch))

    @command
    def delete_crew_feedback(self, feedback_id: str) -> None:
        current = self._require(EntityKind.CREW_FEEDBACK, feedback_id)
        self._ensure_day_open(current.shoot_day_id, EntityKind.CREW_FEEDBACK, feedback_id)
        self._remove(EntityKind.CREW_FEEDBACK, feedback_id)

    def get_crew_feedback(self, feedback_id: str) -> CrewFeedback:
        return self.get(EntityKind.CREW_FEEDBACK, feedback_id)

    def get_feedback_responses(self, shoot_day_id: Optional[str] = None) -> list[CrewFeedback]:
        if shoot_day_id is None:
            return self.query(EntityKind.CREW_FEEDBACK)
        return self.query(EntityKind.CREW_FEEDBACK, shoot_day_id=shoot_day_id)

    def _check_feedback_crew(self, feedback: CrewFeedback, day: ShootDay) -> None:
        if feedback.crew_id is None:
            return
        member = self._require(EntityKind.CREW, feedback.crew_id, field="crew_id")
        require_same_scope(
            EntityKind.CREW_FEEDBACK, "crew_id",
            day.project_id, member.project_id, feedback.id,
        )

    # =========================================================================
    # PROPS
    # =========================================================================

    @command
    def add_prop(self, data: Optional[Mapping[str, Any]] = None, **fields) -> Prop:
        prop = self._build(EntityKind.PROP, merge_input(data, fields))
        self._require(EntityKind.PROJECT, prop.project_id, field="project_id")
        if prop.owner_vendor_id:
            self._require(EntityKind.VENDOR, prop.owner_vendor_id, field="owner_vendor_id")
        return self._insert(EntityKind.PROP, prop)

    @command
    def update_prop(self, prop_id: str, patch: Optional[Mapping[str, Any]] = None, **fields) -> Prop:
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.PROP, prop_id)
        merged = self._merge(EntityKind.PROP, current, patch)
        if merged.owner_vendor_id and merged.owner_vendor_id != current.owner_vendor_id:
            self._require(EntityKind.VENDOR, merged.owner_vendor_id, field="owner_vendor_id")
        return self._replace(EntityKind.PROP, merged, sorted(patch))

    @command
    def delete_prop(self, prop_id: str) -> None:
        self._require(EntityKind.PROP, prop_id)
        self._ensure_no_dependents(EntityKind.PROP, prop_id, {
            EntityKind.PROP_CHECKOUT: "prop_id",
        })
        self._remove(EntityKind.PROP, prop_id)

    def get_prop(self, prop_id: str) -> Prop:
        return self.get(EntityKind.PROP, prop_id)

    def get_props(self, project_id: Optional[str] = None) -> list[Prop]:
        if project_id is None:
            return self.query(EntityKind.PROP)
        return self.query(EntityKind.PROP, project_id=project_id)

    # =========================================================================
    # PROP CHECKOUTS
    # =========================================================================

    @command
    def add_prop_checkout(self, data: Optional[Mapping[str, Any]] = None, **fields) -> PropCheckout:
        data = _stored_checkout_status(merge_input(data, fields))
        checkout = self._build(EntityKind.PROP_CHECKOUT, data)
        prop = self._require(EntityKind.PROP, checkout.prop_id, field="prop_id")
        day = self._ensure_day_open(checkout.shoot_day_id, EntityKind.PROP_CHECKOUT)
        require_same_scope(
            EntityKind.PROP_CHECKOUT, "prop_id",
            day.project_id, prop.project_id, checkout.id,
        )
        if checkout.status == CheckoutStatus.RETURNED and checkout.returned_at is None:
            checkout = checkout.model_copy(update={"returned_at": utc_now()})
        return self._insert(EntityKind.PROP_CHECKOUT, checkout)

    @command
    def update_prop_checkout(
        self,
        checkout_id: str,
        patch: Optional[Mapping[str, Any]] = None,
        **fields,
    ) -> PropCheckout:
        """
        Patch a checkout. Setting status=returned stamps returned_at
        when the patch does not supply one.
        """
        patch = _stored_checkout_status(merge_input(patch, fields))
        current = self._require(EntityKind.PROP_CHECKOUT, checkout_id)
        day = self._ensure_day_open(current.shoot_day_id, EntityKind.PROP_CHECKOUT, checkout_id)
        merged = self._merge(EntityKind.PROP_CHECKOUT, current, patch)
        check_checkout_transition(checkout_id, current.status, merged.status)

        if merged.shoot_day_id != current.shoot_day_id:
            day = self._move_to_day(EntityKind.PROP_CHECKOUT, checkout_id, day, merged.shoot_day_id)
        if merged.prop_id != current.prop_id:
            prop = self._require(EntityKind.PROP, merged.prop_id, field="prop_id")
            require_same_scope(
                EntityKind.PROP_CHECKOUT, "prop_id",
                day.project_id, prop.project_id, checkout_id,
            )

        returning = current.status != CheckoutStatus.RETURNED and merged.status == CheckoutStatus.RETURNED
        if returning and merged.returned_at is None:
            merged = merged.model_copy(update={"returned_at": utc_now()})

        updated = self._replace(EntityKind.PROP_CHECKOUT, merged, sorted(patch))
        if returning and self._audit:
            self._audit.log_prop_returned(checkout_id, merged.prop_id, merged.return_condition)
        return updated

    @command
    def return_prop(
        self,
        checkout_id: str,
        return_condition: Optional[str] = None,
        return_photo_uri: Optional[str] = None,
    ) -> PropCheckout:
        """
        Check a prop back in.

        Raises:
            NotFoundError: Unknown checkout
            LockedError: The checkout's shoot day is locked
            ValidationError: The prop was already returned
        """
        current = self._require(EntityKind.PROP_CHECKOUT, checkout_id)
        self._ensure_day_open(current.shoot_day_id, EntityKind.PROP_CHECKOUT, checkout_id)
        if current.status == CheckoutStatus.RETURNED:
            raise ValidationError(
                "Prop has already been returned",
                entity_type=EntityKind.PROP_CHECKOUT.value,
                entity_id=checkout_id,
                details={"returned_at": current.returned_at.isoformat() if current.returned_at else None},
            )

        returned = self._merge(EntityKind.PROP_CHECKOUT, current, {
            "status": CheckoutStatus.RETURNED,
            "returned_at": utc_now(),
            "return_condition": return_condition,
            "return_photo_uri": return_photo_uri,
        })
        self._repos[EntityKind.PROP_CHECKOUT].replace(returned)
        self._logger.info("prop_returned", checkout_id=checkout_id, prop_id=returned.prop_id)
        if self._audit:
            self._audit.log_prop_returned(checkout_id, returned.prop_id, return_condition)
        return returned

    @command
    def delete_prop_checkout(self, checkout_id: str) -> None:
        current = self._require(EntityKind.PROP_CHECKOUT, checkout_id)
        self._ensure_day_open(current.shoot_day_id, EntityKind.PROP_CHECKOUT, checkout_id)
        self._remove(EntityKind.PROP_CHECKOUT, checkout_id)

    def get_prop_checkout(self, checkout_id: str) -> PropCheckout:
        return self.get(EntityKind.PROP_CHECKOUT, checkout_id)

    def get_prop_checkouts(
        self,
        shoot_day_id: Optional[str] = None,
        filter: Optional[PropCheckoutFilter] = None,
    ) -> list[PropCheckout]:
        """Checkouts with their effective status; the filter matches on it too."""
        equals: dict[str, Any] = {"shoot_day_id": shoot_day_id} if shoot_day_id is not None else {}
        if filter is not None:
            if filter.status is not None:
                equals["status"] = filter.status
            if filter.prop_id is not None:
                equals["prop_id"] = filter.prop_id
        return self.query(EntityKind.PROP_CHECKOUT, **equals)
