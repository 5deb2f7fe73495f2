"""
Tests for shoot day locking and the records scoped to a shoot day
(schedule items, crew feedback, prop checkouts, expenses).
"""

import pytest
from datetime import date, timedelta

from shootledger.models.audit import AuditEventType
from shootledger.models.entities import CheckoutStatus, ShootDayStatus
from shootledger.models.filters import PropCheckoutFilter, ScheduleItemFilter
from shootledger.services.storage import (
    ConflictError,
    LockedError,
    NotFoundError,
    ValidationError,
)


TODAY = date(2024, 1, 15)


@pytest.fixture
def prop(store, project):
    return store.add_prop(project_id=project.id, name="Canon EOS R5", category="Camera")


@pytest.fixture
def crew_member(store, project):
    return store.add_crew(project_id=project.id, name="Amit Singh", role="Cinematographer")


def _checkout(store, prop, shoot_day, due=TODAY + timedelta(days=1), **fields):
    return store.add_prop_checkout(
        prop_id=prop.id,
        shoot_day_id=shoot_day.id,
        checked_out_by="Amit Singh",
        due_return=due,
        **fields,
    )


class TestLocking:
    """Tests for lock/unlock and what a locked day refuses."""

    def test_lock_blocks_schedule_changes_until_unlocked(self, store, shoot_day):
        """Test locked → add rejected; unlock → retry succeeds."""
        store.lock_shoot_day(shoot_day.id)
        with pytest.raises(LockedError):
            store.add_schedule_item(shoot_day_id=shoot_day.id, scene="1", shot="A")
        assert store.get_schedule_items(shoot_day.id) == []

        store.unlock_shoot_day(shoot_day.id)
        item = store.add_schedule_item(shoot_day_id=shoot_day.id, scene="1", shot="A")
        assert store.get_schedule_items(shoot_day.id) == [item]

    def test_lock_blocks_update_and_delete(self, store, shoot_day):
        item = store.add_schedule_item(shoot_day_id=shoot_day.id, scene="1", shot="A")
        store.lock_shoot_day(shoot_day.id)
        with pytest.raises(LockedError):
            store.update_schedule_item(item.id, notes="late")
        with pytest.raises(LockedError):
            store.delete_schedule_item(item.id)
        assert store.get_schedule_item(item.id) == item

    def test_lock_is_idempotent(self, store, audit_storage, shoot_day):
        store.lock_shoot_day(shoot_day.id)
        again = store.lock_shoot_day(shoot_day.id)
        assert again.status == ShootDayStatus.LOCKED
        locked_events = [
            e for e in audit_storage.get_events_by_entity("shoot_day", shoot_day.id)
            if e.event_type == AuditEventType.SHOOT_DAY_LOCKED
        ]
        assert len(locked_events) == 1

    def test_locked_day_accepts_only_reopen(self, store, shoot_day):
        store.lock_shoot_day(shoot_day.id)
        with pytest.raises(LockedError, match="only reopening is allowed"):
            store.update_shoot_day(shoot_day.id, location="Studio B")
        with pytest.raises(LockedError):
            store.update_shoot_day(shoot_day.id, {"status": "open", "location": "Studio B"})

        reopened = store.update_shoot_day(shoot_day.id, {"status": "open"})
        assert reopened.status == ShootDayStatus.OPEN

    def test_lock_via_update_is_audited(self, store, audit_storage, shoot_day):
        store.update_shoot_day(shoot_day.id, status=ShootDayStatus.LOCKED)
        types = [e.event_type for e in audit_storage.get_events_by_entity("shoot_day", shoot_day.id)]
        assert AuditEventType.SHOOT_DAY_LOCKED in types

    def test_locked_day_cannot_be_deleted(self, store, shoot_day):
        store.lock_shoot_day(shoot_day.id)
        with pytest.raises(LockedError):
            store.delete_shoot_day(shoot_day.id)

    def test_day_with_schedule_cannot_be_deleted(self, store, shoot_day):
        store.add_schedule_item(shoot_day_id=shoot_day.id, scene="1", shot="A")
        with pytest.raises(ConflictError):
            store.delete_shoot_day(shoot_day.id)

    def test_lock_unknown_day(self, store):
        with pytest.raises(NotFoundError):
            store.lock_shoot_day("missing")

    def test_expense_on_locked_day(self, store, shoot_day, make_expense):
        expense = make_expense(shoot_day_id=shoot_day.id)
        store.lock_shoot_day(shoot_day.id)

        with pytest.raises(LockedError):
            make_expense(shoot_day_id=shoot_day.id)
        with pytest.raises(LockedError):
            store.update_expense(expense.id, description="Edited")
        with pytest.raises(LockedError):
            store.cancel_expense(expense.id)

    def test_expense_cannot_move_onto_locked_day(self, store, project, shoot_day, make_expense):
        locked_day = store.add_shoot_day(project_id=project.id, date=TODAY + timedelta(days=1))
        store.lock_shoot_day(locked_day.id)
        expense = make_expense(shoot_day_id=shoot_day.id)
        with pytest.raises(LockedError):
            store.update_expense(expense.id, shoot_day_id=locked_day.id)
        assert store.get_expense(expense.id).shoot_day_id == shoot_day.id

    def test_expense_without_shoot_day_ignores_locks(self, store, shoot_day, make_expense):
        store.lock_shoot_day(shoot_day.id)
        assert make_expense().shoot_day_id is None

    def test_rejection_is_audited(self, store, audit_storage, shoot_day):
        store.lock_shoot_day(shoot_day.id)
        with pytest.raises(LockedError):
            store.add_schedule_item(shoot_day_id=shoot_day.id, scene="1", shot="A")
        latest = audit_storage.get_recent_events(limit=1)[0]
        assert latest.event_type == AuditEventType.COMMAND_REJECTED
        assert latest.error_code == "locked"


class TestScheduleItems:
    """Tests for moving and filtering schedule items."""

    def test_move_to_day_of_other_project_rejected(self, store, shoot_day):
        other = store.add_project(title="Other Film")
        foreign_day = store.add_shoot_day(project_id=other.id, date=TODAY)
        item = store.add_schedule_item(shoot_day_id=shoot_day.id, scene="1", shot="A")
        with pytest.raises(ValidationError):
            store.update_schedule_item(item.id, shoot_day_id=foreign_day.id)

    def test_filter_by_status(self, store, shoot_day):
        store.add_schedule_item(shoot_day_id=shoot_day.id, scene="1", shot="A", status="done")
        store.add_schedule_item(shoot_day_id=shoot_day.id, scene="1", shot="B")
        done = store.get_schedule_items(shoot_day.id, ScheduleItemFilter(status="done"))
        assert [i.shot for i in done] == ["A"]

    def test_times_must_be_hh_mm(self, store, shoot_day):
        with pytest.raises(ValidationError):
            store.add_schedule_item(shoot_day_id=shoot_day.id, scene="1", shot="A", planned_start="9:00am")


class TestCrewFeedback:
    """Tests for feedback scoping."""

    def test_named_feedback(self, store, shoot_day, crew_member):
        feedback = store.add_crew_feedback(shoot_day_id=shoot_day.id, crew_id=crew_member.id, rating=4)
        assert store.get_feedback_responses(shoot_day.id) == [feedback]

    def test_feedback_crew_must_share_project(self, store, shoot_day):
        other = store.add_project(title="Other Film")
        outsider = store.add_crew(project_id=other.id, name="Guest", role="Grip")
        with pytest.raises(ValidationError):
            store.add_crew_feedback(shoot_day_id=shoot_day.id, crew_id=outsider.id, rating=4)

    def test_crew_with_feedback_cannot_be_deleted(self, store, shoot_day, crew_member):
        store.add_crew_feedback(shoot_day_id=shoot_day.id, crew_id=crew_member.id, rating=4)
        with pytest.raises(ConflictError):
            store.delete_crew(crew_member.id)

    def test_feedback_blocked_on_locked_day(self, store, shoot_day):
        store.lock_shoot_day(shoot_day.id)
        with pytest.raises(LockedError):
            store.add_crew_feedback(shoot_day_id=shoot_day.id, is_anonymous=True, rating=2)


class TestPropCheckouts:
    """Tests for checkout status, returns and derived overdue."""

    def test_overdue_is_derived_on_read(self, store, prop, shoot_day):
        checkout = _checkout(store, prop, shoot_day, due=TODAY - timedelta(days=2))
        assert checkout.status == CheckoutStatus.OVERDUE
        assert store.get_prop_checkout(checkout.id).status == CheckoutStatus.OVERDUE
        raw = store.snapshot()["collections"]["prop_checkout"][0]
        assert raw["status"] == "out"

    def test_overdue_input_is_stored_as_out(self, store, prop, shoot_day):
        checkout = _checkout(store, prop, shoot_day, status="overdue")
        assert checkout.status == CheckoutStatus.OUT

    def test_filter_matches_effective_status(self, store, prop, shoot_day):
        late = _checkout(store, prop, shoot_day, due=TODAY - timedelta(days=1))
        _checkout(store, prop, shoot_day)
        overdue = store.get_prop_checkouts(shoot_day.id, PropCheckoutFilter(status=CheckoutStatus.OVERDUE))
        assert [c.id for c in overdue] == [late.id]

    def test_return_prop(self, store, audit_storage, prop, shoot_day):
        checkout = _checkout(store, prop, shoot_day, due=TODAY - timedelta(days=1))
        returned = store.return_prop(checkout.id, return_condition="Scratched lens cap")
        assert returned.status == CheckoutStatus.RETURNED
        assert returned.returned_at is not None
        assert returned.return_condition == "Scratched lens cap"

        types = [e.event_type for e in audit_storage.get_events_by_entity("prop_checkout", checkout.id)]
        assert AuditEventType.PROP_RETURNED in types

    def test_return_twice_rejected(self, store, prop, shoot_day):
        checkout = _checkout(store, prop, shoot_day)
        store.return_prop(checkout.id)
        with pytest.raises(ValidationError, match="already been returned"):
            store.return_prop(checkout.id)

    def test_returned_checkout_cannot_reopen(self, store, prop, shoot_day):
        checkout = _checkout(store, prop, shoot_day)
        store.update_prop_checkout(checkout.id, status=CheckoutStatus.RETURNED)
        assert store.get_prop_checkout(checkout.id).returned_at is not None
        with pytest.raises(ValidationError, match="cannot be reopened"):
            store.update_prop_checkout(checkout.id, status=CheckoutStatus.OUT)

    def test_prop_must_share_project(self, store, shoot_day):
        other = store.add_project(title="Other Film")
        foreign_prop = store.add_prop(project_id=other.id, name="Dolly")
        with pytest.raises(ValidationError):
            _checkout(store, foreign_prop, shoot_day)

    def test_prop_with_checkout_cannot_be_deleted(self, store, prop, shoot_day):
        _checkout(store, prop, shoot_day)
        with pytest.raises(ConflictError):
            store.delete_prop(prop.id)

    def test_return_blocked_on_locked_day(self, store, prop, shoot_day):
        checkout = _checkout(store, prop, shoot_day)
        store.lock_shoot_day(shoot_day.id)
        with pytest.raises(LockedError):
            store.return_prop(checkout.id)

    def test_prop_vendor_must_exist(self, store, project):
        with pytest.raises(NotFoundError):
            store.add_prop(project_id=project.id, name="Tripod", owner_vendor_id="missing")

    def test_returned_checkout_reports_no_overdue_days(self, store, prop, shoot_day):
        checkout = _checkout(store, prop, shoot_day, due=TODAY - timedelta(days=5))
        store.return_prop(checkout.id)
        assert store.get_prop_checkout(checkout.id).status == CheckoutStatus.RETURNED


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
