"""
Tests for petty cash floats and the transaction ledger.
"""

import pytest
from datetime import date
from decimal import Decimal

from shootledger.models.audit import AuditEventType
from shootledger.models.entities import EntityKind, TxnType
from shootledger.services.storage import (
    ConflictError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def float_(store, project):
    return store.add_petty_cash_float(
        project_id=project.id,
        owner_user_id="assistant_director",
        issued_amount=Decimal("5000"),
    )


def _txn(store, float_id, amount, txn_type=TxnType.DEBIT, description="Tea for crew"):
    return store.add_petty_cash_txn(
        float_id=float_id,
        date=date(2024, 1, 15),
        description=description,
        amount=Decimal(amount),
        type=txn_type,
    )


class TestFloats:
    """Tests for issuing floats."""

    def test_balance_starts_at_issued_amount(self, float_):
        assert float_.balance == Decimal("5000")
        assert float_.issued_amount == Decimal("5000")

    def test_balance_cannot_be_supplied(self, store, project):
        with pytest.raises(ValidationError, match="balance is derived"):
            store.add_petty_cash_float(
                project_id=project.id,
                owner_user_id="ad",
                issued_amount=Decimal("5000"),
                balance=Decimal("9999"),
            )

    def test_balance_cannot_be_patched(self, store, float_):
        with pytest.raises(ValidationError, match="Cannot change"):
            store.update_petty_cash_float(float_.id, balance=Decimal("1"))

    def test_owner_can_change(self, store, float_):
        updated = store.update_petty_cash_float(float_.id, owner_user_id="line_producer")
        assert updated.owner_user_id == "line_producer"
        assert updated.balance == Decimal("5000")

    def test_float_requires_project(self, store):
        with pytest.raises(NotFoundError):
            store.add_petty_cash_float(project_id="missing", owner_user_id="ad", issued_amount=Decimal("1"))

    def test_delete_float_with_ledger_conflicts(self, store, float_):
        _txn(store, float_.id, "100")
        with pytest.raises(ConflictError):
            store.delete_petty_cash_float(float_.id)

    def test_delete_unused_float(self, store, float_):
        store.delete_petty_cash_float(float_.id)
        assert store.count(EntityKind.PETTY_CASH_FLOAT) == 0


class TestTransactions:
    """Tests for debits, credits and the balance guard."""

    def test_debits_and_credits_move_balance(self, store, float_):
        _txn(store, float_.id, "800")
        _txn(store, float_.id, "500")
        _txn(store, float_.id, "300", TxnType.CREDIT, "Unused cash returned")
        assert store.get_petty_cash_float(float_.id).balance == Decimal("4000")

    def test_balance_matches_ledger(self, store, float_):
        """Test balance == issued + credits − debits after every transaction."""
        for amount, txn_type in [("800", TxnType.DEBIT), ("1200", TxnType.CREDIT), ("4500", TxnType.DEBIT)]:
            _txn(store, float_.id, amount, txn_type)
            stored = store.get_petty_cash_float(float_.id).balance
            assert stored == store.recompute_float_balance(float_.id)
            assert stored >= 0

    def test_overdraw_is_rejected_and_nothing_changes(self, store, float_):
        """Test a 6000 debit against a 5000 float."""
        with pytest.raises(InsufficientBalanceError) as exc_info:
            _txn(store, float_.id, "6000")

        assert exc_info.value.details == {"balance": "5000", "requested": "6000"}
        assert store.get_petty_cash_float(float_.id).balance == Decimal("5000")
        assert store.get_petty_cash_txns(float_.id) == []

    def test_debit_to_exactly_zero(self, store, float_):
        _txn(store, float_.id, "5000")
        assert store.get_petty_cash_float(float_.id).balance == Decimal("0")
        with pytest.raises(InsufficientBalanceError):
            _txn(store, float_.id, "0.01")

    def test_txn_requires_float(self, store):
        with pytest.raises(NotFoundError):
            _txn(store, "missing", "10")

    def test_zero_amount_rejected(self, store, float_):
        with pytest.raises(ValidationError):
            _txn(store, float_.id, "0")

    def test_ledger_is_append_only(self, store, float_):
        """Test that money fields of a transaction cannot be patched."""
        txn = _txn(store, float_.id, "800")
        with pytest.raises(ValidationError, match="Cannot change amount"):
            store.update_petty_cash_txn(txn.id, amount=Decimal("10"))
        with pytest.raises(ValidationError, match="delete is not supported"):
            store.delete(EntityKind.PETTY_CASH_TXN, txn.id)

        updated = store.update_petty_cash_txn(txn.id, description="Tea and snacks")
        assert updated.description == "Tea and snacks"
        assert store.get_petty_cash_float(float_.id).balance == Decimal("4200")

    def test_txns_by_project(self, store, project, float_):
        other_float = store.add_petty_cash_float(
            project_id=project.id, owner_user_id="producer", issued_amount=Decimal("100")
        )
        _txn(store, float_.id, "10")
        _txn(store, other_float.id, "20")
        assert len(store.get_petty_cash_txns(project_id=project.id)) == 2
        assert len(store.get_petty_cash_txns(float_id=other_float.id)) == 1


class TestPettyCashAudit:
    """Tests for the audit trail of money movement."""

    def test_applied_txn_is_audited(self, store, audit_storage, float_):
        txn = _txn(store, float_.id, "800")
        events = audit_storage.get_events_by_entity("petty_cash_txn", txn.id)
        types = [e.event_type for e in events]
        assert AuditEventType.ENTITY_CREATED in types
        assert AuditEventType.PETTY_CASH_TXN_APPLIED in types
        applied = next(e for e in events if e.event_type == AuditEventType.PETTY_CASH_TXN_APPLIED)
        assert applied.details["balance_after"] == "4200"

    def test_rejected_debit_is_audited(self, store, audit_storage, float_):
        with pytest.raises(InsufficientBalanceError):
            _txn(store, float_.id, "6000")
        latest = audit_storage.get_recent_events(limit=1)[0]
        assert latest.event_type == AuditEventType.PETTY_CASH_DEBIT_REJECTED
        assert latest.entity_id == float_.id


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
