"""
Petty cash: floats and their append-only transaction ledger.

A float's balance changes only through add_petty_cash_txn. The debit
guard runs before anything is written, so a rejected debit leaves both
the float and the ledger untouched.
"""

from decimal import Decimal
from typing import Any, Mapping, Optional

from shootledger.models.entities import (
    EntityKind,
    PettyCashFloat,
    PettyCashTxn,
    TxnType,
)
from shootledger.services.storage import ValidationError
from shootledger.store.base import ProductionStoreBase, command, merge_input
from shootledger.validation import next_balance


class PettyCashMixin(ProductionStoreBase):

    # =========================================================================
    # FLOATS
    # =========================================================================

    @command
    def add_petty_cash_float(self, data: Optional[Mapping[str, Any]] = None, **fields) -> PettyCashFloat:
        """
        Issue a float. The opening balance is the issued amount.

        Raises:
            ValidationError: If a balance is supplied
            NotFoundError: If the project does not exist
        """
        data = merge_input(data, fields)
        if "balance" in data:
            raise ValidationError(
                "balance is derived from issued_amount and cannot be supplied",
                entity_type=EntityKind.PETTY_CASH_FLOAT.value,
                details={"fields": ["balance"]},
            )
        data["balance"] = data.get("issued_amount")
        float_ = self._build(EntityKind.PETTY_CASH_FLOAT, data)
        self._require(EntityKind.PROJECT, float_.project_id, field="project_id")
        return self._insert(EntityKind.PETTY_CASH_FLOAT, float_, actor_id=float_.owner_user_id)

    @command
    def update_petty_cash_float(
        self,
        float_id: str,
        patch: Optional[Mapping[str, Any]] = None,
        **fields,
    ) -> PettyCashFloat:
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.PETTY_CASH_FLOAT, float_id)
        merged = self._merge(EntityKind.PETTY_CASH_FLOAT, current, patch)
        return self._replace(EntityKind.PETTY_CASH_FLOAT, merged, sorted(patch))

    @command
    def delete_petty_cash_float(self, float_id: str) -> None:
        self._require(EntityKind.PETTY_CASH_FLOAT, float_id)
        self._ensure_no_dependents(EntityKind.PETTY_CASH_FLOAT, float_id, {
            EntityKind.PETTY_CASH_TXN: "float_id",
        })
        self._remove(EntityKind.PETTY_CASH_FLOAT, float_id)

    def get_petty_cash_float(self, float_id: str) -> PettyCashFloat:
        return self.get(EntityKind.PETTY_CASH_FLOAT, float_id)

    def get_petty_cash_floats(self, project_id: Optional[str] = None) -> list[PettyCashFloat]:
        if project_id is None:
            return self.query(EntityKind.PETTY_CASH_FLOAT)
        return self.query(EntityKind.PETTY_CASH_FLOAT, project_id=project_id)

    def recompute_float_balance(self, float_id: str) -> Decimal:
        """issued + Σcredits − Σdebits, from the ledger alone."""
        float_ = self._require(EntityKind.PETTY_CASH_FLOAT, float_id)
        balance = float_.issued_amount
        for txn in self._children(EntityKind.PETTY_CASH_TXN, "float_id", float_id):
            if txn.type == TxnType.CREDIT:
                balance += txn.amount
            else:
                balance -= txn.amount
        return balance

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    @command
    def add_petty_cash_txn(self, data: Optional[Mapping[str, Any]] = None, **fields) -> PettyCashTxn:
        """
        Record a debit or credit and move the float's balance.

        Raises:
            NotFoundError: If the float does not exist
            InsufficientBalanceError: If a debit exceeds the current balance
        """
        txn = self._build(EntityKind.PETTY_CASH_TXN, merge_input(data, fields))
        float_ = self._require(EntityKind.PETTY_CASH_FLOAT, txn.float_id, field="float_id")
        balance = next_balance(float_.id, float_.balance, txn.type, txn.amount)

        stored = self._insert(EntityKind.PETTY_CASH_TXN, txn, actor_id=float_.owner_user_id)
        self._repos[EntityKind.PETTY_CASH_FLOAT].replace(
            float_.model_copy(update={"balance": balance})
        )
        self._logger.info(
            "petty_cash_txn_applied",
            float_id=float_.id,
            txn_type=txn.type.value,
            amount=str(txn.amount),
            balance=str(balance),
        )
        if self._audit:
            self._audit.log_txn_applied(
                txn.id, float_.id, txn.type.value, str(txn.amount), str(balance)
            )
        return stored

    @command
    def update_petty_cash_txn(
        self,
        txn_id: str,
        patch: Optional[Mapping[str, Any]] = None,
        **fields,
    ) -> PettyCashTxn:
        """Only descriptive fields can change; amount, type and date are fixed."""
        patch = merge_input(patch, fields)
        current = self._require(EntityKind.PETTY_CASH_TXN, txn_id)
        merged = self._merge(EntityKind.PETTY_CASH_TXN, current, patch)
        return self._replace(EntityKind.PETTY_CASH_TXN, merged, sorted(patch))

    def get_petty_cash_txn(self, txn_id: str) -> PettyCashTxn:
        return self.get(EntityKind.PETTY_CASH_TXN, txn_id)

    def get_petty_cash_txns(
        self,
        float_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> list[PettyCashTxn]:
        """Ledger entries in insertion order, by float and/or by project."""
        float_ids = None
        if project_id is not None:
            float_ids = {f.id for f in self.get_petty_cash_floats(project_id)}

        def wanted(txn: PettyCashTxn) -> bool:
            if float_id is not None and txn.float_id != float_id:
                return False
            return float_ids is None or txn.float_id in float_ids

        return self.query(EntityKind.PETTY_CASH_TXN, wanted)
