"""
Data Store Package

ProductionStore is the single source of truth for every entity of a
production. All commands are synchronous and immediately visible to the
next read; there are no change notifications, so callers re-query after
a mutation.
"""

from shootledger.store.base import SNAPSHOT_VERSION, ProductionStoreBase
from shootledger.store.budget import BudgetMixin
from shootledger.store.petty_cash import PettyCashMixin
from shootledger.store.production_day import ProductionDayMixin


class ProductionStore(BudgetMixin, PettyCashMixin, ProductionDayMixin):
    """In-process store for projects, budgets, petty cash and shoot days."""


__all__ = [
    "SNAPSHOT_VERSION",
    "ProductionStore",
    "ProductionStoreBase",
]
