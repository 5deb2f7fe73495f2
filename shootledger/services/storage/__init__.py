"""
Storage Services Package

Provides abstract interfaces, the store's error taxonomy, and the
in-memory implementations used by the data store.
"""

from shootledger.services.storage.interface import (
    AuditStorageInterface,
    ConflictError,
    DuplicateError,
    EntityRepository,
    InsufficientBalanceError,
    LockedError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from shootledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRepository,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "EntityRepository",
    # Exceptions
    "ConflictError",
    "DuplicateError",
    "InsufficientBalanceError",
    "LockedError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRepository",
]
