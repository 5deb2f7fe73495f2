"""Services package.

The CSV and PDF adapters live in shootledger.services.exports and are
imported from there directly, since they depend on the store.
"""

from shootledger.services.storage import (
    AuditStorageInterface,
    ConflictError,
    DuplicateError,
    EntityRepository,
    InMemoryAuditStorage,
    InMemoryRepository,
    InsufficientBalanceError,
    LockedError,
    NotFoundError,
    StorageError,
    ValidationError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "EntityRepository",
    "InMemoryAuditStorage",
    "InMemoryRepository",
    # Errors
    "ConflictError",
    "DuplicateError",
    "InsufficientBalanceError",
    "LockedError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
]
