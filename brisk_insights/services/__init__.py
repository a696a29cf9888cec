"""Services package."""

from brisk_insights.services.storage import (
    AuditStorageInterface,
    BackendConnectionError,
    DuplicateError,
    FinanceStorageInterface,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    StorageError,
    SupabaseClient,
    SupabaseFinanceStorage,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "BackendConnectionError",
    "DuplicateError",
    "FinanceStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    "NotFoundError",
    "StorageError",
    "SupabaseClient",
    "SupabaseFinanceStorage",
]
