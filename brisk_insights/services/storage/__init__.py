"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Supabase is the production backend. The in-memory backend serves tests
and runs without configuration.
"""

from brisk_insights.services.storage.interface import (
    AuditStorageInterface,
    BackendConnectionError,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    StorageError,
    build_avatar_path,
)
from brisk_insights.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
)
from brisk_insights.services.storage.supabase_store import (
    SupabaseClient,
    SupabaseFinanceStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "FinanceStorageInterface",
    "build_avatar_path",
    # Exceptions
    "BackendConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    # Supabase implementation
    "SupabaseClient",
    "SupabaseFinanceStorage",
]
