"""Services package."""

from household_ledger.services.auth import (
    AuthError,
    AuthServiceInterface,
    InMemoryAuthService,
    SupabaseAuthService,
)
from household_ledger.services.storage import (
    BudgetStorageInterface,
    ConnectionError,
    GoalStorageInterface,
    InMemoryDatabase,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
    SupabaseClient,
    TransactionStorageInterface,
)

__all__ = [
    # Auth services
    "AuthError",
    "AuthServiceInterface",
    "InMemoryAuthService",
    "SupabaseAuthService",
    # Storage services
    "BudgetStorageInterface",
    "ConnectionError",
    "GoalStorageInterface",
    "InMemoryDatabase",
    "NotFoundError",
    "ProfileStorageInterface",
    "StorageError",
    "SupabaseClient",
    "TransactionStorageInterface",
]
