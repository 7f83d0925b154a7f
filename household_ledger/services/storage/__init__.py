"""Storage backends."""

from household_ledger.services.storage.interface import (
    BudgetStorageInterface,
    ConnectionError,
    GoalStorageInterface,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
    TransactionStorageInterface,
)
from household_ledger.services.storage.memory import (
    InMemoryBudgetStorage,
    InMemoryDatabase,
    InMemoryGoalStorage,
    InMemoryProfileStorage,
    InMemoryTransactionStorage,
)
from household_ledger.services.storage.supabase_store import (
    SupabaseBudgetStorage,
    SupabaseClient,
    SupabaseGoalStorage,
    SupabaseProfileStorage,
    SupabaseTransactionStorage,
)

__all__ = [
    "BudgetStorageInterface",
    "ConnectionError",
    "GoalStorageInterface",
    "NotFoundError",
    "ProfileStorageInterface",
    "StorageError",
    "TransactionStorageInterface",
    "InMemoryBudgetStorage",
    "InMemoryDatabase",
    "InMemoryGoalStorage",
    "InMemoryProfileStorage",
    "InMemoryTransactionStorage",
    "SupabaseBudgetStorage",
    "SupabaseClient",
    "SupabaseGoalStorage",
    "SupabaseProfileStorage",
    "SupabaseTransactionStorage",
]
