"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the Supabase SDK out of the flows and the UI
2. Use in-memory storage for testing
3. Swap the backend later without touching business logic

Every write echoes back the persisted row(s) so callers can merge the
backend's version into their local state. Every call is scoped to a
household (``family_id``) - rows of other households are never touched.
"""

from abc import ABC, abstractmethod
from typing import Optional

from household_ledger.models.finance import (
    Budget,
    BudgetDraft,
    FamilyMember,
    Goal,
    GoalDraft,
    Profile,
    Transaction,
    TransactionDraft,
)


class TransactionStorageInterface(ABC):
    """Abstract interface for the ``transactions`` table."""

    @abstractmethod
    async def list_transactions(self, family_id: str) -> list[Transaction]:
        """
        List a household's transactions, newest first.

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def insert_transactions(
        self,
        drafts: list[TransactionDraft],
    ) -> list[Transaction]:
        """
        Insert one or more transactions in a single call.

        Args:
            drafts: Transactions to insert (family_id already set)

        Returns:
            The persisted rows, in insertion order

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        transaction_id: str,
        family_id: str,
        changes: dict,
    ) -> Transaction:
        """
        Update columns of one transaction.

        Args:
            transaction_id: Row to update
            family_id: Household the row must belong to
            changes: Column -> new value, using stored column names

        Returns:
            The updated row

        Raises:
            NotFoundError: If no row of this household has that id
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str, family_id: str) -> bool:
        """
        Delete one transaction.

        Returns:
            True if a row was deleted
        """
        pass


class GoalStorageInterface(ABC):
    """Abstract interface for the ``goals`` table."""

    @abstractmethod
    async def list_goals(self, family_id: str) -> list[Goal]:
        pass

    @abstractmethod
    async def insert_goal(self, draft: GoalDraft) -> Goal:
        pass

    @abstractmethod
    async def update_goal(self, goal_id: str, family_id: str, changes: dict) -> Goal:
        """Raises NotFoundError if the goal doesn't exist in this household."""
        pass

    @abstractmethod
    async def delete_goal(self, goal_id: str, family_id: str) -> bool:
        pass


class BudgetStorageInterface(ABC):
    """Abstract interface for the ``budgets`` table."""

    @abstractmethod
    async def list_budgets(self, family_id: str) -> list[Budget]:
        pass

    @abstractmethod
    async def insert_budget(self, draft: BudgetDraft) -> Budget:
        pass

    @abstractmethod
    async def update_budget(self, budget_id: str, family_id: str, amount: float) -> Budget:
        """Raises NotFoundError if the budget doesn't exist in this household."""
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: str, family_id: str) -> bool:
        pass


class ProfileStorageInterface(ABC):
    """
    Abstract interface for the ``profiles`` table.

    Profiles are created by the backend when a user signs up; the
    application only reads them and sets the display name.
    """

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[Profile]:
        """Return the user's profile, or None if it doesn't exist."""
        pass

    @abstractmethod
    async def list_members(self, family_id: str) -> list[FamilyMember]:
        """All profiles sharing a household."""
        pass

    @abstractmethod
    async def set_display_name(self, user_id: str, display_name: str) -> None:
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
