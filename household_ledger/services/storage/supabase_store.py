"""
Supabase Storage Implementation

DESIGN DECISION: Supabase (hosted Postgres + auth) is the backend because:
1. Both partners see the same data from any device
2. Row ownership is enforced by the household id on every row
3. Authentication comes with it, and the data client automatically
   sends the signed-in user's token

TRADEOFFS:
- No multi-row transactions (each screen action is a single call)
- No retries: a failed call surfaces an error and the user tries again
- Filtering is done by the backend; aggregation is done in Python

The implementation follows the abstract interface, so the flows never
import the SDK directly.
"""

from typing import Any, Callable, Optional, TypeVar

import structlog
from pydantic import BaseModel, ValidationError
from supabase import Client, create_client

from household_ledger.config import SupabaseSettings, get_settings
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
from household_ledger.services.storage.interface import (
    BudgetStorageInterface,
    ConnectionError,
    GoalStorageInterface,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
    TransactionStorageInterface,
)


TRANSACTIONS_TABLE = "transactions"
GOALS_TABLE = "goals"
BUDGETS_TABLE = "budgets"
PROFILES_TABLE = "profiles"

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class SupabaseClient:
    """
    Thin wrapper around the Supabase SDK client.

    One client is shared by auth and data access so that table calls carry
    the session of whoever signed in.
    """

    def __init__(self, settings: Optional[SupabaseSettings] = None):
        self._client: Optional[Client] = None
        self._settings = settings

    def connect(self) -> Client:
        """Create the SDK client on first use."""
        if self._client is None:
            settings = self._settings or get_settings().supabase
            try:
                self._client = create_client(settings.url, settings.anon_key)
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Supabase: {e}")
        return self._client

    def table(self, name: str):
        return self.connect().table(name)

    @property
    def auth(self):
        return self.connect().auth


class _SupabaseTable:
    """Shared plumbing for the per-table storages."""

    table_name: str = ""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    def _execute(self, operation: str, build: Callable[[Any], Any]) -> list[dict]:
        """
        Run a query and return its rows.

        Any SDK or network failure becomes a StorageError.
        """
        try:
            response = build(self._client.table(self.table_name)).execute()
        except StorageError:
            raise
        except Exception as e:
            logger.error(
                "storage_call_failed",
                table=self.table_name,
                operation=operation,
                error=str(e),
            )
            raise StorageError(f"Failed to {operation} {self.table_name}: {e}")
        return list(response.data or [])

    def _parse_rows(self, rows: list[dict], model: type[ModelT]) -> list[ModelT]:
        """Decode rows, skipping (and logging) malformed ones."""
        parsed = []
        for row in rows:
            try:
                parsed.append(model.model_validate(row))
            except ValidationError as e:
                logger.warning(
                    "malformed_row_skipped",
                    table=self.table_name,
                    row_id=row.get("id"),
                    error=str(e),
                )
        return parsed

    def _single(self, rows: list[dict], model: type[ModelT], what: str) -> ModelT:
        if not rows:
            raise NotFoundError(f"{what} not found")
        try:
            return model.model_validate(rows[0])
        except ValidationError as e:
            raise StorageError(f"Backend returned a malformed {self.table_name} row: {e}")


class SupabaseTransactionStorage(_SupabaseTable, TransactionStorageInterface):
    """Transactions stored in the ``transactions`` table."""

    table_name = TRANSACTIONS_TABLE

    async def list_transactions(self, family_id: str) -> list[Transaction]:
        rows = self._execute(
            "list",
            lambda t: t.select("*").eq("family_id", family_id).order("date", desc=True),
        )
        return self._parse_rows(rows, Transaction)

    async def insert_transactions(
        self,
        drafts: list[TransactionDraft],
    ) -> list[Transaction]:
        if not drafts:
            return []
        payload = [draft.to_row() for draft in drafts]
        rows = self._execute("insert into", lambda t: t.insert(payload))
        return self._parse_rows(rows, Transaction)

    async def update_transaction(
        self,
        transaction_id: str,
        family_id: str,
        changes: dict,
    ) -> Transaction:
        rows = self._execute(
            "update",
            lambda t: t.update(changes).eq("id", transaction_id).eq("family_id", family_id),
        )
        return self._single(rows, Transaction, f"Transaction {transaction_id}")

    async def delete_transaction(self, transaction_id: str, family_id: str) -> bool:
        rows = self._execute(
            "delete from",
            lambda t: t.delete().eq("id", transaction_id).eq("family_id", family_id),
        )
        return len(rows) > 0


class SupabaseGoalStorage(_SupabaseTable, GoalStorageInterface):
    """Savings goals stored in the ``goals`` table."""

    table_name = GOALS_TABLE

    async def list_goals(self, family_id: str) -> list[Goal]:
        rows = self._execute("list", lambda t: t.select("*").eq("family_id", family_id))
        return self._parse_rows(rows, Goal)

    async def insert_goal(self, draft: GoalDraft) -> Goal:
        row = draft.to_row()
        rows = self._execute("insert into", lambda t: t.insert([row]))
        return self._single(rows, Goal, "Inserted goal")

    async def update_goal(self, goal_id: str, family_id: str, changes: dict) -> Goal:
        rows = self._execute(
            "update",
            lambda t: t.update(changes).eq("id", goal_id).eq("family_id", family_id),
        )
        return self._single(rows, Goal, f"Goal {goal_id}")

    async def delete_goal(self, goal_id: str, family_id: str) -> bool:
        rows = self._execute(
            "delete from",
            lambda t: t.delete().eq("id", goal_id).eq("family_id", family_id),
        )
        return len(rows) > 0


class SupabaseBudgetStorage(_SupabaseTable, BudgetStorageInterface):
    """Category budgets stored in the ``budgets`` table."""

    table_name = BUDGETS_TABLE

    async def list_budgets(self, family_id: str) -> list[Budget]:
        rows = self._execute("list", lambda t: t.select("*").eq("family_id", family_id))
        return self._parse_rows(rows, Budget)

    async def insert_budget(self, draft: BudgetDraft) -> Budget:
        row = draft.to_row()
        rows = self._execute("insert into", lambda t: t.insert([row]))
        return self._single(rows, Budget, "Inserted budget")

    async def update_budget(self, budget_id: str, family_id: str, amount: float) -> Budget:
        rows = self._execute(
            "update",
            lambda t: t.update({"amount": amount}).eq("id", budget_id).eq("family_id", family_id),
        )
        return self._single(rows, Budget, f"Budget {budget_id}")

    async def delete_budget(self, budget_id: str, family_id: str) -> bool:
        rows = self._execute(
            "delete from",
            lambda t: t.delete().eq("id", budget_id).eq("family_id", family_id),
        )
        return len(rows) > 0


class SupabaseProfileStorage(_SupabaseTable, ProfileStorageInterface):
    """User profiles stored in the ``profiles`` table."""

    table_name = PROFILES_TABLE

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        rows = self._execute(
            "read",
            lambda t: t.select("id, display_name, family_id").eq("id", user_id).limit(1),
        )
        profiles = self._parse_rows(rows, Profile)
        return profiles[0] if profiles else None

    async def list_members(self, family_id: str) -> list[FamilyMember]:
        rows = self._execute(
            "list",
            lambda t: t.select("id, display_name").eq("family_id", family_id),
        )
        return [profile.as_member() for profile in self._parse_rows(rows, Profile)]

    async def set_display_name(self, user_id: str, display_name: str) -> None:
        self._execute(
            "update",
            lambda t: t.update({"display_name": display_name}).eq("id", user_id),
        )
