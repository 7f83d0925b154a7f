"""
In-Memory Storage

Implements the storage interfaces on plain dicts. Used by the tests and
by ``create_app_components(use_storage=False)`` for demo sessions.

Rows are kept in their stored (aliased) form, so the same models decode
them as decode Supabase rows.
"""

from itertools import count
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
from household_ledger.services.storage.interface import (
    BudgetStorageInterface,
    GoalStorageInterface,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
    TransactionStorageInterface,
)


class InMemoryDatabase:
    """
    Shared tables for the in-memory storages.

    ``fail_on`` holds table names whose next calls should fail, which lets
    tests exercise the error paths.
    """

    def __init__(self):
        self.tables: dict[str, dict[str, dict]] = {
            "transactions": {},
            "goals": {},
            "budgets": {},
            "profiles": {},
        }
        self.fail_on: set[str] = set()
        self._ids = count(1)

    def next_id(self) -> str:
        return str(next(self._ids))

    def check(self, table: str) -> None:
        if table in self.fail_on:
            raise StorageError(f"Simulated failure on {table}")

    def rows(self, table: str, family_id: str) -> list[dict]:
        self.check(table)
        return [
            dict(row) for row in self.tables[table].values()
            if row.get("family_id") == family_id
        ]

    def insert(self, table: str, row: dict) -> dict:
        self.check(table)
        stored = dict(row, id=self.next_id())
        self.tables[table][stored["id"]] = stored
        return dict(stored)

    def update(self, table: str, row_id: str, family_id: str, changes: dict) -> dict:
        self.check(table)
        row = self.tables[table].get(row_id)
        if row is None or row.get("family_id") != family_id:
            raise NotFoundError(f"{table} row {row_id} not found")
        row.update(changes)
        return dict(row)

    def delete(self, table: str, row_id: str, family_id: str) -> bool:
        self.check(table)
        row = self.tables[table].get(row_id)
        if row is None or row.get("family_id") != family_id:
            return False
        del self.tables[table][row_id]
        return True

    def add_profile(
        self,
        user_id: str,
        display_name: Optional[str],
        family_id: Optional[str],
    ) -> Profile:
        row = {"id": user_id, "display_name": display_name, "family_id": family_id}
        self.tables["profiles"][user_id] = row
        return Profile.model_validate(row)


class InMemoryTransactionStorage(TransactionStorageInterface):
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def list_transactions(self, family_id: str) -> list[Transaction]:
        rows = self._db.rows("transactions", family_id)
        transactions = [Transaction.model_validate(row) for row in rows]
        # Newest first; insertion order among equal dates, like the backend
        return sorted(transactions, key=lambda t: t.date, reverse=True)

    async def insert_transactions(
        self,
        drafts: list[TransactionDraft],
    ) -> list[Transaction]:
        self._db.check("transactions")
        return [
            Transaction.model_validate(self._db.insert("transactions", draft.to_row()))
            for draft in drafts
        ]

    async def update_transaction(
        self,
        transaction_id: str,
        family_id: str,
        changes: dict,
    ) -> Transaction:
        row = self._db.update("transactions", transaction_id, family_id, changes)
        return Transaction.model_validate(row)

    async def delete_transaction(self, transaction_id: str, family_id: str) -> bool:
        return self._db.delete("transactions", transaction_id, family_id)


class InMemoryGoalStorage(GoalStorageInterface):
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def list_goals(self, family_id: str) -> list[Goal]:
        return [Goal.model_validate(row) for row in self._db.rows("goals", family_id)]

    async def insert_goal(self, draft: GoalDraft) -> Goal:
        return Goal.model_validate(self._db.insert("goals", draft.to_row()))

    async def update_goal(self, goal_id: str, family_id: str, changes: dict) -> Goal:
        return Goal.model_validate(self._db.update("goals", goal_id, family_id, changes))

    async def delete_goal(self, goal_id: str, family_id: str) -> bool:
        return self._db.delete("goals", goal_id, family_id)


class InMemoryBudgetStorage(BudgetStorageInterface):
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def list_budgets(self, family_id: str) -> list[Budget]:
        return [Budget.model_validate(row) for row in self._db.rows("budgets", family_id)]

    async def insert_budget(self, draft: BudgetDraft) -> Budget:
        return Budget.model_validate(self._db.insert("budgets", draft.to_row()))

    async def update_budget(self, budget_id: str, family_id: str, amount: float) -> Budget:
        row = self._db.update("budgets", budget_id, family_id, {"amount": amount})
        return Budget.model_validate(row)

    async def delete_budget(self, budget_id: str, family_id: str) -> bool:
        return self._db.delete("budgets", budget_id, family_id)


class InMemoryProfileStorage(ProfileStorageInterface):
    def __init__(self, db: InMemoryDatabase):
        self._db = db

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        self._db.check("profiles")
        row = self._db.tables["profiles"].get(user_id)
        return Profile.model_validate(row) if row else None

    async def list_members(self, family_id: str) -> list[FamilyMember]:
        return [
            Profile.model_validate(row).as_member()
            for row in self._db.rows("profiles", family_id)
        ]

    async def set_display_name(self, user_id: str, display_name: str) -> None:
        self._db.check("profiles")
        row = self._db.tables["profiles"].get(user_id)
        if row is None:
            raise NotFoundError(f"Profile {user_id} not found")
        row["display_name"] = display_name
