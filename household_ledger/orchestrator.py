"""
Main Orchestrator for Household Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Session (sign in / sign up / sign out → household load)
2. Records (transactions, goals, budgets → backend → local state)
3. AI (insight, suggestion, chat → decode → at most one write)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every write is scoped to the signed-in household
- Local state changes only after the backend confirms the write
- The assistant's output is decoded strictly before anything is written
- Every write and failure is audited

State lives in an explicit LedgerState object that the UI passes to each
flow. There is no global state.
"""

import datetime as dt
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Callable, Optional
from uuid import UUID

import structlog

from household_ledger.agents import AssistantError, FinanceAssistantAgent
from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.config import AppSettings, get_settings
from household_ledger.formatting import (
    display_name_from_email,
    format_currency,
    format_month_year,
    shift_month,
)
from household_ledger.models.assistant import (
    AddTransaction,
    AnswerQuery,
    DeleteTransaction,
    UpdateTransaction,
    decode_assistant_reply,
)
from household_ledger.models.finance import (
    BOTH_PERSON,
    Budget,
    BudgetDraft,
    ChatMessage,
    ChatSender,
    FamilyMember,
    Goal,
    GoalChanges,
    GoalDraft,
    Session,
    Theme,
    Transaction,
    TransactionChanges,
    TransactionDraft,
)
from household_ledger.preferences import ThemeStore
from household_ledger.reports.aggregations import filter_month, sort_newest_first
from household_ledger.services.auth import (
    AuthError,
    AuthServiceInterface,
    InMemoryAuthService,
    SupabaseAuthService,
)
from household_ledger.services.storage import (
    BudgetStorageInterface,
    GoalStorageInterface,
    InMemoryBudgetStorage,
    InMemoryDatabase,
    InMemoryGoalStorage,
    InMemoryProfileStorage,
    InMemoryTransactionStorage,
    ProfileStorageInterface,
    StorageError,
    SupabaseBudgetStorage,
    SupabaseClient,
    SupabaseGoalStorage,
    SupabaseProfileStorage,
    SupabaseTransactionStorage,
    TransactionStorageInterface,
)


logger = structlog.get_logger(__name__)


GREETING = "Hi! I'm Fin, your financial assistant. How can I help?"
FALLBACK_REPLY = "Sorry, I couldn't understand that. Could you try again?"
CONNECTION_ERROR_REPLY = "Sorry, I'm having trouble connecting. Please try again later."
AI_DISABLED_REPLY = "The AI assistant is not configured. Chat is disabled."

INSIGHT_EMPTY_HINT = "Add transactions this month to receive insights."
INSIGHT_FAILED = "Couldn't generate an insight right now."
SUGGESTION_EMPTY_HINT = "Add goals to receive suggestions."
SUGGESTION_FAILED = "Couldn't generate a suggestion right now."
AI_DISABLED_HINT = "AI features are disabled: the Gemini API key is not configured."


class HouseholdNotFoundError(Exception):
    """The signed-in user has no profile or no household yet."""
    pass


class MissingHouseholdError(Exception):
    """A write was attempted before the household was loaded."""
    pass


class Screen(str, Enum):
    """The fixed set of screens, in navigation order."""
    DASHBOARD = "dashboard"
    TRANSACTIONS = "transactions"
    MULTIPLE = "multiple"
    REPORTS = "reports"
    BUDGETS = "budgets"
    GOALS = "goals"
    CHAT = "chat"

    @property
    def label(self) -> str:
        return {
            Screen.DASHBOARD: "Dashboard",
            Screen.TRANSACTIONS: "Transactions",
            Screen.MULTIPLE: "Multiple",
            Screen.REPORTS: "Reports",
            Screen.BUDGETS: "Budgets",
            Screen.GOALS: "Goals",
            Screen.CHAT: "Chat",
        }[self]


def _greeting() -> list[ChatMessage]:
    return [ChatMessage(sender=ChatSender.AI, text=GREETING)]


@dataclass
class LedgerState:
    """
    Everything the screens render from.

    Transactions are kept newest first. Writes go through the flows,
    which update this object only after the backend confirms.
    """

    session: Optional[Session] = None
    family_id: Optional[str] = None
    members: list[FamilyMember] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    goals: list[Goal] = field(default_factory=list)
    budgets: list[Budget] = field(default_factory=list)
    screen: Screen = Screen.DASHBOARD
    year: int = field(default_factory=lambda: dt.date.today().year)
    month: int = field(default_factory=lambda: dt.date.today().month)
    chat: list[ChatMessage] = field(default_factory=_greeting)
    theme: Theme = Theme.LIGHT

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    @property
    def month_label(self) -> str:
        return format_month_year(self.year, self.month)

    def require_family_id(self) -> str:
        if not self.family_id:
            raise MissingHouseholdError("Household data is not loaded yet")
        return self.family_id

    def month_transactions(self) -> list[Transaction]:
        """Transactions of the selected month, newest first."""
        return filter_month(self.transactions, self.year, self.month)

    def change_month(self, delta: int) -> None:
        self.year, self.month = shift_month(self.year, self.month, delta)

    def current_member(self) -> Optional[FamilyMember]:
        if self.session is None:
            return None
        for member in self.members:
            if member.id == self.session.user_id:
                return member
        return None

    def budget_for(self, category: str) -> Optional[Budget]:
        for budget in self.budgets:
            if budget.category == category:
                return budget
        return None

    def resolve_person(self, name: Optional[str]) -> str:
        """A member's name (case-insensitive match) or 'Both'."""
        if name:
            wanted = name.strip().casefold()
            for member in self.members:
                if member.display_name.casefold() == wanted:
                    return member.display_name
        return BOTH_PERSON

    # --- merges (called after a confirmed write) ---

    def merge_transactions(self, rows: list[Transaction]) -> None:
        ids = {row.id for row in rows}
        kept = [t for t in self.transactions if t.id not in ids]
        self.transactions = sort_newest_first(list(rows) + kept)

    def merge_transaction(self, row: Transaction) -> None:
        for index, existing in enumerate(self.transactions):
            if existing.id == row.id:
                self.transactions[index] = row
                self.transactions = sort_newest_first(self.transactions)
                return
        self.merge_transactions([row])

    def remove_transaction(self, transaction_id: str) -> None:
        self.transactions = [t for t in self.transactions if t.id != transaction_id]

    def merge_goal(self, row: Goal) -> None:
        self.goals = [row if g.id == row.id else g for g in self.goals]
        if not any(g.id == row.id for g in self.goals):
            self.goals.append(row)

    def remove_goal(self, goal_id: str) -> None:
        self.goals = [g for g in self.goals if g.id != goal_id]

    def merge_budget(self, row: Budget) -> None:
        self.budgets = [row if b.id == row.id else b for b in self.budgets]
        if not any(b.id == row.id for b in self.budgets):
            self.budgets.append(row)

    def remove_budget(self, budget_id: str) -> None:
        self.budgets = [b for b in self.budgets if b.id != budget_id]

    def reset(self) -> None:
        """Forget everything about the signed-in household (logout)."""
        fresh = LedgerState(theme=self.theme)
        for item in fields(self):
            setattr(self, item.name, getattr(fresh, item.name))


# =============================================================================
# SESSION AND LOADING
# =============================================================================

class SessionFlow:
    """Sign in, sign up, sign out and session tracking."""

    def __init__(
        self,
        auth: AuthServiceInterface,
        profiles: ProfileStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._auth = auth
        self._profiles = profiles
        self._audit_logger = audit_logger or AuditLogger()

    async def sign_in(self, email: str, password: str) -> Session:
        try:
            session = await self._auth.sign_in(email.strip(), password)
        except AuthError as e:
            await self._audit_logger.log_auth_failed(email, str(e))
            raise
        await self._audit_logger.log_signed_in(session.user_id, session.email)
        return session

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> Optional[Session]:
        """
        Create an account and name its profile.

        Returns None when the backend wants the email confirmed before the
        first sign in. The display name is then set on a later sign up.
        """
        email = email.strip()
        try:
            session = await self._auth.sign_up(email, password)
        except AuthError as e:
            await self._audit_logger.log_auth_failed(email, str(e))
            raise

        await self._audit_logger.log_signed_up(session.user_id if session else None, email)

        if session is not None:
            name = (display_name or "").strip() or display_name_from_email(email)
            try:
                await self._profiles.set_display_name(session.user_id, name)
            except StorageError as e:
                # The account exists; a missing name only affects labels
                await self._audit_logger.log_storage_error(
                    operation="set_display_name",
                    table="profiles",
                    error_message=str(e),
                )
        return session

    async def sign_out(self, state: LedgerState) -> None:
        """Sign out and clear the in-memory state, even if the backend call fails."""
        user_id = state.session.user_id if state.session else None
        try:
            await self._auth.sign_out()
        finally:
            state.reset()
            await self._audit_logger.log_signed_out(user_id)

    async def current_session(self) -> Optional[Session]:
        return await self._auth.get_session()

    def subscribe(self, listener: Callable[[Optional[Session]], None]) -> Callable[[], None]:
        """Call ``listener`` on every session change. Returns the unsubscribe function."""
        return self._auth.on_session_change(listener)


class SessionWatcher:
    """
    Follows session changes pushed by the auth service for one LedgerState.

    A session that ends (sign out elsewhere, expired token) clears the state
    at once. A new session is held until the UI calls ``take_pending`` and
    loads the household for it; the listener itself never touches storage.
    """

    def __init__(self, session_flow: SessionFlow, state: LedgerState):
        self._state = state
        self._pending: Optional[Session] = None
        self._unsubscribe = session_flow.subscribe(self._on_change)

    def _on_change(self, session: Optional[Session]) -> None:
        if session is None:
            self._pending = None
            if self._state.is_authenticated:
                logger.info("session_ended", user_id=self._state.session.user_id)
                self._state.reset()
        else:
            self._pending = session

    def take_pending(self) -> Optional[Session]:
        """
        The session whose household still has to be loaded, if any.

        A refreshed session for the user already loaded only swaps the
        token into the state.
        """
        session, self._pending = self._pending, None
        if session is None:
            return None
        current = self._state.session
        if current is not None and current.user_id == session.user_id:
            self._state.session = session
            return None
        return session

    def stop(self) -> None:
        self._unsubscribe()


class HouseholdLoader:
    """
    Loads everything a signed-in user's household owns.

    Order: profile → family id → members → transactions → goals → budgets.
    """

    def __init__(
        self,
        profiles: ProfileStorageInterface,
        transactions: TransactionStorageInterface,
        goals: GoalStorageInterface,
        budgets: BudgetStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._profiles = profiles
        self._transactions = transactions
        self._goals = goals
        self._budgets = budgets
        self._audit_logger = audit_logger or AuditLogger()

    async def load(self, state: LedgerState, session: Session) -> LedgerState:
        """
        Fill ``state`` for ``session``.

        A failing list leaves that list empty; the rest still loads.

        Raises:
            HouseholdNotFoundError: If the user has no profile or household
            StorageError: If the profile itself cannot be read
        """
        try:
            profile = await self._profiles.get_profile(session.user_id)
        except StorageError as e:
            await self._audit_logger.log_storage_error("read", "profiles", str(e))
            raise

        if profile is None or not profile.family_id:
            raise HouseholdNotFoundError(
                "Your account is not linked to a household yet."
            )
        family_id = profile.family_id

        members = await self._load_list(
            "profiles", family_id, self._profiles.list_members
        )
        transactions = await self._load_list(
            "transactions", family_id, self._transactions.list_transactions
        )
        goals = await self._load_list("goals", family_id, self._goals.list_goals)
        budgets = await self._load_list("budgets", family_id, self._budgets.list_budgets)

        state.session = session
        state.family_id = family_id
        state.members = members
        state.transactions = sort_newest_first(transactions)
        state.goals = goals
        state.budgets = budgets

        await self._audit_logger.log_household_loaded(
            family_id,
            {
                "members": len(members),
                "transactions": len(transactions),
                "goals": len(goals),
                "budgets": len(budgets),
            },
        )
        return state

    async def _load_list(self, table: str, family_id: str, fetch) -> list:
        try:
            return await fetch(family_id)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation="list",
                table=table,
                error_message=str(e),
                family_id=family_id,
            )
            return []


# =============================================================================
# RECORDS
# =============================================================================

class TransactionFlow:
    """
    Add, update and delete transactions.

    Storage errors are audited and re-raised; local state is only changed
    after the backend confirms.
    """

    def __init__(
        self,
        storage: TransactionStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()

    async def add(
        self,
        state: LedgerState,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        family_id = state.require_family_id()
        inserted = await self._insert(state, [draft], family_id, correlation_id)
        if not inserted:
            raise StorageError("The backend did not return the inserted transaction")
        row = inserted[0]
        await self._audit_logger.log_created(
            "transaction",
            row.id,
            family_id,
            details={"amount": row.amount, "flow": row.flow.value, "category": row.category},
            correlation_id=correlation_id,
        )
        return row

    async def add_many(
        self,
        state: LedgerState,
        drafts: list[TransactionDraft],
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """Insert several transactions in a single call."""
        if not drafts:
            return []
        family_id = state.require_family_id()
        inserted = await self._insert(state, drafts, family_id, correlation_id)
        await self._audit_logger.log_bulk_created(len(inserted), family_id, correlation_id)
        return inserted

    async def _insert(
        self,
        state: LedgerState,
        drafts: list[TransactionDraft],
        family_id: str,
        correlation_id: Optional[UUID],
    ) -> list[Transaction]:
        scoped = [draft.model_copy(update={"family_id": family_id}) for draft in drafts]
        try:
            inserted = await self._storage.insert_transactions(scoped)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                "insert", "transactions", str(e), family_id, correlation_id
            )
            raise
        state.merge_transactions(inserted)
        return inserted

    async def update(
        self,
        state: LedgerState,
        transaction_id: str,
        changes: TransactionChanges,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Apply changes. The date is never part of an update."""
        family_id = state.require_family_id()
        row_changes = changes.to_row()
        try:
            row = await self._storage.update_transaction(transaction_id, family_id, row_changes)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                "update", "transactions", str(e), family_id, correlation_id
            )
            raise
        state.merge_transaction(row)
        await self._audit_logger.log_updated(
            "transaction", row.id, family_id, row_changes, correlation_id
        )
        return row

    async def delete(
        self,
        state: LedgerState,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        family_id = state.require_family_id()
        try:
            deleted = await self._storage.delete_transaction(transaction_id, family_id)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                "delete", "transactions", str(e), family_id, correlation_id
            )
            raise
        # Gone from the backend either way
        state.remove_transaction(transaction_id)
        if deleted:
            await self._audit_logger.log_deleted(
                "transaction", transaction_id, family_id, correlation_id
            )
        return deleted


class GoalFlow:
    """Add, update and delete savings goals."""

    def __init__(
        self,
        storage: GoalStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()

    async def add(self, state: LedgerState, name: str, target_amount: float) -> Goal:
        """New goals start with nothing saved."""
        family_id = state.require_family_id()
        draft = GoalDraft(
            name=name,
            target_amount=target_amount,
            current_amount=0.0,
            family_id=family_id,
        )
        try:
            goal = await self._storage.insert_goal(draft)
        except StorageError as e:
            await self._audit_logger.log_storage_error("insert", "goals", str(e), family_id)
            raise
        state.merge_goal(goal)
        await self._audit_logger.log_created(
            "goal", goal.id, family_id, details={"target_amount": goal.target_amount}
        )
        return goal

    async def update(
        self,
        state: LedgerState,
        goal_id: str,
        changes: GoalChanges,
    ) -> Goal:
        family_id = state.require_family_id()
        row_changes = changes.to_row()
        try:
            goal = await self._storage.update_goal(goal_id, family_id, row_changes)
        except StorageError as e:
            await self._audit_logger.log_storage_error("update", "goals", str(e), family_id)
            raise
        state.merge_goal(goal)
        await self._audit_logger.log_updated("goal", goal.id, family_id, row_changes)
        return goal

    async def delete(self, state: LedgerState, goal_id: str) -> bool:
        family_id = state.require_family_id()
        try:
            deleted = await self._storage.delete_goal(goal_id, family_id)
        except StorageError as e:
            await self._audit_logger.log_storage_error("delete", "goals", str(e), family_id)
            raise
        state.remove_goal(goal_id)
        if deleted:
            await self._audit_logger.log_deleted("goal", goal_id, family_id)
        return deleted


class BudgetFlow:
    """Monthly spending limits, one per category."""

    def __init__(
        self,
        storage: BudgetStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()

    async def set(self, state: LedgerState, category: str, amount: float) -> Budget:
        """Update the category's budget if one exists, else create it."""
        family_id = state.require_family_id()
        draft = BudgetDraft(category=category, amount=amount, family_id=family_id)
        existing = state.budget_for(draft.category)
        try:
            if existing is not None:
                budget = await self._storage.update_budget(existing.id, family_id, draft.amount)
            else:
                budget = await self._storage.insert_budget(draft)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                "update" if existing else "insert", "budgets", str(e), family_id
            )
            raise
        state.merge_budget(budget)
        await self._audit_logger.log_updated(
            "budget", budget.id, family_id, {"category": budget.category, "amount": budget.amount}
        )
        return budget

    async def delete(self, state: LedgerState, budget_id: str) -> bool:
        family_id = state.require_family_id()
        try:
            deleted = await self._storage.delete_budget(budget_id, family_id)
        except StorageError as e:
            await self._audit_logger.log_storage_error("delete", "budgets", str(e), family_id)
            raise
        state.remove_budget(budget_id)
        if deleted:
            await self._audit_logger.log_deleted("budget", budget_id, family_id)
        return deleted


# =============================================================================
# AI
# =============================================================================

class InsightFlow:
    """
    One-off AI texts for the reports and goals screens.

    Never raises: failures and disabled AI turn into fixed hint texts.
    """

    def __init__(
        self,
        agent: Optional[FinanceAssistantAgent],
        app_settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._agent = agent
        self._app = app_settings or AppSettings()
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def enabled(self) -> bool:
        return self._agent is not None

    async def insight(self, state: LedgerState) -> str:
        """A one-sentence insight about the selected month."""
        month_transactions = state.month_transactions()
        if not month_transactions:
            return INSIGHT_EMPTY_HINT
        if self._agent is None:
            return AI_DISABLED_HINT
        try:
            text = await self._agent.generate_insight(
                month_transactions[: self._app.insight_context_limit],
                state.month_label,
            )
        except AssistantError as e:
            await self._audit_logger.log_external_service_error("gemini", str(e))
            return INSIGHT_FAILED
        await self._audit_logger.log_ai_text("insight", len(text))
        return text

    async def suggestion(self, state: LedgerState) -> str:
        """A short tip to reach the goals faster."""
        if not state.goals:
            return SUGGESTION_EMPTY_HINT
        if self._agent is None:
            return AI_DISABLED_HINT
        try:
            text = await self._agent.generate_suggestion(
                state.goals,
                state.transactions[: self._app.suggestion_context_limit],
            )
        except AssistantError as e:
            await self._audit_logger.log_external_service_error("gemini", str(e))
            return SUGGESTION_FAILED
        await self._audit_logger.log_ai_text("suggestion", len(text))
        return text


def find_transaction_by_description(
    transactions: list[Transaction],
    description: str,
) -> Optional[Transaction]:
    """
    Fuzzy-find a transaction by description.

    Case-insensitive substring match. Among several matches the most recent
    date wins; equal dates keep list order.
    """
    needle = description.strip().casefold()
    if not needle:
        return None

    best: Optional[Transaction] = None
    for transaction in transactions:
        if needle not in transaction.description.casefold():
            continue
        if best is None or transaction.date > best.date:
            best = transaction
    return best


class AssistantFlow:
    """
    Orchestrates the chat with Fin.

    CRITICAL BOUNDARIES:
    1. User message → model (with recent transactions, goals, budgets)
    2. Model text → strict decode; anything unexpected → fallback reply
    3. Decoded action → AT MOST ONE backend write
    4. Outcome → one assistant message

    The model NEVER writes. This class does, and only after decoding.
    """

    def __init__(
        self,
        agent: Optional[FinanceAssistantAgent],
        transaction_flow: TransactionFlow,
        app_settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._agent = agent
        self._transactions = transaction_flow
        self._app = app_settings or AppSettings()
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def enabled(self) -> bool:
        return self._agent is not None

    def start_conversation(self, state: LedgerState) -> None:
        state.chat = _greeting()

    async def send(self, state: LedgerState, text: str) -> Optional[ChatMessage]:
        """
        Handle one user message and append the reply to ``state.chat``.

        Returns the reply, or None for a blank message.
        """
        text = text.strip()
        if not text:
            return None

        state.chat.append(ChatMessage(sender=ChatSender.USER, text=text))

        if self._agent is None:
            return self._reply(state, AI_DISABLED_REPLY, ChatSender.SYSTEM)

        correlation_id = create_correlation_id()
        recent = state.transactions[: self._app.chat_context_limit]

        try:
            raw = await self._agent.interpret(text, recent, state.goals, state.budgets)
        except AssistantError as e:
            await self._audit_logger.log_external_service_error("gemini", str(e), correlation_id)
            return self._reply(state, CONNECTION_ERROR_REPLY, ChatSender.SYSTEM)

        reply = decode_assistant_reply(raw)
        if reply is None:
            await self._audit_logger.log_assistant_reply_rejected(raw, correlation_id)
            return self._reply(state, FALLBACK_REPLY)

        if isinstance(reply, AnswerQuery):
            answer = reply.answer
        elif isinstance(reply, AddTransaction):
            answer = await self._add(state, reply, correlation_id)
        elif isinstance(reply, UpdateTransaction):
            answer = await self._update(state, reply, recent, correlation_id)
        elif isinstance(reply, DeleteTransaction):
            answer = await self._delete(state, reply, recent, correlation_id)
        else:
            answer = FALLBACK_REPLY
        return self._reply(state, answer)

    def _reply(
        self,
        state: LedgerState,
        text: str,
        sender: ChatSender = ChatSender.AI,
    ) -> ChatMessage:
        message = ChatMessage(sender=sender, text=text)
        state.chat.append(message)
        return message

    async def _add(
        self,
        state: LedgerState,
        reply: AddTransaction,
        correlation_id: UUID,
    ) -> str:
        payload = reply.transaction
        draft = TransactionDraft(
            description=payload.description,
            amount=payload.amount,
            category=payload.category,
            person=state.resolve_person(payload.person),
            kind=payload.kind,
            flow=payload.flow,
            date=payload.date or dt.date.today(),
        )
        try:
            row = await self._transactions.add(state, draft, correlation_id)
        except (StorageError, MissingHouseholdError):
            return "Sorry, I couldn't add that transaction."

        await self._audit_logger.log_assistant_action(
            reply.action, row.id, state.family_id, correlation_id
        )
        return (
            f'Ok, I added "{row.description}" '
            f"({row.flow.label.lower()}, {format_currency(row.amount)})."
        )

    async def _update(
        self,
        state: LedgerState,
        reply: UpdateTransaction,
        recent: list[Transaction],
        correlation_id: UUID,
    ) -> str:
        payload = reply.transaction_update
        wanted = payload.identifier.description
        target = find_transaction_by_description(recent, wanted)
        if target is None:
            return f"I couldn't find a recent transaction with a description like '{wanted}'."

        changes = payload.updates
        if changes.person is not None:
            changes = changes.model_copy(update={"person": state.resolve_person(changes.person)})

        try:
            await self._transactions.update(state, target.id, changes, correlation_id)
        except (StorageError, MissingHouseholdError):
            return "Sorry, I couldn't update that transaction."

        await self._audit_logger.log_assistant_action(
            reply.action, target.id, state.family_id, correlation_id
        )
        return f'Ok, I updated the transaction "{target.description}".'

    async def _delete(
        self,
        state: LedgerState,
        reply: DeleteTransaction,
        recent: list[Transaction],
        correlation_id: UUID,
    ) -> str:
        wanted = reply.transaction_identifier.description
        target = find_transaction_by_description(recent, wanted)
        if target is None:
            return f"I couldn't find a recent transaction with a description like '{wanted}'."

        try:
            await self._transactions.delete(state, target.id, correlation_id)
        except (StorageError, MissingHouseholdError):
            return f"Sorry, I couldn't delete the transaction '{wanted}'."

        await self._audit_logger.log_assistant_action(
            reply.action, target.id, state.family_id, correlation_id
        )
        return f'Ok, the transaction "{target.description}" was deleted.'


# =============================================================================
# WIRING
# =============================================================================

@dataclass
class AppComponents:
    """Everything the UI needs, built once per process."""

    session_flow: SessionFlow
    household_loader: HouseholdLoader
    transaction_flow: TransactionFlow
    goal_flow: GoalFlow
    budget_flow: BudgetFlow
    insight_flow: InsightFlow
    assistant_flow: AssistantFlow
    theme_store: ThemeStore
    audit_logger: AuditLogger
    app_settings: AppSettings

    @property
    def ai_enabled(self) -> bool:
        return self.assistant_flow.enabled


def create_app_components(
    use_storage: bool = True,
    agent: Optional[FinanceAssistantAgent] = None,
    use_ai: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Supabase. Set to False for a demo
                    session backed by in-memory storage.
        agent: Assistant to use instead of the Gemini one (tests).
        use_ai: Whether to try to build the Gemini assistant at all.

    Raises:
        pydantic.ValidationError: If use_storage is True and Supabase is
            not configured
    """
    settings = get_settings()
    app_settings = settings.app
    audit_logger = AuditLogger()

    if use_storage:
        client = SupabaseClient(settings.supabase)
        auth: AuthServiceInterface = SupabaseAuthService(client)
        profiles: ProfileStorageInterface = SupabaseProfileStorage(client)
        transactions: TransactionStorageInterface = SupabaseTransactionStorage(client)
        goals: GoalStorageInterface = SupabaseGoalStorage(client)
        budgets: BudgetStorageInterface = SupabaseBudgetStorage(client)
    else:
        db = InMemoryDatabase()
        auth = InMemoryAuthService(db)
        profiles = InMemoryProfileStorage(db)
        transactions = InMemoryTransactionStorage(db)
        goals = InMemoryGoalStorage(db)
        budgets = InMemoryBudgetStorage(db)

    if agent is None and use_ai:
        try:
            agent = FinanceAssistantAgent(settings.gemini)
        except Exception as e:
            # AI not configured - continue without it
            logger.warning("assistant_disabled", error=str(e))
            agent = None

    transaction_flow = TransactionFlow(transactions, audit_logger)

    return AppComponents(
        session_flow=SessionFlow(auth, profiles, audit_logger),
        household_loader=HouseholdLoader(profiles, transactions, goals, budgets, audit_logger),
        transaction_flow=transaction_flow,
        goal_flow=GoalFlow(goals, audit_logger),
        budget_flow=BudgetFlow(budgets, audit_logger),
        insight_flow=InsightFlow(agent, app_settings, audit_logger),
        assistant_flow=AssistantFlow(agent, transaction_flow, app_settings, audit_logger),
        theme_store=ThemeStore(app_settings.preferences_path),
        audit_logger=audit_logger,
        app_settings=app_settings,
    )
