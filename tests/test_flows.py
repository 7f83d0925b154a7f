"""
Integration tests for the orchestrator flows.

Flows run against the in-memory storages. The AI model is replaced by a
scripted assistant that returns canned replies.
"""

import asyncio
import datetime as dt

import pytest

from household_ledger.agents import AssistantUnavailableError
from household_ledger.audit import AuditLogger
from household_ledger.config import AppSettings
from household_ledger.models.audit import AuditEventType
from household_ledger.models.finance import (
    BOTH_PERSON,
    OTHER_CATEGORY,
    ChatMessage,
    ChatSender,
    Flow,
    GoalChanges,
    Session,
    Theme,
    TransactionChanges,
    TransactionDraft,
)
from household_ledger.orchestrator import (
    AI_DISABLED_HINT,
    AI_DISABLED_REPLY,
    CONNECTION_ERROR_REPLY,
    FALLBACK_REPLY,
    GREETING,
    INSIGHT_EMPTY_HINT,
    INSIGHT_FAILED,
    SUGGESTION_EMPTY_HINT,
    AssistantFlow,
    BudgetFlow,
    GoalFlow,
    HouseholdLoader,
    HouseholdNotFoundError,
    InsightFlow,
    LedgerState,
    MissingHouseholdError,
    Screen,
    SessionFlow,
    SessionWatcher,
    TransactionFlow,
    create_app_components,
    find_transaction_by_description,
)
from household_ledger.services.auth import AuthError, InMemoryAuthService
from household_ledger.services.storage import (
    InMemoryBudgetStorage,
    InMemoryDatabase,
    InMemoryGoalStorage,
    InMemoryProfileStorage,
    InMemoryTransactionStorage,
    StorageError,
)


FAMILY = "fam-1"
ANA_SESSION = Session(user_id="u1", email="ana@example.com", access_token="t")


class ScriptedAssistant:
    """Returns canned model output and records what it was given."""

    def __init__(self, replies=None, error=None, text="Spending on food went up."):
        self.replies = list(replies or [])
        self.error = error
        self.text = text
        self.calls = []

    async def interpret(self, message, transactions, goals, budgets):
        self.calls.append(("interpret", message, list(transactions)))
        if self.error:
            raise self.error
        return self.replies.pop(0)

    async def generate_insight(self, transactions, month_label):
        self.calls.append(("insight", month_label, list(transactions)))
        if self.error:
            raise self.error
        return self.text

    async def generate_suggestion(self, goals, transactions):
        self.calls.append(("suggestion", list(goals), list(transactions)))
        if self.error:
            raise self.error
        return self.text


class Household:
    """In-memory backend with two members and the flows wired to it."""

    def __init__(self, agent=None, app_settings=None):
        self.db = InMemoryDatabase()
        self.db.add_profile("u1", "Ana", FAMILY)
        self.db.add_profile("u2", "Bruno", FAMILY)
        self.audit = AuditLogger()
        self.app_settings = app_settings or AppSettings()

        self.transaction_storage = InMemoryTransactionStorage(self.db)
        self.loader = HouseholdLoader(
            InMemoryProfileStorage(self.db),
            self.transaction_storage,
            InMemoryGoalStorage(self.db),
            InMemoryBudgetStorage(self.db),
            self.audit,
        )
        self.transactions = TransactionFlow(self.transaction_storage, self.audit)
        self.goals = GoalFlow(InMemoryGoalStorage(self.db), self.audit)
        self.budgets = BudgetFlow(InMemoryBudgetStorage(self.db), self.audit)
        self.insights = InsightFlow(agent, self.app_settings, self.audit)
        self.assistant = AssistantFlow(agent, self.transactions, self.app_settings, self.audit)

    def seed_transaction(self, description, amount, date, flow=Flow.EXPENSE, family_id=FAMILY, **extra):
        draft = TransactionDraft(
            description=description,
            amount=amount,
            date=date,
            flow=flow,
            family_id=family_id,
            **extra,
        )
        return self.db.insert("transactions", draft.to_row())["id"]

    def load(self) -> LedgerState:
        state = LedgerState()
        asyncio.run(self.loader.load(state, ANA_SESSION))
        return state

    def event_types(self):
        return [event.event_type for event in self.audit.recent_events]

    def stored(self, table="transactions"):
        return list(self.db.tables[table].values())


class TestLedgerState:
    """Tests for the explicit application state."""

    def test_defaults(self):
        state = LedgerState()
        today = dt.date.today()
        assert state.screen is Screen.DASHBOARD
        assert (state.year, state.month) == (today.year, today.month)
        assert [m.text for m in state.chat] == [GREETING]
        assert not state.is_authenticated

    def test_change_month_wraps_years(self):
        state = LedgerState(year=2026, month=1)
        state.change_month(-1)
        assert (state.year, state.month) == (2025, 12)
        state.change_month(1)
        assert (state.year, state.month) == (2026, 1)

    def test_require_family_id(self):
        with pytest.raises(MissingHouseholdError):
            LedgerState().require_family_id()

    def test_reset_keeps_theme(self):
        state = LedgerState(family_id=FAMILY, theme=Theme.DARK, screen=Screen.CHAT)
        state.chat.append(ChatMessage(sender=ChatSender.USER, text="Hi"))
        state.reset()
        assert state.family_id is None
        assert state.screen is Screen.DASHBOARD
        assert state.theme is Theme.DARK
        assert [m.text for m in state.chat] == [GREETING]


class TestHouseholdLoader:
    """Tests for loading a household after sign in."""

    def test_load(self):
        household = Household()
        household.seed_transaction("Old", 10, dt.date(2026, 9, 1))
        household.seed_transaction("New", 20, dt.date(2026, 10, 1))
        household.seed_transaction("Other family", 30, dt.date(2026, 10, 2), family_id="fam-2")

        state = household.load()

        assert state.session == ANA_SESSION
        assert state.family_id == FAMILY
        assert [m.display_name for m in state.members] == ["Ana", "Bruno"]
        assert [t.description for t in state.transactions] == ["New", "Old"]
        assert state.current_member().display_name == "Ana"
        assert AuditEventType.HOUSEHOLD_LOADED in household.event_types()

    def test_missing_profile(self):
        household = Household()
        state = LedgerState()
        with pytest.raises(HouseholdNotFoundError):
            asyncio.run(household.loader.load(state, Session(user_id="stranger")))
        assert state.session is None

    def test_profile_without_household(self):
        household = Household()
        household.db.add_profile("u3", "Carla", None)
        with pytest.raises(HouseholdNotFoundError):
            asyncio.run(household.loader.load(LedgerState(), Session(user_id="u3")))

    def test_failing_list_is_left_empty(self):
        household = Household()
        household.seed_transaction("Market", 10, dt.date(2026, 10, 1))
        asyncio.run(household.goals.add(LedgerState(family_id=FAMILY), "Trip", 1000))
        household.db.fail_on.add("goals")

        state = household.load()

        assert state.goals == []
        assert len(state.transactions) == 1
        assert AuditEventType.STORAGE_ERROR in household.event_types()

    def test_profile_failure_aborts(self):
        household = Household()
        household.db.fail_on.add("profiles")
        with pytest.raises(StorageError):
            household.load()


class TestTransactionFlow:
    """Tests for adding, updating and deleting transactions."""

    def test_add_scopes_to_household_and_merges(self):
        household = Household()
        state = household.load()

        row = asyncio.run(household.transactions.add(
            state, TransactionDraft(description="Pizza", amount=60)
        ))

        assert row.family_id == FAMILY
        assert state.transactions[0].id == row.id
        assert household.stored()[0]["family_id"] == FAMILY
        assert AuditEventType.TRANSACTION_CREATED in household.event_types()

    def test_add_requires_household(self):
        household = Household()
        with pytest.raises(MissingHouseholdError):
            asyncio.run(household.transactions.add(
                LedgerState(), TransactionDraft(description="Pizza", amount=60)
            ))
        assert household.stored() == []

    def test_failed_add_leaves_state_untouched(self):
        household = Household()
        state = household.load()
        household.db.fail_on.add("transactions")

        with pytest.raises(StorageError):
            asyncio.run(household.transactions.add(
                state, TransactionDraft(description="Pizza", amount=60)
            ))

        assert state.transactions == []
        assert AuditEventType.STORAGE_ERROR in household.event_types()

    def test_add_many(self):
        household = Household()
        state = household.load()
        drafts = [
            TransactionDraft(description="Market", amount=350.5),
            TransactionDraft(description="Bakery", amount=25),
        ]

        inserted = asyncio.run(household.transactions.add_many(state, drafts))

        assert len(inserted) == 2
        assert {t.description for t in state.transactions} == {"Market", "Bakery"}
        assert AuditEventType.TRANSACTIONS_BULK_CREATED in household.event_types()

    def test_add_many_nothing(self):
        household = Household()
        assert asyncio.run(household.transactions.add_many(LedgerState(), [])) == []

    def test_update_keeps_date(self):
        household = Household()
        transaction_id = household.seed_transaction("Market", 100, dt.date(2026, 9, 1))
        state = household.load()

        row = asyncio.run(household.transactions.update(
            state, transaction_id, TransactionChanges(amount=150, category="Monthly Groceries")
        ))

        assert row.amount == 150
        assert row.category == "Monthly Groceries"
        assert row.date == dt.date(2026, 9, 1)
        assert state.transactions[0].amount == 150

    def test_delete(self):
        household = Household()
        transaction_id = household.seed_transaction("Market", 100, dt.date(2026, 9, 1))
        state = household.load()

        assert asyncio.run(household.transactions.delete(state, transaction_id)) is True
        assert state.transactions == []
        assert household.stored() == []


class TestGoalAndBudgetFlows:
    """Tests for goals and budgets."""

    def test_new_goal_starts_empty(self):
        household = Household()
        state = household.load()

        goal = asyncio.run(household.goals.add(state, "Trip", 10000))

        assert goal.current_amount == 0
        assert household.stored("goals")[0]["targetAmount"] == 10000
        assert state.goals == [goal]

    def test_update_goal(self):
        household = Household()
        state = household.load()
        goal = asyncio.run(household.goals.add(state, "Trip", 10000))

        updated = asyncio.run(household.goals.update(state, goal.id, GoalChanges(current_amount=4500)))

        assert updated.current_amount == 4500
        assert updated.target_amount == 10000
        assert state.goals[0].current_amount == 4500

    def test_delete_goal(self):
        household = Household()
        state = household.load()
        goal = asyncio.run(household.goals.add(state, "Trip", 10000))

        asyncio.run(household.goals.delete(state, goal.id))

        assert state.goals == []

    def test_set_budget_updates_existing_category(self):
        """Setting a budget twice for one category keeps a single row."""
        household = Household()
        state = household.load()

        first = asyncio.run(household.budgets.set(state, "Food", 800))
        second = asyncio.run(household.budgets.set(state, "Food", 950))

        assert second.id == first.id
        assert len(household.stored("budgets")) == 1
        assert household.stored("budgets")[0]["amount"] == 950
        assert [(b.category, b.amount) for b in state.budgets] == [("Food", 950)]

    def test_delete_budget(self):
        household = Household()
        state = household.load()
        budget = asyncio.run(household.budgets.set(state, "Food", 800))

        asyncio.run(household.budgets.delete(state, budget.id))

        assert state.budgets == []
        assert household.stored("budgets") == []

    def test_delete_one_of_duplicate_category_budgets(self):
        household = Household()
        first = household.db.insert("budgets", {"category": "Food", "amount": 500, "family_id": FAMILY})
        second = household.db.insert("budgets", {"category": "Food", "amount": 300, "family_id": FAMILY})
        state = household.load()

        asyncio.run(household.budgets.delete(state, second["id"]))

        assert [b.id for b in state.budgets] == [first["id"]]
        assert [row["id"] for row in household.stored("budgets")] == [first["id"]]


class TestSessionWatcher:
    """Tests for following session changes pushed by the auth service."""

    def make(self):
        db = InMemoryDatabase()
        auth = InMemoryAuthService(db, family_id=FAMILY)
        flow = SessionFlow(auth, InMemoryProfileStorage(db), AuditLogger())
        asyncio.run(flow.sign_up("ana@example.com", "secret1"))
        asyncio.run(auth.sign_out())
        state = LedgerState(theme=Theme.DARK)
        return db, auth, state, SessionWatcher(flow, state)

    def test_new_session_loads_household(self):
        db, auth, state, watcher = self.make()
        loader = HouseholdLoader(
            InMemoryProfileStorage(db),
            InMemoryTransactionStorage(db),
            InMemoryGoalStorage(db),
            InMemoryBudgetStorage(db),
        )

        session = asyncio.run(auth.sign_in("ana@example.com", "secret1"))
        pending = watcher.take_pending()
        asyncio.run(loader.load(state, pending))

        assert pending == session
        assert state.family_id == FAMILY
        assert watcher.take_pending() is None

    def test_session_ended_elsewhere_resets_state(self):
        _, auth, state, watcher = self.make()
        state.session = asyncio.run(auth.sign_in("ana@example.com", "secret1"))
        state.family_id = FAMILY
        watcher.take_pending()

        asyncio.run(auth.sign_out())

        assert not state.is_authenticated
        assert state.family_id is None
        assert state.theme is Theme.DARK
        assert watcher.take_pending() is None

    def test_refreshed_session_only_swaps_token(self):
        _, auth, state, watcher = self.make()
        state.session = asyncio.run(auth.sign_in("ana@example.com", "secret1"))
        state.family_id = FAMILY
        watcher.take_pending()

        refreshed = asyncio.run(auth.sign_in("ana@example.com", "secret1"))

        assert watcher.take_pending() is None
        assert state.session is refreshed
        assert state.family_id == FAMILY

    def test_other_user_needs_reload(self):
        _, auth, state, watcher = self.make()
        auth.register("bruno@example.com", "secret2")
        state.session = asyncio.run(auth.sign_in("ana@example.com", "secret1"))
        watcher.take_pending()

        bruno = asyncio.run(auth.sign_in("bruno@example.com", "secret2"))

        assert watcher.take_pending() == bruno

    def test_stop(self):
        _, auth, state, watcher = self.make()
        watcher.stop()
        asyncio.run(auth.sign_in("ana@example.com", "secret1"))
        assert watcher.take_pending() is None



class TestSessionFlow:
    """Tests for sign in, sign up and sign out."""

    def make_flow(self):
        db = InMemoryDatabase()
        auth = InMemoryAuthService(db, family_id=FAMILY)
        audit = AuditLogger()
        return SessionFlow(auth, InMemoryProfileStorage(db), audit), db, audit

    def test_sign_up_sets_display_name_from_email(self):
        flow, db, _ = self.make_flow()

        session = asyncio.run(flow.sign_up("carla.souza@example.com", "secret1"))

        assert db.tables["profiles"][session.user_id]["display_name"] == "Carla.souza"

    def test_sign_up_with_name(self):
        flow, db, _ = self.make_flow()

        session = asyncio.run(flow.sign_up("ana@example.com", "secret1", "Ana Paula"))

        assert db.tables["profiles"][session.user_id]["display_name"] == "Ana Paula"

    def test_sign_in_failure_is_audited(self):
        flow, _, audit = self.make_flow()
        with pytest.raises(AuthError):
            asyncio.run(flow.sign_in("nobody@example.com", "secret1"))
        assert audit.recent_events[-1].event_type == AuditEventType.AUTH_FAILED

    def test_sign_in_and_out(self):
        flow, _, _ = self.make_flow()
        asyncio.run(flow.sign_up("ana@example.com", "secret1"))
        seen = []
        unsubscribe = flow.subscribe(seen.append)

        session = asyncio.run(flow.sign_in("ana@example.com", "secret1"))
        state = LedgerState(session=session, family_id=FAMILY, theme=Theme.DARK)
        asyncio.run(flow.sign_out(state))
        unsubscribe()
        asyncio.run(flow.sign_in("ana@example.com", "secret1"))

        assert seen == [session, None]
        assert state.session is None
        assert state.family_id is None
        assert state.theme is Theme.DARK
        assert asyncio.run(flow.current_session()) is not None


class TestInsightFlow:
    """Tests for the reports insight and goals suggestion."""

    def test_empty_month_gives_hint_without_calling_ai(self):
        agent = ScriptedAssistant()
        household = Household(agent)
        state = household.load()

        assert asyncio.run(household.insights.insight(state)) == INSIGHT_EMPTY_HINT
        assert agent.calls == []

    def test_insight_uses_selected_month_capped(self):
        agent = ScriptedAssistant()
        household = Household(agent, AppSettings(insight_context_limit=2))
        for day in (1, 2, 3):
            household.seed_transaction(f"Day {day}", 10, dt.date(2026, 10, day))
        household.seed_transaction("September", 10, dt.date(2026, 9, 30))
        state = household.load()
        state.year, state.month = 2026, 10

        text = asyncio.run(household.insights.insight(state))

        assert text == agent.text
        _, label, sent = agent.calls[0]
        assert label == "October 2026"
        assert [t.description for t in sent] == ["Day 3", "Day 2"]

    def test_insight_failure(self):
        household = Household(ScriptedAssistant(error=AssistantUnavailableError("down")))
        household.seed_transaction("Market", 10, dt.date(2026, 10, 1))
        state = household.load()
        state.year, state.month = 2026, 10

        assert asyncio.run(household.insights.insight(state)) == INSIGHT_FAILED

    def test_insight_without_ai(self):
        household = Household(agent=None)
        household.seed_transaction("Market", 10, dt.date(2026, 10, 1))
        state = household.load()
        state.year, state.month = 2026, 10

        assert asyncio.run(household.insights.insight(state)) == AI_DISABLED_HINT

    def test_suggestion_needs_goals(self):
        agent = ScriptedAssistant()
        household = Household(agent)
        state = household.load()

        assert asyncio.run(household.insights.suggestion(state)) == SUGGESTION_EMPTY_HINT
        assert agent.calls == []

    def test_suggestion(self):
        agent = ScriptedAssistant(text="Cut delivery food.")
        household = Household(agent)
        state = household.load()
        asyncio.run(household.goals.add(state, "Trip", 10000))

        assert asyncio.run(household.insights.suggestion(state)) == "Cut delivery food."
        assert agent.calls[0][0] == "suggestion"


class TestFuzzyMatch:
    """Tests for finding a transaction by description."""

    def make(self, household, *specs):
        for description, day in specs:
            household.seed_transaction(description, 10, dt.date(2026, 10, day))
        return household.load().transactions

    def test_case_insensitive_substring(self):
        transactions = self.make(Household(), ("Mercado Extra", 1), ("Bakery", 2))
        assert find_transaction_by_description(transactions, "MERCADO").description == "Mercado Extra"

    def test_most_recent_wins(self):
        transactions = self.make(Household(), ("Pizza Friday", 3), ("Pizza Monday", 7))
        assert find_transaction_by_description(transactions, "pizza").description == "Pizza Monday"

    def test_equal_dates_keep_list_order(self):
        transactions = self.make(Household(), ("Pizza A", 5), ("Pizza B", 5))
        expected = [t for t in transactions if "Pizza" in t.description][0]
        assert find_transaction_by_description(transactions, "pizza") == expected

    def test_no_match(self):
        transactions = self.make(Household(), ("Bakery", 1))
        assert find_transaction_by_description(transactions, "pizza") is None
        assert find_transaction_by_description(transactions, "  ") is None


class TestAssistantFlow:
    """Tests for the chat contract: decode strictly, write at most once."""

    def chat(self, replies, app_settings=None, seed=()):
        agent = ScriptedAssistant(replies=replies)
        household = Household(agent, app_settings)
        for description, amount, day in seed:
            household.seed_transaction(description, amount, dt.date(2026, 10, day))
        state = household.load()
        return household, state, agent

    def test_answer_query(self):
        household, state, _ = self.chat(['{"action": "answerQuery", "answer": "You spent R$ 10."}'])

        reply = asyncio.run(household.assistant.send(state, "How much did we spend?"))

        assert reply.sender is ChatSender.AI
        assert reply.text == "You spent R$ 10."
        assert [m.sender for m in state.chat] == [ChatSender.AI, ChatSender.USER, ChatSender.AI]
        assert household.stored() == []

    def test_unknown_action_falls_back_without_writing(self):
        household, state, _ = self.chat(
            ['{"action": "transferMoney", "transaction": {"description": "x", "amount": 5}}'],
            seed=[("Market", 100, 1)],
        )
        before = list(household.stored())

        reply = asyncio.run(household.assistant.send(state, "Move money"))

        assert reply.text == FALLBACK_REPLY
        assert household.stored() == before
        assert AuditEventType.ASSISTANT_REPLY_REJECTED in household.event_types()

    def test_non_string_category_falls_back_without_writing(self):
        household, state, _ = self.chat([
            '{"action": "addTransaction", "transaction": '
            '{"description": "Pizza", "amount": 40, "category": 123}}'
        ])

        reply = asyncio.run(household.assistant.send(state, "Add pizza 40"))

        assert reply.text == FALLBACK_REPLY
        assert household.stored() == []
        assert state.transactions == []

    def test_malformed_json_falls_back(self):
        household, state, _ = self.chat(["not json at all"])
        reply = asyncio.run(household.assistant.send(state, "Hello"))
        assert reply.text == FALLBACK_REPLY

    def test_add_transaction_with_defaults(self):
        household, state, _ = self.chat([
            '{"action": "addTransaction", "transaction": '
            '{"description": "Pizza", "amount": 60, "category": "Crypto"}}'
        ])

        reply = asyncio.run(household.assistant.send(state, "Add pizza 60"))

        [row] = household.stored()
        assert row["description"] == "Pizza"
        assert row["category"] == OTHER_CATEGORY
        assert row["person"] == BOTH_PERSON
        assert row["type"] == "variável"
        assert row["date"] == dt.date.today().isoformat()
        assert row["family_id"] == FAMILY
        assert "Pizza" in reply.text
        assert AuditEventType.ASSISTANT_ACTION_PERFORMED in household.event_types()

    def test_add_transaction_for_member(self):
        household, state, _ = self.chat([
            '{"action": "addTransaction", "transaction": '
            '{"description": "Salary", "amount": 3000, "flow": "income", '
            '"category": "Salary", "person": "bruno"}}'
        ])

        asyncio.run(household.assistant.send(state, "Bruno got paid 3000"))

        [row] = household.stored()
        assert row["person"] == "Bruno"
        assert row["flow"] == "income"

    def test_update_transaction(self):
        household, state, _ = self.chat(
            ['{"action": "updateTransaction", "transactionUpdate": '
             '{"identifier": {"description": "mercado"}, "updates": {"amount": 120}}}'],
            seed=[("Mercado Extra", 100, 1), ("Bakery", 10, 2)],
        )

        reply = asyncio.run(household.assistant.send(state, "The market was 120"))

        market = [t for t in state.transactions if t.description == "Mercado Extra"][0]
        assert market.amount == 120
        assert market.date == dt.date(2026, 10, 1)
        assert reply.text == 'Ok, I updated the transaction "Mercado Extra".'

    def test_update_picks_most_recent_match(self):
        household, state, _ = self.chat(
            ['{"action": "updateTransaction", "transactionUpdate": '
             '{"identifier": {"description": "pizza"}, "updates": {"amount": 99}}}'],
            seed=[("Pizza Friday", 50, 3), ("Pizza Monday", 40, 7)],
        )

        asyncio.run(household.assistant.send(state, "Last pizza was 99"))

        amounts = {t.description: t.amount for t in state.transactions}
        assert amounts == {"Pizza Monday": 99, "Pizza Friday": 50}

    def test_update_without_match_does_not_write(self):
        household, state, _ = self.chat(
            ['{"action": "updateTransaction", "transactionUpdate": '
             '{"identifier": {"description": "gym"}, "updates": {"amount": 99}}}'],
            seed=[("Market", 100, 1)],
        )
        before = list(household.stored())

        reply = asyncio.run(household.assistant.send(state, "Gym was 99"))

        assert "gym" in reply.text
        assert household.stored() == before

    def test_delete_transaction(self):
        household, state, _ = self.chat(
            ['{"action": "deleteTransaction", "transactionIdentifier": {"description": "bakery"}}'],
            seed=[("Market", 100, 1), ("Bakery", 10, 2)],
        )

        reply = asyncio.run(household.assistant.send(state, "Delete the bakery"))

        assert [t.description for t in state.transactions] == ["Market"]
        assert [row["description"] for row in household.stored()] == ["Market"]
        assert reply.text == 'Ok, the transaction "Bakery" was deleted.'

    def test_match_only_within_recent_window(self):
        household, state, agent = self.chat(
            ['{"action": "deleteTransaction", "transactionIdentifier": {"description": "old"}}'],
            app_settings=AppSettings(chat_context_limit=1),
            seed=[("Old market", 100, 1), ("New market", 10, 2)],
        )

        asyncio.run(household.assistant.send(state, "Delete the old one"))

        assert len(household.stored()) == 2
        assert [t.description for t in agent.calls[0][2]] == ["New market"]

    def test_storage_failure_is_reported(self):
        household, state, _ = self.chat([
            '{"action": "addTransaction", "transaction": {"description": "Pizza", "amount": 60}}'
        ])
        household.db.fail_on.add("transactions")

        reply = asyncio.run(household.assistant.send(state, "Add pizza"))

        assert reply.text == "Sorry, I couldn't add that transaction."
        assert state.transactions == []

    def test_connection_failure(self):
        household = Household(ScriptedAssistant(error=AssistantUnavailableError("timeout")))
        state = household.load()

        reply = asyncio.run(household.assistant.send(state, "Hello"))

        assert reply.sender is ChatSender.SYSTEM
        assert reply.text == CONNECTION_ERROR_REPLY
        assert AuditEventType.EXTERNAL_SERVICE_ERROR in household.event_types()

    def test_disabled_assistant(self):
        household = Household(agent=None)
        state = household.load()

        reply = asyncio.run(household.assistant.send(state, "Hello"))

        assert reply.sender is ChatSender.SYSTEM
        assert reply.text == AI_DISABLED_REPLY
        assert not household.assistant.enabled

    def test_blank_message_is_ignored(self):
        household, state, agent = self.chat([])
        assert asyncio.run(household.assistant.send(state, "   ")) is None
        assert len(state.chat) == 1
        assert agent.calls == []

    def test_start_conversation(self):
        household, state, _ = self.chat(['{"action": "answerQuery", "answer": "Hi"}'])
        asyncio.run(household.assistant.send(state, "Hello"))

        household.assistant.start_conversation(state)

        assert [m.text for m in state.chat] == [GREETING]


class TestAppComponents:
    """Tests for the demo wiring."""

    def test_demo_components_end_to_end(self):
        components = create_app_components(use_storage=False, use_ai=False)
        assert not components.ai_enabled

        session = asyncio.run(components.session_flow.sign_up("ana@example.com", "secret1"))
        state = LedgerState()
        asyncio.run(components.household_loader.load(state, session))
        asyncio.run(components.transaction_flow.add(
            state, TransactionDraft(description="Market", amount=100)
        ))

        assert state.members[0].display_name == "Ana"
        assert len(state.transactions) == 1
