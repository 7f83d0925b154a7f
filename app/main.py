"""
Streamlit Frontend for Household Ledger

This is the interface a couple uses daily to track their money together.

DESIGN PRINCIPLES:
1. One screen per job, picked from the sidebar
2. Every write is an explicit button press
3. Clear error messages in simple language
4. Nothing changes on screen unless the backend accepted it
5. The assistant's changes are reported in the chat, never hidden

All state lives in one LedgerState object kept in st.session_state and
handed to the flows.
"""

import asyncio
import datetime as dt

import streamlit as st
from pydantic import ValidationError

from household_ledger.config import validate_all_settings
from household_ledger.formatting import format_currency, format_short_date
from household_ledger.models.finance import (
    EXPENSE_CATEGORIES,
    ChatSender,
    Flow,
    GoalChanges,
    Theme,
    TransactionChanges,
    TransactionDraft,
    TransactionKind,
    categories_for,
    person_options,
)
from household_ledger.orchestrator import (
    AppComponents,
    HouseholdNotFoundError,
    LedgerState,
    MissingHouseholdError,
    Screen,
    SessionWatcher,
    create_app_components,
)
from household_ledger.parsing import parse_bulk_text
from household_ledger.reports import (
    BudgetStatus,
    budgets_progress,
    category_report,
    category_totals,
    goal_progress,
    monthly_summary,
    person_split,
    savings_rate,
    top_expense_category,
    top_spender,
)
from household_ledger.services.auth import AuthError
from household_ledger.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Household Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

LIGHT_CSS = """
<style>
    .stButton>button { width: 100%; }
    .income { color: #28a745; font-weight: bold; }
    .expense { color: #dc3545; font-weight: bold; }
    .muted { color: #6c757d; font-size: 0.85em; }
</style>
"""

DARK_CSS = """
<style>
    .stApp { background-color: #121212; color: #e0e0e0; }
    [data-testid="stSidebar"] { background-color: #1e1e1e; }
    .stButton>button { width: 100%; }
    .income { color: #5cd67a; font-weight: bold; }
    .expense { color: #ff6b6b; font-weight: bold; }
    .muted { color: #9e9e9e; font-size: 0.85em; }
</style>
"""


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_components(demo: bool = False) -> AppComponents:
    """
    Get or create application components for this browser session.

    Kept per session rather than per process: the backend client carries
    the signed-in user's token.
    """
    key = "components_demo" if demo else "components"
    if key not in st.session_state:
        st.session_state[key] = create_app_components(use_storage=not demo)
    return st.session_state[key]


def get_ledger(components: AppComponents) -> LedgerState:
    if "ledger" not in st.session_state:
        ledger = LedgerState()
        ledger.theme = components.theme_store.load(fallback=_browser_theme())
        st.session_state.ledger = ledger
        st.session_state.session_watcher = SessionWatcher(components.session_flow, ledger)
    return st.session_state.ledger


def _browser_theme():
    """The browser/OS theme, when Streamlit exposes it."""
    theme = getattr(st.context, "theme", None)
    theme_type = getattr(theme, "type", None)
    return Theme.DARK if theme_type == "dark" else None


def show_error(prefix: str, error: Exception):
    if isinstance(error, ValidationError):
        details = "; ".join(err["msg"] for err in error.errors())
        st.error(f"{prefix}: {details}")
    else:
        st.error(f"{prefix}: {error}")


def main():
    """Main application entry point."""
    status = validate_all_settings()
    demo = st.session_state.get("demo", False)

    if not status.get("supabase") and not demo:
        render_config_error_page(status)
        return

    components = get_components(demo=demo)
    ledger = get_ledger(components)
    st.markdown(DARK_CSS if ledger.theme is Theme.DARK else LIGHT_CSS, unsafe_allow_html=True)

    pending = st.session_state.session_watcher.take_pending()
    if pending is not None and not load_household(components, ledger, pending):
        return

    if not ledger.is_authenticated:
        session = run_async(components.session_flow.current_session())
        if session is None:
            render_auth_page(components, ledger)
            return
        if not load_household(components, ledger, session):
            return

    render_sidebar(components, ledger)

    if not components.ai_enabled:
        st.warning("⚠️ The Gemini API key is not configured. AI features are disabled.")

    if ledger.screen is Screen.DASHBOARD:
        render_dashboard(ledger)
    elif ledger.screen is Screen.TRANSACTIONS:
        render_transactions_page(components, ledger)
    elif ledger.screen is Screen.MULTIPLE:
        render_multiple_page(components, ledger)
    elif ledger.screen is Screen.REPORTS:
        render_reports_page(components, ledger)
    elif ledger.screen is Screen.BUDGETS:
        render_budgets_page(components, ledger)
    elif ledger.screen is Screen.GOALS:
        render_goals_page(components, ledger)
    elif ledger.screen is Screen.CHAT:
        render_chat_page(components, ledger)


def load_household(components: AppComponents, ledger: LedgerState, session) -> bool:
    """Load the household for ``session``. Returns False (after explaining) on failure."""
    try:
        with st.spinner("Loading your household..."):
            run_async(components.household_loader.load(ledger, session))
        return True
    except HouseholdNotFoundError as e:
        st.warning(f"🏠 {e} Ask your partner to invite you, then sign in again.")
    except StorageError as e:
        st.error(f"Could not load your data: {e}")

    if st.button("Sign out"):
        run_async(components.session_flow.sign_out(ledger))
        st.rerun()
    return False


# =============================================================================
# AUTH AND LAYOUT
# =============================================================================

def render_auth_page(components: AppComponents, ledger: LedgerState):
    st.title("💰 Household Ledger")
    st.markdown("Your money, managed together.")

    sign_in_tab, sign_up_tab = st.tabs(["Sign in", "Create account"])

    with sign_in_tab:
        with st.form("sign_in"):
            email = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Sign in", type="primary")
        if submitted:
            try:
                session = run_async(components.session_flow.sign_in(email, password))
            except AuthError as e:
                st.error(f"Sign in failed: {e}")
            else:
                if load_household(components, ledger, session):
                    st.rerun()

    with sign_up_tab:
        with st.form("sign_up"):
            name = st.text_input("Your name", help="Shown on your transactions")
            email = st.text_input("Email", key="sign_up_email")
            password = st.text_input("Password", type="password", key="sign_up_password")
            submitted = st.form_submit_button("Create account", type="primary")
        if submitted:
            try:
                session = run_async(components.session_flow.sign_up(email, password, name))
            except AuthError as e:
                st.error(f"Sign up failed: {e}")
            else:
                if session is None:
                    st.success("✅ Account created. Check your email to confirm it, then sign in.")
                elif load_household(components, ledger, session):
                    st.rerun()


def render_sidebar(components: AppComponents, ledger: LedgerState):
    st.sidebar.title("💰 Household Ledger")
    member = ledger.current_member()
    if member is not None:
        st.sidebar.markdown(f"Hi, **{member.display_name}**!")
    st.sidebar.markdown("---")

    screens = list(Screen)
    selected = st.sidebar.radio(
        "Navigate to:",
        screens,
        index=screens.index(ledger.screen),
        format_func=lambda s: s.label,
    )
    if selected is not ledger.screen:
        ledger.screen = selected
        st.rerun()

    st.sidebar.markdown("---")
    theme_label = "🌙 Dark mode" if ledger.theme is Theme.LIGHT else "☀️ Light mode"
    if st.sidebar.button(theme_label):
        ledger.theme = components.theme_store.toggle(ledger.theme)
        st.rerun()
    if st.sidebar.button("🚪 Sign out"):
        try:
            run_async(components.session_flow.sign_out(ledger))
        except AuthError as e:
            st.sidebar.error(f"Sign out failed on the server: {e}")
        st.rerun()

    if components.app_settings.debug_mode:
        with st.sidebar.expander("Recent activity"):
            for event in reversed(components.audit_logger.recent_events[-10:]):
                st.caption(f"{event.event_type.value}: {event.description}")


def render_month_navigator(ledger: LedgerState):
    prev_col, label_col, next_col = st.columns([1, 3, 1])
    with prev_col:
        if st.button("◀", key=f"prev_month_{ledger.screen.value}"):
            ledger.change_month(-1)
            st.rerun()
    with label_col:
        st.markdown(f"### {ledger.month_label}")
    with next_col:
        if st.button("▶", key=f"next_month_{ledger.screen.value}"):
            ledger.change_month(1)
            st.rerun()


def render_transaction_line(transaction):
    sign = "+" if transaction.is_income else "-"
    css = "income" if transaction.is_income else "expense"
    pin = " 📌" if transaction.kind is TransactionKind.FIXED else ""
    st.markdown(
        f"**{transaction.description}**{pin} "
        f"<span class='{css}'>{sign}{format_currency(transaction.amount)}</span><br>"
        f"<span class='muted'>{transaction.person} · {transaction.category} · "
        f"{format_short_date(transaction.date)}</span>",
        unsafe_allow_html=True,
    )


# =============================================================================
# SCREENS
# =============================================================================

def render_dashboard(ledger: LedgerState):
    st.title("📊 Dashboard")
    render_month_navigator(ledger)

    month = ledger.month_transactions()
    summary = monthly_summary(month)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Income", format_currency(summary.income))
    col2.metric("Expenses", format_currency(summary.expenses))
    col3.metric("Balance", format_currency(summary.net_balance))
    col4.metric("Savings rate", f"{savings_rate(summary):.1f}%")

    top = top_expense_category(month)
    st.markdown(f"**Top expense category:** {top.category} ({format_currency(top.amount)})")

    split = person_split(month, ledger.members)
    if split:
        st.markdown("### Who spent what")
        for name, amount in split.items():
            st.markdown(f"- {name}: {format_currency(amount)}")
        spender = top_spender(split)
        if spender:
            st.caption(f"{spender} spent the most this month.")

    st.markdown("### Latest transactions")
    if not month:
        st.info("No transactions this month yet.")
    for transaction in month[:5]:
        render_transaction_line(transaction)


def render_transactions_page(components: AppComponents, ledger: LedgerState):
    flow_engine = components.transaction_flow
    editing_id = st.session_state.get("editing_transaction_id")
    editing = next((t for t in ledger.transactions if t.id == editing_id), None)

    st.title("✏️ Edit Transaction" if editing else "➕ Add Transaction")

    flow = st.radio(
        "Type",
        list(Flow),
        index=list(Flow).index(editing.flow) if editing else 1,
        format_func=lambda f: f.label,
        horizontal=True,
    )
    categories = categories_for(flow)
    people = person_options(ledger.members)
    member = ledger.current_member()
    default_person = editing.person if editing else (member.display_name if member else people[-1])

    with st.form(f"transaction_{editing.id if editing else 'new'}", clear_on_submit=True):
        description = st.text_input("Description", value=editing.description if editing else "")
        amount = st.number_input(
            "Amount (R$)",
            min_value=0.0,
            step=0.01,
            format="%.2f",
            value=float(editing.amount) if editing else 0.0,
        )
        category = st.selectbox(
            "Category",
            categories,
            index=categories.index(editing.category) if editing and editing.category in categories else 0,
        )
        col1, col2 = st.columns(2)
        with col1:
            person = st.selectbox(
                "Person",
                people,
                index=people.index(default_person) if default_person in people else len(people) - 1,
            )
        with col2:
            kinds = list(TransactionKind)
            kind = st.selectbox(
                "Recurrence",
                kinds,
                index=kinds.index(editing.kind) if editing else kinds.index(TransactionKind.VARIABLE),
                format_func=lambda k: k.label,
            )
        submitted = st.form_submit_button("Save changes" if editing else "Add", type="primary")

    if submitted:
        try:
            if editing:
                changes = TransactionChanges(
                    description=description,
                    amount=amount,
                    category=category,
                    person=person,
                    kind=kind,
                    flow=flow,
                )
                run_async(flow_engine.update(ledger, editing.id, changes))
                st.session_state.editing_transaction_id = None
                st.success("✅ Transaction updated.")
            else:
                draft = TransactionDraft(
                    description=description,
                    amount=amount,
                    category=category,
                    person=person,
                    kind=kind,
                    flow=flow,
                )
                run_async(flow_engine.add(ledger, draft))
                st.success("✅ Transaction added.")
            st.rerun()
        except (ValidationError, StorageError, MissingHouseholdError) as e:
            show_error("Could not save the transaction", e)

    if editing and st.button("Cancel editing"):
        st.session_state.editing_transaction_id = None
        st.rerun()

    st.markdown("---")
    st.subheader("Full history")
    if not ledger.transactions:
        st.info("No transactions yet.")
    for transaction in ledger.transactions:
        col1, col2, col3 = st.columns([6, 1, 1])
        with col1:
            render_transaction_line(transaction)
        with col2:
            if st.button("Edit", key=f"edit_{transaction.id}"):
                st.session_state.editing_transaction_id = transaction.id
                st.rerun()
        with col3:
            if st.button("Delete", key=f"delete_{transaction.id}"):
                st.session_state.confirm_delete_id = transaction.id
                st.rerun()
        if st.session_state.get("confirm_delete_id") == transaction.id:
            st.warning(f"Delete \"{transaction.description}\"?")
            yes_col, no_col = st.columns(2)
            if yes_col.button("Yes, delete", key=f"confirm_{transaction.id}"):
                try:
                    run_async(flow_engine.delete(ledger, transaction.id))
                except (StorageError, MissingHouseholdError) as e:
                    show_error("Could not delete the transaction", e)
                else:
                    st.session_state.confirm_delete_id = None
                    st.rerun()
            if no_col.button("Cancel", key=f"cancel_{transaction.id}"):
                st.session_state.confirm_delete_id = None
                st.rerun()


def render_multiple_page(components: AppComponents, ledger: LedgerState):
    st.title("📝 Add Multiple Expenses")
    st.markdown("Paste one expense per line, like `Supermarket: R$ 350,50`.")

    text = st.text_area("Expenses", height=200, placeholder="Supermarket: R$ 350,50\nBakery: R$ 25,00")
    if st.button("🔍 Read lines"):
        result = parse_bulk_text(text)
        st.session_state.bulk_drafts = result.drafts
        st.session_state.bulk_skipped = result.skipped

    drafts = st.session_state.get("bulk_drafts", [])
    skipped = st.session_state.get("bulk_skipped", [])
    if skipped:
        st.warning("These lines were not understood and will be ignored:\n\n" + "\n".join(f"- {line}" for line in skipped))
    if not drafts:
        return

    st.markdown("### Review")
    people = person_options(ledger.members)
    kinds = list(TransactionKind)
    completed = []
    for index, draft in enumerate(drafts):
        col1, col2, col3, col4 = st.columns([3, 2, 2, 2])
        col1.markdown(f"**{draft.description}**<br>{format_currency(draft.amount)}", unsafe_allow_html=True)
        category = col2.selectbox(
            "Category", EXPENSE_CATEGORIES,
            index=EXPENSE_CATEGORIES.index(draft.category),
            key=f"bulk_category_{index}",
        )
        person = col3.selectbox(
            "Person", people, index=len(people) - 1, key=f"bulk_person_{index}",
        )
        kind = col4.selectbox(
            "Recurrence", kinds, index=kinds.index(draft.kind),
            format_func=lambda k: k.label, key=f"bulk_kind_{index}",
        )
        completed.append(draft.model_copy(update={
            "category": category,
            "person": person,
            "kind": kind,
            "date": dt.date.today(),
        }))

    if st.button(f"💾 Save {len(completed)} expenses", type="primary"):
        try:
            run_async(components.transaction_flow.add_many(ledger, completed))
        except (StorageError, MissingHouseholdError) as e:
            show_error("Could not save the expenses", e)
        else:
            st.session_state.bulk_drafts = []
            st.session_state.bulk_skipped = []
            st.success(f"✅ {len(completed)} expenses saved.")
            st.rerun()


def render_category_report(title: str, totals: dict, css: str):
    rows = category_report(totals)
    if not rows:
        return
    st.markdown(f"### {title}")
    for row in rows:
        st.markdown(f"{row.category}: <span class='{css}'>{format_currency(row.amount)}</span>", unsafe_allow_html=True)
        st.progress(int(row.bar_percent))


def render_reports_page(components: AppComponents, ledger: LedgerState):
    st.title("📈 Reports")
    render_month_navigator(ledger)

    month = ledger.month_transactions()
    if st.button("✨ Get an AI insight", disabled=not components.insight_flow.enabled):
        with st.spinner("Thinking..."):
            st.session_state.insight = run_async(components.insight_flow.insight(ledger))
    if st.session_state.get("insight"):
        st.info(st.session_state.insight)

    render_category_report("Expenses by category", category_totals(month, Flow.EXPENSE), "expense")
    render_category_report("Income by category", category_totals(month, Flow.INCOME), "income")

    split = person_split(month, ledger.members)
    if split:
        st.markdown("### Expenses by person")
        for name, amount in split.items():
            st.markdown(f"- {name}: {format_currency(amount)}")

    if not month:
        st.info("No transactions this month.")


def render_budgets_page(components: AppComponents, ledger: LedgerState):
    st.title("🎯 Budgets")
    render_month_navigator(ledger)

    with st.form("budget", clear_on_submit=True):
        st.markdown("**Set a spending limit**")
        category = st.selectbox("Category", EXPENSE_CATEGORIES)
        amount = st.number_input("Monthly limit (R$)", min_value=0.0, step=10.0, format="%.2f")
        submitted = st.form_submit_button("Save", type="primary")
    if submitted:
        try:
            run_async(components.budget_flow.set(ledger, category, amount))
        except (ValidationError, StorageError, MissingHouseholdError) as e:
            show_error("Could not save the budget", e)
        else:
            st.rerun()

    progress_list = budgets_progress(
        ledger.budgets,
        ledger.month_transactions(),
        components.app_settings.budget_warning_percent,
    )
    if not progress_list:
        st.info("No spending limits set yet.")

    for progress in progress_list:
        col1, col2 = st.columns([6, 1])
        with col1:
            st.markdown(
                f"**{progress.category}**: {format_currency(progress.spent)} "
                f"of {format_currency(progress.limit)}"
            )
            st.progress(int(progress.bar_percent))
            if progress.status is BudgetStatus.OVER:
                st.error(f"Over budget by {format_currency(progress.exceeded_by)}")
            elif progress.status is BudgetStatus.WARNING:
                st.warning(f"{progress.percent:.0f}% used, {format_currency(progress.remaining)} left")
            else:
                st.caption(f"{format_currency(progress.remaining)} left")
        with col2:
            if st.button("Delete", key=f"delete_budget_{progress.budget_id}"):
                try:
                    run_async(components.budget_flow.delete(ledger, progress.budget_id))
                except (StorageError, MissingHouseholdError) as e:
                    show_error("Could not delete the budget", e)
                else:
                    st.rerun()


def render_goals_page(components: AppComponents, ledger: LedgerState):
    st.title("🏆 Goals")

    with st.form("new_goal", clear_on_submit=True):
        st.markdown("**New goal**")
        name = st.text_input("What are you saving for?")
        target = st.number_input("Target (R$)", min_value=0.0, step=100.0, format="%.2f")
        submitted = st.form_submit_button("Add goal", type="primary")
    if submitted:
        try:
            run_async(components.goal_flow.add(ledger, name, target))
        except (ValidationError, StorageError, MissingHouseholdError) as e:
            show_error("Could not save the goal", e)
        else:
            st.rerun()

    if not ledger.goals:
        st.info("No goals defined yet.")

    for goal in ledger.goals:
        progress = goal_progress(goal)
        st.markdown(
            f"**{goal.name}**: {format_currency(progress.current)} of "
            f"{format_currency(progress.target)} ({progress.rounded_percent}%)"
        )
        st.progress(int(progress.bar_percent))
        with st.expander("Edit"):
            with st.form(f"goal_{goal.id}"):
                new_name = st.text_input("Name", value=goal.name)
                new_target = st.number_input("Target (R$)", min_value=0.0, value=float(goal.target_amount), format="%.2f")
                new_current = st.number_input("Saved so far (R$)", min_value=0.0, value=float(goal.current_amount), format="%.2f")
                col1, col2 = st.columns(2)
                save = col1.form_submit_button("Save")
                delete = col2.form_submit_button("Delete")
            if save:
                try:
                    changes = GoalChanges(
                        name=new_name,
                        target_amount=new_target,
                        current_amount=new_current,
                    )
                    run_async(components.goal_flow.update(ledger, goal.id, changes))
                except (ValidationError, StorageError, MissingHouseholdError) as e:
                    show_error("Could not update the goal", e)
                else:
                    st.rerun()
            if delete:
                try:
                    run_async(components.goal_flow.delete(ledger, goal.id))
                except (StorageError, MissingHouseholdError) as e:
                    show_error("Could not delete the goal", e)
                else:
                    st.rerun()

    st.markdown("---")
    if st.button("💡 Get a suggestion", disabled=not components.insight_flow.enabled):
        with st.spinner("Thinking..."):
            st.session_state.suggestion = run_async(components.insight_flow.suggestion(ledger))
    if st.session_state.get("suggestion"):
        st.info(st.session_state.suggestion)


def render_chat_page(components: AppComponents, ledger: LedgerState):
    st.title("💬 Chat with Fin")

    avatars = {ChatSender.USER: "user", ChatSender.AI: "assistant", ChatSender.SYSTEM: "⚠️"}
    for message in ledger.chat:
        with st.chat_message(avatars[message.sender]):
            st.markdown(message.text)

    prompt = st.chat_input(
        "Type your message...",
        disabled=not components.assistant_flow.enabled,
    )
    if prompt:
        with st.spinner("Fin is thinking..."):
            run_async(components.assistant_flow.send(ledger, prompt))
        st.rerun()

    if not components.assistant_flow.enabled:
        st.caption("The Gemini API key is not configured. Chat is disabled.")


def render_config_error_page(status: dict):
    """Shown instead of the app when the backend is not configured."""
    st.title("⚙️ Configuration needed")
    st.error(
        "❌ Supabase is not configured: "
        f"{status.get('supabase_error', 'Not configured')}"
    )
    if status.get("gemini"):
        st.success("✅ Gemini (AI) - Configured")
    else:
        st.warning(f"⚠️ Gemini (AI) - {status.get('gemini_error', 'Not configured')}")

    st.markdown("---")
    st.markdown(
        "To configure the application, create a `.env` file with your keys. "
        "See `.env.example` for the required variables."
    )
    if st.button("Try a demo session (nothing is saved)"):
        st.session_state.demo = True
        st.rerun()


if __name__ == "__main__":
    main()
