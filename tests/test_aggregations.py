"""
Tests for the report aggregations.

All of these are pure functions over in-memory lists.
"""

import datetime as dt

import pytest

from household_ledger.models.finance import (
    BOTH_PERSON,
    Budget,
    FamilyMember,
    Flow,
    Goal,
    Transaction,
)
from household_ledger.reports.aggregations import (
    NO_CATEGORY,
    BudgetStatus,
    MonthlySummary,
    budget_progress,
    budgets_progress,
    category_report,
    category_totals,
    filter_month,
    goal_progress,
    monthly_summary,
    person_split,
    round_half_up,
    savings_rate,
    sort_newest_first,
    top_expense_category,
    top_spender,
)


ANA = FamilyMember(id="u1", display_name="Ana")
BRUNO = FamilyMember(id="u2", display_name="Bruno")


def make_transaction(
    amount: float,
    flow: Flow = Flow.EXPENSE,
    category: str = "Food",
    person: str = BOTH_PERSON,
    date: dt.date = dt.date(2026, 10, 10),
    id: str = "1",
    description: str = "",
) -> Transaction:
    return Transaction(
        id=id,
        description=description,
        amount=amount,
        category=category,
        person=person,
        flow=flow,
        date=date,
    )


class TestMonthFiltering:
    """Tests for month filtering and ordering."""

    def test_filter_month(self):
        transactions = [
            make_transaction(10, date=dt.date(2026, 10, 1), id="a"),
            make_transaction(20, date=dt.date(2026, 9, 30), id="b"),
            make_transaction(30, date=dt.date(2025, 10, 15), id="c"),
            make_transaction(40, date=dt.date(2026, 10, 31), id="d"),
        ]
        assert [t.id for t in filter_month(transactions, 2026, 10)] == ["a", "d"]

    def test_sort_newest_first_is_stable(self):
        transactions = [
            make_transaction(1, date=dt.date(2026, 10, 1), id="old"),
            make_transaction(1, date=dt.date(2026, 10, 5), id="first"),
            make_transaction(1, date=dt.date(2026, 10, 5), id="second"),
        ]
        assert [t.id for t in sort_newest_first(transactions)] == ["first", "second", "old"]


class TestMonthlySummary:
    """Tests for income / expense totals and the savings rate."""

    def test_reference_month(self):
        """Income 3000 and expenses 2000 give net 1000 and a 33.3 % rate."""
        transactions = [
            make_transaction(3000, flow=Flow.INCOME, category="Salary"),
            make_transaction(1200, category="Housing"),
            make_transaction(800, category="Food"),
        ]
        summary = monthly_summary(transactions)
        assert summary.income == 3000
        assert summary.expenses == 2000
        assert summary.net_balance == 1000
        assert round(savings_rate(summary), 1) == 33.3

    def test_empty_month(self):
        summary = monthly_summary([])
        assert summary == MonthlySummary(income=0.0, expenses=0.0)
        assert summary.net_balance == 0

    def test_savings_rate_zero_without_income(self):
        summary = monthly_summary([make_transaction(500)])
        assert summary.net_balance == -500
        assert savings_rate(summary) == 0.0

    def test_negative_savings_rate(self):
        summary = MonthlySummary(income=1000, expenses=1500)
        assert savings_rate(summary) == pytest.approx(-50.0)

    @pytest.mark.parametrize("split_at", [0, 1, 2, 3, 4])
    def test_net_is_consistent_for_any_partition(self, split_at):
        transactions = [
            make_transaction(3000, flow=Flow.INCOME, category="Salary"),
            make_transaction(120.5),
            make_transaction(700, flow=Flow.INCOME, category="Freelance"),
            make_transaction(99.9, category="Pharmacy"),
        ]
        whole = monthly_summary(transactions)
        left = monthly_summary(transactions[:split_at])
        right = monthly_summary(transactions[split_at:])
        assert whole.income - whole.expenses == pytest.approx(whole.net_balance)
        assert left.net_balance + right.net_balance == pytest.approx(whole.net_balance)


class TestCategoryTotals:
    """Tests for category totals, top category and report rows."""

    def test_totals_by_flow(self):
        transactions = [
            make_transaction(100, category="Food"),
            make_transaction(50, category="Food"),
            make_transaction(300, category="Housing"),
            make_transaction(3000, flow=Flow.INCOME, category="Salary"),
        ]
        assert category_totals(transactions, Flow.EXPENSE) == {"Food": 150, "Housing": 300}
        assert category_totals(transactions, Flow.INCOME) == {"Salary": 3000}

    def test_top_expense_category(self):
        transactions = [
            make_transaction(100, category="Food"),
            make_transaction(300, category="Housing"),
            make_transaction(5000, flow=Flow.INCOME, category="Salary"),
        ]
        top = top_expense_category(transactions)
        assert top.category == "Housing"
        assert top.amount == 300

    def test_top_expense_category_without_expenses(self):
        top = top_expense_category([make_transaction(100, flow=Flow.INCOME)])
        assert top.category == NO_CATEGORY
        assert top.amount == 0

    def test_top_expense_category_is_order_independent(self):
        """Ties are broken by name, so reordering never changes the answer."""
        transactions = [
            make_transaction(100, category="Transport"),
            make_transaction(100, category="Food"),
            make_transaction(40, category="Leisure"),
        ]
        forward = top_expense_category(transactions)
        backward = top_expense_category(list(reversed(transactions)))
        assert forward == backward
        assert forward.category == "Food"

    def test_category_report_bars_relative_to_largest(self):
        rows = category_report({"Food": 50, "Housing": 200, "Leisure": 100})
        assert [row.category for row in rows] == ["Housing", "Leisure", "Food"]
        assert [row.bar_percent for row in rows] == [100.0, 50.0, 25.0]

    def test_category_report_empty(self):
        assert category_report({}) == []


class TestPersonSplit:
    """Tests for per-person expense totals."""

    def test_both_is_split_in_half(self):
        split = person_split([make_transaction(100, person=BOTH_PERSON)], [ANA, BRUNO])
        assert split == {"Ana": 50, "Bruno": 50}

    def test_single_person_only(self):
        split = person_split([make_transaction(80, person="Ana")], [ANA, BRUNO])
        assert split == {"Ana": 80, "Bruno": 0}

    def test_income_is_ignored(self):
        split = person_split(
            [make_transaction(3000, flow=Flow.INCOME, person="Ana")],
            [ANA, BRUNO],
        )
        assert split == {"Ana": 0, "Bruno": 0}

    def test_unknown_person_is_ignored(self):
        split = person_split([make_transaction(10, person="Carla")], [ANA, BRUNO])
        assert split == {"Ana": 0, "Bruno": 0}

    def test_single_member_gets_whole_shared_amount(self):
        split = person_split([make_transaction(100, person=BOTH_PERSON)], [ANA])
        assert split == {"Ana": 100}

    def test_no_members(self):
        assert person_split([make_transaction(100)], []) == {}

    def test_top_spender(self):
        assert top_spender({"Ana": 300, "Bruno": 120}) == "Ana"
        assert top_spender({"Ana": 100, "Bruno": 100}) is None
        assert top_spender({"Ana": 100}) is None


class TestBudgetProgress:
    """Tests for budget progress."""

    def test_remaining_is_limit_minus_spent(self):
        progress = budget_progress(Budget(id="1", category="Food", amount=500), 320)
        assert progress.remaining == 180
        assert progress.percent == pytest.approx(64.0)
        assert progress.status == BudgetStatus.OK

    def test_exactly_at_limit_is_not_exceeded(self):
        progress = budget_progress(Budget(id="1", category="Food", amount=500), 500)
        assert not progress.exceeded
        assert progress.remaining == 0
        assert progress.status == BudgetStatus.WARNING

    def test_just_above_limit_is_exceeded(self):
        progress = budget_progress(Budget(id="1", category="Food", amount=500), 500.01)
        assert progress.exceeded
        assert progress.exceeded_by == pytest.approx(0.01)
        assert progress.status == BudgetStatus.OVER
        assert progress.bar_percent == 100.0

    def test_warning_threshold_is_exclusive(self):
        budget = Budget(id="1", category="Food", amount=500)
        assert budget_progress(budget, 400).status == BudgetStatus.OK
        assert budget_progress(budget, 401).status == BudgetStatus.WARNING
        assert budget_progress(budget, 300, warning_percent=50).status == BudgetStatus.WARNING

    def test_duplicate_categories_keep_their_own_rows(self):
        budgets = [
            Budget(id="1", category="Food", amount=500),
            Budget(id="2", category="Food", amount=300),
        ]
        progress = budgets_progress(budgets, [make_transaction(100, category="Food")])
        assert [p.budget_id for p in progress] == ["1", "2"]
        assert [p.remaining for p in progress] == [400, 200]

    def test_budgets_progress_uses_expenses_only(self):
        budgets = [
            Budget(id="1", category="Food", amount=500),
            Budget(id="2", category="Leisure", amount=200),
        ]
        transactions = [
            make_transaction(300, category="Food"),
            make_transaction(1000, flow=Flow.INCOME, category="Other"),
        ]
        progress = budgets_progress(budgets, transactions)
        assert [(p.category, p.spent) for p in progress] == [("Food", 300), ("Leisure", 0)]


class TestGoalProgress:
    """Tests for savings goal progress."""

    def test_reference_goal(self):
        """Target 10000 with 4500 saved is 45 %."""
        progress = goal_progress(Goal(id="1", name="Trip", target_amount=10000, current_amount=4500))
        assert progress.percent == pytest.approx(45.0)
        assert progress.rounded_percent == 45

    def test_zero_target(self):
        progress = goal_progress(Goal(id="1", name="Trip", target_amount=0, current_amount=10))
        assert progress.percent == 0.0

    def test_overshoot_bar_is_clamped(self):
        progress = goal_progress(Goal(id="1", name="Trip", target_amount=100, current_amount=150))
        assert progress.percent == pytest.approx(150.0)
        assert progress.bar_percent == 100.0

    def test_round_half_up(self):
        assert round_half_up(44.5) == 45
        assert round_half_up(44.49) == 44
        assert round_half_up(0.5) == 1
