"""
Household Aggregations

DESIGN DECISION: Every number shown on the dashboard, reports, budget and
goal screens comes from the pure functions in this module.

They take plain lists of records, never touch storage or the AI, and return
the same output for the same input regardless of list order. That makes them
the one place where the arithmetic is tested exhaustively.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from household_ledger.models.finance import (
    BOTH_PERSON,
    Budget,
    FamilyMember,
    Flow,
    Goal,
    Transaction,
)


NO_CATEGORY = "None"

DEFAULT_WARNING_PERCENT = 80.0


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class MonthlySummary:
    """Totals for one month of transactions."""
    income: float
    expenses: float

    @property
    def net_balance(self) -> float:
        return self.income - self.expenses


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: float


@dataclass(frozen=True)
class CategoryReportRow:
    """One row of a report list, with its bar width relative to the largest."""
    category: str
    amount: float
    bar_percent: float


class BudgetStatus(str, Enum):
    OK = "ok"
    WARNING = "warning"
    OVER = "over"


@dataclass(frozen=True)
class BudgetProgress:
    """
    Spending against one budget.

    ``percent`` is the raw ratio and may exceed 100. ``bar_percent`` is
    clamped to 0..100 for progress bars.
    """
    budget_id: str
    category: str
    limit: float
    spent: float
    percent: float
    bar_percent: float
    remaining: float
    status: BudgetStatus

    @property
    def exceeded(self) -> bool:
        return self.spent > self.limit

    @property
    def exceeded_by(self) -> float:
        return abs(self.remaining) if self.exceeded else 0.0


@dataclass(frozen=True)
class GoalProgress:
    name: str
    current: float
    target: float
    percent: float
    bar_percent: float

    @property
    def rounded_percent(self) -> int:
        return round_half_up(self.percent)


# =============================================================================
# HELPERS
# =============================================================================

def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, like a progress label expects."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def clamp_percent(value: float) -> float:
    return max(0.0, min(value, 100.0))


def filter_month(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
) -> list[Transaction]:
    """Transactions dated within the given calendar month."""
    return [
        t for t in transactions
        if t.date.year == year and t.date.month == month
    ]


def sort_newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Date descending. Equal dates keep their original order."""
    return sorted(transactions, key=lambda t: t.date, reverse=True)


# =============================================================================
# TOTALS
# =============================================================================

def monthly_summary(transactions: Iterable[Transaction]) -> MonthlySummary:
    """Income and expense totals in a single pass."""
    income = 0.0
    expenses = 0.0
    for t in transactions:
        if t.flow is Flow.INCOME:
            income += t.amount
        else:
            expenses += t.amount
    return MonthlySummary(income=income, expenses=expenses)


def savings_rate(summary: MonthlySummary) -> float:
    """
    Net balance as a percentage of income.

    Zero when there is no income, whatever the expenses.
    """
    if summary.income == 0:
        return 0.0
    return summary.net_balance * 100 / summary.income


def category_totals(
    transactions: Iterable[Transaction],
    flow: Flow,
) -> dict[str, float]:
    """Sum of amounts per category for one flow."""
    totals: dict[str, float] = {}
    for t in transactions:
        if t.flow is not flow:
            continue
        totals[t.category] = totals.get(t.category, 0.0) + t.amount
    return totals


def _ranked(totals: dict[str, float]) -> list[tuple[str, float]]:
    # Largest first; ties broken by name so the order never depends on input order
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))


def top_expense_category(transactions: Iterable[Transaction]) -> CategoryTotal:
    """
    The expense category with the largest total.

    Returns the "None" sentinel with amount 0 when there are no expenses.
    """
    ranked = _ranked(category_totals(transactions, Flow.EXPENSE))
    if not ranked:
        return CategoryTotal(category=NO_CATEGORY, amount=0.0)
    category, amount = ranked[0]
    return CategoryTotal(category=category, amount=amount)


def category_report(totals: dict[str, float]) -> list[CategoryReportRow]:
    """Rows sorted by total, each with a bar width relative to the largest total."""
    ranked = _ranked(totals)
    if not ranked:
        return []
    largest = ranked[0][1]
    return [
        CategoryReportRow(
            category=category,
            amount=amount,
            bar_percent=clamp_percent(amount * 100 / largest) if largest > 0 else 0.0,
        )
        for category, amount in ranked
    ]


# =============================================================================
# PEOPLE
# =============================================================================

def person_split(
    transactions: Iterable[Transaction],
    members: list[FamilyMember],
) -> dict[str, float]:
    """
    Expense totals per household member.

    - Tagged to a member: the full amount goes to that member
    - Tagged "Both": the amount is shared evenly across the tracked members
      (half each for a couple)
    - Any other label is ignored
    """
    split = {member.display_name: 0.0 for member in members}
    if not split:
        return split

    share_count = len(split)
    for t in transactions:
        if t.flow is not Flow.EXPENSE:
            continue
        if t.person == BOTH_PERSON:
            share = t.amount / share_count
            for name in split:
                split[name] += share
        elif t.person in split:
            split[t.person] += t.amount
    return split


def top_spender(split: dict[str, float]) -> Optional[str]:
    """
    The member who spent the most.

    None with fewer than two members or when everybody spent the same.
    """
    if len(split) < 2:
        return None
    ranked = _ranked(split)
    if ranked[0][1] == ranked[1][1]:
        return None
    return ranked[0][0]


# =============================================================================
# PROGRESS
# =============================================================================

def budget_progress(
    budget: Budget,
    spent: float,
    warning_percent: float = DEFAULT_WARNING_PERCENT,
) -> BudgetProgress:
    """Compare spending in a category with its limit."""
    limit = budget.amount
    percent = spent * 100 / limit if limit > 0 else 0.0

    if spent > limit:
        status = BudgetStatus.OVER
    elif percent > warning_percent:
        status = BudgetStatus.WARNING
    else:
        status = BudgetStatus.OK

    return BudgetProgress(
        budget_id=budget.id,
        category=budget.category,
        limit=limit,
        spent=spent,
        percent=percent,
        bar_percent=clamp_percent(percent),
        remaining=limit - spent,
        status=status,
    )


def budgets_progress(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    warning_percent: float = DEFAULT_WARNING_PERCENT,
) -> list[BudgetProgress]:
    """Progress for every budget against the given (usually monthly) transactions."""
    spending = category_totals(transactions, Flow.EXPENSE)
    return [
        budget_progress(budget, spending.get(budget.category, 0.0), warning_percent)
        for budget in budgets
    ]


def goal_progress(goal: Goal) -> GoalProgress:
    """Saved amount as a percentage of the target. Zero target means 0 %."""
    target = goal.target_amount
    percent = goal.current_amount * 100 / target if target > 0 else 0.0
    return GoalProgress(
        name=goal.name,
        current=goal.current_amount,
        target=target,
        percent=percent,
        bar_percent=clamp_percent(percent),
    )
