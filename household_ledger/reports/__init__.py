"""Aggregation package."""

from household_ledger.reports.aggregations import (
    NO_CATEGORY,
    BudgetProgress,
    BudgetStatus,
    CategoryReportRow,
    CategoryTotal,
    GoalProgress,
    MonthlySummary,
    budget_progress,
    budgets_progress,
    category_report,
    category_totals,
    filter_month,
    goal_progress,
    monthly_summary,
    person_split,
    savings_rate,
    sort_newest_first,
    top_expense_category,
    top_spender,
)

__all__ = [
    "NO_CATEGORY",
    "BudgetProgress",
    "BudgetStatus",
    "CategoryReportRow",
    "CategoryTotal",
    "GoalProgress",
    "MonthlySummary",
    "budget_progress",
    "budgets_progress",
    "category_report",
    "category_totals",
    "filter_month",
    "goal_progress",
    "monthly_summary",
    "person_split",
    "savings_rate",
    "sort_newest_first",
    "top_expense_category",
    "top_spender",
]
