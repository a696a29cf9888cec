"""Dashboard aggregation package."""

from brisk_insights.queries.dashboard import (
    balance_by_currency,
    budgets_with_spending,
    build_financial_context,
    expense_by_category,
    financial_summary,
    income_expense_by_currency,
    month_bounds,
    recent_transactions,
)

__all__ = [
    "balance_by_currency",
    "budgets_with_spending",
    "build_financial_context",
    "expense_by_category",
    "financial_summary",
    "income_expense_by_currency",
    "month_bounds",
    "recent_transactions",
]
