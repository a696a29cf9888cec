"""
Dashboard Aggregations

DESIGN DECISION: Aggregation is DETERMINISTIC and pure.
Storage returns rows; these functions turn them into the numbers the
dashboard, the budgets page and the assistant's financial context show.
None of them touch storage, so they are trivially testable.

Amounts in different currencies are NEVER added together. Every total
is keyed by currency.
"""

import calendar
from collections import defaultdict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from brisk_insights.models.finance import (
    UNCATEGORIZED,
    Account,
    Budget,
    BudgetWithSpending,
    Category,
    CategorySpending,
    Currency,
    CurrencySummary,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")


def month_bounds(today: Optional[date] = None) -> tuple[date, date]:
    """
    First and last day of the month containing today.
    """
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def balance_by_currency(accounts: Iterable[Account]) -> dict[str, Decimal]:
    """Sum of account balances per currency."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for account in accounts:
        totals[account.currency.value] += account.balance
    return dict(totals)


def income_expense_by_currency(
    transactions: Iterable[Transaction],
) -> dict[str, tuple[Decimal, Decimal]]:
    """
    Income and expense totals per currency.

    Returns:
        {currency: (income, expense)}
    """
    income: dict[str, Decimal] = defaultdict(lambda: ZERO)
    expense: dict[str, Decimal] = defaultdict(lambda: ZERO)
    currencies: list[str] = []

    for tx in transactions:
        currency = tx.currency.value
        if currency not in currencies:
            currencies.append(currency)
        if tx.type == TransactionType.INCOME:
            income[currency] += tx.amount
        else:
            expense[currency] += tx.amount

    return {c: (income[c], expense[c]) for c in currencies}


def expense_by_category(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """
    Expense totals per category name, largest first.

    Transactions without a category are grouped under "Sin Categoría".
    """
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for tx in transactions:
        if tx.type != TransactionType.EXPENSE:
            continue
        totals[tx.category_name or UNCATEGORIZED] += tx.amount
    return dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))


def recent_transactions(
    transactions: Iterable[Transaction],
    limit: int = 5,
) -> list[Transaction]:
    """The newest transactions, by date."""
    ordered = sorted(transactions, key=lambda t: t.date, reverse=True)
    return ordered[:limit]


def budgets_with_spending(
    budgets: Iterable[Budget],
    expense_transactions: Iterable[Transaction],
    default_currency: Currency = Currency.UYU,
) -> list[BudgetWithSpending]:
    """
    Join each budget with what was spent in its category.

    Spending is keyed by category id. A budget's currency is the currency
    of the spending in its category (default UYU when nothing was spent).

    Args:
        budgets: Budgets of one month
        expense_transactions: That month's expense transactions
        default_currency: Currency shown for budgets with no spending
    """
    spent: dict[str, Decimal] = defaultdict(lambda: ZERO)
    currency_of: dict[str, Currency] = {}

    for tx in expense_transactions:
        if tx.type != TransactionType.EXPENSE or not tx.category_id:
            continue
        spent[tx.category_id] += tx.amount
        currency_of.setdefault(tx.category_id, tx.currency)

    return [
        BudgetWithSpending(
            **budget.model_dump(),
            spent=spent.get(budget.category_id, ZERO),
            currency=currency_of.get(budget.category_id, default_currency),
        )
        for budget in budgets
    ]


def financial_summary(
    transactions: Iterable[Transaction],
    top: int = 5,
) -> dict[str, CurrencySummary]:
    """
    Per-currency summary of a period.

    Each currency gets its income, expense, transaction count and the
    categories it spent the most on (largest first, at most `top`).
    """
    summaries: dict[str, CurrencySummary] = {}
    spending: dict[str, dict[str, Decimal]] = {}

    for tx in transactions:
        currency = tx.currency.value
        summary = summaries.get(currency)
        if summary is None:
            summary = summaries[currency] = CurrencySummary(currency=currency)
            spending[currency] = defaultdict(lambda: ZERO)

        summary.transaction_count += 1
        if tx.type == TransactionType.INCOME:
            summary.total_income += tx.amount
        else:
            summary.total_expense += tx.amount
            spending[currency][tx.category_name or UNCATEGORIZED] += tx.amount

    for currency, summary in summaries.items():
        ranked = sorted(spending[currency].items(), key=lambda item: item[1], reverse=True)
        summary.top_spending_categories = [
            CategorySpending(name=name, amount=amount) for name, amount in ranked[:top]
        ]

    return summaries


def build_financial_context(
    user_id: str,
    display_name: str,
    accounts: list[Account],
    categories: list[Category],
    budgets: list[Budget],
    month_transactions: list[Transaction],
    now: Optional[datetime] = None,
    top: int = 5,
) -> dict:
    """
    Snapshot of the user's finances in the shape the assistant workflow reads.

    Returns a JSON-serializable dict.
    """
    now = now or datetime.now(timezone.utc)
    summary = financial_summary(month_transactions, top=top)
    return {
        "user_id": user_id,
        "full_name": display_name,
        "accounts": [
            {"name": a.name, "currency": a.currency.value, "balance": float(a.balance)}
            for a in accounts
        ],
        "categories": [{"name": c.name} for c in categories],
        "budgets": [
            {
                "category": b.category_name,
                "amount": float(b.amount),
                "month": b.month.isoformat(),
            }
            for b in budgets
        ],
        "financial_summary": {
            currency: {
                "total_income": float(s.total_income),
                "total_expense": float(s.total_expense),
                "transaction_count": s.transaction_count,
                "net_savings": float(s.net_savings),
                "top_spending_categories": [
                    {"name": c.name, "amount": float(c.amount)}
                    for c in s.top_spending_categories
                ],
            }
            for currency, s in summary.items()
        },
        "current_date": now.isoformat(),
    }
