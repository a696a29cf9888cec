"""
Tests for dashboard aggregations.

Pure functions over rows. No storage involved.
"""

from datetime import date, datetime
from decimal import Decimal

from brisk_insights.models.finance import (
    Account,
    Budget,
    Category,
    Currency,
    Transaction,
    TransactionType,
)
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


def tx(
    amount,
    type=TransactionType.EXPENSE,
    currency=Currency.UYU,
    category_id="cat-food",
    category_name="Comida",
    day=10,
    id=None,
):
    return Transaction(
        id=id or f"tx-{amount}-{day}",
        account_id="acc-1",
        category_id=category_id,
        amount=Decimal(str(amount)),
        type=type,
        currency=currency,
        description="x",
        date=datetime(2025, 3, day),
        category_name=category_name,
    )


class TestMonthBounds:

    def test_regular_month(self):
        assert month_bounds(date(2025, 3, 17)) == (date(2025, 3, 1), date(2025, 3, 31))

    def test_leap_february(self):
        assert month_bounds(date(2024, 2, 5)) == (date(2024, 2, 1), date(2024, 2, 29))


class TestBalances:

    def test_balances_never_mix_currencies(self):
        accounts = [
            Account(id="a", user_id="u", name="BROU", currency=Currency.UYU, balance=Decimal("1000")),
            Account(id="b", user_id="u", name="Itaú", currency=Currency.UYU, balance=Decimal("250.50")),
            Account(id="c", user_id="u", name="Ahorro", currency=Currency.USD, balance=Decimal("300")),
        ]
        assert balance_by_currency(accounts) == {
            "UYU": Decimal("1250.50"),
            "USD": Decimal("300"),
        }

    def test_no_accounts(self):
        assert balance_by_currency([]) == {}


class TestIncomeExpense:

    def test_totals_per_currency(self):
        rows = [
            tx(100, TransactionType.INCOME),
            tx(30),
            tx(20, currency=Currency.USD),
        ]
        result = income_expense_by_currency(rows)
        assert result["UYU"] == (Decimal("100"), Decimal("30"))
        assert result["USD"] == (Decimal("0"), Decimal("20"))


class TestExpenseByCategory:

    def test_groups_and_sorts_descending(self):
        rows = [
            tx(10, category_name="Comida"),
            tx(50, category_name="Alquiler"),
            tx(15, category_name="Comida"),
            tx(999, TransactionType.INCOME, category_name="Sueldo"),
        ]
        result = expense_by_category(rows)
        assert list(result.items()) == [
            ("Alquiler", Decimal("50")),
            ("Comida", Decimal("25")),
        ]

    def test_uncategorized_bucket(self):
        result = expense_by_category([tx(5, category_id=None, category_name=None)])
        assert result == {"Sin Categoría": Decimal("5")}


class TestRecentTransactions:

    def test_newest_first_with_limit(self):
        rows = [tx(1, day=d) for d in (3, 20, 11, 7, 15, 1)]
        result = recent_transactions(rows, limit=3)
        assert [t.date.day for t in result] == [20, 15, 11]


class TestBudgetsWithSpending:

    def test_joins_spending_by_category(self):
        budgets = [
            Budget(id="b1", category_id="cat-food", amount=Decimal("100"), month=date(2025, 3, 1)),
            Budget(id="b2", category_id="cat-fun", amount=Decimal("50"), month=date(2025, 3, 1)),
        ]
        rows = [
            tx(80, category_id="cat-food"),
            tx(40, category_id="cat-food"),
            tx(500, TransactionType.INCOME, category_id="cat-fun"),
        ]

        food, fun = budgets_with_spending(budgets, rows)

        assert food.spent == Decimal("120")
        assert food.progress == 120.0
        assert food.is_over_budget
        assert fun.spent == Decimal("0")
        assert not fun.is_over_budget

    def test_currency_follows_spending(self):
        budgets = [Budget(id="b1", category_id="cat-food", amount=Decimal("10"), month=date(2025, 3, 1))]
        [budget] = budgets_with_spending(budgets, [tx(5, currency=Currency.USD)])
        assert budget.currency == Currency.USD

    def test_default_currency_without_spending(self):
        budgets = [Budget(id="b1", category_id="cat-food", amount=Decimal("10"), month=date(2025, 3, 1))]
        [budget] = budgets_with_spending(budgets, [], default_currency=Currency.USD)
        assert budget.currency == Currency.USD


class TestFinancialSummary:

    def test_per_currency_summary(self):
        rows = [
            tx(1000, TransactionType.INCOME, category_name="Sueldo"),
            tx(200, category_name="Comida"),
            tx(300, category_name="Alquiler"),
            tx(50, currency=Currency.USD, category_name="Viajes"),
        ]
        summary = financial_summary(rows)

        uyu = summary["UYU"]
        assert uyu.total_income == Decimal("1000")
        assert uyu.total_expense == Decimal("500")
        assert uyu.net_savings == Decimal("500")
        assert uyu.transaction_count == 3
        assert [c.name for c in uyu.top_spending_categories] == ["Alquiler", "Comida"]
        assert summary["USD"].total_expense == Decimal("50")

    def test_top_limit(self):
        rows = [tx(i, category_name=f"c{i}") for i in range(1, 8)]
        summary = financial_summary(rows, top=5)
        assert len(summary["UYU"].top_spending_categories) == 5
        assert summary["UYU"].top_spending_categories[0].name == "c7"


class TestFinancialContext:

    def test_context_shape(self):
        accounts = [Account(id="a", user_id="u", name="BROU", currency=Currency.UYU, balance=Decimal("10.5"))]
        categories = [Category(id="c", name="Comida", icon="Utensils")]
        budgets = [
            Budget(
                id="b",
                category_id="c",
                amount=Decimal("100"),
                month=date(2025, 3, 1),
                category_name="Comida",
            )
        ]
        now = datetime(2025, 3, 17, 12, 0)

        context = build_financial_context(
            "u", "Ana", accounts, categories, budgets, [tx(20)], now=now
        )

        assert context["user_id"] == "u"
        assert context["full_name"] == "Ana"
        assert context["accounts"] == [{"name": "BROU", "currency": "UYU", "balance": 10.5}]
        assert context["categories"] == [{"name": "Comida"}]
        assert context["budgets"] == [{"category": "Comida", "amount": 100.0, "month": "2025-03-01"}]
        assert context["financial_summary"]["UYU"]["total_expense"] == 20.0
        assert context["financial_summary"]["UYU"]["net_savings"] == -20.0
        assert context["current_date"] == "2025-03-17T12:00:00"

    def test_current_date_defaults_to_utc(self):
        context = build_financial_context("u", "Ana", [], [], [], [])

        stamp = datetime.fromisoformat(context["current_date"])
        assert stamp.tzinfo is not None
        assert stamp.utcoffset().total_seconds() == 0
        assert context["financial_summary"] == {}
