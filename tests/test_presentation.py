"""Tests for display helpers."""

from datetime import datetime
from decimal import Decimal

from brisk_insights.models.finance import Currency, Transaction, TransactionType
from brisk_insights.presentation import (
    CATEGORY_ICONS,
    category_icon,
    format_currency,
    format_transaction_amount,
)


class TestCategoryIcon:

    def test_known_icon(self):
        assert category_icon("ShoppingCart") == CATEGORY_ICONS["ShoppingCart"]

    def test_unknown_icon_uses_default(self):
        assert category_icon("NoSuchIcon") == CATEGORY_ICONS["Package"]

    def test_missing_icon_uses_default(self):
        assert category_icon(None) == CATEGORY_ICONS["Package"]
        assert category_icon("") == CATEGORY_ICONS["Package"]


class TestFormatCurrency:

    def test_pesos(self):
        assert format_currency(Decimal("1234.5"), Currency.UYU) == "$ 1.234,50"

    def test_dollars(self):
        assert format_currency(Decimal("99"), "USD") == "US$ 99,00"

    def test_negative(self):
        assert format_currency(Decimal("-1500000"), "UYU") == "-$ 1.500.000,00"

    def test_rounds_half_up(self):
        assert format_currency(Decimal("0.005"), "UYU") == "$ 0,01"

    def test_unknown_code_is_used_as_symbol(self):
        assert format_currency(10, "EUR") == "EUR 10,00"


class TestFormatTransactionAmount:

    def _tx(self, type):
        return Transaction(
            id="t",
            account_id="a",
            amount=Decimal("250"),
            type=type,
            currency=Currency.UYU,
            date=datetime(2025, 3, 1),
        )

    def test_income_is_positive(self):
        assert format_transaction_amount(self._tx(TransactionType.INCOME)) == "+$ 250,00"

    def test_expense_is_negative(self):
        assert format_transaction_amount(self._tx(TransactionType.EXPENSE)) == "-$ 250,00"
