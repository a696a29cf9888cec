"""
Presentation Helpers

Display-only lookups and formatting shared by the UI pages.

Category icons are stored by name (Lucide icon names such as "Wallet" or
"ShoppingCart"). The UI renders them through a lookup table with an
explicit default entry, so an unknown or misspelled name still renders.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from brisk_insights.models.finance import (
    DEFAULT_CATEGORY_ICON,
    Currency,
    Transaction,
    TransactionType,
)


CATEGORY_ICONS: dict[str, str] = {
    DEFAULT_CATEGORY_ICON: "📦",
    "Banknote": "💵",
    "Briefcase": "💼",
    "Bus": "🚌",
    "Car": "🚗",
    "Coffee": "☕",
    "CreditCard": "💳",
    "Dumbbell": "🏋️",
    "Film": "🎬",
    "Fuel": "⛽",
    "Gamepad2": "🎮",
    "Gift": "🎁",
    "GraduationCap": "🎓",
    "HeartPulse": "❤️",
    "Home": "🏠",
    "Lightbulb": "💡",
    "Phone": "📱",
    "PiggyBank": "🐷",
    "Pill": "💊",
    "Plane": "✈️",
    "ShoppingBag": "🛍️",
    "ShoppingCart": "🛒",
    "Shirt": "👕",
    "Utensils": "🍴",
    "Wallet": "👛",
    "Wifi": "📶",
}

CURRENCY_SYMBOLS: dict[str, str] = {
    Currency.UYU.value: "$",
    Currency.USD.value: "US$",
}

CURRENCY_LABELS: dict[str, str] = {
    Currency.UYU.value: "Pesos Uruguayos (UYU)",
    Currency.USD.value: "Dólares Americanos (USD)",
}

TRANSACTION_TYPE_LABELS: dict[str, str] = {
    TransactionType.INCOME.value: "Ingreso",
    TransactionType.EXPENSE.value: "Gasto",
}


def category_icon(name: Optional[str]) -> str:
    """Glyph for an icon name, the Package glyph when unknown."""
    return CATEGORY_ICONS.get(name or DEFAULT_CATEGORY_ICON, CATEGORY_ICONS[DEFAULT_CATEGORY_ICON])


def _group_thousands(digits: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    groups.insert(0, digits)
    return ".".join(groups)


def format_currency(amount: Union[Decimal, float, int], currency: Union[Currency, str]) -> str:
    """
    Format an amount the way es-UY does.

    >>> format_currency(Decimal("1234.5"), "UYU")
    '$ 1.234,50'
    >>> format_currency(Decimal("-99"), "USD")
    '-US$ 99,00'
    """
    code = currency.value if isinstance(currency, Currency) else str(currency)
    symbol = CURRENCY_SYMBOLS.get(code, code)

    value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    integer, _, fraction = f"{abs(value):.2f}".partition(".")

    return f"{sign}{symbol} {_group_thousands(integer)},{fraction}"


def format_transaction_amount(tx: Transaction) -> str:
    """Signed amount: '+' for income, '-' for expense."""
    prefix = "+" if tx.type == TransactionType.INCOME else "-"
    return prefix + format_currency(tx.amount, tx.currency)
