"""
Core Finance Models for Brisk Insights

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Mirror the backend tables (accounts, categories, transactions, budgets, profiles)

DESIGN DECISION: Stored rows and form inputs are separate models.
Rows come back from the backend already trusted; inputs carry the form
rules and are validated before anything is sent.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Currency(str, Enum):
    """Currencies an account can hold."""
    USD = "USD"
    UYU = "UYU"


class TransactionType(str, Enum):
    """
    Direction of a transaction.

    Income adds to the account balance, expense subtracts from it.
    """
    INCOME = "income"
    EXPENSE = "expense"


UNCATEGORIZED = "Sin Categoría"
DEFAULT_CATEGORY_ICON = "Package"
EARLIEST_TRANSACTION_DATE = date(1900, 1, 1)


# =============================================================================
# STORED ROWS
# =============================================================================

class Account(BaseModel):
    """A money container (bank account, cash, card) in a single currency."""

    id: str
    user_id: str
    name: str
    currency: Currency
    balance: Decimal = Field(default=Decimal("0"))
    created_at: Optional[datetime] = None


class Category(BaseModel):
    """User-defined grouping for transactions and budgets."""

    id: str
    user_id: Optional[str] = None
    name: str
    icon: str = Field(default=DEFAULT_CATEGORY_ICON)


class Transaction(BaseModel):
    """
    A single income or expense movement.

    The currency is always the currency of the account it was recorded on.
    Joined names are filled when the row was read with its relations.
    """

    id: str
    user_id: Optional[str] = None
    account_id: str
    category_id: Optional[str] = None
    amount: Decimal = Field(..., ge=0)
    type: TransactionType
    currency: Currency
    description: str = ""
    date: datetime

    # Joined relations (read-only)
    account_name: Optional[str] = None
    category_name: Optional[str] = None
    category_icon: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this transaction on its account balance."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class Budget(BaseModel):
    """Spending limit for one category in one month."""

    id: str
    user_id: Optional[str] = None
    category_id: str
    amount: Decimal = Field(..., ge=0)
    month: date = Field(
        ...,
        description="First day of the month the budget applies to"
    )

    category_name: Optional[str] = None
    category_icon: Optional[str] = None


class BudgetWithSpending(Budget):
    """A budget joined with what was actually spent in its category."""

    spent: Decimal = Field(default=Decimal("0"))
    currency: Currency = Field(default=Currency.UYU)

    @property
    def progress(self) -> float:
        """Percent of the budget spent. Zero when the budget amount is zero."""
        if self.amount <= 0:
            return 0.0
        return float(self.spent / self.amount * 100)

    @property
    def is_over_budget(self) -> bool:
        return self.progress > 100


class Profile(BaseModel):
    """Public profile attached to an auth user."""

    id: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# FORM INPUTS
# =============================================================================

class AccountInput(BaseModel):
    """Fields a user can set on an account."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, description="Account name")
    balance: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Opening balance"
    )
    currency: Currency = Field(default=Currency.UYU)


class CategoryInput(BaseModel):
    """Fields a user can set on a category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    icon: str = Field(default=DEFAULT_CATEGORY_ICON, min_length=1)


class TransactionInput(BaseModel):
    """
    Fields a user can set on a transaction.

    CRITICAL: These are never inserted directly. They are passed to the
    balance-adjusting procedures so the account balance moves atomically.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)
    type: TransactionType = Field(default=TransactionType.EXPENSE)
    account_id: str = Field(..., min_length=1)
    category_id: str = Field(..., min_length=1)
    date: date

    @field_validator('date')
    @classmethod
    def validate_date_range(cls, v: date) -> date:
        """Transactions cannot be dated in the future or before 1900."""
        if v > date.today():
            raise ValueError("Transaction date cannot be in the future")
        if v < EARLIEST_TRANSACTION_DATE:
            raise ValueError("Transaction date cannot be before 1900-01-01")
        return v


class BudgetInput(BaseModel):
    """Fields a user can set on a budget. The month is always the current one."""

    category_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0)


class ProfileInput(BaseModel):
    """Editable profile fields."""
    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str = Field(..., min_length=1)


# =============================================================================
# AGGREGATES
# =============================================================================

class CategorySpending(BaseModel):
    """Total spent in one category."""

    name: str
    amount: Decimal


class CurrencySummary(BaseModel):
    """
    One currency's slice of a month.

    Amounts in different currencies are never added together.
    """

    currency: str
    total_income: Decimal = Field(default=Decimal("0"))
    total_expense: Decimal = Field(default=Decimal("0"))
    transaction_count: int = Field(default=0, ge=0)
    top_spending_categories: list[CategorySpending] = Field(default_factory=list)

    @property
    def net_savings(self) -> Decimal:
        return self.total_income - self.total_expense


class DashboardData(BaseModel):
    """Everything the dashboard page renders for the current month."""

    month_start: date
    month_end: date
    balances: dict[str, Decimal] = Field(default_factory=dict)
    income_expense: dict[str, tuple[Decimal, Decimal]] = Field(default_factory=dict)
    expense_by_category: dict[str, Decimal] = Field(default_factory=dict)
    recent_transactions: list[Transaction] = Field(default_factory=list)
    summary: dict[str, CurrencySummary] = Field(default_factory=dict)
