"""
Data Models Package

This package contains all Pydantic models used in Brisk Insights.
All data flowing through the system must conform to these schemas.
"""

from brisk_insights.models.finance import (
    Account,
    AccountInput,
    Budget,
    BudgetInput,
    BudgetWithSpending,
    Category,
    CategoryInput,
    CategorySpending,
    Currency,
    CurrencySummary,
    DashboardData,
    Profile,
    ProfileInput,
    Transaction,
    TransactionInput,
    TransactionType,
)
from brisk_insights.models.chat import (
    ChatState,
    ConversationLog,
    ConversationStateError,
    ConversationTurn,
    Role,
)
from brisk_insights.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "Account",
    "AccountInput",
    "Budget",
    "BudgetInput",
    "BudgetWithSpending",
    "Category",
    "CategoryInput",
    "CategorySpending",
    "Currency",
    "CurrencySummary",
    "DashboardData",
    "Profile",
    "ProfileInput",
    "Transaction",
    "TransactionInput",
    "TransactionType",
    # Chat models
    "ChatState",
    "ConversationLog",
    "ConversationStateError",
    "ConversationTurn",
    "Role",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
