"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against the hosted backend in production
2. Use in-memory storage for testing and offline demos
3. Keep business logic decoupled from storage implementation

Every operation is scoped to the signed-in user. Implementations get the
user from the session context they were built with, never from callers.

The interface is intentionally simple - we're not building a full ORM.
Just the operations the application screens need.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from brisk_insights.models.audit import AuditEvent
from brisk_insights.models.finance import (
    Account,
    AccountInput,
    Budget,
    BudgetInput,
    Category,
    CategoryInput,
    Profile,
    Transaction,
    TransactionInput,
    TransactionType,
)


class FinanceStorageInterface(ABC):
    """
    Abstract interface for personal-finance storage operations.

    Any storage implementation must implement these methods.
    """

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """
        List the user's accounts, newest first.
        """
        pass

    @abstractmethod
    async def create_account(self, data: AccountInput) -> Account:
        """
        Create an account.

        Args:
            data: Validated account fields

        Returns:
            The stored account

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_account(self, account_id: str, data: AccountInput) -> Account:
        """
        Replace an account's editable fields.

        Raises:
            NotFoundError: If the account doesn't exist
        """
        pass

    @abstractmethod
    async def delete_account(self, account_id: str) -> bool:
        """
        Delete an account together with its transactions.

        Returns:
            True if something was deleted
        """
        pass

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """
        List the user's categories ordered by name.
        """
        pass

    @abstractmethod
    async def create_category(self, data: CategoryInput) -> Category:
        pass

    @abstractmethod
    async def update_category(self, category_id: str, data: CategoryInput) -> Category:
        """
        Raises:
            NotFoundError: If the category doesn't exist
        """
        pass

    @abstractmethod
    async def delete_category(self, category_id: str) -> bool:
        pass

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_transactions(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """
        List transactions with their account and category names.

        Args:
            date_from: Only transactions on or after this day
            date_to: Only transactions on or before this day
            transaction_type: Only income or only expense
            limit: Maximum number of results

        Returns:
            Matching transactions, newest date first
        """
        pass

    @abstractmethod
    async def add_transaction(self, data: TransactionInput) -> bool:
        """
        Record a transaction and move its account balance atomically.

        Income adds to the balance, expense subtracts from it. The
        transaction takes the currency of its account.

        Raises:
            NotFoundError: If the account doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction_id: str, data: TransactionInput) -> bool:
        """
        Edit a transaction and fix up balances atomically.

        The old effect is reverted on the old account, then the new one
        applied on the (possibly different) new account.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction and revert its effect on the balance.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_budgets(self, month: date) -> list[Budget]:
        """
        List budgets of one month with their category name and icon.

        Args:
            month: First day of the month
        """
        pass

    @abstractmethod
    async def create_budget(self, data: BudgetInput, month: date) -> Budget:
        """
        Create a budget for a category in a month.

        Raises:
            DuplicateError: The category already has a budget that month
        """
        pass

    @abstractmethod
    async def update_budget(self, budget_id: str, amount: Decimal) -> Budget:
        """
        Change a budget's amount. Category and month never change.

        Raises:
            NotFoundError: If the budget doesn't exist
        """
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: str) -> bool:
        pass

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_profile(self) -> Optional[Profile]:
        """
        Get the signed-in user's profile, None if it was never created.
        """
        pass

    @abstractmethod
    async def update_profile(
        self,
        full_name: str,
        avatar_url: Optional[str] = None,
    ) -> Profile:
        """
        Update the profile and mirror it into the auth user metadata.

        Args:
            full_name: New display name
            avatar_url: New picture URL. None keeps the current one
        """
        pass

    @abstractmethod
    async def upload_avatar(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Store a profile picture under the user's folder.

        Returns:
            Public URL of the stored file
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one chat cycle).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


def build_avatar_path(user_id: str, filename: str) -> str:
    """
    Storage key for a new profile picture: <user_id>/<random>.<ext>

    Every upload gets a fresh random name.
    """
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "png"
    return f"{user_id}/{uuid4().hex}.{ext}"


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class BackendConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
