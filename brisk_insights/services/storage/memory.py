"""
In-Memory Storage Implementation

Used by the test suite and when the backend is not configured.

It reproduces the backend behaviours the application relies on:
- rows are scoped to the signed-in user
- transaction writes move account balances the way the
  balance-adjusting procedures do
- one budget per category per month
- deleting an account deletes its transactions

Nothing survives the process.
"""

from datetime import date, datetime, time, timezone
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
from brisk_insights.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    build_avatar_path,
)


def _new_id() -> str:
    return str(uuid4())


def _effect(amount: Decimal, transaction_type: TransactionType) -> Decimal:
    return amount if transaction_type == TransactionType.INCOME else -amount


class InMemoryFinanceStorage(FinanceStorageInterface):
    """
    Dict-backed finance storage.

    Args:
        session: SessionContext. Every call reads the current user from it.
    """

    def __init__(self, session):
        self._session = session
        self._accounts: dict[str, Account] = {}
        self._categories: dict[str, Category] = {}
        self._transactions: dict[str, Transaction] = {}
        self._budgets: dict[str, Budget] = {}
        self._profiles: dict[str, Profile] = {}
        self._avatars: dict[str, bytes] = {}
        self._user_metadata: dict[str, dict] = {}

    @property
    def avatars(self) -> dict[str, bytes]:
        """Uploaded files by storage path."""
        return self._avatars

    def user_metadata(self, user_id: str) -> dict:
        return self._user_metadata.get(user_id, {})

    def _user_id(self) -> str:
        return self._session.require_user_id()

    def _owned(self, rows: dict, row_id: str, kind: str):
        row = rows.get(row_id)
        if row is None or row.user_id != self._user_id():
            raise NotFoundError(f"{kind} not found: {row_id}")
        return row

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def list_accounts(self) -> list[Account]:
        user_id = self._user_id()
        # dicts keep insertion order, so reversed() is newest first
        return [
            a.model_copy() for a in reversed(list(self._accounts.values()))
            if a.user_id == user_id
        ]

    async def create_account(self, data: AccountInput) -> Account:
        account = Account(
            id=_new_id(),
            user_id=self._user_id(),
            name=data.name,
            currency=data.currency,
            balance=data.balance,
            created_at=datetime.now(timezone.utc),
        )
        self._accounts[account.id] = account
        return account.model_copy()

    async def update_account(self, account_id: str, data: AccountInput) -> Account:
        account = self._owned(self._accounts, account_id, "Account")
        account.name = data.name
        account.currency = data.currency
        account.balance = data.balance
        return account.model_copy()

    async def delete_account(self, account_id: str) -> bool:
        try:
            self._owned(self._accounts, account_id, "Account")
        except NotFoundError:
            return False
        del self._accounts[account_id]
        for tx_id in [
            t.id for t in self._transactions.values() if t.account_id == account_id
        ]:
            del self._transactions[tx_id]
        return True

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        user_id = self._user_id()
        categories = [c for c in self._categories.values() if c.user_id == user_id]
        categories.sort(key=lambda c: c.name)
        return [c.model_copy() for c in categories]

    async def create_category(self, data: CategoryInput) -> Category:
        category = Category(
            id=_new_id(),
            user_id=self._user_id(),
            name=data.name,
            icon=data.icon,
        )
        self._categories[category.id] = category
        return category.model_copy()

    async def update_category(self, category_id: str, data: CategoryInput) -> Category:
        category = self._owned(self._categories, category_id, "Category")
        category.name = data.name
        category.icon = data.icon
        return category.model_copy()

    async def delete_category(self, category_id: str) -> bool:
        try:
            self._owned(self._categories, category_id, "Category")
        except NotFoundError:
            return False
        del self._categories[category_id]
        for tx in self._transactions.values():
            if tx.category_id == category_id:
                tx.category_id = None
        for budget_id in [
            b.id for b in self._budgets.values() if b.category_id == category_id
        ]:
            del self._budgets[budget_id]
        return True

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _joined(self, tx: Transaction) -> Transaction:
        joined = tx.model_copy()
        account = self._accounts.get(tx.account_id)
        category = self._categories.get(tx.category_id) if tx.category_id else None
        joined.account_name = account.name if account else None
        joined.category_name = category.name if category else None
        joined.category_icon = category.icon if category else None
        return joined

    async def list_transactions(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        user_id = self._user_id()
        results = []
        for tx in self._transactions.values():
            if tx.user_id != user_id:
                continue
            if date_from and tx.date.date() < date_from:
                continue
            if date_to and tx.date.date() > date_to:
                continue
            if transaction_type and tx.type != transaction_type:
                continue
            results.append(self._joined(tx))

        # Sort by date descending (newest first)
        results.sort(key=lambda t: t.date, reverse=True)
        if limit is not None:
            results = results[:limit]
        return results

    async def add_transaction(self, data: TransactionInput) -> bool:
        account = self._owned(self._accounts, data.account_id, "Account")
        tx = Transaction(
            id=_new_id(),
            user_id=account.user_id,
            account_id=account.id,
            category_id=data.category_id,
            amount=data.amount,
            type=data.type,
            currency=account.currency,
            description=data.description,
            date=datetime.combine(data.date, time.min),
        )
        account.balance += _effect(tx.amount, tx.type)
        self._transactions[tx.id] = tx
        return True

    async def update_transaction(self, transaction_id: str, data: TransactionInput) -> bool:
        tx = self._owned(self._transactions, transaction_id, "Transaction")
        new_account = self._owned(self._accounts, data.account_id, "Account")

        old_account = self._accounts.get(tx.account_id)
        if old_account is not None:
            old_account.balance -= _effect(tx.amount, tx.type)

        tx.account_id = new_account.id
        tx.category_id = data.category_id
        tx.amount = data.amount
        tx.type = data.type
        tx.currency = new_account.currency
        tx.description = data.description
        tx.date = datetime.combine(data.date, time.min)

        new_account.balance += _effect(tx.amount, tx.type)
        return True

    async def delete_transaction(self, transaction_id: str) -> bool:
        tx = self._owned(self._transactions, transaction_id, "Transaction")
        account = self._accounts.get(tx.account_id)
        if account is not None:
            account.balance -= _effect(tx.amount, tx.type)
        del self._transactions[transaction_id]
        return True

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    def _joined_budget(self, budget: Budget) -> Budget:
        joined = budget.model_copy()
        category = self._categories.get(budget.category_id)
        joined.category_name = category.name if category else None
        joined.category_icon = category.icon if category else None
        return joined

    async def list_budgets(self, month: date) -> list[Budget]:
        user_id = self._user_id()
        return [
            self._joined_budget(b) for b in self._budgets.values()
            if b.user_id == user_id and b.month == month
        ]

    async def create_budget(self, data: BudgetInput, month: date) -> Budget:
        user_id = self._user_id()
        for existing in self._budgets.values():
            if (
                existing.user_id == user_id
                and existing.category_id == data.category_id
                and existing.month == month
            ):
                raise DuplicateError(
                    f"Budget already exists for category {data.category_id} in {month}"
                )

        budget = Budget(
            id=_new_id(),
            user_id=user_id,
            category_id=data.category_id,
            amount=data.amount,
            month=month,
        )
        self._budgets[budget.id] = budget
        return self._joined_budget(budget)

    async def update_budget(self, budget_id: str, amount: Decimal) -> Budget:
        budget = self._owned(self._budgets, budget_id, "Budget")
        budget.amount = amount
        return self._joined_budget(budget)

    async def delete_budget(self, budget_id: str) -> bool:
        try:
            self._owned(self._budgets, budget_id, "Budget")
        except NotFoundError:
            return False
        del self._budgets[budget_id]
        return True

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    async def get_profile(self) -> Optional[Profile]:
        profile = self._profiles.get(self._user_id())
        return profile.model_copy() if profile else None

    async def update_profile(
        self,
        full_name: str,
        avatar_url: Optional[str] = None,
    ) -> Profile:
        user_id = self._user_id()
        profile = self._profiles.get(user_id) or Profile(id=user_id)
        profile.full_name = full_name
        if avatar_url is not None:
            profile.avatar_url = avatar_url
        profile.updated_at = datetime.now(timezone.utc)
        self._profiles[user_id] = profile

        metadata = self._user_metadata.setdefault(user_id, {})
        metadata["full_name"] = profile.full_name
        metadata["avatar_url"] = profile.avatar_url
        return profile.model_copy()

    async def upload_avatar(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> str:
        path = build_avatar_path(self._user_id(), filename)
        self._avatars[path] = content
        return f"memory://avatars/{path}"


class InMemoryAuditStorage(AuditStorageInterface):
    """
    Audit events of the current process.

    Audit events are append-only.
    """

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        # Appended in order, so reversing is newest first
        return list(reversed(self._events))[:limit]
