"""
Main Orchestrator for Brisk Insights

This module ties together all the components and defines the flows
behind every screen:
1. Accounts, categories, transactions, budgets, profile (CRUD)
2. Dashboard (current month aggregates)
3. Assistant chat (one reconciler per conversation)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Inputs are validated models before they reach storage
- Transaction writes only go through the balance-adjusting operations
- Every write, successful or not, is audited

This is the "glue" between the UI and the storage/chat layers.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

import httpx
import structlog

from brisk_insights.audit import AuditLogger, create_correlation_id
from brisk_insights.chat import ChatReconciler, ChatTransport
from brisk_insights.config import get_settings
from brisk_insights.models.chat import ConversationLog
from brisk_insights.models.finance import (
    Account,
    AccountInput,
    Budget,
    BudgetInput,
    BudgetWithSpending,
    Category,
    CategoryInput,
    Currency,
    DashboardData,
    Profile,
    ProfileInput,
    Transaction,
    TransactionInput,
    TransactionType,
)
from brisk_insights.queries import (
    balance_by_currency,
    budgets_with_spending,
    build_financial_context,
    expense_by_category,
    financial_summary,
    income_expense_by_currency,
    month_bounds,
    recent_transactions,
)
from brisk_insights.services.storage import (
    FinanceStorageInterface,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    StorageError,
    SupabaseClient,
    SupabaseFinanceStorage,
)
from brisk_insights.session import AuthService, SessionContext


logger = structlog.get_logger(__name__)


class _StorageFlow:
    """Shared plumbing: storage access plus audit of failures."""

    entity_type = "entity"

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def _failed(self, error: Exception, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_save_failed(
                entity_type=self.entity_type,
                error_message=str(error),
                correlation_id=correlation_id,
            )


class AccountFlow(_StorageFlow):
    """Accounts: list, create, edit, delete."""

    entity_type = "account"

    async def list_all(self) -> list[Account]:
        return await self._storage.list_accounts()

    async def create(self, data: AccountInput) -> Account:
        correlation_id = create_correlation_id()
        try:
            account = await self._storage.create_account(data)
        except StorageError as e:
            await self._failed(e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_entity_created(
                "account", account.id, account.name, correlation_id
            )
        return account

    async def update(self, account_id: str, data: AccountInput) -> Account:
        correlation_id = create_correlation_id()
        try:
            account = await self._storage.update_account(account_id, data)
        except StorageError as e:
            await self._failed(e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_entity_updated(
                "account", account_id, data.model_dump(mode="json"), correlation_id
            )
        return account

    async def delete(self, account_id: str) -> bool:
        """Deleting an account also deletes its transactions."""
        deleted = await self._storage.delete_account(account_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_entity_deleted("account", account_id)
        return deleted


class CategoryFlow(_StorageFlow):
    """Categories: list, create, edit, delete."""

    entity_type = "category"

    async def list_all(self) -> list[Category]:
        return await self._storage.list_categories()

    async def create(self, data: CategoryInput) -> Category:
        correlation_id = create_correlation_id()
        try:
            category = await self._storage.create_category(data)
        except StorageError as e:
            await self._failed(e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_entity_created(
                "category", category.id, category.name, correlation_id
            )
        return category

    async def update(self, category_id: str, data: CategoryInput) -> Category:
        correlation_id = create_correlation_id()
        try:
            category = await self._storage.update_category(category_id, data)
        except StorageError as e:
            await self._failed(e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_entity_updated(
                "category", category_id, data.model_dump(mode="json"), correlation_id
            )
        return category

    async def delete(self, category_id: str) -> bool:
        deleted = await self._storage.delete_category(category_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_entity_deleted("category", category_id)
        return deleted


class TransactionFlow(_StorageFlow):
    """
    Transactions.

    CRITICAL: every write moves the account balance in the same step.
    Storage guarantees it; this flow never touches balances itself.
    """

    entity_type = "transaction"

    async def list_all(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        return await self._storage.list_transactions(
            date_from=date_from,
            date_to=date_to,
            transaction_type=transaction_type,
        )

    async def add(self, data: TransactionInput) -> bool:
        correlation_id = create_correlation_id()
        try:
            await self._storage.add_transaction(data)
        except StorageError as e:
            await self._failed(e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_entity_created(
                "transaction",
                data.account_id,
                f"{data.type.value} {data.amount} {data.description}",
                correlation_id,
            )
        return True

    async def update(self, transaction_id: str, data: TransactionInput) -> bool:
        correlation_id = create_correlation_id()
        try:
            await self._storage.update_transaction(transaction_id, data)
        except StorageError as e:
            await self._failed(e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_entity_updated(
                "transaction", transaction_id, data.model_dump(mode="json"), correlation_id
            )
        return True

    async def delete(self, transaction_id: str) -> bool:
        correlation_id = create_correlation_id()
        try:
            await self._storage.delete_transaction(transaction_id)
        except StorageError as e:
            await self._failed(e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_entity_deleted(
                "transaction", transaction_id, correlation_id
            )
        return True


class BudgetFlow(_StorageFlow):
    """
    Monthly budgets.

    Budgets are always created for the current month. Editing changes the
    amount only.
    """

    entity_type = "budget"

    def __init__(
        self,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        default_currency: Currency = Currency.UYU,
    ):
        super().__init__(storage, audit_logger)
        self._default_currency = default_currency

    async def list_with_spending(
        self,
        today: Optional[date] = None,
    ) -> list[BudgetWithSpending]:
        """This month's budgets joined with this month's spending."""
        month_start, month_end = month_bounds(today)
        budgets = await self._storage.list_budgets(month_start)
        expenses = await self._storage.list_transactions(
            date_from=month_start,
            date_to=month_end,
            transaction_type=TransactionType.EXPENSE,
        )
        return budgets_with_spending(budgets, expenses, self._default_currency)

    async def create(self, data: BudgetInput, today: Optional[date] = None) -> Budget:
        """
        Raises:
            DuplicateError: The category already has a budget this month
        """
        correlation_id = create_correlation_id()
        month_start, _ = month_bounds(today)
        try:
            budget = await self._storage.create_budget(data, month_start)
        except StorageError as e:
            await self._failed(e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_entity_created(
                "budget", budget.id, f"{data.category_id} {month_start.isoformat()}", correlation_id
            )
        return budget

    async def update(self, budget_id: str, amount: Decimal) -> Budget:
        correlation_id = create_correlation_id()
        try:
            budget = await self._storage.update_budget(budget_id, amount)
        except StorageError as e:
            await self._failed(e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_entity_updated(
                "budget", budget_id, {"amount": str(amount)}, correlation_id
            )
        return budget

    async def delete(self, budget_id: str) -> bool:
        deleted = await self._storage.delete_budget(budget_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_entity_deleted("budget", budget_id)
        return deleted


class ProfileFlow(_StorageFlow):
    """Profile name and picture. Changes are mirrored into the session."""

    entity_type = "profile"

    def __init__(
        self,
        storage: FinanceStorageInterface,
        session: SessionContext,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(storage, audit_logger)
        self._session = session

    async def get(self) -> Optional[Profile]:
        return await self._storage.get_profile()

    async def update(
        self,
        data: ProfileInput,
        avatar: Optional[bytes] = None,
        avatar_filename: Optional[str] = None,
        avatar_content_type: Optional[str] = None,
    ) -> Profile:
        """
        Save the profile, uploading a new picture first if one is given.
        """
        correlation_id = create_correlation_id()
        avatar_url = None
        try:
            if avatar is not None:
                avatar_url = await self._storage.upload_avatar(
                    avatar,
                    avatar_filename or "avatar.png",
                    avatar_content_type,
                )
            profile = await self._storage.update_profile(data.full_name, avatar_url)
        except StorageError as e:
            await self._failed(e, correlation_id)
            raise

        self._session.full_name = profile.full_name
        self._session.avatar_url = profile.avatar_url

        if self._audit_logger:
            await self._audit_logger.log_profile_updated(
                self._session.require_user_id(), avatar_changed=avatar_url is not None
            )
        return profile


class DashboardFlow:
    """Read-only aggregates for the dashboard and the assistant context."""

    def __init__(
        self,
        storage: FinanceStorageInterface,
        session: SessionContext,
        recent_limit: int = 5,
        top_categories: int = 5,
    ):
        self._storage = storage
        self._session = session
        self._recent_limit = recent_limit
        self._top_categories = top_categories

    async def load(self, today: Optional[date] = None) -> DashboardData:
        """
        Everything the dashboard shows.

        Balances cover all accounts. Income/expense and categories cover
        the current month. Recent transactions cover all time.
        """
        month_start, month_end = month_bounds(today)
        accounts = await self._storage.list_accounts()
        month_transactions = await self._storage.list_transactions(
            date_from=month_start,
            date_to=month_end,
        )
        latest = await self._storage.list_transactions(limit=self._recent_limit)

        return DashboardData(
            month_start=month_start,
            month_end=month_end,
            balances=balance_by_currency(accounts),
            income_expense=income_expense_by_currency(month_transactions),
            expense_by_category=expense_by_category(month_transactions),
            recent_transactions=recent_transactions(latest, self._recent_limit),
            summary=financial_summary(month_transactions, top=self._top_categories),
        )

    async def financial_context(self, today: Optional[date] = None) -> dict:
        """The snapshot of this month the assistant answers from."""
        month_start, month_end = month_bounds(today)
        accounts = await self._storage.list_accounts()
        categories = await self._storage.list_categories()
        budgets = await self._storage.list_budgets(month_start)
        transactions = await self._storage.list_transactions(
            date_from=month_start,
            date_to=month_end,
        )
        return build_financial_context(
            user_id=self._session.require_user_id(),
            display_name=self._session.display_name,
            accounts=accounts,
            categories=categories,
            budgets=budgets,
            month_transactions=transactions,
            top=self._top_categories,
        )


@dataclass
class AppComponents:
    """Everything one UI session needs."""

    session: SessionContext
    storage: FinanceStorageInterface
    audit_logger: AuditLogger
    accounts: AccountFlow
    categories: CategoryFlow
    transactions: TransactionFlow
    budgets: BudgetFlow
    profile: ProfileFlow
    dashboard: DashboardFlow
    auth: Optional[AuthService] = None
    supabase_client: Optional[SupabaseClient] = None
    chat_transport_factory: Optional[Callable[[], ChatTransport]] = field(default=None)
    chat_client_factory: Optional[Callable[[], httpx.AsyncClient]] = field(default=None)

    @property
    def is_offline(self) -> bool:
        """True when running on in-memory storage."""
        return self.supabase_client is None

    def new_chat(self, **callbacks) -> ChatReconciler:
        """
        Start a conversation seeded with the greeting.

        Keyword arguments are the reconciler callbacks
        (on_update, on_error, on_input_cleared, on_state_change).
        """
        if self.chat_transport_factory is not None:
            transport = self.chat_transport_factory()
        else:
            api_key = self.supabase_client.settings.anon_key if self.supabase_client else None
            transport = ChatTransport(
                self.session,
                api_key=api_key,
                client_factory=self.chat_client_factory,
                context_provider=self.dashboard.financial_context,
            )

        assistant_settings = get_settings().assistant
        return ChatReconciler(
            transport=transport,
            log=ConversationLog(greeting=assistant_settings.greeting),
            audit_logger=self.audit_logger,
            output_field=assistant_settings.output_field,
            **callbacks,
        )


def create_app_components(
    use_storage: bool = True,
    session: Optional[SessionContext] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect to the Supabase backend.
                    Set to False (or leave Supabase unconfigured) to run on
                    in-memory storage.
        session: Existing session context to reuse. A new one if None.

    Returns:
        AppComponents for one UI session
    """
    session = session or SessionContext()
    audit_logger = AuditLogger(InMemoryAuditStorage())
    supabase_client = None
    auth = None
    storage: FinanceStorageInterface

    if use_storage:
        try:
            supabase_client = SupabaseClient()
            supabase_client.connect()
            storage = SupabaseFinanceStorage(session, supabase_client)
            auth = AuthService(session, supabase_client, audit_logger)
        except Exception as e:
            # Backend not configured - continue on in-memory storage
            logger.warning("storage_not_configured", error=str(e))
            supabase_client = None
            auth = None
            storage = InMemoryFinanceStorage(session)
    else:
        storage = InMemoryFinanceStorage(session)

    app_settings = get_settings().app

    return AppComponents(
        session=session,
        storage=storage,
        audit_logger=audit_logger,
        accounts=AccountFlow(storage, audit_logger),
        categories=CategoryFlow(storage, audit_logger),
        transactions=TransactionFlow(storage, audit_logger),
        budgets=BudgetFlow(
            storage,
            audit_logger,
            default_currency=Currency(app_settings.default_currency),
        ),
        profile=ProfileFlow(storage, session, audit_logger),
        dashboard=DashboardFlow(
            storage,
            session,
            recent_limit=app_settings.recent_transactions_limit,
            top_categories=app_settings.top_categories_limit,
        ),
        auth=auth,
        supabase_client=supabase_client,
    )
