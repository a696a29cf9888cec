"""
Supabase Storage Implementation

DESIGN DECISION: The hosted backend owns the data, auth and row-level
security. This module is a thin client over it:
1. Plain table reads and writes for accounts, categories, budgets, profiles
2. Transaction writes ONLY through the balance-adjusting procedures, so a
   transaction and its account balance always change together
3. Profile pictures in a public storage bucket

TRADEOFFS:
- Reads are retried with backoff, writes are not (a retried write could
  apply twice)
- Row-level security already scopes every query to the signed-in user.
  We still send user_id on inserts because the tables require it.

The implementation follows the abstract interface, so the in-memory
backend can stand in for it without changing business logic.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client
from tenacity import retry, stop_after_attempt, wait_exponential

from brisk_insights.config import SupabaseSettings, get_settings
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
    BackendConnectionError,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    StorageError,
    build_avatar_path,
)


# Postgres unique_violation
UNIQUE_VIOLATION = "23505"

ADD_TRANSACTION_RPC = "add_transaction_and_update_balance"
UPDATE_TRANSACTION_RPC = "update_transaction_and_update_balance"
DELETE_TRANSACTION_RPC = "delete_transaction_and_update_balance"

TRANSACTION_SELECT = "*, accounts(name), categories(name, icon)"
BUDGET_SELECT = "*, categories(name, icon)"

read_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Creates the client lazily so the app can start without configuration.
    """

    def __init__(self, settings: Optional[SupabaseSettings] = None):
        self._client: Optional[Client] = None
        self._settings = settings

    @property
    def settings(self) -> SupabaseSettings:
        if self._settings is None:
            self._settings = get_settings().supabase
        return self._settings

    def connect(self) -> Client:
        """Create the Supabase client on first use."""
        if self._client is None:
            try:
                self._client = create_client(
                    self.settings.url,
                    self.settings.anon_key,
                )
            except Exception as e:
                raise BackendConnectionError(f"Failed to connect to Supabase: {e}")
        return self._client

    @property
    def auth(self):
        return self.connect().auth

    def table(self, name: str):
        return self.connect().table(name)

    def rpc(self, name: str, params: dict):
        return self.connect().rpc(name, params)

    def bucket(self, name: Optional[str] = None):
        return self.connect().storage.from_(name or self.settings.avatars_bucket)


def _as_storage_error(action: str, error: Exception) -> StorageError:
    if isinstance(error, APIError) and error.code == UNIQUE_VIOLATION:
        return DuplicateError(f"Failed to {action}: {error.message}")
    if isinstance(error, APIError):
        return StorageError(f"Failed to {action}: {error.message}")
    return StorageError(f"Failed to {action}: {error}")


def _day_start(day: date) -> str:
    return datetime.combine(day, time.min).isoformat()


def _day_end(day: date) -> str:
    return datetime.combine(day, time.max).isoformat()


class SupabaseFinanceStorage(FinanceStorageInterface):
    """
    Supabase implementation of finance storage.

    Joined relations come back as nested objects
    (e.g. {"accounts": {"name": ...}}) and are flattened onto the models.
    """

    def __init__(self, session, client: Optional[SupabaseClient] = None):
        """
        Args:
            session: SessionContext of the signed-in user
            client: Shared client wrapper. A new one is created if None
        """
        self._session = session
        self._client = client or SupabaseClient()

    # -------------------------------------------------------------------------
    # Row mapping
    # -------------------------------------------------------------------------

    def _row_to_transaction(self, row: dict) -> Transaction:
        account = row.get("accounts") or {}
        category = row.get("categories") or {}
        return Transaction(
            id=row["id"],
            user_id=row.get("user_id"),
            account_id=row["account_id"],
            category_id=row.get("category_id"),
            amount=Decimal(str(row["amount"])),
            type=TransactionType(row["type"]),
            currency=row["currency"],
            description=row.get("description") or "",
            date=row["date"],
            account_name=account.get("name"),
            category_name=category.get("name"),
            category_icon=category.get("icon"),
        )

    def _row_to_budget(self, row: dict) -> Budget:
        category = row.get("categories") or {}
        return Budget(
            id=row["id"],
            user_id=row.get("user_id"),
            category_id=row["category_id"],
            amount=Decimal(str(row["amount"])),
            month=row["month"],
            category_name=category.get("name"),
            category_icon=category.get("icon"),
        )

    def _transaction_params(self, data: TransactionInput) -> dict:
        return {
            "p_account_id": data.account_id,
            "p_category_id": data.category_id,
            "p_amount": float(data.amount),
            "p_type": data.type.value,
            "p_description": data.description,
            "p_date": _day_start(data.date),
        }

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    @read_retry
    async def list_accounts(self) -> list[Account]:
        try:
            response = (
                self._client.table("accounts")
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise _as_storage_error("list accounts", e)
        return [Account(**row) for row in response.data]

    async def create_account(self, data: AccountInput) -> Account:
        payload = {
            "user_id": self._session.require_user_id(),
            "name": data.name,
            "currency": data.currency.value,
            "balance": float(data.balance),
        }
        try:
            response = self._client.table("accounts").insert(payload).execute()
        except Exception as e:
            raise _as_storage_error("create account", e)
        return Account(**response.data[0])

    async def update_account(self, account_id: str, data: AccountInput) -> Account:
        payload = {
            "name": data.name,
            "currency": data.currency.value,
            "balance": float(data.balance),
        }
        try:
            response = (
                self._client.table("accounts")
                .update(payload)
                .eq("id", account_id)
                .execute()
            )
        except Exception as e:
            raise _as_storage_error("update account", e)
        if not response.data:
            raise NotFoundError(f"Account not found: {account_id}")
        return Account(**response.data[0])

    async def delete_account(self, account_id: str) -> bool:
        try:
            response = (
                self._client.table("accounts").delete().eq("id", account_id).execute()
            )
        except Exception as e:
            raise _as_storage_error("delete account", e)
        return bool(response.data)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    @read_retry
    async def list_categories(self) -> list[Category]:
        try:
            response = (
                self._client.table("categories")
                .select("*")
                .order("name")
                .execute()
            )
        except Exception as e:
            raise _as_storage_error("list categories", e)
        return [Category(**row) for row in response.data]

    async def create_category(self, data: CategoryInput) -> Category:
        payload = {
            "user_id": self._session.require_user_id(),
            "name": data.name,
            "icon": data.icon,
        }
        try:
            response = self._client.table("categories").insert(payload).execute()
        except Exception as e:
            raise _as_storage_error("create category", e)
        return Category(**response.data[0])

    async def update_category(self, category_id: str, data: CategoryInput) -> Category:
        try:
            response = (
                self._client.table("categories")
                .update({"name": data.name, "icon": data.icon})
                .eq("id", category_id)
                .execute()
            )
        except Exception as e:
            raise _as_storage_error("update category", e)
        if not response.data:
            raise NotFoundError(f"Category not found: {category_id}")
        return Category(**response.data[0])

    async def delete_category(self, category_id: str) -> bool:
        try:
            response = (
                self._client.table("categories").delete().eq("id", category_id).execute()
            )
        except Exception as e:
            raise _as_storage_error("delete category", e)
        return bool(response.data)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @read_retry
    async def list_transactions(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        try:
            query = self._client.table("transactions").select(TRANSACTION_SELECT)
            if date_from:
                query = query.gte("date", _day_start(date_from))
            if date_to:
                query = query.lte("date", _day_end(date_to))
            if transaction_type:
                query = query.eq("type", transaction_type.value)
            query = query.order("date", desc=True)
            if limit is not None:
                query = query.limit(limit)
            response = query.execute()
        except Exception as e:
            raise _as_storage_error("list transactions", e)
        return [self._row_to_transaction(row) for row in response.data]

    async def add_transaction(self, data: TransactionInput) -> bool:
        try:
            self._client.rpc(ADD_TRANSACTION_RPC, self._transaction_params(data)).execute()
        except Exception as e:
            raise _as_storage_error("add transaction", e)
        return True

    async def update_transaction(self, transaction_id: str, data: TransactionInput) -> bool:
        params = self._transaction_params(data)
        params["p_transaction_id"] = transaction_id
        try:
            self._client.rpc(UPDATE_TRANSACTION_RPC, params).execute()
        except Exception as e:
            raise _as_storage_error("update transaction", e)
        return True

    async def delete_transaction(self, transaction_id: str) -> bool:
        try:
            self._client.rpc(
                DELETE_TRANSACTION_RPC,
                {"p_transaction_id": transaction_id},
            ).execute()
        except Exception as e:
            raise _as_storage_error("delete transaction", e)
        return True

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    @read_retry
    async def list_budgets(self, month: date) -> list[Budget]:
        try:
            response = (
                self._client.table("budgets")
                .select(BUDGET_SELECT)
                .eq("month", month.isoformat())
                .execute()
            )
        except Exception as e:
            raise _as_storage_error("list budgets", e)
        return [self._row_to_budget(row) for row in response.data]

    async def create_budget(self, data: BudgetInput, month: date) -> Budget:
        payload = {
            "user_id": self._session.require_user_id(),
            "category_id": data.category_id,
            "amount": float(data.amount),
            "month": month.isoformat(),
        }
        try:
            response = self._client.table("budgets").insert(payload).execute()
        except Exception as e:
            raise _as_storage_error("create budget", e)
        return self._row_to_budget(response.data[0])

    async def update_budget(self, budget_id: str, amount: Decimal) -> Budget:
        try:
            response = (
                self._client.table("budgets")
                .update({"amount": float(amount)})
                .eq("id", budget_id)
                .execute()
            )
        except Exception as e:
            raise _as_storage_error("update budget", e)
        if not response.data:
            raise NotFoundError(f"Budget not found: {budget_id}")
        return self._row_to_budget(response.data[0])

    async def delete_budget(self, budget_id: str) -> bool:
        try:
            response = (
                self._client.table("budgets").delete().eq("id", budget_id).execute()
            )
        except Exception as e:
            raise _as_storage_error("delete budget", e)
        return bool(response.data)

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    @read_retry
    async def get_profile(self) -> Optional[Profile]:
        user_id = self._session.require_user_id()
        try:
            response = (
                self._client.table("profiles")
                .select("*")
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise _as_storage_error("get profile", e)
        return Profile(**response.data[0]) if response.data else None

    async def update_profile(
        self,
        full_name: str,
        avatar_url: Optional[str] = None,
    ) -> Profile:
        user_id = self._session.require_user_id()
        payload = {
            "full_name": full_name,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        if avatar_url is not None:
            payload["avatar_url"] = avatar_url

        try:
            response = (
                self._client.table("profiles")
                .update(payload)
                .eq("id", user_id)
                .execute()
            )
        except Exception as e:
            raise _as_storage_error("update profile", e)
        if not response.data:
            raise NotFoundError(f"Profile not found: {user_id}")
        profile = Profile(**response.data[0])

        try:
            self._client.auth.update_user({
                "data": {
                    "full_name": profile.full_name,
                    "avatar_url": profile.avatar_url,
                }
            })
        except Exception as e:
            raise StorageError(f"Failed to update user metadata: {e}")

        return profile

    async def upload_avatar(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> str:
        path = build_avatar_path(self._session.require_user_id(), filename)
        options = {"content-type": content_type} if content_type else None
        bucket = self._client.bucket()
        try:
            bucket.upload(path, content, options)
        except Exception as e:
            raise StorageError(f"Failed to upload avatar: {e}")
        return bucket.get_public_url(path)
