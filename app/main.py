"""
Streamlit Frontend for Brisk Insights

The screens users work with daily: sign in, accounts, categories,
transactions, budgets, profile, the dashboard, and the assistant chat.

DESIGN PRINCIPLES:
1. Simple, clear interface in Spanish
2. Explicit confirmation before anything is deleted
3. Clear error messages in simple language
4. Visual feedback (toasts) for all operations
5. One session context per browser session, never shared between users

The assistant panel renders the conversation log and rewrites the last
assistant bubble in place while its reply streams in.
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st
from pydantic import ValidationError

from brisk_insights.audit import configure_logging
from brisk_insights.chat import ChatReconciler
from brisk_insights.config import get_settings, validate_all_settings
from brisk_insights.models.chat import Role
from brisk_insights.models.finance import (
    AccountInput,
    BudgetInput,
    CategoryInput,
    Currency,
    ProfileInput,
    TransactionInput,
    TransactionType,
)
from brisk_insights.orchestrator import AppComponents, create_app_components
from brisk_insights.presentation import (
    CATEGORY_ICONS,
    CURRENCY_LABELS,
    TRANSACTION_TYPE_LABELS,
    category_icon,
    format_currency,
    format_transaction_amount,
)
from brisk_insights.services.storage import DuplicateError, StorageError
from brisk_insights.session import SignInError


DUPLICATE_BUDGET_MESSAGE = "Ya existe un presupuesto para esta categoría este mes."
DEMO_USER_ID = "demo-user"

PAGES = [
    "📊 Dashboard",
    "🏦 Cuentas",
    "🏷️ Categorías",
    "💸 Transacciones",
    "🎯 Presupuestos",
    "👤 Perfil",
    "⚙️ Configuración",
]


# Page configuration
st.set_page_config(
    page_title="Brisk Insights",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_components() -> AppComponents:
    """Get or create this browser session's components."""
    if "components" not in st.session_state:
        configure_logging(get_settings().app.log_level)
        st.session_state.components = create_app_components(use_storage=True)
    return st.session_state.components


def show_validation_error(error: ValidationError) -> None:
    for issue in error.errors():
        field = ".".join(str(part) for part in issue["loc"])
        st.error(f"{field}: {issue['msg']}")


def notify_success(message: str) -> None:
    st.toast(message, icon="✅")


def main():
    """Main application entry point."""
    components = get_components()

    if not components.session.is_authenticated:
        render_login_page(components)
        return

    # Sidebar navigation
    st.sidebar.title("💰 Brisk Insights")
    st.sidebar.caption(components.session.display_name)
    if components.is_offline:
        st.sidebar.warning("Modo demo: los datos no se guardan.")
    st.sidebar.markdown("---")

    page = st.sidebar.radio("Ir a:", PAGES, index=0)

    st.sidebar.markdown("---")
    assistant_open = st.sidebar.toggle("✨ Asistente", key="assistant_open")
    if st.sidebar.button("Cerrar sesión"):
        sign_out(components)
        st.rerun()

    if assistant_open:
        main_col, chat_col = st.columns([3, 2])
    else:
        main_col, chat_col = st.container(), None

    with main_col:
        # Route to appropriate page
        if page == "📊 Dashboard":
            render_dashboard_page(components)
        elif page == "🏦 Cuentas":
            render_accounts_page(components)
        elif page == "🏷️ Categorías":
            render_categories_page(components)
        elif page == "💸 Transacciones":
            render_transactions_page(components)
        elif page == "🎯 Presupuestos":
            render_budgets_page(components)
        elif page == "👤 Perfil":
            render_profile_page(components)
        elif page == "⚙️ Configuración":
            render_settings_page()

    if chat_col is not None:
        with chat_col:
            render_assistant_panel(components)


# =============================================================================
# SESSION
# =============================================================================

def render_login_page(components: AppComponents):
    """Render the sign-in page."""
    st.title("💰 Brisk Insights")
    st.markdown("Inicia sesión para gestionar tus finanzas.")

    if components.auth is None:
        st.info(
            "El backend no está configurado. Puedes explorar la aplicación "
            "en modo demo; los datos se pierden al cerrar la sesión."
        )
        if st.button("Entrar en modo demo", type="primary"):
            components.session.set_credentials(
                access_token="demo",
                user_id=DEMO_USER_ID,
                email="demo@brisk.local",
                full_name="Demo",
            )
            st.rerun()
        return

    with st.form("login"):
        email = st.text_input("Correo electrónico")
        password = st.text_input("Contraseña", type="password")
        submitted = st.form_submit_button("Iniciar sesión", type="primary")

    if submitted:
        if not email or not password:
            st.error("Ingresa tu correo y contraseña.")
            return
        try:
            run_async(components.auth.sign_in(email, password))
            st.rerun()
        except SignInError:
            st.error("Correo o contraseña incorrectos.")
        except StorageError as e:
            st.error(f"No se pudo conectar con el servidor: {e}")


def sign_out(components: AppComponents) -> None:
    if components.auth is not None:
        run_async(components.auth.sign_out())
    else:
        components.session.teardown()
    st.session_state.pop("chat", None)


# =============================================================================
# DASHBOARD
# =============================================================================

def render_dashboard_page(components: AppComponents):
    """Render the dashboard."""
    st.title("📊 Dashboard")
    st.markdown("¡Bienvenido a BRISK! Este es tu panel principal.")

    try:
        data = run_async(components.dashboard.load())
    except StorageError as e:
        st.error(f"No se pudo cargar el dashboard: {e}")
        return

    st.subheader("Saldo total")
    if data.balances:
        cols = st.columns(len(data.balances))
        for col, (currency, balance) in zip(cols, data.balances.items()):
            col.metric(currency, format_currency(balance, currency))
    else:
        st.info("Todavía no tienes cuentas.")

    st.subheader(f"Este mes ({data.month_start.strftime('%m/%Y')})")
    col1, col2 = st.columns(2)

    with col1:
        st.markdown("**Ingresos vs. gastos**")
        if data.income_expense:
            st.bar_chart(
                [
                    {"Moneda": currency, "Ingresos": float(income), "Gastos": float(expense)}
                    for currency, (income, expense) in data.income_expense.items()
                ],
                x="Moneda",
                y=["Ingresos", "Gastos"],
            )
            for currency, summary in data.summary.items():
                st.caption(
                    f"{currency}: ahorro neto {format_currency(summary.net_savings, currency)} "
                    f"en {summary.transaction_count} transacciones"
                )
        else:
            st.caption("Sin movimientos este mes.")

    with col2:
        st.markdown("**Gastos por categoría**")
        if data.expense_by_category:
            st.bar_chart(
                [
                    {"Categoría": name, "Monto": float(amount)}
                    for name, amount in data.expense_by_category.items()
                ],
                x="Categoría",
                y="Monto",
            )
        else:
            st.caption("Sin gastos este mes.")

    st.subheader("Transacciones recientes")
    if not data.recent_transactions:
        st.caption("Todavía no registraste transacciones.")
    for tx in data.recent_transactions:
        col1, col2, col3 = st.columns([1, 4, 2])
        col1.markdown(category_icon(tx.category_icon))
        col2.markdown(f"**{tx.description}**  \n{tx.category_name or 'Sin Categoría'}")
        col3.markdown(format_transaction_amount(tx))


# =============================================================================
# ACCOUNTS
# =============================================================================

def render_accounts_page(components: AppComponents):
    """Render the accounts page."""
    st.title("🏦 Cuentas")

    try:
        accounts = run_async(components.accounts.list_all())
    except StorageError as e:
        st.error(f"No se pudieron cargar las cuentas: {e}")
        return

    with st.expander("➕ Nueva cuenta"):
        with st.form("new_account", clear_on_submit=True):
            name = st.text_input("Nombre")
            balance = st.number_input("Saldo inicial", min_value=0.0, step=100.0, format="%.2f")
            currency = st.selectbox(
                "Moneda",
                options=[Currency.UYU, Currency.USD],
                format_func=lambda c: CURRENCY_LABELS[c.value],
            )
            if st.form_submit_button("Crear cuenta", type="primary"):
                try:
                    data = AccountInput(name=name, balance=Decimal(str(balance)), currency=currency)
                    run_async(components.accounts.create(data))
                    notify_success("Cuenta creada correctamente.")
                    st.rerun()
                except ValidationError as e:
                    show_validation_error(e)
                except StorageError as e:
                    st.error(f"Error: {e}")

    if not accounts:
        st.info("Todavía no tienes cuentas. Crea la primera arriba.")
        return

    for account in accounts:
        with st.container(border=True):
            col1, col2 = st.columns([3, 2])
            col1.markdown(f"**{account.name}**  \n{account.currency.value}")
            col2.markdown(f"### {format_currency(account.balance, account.currency)}")

            with st.expander("Editar"):
                with st.form(f"edit_account_{account.id}"):
                    name = st.text_input("Nombre", value=account.name)
                    balance = st.number_input(
                        "Saldo", min_value=0.0, value=float(account.balance), format="%.2f"
                    )
                    currency = st.selectbox(
                        "Moneda",
                        options=[Currency.UYU, Currency.USD],
                        index=[Currency.UYU, Currency.USD].index(account.currency),
                        format_func=lambda c: CURRENCY_LABELS[c.value],
                    )
                    if st.form_submit_button("Guardar cambios"):
                        try:
                            data = AccountInput(
                                name=name, balance=Decimal(str(balance)), currency=currency
                            )
                            run_async(components.accounts.update(account.id, data))
                            notify_success("Cuenta actualizada correctamente.")
                            st.rerun()
                        except ValidationError as e:
                            show_validation_error(e)
                        except StorageError as e:
                            st.error(f"Error: {e}")

            render_delete_control(
                key=f"account_{account.id}",
                warning="Se eliminarán también todas sus transacciones.",
                on_confirm=lambda a=account: run_async(components.accounts.delete(a.id)),
                success="Cuenta eliminada.",
            )


def render_delete_control(key: str, warning: str, on_confirm, success: str) -> None:
    """Two-step delete: tick to confirm, then press the button."""
    confirm = st.checkbox("Confirmar eliminación", key=f"confirm_{key}", help=warning)
    if st.button("🗑️ Eliminar", key=f"delete_{key}", disabled=not confirm):
        try:
            on_confirm()
            notify_success(success)
            st.rerun()
        except StorageError as e:
            st.error(f"Error: {e}")


# =============================================================================
# CATEGORIES
# =============================================================================

def render_categories_page(components: AppComponents):
    """Render the categories page."""
    st.title("🏷️ Categorías")

    try:
        categories = run_async(components.categories.list_all())
    except StorageError as e:
        st.error(f"No se pudieron cargar las categorías: {e}")
        return

    icon_names = sorted(CATEGORY_ICONS)

    with st.expander("➕ Nueva categoría"):
        with st.form("new_category", clear_on_submit=True):
            name = st.text_input("Nombre")
            icon = st.selectbox(
                "Icono",
                options=icon_names,
                index=icon_names.index("Package"),
                format_func=lambda n: f"{category_icon(n)} {n}",
            )
            if st.form_submit_button("Crear categoría", type="primary"):
                try:
                    run_async(components.categories.create(CategoryInput(name=name, icon=icon)))
                    notify_success("Categoría creada correctamente.")
                    st.rerun()
                except ValidationError as e:
                    show_validation_error(e)
                except StorageError as e:
                    st.error(f"Error: {e}")

    if not categories:
        st.info("Todavía no tienes categorías.")
        return

    for category in categories:
        with st.container(border=True):
            st.markdown(f"{category_icon(category.icon)} **{category.name}**")

            with st.expander("Editar"):
                with st.form(f"edit_category_{category.id}"):
                    name = st.text_input("Nombre", value=category.name)
                    icon = st.text_input("Icono (de Lucide)", value=category.icon)
                    if st.form_submit_button("Guardar cambios"):
                        try:
                            data = CategoryInput(name=name, icon=icon)
                            run_async(components.categories.update(category.id, data))
                            notify_success("Categoría actualizada correctamente.")
                            st.rerun()
                        except ValidationError as e:
                            show_validation_error(e)
                        except StorageError as e:
                            st.error(f"Error: {e}")

            render_delete_control(
                key=f"category_{category.id}",
                warning="Las transacciones quedarán sin categoría.",
                on_confirm=lambda c=category: run_async(components.categories.delete(c.id)),
                success="Categoría eliminada.",
            )


# =============================================================================
# TRANSACTIONS
# =============================================================================

def render_transaction_form(components: AppComponents, key: str, accounts, categories, tx=None):
    """Create or edit form. Balances move with the saved transaction."""
    account_ids = [a.id for a in accounts]
    category_ids = [c.id for c in categories]
    account_names = {a.id: f"{a.name} ({a.currency.value})" for a in accounts}
    category_names = {c.id: f"{category_icon(c.icon)} {c.name}" for c in categories}

    with st.form(key, clear_on_submit=tx is None):
        description = st.text_input("Descripción", value=tx.description if tx else "")
        amount = st.number_input(
            "Monto",
            min_value=0.0,
            value=float(tx.amount) if tx else 0.0,
            step=100.0,
            format="%.2f",
        )
        tx_type = st.radio(
            "Tipo",
            options=[TransactionType.EXPENSE, TransactionType.INCOME],
            index=0 if not tx or tx.type == TransactionType.EXPENSE else 1,
            format_func=lambda t: TRANSACTION_TYPE_LABELS[t.value],
            horizontal=True,
        )
        account_id = st.selectbox(
            "Cuenta",
            options=account_ids,
            index=account_ids.index(tx.account_id) if tx and tx.account_id in account_ids else 0,
            format_func=lambda i: account_names[i],
        )
        category_id = st.selectbox(
            "Categoría",
            options=category_ids,
            index=category_ids.index(tx.category_id) if tx and tx.category_id in category_ids else 0,
            format_func=lambda i: category_names[i],
        )
        tx_date = st.date_input(
            "Fecha",
            value=tx.date.date() if tx else date.today(),
            min_value=date(1900, 1, 1),
            max_value=date.today(),
        )

        if st.form_submit_button("Guardar transacción", type="primary"):
            try:
                data = TransactionInput(
                    description=description,
                    amount=Decimal(str(amount)),
                    type=tx_type,
                    account_id=account_id,
                    category_id=category_id,
                    date=tx_date,
                )
                if tx is None:
                    run_async(components.transactions.add(data))
                    notify_success("Transacción creada correctamente.")
                else:
                    run_async(components.transactions.update(tx.id, data))
                    notify_success("Transacción actualizada correctamente.")
                st.rerun()
            except ValidationError as e:
                show_validation_error(e)
            except StorageError as e:
                st.error(f"Error: {e}")


def render_transactions_page(components: AppComponents):
    """Render the transactions page."""
    st.title("💸 Transacciones")

    try:
        transactions = run_async(components.transactions.list_all())
        accounts = run_async(components.accounts.list_all())
        categories = run_async(components.categories.list_all())
    except StorageError as e:
        st.error(f"No se pudieron cargar las transacciones: {e}")
        return

    if not accounts or not categories:
        st.warning("Crea al menos una cuenta y una categoría antes de registrar transacciones.")
    else:
        with st.expander("➕ Nueva transacción"):
            render_transaction_form(components, "new_transaction", accounts, categories)

    if not transactions:
        st.info("Todavía no registraste transacciones.")
        return

    for tx in transactions:
        with st.container(border=True):
            col1, col2, col3 = st.columns([1, 5, 2])
            col1.markdown(category_icon(tx.category_icon))
            col2.markdown(
                f"**{tx.description}**  \n"
                f"{tx.date.strftime('%d/%m/%Y')} · {tx.account_name or ''} · "
                f"{tx.category_name or 'Sin Categoría'}"
            )
            col3.markdown(format_transaction_amount(tx))

            if accounts and categories:
                with st.expander("Editar"):
                    render_transaction_form(
                        components, f"edit_transaction_{tx.id}", accounts, categories, tx
                    )

            render_delete_control(
                key=f"transaction_{tx.id}",
                warning="El saldo de la cuenta se ajustará.",
                on_confirm=lambda t=tx: run_async(components.transactions.delete(t.id)),
                success="Transacción eliminada.",
            )


# =============================================================================
# BUDGETS
# =============================================================================

def render_budgets_page(components: AppComponents):
    """Render the budgets page."""
    st.title("🎯 Presupuestos")
    st.markdown("Presupuestos del mes actual.")

    try:
        budgets = run_async(components.budgets.list_with_spending())
        categories = run_async(components.categories.list_all())
    except StorageError as e:
        st.error(f"No se pudieron cargar los presupuestos: {e}")
        return

    if categories:
        category_names = {c.id: f"{category_icon(c.icon)} {c.name}" for c in categories}
        with st.expander("➕ Nuevo presupuesto"):
            with st.form("new_budget", clear_on_submit=True):
                category_id = st.selectbox(
                    "Categoría",
                    options=list(category_names),
                    format_func=lambda i: category_names[i],
                )
                amount = st.number_input("Monto", min_value=0.0, step=100.0, format="%.2f")
                if st.form_submit_button("Crear presupuesto", type="primary"):
                    try:
                        data = BudgetInput(category_id=category_id, amount=Decimal(str(amount)))
                        run_async(components.budgets.create(data))
                        notify_success("Presupuesto creado correctamente.")
                        st.rerun()
                    except ValidationError as e:
                        show_validation_error(e)
                    except DuplicateError:
                        st.error(DUPLICATE_BUDGET_MESSAGE)
                    except StorageError as e:
                        st.error(f"Error: {e}")
    else:
        st.warning("Crea una categoría antes de definir presupuestos.")

    if not budgets:
        st.info("No hay presupuestos para este mes.")
        return

    for budget in budgets:
        with st.container(border=True):
            st.markdown(
                f"{category_icon(budget.category_icon)} **{budget.category_name or 'Sin Categoría'}**"
            )
            st.progress(min(budget.progress / 100, 1.0))
            caption = (
                f"{format_currency(budget.spent, budget.currency)} "
                f"de {format_currency(budget.amount, budget.currency)}"
            )
            if budget.is_over_budget:
                st.error(f"{caption} · Presupuesto excedido")
            else:
                st.caption(caption)

            with st.expander("Editar monto"):
                with st.form(f"edit_budget_{budget.id}"):
                    amount = st.number_input(
                        "Monto", min_value=0.0, value=float(budget.amount), format="%.2f"
                    )
                    if st.form_submit_button("Guardar cambios"):
                        if amount <= 0:
                            st.error("El monto debe ser positivo.")
                        else:
                            try:
                                run_async(
                                    components.budgets.update(budget.id, Decimal(str(amount)))
                                )
                                notify_success("Presupuesto actualizado correctamente.")
                                st.rerun()
                            except StorageError as e:
                                st.error(f"Error: {e}")

            render_delete_control(
                key=f"budget_{budget.id}",
                warning="Se eliminará el presupuesto de este mes.",
                on_confirm=lambda b=budget: run_async(components.budgets.delete(b.id)),
                success="Presupuesto eliminado.",
            )


# =============================================================================
# PROFILE
# =============================================================================

def render_profile_page(components: AppComponents):
    """Render the profile page."""
    st.title("👤 Perfil")

    try:
        profile = run_async(components.profile.get())
    except StorageError as e:
        st.error(f"No se pudo cargar el perfil: {e}")
        return

    avatar_url = (profile.avatar_url if profile else None) or components.session.avatar_url
    if avatar_url and avatar_url.startswith("http"):
        st.image(avatar_url, width=120)

    st.markdown(f"**Correo:** {components.session.email or ''}")

    with st.form("profile"):
        full_name = st.text_input(
            "Nombre completo",
            value=(profile.full_name if profile else None) or components.session.full_name or "",
        )
        avatar = st.file_uploader("Foto de perfil", type=["png", "jpg", "jpeg", "webp"])
        if st.form_submit_button("Guardar perfil", type="primary"):
            try:
                run_async(
                    components.profile.update(
                        ProfileInput(full_name=full_name),
                        avatar=avatar.getvalue() if avatar else None,
                        avatar_filename=avatar.name if avatar else None,
                        avatar_content_type=avatar.type if avatar else None,
                    )
                )
                notify_success("Perfil actualizado correctamente.")
                st.rerun()
            except ValidationError as e:
                show_validation_error(e)
            except StorageError as e:
                st.error(f"Error: {e}")

    st.markdown("---")
    st.subheader("Actividad reciente")
    storage = components.audit_logger.storage
    events = run_async(storage.get_recent_events(limit=20)) if storage else []
    if not events:
        st.caption("Sin actividad en esta sesión.")
    for event in events:
        st.caption(f"{event.timestamp.strftime('%H:%M:%S')} · {event.description}")


# =============================================================================
# ASSISTANT
# =============================================================================

def get_chat(components: AppComponents) -> ChatReconciler:
    if "chat" not in st.session_state:
        st.session_state.chat = components.new_chat()
    return st.session_state.chat


def render_assistant_panel(components: AppComponents):
    """Render the assistant chat panel."""
    st.subheader("✨ Brisk Insights")
    st.caption("Tu co-piloto financiero inteligente.")

    chat = get_chat(components)

    for turn in chat.log.turns:
        with st.chat_message("user" if turn.role == Role.USER else "assistant"):
            st.markdown(turn.content)

    prompt = st.chat_input(
        "Pregúntame sobre tus finanzas...",
        disabled=chat.is_busy,
    )
    if not prompt:
        return

    with st.chat_message("user"):
        st.markdown(prompt.strip())

    with st.chat_message("assistant"):
        bubble = st.empty()
        bubble.markdown("…")

    chat.on_update = lambda turn: bubble.markdown(turn.content)
    chat.on_error = lambda message, error: st.toast(message, icon="⚠️")

    run_async(chat.submit(prompt))
    st.rerun()


# =============================================================================
# SETTINGS
# =============================================================================

def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Configuración")

    st.markdown("### Estado de la conexión")

    status = validate_all_settings()

    services = [
        ("Supabase (datos y autenticación)", "supabase"),
        ("Asistente", "assistant"),
        ("Aplicación", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configurado")
        else:
            error = status.get(f"{key}_error", "No configurado")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuración")
    st.markdown(
        "Para configurar la aplicación, crea un archivo `.env` con tus claves. "
        "Consulta `.env.example` para ver las variables necesarias."
    )


if __name__ == "__main__":
    main()
