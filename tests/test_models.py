"""
Tests for Brisk Insights models

Test strategy:
1. Unit tests for individual models (inputs, aggregates, conversation log)
2. Integration tests for flows live in their own modules
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from brisk_insights.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from brisk_insights.models.chat import (
    ConversationLog,
    ConversationStateError,
    ConversationTurn,
    Role,
)
from brisk_insights.models.finance import (
    AccountInput,
    BudgetInput,
    BudgetWithSpending,
    CategoryInput,
    Currency,
    CurrencySummary,
    ProfileInput,
    Transaction,
    TransactionInput,
    TransactionType,
)


class TestFinanceInputs:
    """Tests for form input models."""

    def test_account_input_defaults(self):
        """Test AccountInput defaults to UYU with zero balance."""
        data = AccountInput(name="Efectivo")
        assert data.currency == Currency.UYU
        assert data.balance == Decimal("0")

    def test_account_input_strips_whitespace(self):
        """Test that whitespace is stripped from names."""
        assert AccountInput(name="  BROU  ").name == "BROU"

    def test_account_input_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            AccountInput(name="   ")

    def test_account_input_rejects_negative_balance(self):
        with pytest.raises(ValidationError):
            AccountInput(name="BROU", balance=Decimal("-1"))

    def test_category_input_default_icon(self):
        assert CategoryInput(name="Varios").icon == "Package"

    def test_transaction_input_requires_positive_amount(self):
        """Test that zero amounts are rejected."""
        with pytest.raises(ValidationError):
            TransactionInput(
                description="x",
                amount=Decimal("0"),
                account_id="a",
                category_id="c",
                date=date(2025, 1, 1),
            )

    def test_transaction_input_rejects_future_date(self):
        """Test that transactions cannot be dated in the future."""
        with pytest.raises(ValidationError):
            TransactionInput(
                description="x",
                amount=Decimal("1"),
                account_id="a",
                category_id="c",
                date=date.today() + timedelta(days=1),
            )

    def test_transaction_input_rejects_dates_before_1900(self):
        with pytest.raises(ValidationError):
            TransactionInput(
                description="x",
                amount=Decimal("1"),
                account_id="a",
                category_id="c",
                date=date(1899, 12, 31),
            )

    def test_transaction_input_defaults_to_expense(self):
        data = TransactionInput(
            description="Café",
            amount=Decimal("90"),
            account_id="a",
            category_id="c",
            date=date(2025, 1, 1),
        )
        assert data.type == TransactionType.EXPENSE

    def test_budget_input_requires_category(self):
        with pytest.raises(ValidationError):
            BudgetInput(category_id="", amount=Decimal("10"))

    def test_profile_input_rejects_blank_name(self):
        with pytest.raises(ValidationError):
            ProfileInput(full_name="  ")


class TestFinanceRows:
    """Tests for stored rows and aggregates."""

    def test_signed_amount(self):
        """Test that expenses subtract and income adds."""
        base = dict(
            id="t",
            account_id="a",
            amount=Decimal("10"),
            currency=Currency.UYU,
            date=datetime(2025, 1, 1),
        )
        assert Transaction(type=TransactionType.INCOME, **base).signed_amount == Decimal("10")
        assert Transaction(type=TransactionType.EXPENSE, **base).signed_amount == Decimal("-10")

    def test_budget_progress(self):
        budget = BudgetWithSpending(
            id="b",
            category_id="c",
            amount=Decimal("200"),
            month=date(2025, 3, 1),
            spent=Decimal("50"),
        )
        assert budget.progress == 25.0
        assert not budget.is_over_budget

    def test_zero_budget_progress(self):
        """Test that a zero budget reports no progress instead of dividing by zero."""
        budget = BudgetWithSpending(
            id="b",
            category_id="c",
            amount=Decimal("0"),
            month=date(2025, 3, 1),
            spent=Decimal("50"),
        )
        assert budget.progress == 0.0

    def test_net_savings(self):
        summary = CurrencySummary(
            currency="UYU",
            total_income=Decimal("100"),
            total_expense=Decimal("130"),
        )
        assert summary.net_savings == Decimal("-30")


class TestConversationLog:
    """Tests for the conversation log invariants."""

    def test_greeting_is_first_turn(self):
        log = ConversationLog(greeting="¡Hola!")
        assert len(log) == 1
        assert log.tail.role == Role.ASSISTANT
        assert log.tail.finalized

    def test_no_greeting(self):
        log = ConversationLog()
        assert len(log) == 0
        assert log.tail is None

    def test_placeholder_must_follow_user_turn(self):
        log = ConversationLog(greeting="¡Hola!")
        with pytest.raises(ConversationStateError):
            log.append_placeholder()

    def test_user_turn_rejected_while_in_flight(self):
        log = ConversationLog()
        log.append_user("hola")
        log.append_placeholder()
        with pytest.raises(ConversationStateError):
            log.append_user("otra")

    def test_two_user_turns_in_a_row_rejected(self):
        log = ConversationLog()
        log.append_user("hola")
        with pytest.raises(ConversationStateError):
            log.append_user("otra")

    def test_replace_tail_only_hits_in_flight_placeholder(self):
        """Test that updates for any other turn are ignored."""
        log = ConversationLog()
        user = log.append_user("hola")
        placeholder = log.append_placeholder()

        assert log.replace_tail(user.turn_id, "x") is False
        assert log.replace_tail(uuid4(), "x") is False
        assert log.replace_tail(placeholder.turn_id, "respuesta") is True
        assert log.tail.content == "respuesta"

    def test_finalized_tail_is_frozen(self):
        log = ConversationLog()
        log.append_user("hola")
        placeholder = log.append_placeholder()
        log.finalize_tail(placeholder.turn_id)

        assert log.replace_tail(placeholder.turn_id, "tarde") is False
        assert log.finalize_tail(placeholder.turn_id) is False
        assert not log.has_in_flight

    def test_history_excludes_in_flight_turn(self):
        log = ConversationLog(greeting="¡Hola!")
        log.append_user("¿saldo?")
        log.append_placeholder()

        assert log.history() == [
            {"role": "assistant", "content": "¡Hola!"},
            {"role": "user", "content": "¿saldo?"},
        ]

    def test_turns_snapshot_is_immutable(self):
        log = ConversationLog(greeting="¡Hola!")
        assert isinstance(log.turns, tuple)

    def test_turns_are_copies(self):
        """Editing a returned turn leaves the log untouched."""
        log = ConversationLog(greeting="¡Hola!")
        log.append_user("hola")
        placeholder = log.append_placeholder()

        log.turns[0].content = "cambiado"
        log.tail.content = "inyectado"
        placeholder.content = "otro"
        log.tail.finalized = True

        assert log.turns[0].content == "¡Hola!"
        assert log.tail.content == ""
        assert log.is_tail(placeholder.turn_id)

    def test_turn_to_wire(self):
        turn = ConversationTurn(role=Role.USER, content="hola")
        assert turn.to_wire() == {"role": "user", "content": "hola"}


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            description="Account created",
        )
        assert event.event_type == AuditEventType.ENTITY_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_timestamp_is_timezone_aware(self):
        event = AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            description="Account created",
        )
        assert event.timestamp.tzinfo is not None
        assert event.timestamp.utcoffset() == timedelta(0)

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            description="Account updated",
            details={"name": "BROU"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "entity_updated"
        assert log_dict["details"]["name"] == "BROU"
        assert log_dict["correlation_id"] is None

    def test_audit_event_builder_entity_created(self):
        """Test AuditEventBuilder.entity_created."""
        correlation_id = uuid4()

        event = AuditEventBuilder.entity_created(
            "account", "acc-1", "BROU", correlation_id
        )

        assert event.event_type == AuditEventType.ENTITY_CREATED
        assert event.entity_id == "acc-1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_chat_failed(self):
        """Test AuditEventBuilder.chat_failed."""
        turn_id = uuid4()
        correlation_id = uuid4()

        event = AuditEventBuilder.chat_failed(
            turn_id=turn_id,
            error_type="RequestTimeoutError",
            error_message="deadline",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.CHAT_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id == str(turn_id)
        assert event.error_message == "deadline"
