"""Shared fixtures. No test talks to a real backend."""

import pytest

from brisk_insights.audit import AuditLogger
from brisk_insights.services.storage import InMemoryAuditStorage, InMemoryFinanceStorage
from brisk_insights.session import SessionContext


USER_ID = "user-1"


@pytest.fixture
def session():
    """A signed-in session context."""
    ctx = SessionContext()
    ctx.set_credentials(
        access_token="token-123",
        user_id=USER_ID,
        email="ana@example.com",
        full_name="Ana",
    )
    return ctx


@pytest.fixture
def signed_out_session():
    return SessionContext()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def storage(session):
    return InMemoryFinanceStorage(session)
