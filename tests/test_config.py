"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from brisk_insights.config import (
    AppSettings,
    AssistantSettings,
    SupabaseSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "ASSISTANT_ENDPOINT_URL",
        "ASSISTANT_TIMEOUT_SECONDS",
        "DEFAULT_CURRENCY",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestAssistantSettings:

    def test_defaults(self):
        settings = AssistantSettings()
        assert settings.timeout_seconds == 60.0
        assert settings.output_field == "output"
        assert settings.greeting

    def test_timeout_bounds(self, monkeypatch):
        monkeypatch.setenv("ASSISTANT_TIMEOUT_SECONDS", "0")
        with pytest.raises(ValidationError):
            AssistantSettings()


class TestEndpointResolution:

    def test_defaults_to_edge_function(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://xyz.supabase.co/")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")

        assert get_settings().assistant_endpoint() == (
            "https://xyz.supabase.co/functions/v1/agent-chat"
        )

    def test_explicit_endpoint_wins(self, monkeypatch):
        monkeypatch.setenv("ASSISTANT_ENDPOINT_URL", "http://localhost:9000/chat")
        assert get_settings().assistant_endpoint() == "http://localhost:9000/chat"


class TestValidation:

    def test_missing_backend_is_reported(self):
        results = validate_all_settings()
        assert results["supabase"] is False
        assert "supabase_error" in results
        assert results["assistant"] is True
        assert results["app"] is True

    def test_supabase_requires_url_and_key(self):
        with pytest.raises(ValidationError):
            SupabaseSettings()

    def test_currency_must_be_supported(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_CURRENCY", "EUR")
        with pytest.raises(ValidationError):
            AppSettings()
