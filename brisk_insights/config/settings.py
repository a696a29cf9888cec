"""
Configuration Management for Brisk Insights

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SupabaseSettings(BaseSettings):
    """Backend-as-a-service (storage, auth, edge functions) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUPABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        ...,
        description="Project URL, e.g. https://xyz.supabase.co"
    )
    anon_key: str = Field(
        ...,
        description="Public anon key (row-level security applies)"
    )
    avatars_bucket: str = Field(
        default="avatars",
        description="Storage bucket for profile pictures"
    )

    @field_validator('url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def functions_url(self) -> str:
        """Base URL for edge functions."""
        return f"{self.url}/functions/v1"


class AssistantSettings(BaseSettings):
    """Conversational assistant configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ASSISTANT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    endpoint_url: Optional[str] = Field(
        default=None,
        description="Chat endpoint. Defaults to the agent-chat edge function"
    )
    function_name: str = Field(
        default="agent-chat",
        description="Edge function used when endpoint_url is not set"
    )
    timeout_seconds: float = Field(
        default=60.0,
        ge=1.0,
        le=300.0,
        description="Wall-clock deadline for one request, stream included"
    )
    output_field: str = Field(
        default="output",
        description="Field of the streamed JSON payload holding the reply"
    )
    greeting: str = Field(
        default=(
            "¡Hola! Soy Brisk Insights, tu asistente financiero personal. "
            "¿En qué puedo ayudarte hoy?"
        ),
        description="Synthetic assistant turn every conversation starts with"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Display
    default_currency: str = Field(
        default="UYU",
        pattern="^(USD|UYU)$",
        description="Currency assumed when none can be derived"
    )
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Rows shown in the dashboard's recent transactions card"
    )
    top_categories_limit: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Categories listed in the monthly spending summary"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def supabase(self) -> SupabaseSettings:
        return SupabaseSettings()

    @property
    def assistant(self) -> AssistantSettings:
        return AssistantSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()

    def assistant_endpoint(self) -> str:
        """Resolve the chat endpoint, falling back to the edge function URL."""
        assistant = self.assistant
        if assistant.endpoint_url:
            return assistant.endpoint_url
        return f"{self.supabase.functions_url}/{assistant.function_name}"


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("supabase", "assistant", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
