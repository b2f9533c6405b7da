# ============================================================================
# src/coding_review/config/completion_config.py
# ============================================================================
"""
Completion Backend Configuration
- Backend selection (OpenAI / Azure OpenAI)
- Credentials
- Model / deployment
- Timeout
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_CREDENTIAL = "placeholder-key"


def _blank_to_none(value):
    """Treat empty and placeholder credentials as missing."""
    if value is None:
        return None
    value = str(value).strip()
    if not value or value == PLACEHOLDER_CREDENTIAL:
        return None
    return value


class CompletionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    COMPLETION_BACKEND: str = Field(
        default="openai",
        description="Completion backend: 'openai' or 'azure'"
    )
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        description="API key for the OpenAI backend"
    )
    OPENAI_MODEL: str = Field(
        default="gpt-5-nano",
        description="Chat model used for coding review"
    )
    OPENAI_BASE_URL: Optional[str] = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints"
    )
    AZURE_OPENAI_ENDPOINT: Optional[str] = Field(default=None)
    AZURE_OPENAI_API_KEY: Optional[str] = Field(default=None)
    AZURE_OPENAI_DEPLOYMENT: str = Field(
        default="gpt-4o",
        description="Azure chat deployment name"
    )
    AZURE_OPENAI_API_VERSION: str = Field(default="2024-02-01")
    COMPLETION_TIMEOUT: float = Field(
        default=300.0,
        gt=0,
        description="Maximum time for one completion call (seconds)"
    )
    COMPLETION_TEMPERATURE: Optional[float] = Field(
        default=None,
        ge=0.0, le=2.0,
        description="Sampling temperature; omitted from the request when unset"
    )

    @field_validator("OPENAI_API_KEY", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_ENDPOINT", mode="before")
    @classmethod
    def _credential(cls, value):
        return _blank_to_none(value)

    @field_validator("COMPLETION_BACKEND")
    @classmethod
    def _backend(cls, value: str) -> str:
        return value.strip().lower()


completion_settings = CompletionSettings()
