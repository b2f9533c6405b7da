# ============================================================================
# src/coding_review/config/extraction_config.py
# ============================================================================
"""
Document Ingestion Configuration
- PDF text-extraction API credentials and endpoint
- Timeout
- Size policy (token ceiling, character truncation)
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .completion_config import _blank_to_none


class ExtractionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PDF_CO_API_KEY: Optional[str] = Field(
        default=None,
        description="API key for the PDF-to-text extraction service"
    )
    PDF_CO_BASE_URL: str = Field(
        default="https://api.pdf.co/v1",
        description="Base URL of the PDF-to-text extraction service"
    )
    EXTRACTION_TIMEOUT: float = Field(
        default=120.0,
        gt=0,
        description="Maximum time for each extraction HTTP step (seconds)"
    )
    MAX_ESTIMATED_TOKENS: int = Field(
        default=500_000,
        gt=0,
        description="Above this estimate (chars // 4) the PDF is not analyzed"
    )
    MAX_CONTENT_CHARS: int = Field(
        default=100_000,
        gt=0,
        description="Extracted PDF text is truncated to this many characters"
    )
    PREVIEW_CHARS: int = Field(
        default=1_000,
        ge=0,
        description="Length of the text preview kept in file info"
    )

    @field_validator("PDF_CO_API_KEY", mode="before")
    @classmethod
    def _credential(cls, value):
        return _blank_to_none(value)


extraction_settings = ExtractionSettings()
