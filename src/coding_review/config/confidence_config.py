# ============================================================================
# src/coding_review/config/confidence_config.py
# ============================================================================
"""
Confidence Tuning
- Estimator baseline and per-signal caps
- Fixed confidences for degraded recovery tiers
- Bonus / penalty adjustments

These constants were tuned against one model's output distribution. Only
their ordering is load-bearing: full > progressive > fallback.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfidenceSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    CONFIDENCE_BASELINE: float = Field(
        default=0.5,
        ge=0.0, le=1.0,
        description="Starting score before structural signals are added"
    )
    CONFIDENCE_ERROR_BASELINE: float = Field(
        default=0.3,
        ge=0.0, le=1.0,
        description="Score used when the estimator itself fails"
    )
    PROGRESSIVE_CONFIDENCE: float = Field(
        default=0.6,
        ge=0.0, le=1.0,
        description="Fixed confidence for field-by-field salvaged results"
    )
    FALLBACK_CONFIDENCE: float = Field(
        default=0.1,
        ge=0.0, le=1.0,
        description="Fixed confidence for placeholder results"
    )
    PROGRESSIVE_COMPLIANCE_SCORE: int = Field(
        default=75,
        ge=0, le=100,
        description="Compliance score assumed when a salvaged response omits it"
    )
    CODING_QUALITY_CAP: float = Field(default=0.30, ge=0.0, le=1.0)
    COMPLETENESS_CAP: float = Field(default=0.20, ge=0.0, le=1.0)
    STRUCTURE_CAP: float = Field(default=0.20, ge=0.0, le=1.0)
    ADEQUACY_CAP: float = Field(default=0.20, ge=0.0, le=1.0)
    ADJUSTMENT_BONUS: float = Field(
        default=0.05,
        ge=0.0, le=1.0,
        description="Bonus per satisfied density rule"
    )
    MISSING_DATA_PENALTY: float = Field(
        default=0.1,
        ge=0.0, le=1.0,
        description="Penalty when most top-level values are missing-data sentinels"
    )

    @model_validator(mode="after")
    def _check_tier_ordering(self):
        if not self.FALLBACK_CONFIDENCE <= self.PROGRESSIVE_CONFIDENCE:
            raise ValueError("FALLBACK_CONFIDENCE must not exceed PROGRESSIVE_CONFIDENCE")
        return self


confidence_settings = ConfidenceSettings()
