# ============================================================================
# src/coding_review/recovery/engine.py
# ============================================================================
"""
Response Recovery Engine

Turns raw completion text into a CodingReviewResult through four tiers,
each attempted only when the previous one failed:

    1. DIRECT       isolate the first balanced object, clean, parse
    2. REEXTRACTED  first '{' to last '}', clean, balance-check, parse
    3. PROGRESSIVE  salvage fields one by one from the raw text
    4. FALLBACK     placeholder built from literals

recover() never raises; the worst case is a FallbackReviewResult.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..config import ConfidenceSettings, confidence_settings
from ..models.review_result import (
    ANALYSIS_TYPE,
    FALLBACK_ANALYSIS_TYPE,
    PROGRESSIVE_ANALYSIS_TYPE,
    CodingReviewResult,
    FallbackReviewResult,
    FullReviewResult,
    PartialReviewResult,
    RecoveryTier,
)
from ..utils.logging import log_performance
from .json_scanner import JSONScanner
from .salvage import (
    UNKNOWN_CODE,
    apply_rules,
    salvage_patient_info,
    salvage_primary_code,
    summary_rules,
)

logger = logging.getLogger(__name__)


DEGRADED_RECOMMENDATION = "Manual review recommended due to parsing issues"


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def degraded_explanation(reason: str) -> Dict[str, str]:
    """Explanation record describing why a result is incomplete."""
    return {
        "whatItMeans": f"{reason}; the coding review is incomplete",
        "whyImportant": "Coding decisions based on an incomplete review may be inaccurate",
        "howItAffectsCare": "Reimbursement and care planning should not rely on this review until it is verified",
        "implementation": DEGRADED_RECOMMENDATION,
    }


class ResponseRecoveryEngine:
    """
    Recovers structured coding review data from unreliable completion text.
    """

    def __init__(
        self,
        scanner: Optional[JSONScanner] = None,
        settings: Optional[ConfidenceSettings] = None,
    ):
        self.scanner = scanner or JSONScanner()
        self.settings = settings or confidence_settings
        self.logger = logging.getLogger(__name__)

        self.stats = {tier: 0 for tier in RecoveryTier}

    @log_performance(logger, "Response recovery")
    def recover(self, raw_text: Optional[str]) -> CodingReviewResult:
        """
        Recover a result from raw completion text.

        Args:
            raw_text: Completion text exactly as the model returned it

        Returns:
            CodingReviewResult tagged with the tier that produced it
        """
        text = raw_text if isinstance(raw_text, str) else ""

        strategies = (
            (RecoveryTier.DIRECT, self._parse_direct),
            (RecoveryTier.REEXTRACTED, self._parse_reextracted),
        )
        for tier, strategy in strategies:
            try:
                result = strategy(text)
            except (ValueError, TypeError, RecursionError) as e:
                self.logger.debug(f"Tier {tier.value} ({tier.name.lower()}) failed: {e}")
                continue
            return self._finish(result, tier)

        self.logger.warning(
            f"Completion not parseable as JSON ({len(text)} chars), salvaging fields"
        )
        try:
            result = self.reconstruct_progressively(text)
        except Exception as e:
            self.logger.error(f"Progressive reconstruction failed: {e}", exc_info=True)
            result = self.build_fallback()
            return self._finish(result, RecoveryTier.FALLBACK)
        return self._finish(result, RecoveryTier.PROGRESSIVE)

    def _finish(self, result: CodingReviewResult, tier: RecoveryTier) -> CodingReviewResult:
        result.mark_tier(tier)
        self.stats[tier] += 1
        self.logger.info(f"Recovered coding review via tier {tier.value} ({tier.name.lower()})")
        return result

    # ------------------------------------------------------------------
    # Tiers 1 and 2
    # ------------------------------------------------------------------

    def _parse_direct(self, text: str) -> CodingReviewResult:
        span = self.scanner.first_balanced_object(text) or text
        payload = self.scanner.loads_object(self.scanner.clean(span))
        return self._validate_full(payload)

    def _parse_reextracted(self, text: str) -> CodingReviewResult:
        span = self.scanner.outermost_braces(text)
        if span is None:
            raise ValueError("no braces in completion")
        cleaned = self.scanner.clean(span)
        if not self.scanner.is_balanced(cleaned):
            raise ValueError("unbalanced braces, completion looks truncated")
        return self._validate_full(self.scanner.loads_object(cleaned))

    def _validate_full(self, payload: Dict[str, Any]) -> CodingReviewResult:
        result = FullReviewResult.model_validate(payload)
        if result.analysis_type is None:
            result.analysis_type = ANALYSIS_TYPE
        if result.timestamp is None:
            result.timestamp = utc_timestamp()
        return result

    # ------------------------------------------------------------------
    # Tier 3
    # ------------------------------------------------------------------

    def reconstruct_progressively(self, text: str) -> PartialReviewResult:
        """Assemble a degraded but fully shaped result from whatever fields survive."""
        salvaged = apply_rules(text, summary_rules(self.settings.PROGRESSIVE_COMPLIANCE_SCORE))
        code = salvage_primary_code(text)
        if code is None:
            self.logger.debug("Primary diagnosis code not found in completion")

        payload = {
            "patientInfo": salvage_patient_info(text, self.scanner),
            "primaryDiagnosisCoding": self._degraded_primary(
                code or UNKNOWN_CODE,
                "Primary diagnosis recovered from a partial response",
                "Response was truncated or malformed",
            ),
            "secondaryDiagnosesAnalysis": {"codes": []},
            "codingCorrections": {"incorrectCodes": [], "missingCodes": []},
            "codingRecommendations": {"additionalCodes": [], "bestPractices": []},
            "summary": salvaged.get("summary", {}),
            "confidence": self.settings.PROGRESSIVE_CONFIDENCE,
            "analysisType": PROGRESSIVE_ANALYSIS_TYPE,
            "timestamp": utc_timestamp(),
        }
        return PartialReviewResult.model_validate(payload)

    # ------------------------------------------------------------------
    # Tier 4
    # ------------------------------------------------------------------

    def build_fallback(self) -> FallbackReviewResult:
        """Placeholder used when nothing could be recovered."""
        message = "Data extraction failed - manual review required"
        payload = {
            "patientInfo": {
                "patientName": "Data Extraction Failed",
                "patientId": UNKNOWN_CODE,
                "mrn": UNKNOWN_CODE,
                "visitType": UNKNOWN_CODE,
                "payor": UNKNOWN_CODE,
                "visitDate": UNKNOWN_CODE,
                "clinician": UNKNOWN_CODE,
                "payPeriod": UNKNOWN_CODE,
                "status": "Analysis Failed",
            },
            "primaryDiagnosisCoding": self._degraded_primary(
                UNKNOWN_CODE, message, "Coding review data could not be extracted"
            ),
            "secondaryDiagnosesAnalysis": {
                "codes": [],
                "missingDiagnoses": [],
                "comorbidityImpact": message,
                "totalSecondaryCodes": 0,
            },
            "codingCorrections": {
                "incorrectCodes": [],
                "missingCodes": [],
                "severityAdjustments": [],
                "sequencingImprovements": [],
            },
            "codingRecommendations": {
                "additionalCodes": [],
                "documentationRequirements": [],
                "complianceIssues": [],
                "bestPractices": [],
            },
            "summary": {
                "totalIssues": 0,
                "criticalIssues": 0,
                "recommendations": 0,
                "complianceScore": 0,
                "riskLevel": "medium",
            },
            "confidence": self.settings.FALLBACK_CONFIDENCE,
            "analysisType": FALLBACK_ANALYSIS_TYPE,
            "timestamp": utc_timestamp(),
        }
        return FallbackReviewResult.model_validate(payload)

    @staticmethod
    def _degraded_primary(code: str, description: str, reason: str) -> Dict[str, Any]:
        return {
            "currentCode": code,
            "currentDescription": description,
            "severityLevel": "",
            "clinicalSupport": f"{reason}. {DEGRADED_RECOMMENDATION}.",
            "alternativeCodes": [],
            "sequencingRecommendations": {
                "recommendation": DEGRADED_RECOMMENDATION,
                "explanation": degraded_explanation(reason),
            },
            "validationStatus": "needs_review",
        }

    def get_statistics(self) -> Dict[str, int]:
        return {tier.name.lower(): count for tier, count in self.stats.items()}
