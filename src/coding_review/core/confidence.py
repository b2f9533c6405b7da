# ============================================================================
# src/coding_review/core/confidence.py
# ============================================================================
"""
Confidence Estimation

When the model does not report its own confidence, one is estimated from
structural signals of the recovered result:

- coding quality    (patient identifiers, primary code format and support)
- completeness      (sections and fields actually supplied)
- structure         (expected lists supplied as arrays, explanations present)
- adequacy          (response length band, density of findings)

Each group is capped, then density bonuses and a missing-data penalty are
applied. The score rewards well-formedness, not clinical correctness.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..config import ConfidenceSettings, confidence_settings
from ..models.review_result import (
    CodingReviewResult,
    ReviewSummary,
    is_well_formed_list,
    was_supplied,
)

logger = logging.getLogger(__name__)


ICD10_CODE = re.compile(r"^[A-Z]\d{2}\.\d{4}[A-Z]?$")
RECOGNIZED_SEVERITIES = frozenset({"1", "2", "3", "4", "5", "01", "02", "03", "04", "05"})
MISSING_DATA_SENTINELS = frozenset({"N/A", "Unknown", ""})

PATIENT_SIGNAL_FIELDS = ("patient_name", "mrn", "visit_type", "payor")
SECTION_FIELDS = (
    "patient_info",
    "primary_diagnosis_coding",
    "secondary_diagnoses_analysis",
    "coding_corrections",
    "coding_recommendations",
)
CORRECTION_LISTS = (
    "incorrect_codes",
    "missing_codes",
    "severity_adjustments",
    "sequencing_improvements",
)
RECOMMENDATION_LISTS = (
    "additional_codes",
    "documentation_requirements",
    "compliance_issues",
    "best_practices",
)

# (low, high, bonus) checked in order; high is exclusive except for the first band
LENGTH_BANDS: Tuple[Tuple[int, float, float], ...] = (
    (8_000, 15_000, 0.10),
    (5_000, 25_000, 0.08),
    (2_000, 35_000, 0.05),
    (1_000, float("inf"), 0.03),
)

SECTION_WEIGHT = 0.02
FIELD_FRACTION_WEIGHT = 0.05
LIST_WEIGHT = 0.02
SIGNAL_WEIGHT = 0.05
PATIENT_SIGNAL_WEIGHT = 0.10
CLINICAL_SUPPORT_MIN_CHARS = 50


@dataclass
class ConfidenceThresholds:
    """Confidence level thresholds"""
    high: float = 0.85
    medium: float = 0.70

    def get_level(self, score: float) -> str:
        if score >= self.high:
            return "high"
        elif score >= self.medium:
            return "medium"
        return "low"


@dataclass
class ConfidenceBreakdown:
    """Per-group contributions behind an estimated confidence."""
    baseline: float
    coding_quality: float = 0.0
    completeness: float = 0.0
    structure: float = 0.0
    adequacy: float = 0.0
    adjustments: float = 0.0
    notes: List[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        total = (
            self.baseline
            + self.coding_quality
            + self.completeness
            + self.structure
            + self.adequacy
            + self.adjustments
        )
        return round(min(max(total, 0.0), 1.0), 4)


def _filled(value: Any) -> bool:
    return value is not None and value != ""


class ConfidenceEstimator:
    """
    Guarantees every result carries a confidence score.
    """

    def __init__(
        self,
        settings: Optional[ConfidenceSettings] = None,
        thresholds: Optional[ConfidenceThresholds] = None,
    ):
        self.settings = settings or confidence_settings
        self.thresholds = thresholds or ConfidenceThresholds()
        self.logger = logging.getLogger(__name__)

    def ensure_confidence(self, result: CodingReviewResult, raw_response_length: int) -> CodingReviewResult:
        """
        Return a copy of ``result`` whose confidence is set and mirrored into
        ``summary.aiConfidence``.

        A model-reported confidence (already validated into [0, 1]) is kept
        as-is; otherwise one is estimated.
        """
        scored = result.model_copy(deep=True)

        if scored.confidence is None:
            scored.confidence = self.estimate(scored, raw_response_length)
            self.logger.debug(
                f"Estimated confidence {scored.confidence:.2f} "
                f"({self.thresholds.get_level(scored.confidence)})"
            )

        if not was_supplied(scored, "summary"):
            scored.summary = ReviewSummary()
        scored.summary.ai_confidence = scored.confidence
        return scored

    def estimate(self, result: CodingReviewResult, raw_response_length: int) -> float:
        """Estimated confidence in [0, 1]; the error baseline if estimation fails."""
        try:
            return self.calculate(result, raw_response_length).score
        except Exception as e:
            self.logger.warning(f"Confidence estimation failed, using error baseline: {e}")
            return self.settings.CONFIDENCE_ERROR_BASELINE

    def calculate(self, result: CodingReviewResult, raw_response_length: int) -> ConfidenceBreakdown:
        s = self.settings
        breakdown = ConfidenceBreakdown(baseline=s.CONFIDENCE_BASELINE)
        breakdown.coding_quality = min(self._coding_quality(result), s.CODING_QUALITY_CAP)
        breakdown.completeness = min(self._completeness(result), s.COMPLETENESS_CAP)
        breakdown.structure = min(self._structure(result), s.STRUCTURE_CAP)
        breakdown.adequacy = min(self._adequacy(result, raw_response_length), s.ADEQUACY_CAP)
        breakdown.adjustments = self._adjustments(result, breakdown.notes)
        return breakdown

    # ------------------------------------------------------------------
    # Signal groups
    # ------------------------------------------------------------------

    def _coding_quality(self, result: CodingReviewResult) -> float:
        score = 0.0

        if was_supplied(result, "patient_info"):
            patient = result.patient_info
            if all(_filled(getattr(patient, name)) for name in PATIENT_SIGNAL_FIELDS):
                score += PATIENT_SIGNAL_WEIGHT

        primary = result.primary_diagnosis_coding
        code = primary.current_code.strip()
        if code:
            score += SIGNAL_WEIGHT
            if ICD10_CODE.match(code):
                score += SIGNAL_WEIGHT
        if len(primary.clinical_support) > CLINICAL_SUPPORT_MIN_CHARS:
            score += SIGNAL_WEIGHT
        if primary.severity_level.strip() in RECOGNIZED_SEVERITIES:
            score += SIGNAL_WEIGHT

        secondary = result.secondary_diagnoses_analysis
        if was_supplied(result, "secondary_diagnoses_analysis") and is_well_formed_list(secondary, "codes"):
            score += SIGNAL_WEIGHT
            if any(ICD10_CODE.match(entry.code.strip()) for entry in secondary.codes):
                score += SIGNAL_WEIGHT

        return score

    def _completeness(self, result: CodingReviewResult) -> float:
        score = sum(SECTION_WEIGHT for name in SECTION_FIELDS if was_supplied(result, name))

        if was_supplied(result, "patient_info"):
            patient = result.patient_info
            filled = sum(1 for name in PATIENT_SIGNAL_FIELDS if _filled(getattr(patient, name)))
            score += FIELD_FRACTION_WEIGHT * filled / len(PATIENT_SIGNAL_FIELDS)

        if was_supplied(result, "summary"):
            summary = result.summary
            names = [name for name in ReviewSummary.model_fields if name != "ai_confidence"]
            supplied = sum(
                1 for name in names
                if was_supplied(summary, name) and getattr(summary, name) is not None
            )
            score += FIELD_FRACTION_WEIGHT * supplied / len(names)

        return score

    def _structure(self, result: CodingReviewResult) -> float:
        score = 0.0
        if was_supplied(result, "coding_corrections"):
            score += sum(
                LIST_WEIGHT for name in CORRECTION_LISTS
                if is_well_formed_list(result.coding_corrections, name)
            )
        if was_supplied(result, "coding_recommendations"):
            score += sum(
                LIST_WEIGHT for name in RECOMMENDATION_LISTS
                if is_well_formed_list(result.coding_recommendations, name)
            )

        primary = result.primary_diagnosis_coding
        sequencing = primary.sequencing_recommendations
        if (
            was_supplied(primary, "sequencing_recommendations")
            and was_supplied(sequencing, "explanation")
        ):
            score += SIGNAL_WEIGHT

        return score

    def _adequacy(self, result: CodingReviewResult, raw_response_length: int) -> float:
        score = 0.0
        for index, (low, high, bonus) in enumerate(LENGTH_BANDS):
            upper_ok = raw_response_length <= high if index == 0 else raw_response_length < high
            if raw_response_length >= low and upper_ok:
                score += bonus
                break

        corrections = result.coding_corrections
        correction_count = (
            len(corrections.incorrect_codes)
            + len(corrections.missing_codes)
            + len(corrections.severity_adjustments)
        )
        if correction_count >= 3:
            score += 0.05
        elif correction_count >= 1:
            score += 0.03

        recommendations = result.coding_recommendations
        recommendation_count = len(recommendations.additional_codes) + len(recommendations.best_practices)
        if recommendation_count >= 2:
            score += 0.05
        elif recommendation_count >= 1:
            score += 0.03

        return score

    def _adjustments(self, result: CodingReviewResult, notes: List[str]) -> float:
        s = self.settings
        score = 0.0

        if self._count_explanations(result) >= 2:
            score += s.ADJUSTMENT_BONUS
            notes.append("explanations")

        if len(result.secondary_diagnoses_analysis.codes) >= 3:
            score += s.ADJUSTMENT_BONUS
            notes.append("secondary_codes")

        corrections = result.coding_corrections
        if (
            len(corrections.incorrect_codes) + len(corrections.missing_codes) > 0
            and len(result.coding_recommendations.additional_codes) > 0
        ):
            score += s.ADJUSTMENT_BONUS
            notes.append("corrections_with_recommendations")

        if self._mostly_missing(result):
            score -= s.MISSING_DATA_PENALTY
            notes.append("missing_data_penalty")

        return score

    @staticmethod
    def _count_explanations(result: CodingReviewResult) -> int:
        count = 0
        primary = result.primary_diagnosis_coding
        if was_supplied(primary.sequencing_recommendations, "explanation"):
            count += 1
        corrections = result.coding_corrections
        for record in list(corrections.severity_adjustments) + list(corrections.sequencing_improvements):
            if was_supplied(record, "explanation"):
                count += 1
        for practice in result.coding_recommendations.best_practices:
            if was_supplied(practice, "explanation"):
                count += 1
        return count

    @staticmethod
    def _mostly_missing(result: CodingReviewResult) -> bool:
        """More than half of the supplied top-level scalar values are sentinels."""
        scalars = [
            value for value in result.supplied_dict().values()
            if not isinstance(value, (dict, list))
        ]
        if not scalars:
            return False
        missing = sum(1 for value in scalars if value is None or value in MISSING_DATA_SENTINELS)
        return missing > len(scalars) / 2
