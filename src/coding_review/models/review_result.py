# ============================================================================
# src/coding_review/models/review_result.py
# ============================================================================
"""
Coding Review Result Schema

The strongly-shaped payload recovered from the model's completion. Python
attribute names are snake_case; the JSON keys requested by the system prompt
are camelCase and are produced by the alias generator.

Every section and list has a default, so an instance is always fully shaped
regardless of how much the model supplied. Which keys the model actually
supplied is kept in pydantic's ``model_fields_set``; the confidence estimator
reads presence from there.

Values are coerced leniently (null -> "", "3" -> 3, unknown tags -> neutral
tag) because the model's output is not trusted to respect the schema.
"""

import json
import re
from enum import Enum
from typing import Annotated, Any, Callable, ClassVar, Dict, FrozenSet, Iterator, List, Literal, Optional, Tuple, get_origin

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PrivateAttr, model_validator
from pydantic.alias_generators import to_camel


ANALYSIS_TYPE = "coding-review"
PROGRESSIVE_ANALYSIS_TYPE = "coding-review-progressive"
FALLBACK_ANALYSIS_TYPE = "coding-review-fallback"

EXPLANATION_KEYS = ("whatItMeans", "whyImportant", "howItAffectsCare", "implementation")


class RecoveryTier(Enum):
    """Which recovery strategy produced a result."""
    DIRECT = 1         # cleaned completion parsed as-is
    REEXTRACTED = 2    # outermost braces re-extracted, balance-checked
    PROGRESSIVE = 3    # field-by-field salvage
    FALLBACK = 4       # placeholder, nothing recovered


# ----------------------------------------------------------------------------
# Lenient coercions
# ----------------------------------------------------------------------------

def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value)


def _as_optional_text(value: Any) -> Optional[str]:
    return None if value is None else _as_text(value)


def _as_count(value: Any) -> int:
    if value is None or isinstance(value, (dict, list)):
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value)) if value == value else 0
    match = re.search(r"-?\d+", str(value))
    return int(match.group()) if match else 0


def _as_confidence(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if 0.0 <= number <= 1.0:
        return number
    return None


def _as_records(value: Any) -> List[Any]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, (dict, BaseModel))]


def _as_text_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, list):
        return []
    return [_as_text(item) for item in value if not isinstance(item, (dict, list))]


def _as_mapping(value: Any) -> Any:
    if isinstance(value, (dict, BaseModel)):
        return value
    return {}


def _tag(allowed: Tuple[str, ...], default: str) -> Callable[[Any], str]:
    def coerce(value: Any) -> str:
        if isinstance(value, str):
            normalized = value.strip().lower().replace(" ", "_")
            if normalized in allowed:
                return normalized
        return default
    return coerce


Text = Annotated[str, BeforeValidator(_as_text)]
OptionalText = Annotated[Optional[str], BeforeValidator(_as_optional_text)]
Count = Annotated[int, BeforeValidator(_as_count)]
Confidence = Annotated[Optional[float], BeforeValidator(_as_confidence)]
TextList = Annotated[List[str], BeforeValidator(_as_text_list)]

ValidationStatus = Annotated[
    Literal["valid", "needs_review", "invalid"],
    BeforeValidator(_tag(("valid", "needs_review", "invalid"), "needs_review")),
]
IssueSeverity = Annotated[
    Literal["low", "medium", "high"],
    BeforeValidator(_tag(("low", "medium", "high"), "medium")),
]
Priority = IssueSeverity
RiskLevel = Annotated[
    Literal["low", "medium", "high", "critical"],
    BeforeValidator(_tag(("low", "medium", "high", "critical"), "medium")),
]


class ReviewModel(BaseModel):
    """Base for every record in the result tree."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    # list fields whose supplied value was not a JSON array
    _malformed: FrozenSet[str] = PrivateAttr(default=frozenset())

    @model_validator(mode="wrap")
    @classmethod
    def _track_malformed_lists(cls, data: Any, handler: Any) -> Any:
        instance = handler(data)
        if not isinstance(data, dict):
            return instance
        malformed = set()
        for name, info in cls.model_fields.items():
            if get_origin(info.annotation) is not list:
                continue
            for key in (info.alias, name):
                if key and key in data:
                    if not isinstance(data[key], list):
                        malformed.add(name)
                    break
        if malformed:
            instance._malformed = frozenset(malformed)
        return instance


# ----------------------------------------------------------------------------
# Records
# ----------------------------------------------------------------------------

class Explanation(ReviewModel):
    """Four fixed narrative fields. Unknown keys are dropped."""
    model_config = ConfigDict(extra="ignore")

    what_it_means: Text = ""
    why_important: Text = ""
    how_it_affects_care: Text = ""
    implementation: Text = ""


ExplanationField = Annotated[Explanation, BeforeValidator(_as_mapping)]


class PatientInfo(ReviewModel):
    patient_name: Text = ""
    patient_id: Text = ""
    mrn: Text = ""
    visit_type: Text = ""
    payor: Text = ""
    visit_date: Text = ""
    clinician: Text = ""
    pay_period: Text = ""
    status: Text = ""


class AlternativeCode(ReviewModel):
    code: Text = ""
    description: Text = ""
    rationale: Text = ""


class SequencingRecommendation(ReviewModel):
    recommendation: Text = ""
    explanation: ExplanationField = Field(default_factory=Explanation)


class PrimaryDiagnosisCoding(ReviewModel):
    current_code: Text = ""
    current_description: Text = ""
    severity_level: Text = ""
    clinical_support: Text = ""
    alternative_codes: Annotated[List[AlternativeCode], BeforeValidator(_as_records)] = Field(default_factory=list)
    sequencing_recommendations: Annotated[SequencingRecommendation, BeforeValidator(_as_mapping)] = Field(
        default_factory=SequencingRecommendation
    )
    validation_status: ValidationStatus = "needs_review"


class SecondaryCode(ReviewModel):
    code: Text = ""
    description: Text = ""
    severity_level: Text = ""
    validation: Text = ""
    specificity_recommendations: Text = ""
    comorbidity_impact: Text = ""


class MissingCode(ReviewModel):
    """A diagnosis suggested from documentation but not coded."""
    suggested_code: Text = ""
    description: Text = ""
    rationale: Text = ""
    documentation_needed: Text = ""


class SecondaryDiagnosesAnalysis(ReviewModel):
    codes: Annotated[List[SecondaryCode], BeforeValidator(_as_records)] = Field(default_factory=list)
    missing_diagnoses: Annotated[List[MissingCode], BeforeValidator(_as_records)] = Field(default_factory=list)
    comorbidity_impact: Text = ""
    total_secondary_codes: Count = 0


class IncorrectCode(ReviewModel):
    current_code: Text = ""
    suggested_code: Text = ""
    reason: Text = ""
    documentation_needed: Text = ""
    severity: IssueSeverity = "medium"


class SeverityAdjustment(ReviewModel):
    code: Text = ""
    current_severity: Text = ""
    suggested_severity: Text = ""
    rationale: Text = ""
    explanation: ExplanationField = Field(default_factory=Explanation)


class SequencingImprovement(ReviewModel):
    current_sequence: TextList = Field(default_factory=list)
    suggested_sequence: TextList = Field(default_factory=list)
    rationale: Text = ""
    explanation: ExplanationField = Field(default_factory=Explanation)


class CodingCorrections(ReviewModel):
    incorrect_codes: Annotated[List[IncorrectCode], BeforeValidator(_as_records)] = Field(default_factory=list)
    missing_codes: Annotated[List[MissingCode], BeforeValidator(_as_records)] = Field(default_factory=list)
    severity_adjustments: Annotated[List[SeverityAdjustment], BeforeValidator(_as_records)] = Field(default_factory=list)
    sequencing_improvements: Annotated[List[SequencingImprovement], BeforeValidator(_as_records)] = Field(
        default_factory=list
    )


class AdditionalCode(ReviewModel):
    code: Text = ""
    description: Text = ""
    rationale: Text = ""
    priority: Priority = "medium"


class DocumentationRequirement(ReviewModel):
    requirement: Text = ""
    purpose: Text = ""
    priority: Priority = "medium"


class ComplianceIssue(ReviewModel):
    issue: Text = ""
    severity: IssueSeverity = "medium"
    recommendation: Text = ""


class BestPractice(ReviewModel):
    practice: Text = ""
    explanation: ExplanationField = Field(default_factory=Explanation)


class CodingRecommendations(ReviewModel):
    additional_codes: Annotated[List[AdditionalCode], BeforeValidator(_as_records)] = Field(default_factory=list)
    documentation_requirements: Annotated[List[DocumentationRequirement], BeforeValidator(_as_records)] = Field(
        default_factory=list
    )
    compliance_issues: Annotated[List[ComplianceIssue], BeforeValidator(_as_records)] = Field(default_factory=list)
    best_practices: Annotated[List[BestPractice], BeforeValidator(_as_records)] = Field(default_factory=list)


class ReviewSummary(ReviewModel):
    total_issues: Count = 0
    critical_issues: Count = 0
    recommendations: Count = 0
    compliance_score: Count = 0
    risk_level: RiskLevel = "medium"
    ai_confidence: Confidence = None


# ----------------------------------------------------------------------------
# Result
# ----------------------------------------------------------------------------

class CodingReviewResult(ReviewModel):
    """
    Validated clinical coding review.

    Subclasses tag which recovery tier produced the instance; downstream code
    only ever needs this type.
    """

    default_tier: ClassVar[RecoveryTier] = RecoveryTier.DIRECT

    patient_info: Annotated[PatientInfo, BeforeValidator(_as_mapping)] = Field(default_factory=PatientInfo)
    primary_diagnosis_coding: Annotated[PrimaryDiagnosisCoding, BeforeValidator(_as_mapping)] = Field(
        default_factory=PrimaryDiagnosisCoding
    )
    secondary_diagnoses_analysis: Annotated[SecondaryDiagnosesAnalysis, BeforeValidator(_as_mapping)] = Field(
        default_factory=SecondaryDiagnosesAnalysis
    )
    coding_corrections: Annotated[CodingCorrections, BeforeValidator(_as_mapping)] = Field(
        default_factory=CodingCorrections
    )
    coding_recommendations: Annotated[CodingRecommendations, BeforeValidator(_as_mapping)] = Field(
        default_factory=CodingRecommendations
    )
    summary: Annotated[ReviewSummary, BeforeValidator(_as_mapping)] = Field(default_factory=ReviewSummary)
    confidence: Confidence = None
    analysis_type: OptionalText = None
    timestamp: OptionalText = None

    _tier: Optional[RecoveryTier] = PrivateAttr(default=None)

    @property
    def recovery_tier(self) -> RecoveryTier:
        return self._tier or self.default_tier

    def mark_tier(self, tier: RecoveryTier) -> None:
        self._tier = tier

    @property
    def is_degraded(self) -> bool:
        """True when the result was salvaged or is a placeholder."""
        return self.recovery_tier in (RecoveryTier.PROGRESSIVE, RecoveryTier.FALLBACK)

    def iter_explanations(self) -> Iterator[Explanation]:
        """Every record in the tree that plays the explanation role."""
        yield self.primary_diagnosis_coding.sequencing_recommendations.explanation
        for adjustment in self.coding_corrections.severity_adjustments:
            yield adjustment.explanation
        for improvement in self.coding_corrections.sequencing_improvements:
            yield improvement.explanation
        for practice in self.coding_recommendations.best_practices:
            yield practice.explanation

    def to_dict(self) -> Dict[str, Any]:
        """Fully shaped JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    def supplied_dict(self) -> Dict[str, Any]:
        """Only the keys that were supplied or explicitly set."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class FullReviewResult(CodingReviewResult):
    """Parsed from a structurally valid completion (tiers 1 and 2)."""
    default_tier: ClassVar[RecoveryTier] = RecoveryTier.DIRECT


class PartialReviewResult(CodingReviewResult):
    """Reconstructed field by field from a broken completion (tier 3)."""
    default_tier: ClassVar[RecoveryTier] = RecoveryTier.PROGRESSIVE


class FallbackReviewResult(CodingReviewResult):
    """Placeholder built from literals when nothing could be recovered (tier 4)."""
    default_tier: ClassVar[RecoveryTier] = RecoveryTier.FALLBACK


def was_supplied(model: BaseModel, field_name: str) -> bool:
    """Whether ``field_name`` was present in the data the model was built from."""
    return field_name in model.model_fields_set


def is_well_formed_list(model: BaseModel, field_name: str) -> bool:
    """Whether a list field was supplied as an actual JSON array."""
    return was_supplied(model, field_name) and field_name not in getattr(model, "_malformed", frozenset())
