# ============================================================================
# src/coding_review/models/__init__.py
# ============================================================================
"""
Data model: the recovered coding review payload and request bookkeeping.
"""

from .review_result import (
    ANALYSIS_TYPE,
    PROGRESSIVE_ANALYSIS_TYPE,
    FALLBACK_ANALYSIS_TYPE,
    EXPLANATION_KEYS,
    RecoveryTier,
    Explanation,
    PatientInfo,
    AlternativeCode,
    SequencingRecommendation,
    PrimaryDiagnosisCoding,
    SecondaryCode,
    MissingCode,
    SecondaryDiagnosesAnalysis,
    IncorrectCode,
    SeverityAdjustment,
    SequencingImprovement,
    CodingCorrections,
    AdditionalCode,
    DocumentationRequirement,
    ComplianceIssue,
    BestPractice,
    CodingRecommendations,
    ReviewSummary,
    CodingReviewResult,
    FullReviewResult,
    PartialReviewResult,
    FallbackReviewResult,
    was_supplied,
    is_well_formed_list,
)
from .analysis import (
    QueueStatus,
    FileInfo,
    ProcessingQueueItem,
    AnalysisResult,
    new_analysis_id,
    format_processing_time,
)
