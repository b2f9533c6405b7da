# ============================================================================
# src/coding_review/__init__.py
# ============================================================================
"""
Coding Review Engine

Turns clinical documents into validated coding review records using a
generative model, recovering structure from unreliable completions.
"""

__version__ = "0.1.0"

from .core import AnalysisOrchestrator, ConfidenceEstimator, create_orchestrator
from .extractors import DocumentIngestor, PDFTextExtractionClient
from .llm import PromptBuilder, create_client
from .models import AnalysisResult, CodingReviewResult, ProcessingQueueItem, QueueStatus
from .recovery import ResponseRecoveryEngine
from .utils import (
    CodingReviewError,
    UnsupportedFileType,
    ExtractionFailure,
    ModelUnavailable,
    CompletionError,
    AnalysisFailure,
)
