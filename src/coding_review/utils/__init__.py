# ============================================================================
# src/coding_review/utils/__init__.py
# ============================================================================
"""
Shared utilities: exceptions and logging.
"""

from .exceptions import (
    CodingReviewError,
    ConfigurationError,
    DocumentIngestionError,
    UnsupportedFileType,
    ExtractionFailure,
    CompletionFailure,
    ModelUnavailable,
    CompletionError,
    AnalysisFailure,
)
from .logging import setup_logging, setup_logging_from_settings, log_performance, JsonFormatter

__all__ = [
    "CodingReviewError",
    "ConfigurationError",
    "DocumentIngestionError",
    "UnsupportedFileType",
    "ExtractionFailure",
    "CompletionFailure",
    "ModelUnavailable",
    "CompletionError",
    "AnalysisFailure",
    "setup_logging",
    "setup_logging_from_settings",
    "log_performance",
    "JsonFormatter",
]
