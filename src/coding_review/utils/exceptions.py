# ============================================================================
# src/coding_review/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the coding review engine.

Ingestion and completion failures propagate to the caller. Malformed model
output is never an exception; the recovery engine absorbs it.
"""


class CodingReviewError(Exception):
    """Base exception for all coding review errors."""
    pass


class ConfigurationError(CodingReviewError):
    """Invalid configuration."""
    pass


class DocumentIngestionError(CodingReviewError):
    """Error turning a source document into prompt text."""
    pass


class UnsupportedFileType(DocumentIngestionError):
    """Declared file extension is neither plain text nor PDF."""

    def __init__(self, extension: str):
        super().__init__(f"Unsupported file type: {extension or '(none)'}")
        self.extension = extension


class ExtractionFailure(DocumentIngestionError):
    """PDF text extraction collaborator failed, timed out or is not configured."""

    def __init__(self, message: str, step: str = "extract"):
        super().__init__(message)
        self.step = step


class CompletionFailure(CodingReviewError):
    """Error obtaining a completion from the generative model."""
    pass


class ModelUnavailable(CompletionFailure):
    """No credential or configuration for the completion backend."""
    pass


class CompletionError(CompletionFailure):
    """Transport or API error from the completion provider."""
    pass


class AnalysisFailure(CodingReviewError):
    """Unexpected error inside an analysis run."""

    def __init__(self, message: str, analysis_id: str):
        super().__init__(message)
        self.analysis_id = analysis_id
