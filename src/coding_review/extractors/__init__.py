# ============================================================================
# src/coding_review/extractors/__init__.py
# ============================================================================
"""
Document ingestion and remote PDF text extraction.
"""

from ..models.analysis import FileInfo
from .pdf_text_client import PDFTextExtractionClient
from .document_ingestor import (
    DocumentIngestor,
    IngestedDocument,
    PLAIN_TEXT_EXTENSIONS,
    TRUNCATION_MARKER,
    estimate_tokens,
)
