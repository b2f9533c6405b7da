# ============================================================================
# src/coding_review/extractors/document_ingestor.py
# ============================================================================
"""
Document Ingestion

Turns an uploaded document into analyzable text plus file metadata.

- Plain text (.txt, .text, .md): decoded as UTF-8 and passed through
- PDF: text extracted remotely, then the size policy is applied:
    * estimated tokens (chars // 4) above the ceiling -> the text is
      replaced by an explanatory notice and the document is flagged
    * otherwise text longer than the character limit is truncated
- Anything else: UnsupportedFileType
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol, Tuple, Union

from ..config import ExtractionSettings, extraction_settings
from ..models.analysis import FileInfo
from ..utils.exceptions import ExtractionFailure, UnsupportedFileType
from .pdf_text_client import PDFTextExtractionClient


PLAIN_TEXT_EXTENSIONS = (".txt", ".text", ".md")
PDF_EXTENSION = ".pdf"
TRUNCATION_MARKER = "\n\n[content truncated]"
CHARS_PER_TOKEN = 4

DocumentSource = Union[str, Path, bytes, bytearray]


class PDFTextExtractor(Protocol):
    async def extract_text(self, pdf_bytes: bytes, file_name: str = ...) -> str:
        ...

    async def close(self) -> None:
        ...


@dataclass
class IngestedDocument:
    """Text ready for prompting, with metadata about where it came from."""
    file_name: str
    text: str
    file_info: FileInfo


def estimate_tokens(text: str) -> int:
    return len(text) // CHARS_PER_TOKEN


def too_large_notice(file_name: str, size: int, text_length: int, estimated_tokens: int) -> str:
    """Text submitted in place of a PDF whose content exceeds the token ceiling."""
    return (
        f"PDF Document: {file_name}\n"
        f"File Size: {size / 1024 / 1024:.2f} MB\n"
        f"Extracted Text Length: {text_length:,} characters\n"
        f"Estimated Tokens: {estimated_tokens:,}\n"
        f"\n"
        f"Status: Document too large for analysis\n"
        f"\n"
        f"This document exceeds the size that can be analyzed in one request.\n"
        f"To analyze it:\n"
        f"1. Compress the PDF or remove non-essential pages\n"
        f"2. Split the document into smaller sections\n"
        f"3. Convert the relevant pages to a text file and upload that instead\n"
    )


class DocumentIngestor:
    """
    Extracts text from uploaded documents and applies the size policy.
    """

    def __init__(
        self,
        pdf_extractor: Optional[PDFTextExtractor] = None,
        settings: Optional[ExtractionSettings] = None,
    ):
        self.settings = settings or extraction_settings
        self._pdf_extractor = pdf_extractor
        self.logger = logging.getLogger(__name__)

    @property
    def pdf_extractor(self) -> PDFTextExtractor:
        """Remote extractor, created on first PDF."""
        if self._pdf_extractor is None:
            self._pdf_extractor = PDFTextExtractionClient(settings=self.settings)
        return self._pdf_extractor

    async def extract_text(
        self,
        source: DocumentSource,
        declared_file_name: Optional[str] = None,
    ) -> IngestedDocument:
        """
        Extract analyzable text from a document.

        Args:
            source: Path to the document, or its raw bytes
            declared_file_name: Name used for type detection; required for bytes

        Returns:
            IngestedDocument with text and file info
        """
        file_name = self._resolve_name(source, declared_file_name)
        extension = Path(file_name).suffix.lower()
        if extension not in PLAIN_TEXT_EXTENSIONS and extension != PDF_EXTENSION:
            raise UnsupportedFileType(extension or file_name)

        content, last_modified = self._read_source(source)

        if extension in PLAIN_TEXT_EXTENSIONS:
            text = content.decode("utf-8", errors="replace")
            file_info = FileInfo(
                file_type=extension.lstrip("."),
                size=len(content),
                preview=text[: self.settings.PREVIEW_CHARS],
                last_modified=last_modified,
                extracted_length=len(text),
                estimated_tokens=estimate_tokens(text),
            )
            self.logger.info(f"Ingested text document {file_name} ({len(text)} chars)")
            return IngestedDocument(file_name=file_name, text=text, file_info=file_info)

        return await self._ingest_pdf(content, file_name, last_modified)

    async def _ingest_pdf(self, content: bytes, file_name: str, last_modified: datetime) -> IngestedDocument:
        try:
            extracted = await self.pdf_extractor.extract_text(content, file_name)
        except ExtractionFailure:
            raise
        except Exception as e:
            raise ExtractionFailure(f"PDF text extraction failed: {e}") from e

        text, truncated, too_large = self.apply_size_policy(extracted, file_name, len(content))
        tokens = estimate_tokens(extracted)

        if too_large:
            preview = f"PDF too large for analysis ({tokens:,} estimated tokens)"
        else:
            preview = extracted[: self.settings.PREVIEW_CHARS]

        file_info = FileInfo(
            file_type="pdf",
            size=len(content),
            preview=preview,
            last_modified=last_modified,
            extracted_length=len(extracted),
            estimated_tokens=tokens,
            truncated=truncated,
            too_large=too_large,
        )
        return IngestedDocument(file_name=file_name, text=text, file_info=file_info)

    def apply_size_policy(self, extracted: str, file_name: str, size: int) -> Tuple[str, bool, bool]:
        """
        Returns:
            (text to analyze, truncated, too_large)
        """
        tokens = estimate_tokens(extracted)
        if tokens > self.settings.MAX_ESTIMATED_TOKENS:
            self.logger.warning(
                f"{file_name} is too large for analysis: {tokens:,} estimated tokens "
                f"(limit {self.settings.MAX_ESTIMATED_TOKENS:,})"
            )
            return too_large_notice(file_name, size, len(extracted), tokens), False, True

        limit = self.settings.MAX_CONTENT_CHARS
        if len(extracted) > limit:
            self.logger.warning(
                f"Truncating {file_name} from {len(extracted):,} to {limit:,} characters"
            )
            return extracted[:limit] + TRUNCATION_MARKER, True, False

        return extracted, False, False

    async def close(self) -> None:
        """Release the PDF extractor's network session, if one was created."""
        if self._pdf_extractor is not None:
            await self._pdf_extractor.close()

    @staticmethod
    def _resolve_name(source: DocumentSource, declared_file_name: Optional[str]) -> str:
        if isinstance(source, (bytes, bytearray)):
            if not declared_file_name:
                raise ValueError("A file name is required when ingesting raw bytes")
            return declared_file_name
        return declared_file_name or Path(source).name

    @staticmethod
    def _read_source(source: DocumentSource) -> Tuple[bytes, datetime]:
        if isinstance(source, (bytes, bytearray)):
            return bytes(source), datetime.now()

        path = Path(source)
        try:
            content = path.read_bytes()
            last_modified = datetime.fromtimestamp(path.stat().st_mtime)
        except OSError as e:
            raise ExtractionFailure(f"Could not read {path}: {e}", step="read") from e
        return content, last_modified
