# ============================================================================
# src/coding_review/models/analysis.py
# ============================================================================
"""
Analysis request bookkeeping: queue items, file metadata and stored results.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .review_result import CodingReviewResult


class QueueStatus(str, Enum):
    """Lifecycle of one analysis request."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (QueueStatus.COMPLETED, QueueStatus.FAILED)


def new_analysis_id() -> str:
    """Generate a unique analysis identifier."""
    return f"coding_analysis_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def format_processing_time(seconds: float) -> str:
    """
    Format a duration the way reviewers see it.

    Examples:
        4.4   -> "4s"
        125.0 -> "2m 5s"
    """
    total = int(round(max(seconds, 0.0)))
    if total < 60:
        return f"{total}s"
    return f"{total // 60}m {total % 60}s"


@dataclass
class FileInfo:
    """Metadata about an ingested document."""
    file_type: str                      # extension without the dot: 'pdf', 'txt'
    size: int                           # bytes
    preview: str = ""
    last_modified: datetime = field(default_factory=datetime.now)
    extracted_length: int = 0
    estimated_tokens: int = 0
    truncated: bool = False
    too_large: bool = False

    @property
    def extension(self) -> str:
        return f".{self.file_type}" if self.file_type else ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "type": self.extension,
            "lastModified": self.last_modified.isoformat(),
            "extractedLength": self.extracted_length,
            "estimatedTokens": self.estimated_tokens,
            "truncated": self.truncated,
            "tooLarge": self.too_large,
        }


@dataclass
class ProcessingQueueItem:
    """
    One in-flight or finished analysis request.

    Owned and mutated by the orchestrator for the lifetime of a single
    request. Progress only moves forward; it reaches 100 exactly when the
    request completes.
    """
    id: str
    file_name: str
    status: QueueStatus = QueueStatus.QUEUED
    progress: int = 0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    error: Optional[str] = None

    def advance(self, progress: int) -> None:
        """Move progress forward to a checkpoint; never backwards."""
        if self.status.is_terminal:
            raise ValueError(f"Queue item {self.id} is already {self.status.value}")
        self.status = QueueStatus.PROCESSING
        self.progress = max(self.progress, min(progress, 99))

    def complete(self, end_time: datetime) -> None:
        self.status = QueueStatus.COMPLETED
        self.progress = 100
        self.end_time = end_time
        self.error = None

    def fail(self, error: str, end_time: datetime) -> None:
        self.status = QueueStatus.FAILED
        self.error = error or "Unknown error"
        self.end_time = end_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "status": self.status.value,
            "progress": self.progress,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "error": self.error,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Durable output of one completed analysis. Never mutated after creation."""
    id: str
    file_name: str
    analysis_type: str
    priority: str
    status: QueueStatus
    results: CodingReviewResult
    created_at: datetime
    completed_at: datetime
    processing_time: str
    file_info: FileInfo
    patient_id: Optional[str] = None
    processing_notes: Optional[str] = None

    @property
    def confidence(self) -> Optional[float]:
        return self.results.confidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "analysisType": self.analysis_type,
            "priority": self.priority,
            "patientId": self.patient_id,
            "status": self.status.value,
            "results": self.results.to_dict(),
            "processingNotes": self.processing_notes,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat(),
            "processingTime": self.processing_time,
            "fileInfo": self.file_info.to_dict(),
        }
