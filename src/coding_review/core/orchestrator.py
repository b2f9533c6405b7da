# ============================================================================
# src/coding_review/core/orchestrator.py
# ============================================================================
"""
Coding Analysis Orchestrator

Main entry point for coding review analyses.

Flow:
1. Ingest the document (text or PDF)
2. Build the prompt pair
3. Request one completion
4. Recover a structured result (never fails)
5. Ensure a confidence score
6. Store the result and complete the queue item

Each request is tracked by a queue item:

    queued -> processing -> completed | failed

Progress moves through fixed checkpoints and reaches 100 only on completion.
A failed request keeps its error message and has no stored result.
"""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..config import (
    CompletionSettings,
    ConfidenceSettings,
    ExtractionSettings,
)
from ..extractors.document_ingestor import DocumentIngestor, DocumentSource
from ..llm.base import BaseCompletionClient
from ..llm.client import create_client
from ..llm.prompts import PromptBuilder
from ..models.analysis import (
    AnalysisResult,
    ProcessingQueueItem,
    QueueStatus,
    format_processing_time,
    new_analysis_id,
)
from ..models.review_result import ANALYSIS_TYPE
from ..recovery.engine import ResponseRecoveryEngine
from ..utils.exceptions import AnalysisFailure, CodingReviewError
from .confidence import ConfidenceEstimator
from .stores import AnalysisResultStore, ProcessingQueue


PROGRESS_INGESTING = 10
PROGRESS_INGESTED = 30
PROGRESS_RECOVERED = 80

RESPONSE_PREVIEW_CHARS = 500


class AnalysisOrchestrator:
    """
    Runs coding review analyses and tracks them in a queue and result store.

    All collaborators are injected; create_orchestrator() wires the defaults.
    """

    def __init__(
        self,
        ingestor: DocumentIngestor,
        completion_client: BaseCompletionClient,
        prompt_builder: Optional[PromptBuilder] = None,
        recovery_engine: Optional[ResponseRecoveryEngine] = None,
        confidence_estimator: Optional[ConfidenceEstimator] = None,
        queue: Optional[ProcessingQueue] = None,
        results: Optional[AnalysisResultStore] = None,
    ):
        self.ingestor = ingestor
        self.completion_client = completion_client
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.recovery_engine = recovery_engine or ResponseRecoveryEngine()
        self.confidence_estimator = confidence_estimator or ConfidenceEstimator()
        self.queue = queue or ProcessingQueue()
        self.results = results or AnalysisResultStore()
        self.logger = logging.getLogger(__name__)

    # ========================================================================
    # MAIN PIPELINE
    # ========================================================================

    async def analyze(
        self,
        source: DocumentSource,
        file_name: Optional[str] = None,
        analysis_type: str = ANALYSIS_TYPE,
        priority: str = "medium",
        patient_id: Optional[str] = None,
        processing_notes: Optional[str] = None,
    ) -> AnalysisResult:
        """
        Run one coding review analysis to completion.

        Args:
            source: Path to the document, or its raw bytes
            file_name: Document name; defaults to the path's name, required for bytes
            analysis_type: Analysis tag recorded on the result
            priority: Review priority recorded on the result
            patient_id: Optional patient identifier
            processing_notes: Optional free-text notes

        Returns:
            The stored AnalysisResult

        Raises:
            UnsupportedFileType, ExtractionFailure: ingestion failed
            ModelUnavailable, CompletionError: the completion call failed
            AnalysisFailure: any other error during the run
        """
        if file_name is None:
            if isinstance(source, (bytes, bytearray)):
                raise ValueError("file_name is required when analyzing raw bytes")
            file_name = Path(source).name

        analysis_id = new_analysis_id()
        start_time = datetime.now()
        self.queue.add(ProcessingQueueItem(id=analysis_id, file_name=file_name, start_time=start_time))
        log_extra = {"analysis_id": analysis_id}
        self.logger.info(f"Starting coding analysis {analysis_id} for {file_name}", extra=log_extra)

        try:
            self._checkpoint(analysis_id, PROGRESS_INGESTING)
            document = await self.ingestor.extract_text(source, file_name)
            self._checkpoint(analysis_id, PROGRESS_INGESTED)

            prompts = self.prompt_builder.build(document.text, file_name, analysis_type)
            raw_response = await self.completion_client.complete(
                prompts.system_prompt, prompts.user_prompt
            )
            self.logger.debug(
                f"[{analysis_id}] Completion: {len(raw_response)} chars, "
                f"preview: {raw_response[:RESPONSE_PREVIEW_CHARS]!r}"
            )

            recovered = self.recovery_engine.recover(raw_response)
            self._checkpoint(analysis_id, PROGRESS_RECOVERED)

            scored = self.confidence_estimator.ensure_confidence(recovered, len(raw_response))

            end_time = datetime.now()
            result = AnalysisResult(
                id=analysis_id,
                file_name=file_name,
                analysis_type=analysis_type,
                priority=priority,
                status=QueueStatus.COMPLETED,
                results=scored,
                created_at=start_time,
                completed_at=end_time,
                processing_time=format_processing_time((end_time - start_time).total_seconds()),
                file_info=document.file_info,
                patient_id=patient_id,
                processing_notes=processing_notes,
            )
            self.results.save(result)
            self.queue.update(analysis_id, lambda item: item.complete(end_time))

        except asyncio.CancelledError:
            self._mark_failed(analysis_id, "Analysis cancelled")
            raise
        except Exception as e:
            message = str(e) or type(e).__name__
            self._mark_failed(analysis_id, message)
            self.logger.error(
                f"Coding analysis {analysis_id} failed: {message}", exc_info=True, extra=log_extra
            )
            if isinstance(e, CodingReviewError):
                raise
            raise AnalysisFailure(message, analysis_id) from e

        self.logger.info(
            f"Completed coding analysis {analysis_id} in {result.processing_time} "
            f"(tier: {scored.recovery_tier.name.lower()}, confidence: {scored.confidence:.2f})",
            extra=log_extra,
        )
        return result

    def _checkpoint(self, analysis_id: str, progress: int) -> None:
        self.queue.update(analysis_id, lambda item: item.advance(progress))
        self.logger.debug(f"[{analysis_id}] progress {progress}%")

    def _mark_failed(self, analysis_id: str, message: str) -> None:
        end_time = datetime.now()
        self.queue.update(analysis_id, lambda item: item.fail(message, end_time))

    # ========================================================================
    # QUEUE AND RESULTS
    # ========================================================================

    def list_queue(self) -> List[ProcessingQueueItem]:
        return self.queue.list_all()

    def get_queue_item(self, analysis_id: str) -> Optional[ProcessingQueueItem]:
        return self.queue.get(analysis_id)

    def remove_queue_item(self, analysis_id: str) -> bool:
        return self.queue.delete(analysis_id)

    def clear_queue(self) -> int:
        return self.queue.clear()

    def list_results(self) -> List[AnalysisResult]:
        return self.results.list_all()

    def get_result(self, analysis_id: str) -> Optional[AnalysisResult]:
        return self.results.get(analysis_id)

    async def close(self) -> None:
        """Release network sessions held by collaborators."""
        await self.ingestor.close()


def create_orchestrator(
    completion_settings: Optional[CompletionSettings] = None,
    extraction_settings: Optional[ExtractionSettings] = None,
    confidence_settings: Optional[ConfidenceSettings] = None,
) -> AnalysisOrchestrator:
    """
    Build an orchestrator with default collaborators.

    Settings default to the environment-loaded instances.
    """
    return AnalysisOrchestrator(
        ingestor=DocumentIngestor(settings=extraction_settings),
        completion_client=create_client(completion_settings),
        recovery_engine=ResponseRecoveryEngine(settings=confidence_settings),
        confidence_estimator=ConfidenceEstimator(settings=confidence_settings),
    )
