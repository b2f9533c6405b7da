# ============================================================================
# FILE: tests/unit/test_orchestrator.py
# ============================================================================
"""
Unit tests for the analysis orchestrator
"""

import asyncio
import json

import pytest

from coding_review.core.orchestrator import AnalysisOrchestrator, create_orchestrator
from coding_review.models.analysis import QueueStatus
from coding_review.models.review_result import RecoveryTier
from coding_review.utils.exceptions import (
    AnalysisFailure,
    CompletionError,
    ExtractionFailure,
    ModelUnavailable,
    UnsupportedFileType,
)


class TestSuccessfulAnalysis:
    """Test the full pipeline with fake collaborators"""

    @pytest.mark.asyncio
    async def test_completed_with_stored_result(self, make_orchestrator, review_json):
        orchestrator, client = make_orchestrator(response=review_json)

        result = await orchestrator.analyze(b"Visit note", "note.txt", patient_id="P-1")

        item = orchestrator.get_queue_item(result.id)
        assert item.status is QueueStatus.COMPLETED
        assert item.progress == 100
        assert item.error is None
        assert item.end_time is not None

        assert orchestrator.get_result(result.id) == result
        assert [r.id for r in orchestrator.list_results()] == [result.id]
        assert result.status is QueueStatus.COMPLETED
        assert result.patient_id == "P-1"
        assert result.confidence == 0.85
        assert result.results.recovery_tier is RecoveryTier.DIRECT
        assert result.processing_time.endswith("s")

        system_prompt, user_prompt = client.prompts[0]
        assert "Visit note" in user_prompt
        assert "File: note.txt" in user_prompt

    @pytest.mark.asyncio
    async def test_pdf_goes_through_extractor(self, make_orchestrator, make_pdf_extractor, review_json):
        extractor = make_pdf_extractor(text="Extracted PDF text about CHF")
        orchestrator, client = make_orchestrator(response=review_json, pdf_extractor=extractor)

        result = await orchestrator.analyze(b"%PDF-1.7", "chart.pdf")

        assert extractor.calls == ["chart.pdf"]
        assert "Extracted PDF text about CHF" in client.prompts[0][1]
        assert result.file_info.file_type == "pdf"

    @pytest.mark.asyncio
    async def test_malformed_response_still_completes(self, make_orchestrator, truncated_response):
        orchestrator, _ = make_orchestrator(response=truncated_response)

        result = await orchestrator.analyze(b"note", "note.txt")

        assert orchestrator.get_queue_item(result.id).status is QueueStatus.COMPLETED
        assert result.results.recovery_tier is RecoveryTier.PROGRESSIVE
        assert result.confidence == 0.6
        assert result.results.summary.ai_confidence == 0.6

    @pytest.mark.asyncio
    async def test_missing_confidence_is_estimated(self, make_orchestrator, review_payload):
        del review_payload["confidence"]
        orchestrator, _ = make_orchestrator(response=json.dumps(review_payload))

        result = await orchestrator.analyze(b"note", "note.txt")

        assert 0.0 <= result.confidence <= 1.0
        assert result.results.summary.ai_confidence == result.confidence

    @pytest.mark.asyncio
    async def test_path_source(self, make_orchestrator, review_json, tmp_path):
        path = tmp_path / "visit.txt"
        path.write_text("Home health visit", encoding="utf-8")
        orchestrator, _ = make_orchestrator(response=review_json)

        result = await orchestrator.analyze(path)

        assert result.file_name == "visit.txt"

    @pytest.mark.asyncio
    async def test_progress_checkpoints(self, make_orchestrator, review_json):
        orchestrator, client = make_orchestrator(response=review_json)
        seen = []
        original = client._request_completion

        async def observe(system_prompt, user_prompt):
            item = orchestrator.list_queue()[0]
            seen.append((item.status, item.progress))
            return await original(system_prompt, user_prompt)

        client._request_completion = observe
        await orchestrator.analyze(b"note", "note.txt")

        assert seen == [(QueueStatus.PROCESSING, 30)]

    @pytest.mark.asyncio
    async def test_result_to_dict(self, make_orchestrator, review_json):
        orchestrator, _ = make_orchestrator(response=review_json)
        result = await orchestrator.analyze(b"note", "note.txt", priority="high")

        data = result.to_dict()
        assert data["id"] == result.id
        assert data["priority"] == "high"
        assert data["status"] == "completed"
        assert data["fileInfo"]["type"] == ".txt"
        assert data["results"]["patientInfo"]["patientName"] == "Jane Doe"


class TestFailedAnalysis:
    """Test failure paths mark the queue item failed"""

    @pytest.mark.asyncio
    async def test_completion_failure(self, make_orchestrator):
        orchestrator, _ = make_orchestrator(error=CompletionError("upstream 503"))

        with pytest.raises(CompletionError):
            await orchestrator.analyze(b"note", "note.txt")

        item = orchestrator.list_queue()[0]
        assert item.status is QueueStatus.FAILED
        assert item.error == "upstream 503"
        assert item.end_time is not None
        assert item.progress < 100
        assert orchestrator.list_results() == []

    @pytest.mark.asyncio
    async def test_model_unavailable(self, make_orchestrator, make_completion_client):
        orchestrator, _ = make_orchestrator()
        orchestrator.completion_client = make_completion_client(configured=False)

        with pytest.raises(ModelUnavailable):
            await orchestrator.analyze(b"note", "note.txt")
        assert orchestrator.list_queue()[0].status is QueueStatus.FAILED

    @pytest.mark.asyncio
    async def test_unsupported_file_type(self, make_orchestrator, review_json):
        orchestrator, client = make_orchestrator(response=review_json)

        with pytest.raises(UnsupportedFileType):
            await orchestrator.analyze(b"data", "scan.docx")

        item = orchestrator.list_queue()[0]
        assert item.status is QueueStatus.FAILED
        assert "Unsupported file type" in item.error
        assert client.prompts == []

    @pytest.mark.asyncio
    async def test_extraction_failure(self, make_orchestrator, make_pdf_extractor):
        extractor = make_pdf_extractor(error=ExtractionFailure("convert failed", step="convert"))
        orchestrator, _ = make_orchestrator(pdf_extractor=extractor)

        with pytest.raises(ExtractionFailure):
            await orchestrator.analyze(b"%PDF", "a.pdf")
        assert orchestrator.list_queue()[0].error == "convert failed"

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self, make_orchestrator, review_json, monkeypatch):
        orchestrator, _ = make_orchestrator(response=review_json)

        def broken(*args, **kwargs):
            raise KeyError("template")

        monkeypatch.setattr(orchestrator.prompt_builder, "build", broken)

        with pytest.raises(AnalysisFailure) as exc_info:
            await orchestrator.analyze(b"note", "note.txt")

        item = orchestrator.get_queue_item(exc_info.value.analysis_id)
        assert item.status is QueueStatus.FAILED
        assert "template" in item.error

    @pytest.mark.asyncio
    async def test_bytes_without_name_rejected_before_queueing(self, make_orchestrator):
        orchestrator, _ = make_orchestrator()

        with pytest.raises(ValueError):
            await orchestrator.analyze(b"note")
        assert orchestrator.list_queue() == []


class TestQueueOperations:
    """Test queue listing and housekeeping"""

    @pytest.mark.asyncio
    async def test_remove_and_clear(self, make_orchestrator, review_json):
        orchestrator, _ = make_orchestrator(response=review_json)
        first = await orchestrator.analyze(b"one", "one.txt")
        await orchestrator.analyze(b"two", "two.txt")

        assert len(orchestrator.list_queue()) == 2
        assert orchestrator.remove_queue_item(first.id)
        assert not orchestrator.remove_queue_item(first.id)
        assert orchestrator.clear_queue() == 1
        assert orchestrator.list_queue() == []

        # Results outlive queue items
        assert len(orchestrator.list_results()) == 2

    @pytest.mark.asyncio
    async def test_snapshots_do_not_alias(self, make_orchestrator, review_json):
        orchestrator, _ = make_orchestrator(response=review_json)
        result = await orchestrator.analyze(b"note", "note.txt")

        snapshot = orchestrator.get_queue_item(result.id)
        snapshot.progress = 5

        assert orchestrator.get_queue_item(result.id).progress == 100

    @pytest.mark.asyncio
    async def test_stored_result_cannot_be_changed(self, make_orchestrator, review_json):
        orchestrator, _ = make_orchestrator(response=review_json)
        result = await orchestrator.analyze(b"note", "note.txt")

        fetched = orchestrator.get_result(result.id)
        fetched.results.patient_info.patient_name = "Changed"
        fetched.file_info.size = -1
        result.results.confidence = 0.1

        stored = orchestrator.get_result(result.id)
        assert stored.results.patient_info.patient_name == "Jane Doe"
        assert stored.file_info.size == 4
        assert stored.confidence == 0.85

    @pytest.mark.asyncio
    async def test_concurrent_analyses(self, make_orchestrator, review_json):
        orchestrator, _ = make_orchestrator(response=review_json)

        results = await asyncio.gather(*[
            orchestrator.analyze(f"note {i}".encode(), f"note{i}.txt") for i in range(10)
        ])

        ids = {r.id for r in results}
        assert len(ids) == 10
        assert len(orchestrator.list_results()) == 10
        assert all(item.status is QueueStatus.COMPLETED for item in orchestrator.list_queue())

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_others(self, make_orchestrator, review_json):
        orchestrator, _ = make_orchestrator(response=review_json)

        outcomes = await asyncio.gather(
            orchestrator.analyze(b"ok", "ok.txt"),
            orchestrator.analyze(b"bad", "bad.docx"),
            return_exceptions=True,
        )

        assert isinstance(outcomes[1], UnsupportedFileType)
        statuses = sorted(item.status.value for item in orchestrator.list_queue())
        assert statuses == ["completed", "failed"]
        assert len(orchestrator.list_results()) == 1


class TestFactory:
    """Test default wiring"""

    def test_create_orchestrator(self, openai_settings, extraction_settings, confidence_settings):
        orchestrator = create_orchestrator(openai_settings, extraction_settings, confidence_settings)

        assert isinstance(orchestrator, AnalysisOrchestrator)
        assert orchestrator.completion_client.is_configured()
        assert orchestrator.ingestor.settings is extraction_settings

    @pytest.mark.asyncio
    async def test_close_releases_pdf_extractor(self, make_orchestrator, make_pdf_extractor):
        extractor = make_pdf_extractor()
        orchestrator, _ = make_orchestrator(pdf_extractor=extractor)

        await orchestrator.close()

        assert extractor.closed
