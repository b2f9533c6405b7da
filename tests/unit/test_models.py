# ============================================================================
# tests/unit/test_models.py
# ============================================================================
"""
Tests for review result coercion and analysis bookkeeping models
"""

from datetime import datetime

import pytest

from coding_review.models.analysis import (
    FileInfo,
    ProcessingQueueItem,
    QueueStatus,
    format_processing_time,
    new_analysis_id,
)
from coding_review.models.review_result import (
    CodingCorrections,
    FullReviewResult,
    PrimaryDiagnosisCoding,
    ReviewSummary,
    is_well_formed_list,
    was_supplied,
)


class TestLenientCoercion:
    """Model output is coerced, never rejected"""

    def test_summary_counts(self):
        summary = ReviewSummary.model_validate({
            "totalIssues": "7 issues",
            "criticalIssues": 2.6,
            "recommendations": None,
            "complianceScore": [80],
        })

        assert summary.total_issues == 7
        assert summary.critical_issues == 3
        assert summary.recommendations == 0
        assert summary.compliance_score == 0

    @pytest.mark.parametrize("raw,expected", [
        ("HIGH", "high"),
        (" Critical ", "critical"),
        ("extreme", "medium"),
        (3, "medium"),
    ])
    def test_risk_level(self, raw, expected):
        assert ReviewSummary.model_validate({"riskLevel": raw}).risk_level == expected

    @pytest.mark.parametrize("raw,expected", [
        (0.72, 0.72),
        ("0.4", 0.4),
        (1, 1.0),
        (72, None),
        (-0.1, None),
        ("high", None),
        (True, None),
    ])
    def test_confidence(self, raw, expected):
        assert FullReviewResult.model_validate({"confidence": raw}).confidence == expected

    def test_validation_status(self):
        coding = PrimaryDiagnosisCoding.model_validate({"validationStatus": "Needs Review"})
        assert coding.validation_status == "needs_review"
        assert PrimaryDiagnosisCoding.model_validate({"validationStatus": "ok"}).validation_status == "needs_review"

    def test_numbers_become_text(self):
        coding = PrimaryDiagnosisCoding.model_validate({"currentCode": 250, "severityLevel": 3})
        assert coding.current_code == "250"
        assert coding.severity_level == "3"

    def test_non_record_items_dropped(self):
        corrections = CodingCorrections.model_validate({
            "incorrectCodes": [{"currentCode": "I10"}, "I11.0", 5],
        })
        assert len(corrections.incorrect_codes) == 1
        assert corrections.incorrect_codes[0].current_code == "I10"

    def test_snake_case_names_accepted(self):
        summary = ReviewSummary(total_issues=3, risk_level="low")
        assert summary.model_dump(by_alias=True)["totalIssues"] == 3


class TestPresence:
    """Test supplied / well-formed tracking"""

    def test_was_supplied(self):
        corrections = CodingCorrections.model_validate({"missingCodes": []})
        assert was_supplied(corrections, "missing_codes")
        assert not was_supplied(corrections, "incorrect_codes")

    def test_well_formed_list(self):
        corrections = CodingCorrections.model_validate({
            "incorrectCodes": "none",
            "missingCodes": [],
        })

        assert not is_well_formed_list(corrections, "incorrect_codes")
        assert is_well_formed_list(corrections, "missing_codes")
        assert not is_well_formed_list(corrections, "severity_adjustments")
        assert corrections.incorrect_codes == []


class TestProcessingTime:
    """Test reviewer-facing duration strings"""

    @pytest.mark.parametrize("seconds,expected", [
        (0, "0s"),
        (4.4, "4s"),
        (59.4, "59s"),
        (60, "1m 0s"),
        (125.0, "2m 5s"),
        (-3, "0s"),
    ])
    def test_format(self, seconds, expected):
        assert format_processing_time(seconds) == expected

    def test_analysis_ids_unique(self):
        ids = {new_analysis_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(i.startswith("coding_analysis_") for i in ids)


class TestProcessingQueueItem:
    """Test queue item transitions"""

    def test_advance(self):
        item = ProcessingQueueItem(id="a", file_name="n.txt")
        assert item.status is QueueStatus.QUEUED

        item.advance(30)
        assert item.status is QueueStatus.PROCESSING
        assert item.progress == 30

        item.advance(10)
        assert item.progress == 30

        item.advance(100)
        assert item.progress == 99

    def test_complete(self):
        item = ProcessingQueueItem(id="a", file_name="n.txt")
        item.advance(80)
        end = datetime(2024, 3, 1, 12, 0, 5)
        item.complete(end)

        assert item.status is QueueStatus.COMPLETED
        assert item.progress == 100
        assert item.end_time == end

    def test_terminal_items_do_not_advance(self):
        item = ProcessingQueueItem(id="a", file_name="n.txt")
        item.fail("boom", datetime.now())

        with pytest.raises(ValueError):
            item.advance(30)

    def test_fail_requires_message(self):
        item = ProcessingQueueItem(id="a", file_name="n.txt")
        item.fail("", datetime.now())

        assert item.status is QueueStatus.FAILED
        assert item.error == "Unknown error"

    def test_to_dict(self):
        start = datetime(2024, 3, 1, 12, 0, 0)
        item = ProcessingQueueItem(id="a", file_name="n.txt", start_time=start)

        assert item.to_dict() == {
            "id": "a",
            "fileName": "n.txt",
            "status": "queued",
            "progress": 0,
            "startTime": "2024-03-01T12:00:00",
            "endTime": None,
            "error": None,
        }


class TestFileInfo:
    """Test file metadata serialization"""

    def test_to_dict(self):
        info = FileInfo(
            file_type="pdf",
            size=2048,
            last_modified=datetime(2024, 3, 1),
            extracted_length=150_000,
            estimated_tokens=37_500,
            truncated=True,
        )

        data = info.to_dict()
        assert data["type"] == ".pdf"
        assert data["size"] == 2048
        assert data["extractedLength"] == 150_000
        assert data["truncated"] is True
        assert data["tooLarge"] is False

    def test_missing_extension(self):
        assert FileInfo(file_type="", size=0).extension == ""
