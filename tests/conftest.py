# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import json
from typing import List, Optional

import pytest

from coding_review.config import CompletionSettings, ConfidenceSettings, ExtractionSettings
from coding_review.core.confidence import ConfidenceEstimator
from coding_review.core.orchestrator import AnalysisOrchestrator
from coding_review.extractors.document_ingestor import DocumentIngestor
from coding_review.llm.base import BackendType, BaseCompletionClient
from coding_review.recovery.engine import ResponseRecoveryEngine


def _explanation(topic: str) -> dict:
    return {
        "whatItMeans": f"{topic} means the code reflects the documented condition",
        "whyImportant": f"{topic} drives case-mix and reimbursement",
        "howItAffectsCare": f"{topic} focuses the plan of care on the primary condition",
        "implementation": f"Update {topic} in the coding worksheet",
    }


@pytest.fixture
def review_payload() -> dict:
    """Complete, well-formed coding review as the model is asked to return it"""
    return {
        "patientInfo": {
            "patientName": "Jane Doe",
            "patientId": "P-1001",
            "mrn": "12345",
            "visitType": "Start of Care",
            "payor": "Medicare",
            "visitDate": "2024-03-01",
            "clinician": "R. Smith, RN",
            "payPeriod": "30-day",
            "status": "Active",
        },
        "primaryDiagnosisCoding": {
            "currentCode": "I50.2200",
            "currentDescription": "Chronic systolic heart failure",
            "severityLevel": "03",
            "clinicalSupport": "Ejection fraction 30%, daily weights, furosemide titration and dyspnea on exertion documented.",
            "alternativeCodes": [
                {"code": "I11.0", "description": "Hypertensive heart disease with heart failure", "rationale": "HTN documented"}
            ],
            "sequencingRecommendations": {
                "recommendation": "Sequence I11.0 before I50.22",
                "explanation": _explanation("Sequencing"),
            },
            "validationStatus": "needs_review",
        },
        "secondaryDiagnosesAnalysis": {
            "codes": [
                {"code": "E11.6500", "description": "Type 2 diabetes with hyperglycemia", "severityLevel": "2",
                 "validation": "supported", "specificityRecommendations": "", "comorbidityImpact": "high"},
                {"code": "N18.3000", "description": "CKD stage 3", "severityLevel": "2",
                 "validation": "supported", "specificityRecommendations": "Specify 3a/3b", "comorbidityImpact": "medium"},
                {"code": "Z79.4000", "description": "Long term insulin use", "severityLevel": "1",
                 "validation": "supported", "specificityRecommendations": "", "comorbidityImpact": "low"},
            ],
            "missingDiagnoses": [],
            "comorbidityImpact": "Diabetes and CKD increase the comorbidity adjustment",
            "totalSecondaryCodes": 3,
        },
        "codingCorrections": {
            "incorrectCodes": [
                {"currentCode": "I50.9", "suggestedCode": "I50.22", "reason": "Type and acuity documented",
                 "documentationNeeded": "", "severity": "high"}
            ],
            "missingCodes": [],
            "severityAdjustments": [
                {"code": "E11.65", "currentSeverity": "1", "suggestedSeverity": "2", "rationale": "A1c 9.1",
                 "explanation": _explanation("Severity")}
            ],
            "sequencingImprovements": [],
        },
        "codingRecommendations": {
            "additionalCodes": [
                {"code": "Z99.81", "description": "Dependence on supplemental oxygen", "rationale": "2L O2 documented",
                 "priority": "medium"}
            ],
            "documentationRequirements": [
                {"requirement": "NYHA class", "purpose": "Severity support", "priority": "high"}
            ],
            "complianceIssues": [],
            "bestPractices": [
                {"practice": "Link HTN and HF explicitly", "explanation": _explanation("Linkage")}
            ],
        },
        "summary": {
            "totalIssues": 2,
            "criticalIssues": 1,
            "recommendations": 2,
            "complianceScore": 82,
            "riskLevel": "medium",
        },
        "confidence": 0.85,
        "analysisType": "coding-review",
        "timestamp": "2024-03-01T12:00:00.000Z",
    }


@pytest.fixture
def review_json(review_payload) -> str:
    return json.dumps(review_payload)


@pytest.fixture
def truncated_response(review_json) -> str:
    """Completion cut off mid-object, as happens with long responses"""
    return review_json[: review_json.index('"codingCorrections"') + 40]


@pytest.fixture
def confidence_settings() -> ConfidenceSettings:
    return ConfidenceSettings(_env_file=None)


@pytest.fixture
def extraction_settings() -> ExtractionSettings:
    return ExtractionSettings(_env_file=None, PDF_CO_API_KEY="test-pdf-key")


@pytest.fixture
def openai_settings() -> CompletionSettings:
    return CompletionSettings(_env_file=None, COMPLETION_BACKEND="openai", OPENAI_API_KEY="sk-test")


@pytest.fixture
def recovery_engine(confidence_settings) -> ResponseRecoveryEngine:
    return ResponseRecoveryEngine(settings=confidence_settings)


@pytest.fixture
def estimator(confidence_settings) -> ConfidenceEstimator:
    return ConfidenceEstimator(settings=confidence_settings)


class FakePDFExtractor:
    """Stands in for the remote PDF-to-text service"""

    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls: List[str] = []
        self.closed = False

    async def extract_text(self, pdf_bytes: bytes, file_name: str = "document.pdf") -> str:
        self.calls.append(file_name)
        if self.error is not None:
            raise self.error
        return self.text

    async def close(self) -> None:
        self.closed = True


class FakeCompletionClient(BaseCompletionClient):
    """Completion client returning a canned response or raising"""

    def __init__(self, response: str = "", error: Optional[Exception] = None, configured: bool = True):
        super().__init__()
        self.response = response
        self.error = error
        self.configured = configured
        self.prompts: List[tuple] = []

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OPENAI

    @property
    def model_name(self) -> str:
        return "fake-model"

    def is_configured(self) -> bool:
        return self.configured

    async def _request_completion(self, system_prompt: str, user_prompt: str) -> str:
        self.prompts.append((system_prompt, user_prompt))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def make_pdf_extractor():
    """Factory for fake PDF extractors"""
    return FakePDFExtractor


@pytest.fixture
def make_completion_client():
    """Factory for fake completion clients"""
    return FakeCompletionClient


@pytest.fixture
def make_orchestrator(extraction_settings, confidence_settings):
    """Factory building an orchestrator around fake collaborators"""

    def build(response: str = "", error: Optional[Exception] = None, pdf_extractor=None):
        client = FakeCompletionClient(response=response, error=error)
        orchestrator = AnalysisOrchestrator(
            ingestor=DocumentIngestor(
                pdf_extractor=pdf_extractor or FakePDFExtractor(text="Extracted PDF text"),
                settings=extraction_settings,
            ),
            completion_client=client,
            recovery_engine=ResponseRecoveryEngine(settings=confidence_settings),
            confidence_estimator=ConfidenceEstimator(settings=confidence_settings),
        )
        return orchestrator, client

    return build
