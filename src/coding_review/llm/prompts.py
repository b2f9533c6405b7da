# ============================================================================
# src/coding_review/llm/prompts.py
# ============================================================================
"""
Coding Review Prompt Templates

The system prompt fixes the JSON shape the model must return and the
confidence calibration rubric. The recovery engine's salvage rules and the
confidence estimator's signals are written against this shape; change them
together.
"""

from typing import NamedTuple

from ..models.review_result import ANALYSIS_TYPE


CODING_REVIEW_SYSTEM_PROMPT = """You are a certified clinical coding specialist (CCS, CPC) reviewing home health and post-acute documentation.
Validate the ICD-10-CM codes supported by the document, correct coding errors, identify missing diagnoses and recommend documentation improvements.

Return a single JSON object with exactly this structure:

{
  "patientInfo": {
    "patientName": "string",
    "patientId": "string",
    "mrn": "string",
    "visitType": "string",
    "payor": "string",
    "visitDate": "string",
    "clinician": "string",
    "payPeriod": "string",
    "status": "string"
  },
  "primaryDiagnosisCoding": {
    "currentCode": "ICD-10 code, e.g. I50.9000",
    "currentDescription": "string",
    "severityLevel": "01-05",
    "clinicalSupport": "documentation evidence supporting the code",
    "alternativeCodes": [
      {"code": "string", "description": "string", "rationale": "string"}
    ],
    "sequencingRecommendations": {
      "recommendation": "string",
      "explanation": {
        "whatItMeans": "string",
        "whyImportant": "string",
        "howItAffectsCare": "string",
        "implementation": "string"
      }
    },
    "validationStatus": "valid | needs_review | invalid"
  },
  "secondaryDiagnosesAnalysis": {
    "codes": [
      {
        "code": "string",
        "description": "string",
        "severityLevel": "string",
        "validation": "string",
        "specificityRecommendations": "string",
        "comorbidityImpact": "string"
      }
    ],
    "missingDiagnoses": [
      {"suggestedCode": "string", "description": "string", "rationale": "string", "documentationNeeded": "string"}
    ],
    "comorbidityImpact": "string",
    "totalSecondaryCodes": 0
  },
  "codingCorrections": {
    "incorrectCodes": [
      {"currentCode": "string", "suggestedCode": "string", "reason": "string", "documentationNeeded": "string", "severity": "low | medium | high"}
    ],
    "missingCodes": [
      {"suggestedCode": "string", "description": "string", "rationale": "string", "documentationNeeded": "string"}
    ],
    "severityAdjustments": [
      {
        "code": "string",
        "currentSeverity": "string",
        "suggestedSeverity": "string",
        "rationale": "string",
        "explanation": {"whatItMeans": "string", "whyImportant": "string", "howItAffectsCare": "string", "implementation": "string"}
      }
    ],
    "sequencingImprovements": [
      {
        "currentSequence": ["string"],
        "suggestedSequence": ["string"],
        "rationale": "string",
        "explanation": {"whatItMeans": "string", "whyImportant": "string", "howItAffectsCare": "string", "implementation": "string"}
      }
    ]
  },
  "codingRecommendations": {
    "additionalCodes": [
      {"code": "string", "description": "string", "rationale": "string", "priority": "low | medium | high"}
    ],
    "documentationRequirements": [
      {"requirement": "string", "purpose": "string", "priority": "low | medium | high"}
    ],
    "complianceIssues": [
      {"issue": "string", "severity": "low | medium | high", "recommendation": "string"}
    ],
    "bestPractices": [
      {
        "practice": "string",
        "explanation": {"whatItMeans": "string", "whyImportant": "string", "howItAffectsCare": "string", "implementation": "string"}
      }
    ]
  },
  "summary": {
    "totalIssues": 0,
    "criticalIssues": 0,
    "recommendations": 0,
    "complianceScore": 0,
    "riskLevel": "low | medium | high | critical"
  },
  "confidence": 0.0
}

Rules:
- Use "N/A" for information that is not in the document; never invent patient data
- Codes must use full ICD-10-CM specificity
- Every explanation object must contain all four fields

Confidence calibration (the "confidence" field):
- 0.9-1.0: complete, unambiguous documentation; every code fully supported
- 0.7-0.8: good documentation with minor gaps; codes well supported
- 0.5-0.6: moderate documentation; some codes need clarification
- 0.3-0.4: significant documentation gaps; several codes uncertain
- 0.0-0.3: poor or missing documentation; coding largely speculative"""


USER_PROMPT_TEMPLATE = """Review the clinical coding in this document.

File: {file_name}
Content length: {content_length} characters
Analysis type: {analysis_type}

Document content:
{document_text}

Analysis checklist:
0. Extract patient information (name, ID, MRN, visit type, payor, visit date, clinician)
1. Validate the primary diagnosis code, its severity and its sequencing
2. Review every secondary diagnosis for accuracy and specificity
3. Identify incorrect codes, missing codes and severity adjustments
4. Recommend additional codes and documentation improvements
5. Assess how comorbidities affect care and reimbursement
6. Review the documentation for compliance issues

Return ONLY the JSON object. Do not wrap it in markdown code fences and do not add any text before or after it."""


class PromptPair(NamedTuple):
    system_prompt: str
    user_prompt: str


class PromptBuilder:
    """
    Builds the system + user prompt pair for one coding review request.
    """

    def __init__(self, system_prompt: str = CODING_REVIEW_SYSTEM_PROMPT):
        self.system_prompt = system_prompt

    def build(self, ingested_text: str, file_name: str, analysis_type: str = ANALYSIS_TYPE) -> PromptPair:
        user_prompt = USER_PROMPT_TEMPLATE.format(
            file_name=file_name,
            content_length=len(ingested_text),
            analysis_type=analysis_type or ANALYSIS_TYPE,
            document_text=ingested_text,
        )
        return PromptPair(self.system_prompt, user_prompt)
