# ============================================================================
# src/coding_review/recovery/salvage.py
# ============================================================================
"""
Field-by-field salvage of a completion that is not parseable as a whole.

Each recoverable summary field is described by a SalvageRule (path, pattern,
fallback, conversion) instead of being hand-coded, so extending what is
salvaged means adding a rule. The patient-info record is salvaged as a
whole object, repaired by the scanner first and json_repair second.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple

from json_repair import repair_json
from pydantic.alias_generators import to_camel

from ..models.review_result import PatientInfo
from .json_scanner import JSONScanner

logger = logging.getLogger(__name__)


UNKNOWN_VALUE = "Unknown"
UNKNOWN_CODE = "UNKNOWN"

_PATIENT_INFO_START = re.compile(r'"patientInfo"\s*:\s*\{')
_PRIMARY_CODE = re.compile(
    r'"primaryDiagnosisCoding"\s*:\s*\{[\s\S]*?"currentCode"\s*:\s*"([^"]*)"'
)


@dataclass(frozen=True)
class SalvageRule:
    """Where a value lives in the result, how to find it, and what to assume."""
    path: Tuple[str, ...]
    pattern: Pattern[str]
    fallback: Any
    convert: Callable[[str], Any] = str

    def apply(self, text: str) -> Any:
        match = self.pattern.search(text)
        if match is None:
            return self.fallback
        try:
            return self.convert(match.group(1))
        except (TypeError, ValueError):
            return self.fallback


def _number_rule(path: Tuple[str, ...], key: str, fallback: Any = None) -> SalvageRule:
    return SalvageRule(path, re.compile(rf'"{key}"\s*:\s*(-?\d+)'), fallback, int)


def _string_rule(path: Tuple[str, ...], key: str, fallback: Any = None) -> SalvageRule:
    return SalvageRule(path, re.compile(rf'"{key}"\s*:\s*"([^"]*)"'), fallback)


def summary_rules(compliance_score: int) -> List[SalvageRule]:
    """Default rules for the summary block."""
    return [
        _number_rule(("summary", "totalIssues"), "totalIssues", 0),
        _number_rule(("summary", "criticalIssues"), "criticalIssues", 0),
        _number_rule(("summary", "recommendations"), "recommendations", 0),
        _number_rule(("summary", "complianceScore"), "complianceScore", compliance_score),
        _string_rule(("summary", "riskLevel"), "riskLevel", "medium"),
    ]


def apply_rules(text: str, rules: List[SalvageRule]) -> Dict[str, Any]:
    """Evaluate rules into a nested dict keyed by each rule's path."""
    salvaged: Dict[str, Any] = {}
    for rule in rules:
        value = rule.apply(text)
        if value is None:
            continue
        node = salvaged
        for key in rule.path[:-1]:
            node = node.setdefault(key, {})
        node[rule.path[-1]] = value
    return salvaged


def placeholder_patient_info() -> Dict[str, str]:
    return {
        to_camel(name): UNKNOWN_VALUE for name in PatientInfo.model_fields
    }


def salvage_patient_info(text: str, scanner: JSONScanner) -> Dict[str, Any]:
    """
    Recover the patientInfo record.

    Uses the balanced span after the key when it exists, otherwise the
    truncated remainder, which json_repair closes off. Fields that cannot be
    recovered are reported as "Unknown".
    """
    match = _PATIENT_INFO_START.search(text)
    if match is None:
        return placeholder_patient_info()

    remainder = text[match.end() - 1:]
    fragment = scanner.first_balanced_object(remainder) or remainder
    record = _parse_fragment(fragment, scanner)
    if not record:
        logger.debug("patientInfo fragment unrecoverable, using placeholder")
        return placeholder_patient_info()

    patient = placeholder_patient_info()
    for key, value in record.items():
        if value not in (None, ""):
            patient[key] = value
    return patient


def _parse_fragment(fragment: str, scanner: JSONScanner) -> Optional[Dict[str, Any]]:
    try:
        return scanner.loads_object(scanner.repair(fragment))
    except (ValueError, RecursionError):
        pass

    try:
        repaired = repair_json(fragment, return_objects=True)
    except (ValueError, RecursionError) as e:
        logger.debug(f"json_repair could not close patientInfo fragment: {e}")
        return None
    if isinstance(repaired, dict):
        logger.warning(
            f"json_repair closed truncated patientInfo - potential data loss. "
            f"Fragment (first 200 chars): {fragment[:200]}"
        )
        return repaired
    return None


def salvage_primary_code(text: str) -> Optional[str]:
    """The primary diagnosis code, if the response got far enough to state it."""
    match = _PRIMARY_CODE.search(text)
    if match is None:
        return None
    code = match.group(1).strip()
    return code or None
