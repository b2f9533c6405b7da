# ============================================================================
# src/coding_review/recovery/__init__.py
# ============================================================================
"""
Recovery of structured data from unreliable completion text.
"""

from .json_scanner import JSONScanner, ScanState, scan
from .salvage import SalvageRule, apply_rules, summary_rules
from .engine import ResponseRecoveryEngine
