# ============================================================================
# src/coding_review/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .completion_config import completion_settings, CompletionSettings
from .extraction_config import extraction_settings, ExtractionSettings
from .confidence_config import confidence_settings, ConfidenceSettings
from .logging_config import logging_settings, LoggingSettings
