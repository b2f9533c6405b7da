# ============================================================================
# src/coding_review/core/__init__.py
# ============================================================================
"""
Core components: confidence estimation, stores and the analysis orchestrator.
"""

from .confidence import ConfidenceEstimator, ConfidenceBreakdown, ConfidenceThresholds
from .stores import ProcessingQueue, AnalysisResultStore
from .orchestrator import AnalysisOrchestrator, create_orchestrator
