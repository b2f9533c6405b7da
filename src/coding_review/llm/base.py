# ============================================================================
# src/coding_review/llm/base.py
# ============================================================================
"""
Base Completion Client Interface

Defines the interface every completion backend implements. Supported
backends:
- openai: OpenAI (or OpenAI-compatible) chat completions
- azure: Azure OpenAI chat deployments

A client makes exactly one completion call per request and returns the raw
text. It does not retry, parse or validate; recovery of structure from the
text happens downstream.
"""

import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict

from ..utils.exceptions import CompletionError, CompletionFailure, ModelUnavailable


class BackendType(Enum):
    """Supported completion backends."""
    OPENAI = "openai"
    AZURE = "azure"


class BaseCompletionClient(ABC):
    """
    Abstract base class for completion clients.

    Subclasses implement:
    - is_configured(): credentials are present
    - _request_completion(): one call to the backend
    """

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

        self._completion_count = 0
        self._failure_count = 0
        self._total_completion_time = 0.0
        self._total_response_chars = 0

    @property
    @abstractmethod
    def backend_type(self) -> BackendType:
        """Return the backend type."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model or deployment identifier."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        pass

    @abstractmethod
    async def _request_completion(self, system_prompt: str, user_prompt: str) -> str:
        pass

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Send one system + user message pair and return the raw completion text.

        Raises:
            ModelUnavailable: backend credentials are not configured
            CompletionError: the backend call failed or timed out
        """
        if not self.is_configured():
            raise ModelUnavailable(
                f"{self.backend_type.value} completion backend is not configured "
                f"(missing or placeholder API key)"
            )

        start = time.perf_counter()
        try:
            text = await self._request_completion(system_prompt, user_prompt)
        except CompletionFailure:
            self._failure_count += 1
            raise
        except Exception as e:
            self._failure_count += 1
            raise CompletionError(f"Completion request failed: {e}") from e

        elapsed = time.perf_counter() - start
        self._completion_count += 1
        self._total_completion_time += elapsed
        self._total_response_chars += len(text)

        self.logger.info(
            f"Completion from {self.model_name}: {len(text)} chars in {elapsed:.1f}s"
        )
        return text

    def get_statistics(self) -> Dict[str, Any]:
        """Get completion statistics."""
        avg_time = (
            self._total_completion_time / self._completion_count
            if self._completion_count > 0
            else 0.0
        )
        return {
            "backend": self.backend_type.value,
            "model": self.model_name,
            "completion_count": self._completion_count,
            "failure_count": self._failure_count,
            "total_completion_time": self._total_completion_time,
            "avg_completion_time": avg_time,
            "total_response_chars": self._total_response_chars,
        }
