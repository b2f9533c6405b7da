# ============================================================================
# src/coding_review/llm/__init__.py
# ============================================================================
"""
Completion backends and prompt construction.
"""

from .base import BaseCompletionClient, BackendType
from .openai_client import OpenAICompletionClient, AzureOpenAICompletionClient
from .client import create_client
from .prompts import PromptBuilder, PromptPair, CODING_REVIEW_SYSTEM_PROMPT
