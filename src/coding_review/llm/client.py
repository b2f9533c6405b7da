# ============================================================================
# src/coding_review/llm/client.py
# ============================================================================
"""
Completion Client Factory

Usage:
    from coding_review.llm.client import create_client

    client = create_client()                      # backend from COMPLETION_BACKEND
    text = await client.complete(system_prompt, user_prompt)
"""

import logging
from typing import Optional

from ..config import CompletionSettings, completion_settings
from ..utils.exceptions import ConfigurationError
from .base import BackendType, BaseCompletionClient
from .openai_client import AzureOpenAICompletionClient, OpenAICompletionClient

logger = logging.getLogger(__name__)

_BACKENDS = {
    BackendType.OPENAI: OpenAICompletionClient,
    BackendType.AZURE: AzureOpenAICompletionClient,
}


def create_client(
    settings: Optional[CompletionSettings] = None,
    backend: Optional[str] = None,
) -> BaseCompletionClient:
    """
    Create a completion client.

    A new client is returned on every call. Missing credentials are not an
    error here; the client raises ModelUnavailable on first use.

    Args:
        settings: Completion settings (defaults to the environment)
        backend: "openai" | "azure"; overrides COMPLETION_BACKEND

    Returns:
        Configured completion client
    """
    settings = settings or completion_settings
    name = (backend or settings.COMPLETION_BACKEND).strip().lower()

    try:
        backend_type = BackendType(name)
    except ValueError:
        supported = ", ".join(b.value for b in BackendType)
        raise ConfigurationError(f"Unknown completion backend '{name}' (supported: {supported})")

    client = _BACKENDS[backend_type](settings)
    if not client.is_configured():
        logger.warning(
            f"Completion backend '{name}' has no usable credentials; "
            f"analyses will fail until they are configured"
        )
    return client
