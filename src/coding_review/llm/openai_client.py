# ============================================================================
# src/coding_review/llm/openai_client.py
# ============================================================================
"""
OpenAI and Azure OpenAI completion clients.

The SDK client is synchronous; calls run in the default executor so the
event loop stays free. SDK retries are disabled: one request, one call.
"""

import asyncio
from typing import Any, Dict, List, Optional

import openai
from openai import AzureOpenAI, OpenAI

from ..config import CompletionSettings, completion_settings
from ..utils.exceptions import CompletionError
from .base import BackendType, BaseCompletionClient


class OpenAICompletionClient(BaseCompletionClient):
    """
    Chat completions against OpenAI or an OpenAI-compatible endpoint.
    """

    def __init__(self, settings: Optional[CompletionSettings] = None):
        super().__init__()
        self.settings = settings or completion_settings
        self.timeout = self.settings.COMPLETION_TIMEOUT
        self.temperature = self.settings.COMPLETION_TEMPERATURE
        self._client = None

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OPENAI

    @property
    def model_name(self) -> str:
        return self.settings.OPENAI_MODEL

    def is_configured(self) -> bool:
        return bool(self.settings.OPENAI_API_KEY)

    @property
    def client(self):
        """Lazy load the SDK client."""
        if self._client is None:
            self._client = self._build_client()
            self.logger.info(f"OpenAI client initialized: model={self.model_name}")
        return self._client

    def _build_client(self):
        return OpenAI(
            api_key=self.settings.OPENAI_API_KEY,
            base_url=self.settings.OPENAI_BASE_URL,
            timeout=self.timeout,
            max_retries=0,
        )

    def _messages(self, system_prompt: str, user_prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    def _request_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if self.temperature is not None:
            options["temperature"] = self.temperature
        return options

    async def _request_completion(self, system_prompt: str, user_prompt: str) -> str:
        def call_api():
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=self._messages(system_prompt, user_prompt),
                **self._request_options(),
            )
            if not response.choices:
                raise CompletionError("Completion response contained no choices")
            return response.choices[0].message.content or ""

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, call_api)
        except openai.APITimeoutError as e:
            raise CompletionError(f"Completion timed out after {self.timeout}s") from e
        except openai.OpenAIError as e:
            raise CompletionError(f"{self.backend_type.value} completion failed: {e}") from e


class AzureOpenAICompletionClient(OpenAICompletionClient):
    """
    Chat completions against an Azure OpenAI deployment.
    """

    @property
    def backend_type(self) -> BackendType:
        return BackendType.AZURE

    @property
    def model_name(self) -> str:
        return self.settings.AZURE_OPENAI_DEPLOYMENT

    def is_configured(self) -> bool:
        s = self.settings
        return bool(s.AZURE_OPENAI_ENDPOINT and s.AZURE_OPENAI_API_KEY and s.AZURE_OPENAI_DEPLOYMENT)

    def _build_client(self):
        return AzureOpenAI(
            azure_endpoint=self.settings.AZURE_OPENAI_ENDPOINT,
            api_key=self.settings.AZURE_OPENAI_API_KEY,
            api_version=self.settings.AZURE_OPENAI_API_VERSION,
            timeout=self.timeout,
            max_retries=0,
        )
