# ============================================================================
# src/coding_review/extractors/pdf_text_client.py
# ============================================================================
"""
PDF Text Extraction Client

Converts PDF bytes to plain text through the PDF.co HTTP API:

    1. POST {base}/file/upload/base64    -> temporary file url
    2. POST {base}/pdf/convert/to/text   -> url of the extracted text
    3. GET  that url                     -> plain text

Any failure in any step (transport error, timeout, non-2xx status, missing
url, error flag in the body) is reported as ExtractionFailure naming the step.
"""

import asyncio
import base64
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..config import ExtractionSettings, extraction_settings
from ..utils.exceptions import ExtractionFailure


class PDFTextExtractionClient:
    """
    Async client for the remote PDF-to-text service.

    The HTTP session is created lazily and tied to the running event loop.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        settings: Optional[ExtractionSettings] = None,
    ):
        settings = settings or extraction_settings
        self.api_key = api_key if api_key is not None else settings.PDF_CO_API_KEY
        self.base_url = (base_url or settings.PDF_CO_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.EXTRACTION_TIMEOUT
        self.logger = logging.getLogger(__name__)

        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

        self.stats = {
            "documents": 0,
            "failures": 0,
            "total_chars": 0,
        }

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session for current event loop."""
        current_loop = asyncio.get_running_loop()

        needs_new_session = (
            self._session is None
            or self._session.closed
            or self._session_loop is not current_loop
        )

        if needs_new_session:
            if self._session is not None and not self._session.closed:
                await self._session.close()

            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._session_loop = current_loop

        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    async def __aenter__(self) -> "PDFTextExtractionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def extract_text(self, pdf_bytes: bytes, file_name: str = "document.pdf") -> str:
        """
        Extract plain text from a PDF.

        Args:
            pdf_bytes: Raw PDF content
            file_name: Name reported to the service

        Returns:
            Extracted text
        """
        if not self.is_configured():
            raise ExtractionFailure(
                "PDF text extraction is not configured (PDF_CO_API_KEY is missing)",
                step="configure",
            )

        self.logger.info(f"Extracting text from {file_name} ({len(pdf_bytes)} bytes)")

        try:
            session = await self._get_session()
            uploaded = await self._post_json(
                session,
                "/file/upload/base64",
                {"file": base64.b64encode(pdf_bytes).decode("ascii"), "name": file_name},
                step="upload",
            )
            converted = await self._post_json(
                session,
                "/pdf/convert/to/text",
                {"url": self._require_url(uploaded, "upload"), "pages": "0-", "async": False},
                step="convert",
            )
            text = await self._download_text(session, self._require_url(converted, "convert"))
        except ExtractionFailure:
            self.stats["failures"] += 1
            raise

        self.stats["documents"] += 1
        self.stats["total_chars"] += len(text)
        self.logger.info(f"Extracted {len(text)} characters from {file_name}")
        return text

    async def _post_json(
        self,
        session: aiohttp.ClientSession,
        path: str,
        payload: Dict[str, Any],
        step: str,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = {"x-api-key": self.api_key, "Content-Type": "application/json"}
        try:
            async with session.post(url, json=payload, headers=headers) as response:
                if not 200 <= response.status < 300:
                    body = await response.text()
                    raise ExtractionFailure(
                        f"PDF {step} failed with HTTP {response.status}: {body[:200]}",
                        step=step,
                    )
                data = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise ExtractionFailure(f"PDF {step} timed out after {self.timeout}s", step=step) from e
        except aiohttp.ClientError as e:
            raise ExtractionFailure(f"PDF {step} request failed: {e}", step=step) from e
        except ValueError as e:
            raise ExtractionFailure(f"PDF {step} returned invalid JSON: {e}", step=step) from e

        if not isinstance(data, dict):
            raise ExtractionFailure(f"PDF {step} returned an unexpected response", step=step)
        if data.get("error"):
            message = data.get("message") or "unknown error"
            raise ExtractionFailure(f"PDF {step} failed: {message}", step=step)
        return data

    async def _download_text(self, session: aiohttp.ClientSession, url: str) -> str:
        step = "download"
        try:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise ExtractionFailure(
                        f"PDF text download failed with HTTP {response.status}",
                        step=step,
                    )
                return await response.text()
        except asyncio.TimeoutError as e:
            raise ExtractionFailure(f"PDF text download timed out after {self.timeout}s", step=step) from e
        except aiohttp.ClientError as e:
            raise ExtractionFailure(f"PDF text download failed: {e}", step=step) from e

    @staticmethod
    def _require_url(response: Dict[str, Any], step: str) -> str:
        url = response.get("url")
        if not url or not isinstance(url, str):
            raise ExtractionFailure(f"PDF {step} response did not include a url", step=step)
        return url

    def get_statistics(self) -> Dict[str, Any]:
        return {
            **self.stats,
            "base_url": self.base_url,
            "configured": self.is_configured(),
        }
