"""
Whiteboard Extraction Service - client for the AI vision endpoint that
turns a whiteboard photo into a workout extraction payload.

The endpoint is best-effort: its JSON may arrive wrapped in markdown
fences or inside a {"content": "..."} envelope. Shape validation is the
job of the extraction intake, not of this client.
"""
import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from wodlog.core.config import settings
from wodlog.core.logging import ExtractionDebugLogger, get_logger

logger = get_logger(__name__)
debug_logger = ExtractionDebugLogger(logger)


class ExtractionServiceError(Exception):
    """Base exception for extraction service errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ExtractionServiceUnavailable(ExtractionServiceError):
    """Raised when the extraction service is not configured or not reachable."""

    pass


def clean_json_string(text: str) -> str:
    """
    Extract JSON from text, handling markdown blocks.

    Args:
        text: Raw response text

    Returns:
        Cleaned JSON string
    """
    # Try to find JSON block in markdown
    json_match = re.search(r"```json\s*([\s\S]*?)\s*```", text)
    if json_match:
        return json_match.group(1).strip()

    # Try to find any markdown code block
    code_match = re.search(r"```\s*([\s\S]*?)\s*```", text)
    if code_match:
        return code_match.group(1).strip()

    # Try to find the first '{' and last '}'
    bracket_match = re.search(r"(\{[\s\S]*\})", text)
    if bracket_match:
        return bracket_match.group(1).strip()

    return text.strip()


def parse_extraction_text(text: str) -> Dict[str, Any]:
    """
    Parse an extraction payload out of response text.

    Raises:
        ExtractionServiceError: If no JSON object can be read
    """
    cleaned = clean_json_string(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(
            "Extraction response is not valid JSON",
            error=str(e),
            content_preview=cleaned[:200],
        )
        raise ExtractionServiceError("Extraction response is not valid JSON") from e

    if not isinstance(data, dict):
        raise ExtractionServiceError("Extraction response is not a JSON object")
    return data


class ExtractionServiceInterface(ABC):
    """Abstract interface for whiteboard extraction."""

    @abstractmethod
    async def extract(self, image_base64: str, mime_type: Optional[str] = None) -> Dict[str, Any]:
        """
        Extract a workout from a whiteboard photo.

        Args:
            image_base64: Base64-encoded image
            mime_type: Image MIME type (e.g. "image/jpeg")

        Returns:
            Raw extraction payload (untrusted)
        """
        pass


class HttpExtractionService(ExtractionServiceInterface):
    """Extraction over HTTP: POST {"image", "mimeType"} to the configured URL."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the extraction client.

        Args:
            base_url: Extraction endpoint URL
            api_key: Bearer token, if the endpoint needs one
            timeout: Request timeout in seconds
            transport: Custom httpx transport
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def extract(self, image_base64: str, mime_type: Optional[str] = None) -> Dict[str, Any]:
        """
        Raises:
            ExtractionServiceUnavailable: If the endpoint is not reachable
            ExtractionServiceError: If it answers with an error or unreadable JSON
        """
        with debug_logger.track_call(endpoint=self.base_url) as call:
            call.set_request(image_base64, mime_type)

            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(
                        self.base_url,
                        headers=self._headers(),
                        json={"image": image_base64, "mimeType": mime_type or "image/jpeg"},
                    )
            except httpx.TimeoutException as e:
                raise ExtractionServiceUnavailable(
                    f"Extraction request timed out after {self.timeout}s"
                ) from e
            except httpx.TransportError as e:
                raise ExtractionServiceUnavailable(
                    f"Extraction service is not available at {self.base_url}"
                ) from e

            if response.status_code != 200:
                raise ExtractionServiceError(
                    f"Extraction service error: HTTP {response.status_code}",
                    status_code=response.status_code,
                )

            payload = self._parse_response(response)
            call.set_response(response.text, payload.get("confidence"))
            return payload

    def _parse_response(self, response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            # Plain text body, possibly fenced
            return parse_extraction_text(response.text)

        if isinstance(data, dict) and isinstance(data.get("content"), str):
            return parse_extraction_text(data["content"])
        if isinstance(data, str):
            return parse_extraction_text(data)
        if not isinstance(data, dict):
            raise ExtractionServiceError("Extraction response is not a JSON object")
        return data


def get_extraction_service() -> ExtractionServiceInterface:
    """
    Get the extraction service configured in settings.

    Raises:
        ExtractionServiceUnavailable: If EXTRACTION_SERVICE_URL is not set
    """
    if not settings.EXTRACTION_SERVICE_URL:
        raise ExtractionServiceUnavailable("Extraction service is not configured")

    return HttpExtractionService(
        base_url=settings.EXTRACTION_SERVICE_URL,
        api_key=settings.EXTRACTION_API_KEY,
        timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
    )
