"""Tests for the whiteboard extraction client, using httpx.MockTransport."""
import json

import httpx
import pytest

from wodlog.core.config import settings
from wodlog.core.logging import ExtractionDebugLogger, get_logger
from wodlog.services.external import (
    ExtractionServiceError,
    ExtractionServiceUnavailable,
    HttpExtractionService,
    get_extraction_service,
)
from wodlog.services.external.extraction import clean_json_string, parse_extraction_text

URL = "http://extract.test/v1/whiteboard"


def _service(handler, api_key="secret"):
    return HttpExtractionService(URL, api_key=api_key, transport=httpx.MockTransport(handler))


class TestCleanJsonString:
    """Pulling JSON out of model output."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ('```json\n{"title": "Fran"}\n```', '{"title": "Fran"}'),
            ('```\n{"title": "Fran"}\n```', '{"title": "Fran"}'),
            ('Here it is: {"title": "Fran"} hope it helps', '{"title": "Fran"}'),
            ('  {"title": "Fran"}  ', '{"title": "Fran"}'),
        ],
    )
    def test_clean(self, text, expected):
        assert clean_json_string(text) == expected

    def test_parse_rejects_non_objects(self):
        with pytest.raises(ExtractionServiceError):
            parse_extraction_text("[1, 2, 3]")

    def test_parse_rejects_garbage(self):
        with pytest.raises(ExtractionServiceError):
            parse_extraction_text("no json here")


class TestHttpExtractionService:
    """HTTP client behavior."""

    @pytest.mark.asyncio
    async def test_request_shape(self):
        """The image is posted as JSON with a bearer token."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"title": "Fran", "confidence": 0.9})

        payload = await _service(handler).extract("aGVsbG8=", "image/png")

        assert payload == {"title": "Fran", "confidence": 0.9}
        assert seen["auth"] == "Bearer secret"
        assert seen["body"] == {"image": "aGVsbG8=", "mimeType": "image/png"}

    @pytest.mark.asyncio
    async def test_default_mime_type_and_no_key(self):
        """Without an API key no Authorization header is sent."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"title": "Fran"})

        await _service(handler, api_key="").extract("aGVsbG8=")

        assert seen["auth"] is None
        assert seen["body"]["mimeType"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_content_envelope_with_fences(self):
        """A fenced JSON string inside {"content": ...} is unwrapped."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"content": '```json\n{"title": "Fran", "workout": []}\n```'})

        assert await _service(handler).extract("aGVsbG8=") == {"title": "Fran", "workout": []}

    @pytest.mark.asyncio
    async def test_plain_text_body(self):
        """A text body with JSON inside is parsed."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text='Sure! {"title": "Grace"}')

        assert await _service(handler).extract("aGVsbG8=") == {"title": "Grace"}

    @pytest.mark.asyncio
    async def test_http_error(self):
        """Non-200 answers raise ExtractionServiceError with the status code."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with pytest.raises(ExtractionServiceError) as exc_info:
            await _service(handler).extract("aGVsbG8=")

        assert exc_info.value.status_code == 500
        assert not isinstance(exc_info.value, ExtractionServiceUnavailable)

    @pytest.mark.asyncio
    async def test_json_array_response(self):
        """A JSON array is not an extraction payload."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"title": "Fran"}])

        with pytest.raises(ExtractionServiceError):
            await _service(handler).extract("aGVsbG8=")

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        """Transport failures mean the service is unavailable."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ExtractionServiceUnavailable):
            await _service(handler).extract("aGVsbG8=")

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Timeouts mean the service is unavailable."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ExtractionServiceUnavailable, match="timed out"):
            await _service(handler).extract("aGVsbG8=")


class TestGetExtractionService:
    """Service factory."""

    def test_not_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "EXTRACTION_SERVICE_URL", None)

        with pytest.raises(ExtractionServiceUnavailable):
            get_extraction_service()

    def test_configured(self, monkeypatch):
        monkeypatch.setattr(settings, "EXTRACTION_SERVICE_URL", URL + "/")
        monkeypatch.setattr(settings, "EXTRACTION_API_KEY", "secret")

        service = get_extraction_service()

        assert isinstance(service, HttpExtractionService)
        assert service.base_url == URL
        assert service.api_key == "secret"


class TestExtractionDebugLogger:
    """Call tracking."""

    def test_success_is_recorded(self):
        debug_logger = ExtractionDebugLogger(get_logger("test"))

        with debug_logger.track_call(endpoint=URL) as call:
            call.set_request("aGVsbG8=", "image/png")
            call.set_response('{"title": "Fran"}', 0.9)

        summary = call.get_summary()
        assert summary["success"] is True
        assert summary["confidence"] == 0.9
        assert call.log.image_chars == 8

    def test_errors_are_recorded_and_reraised(self):
        debug_logger = ExtractionDebugLogger(get_logger("test"))

        with pytest.raises(RuntimeError):
            with debug_logger.track_call(endpoint=URL) as call:
                raise RuntimeError("boom")

        assert call.log.success is False
        assert call.log.error_type == "RuntimeError"
