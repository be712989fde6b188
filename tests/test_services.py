"""Tests for the recognition and persistence HTTP clients."""

import json

import httpx
import pytest

from intake.services.backend import HttpPersistenceBackend
from intake.services.recognition import HttpRecognitionClient
from intake.utils.config import ServicesConfig
from intake.utils.exceptions import (
    BackendError,
    RecognitionError,
    RecognitionTimeoutError,
)

FAST = ServicesConfig(retry_delay=0.0, max_retries=3)


class TestHttpRecognitionClient:
    """Tests for HttpRecognitionClient."""

    @pytest.mark.asyncio
    async def test_parses_payload(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/recognize"
            assert b"drivers_license" in request.content
            return httpx.Response(
                200,
                json={
                    "fields": {"first_name": "john"},
                    "confidences": {"first_name": 0.9},
                    "raw_text": "JOHN",
                },
            )

        client = HttpRecognitionClient(FAST, transport=httpx.MockTransport(handler))
        output = await client.recognize(b"img", "drivers_license", "id.png")
        assert output.fields == {"first_name": "john"}
        assert output.confidences == {"first_name": 0.9}
        assert output.raw_text == "JOHN"

    @pytest.mark.asyncio
    async def test_retries_server_errors(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"fields": {}})

        client = HttpRecognitionClient(FAST, transport=httpx.MockTransport(handler))
        output = await client.recognize(b"img", "other")
        assert len(calls) == 3
        assert output.fields == {}

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(422)

        client = HttpRecognitionClient(FAST, transport=httpx.MockTransport(handler))
        with pytest.raises(RecognitionError, match="422"):
            await client.recognize(b"img", "other")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client = HttpRecognitionClient(FAST, transport=httpx.MockTransport(handler))
        with pytest.raises(RecognitionTimeoutError):
            await client.recognize(b"img", "other")

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"not json")

        client = HttpRecognitionClient(FAST, transport=httpx.MockTransport(handler))
        with pytest.raises(RecognitionError, match="invalid payload"):
            await client.recognize(b"img", "other")

    @pytest.mark.asyncio
    async def test_payload_not_an_object(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"first_name": "john"}])

        client = HttpRecognitionClient(FAST, transport=httpx.MockTransport(handler))
        with pytest.raises(RecognitionError, match="invalid payload"):
            await client.recognize(b"img", "other")


class TestHttpPersistenceBackend:
    """Tests for HttpPersistenceBackend."""

    @pytest.mark.asyncio
    async def test_validate_access_code(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/validate-token")
            assert json.loads(request.content) == {"token": "ABC123"}
            return httpx.Response(
                200, json={"valid": True, "employee": {"id": "e1", "firstName": "Ana"}}
            )

        backend = HttpPersistenceBackend(FAST, transport=httpx.MockTransport(handler))
        result = await backend.validate_access_code("ABC123")
        assert result.valid is True
        assert result.employee["firstName"] == "Ana"

    @pytest.mark.asyncio
    async def test_invalid_access_code(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False})

        backend = HttpPersistenceBackend(FAST, transport=httpx.MockTransport(handler))
        result = await backend.validate_access_code("ZZZZZZ")
        assert result.valid is False
        assert result.employee == {}

    @pytest.mark.asyncio
    async def test_submit(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/sessions/s1/submit")
            return httpx.Response(200, json={"success": True, "message": "ok"})

        backend = HttpPersistenceBackend(FAST, transport=httpx.MockTransport(handler))
        result = await backend.submit("s1", {"forms": {}})
        assert result.success is True
        assert result.message == "ok"

    @pytest.mark.asyncio
    async def test_complete_session_error_field(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "error": "closed"})

        backend = HttpPersistenceBackend(FAST, transport=httpx.MockTransport(handler))
        result = await backend.complete_session("s1")
        assert result.success is False
        assert result.message == "closed"

    @pytest.mark.asyncio
    async def test_exhausted_retries(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("refused", request=request)

        backend = HttpPersistenceBackend(FAST, transport=httpx.MockTransport(handler))
        with pytest.raises(BackendError, match="Failed to reach"):
            await backend.submit("s1", {})
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_rejection(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        backend = HttpPersistenceBackend(FAST, transport=httpx.MockTransport(handler))
        with pytest.raises(BackendError, match="HTTP 404"):
            await backend.complete_session("s1")
