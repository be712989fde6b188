"""Client for the external onboarding persistence backend."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from intake.utils.config import ServicesConfig
from intake.utils.exceptions import BackendError
from intake.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AccessCodeResult:
    """Outcome of validating an onboarding access code."""

    valid: bool
    employee: dict[str, Any] = field(default_factory=dict)


@dataclass
class BackendResult:
    """Outcome of a submit or completion call."""

    success: bool
    message: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class PersistenceBackend(Protocol):
    """Server-side collaborator that stores finalized onboarding data."""

    async def validate_access_code(self, code: str) -> AccessCodeResult: ...

    async def submit(self, session_id: str, payload: dict[str, Any]) -> BackendResult: ...

    async def complete_session(self, session_id: str) -> BackendResult: ...


class HttpPersistenceBackend:
    """Persistence backend reached over HTTP with retry and backoff.

    Args:
        config: Backend URL, timeout and retry policy.
        transport: Optional httpx transport, used to stub the backend.
    """

    def __init__(
        self,
        config: ServicesConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or ServicesConfig()
        self._transport = transport

    async def validate_access_code(self, code: str) -> AccessCodeResult:
        """Validate an access code and fetch the employee it belongs to."""
        body = await self._request("POST", "/validate-token", {"token": code})
        employee = body.get("employee") or body.get("data", {}).get("employee") or {}
        valid = bool(body.get("valid", body.get("success")))
        return AccessCodeResult(valid=valid, employee=employee)

    async def submit(self, session_id: str, payload: dict[str, Any]) -> BackendResult:
        """Forward the finalized forms and signatures for a session."""
        body = await self._request("POST", f"/sessions/{session_id}/submit", payload)
        return self._result(body)

    async def complete_session(self, session_id: str) -> BackendResult:
        """Finalize the session server-side."""
        body = await self._request("POST", f"/sessions/{session_id}/complete", {})
        return self._result(body)

    @staticmethod
    def _result(body: dict[str, Any]) -> BackendResult:
        return BackendResult(
            success=bool(body.get("success")),
            message=body.get("message") or body.get("error"),
            data=body.get("data") or {},
        )

    async def _request(
        self, method: str, path: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        """Issue a request, retrying transport failures with backoff.

        Raises:
            BackendError: When all attempts fail or a 4xx answer arrives.
        """
        url = self.config.backend_url.rstrip("/") + path
        last_error: Exception | None = None

        async with httpx.AsyncClient(
            timeout=self.config.timeout, transport=self._transport
        ) as client:
            for attempt in range(self.config.max_retries):
                try:
                    response = await client.request(method, url, json=payload)
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError as exc:
                    if exc.response.status_code < 500:
                        raise BackendError(
                            f"Backend rejected {path}: HTTP {exc.response.status_code}"
                        ) from exc
                    last_error = exc
                except (httpx.RequestError, ValueError) as exc:
                    last_error = exc

                logger.warning(
                    "[%s] Attempt %d failed: %s", path, attempt + 1, last_error
                )
                if attempt + 1 < self.config.max_retries:
                    await asyncio.sleep(
                        self.config.retry_delay * self.config.backoff_multiplier**attempt
                    )

        logger.error("Backend call %s %s failed: %s", method, path, last_error)
        raise BackendError(f"Failed to reach onboarding backend: {last_error}") from last_error
