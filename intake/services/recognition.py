"""Client for the external document recognition service."""

import asyncio
from typing import Protocol

import httpx

from intake.normalization.models import RecognitionOutput
from intake.utils.config import ServicesConfig
from intake.utils.exceptions import RecognitionError, RecognitionTimeoutError
from intake.utils.logger import get_logger

logger = get_logger(__name__)


class RecognitionService(Protocol):
    """Anything that turns document bytes into raw recognized fields."""

    async def recognize(
        self, content: bytes, document_type: str, filename: str = "document"
    ) -> RecognitionOutput: ...


class HttpRecognitionClient:
    """Recognition service reached over HTTP.

    Posts the document as multipart form data and expects a JSON body with
    ``fields``, ``confidences`` and ``raw_text``.

    Args:
        config: Service URL, timeout and retry policy.
        transport: Optional httpx transport, used to stub the service.
    """

    def __init__(
        self,
        config: ServicesConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or ServicesConfig()
        self._transport = transport

    async def recognize(
        self, content: bytes, document_type: str, filename: str = "document"
    ) -> RecognitionOutput:
        """Send one document to the recognition service.

        Args:
            content: Raw document bytes.
            document_type: Declared document type.
            filename: Original file name.

        Returns:
            Raw recognition output.

        Raises:
            RecognitionTimeoutError: If every attempt timed out.
            RecognitionError: If the service failed or answered garbage.
        """
        logger.info("Requesting recognition for %s (%s)", filename, document_type)
        last_error: Exception | None = None

        async with httpx.AsyncClient(
            timeout=self.config.timeout, transport=self._transport
        ) as client:
            for attempt in range(self.config.max_retries):
                try:
                    response = await client.post(
                        self.config.recognition_url,
                        files={"file": (filename, content)},
                        data={"document_type": str(document_type)},
                    )
                    response.raise_for_status()
                    output = RecognitionOutput.from_dict(response.json())
                    logger.debug(
                        "Recognition returned %d fields on attempt %d",
                        len(output.fields),
                        attempt + 1,
                    )
                    return output
                except httpx.TimeoutException as exc:
                    last_error = exc
                except httpx.HTTPStatusError as exc:
                    if exc.response.status_code < 500:
                        raise RecognitionError(
                            f"Recognition rejected document: HTTP {exc.response.status_code}"
                        ) from exc
                    last_error = exc
                except httpx.RequestError as exc:
                    last_error = exc
                except ValueError as exc:
                    raise RecognitionError(
                        f"Recognition returned an invalid payload: {exc}"
                    ) from exc

                logger.warning(
                    "Recognition attempt %d/%d failed: %s",
                    attempt + 1,
                    self.config.max_retries,
                    last_error,
                )
                if attempt + 1 < self.config.max_retries:
                    await asyncio.sleep(
                        self.config.retry_delay * self.config.backoff_multiplier**attempt
                    )

        if isinstance(last_error, httpx.TimeoutException):
            raise RecognitionTimeoutError(
                f"Recognition timed out after {self.config.timeout}s"
            ) from last_error
        raise RecognitionError(f"Recognition failed: {last_error}") from last_error
