"""Identity document intake for the documents step.

Tracks every uploaded document through recognition independently, so one
failed document never blocks the others, and derives the auto-fill field
set from whichever documents have completed.
"""

import asyncio

from intake.normalization.models import (
    DocumentCapture,
    DocumentStatus,
    DocumentType,
    FileReference,
)
from intake.normalization.normalizer import DocumentNormalizer
from intake.services.recognition import RecognitionService
from intake.utils.clock import Clock, utcnow
from intake.utils.config import DocumentsConfig
from intake.utils.exceptions import DocumentRejectedError, RecognitionError
from intake.utils.i18n import resolve_locale
from intake.utils.logger import get_logger

logger = get_logger(__name__)

CONTENT_UNAVAILABLE = "File content is no longer available; upload it again"


def _is_allowed_content_type(content_type: str) -> bool:
    return content_type.startswith("image/") or content_type == "application/pdf"


class DocumentCollector:
    """Uploads, recognizes and normalizes identity documents.

    Args:
        recognizer: External recognition service.
        normalizer: Normalizer applied to every recognition result.
        config: Upload limits.
        language: Language used for rejection messages.
        clock: Wall-clock source for upload timestamps.
    """

    def __init__(
        self,
        recognizer: RecognitionService,
        normalizer: DocumentNormalizer | None = None,
        config: DocumentsConfig | None = None,
        language: str = "en",
        clock: Clock = utcnow,
    ) -> None:
        self.recognizer = recognizer
        self.normalizer = normalizer or DocumentNormalizer()
        self.config = config or DocumentsConfig()
        self.language = language
        self.clock = clock
        self.documents: list[DocumentCapture] = []
        self._contents: dict[str, bytes] = {}

    @property
    def pending(self) -> bool:
        """Whether any document is still uploading or processing."""
        return any(not doc.is_terminal for doc in self.documents)

    @property
    def completed(self) -> list[DocumentCapture]:
        return [d for d in self.documents if d.status == DocumentStatus.COMPLETED]

    def restore(
        self,
        documents: list[DocumentCapture],
        contents: dict[str, bytes] | None = None,
    ) -> None:
        """Load captures from a resumed session snapshot.

        Documents still in flight without file content are marked failed
        so they can be uploaded again.
        """
        self.documents = [doc.model_copy(deep=True) for doc in documents]
        ids = {doc.id for doc in self.documents}
        self._contents = {k: v for k, v in (contents or {}).items() if k in ids}
        for doc in self.documents:
            if not doc.is_terminal and doc.id not in self._contents:
                doc.status = DocumentStatus.ERROR
                doc.error = CONTENT_UNAVAILABLE

    @property
    def contents(self) -> dict[str, bytes]:
        return dict(self._contents)

    def get(self, document_id: str) -> DocumentCapture:
        for doc in self.documents:
            if doc.id == document_id:
                return doc
        raise DocumentRejectedError(f"Unknown document: {document_id}")

    def add_document(
        self,
        filename: str,
        content: bytes,
        content_type: str,
        document_type: DocumentType | str,
    ) -> DocumentCapture:
        """Accept an uploaded file for recognition.

        Args:
            filename: Original file name.
            content: File bytes.
            content_type: MIME type reported by the client.
            document_type: Declared document type.

        Returns:
            New capture in the ``uploading`` state.

        Raises:
            DocumentRejectedError: If any intake limit is violated.
        """
        t = resolve_locale(self.language)

        if str(document_type) not in self.config.allowed_types:
            raise DocumentRejectedError(
                t.text("documents.bad_document_type", document_type=document_type)
            )
        if not _is_allowed_content_type(content_type):
            raise DocumentRejectedError(
                t.text("documents.bad_type", content_type=content_type)
            )
        if len(content) > self.config.max_file_size:
            raise DocumentRejectedError(
                t.text(
                    "documents.too_large",
                    limit_mb=self.config.max_file_size // (1024 * 1024),
                )
            )
        if len(self.documents) >= self.config.max_documents:
            raise DocumentRejectedError(
                t.text("documents.too_many", limit=self.config.max_documents)
            )

        capture = DocumentCapture(
            document_type=DocumentType(document_type),
            file=FileReference(
                filename=filename, content_type=content_type, size=len(content)
            ),
            uploaded_at=self.clock(),
        )
        self.documents.append(capture)
        self._contents[capture.id] = content
        logger.info(
            "Accepted %s upload %s (%d bytes)", capture.document_type, filename, len(content)
        )
        return capture

    async def process(self, document_id: str) -> DocumentCapture:
        """Run recognition and normalization for one document.

        Failures are recorded on the capture instead of being raised.

        Args:
            document_id: Document to process.

        Returns:
            The capture in a terminal state.
        """
        capture = self.get(document_id)
        content = self._contents.get(document_id)
        if content is None:
            capture.status = DocumentStatus.ERROR
            capture.error = CONTENT_UNAVAILABLE
            return capture

        capture.status = DocumentStatus.PROCESSING
        capture.error = None
        filename = capture.file.filename if capture.file else "document"

        try:
            output = await self.recognizer.recognize(
                content, str(capture.document_type), filename
            )
            self.normalizer.apply(capture, output)
        except RecognitionError as exc:
            logger.warning("Recognition failed for %s: %s", filename, exc)
            capture.status = DocumentStatus.ERROR
            capture.error = str(exc)
        except Exception as exc:
            logger.error("Failed to process %s: %s", filename, exc)
            capture.status = DocumentStatus.ERROR
            capture.error = str(exc)
        return capture

    async def process_all(self) -> list[DocumentCapture]:
        """Process every document still waiting for recognition concurrently."""
        waiting = [d.id for d in self.documents if d.status == DocumentStatus.UPLOADING]
        if not waiting:
            return []
        logger.info("Processing %d documents", len(waiting))
        return list(await asyncio.gather(*(self.process(doc_id) for doc_id in waiting)))

    async def retry(self, document_id: str) -> DocumentCapture:
        """Explicitly re-run recognition for a document."""
        capture = self.get(document_id)
        logger.info("Retrying recognition for document %s", document_id)
        capture.status = DocumentStatus.UPLOADING
        return await self.process(document_id)

    def edit_field(self, document_id: str, name: str, value: str) -> DocumentCapture:
        """Apply a review correction to a completed document."""
        capture = self.get(document_id)
        if capture.status != DocumentStatus.COMPLETED:
            raise DocumentRejectedError(
                f"Document {document_id} is {capture.status}, not completed"
            )
        return self.normalizer.edit_field(capture, name, value)

    def remove(self, document_id: str) -> None:
        capture = self.get(document_id)
        self.documents.remove(capture)
        self._contents.pop(document_id, None)

    def merged_fields(self) -> dict[str, str]:
        """Auto-fill field set derived from all completed documents.

        Per field the highest-confidence value wins and ties go to the
        earlier upload, so the result does not depend on completion order.
        """
        best: dict[str, tuple[float, int, str]] = {}
        for position, doc in enumerate(self.documents):
            if doc.status != DocumentStatus.COMPLETED:
                continue
            for name, value in doc.extracted_fields.items():
                confidence = doc.confidence_scores.get(name, 0.0)
                current = best.get(name)
                if current is None or confidence > current[0]:
                    best[name] = (confidence, position, value)
        return {name: entry[2] for name, entry in best.items()}
