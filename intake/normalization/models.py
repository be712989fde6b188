"""Data models for recognized identity documents."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from intake.utils.clock import utcnow


class DocumentType(StrEnum):
    """Identity document types accepted at the documents step."""

    DRIVERS_LICENSE = "drivers_license"
    SSN_CARD = "ssn_card"
    PASSPORT = "passport"
    BIRTH_CERTIFICATE = "birth_certificate"
    OTHER = "other"


class DocumentStatus(StrEnum):
    """Lifecycle of a single uploaded document."""

    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class FileReference(BaseModel):
    """Pointer to the uploaded file backing a capture."""

    filename: str
    content_type: str = "application/octet-stream"
    size: int = 0


class DocumentCapture(BaseModel):
    """One uploaded document and its normalized recognition output."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    document_type: DocumentType = DocumentType.OTHER
    file: FileReference | None = None
    extracted_fields: dict[str, str] = Field(default_factory=dict)
    confidence_scores: dict[str, float] = Field(default_factory=dict)
    raw_text: str = ""
    status: DocumentStatus = DocumentStatus.UPLOADING
    requires_review: bool = False
    overall_confidence: float = 0.0
    suggestions: dict[str, list[str]] = Field(default_factory=dict)
    error: str | None = None
    uploaded_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in (DocumentStatus.COMPLETED, DocumentStatus.ERROR)


@dataclass
class RecognitionOutput:
    """Raw output of the recognition service for one document."""

    fields: dict[str, Any]
    confidences: dict[str, float] = field(default_factory=dict)
    raw_text: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecognitionOutput":
        """Build from a service payload.

        Accepts either parallel ``fields``/``confidences`` maps or a
        ``fields`` map whose entries are ``{"value": ..., "confidence": ...}``.

        Args:
            data: Decoded JSON payload.

        Returns:
            Recognition output with plain values and confidences.

        Raises:
            ValueError: If the payload does not have the expected shape.
        """
        if not isinstance(data, dict):
            raise ValueError("Recognition output must be a JSON object")
        raw_fields = data.get("fields") or data.get("extracted_fields") or {}
        raw_confidences = data.get("confidences") or data.get("confidence_scores") or {}
        if not isinstance(raw_fields, dict):
            raise ValueError("Recognition fields must be a JSON object")
        if not isinstance(raw_confidences, dict):
            raise ValueError("Recognition confidences must be a JSON object")

        confidences = dict(raw_confidences)
        values: dict[str, Any] = {}
        for key, entry in raw_fields.items():
            if isinstance(entry, dict):
                values[key] = entry.get("value")
                if "confidence" in entry:
                    confidences.setdefault(key, entry["confidence"])
            else:
                values[key] = entry
        raw_text = data.get("raw_text") or data.get("rawText") or ""
        return cls(
            fields=values,
            confidences={k: _as_confidence(k, v) for k, v in confidences.items()},
            raw_text=str(raw_text),
        )


def _as_confidence(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Confidence for {key} is not a number: {value!r}") from exc
