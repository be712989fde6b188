"""Normalization of raw recognition output into document captures.

Resolves raw keys to canonical fields, coerces values into a consistent
format, and scores the result so low-confidence documents are routed to
manual review.
"""

from intake.utils.config import NormalizationConfig
from intake.utils.logger import get_logger

from .coercion import alternate_renderings, coerce
from .field_map import field_kind, resolve_fields
from .models import (
    DocumentCapture,
    DocumentStatus,
    DocumentType,
    FileReference,
    RecognitionOutput,
)

logger = get_logger(__name__)


class DocumentNormalizer:
    """Maps recognition output to canonical, reviewable document fields.

    Args:
        config: Review thresholds and suggestion limits.
    """

    def __init__(self, config: NormalizationConfig | None = None) -> None:
        self.config = config or NormalizationConfig()

    def overall_confidence(self, confidences: dict[str, float]) -> float:
        """Arithmetic mean of per-field confidences (0.0 when empty)."""
        if not confidences:
            return 0.0
        return sum(confidences.values()) / len(confidences)

    def requires_review(self, confidences: dict[str, float]) -> bool:
        """Decide whether a document must be reviewed by the employee.

        A single field below the per-field threshold forces review even
        when the mean is high. Documents with no fields always need review.
        """
        if not confidences:
            return True
        if self.overall_confidence(confidences) < self.config.review_mean_threshold:
            return True
        return any(
            c < self.config.review_field_threshold for c in confidences.values()
        )

    def normalize(
        self,
        output: RecognitionOutput,
        document_type: DocumentType | str = DocumentType.OTHER,
        document_id: str | None = None,
        file: FileReference | None = None,
    ) -> DocumentCapture:
        """Normalize one document's recognition output.

        Args:
            output: Raw recognition output.
            document_type: Declared document type.
            document_id: Identifier to reuse; generated when omitted.
            file: Reference to the uploaded file.

        Returns:
            Completed document capture with canonical fields.
        """
        capture = DocumentCapture(document_type=DocumentType(document_type), file=file)
        if document_id:
            capture.id = document_id
        return self.apply(capture, output)

    def apply(self, capture: DocumentCapture, output: RecognitionOutput) -> DocumentCapture:
        """Fill an existing capture from recognition output and mark it completed."""
        resolved = resolve_fields(output.fields, output.confidences)

        capture.extracted_fields = {
            name: coerce(field_kind(name), item.value) for name, item in resolved.items()
        }
        capture.confidence_scores = {
            name: max(0.0, min(1.0, item.confidence)) for name, item in resolved.items()
        }
        capture.raw_text = output.raw_text
        capture.status = DocumentStatus.COMPLETED
        capture.error = None
        self._rescore(capture)

        logger.info(
            "Normalized %s document %s: %d fields, confidence=%.3f, review=%s",
            capture.document_type,
            capture.id,
            len(capture.extracted_fields),
            capture.overall_confidence,
            capture.requires_review,
        )
        return capture

    def edit_field(self, capture: DocumentCapture, name: str, value: str) -> DocumentCapture:
        """Apply a manual correction made during review.

        The edited field's confidence is raised to at least the configured
        floor and the review flag is recomputed.

        Args:
            capture: Document being reviewed.
            name: Canonical field name.
            value: Corrected value.

        Returns:
            The updated capture.
        """
        capture.extracted_fields[name] = coerce(field_kind(name), value)
        capture.confidence_scores[name] = max(
            capture.confidence_scores.get(name, 0.0),
            self.config.edited_confidence_floor,
        )
        self._rescore(capture)
        logger.debug("Field %s edited on document %s", name, capture.id)
        return capture

    def _rescore(self, capture: DocumentCapture) -> None:
        capture.overall_confidence = self.overall_confidence(capture.confidence_scores)
        capture.requires_review = self.requires_review(capture.confidence_scores)
        capture.suggestions = {}
        for name, value in capture.extracted_fields.items():
            suggestions = alternate_renderings(
                field_kind(name), value, self.config.max_suggestions
            )
            if suggestions:
                capture.suggestions[name] = suggestions
