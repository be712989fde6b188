"""Final review, confirmation gate and submission of the onboarding package."""

import secrets
import string
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from intake.forms.engine import FormRecord, FormStatus
from intake.services.backend import PersistenceBackend
from intake.signature.capture import SignatureArtifact
from intake.utils.clock import Clock, utcnow
from intake.utils.exceptions import BackendError, SubmissionError
from intake.utils.i18n import resolve_locale
from intake.utils.logger import get_logger

logger = get_logger(__name__)

_ID_ALPHABET = string.ascii_uppercase + string.digits


class Confirmation(StrEnum):
    ACCURACY = "accuracy"
    COMPLETENESS = "completeness"
    AUTHORIZATION = "authorization"
    PENALTIES = "penalties"


class SubmissionReceipt(BaseModel):
    """Immutable proof that the package was accepted."""

    model_config = ConfigDict(frozen=True)

    submission_id: str
    timestamp: datetime
    confirmations: dict[str, bool]
    forms_included: dict[str, str]
    signatures_included: list[str]
    message: str = ""


class SubmissionState(BaseModel):
    """Submission progress stored on the session."""

    submission_id: str | None = None
    timestamp: datetime | None = None
    confirmations: dict[str, bool] = Field(
        default_factory=lambda: {flag.value: False for flag in Confirmation}
    )
    receipt: SubmissionReceipt | None = None
    last_error: str | None = None


def generate_submission_id(now: datetime) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"SUB-{int(now.timestamp() * 1000)}-{suffix}"


class SubmissionCoordinator:
    """Gates and forwards the final onboarding package.

    Args:
        backend: Persistence backend receiving the package.
        state: Submission state to operate on; a fresh one when omitted.
        required_forms: Form types that must be completed and signed.
        language: Language for messages.
        clock: Wall-clock source for the submission timestamp.
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        state: SubmissionState | None = None,
        required_forms: list[str] | None = None,
        language: str = "en",
        clock: Clock = utcnow,
    ) -> None:
        self.backend = backend
        self.state = state or SubmissionState()
        self.required_forms = required_forms or ["i9", "w4"]
        self.language = language
        self.clock = clock

    def prepare(self) -> tuple[str, datetime]:
        """Generate the submission id and timestamp once."""
        if self.state.submission_id is None or self.state.timestamp is None:
            now = self.clock()
            self.state.submission_id = generate_submission_id(now)
            self.state.timestamp = now
            logger.info("Prepared submission %s", self.state.submission_id)
        return self.state.submission_id, self.state.timestamp

    def set_confirmation(self, flag: Confirmation | str, value: bool) -> None:
        key = Confirmation(flag).value
        if self.state.receipt is not None:
            raise SubmissionError("Package already submitted")
        self.state.confirmations[key] = bool(value)

    @property
    def can_submit(self) -> bool:
        """True only when all four confirmations are checked."""
        return all(self.state.confirmations.get(flag.value, False) for flag in Confirmation)

    def status_table(
        self,
        forms: dict[str, FormRecord],
        signatures: dict[str, SignatureArtifact],
    ) -> dict[str, dict[str, str]]:
        """Per-form and per-signature review status."""
        form_rows: dict[str, str] = {}
        signature_rows: dict[str, str] = {}
        for form_type in self.required_forms:
            record = forms.get(form_type)
            if record is None:
                form_rows[form_type] = "missing"
            elif record.status != FormStatus.DRAFT:
                form_rows[form_type] = "valid"
            else:
                form_rows[form_type] = "invalid"
            key = f"{form_type}_signature"
            signature_rows[key] = "present" if key in signatures else "missing"
        return {"forms": form_rows, "signatures": signature_rows}

    def is_ready(
        self,
        forms: dict[str, FormRecord],
        signatures: dict[str, SignatureArtifact],
    ) -> bool:
        table = self.status_table(forms, signatures)
        return all(v == "valid" for v in table["forms"].values()) and all(
            v == "present" for v in table["signatures"].values()
        )

    def build_payload(
        self,
        forms: dict[str, FormRecord],
        signatures: dict[str, SignatureArtifact],
    ) -> dict[str, Any]:
        submission_id, timestamp = self.prepare()
        return {
            "submission_id": submission_id,
            "timestamp": timestamp.isoformat(),
            "confirmations": dict(self.state.confirmations),
            "forms": {
                form_type: forms[form_type].model_dump(mode="json")
                for form_type in self.required_forms
            },
            "signatures": {
                key: artifact.model_dump(mode="json")
                for key, artifact in signatures.items()
            },
        }

    async def submit(
        self,
        session_id: str,
        forms: dict[str, FormRecord],
        signatures: dict[str, SignatureArtifact],
    ) -> SubmissionReceipt:
        """Forward the package to the backend.

        Submitting again after success returns the same receipt. A failed
        call leaves every form, signature and confirmation untouched and
        records the error for a retry.

        Raises:
            SubmissionError: If the gate is closed or the backend fails.
        """
        if self.state.receipt is not None:
            return self.state.receipt

        t = resolve_locale(self.language)
        if not self.can_submit:
            raise SubmissionError(t.text("submission.confirmations_required"))
        if not self.is_ready(forms, signatures):
            raise SubmissionError(t.text("submission.not_ready"))

        payload = self.build_payload(forms, signatures)
        try:
            result = await self.backend.submit(session_id, payload)
        except BackendError as exc:
            logger.error("Submission %s failed: %s", payload["submission_id"], exc)
            self.state.last_error = t.text("submission.error")
            raise SubmissionError(self.state.last_error) from exc

        if not result.success:
            logger.error(
                "Submission %s rejected: %s", payload["submission_id"], result.message
            )
            self.state.last_error = result.message or t.text("submission.error")
            raise SubmissionError(self.state.last_error)

        for form_type in self.required_forms:
            forms[form_type].status = FormStatus.SUBMITTED

        receipt = SubmissionReceipt(
            submission_id=payload["submission_id"],
            timestamp=self.state.timestamp,
            confirmations=dict(self.state.confirmations),
            forms_included={ft: forms[ft].form_id for ft in self.required_forms},
            signatures_included=sorted(signatures),
            message=t.text("submission.success"),
        )
        self.state.receipt = receipt
        self.state.last_error = None
        logger.info("Submitted onboarding package %s", receipt.submission_id)
        return receipt
