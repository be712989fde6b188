"""Session state for one onboarding attempt."""

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from intake.forms.engine import FormRecord
from intake.normalization.models import DocumentCapture
from intake.signature.capture import SignatureArtifact
from intake.submission.coordinator import SubmissionState
from intake.utils.clock import utcnow

SNAPSHOT_VERSION = 1


class Step(StrEnum):
    LANGUAGE = "language"
    ACCESS_CODE = "access-code"
    DOCUMENTS = "documents"
    FORMS = "forms"
    SIGNATURE = "signature"
    COMPLETE = "complete"


STEP_ORDER: tuple[Step, ...] = tuple(Step)
TERMINAL_INDEX = len(STEP_ORDER) - 1


class AccessibilityFeature(StrEnum):
    HIGH_CONTRAST = "high_contrast"
    LARGE_TEXT = "large_text"
    VOICE_GUIDANCE = "voice_guidance"


class AccessibilityPreferences(BaseModel):
    high_contrast: bool = False
    large_text: bool = False
    voice_guidance: bool = False


class OnboardingSession(BaseModel):
    """Everything the wizard knows about one employee's onboarding."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    current_step_index: int = 0
    completed_steps: set[int] = Field(default_factory=set)
    language: str = "en"
    employee: dict[str, Any] | None = None
    access_code: str | None = None
    access_code_validated: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    last_activity: datetime = Field(default_factory=utcnow)
    accessibility: AccessibilityPreferences = Field(
        default_factory=AccessibilityPreferences
    )
    version: int = SNAPSHOT_VERSION
    documents: list[DocumentCapture] = Field(default_factory=list)
    forms: dict[str, FormRecord] = Field(default_factory=dict)
    signatures: dict[str, SignatureArtifact] = Field(default_factory=dict)
    submission: SubmissionState = Field(default_factory=SubmissionState)

    @property
    def current_step(self) -> Step:
        return STEP_ORDER[self.current_step_index]

    @property
    def employee_id(self) -> str:
        if not self.employee:
            return ""
        return str(self.employee.get("id", ""))


class SessionSnapshot(BaseModel):
    """Envelope written to durable storage."""

    version: int = SNAPSHOT_VERSION
    saved_at: datetime
    session: OnboardingSession
