"""Pydantic request/response schemas for the FastAPI endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from intake.forms.engine import FormRecord
from intake.normalization.models import DocumentCapture, DocumentType
from intake.session.models import AccessibilityPreferences
from intake.submission.coordinator import SubmissionReceipt


class NormalizeRequest(BaseModel):
    """Raw recognition output to normalize without a session."""

    fields: dict[str, Any]
    confidences: dict[str, float] = Field(default_factory=dict)
    raw_text: str = ""
    document_type: DocumentType = DocumentType.OTHER


class CreateSessionRequest(BaseModel):
    device_id: str = "default"


class GoToStepRequest(BaseModel):
    index: int


class LanguageRequest(BaseModel):
    language: str


class AccessCodeRequest(BaseModel):
    code: str


class AccessibilityRequest(BaseModel):
    feature: str


class DocumentFieldEdit(BaseModel):
    field: str
    value: str


class FormFieldsUpdate(BaseModel):
    values: dict[str, Any]


class StrokePoint(BaseModel):
    x: float
    y: float
    pressure: float | None = None


class StrokeRequest(BaseModel):
    """One continuous stroke, from first contact to release."""

    points: list[StrokePoint]


class ConfirmationRequest(BaseModel):
    flag: str
    value: bool


class StepInfo(BaseModel):
    id: str
    title: str
    description: str


class SignatureStateResponse(BaseModel):
    form_key: str
    title: str
    attestation: str
    state: str
    point_count: int
    can_continue: bool
    index: int
    total: int
    completed: bool


class SubmissionStateResponse(BaseModel):
    submission_id: str | None = None
    timestamp: datetime | None = None
    confirmations: dict[str, bool]
    can_submit: bool
    status_table: dict[str, dict[str, str]]
    receipt: SubmissionReceipt | None = None
    last_error: str | None = None


class SessionStateResponse(BaseModel):
    """Everything a client needs to render the wizard."""

    session_id: str
    current_step: str
    current_step_index: int
    completed_steps: list[int]
    steps: list[StepInfo]
    language: str
    modal: str | None = None
    message: str | None = None
    exit_blocker: str | None = None
    accessibility: AccessibilityPreferences
    employee: dict[str, Any] | None = None
    documents: list[DocumentCapture]
    forms: dict[str, FormRecord]
    signature: SignatureStateResponse | None = None
    submission: SubmissionStateResponse


class NavigationResponse(BaseModel):
    moved: bool
    state: SessionStateResponse


class AccessCodeResponse(BaseModel):
    valid: bool
    state: SessionStateResponse


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    active_sessions: int
