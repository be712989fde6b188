"""FastAPI application for the onboarding intake wizard.

Exposes a stateless normalization endpoint plus the session endpoints
that drive one :class:`SessionController` per onboarding attempt.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from intake.normalization.models import DocumentCapture, DocumentType, RecognitionOutput
from intake.normalization.normalizer import DocumentNormalizer
from intake.services.backend import HttpPersistenceBackend, PersistenceBackend
from intake.services.recognition import HttpRecognitionClient, RecognitionService
from intake.session.controller import SessionController
from intake.session.models import STEP_ORDER, Step
from intake.session.storage import FileSnapshotStore, SnapshotStore
from intake.submission.coordinator import SubmissionReceipt
from intake.utils.config import AppConfig, load_config
from intake.utils.exceptions import (
    BackendError,
    DocumentRejectedError,
    FormIncompleteError,
    FormLockedError,
    IntakeError,
    NavigationError,
    SessionBlockedError,
    SignatureError,
    SubmissionError,
)
from intake.utils.i18n import resolve_locale
from intake.utils.logger import get_logger

from .schemas import (
    AccessCodeRequest,
    AccessCodeResponse,
    AccessibilityRequest,
    ConfirmationRequest,
    CreateSessionRequest,
    DocumentFieldEdit,
    FormFieldsUpdate,
    GoToStepRequest,
    HealthResponse,
    LanguageRequest,
    NavigationResponse,
    NormalizeRequest,
    SessionStateResponse,
    SignatureStateResponse,
    StepInfo,
    StrokeRequest,
    SubmissionStateResponse,
)

logger = get_logger(__name__)

VERSION = "1.0.0"

_sessions: dict[str, SessionController] = {}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Flush and stop every open session on shutdown."""
    yield
    logger.info("Shutting down %d open sessions", len(_sessions))
    for controller in list(_sessions.values()):
        controller.save_snapshot()
        await controller.aclose()
    _sessions.clear()


app = FastAPI(
    title="Onboarding Intake API",
    description="Guided employee onboarding: documents, forms, signatures",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_CODES: list[tuple[type[IntakeError], int]] = [
    (NavigationError, 409),
    (SessionBlockedError, 409),
    (FormLockedError, 409),
    (BackendError, 502),
    (DocumentRejectedError, 400),
    (FormIncompleteError, 400),
    (SignatureError, 400),
    (SubmissionError, 400),
]


def _get_components() -> tuple[AppConfig, RecognitionService, PersistenceBackend]:
    """Initialize and return shared service components.

    Returns:
        Tuple of (config, recognition_service, persistence_backend).
    """
    config = load_config()
    return (
        config,
        HttpRecognitionClient(config.services),
        HttpPersistenceBackend(config.services),
    )


def _open_store(config: AppConfig, device_id: str) -> SnapshotStore:
    """Snapshot storage for one device."""
    return FileSnapshotStore(Path(config.storage.snapshot_dir) / device_id)


def status_code_for(exc: IntakeError) -> int:
    for exc_type, status in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status
    return 500


@app.exception_handler(IntakeError)
async def intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    status = status_code_for(exc)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s refused: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def _controller(session_id: str) -> SessionController:
    """Look up a controller by the id the client last saw.

    A timeout replaces the session behind the controller, so a controller is
    found under its previous id as well as its current one.
    """
    controller = _sessions.get(session_id)
    if controller is None:
        controller = next(
            (c for c in _sessions.values() if c.session.id == session_id), None
        )
    if controller is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    _track(controller)
    return controller


def _track(controller: SessionController) -> None:
    """Register a controller under its current session id only."""
    stale = [
        key
        for key, tracked in _sessions.items()
        if tracked is controller and key != controller.session.id
    ]
    for key in stale:
        del _sessions[key]
    _sessions[controller.session.id] = controller


async def _rekey(old_id: str, controller: SessionController) -> None:
    """Track a controller under its session id after resume or restart."""
    _sessions.pop(old_id, None)
    displaced = _sessions.get(controller.session.id)
    if displaced is not None and displaced is not controller:
        await displaced.aclose()
    _sessions[controller.session.id] = controller


def _signature_state(controller: SessionController) -> SignatureStateResponse | None:
    sequence = controller.sequence
    if sequence is None or controller.current_step != Step.SIGNATURE:
        return None
    pad = sequence.current
    return SignatureStateResponse(
        form_key=pad.form_key,
        title=sequence.titles[sequence.index],
        attestation=pad.attestation,
        state=pad.state.value,
        point_count=pad.point_count,
        can_continue=pad.can_continue,
        index=sequence.index,
        total=len(sequence.pads),
        completed=sequence.completed,
    )


def _state(controller: SessionController) -> SessionStateResponse:
    session = controller.session
    t = resolve_locale(session.language)
    submission = session.submission
    return SessionStateResponse(
        session_id=session.id,
        current_step=controller.current_step.value,
        current_step_index=session.current_step_index,
        completed_steps=sorted(session.completed_steps),
        steps=[
            StepInfo(
                id=step.value,
                title=t.text(f"step.{step.value}"),
                description=t.text(f"step.{step.value}.description"),
            )
            for step in STEP_ORDER
        ],
        language=session.language,
        modal=controller.modal.value if controller.modal else None,
        message=controller.message,
        exit_blocker=None if controller.modal else controller.exit_blocker(),
        accessibility=session.accessibility,
        employee=session.employee,
        documents=session.documents,
        forms=session.forms,
        signature=_signature_state(controller),
        submission=SubmissionStateResponse(
            submission_id=submission.submission_id,
            timestamp=submission.timestamp,
            confirmations=submission.confirmations,
            can_submit=controller.coordinator.can_submit,
            status_table=controller.status_table(),
            receipt=submission.receipt,
            last_error=submission.last_error,
        ),
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(status="healthy", version=VERSION, active_sessions=len(_sessions))


@app.post("/normalize", response_model=DocumentCapture)
async def normalize_document(request: NormalizeRequest) -> DocumentCapture:
    """Normalize raw recognition output without opening a session."""
    try:
        config, _, _ = _get_components()
        normalizer = DocumentNormalizer(config.normalization)
        output = RecognitionOutput(
            fields=request.fields,
            confidences=request.confidences,
            raw_text=request.raw_text,
        )
        return normalizer.normalize(output, request.document_type)
    except Exception as exc:
        logger.error("Normalization failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.post("/sessions", response_model=SessionStateResponse)
async def create_session(request: CreateSessionRequest) -> SessionStateResponse:
    """Open a wizard for a device, offering to resume a saved session."""
    config, recognizer, backend = _get_components()
    controller = SessionController(
        recognizer, backend, _open_store(config, request.device_id), config
    )
    controller.mount()
    controller.start()
    _sessions[controller.session.id] = controller
    return _state(controller)


@app.get("/sessions/{session_id}", response_model=SessionStateResponse)
async def get_session(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.check_inactivity()
    if controller.session.id != session_id:
        await _rekey(session_id, controller)
    return _state(controller)


@app.post("/sessions/{session_id}/resume", response_model=SessionStateResponse)
async def resume_session(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.resume()
    await _rekey(session_id, controller)
    return _state(controller)


@app.post("/sessions/{session_id}/restart", response_model=SessionStateResponse)
async def restart_session(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.restart()
    await _rekey(session_id, controller)
    return _state(controller)


@app.post("/sessions/{session_id}/acknowledge-timeout", response_model=SessionStateResponse)
async def acknowledge_timeout(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.acknowledge_timeout()
    return _state(controller)


@app.post("/sessions/{session_id}/extend", response_model=SessionStateResponse)
async def extend_session(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.extend_session()
    return _state(controller)


@app.post("/sessions/{session_id}/next", response_model=SessionStateResponse)
async def next_step(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.next_step()
    return _state(controller)


@app.post("/sessions/{session_id}/previous", response_model=SessionStateResponse)
async def previous_step(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.previous_step()
    return _state(controller)


@app.post("/sessions/{session_id}/goto", response_model=NavigationResponse)
async def go_to_step(session_id: str, request: GoToStepRequest) -> NavigationResponse:
    controller = _controller(session_id)
    moved = controller.go_to_step(request.index)
    return NavigationResponse(moved=moved, state=_state(controller))


@app.post("/sessions/{session_id}/language", response_model=SessionStateResponse)
async def select_language(session_id: str, request: LanguageRequest) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.select_language(request.language)
    return _state(controller)


@app.post("/sessions/{session_id}/access-code", response_model=AccessCodeResponse)
async def submit_access_code(
    session_id: str, request: AccessCodeRequest
) -> AccessCodeResponse:
    controller = _controller(session_id)
    valid = await controller.submit_access_code(request.code)
    return AccessCodeResponse(valid=valid, state=_state(controller))


@app.post("/sessions/{session_id}/accessibility", response_model=SessionStateResponse)
async def toggle_accessibility(
    session_id: str, request: AccessibilityRequest
) -> SessionStateResponse:
    controller = _controller(session_id)
    try:
        controller.toggle_accessibility(request.feature)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _state(controller)


@app.post("/sessions/{session_id}/documents", response_model=DocumentCapture)
async def upload_document(
    session_id: str,
    file: Annotated[UploadFile, File(...)],
    document_type: Annotated[DocumentType, Query()] = DocumentType.OTHER,
    process: Annotated[bool, Query()] = True,
) -> DocumentCapture:
    """Upload an identity document and, by default, recognize it right away."""
    controller = _controller(session_id)
    content = await file.read()
    capture = controller.add_document(
        file.filename or "document",
        content,
        file.content_type or "application/octet-stream",
        document_type,
    )
    if process:
        await controller.process_documents()
    return capture


@app.post(
    "/sessions/{session_id}/documents/{document_id}/retry",
    response_model=DocumentCapture,
)
async def retry_document(session_id: str, document_id: str) -> DocumentCapture:
    controller = _controller(session_id)
    return await controller.retry_document(document_id)


@app.patch("/sessions/{session_id}/documents/{document_id}", response_model=DocumentCapture)
async def edit_document_field(
    session_id: str, document_id: str, request: DocumentFieldEdit
) -> DocumentCapture:
    controller = _controller(session_id)
    return controller.edit_document_field(document_id, request.field, request.value)


@app.delete("/sessions/{session_id}/documents/{document_id}", response_model=SessionStateResponse)
async def remove_document(session_id: str, document_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.remove_document(document_id)
    return _state(controller)


@app.patch("/sessions/{session_id}/forms/{form_type}", response_model=SessionStateResponse)
async def update_form(
    session_id: str, form_type: str, request: FormFieldsUpdate
) -> SessionStateResponse:
    controller = _controller(session_id)
    try:
        for name, value in request.values.items():
            controller.set_form_field(form_type, name, value)
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _state(controller)


@app.post(
    "/sessions/{session_id}/forms/{form_type}/complete",
    response_model=SessionStateResponse,
)
async def complete_form(session_id: str, form_type: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.complete_form(form_type)
    return _state(controller)


@app.post("/sessions/{session_id}/signature/strokes", response_model=SessionStateResponse)
async def add_stroke(session_id: str, request: StrokeRequest) -> SessionStateResponse:
    """Replay one stroke on the current signature pad."""
    controller = _controller(session_id)
    if not request.points:
        raise HTTPException(status_code=400, detail="A stroke needs at least one point")
    first, *rest = request.points
    controller.signature_begin(first.x, first.y, first.pressure)
    for point in rest:
        controller.signature_extend(point.x, point.y, point.pressure)
    controller.signature_release()
    return _state(controller)


@app.post("/sessions/{session_id}/signature/clear", response_model=SessionStateResponse)
async def clear_signature(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.clear_signature()
    return _state(controller)


@app.post("/sessions/{session_id}/signature/accept", response_model=SessionStateResponse)
async def accept_signature(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.accept_signature()
    return _state(controller)


@app.post("/sessions/{session_id}/signature/back", response_model=SessionStateResponse)
async def signature_back(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    controller.signature_back()
    return _state(controller)


@app.post("/sessions/{session_id}/confirmations", response_model=SessionStateResponse)
async def set_confirmation(
    session_id: str, request: ConfirmationRequest
) -> SessionStateResponse:
    controller = _controller(session_id)
    try:
        controller.set_confirmation(request.flag, request.value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _state(controller)


@app.post("/sessions/{session_id}/submit", response_model=SubmissionReceipt)
async def submit(session_id: str) -> SubmissionReceipt:
    controller = _controller(session_id)
    return await controller.submit()


@app.post("/sessions/{session_id}/finish", response_model=SessionStateResponse)
async def finish(session_id: str) -> SessionStateResponse:
    controller = _controller(session_id)
    await controller.finish()
    _sessions.pop(session_id, None)
    return _state(controller)
