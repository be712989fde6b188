"""Session controller for the onboarding wizard.

Owns the :class:`OnboardingSession`, enforces step navigation rules,
activates each step's components, persists snapshots and tracks
inactivity. All mutations go through this class; the autosave and
inactivity timers are the only background work.
"""

from collections.abc import Callable
from enum import StrEnum
from pathlib import Path
from typing import Any

from intake.documents.collector import DocumentCollector
from intake.forms.definitions import FormDefinition, load_definitions
from intake.forms.engine import FormEngine, FormRecord, FormStatus
from intake.normalization.models import DocumentCapture, DocumentType
from intake.normalization.normalizer import DocumentNormalizer
from intake.services.backend import PersistenceBackend
from intake.services.recognition import RecognitionService
from intake.signature.capture import SignatureArtifact
from intake.signature.sequence import SignatureSequence
from intake.submission.coordinator import (
    Confirmation,
    SubmissionCoordinator,
    SubmissionReceipt,
)
from intake.utils.clock import Clock, utcnow
from intake.utils.config import AppConfig
from intake.utils.exceptions import (
    NavigationError,
    SessionBlockedError,
    SnapshotError,
    SubmissionError,
)
from intake.utils.i18n import normalize_language, resolve_locale
from intake.utils.logger import get_session_logger

from .inactivity import InactivityMonitor, InactivityStatus
from .models import (
    STEP_ORDER,
    TERMINAL_INDEX,
    AccessibilityFeature,
    OnboardingSession,
    SessionSnapshot,
    Step,
)
from .scheduler import PeriodicTask
from .storage import SnapshotStore, decode_snapshot, encode_snapshot

REQUIRED_FORMS: tuple[str, ...] = ("i9", "w4")

_EMPLOYEE_AUTOFILL = ("firstName", "lastName", "email", "phone")


class Modal(StrEnum):
    RESUME_PROMPT = "resume_prompt"
    TIMED_OUT = "timed_out"


StepChangeCallback = Callable[[int, dict[str, Any]], None]
CompleteCallback = Callable[[OnboardingSession], None]


class SessionController:
    """Drives one onboarding attempt from language selection to completion.

    Args:
        recognizer: Document recognition service.
        backend: Persistence backend for access codes and submission.
        store: Durable snapshot storage.
        config: Application configuration.
        definitions: Form definitions keyed by form type.
        clock: Wall-clock source for activity, expiry and timestamps.
        on_step_change: Called with ``(step_index, partial_state)`` after
            every state update.
        on_complete: Called with the final session after ``finish()``.
    """

    def __init__(
        self,
        recognizer: RecognitionService,
        backend: PersistenceBackend,
        store: SnapshotStore,
        config: AppConfig | None = None,
        definitions: dict[str, FormDefinition] | None = None,
        clock: Clock = utcnow,
        on_step_change: StepChangeCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> None:
        self.recognizer = recognizer
        self.backend = backend
        self.store = store
        self.config = config or AppConfig()
        self.definitions = definitions or load_definitions(
            Path(self.config.forms.definitions_path)
        )
        self.clock = clock
        self.on_step_change = on_step_change
        self.on_complete = on_complete

        self.modal: Modal | None = None
        self.message: str | None = None
        self.finished = False
        self._pending: SessionSnapshot | None = None
        self._tasks: list[PeriodicTask] = []
        self.session = OnboardingSession(last_activity=clock(), created_at=clock())
        self._attach()

    @property
    def log(self):
        return get_session_logger(__name__, self.session.id)

    @property
    def storage_key(self) -> str:
        return self.config.session.storage_key

    @property
    def current_step(self) -> Step:
        return self.session.current_step

    def _attach(self) -> None:
        """(Re)build step components around the current session."""
        language = self.session.language
        previous = getattr(self, "collector", None)
        self.collector = DocumentCollector(
            self.recognizer,
            DocumentNormalizer(self.config.normalization),
            self.config.documents,
            language,
            self.clock,
        )
        self.collector.restore(
            self.session.documents, previous.contents if previous else None
        )
        self.session.documents = self.collector.documents
        self.engines = {
            form_type: FormEngine(self.definitions[form_type], language, self.clock)
            for form_type in REQUIRED_FORMS
        }
        self.coordinator = SubmissionCoordinator(
            self.backend,
            self.session.submission,
            list(REQUIRED_FORMS),
            language,
            self.clock,
        )
        self.monitor = InactivityMonitor(
            self.config.session.warning_after,
            self.config.session.timeout_after,
            self.clock,
            self.session.last_activity,
        )
        self.sequence: SignatureSequence | None = None
        if self.session.current_step_index >= STEP_ORDER.index(Step.SIGNATURE):
            self._build_sequence()

    def _apply_language(self) -> None:
        """Switch the live step components to the session language in place."""
        language = self.session.language
        self.collector.language = language
        for engine in self.engines.values():
            engine.set_language(language)
        self.coordinator.language = language
        if self.sequence is not None:
            self.sequence.set_language(language)

    # -- state notifications -------------------------------------------------

    def partial_state(self) -> dict[str, Any]:
        return {
            "session_id": self.session.id,
            "current_step": self.current_step.value,
            "completed_steps": sorted(self.session.completed_steps),
            "language": self.session.language,
            "modal": self.modal.value if self.modal else None,
            "message": self.message,
        }

    def _notify(self) -> None:
        if self.on_step_change:
            self.on_step_change(self.session.current_step_index, self.partial_state())

    def _guard(self, channel: str = "api") -> None:
        if self.modal is not None:
            raise SessionBlockedError(f"Session is showing the {self.modal} dialog")
        self.touch(channel)

    def touch(self, channel: str = "api") -> None:
        """Record an interaction from any input channel."""
        if self.modal is not None:
            return
        if self.monitor.warning_shown:
            self.message = None
        self.session.last_activity = self.monitor.record_activity(channel)

    # -- mount, resume and restart ------------------------------------------

    def mount(self) -> Modal | None:
        """Look for a saved session before the first step is shown.

        Returns:
            ``Modal.RESUME_PROMPT`` when a fresh snapshot exists.
        """
        try:
            raw = self.store.get(self.storage_key)
        except SnapshotError as exc:
            self.log.warning("Snapshot storage unavailable: %s", exc)
            return None
        if raw is None:
            return None

        try:
            snapshot = decode_snapshot(raw)
        except SnapshotError as exc:
            self.log.warning("Discarding unreadable snapshot: %s", exc)
            self._clear_snapshot()
            return None

        age = (self.clock() - snapshot.session.last_activity).total_seconds()
        if age >= self.config.session.snapshot_expiry:
            self.log.info("Discarding snapshot %s, %.0fs old", snapshot.session.id, age)
            self._clear_snapshot()
            return None

        self._pending = snapshot
        self.modal = Modal.RESUME_PROMPT
        self._notify()
        return self.modal

    def resume(self) -> OnboardingSession:
        """Continue the saved session offered by ``mount()``."""
        if self.modal != Modal.RESUME_PROMPT or self._pending is None:
            raise NavigationError("No saved session to resume")
        self.session = self._pending.session
        self.session.last_activity = self.clock()
        self._pending = None
        self.modal = None
        self._attach()
        self.message = resolve_locale(self.session.language).text("session.resumed")
        self.log.info("Resumed session at step %s", self.current_step)
        self._notify()
        return self.session

    def restart(self) -> OnboardingSession:
        """Drop any saved session and start over."""
        if self.modal == Modal.TIMED_OUT:
            raise SessionBlockedError("Acknowledge the timeout notice first")
        self._clear_snapshot()
        self._pending = None
        self.modal = None
        self._reset_session()
        self.message = resolve_locale(self.session.language).text("session.new")
        self._notify()
        return self.session

    def acknowledge_timeout(self) -> None:
        if self.modal != Modal.TIMED_OUT:
            return
        self.modal = None
        self.message = None
        self.touch("acknowledge")
        self._notify()

    def _reset_session(self, language: str = "en") -> None:
        now = self.clock()
        self.session = OnboardingSession(
            language=language, created_at=now, last_activity=now
        )
        self._attach()
        self.log.info("Started new session")

    # -- language, access code, accessibility --------------------------------

    def select_language(self, language: str) -> str:
        self._guard()
        self.session.language = normalize_language(language)
        self._apply_language()
        self.log.info("Language set to %s", self.session.language)
        if self.current_step == Step.LANGUAGE:
            self.next_step()
        else:
            self._notify()
        return self.session.language

    async def submit_access_code(self, code: str) -> bool:
        """Validate an access code and advance on success.

        On failure a localized message is stored in ``message`` and the
        wizard stays on the current step.

        Raises:
            BackendError: If the backend could not be reached.
        """
        self._guard("key")
        t = resolve_locale(self.session.language)
        code = code.strip()
        length = self.config.session.access_code_length
        if len(code) != length:
            self.message = t.text("access_code.length", length=length)
            self._notify()
            return False

        result = await self.backend.validate_access_code(code)
        if not result.valid:
            self.log.info("Access code rejected")
            self.message = t.text("access_code.invalid")
            self._notify()
            return False

        self.session.access_code = code
        self.session.access_code_validated = True
        self.session.employee = result.employee
        self.message = None
        self.log.info("Access code accepted for employee %s", self.session.employee_id)
        if self.current_step == Step.ACCESS_CODE:
            self.next_step()
        else:
            self._notify()
        return True

    def toggle_accessibility(self, feature: AccessibilityFeature | str) -> bool:
        self._guard()
        name = AccessibilityFeature(feature).value
        prefs = self.session.accessibility
        setattr(prefs, name, not getattr(prefs, name))
        self._notify()
        return getattr(prefs, name)

    # -- navigation ------------------------------------------------------------

    def exit_blocker(self) -> str | None:
        """Localized reason the current step cannot be left, if any."""
        t = resolve_locale(self.session.language)
        step = self.current_step
        if step == Step.ACCESS_CODE and not self.session.access_code_validated:
            return t.text("access_code.invalid")
        if step == Step.DOCUMENTS and self.collector.pending:
            return t.text("documents.pending")
        if step == Step.FORMS and not self.forms_completed:
            return t.text("forms.incomplete")
        if step == Step.SIGNATURE and (self.sequence is None or not self.sequence.completed):
            return t.text("signature.pending")
        return None

    @property
    def forms_completed(self) -> bool:
        forms = self.session.forms
        return all(
            form_type in forms and forms[form_type].status != FormStatus.DRAFT
            for form_type in REQUIRED_FORMS
        )

    def next_step(self) -> int:
        """Complete the current step and advance by one.

        Raises:
            NavigationError: If the current step's exit condition is unmet.
        """
        self._guard()
        index = self.session.current_step_index
        if index >= TERMINAL_INDEX:
            return index
        blocker = self.exit_blocker()
        if blocker:
            raise NavigationError(blocker)
        self.session.completed_steps.add(index)
        self._enter(index + 1)
        return self.session.current_step_index

    def previous_step(self) -> int:
        self._guard()
        index = self.session.current_step_index
        if index > 0:
            self.session.current_step_index = index - 1
            self._notify()
        return self.session.current_step_index

    def go_to_step(self, index: int) -> bool:
        """Jump to a step the employee has already reached.

        The immediate next step is reachable only through the same exit
        check as ``next_step()``.
        """
        self._guard()
        current = self.session.current_step_index
        if not 0 <= index <= TERMINAL_INDEX:
            return False
        if index == current + 1 and index not in self.session.completed_steps:
            try:
                self.next_step()
            except NavigationError as exc:
                self.log.info("Jump to step %d refused: %s", index, exc)
                return False
            return True
        if index <= current or index in self.session.completed_steps:
            if index != current:
                self._enter(index)
            return True
        return False

    def _enter(self, index: int) -> None:
        self.session.current_step_index = index
        step = STEP_ORDER[index]
        if step == Step.FORMS:
            self._activate_forms()
        elif step == Step.SIGNATURE:
            self._build_sequence()
        elif step == Step.COMPLETE:
            self.coordinator.prepare()
        self.log.info("Entered step %s", step)
        self._notify()

    def _autofill_source(self) -> dict[str, str]:
        source = {
            key: str(value)
            for key, value in (self.session.employee or {}).items()
            if key in _EMPLOYEE_AUTOFILL and value
        }
        source.update(self.collector.merged_fields())
        return source

    def _activate_forms(self) -> None:
        source = self._autofill_source()
        for form_type, engine in self.engines.items():
            record = self.session.forms.get(form_type)
            if record is None:
                record = engine.create_record(self.session.employee_id)
                self.session.forms[form_type] = record
            engine.activate(record, source)

    def _build_sequence(self) -> None:
        if self.sequence is not None and not self.sequence.completed:
            return
        self.sequence = SignatureSequence(
            [self.definitions[form_type] for form_type in REQUIRED_FORMS],
            language=self.session.language,
            config=self.config.signature,
            on_complete=self._signatures_complete,
            clock=self.clock,
        )
        self.sequence.restore(self.session.signatures)

    def _signatures_complete(self, artifacts: dict[str, SignatureArtifact]) -> None:
        self.session.signatures.update(artifacts)
        self.log.info("All %d signatures captured", len(artifacts))

    # -- documents ---------------------------------------------------------------

    def add_document(
        self,
        filename: str,
        content: bytes,
        content_type: str,
        document_type: DocumentType | str,
    ) -> DocumentCapture:
        self._guard("pointer")
        capture = self.collector.add_document(filename, content, content_type, document_type)
        self._notify()
        return capture

    async def process_documents(self) -> list[DocumentCapture]:
        self._guard()
        processed = await self.collector.process_all()
        self._notify()
        return processed

    async def retry_document(self, document_id: str) -> DocumentCapture:
        self._guard()
        capture = await self.collector.retry(document_id)
        self._notify()
        return capture

    def edit_document_field(self, document_id: str, name: str, value: str) -> DocumentCapture:
        self._guard("key")
        capture = self.collector.edit_field(document_id, name, value)
        self._notify()
        return capture

    def remove_document(self, document_id: str) -> None:
        self._guard("pointer")
        self.collector.remove(document_id)
        self._notify()

    # -- forms -------------------------------------------------------------------

    def form(self, form_type: str) -> FormRecord:
        record = self.session.forms.get(form_type)
        if record is None:
            raise NavigationError(f"Form {form_type} has not been opened yet")
        return record

    def set_form_field(self, form_type: str, name: str, value: Any) -> FormRecord:
        self._guard("key")
        record = self.form(form_type)
        self.engines[form_type].set_field(record, name, value)
        self._notify()
        return record

    def complete_form(self, form_type: str) -> FormRecord:
        self._guard()
        record = self.form(form_type)
        self.engines[form_type].complete(record)
        self._notify()
        return record

    # -- signatures --------------------------------------------------------------

    def _signature_sequence(self) -> SignatureSequence:
        if self.current_step != Step.SIGNATURE or self.sequence is None:
            raise NavigationError("Signatures are captured on the signature step")
        return self.sequence

    def signature_begin(self, x: float, y: float, pressure: float | None = None) -> None:
        self._guard("pointer")
        self._signature_sequence().current.begin(x, y, pressure)

    def signature_extend(self, x: float, y: float, pressure: float | None = None) -> bool:
        self._guard("pointer")
        return self._signature_sequence().current.extend(x, y, pressure)

    def signature_release(self) -> SignatureArtifact | None:
        self._guard("pointer")
        return self._signature_sequence().current.release()

    def clear_signature(self) -> None:
        self._guard("pointer")
        self._signature_sequence().current.clear()

    def accept_signature(self) -> SignatureArtifact:
        self._guard()
        artifact = self._signature_sequence().accept_current()
        self.session.signatures[artifact.form_key] = artifact
        self._notify()
        return artifact

    def signature_back(self) -> bool:
        self._guard()
        return self._signature_sequence().back()

    # -- submission and completion -------------------------------------------------

    def _require_complete_step(self) -> None:
        if self.current_step != Step.COMPLETE:
            raise NavigationError("Submission happens on the complete step")

    def set_confirmation(self, flag: Confirmation | str, value: bool) -> bool:
        self._guard("pointer")
        self._require_complete_step()
        self.coordinator.set_confirmation(flag, value)
        self._notify()
        return self.coordinator.can_submit

    def status_table(self) -> dict[str, dict[str, str]]:
        return self.coordinator.status_table(self.session.forms, self.session.signatures)

    async def submit(self) -> SubmissionReceipt:
        self._guard()
        self._require_complete_step()
        try:
            receipt = await self.coordinator.submit(
                self.session.id, self.session.forms, self.session.signatures
            )
        except SubmissionError as exc:
            self.message = str(exc)
            self._notify()
            raise
        self.message = receipt.message
        self._notify()
        return receipt

    async def finish(self) -> OnboardingSession:
        """Finalize a submitted session and stop background work.

        Raises:
            SubmissionError: If the package has not been submitted yet.
            BackendError: If the backend completion call fails.
        """
        self._guard()
        if self.session.submission.receipt is None:
            raise SubmissionError(
                resolve_locale(self.session.language).text("submission.not_ready")
            )
        await self.backend.complete_session(self.session.id)
        self._clear_snapshot()
        await self.aclose()
        self.finished = True
        self.log.info("Onboarding complete")
        if self.on_complete:
            self.on_complete(self.session)
        return self.session

    # -- persistence and inactivity -----------------------------------------------

    def save_snapshot(self) -> bool:
        """Write the session to durable storage; failures are only logged."""
        if self.finished or self.modal is not None:
            return False
        try:
            self.store.set(self.storage_key, encode_snapshot(self.session, self.clock()))
        except SnapshotError as exc:
            self.log.warning("Snapshot not saved: %s", exc)
            return False
        return True

    def _clear_snapshot(self) -> None:
        try:
            self.store.clear(self.storage_key)
        except SnapshotError as exc:
            self.log.warning("Snapshot not cleared: %s", exc)

    def extend_session(self) -> None:
        self._guard("extend")
        self.message = resolve_locale(self.session.language).text("session.extended")
        self._notify()

    def check_inactivity(self) -> InactivityStatus:
        """Compare elapsed inactivity with the warning and timeout windows."""
        if self.modal is not None or self.finished:
            return InactivityStatus.ACTIVE
        was_warned = self.monitor.warning_shown
        status = self.monitor.check()
        if status == InactivityStatus.TIMED_OUT:
            self._time_out()
        elif status == InactivityStatus.WARNING and not was_warned:
            self.message = resolve_locale(self.session.language).text("session.warning")
            self.log.info("Inactivity warning after %.0fs", self.monitor.elapsed())
            self._notify()
        return status

    def _time_out(self) -> None:
        language = self.session.language
        self.log.warning(
            "Session timed out after %.0fs at step %s; discarding state",
            self.monitor.elapsed(),
            self.current_step,
        )
        self._clear_snapshot()
        self._reset_session(language)
        self.modal = Modal.TIMED_OUT
        self.message = resolve_locale(language).text("session.timeout")
        self._notify()

    async def _autosave(self) -> None:
        self.save_snapshot()

    async def _poll_inactivity(self) -> None:
        self.check_inactivity()

    def start(self) -> None:
        """Start the autosave and inactivity timers."""
        if self._tasks:
            return
        if self.config.session.autosave_enabled:
            self._tasks.append(
                PeriodicTask("autosave", self.config.session.autosave_interval, self._autosave)
            )
        self._tasks.append(
            PeriodicTask(
                "inactivity", self.config.session.poll_interval, self._poll_inactivity
            )
        )
        for task in self._tasks:
            task.start()

    async def aclose(self) -> None:
        """Cancel the background timers."""
        for task in self._tasks:
            await task.stop()
        self._tasks = []
