"""Ordered capture of the signatures required by a set of forms."""

from collections.abc import Callable

from intake.forms.definitions import FormDefinition
from intake.utils.clock import Clock, utcnow
from intake.utils.config import SignatureConfig
from intake.utils.exceptions import SignatureError
from intake.utils.i18n import resolve_locale
from intake.utils.logger import get_logger

from .capture import SignatureArtifact, SignaturePad

logger = get_logger(__name__)


class SignatureSequence:
    """Captures one signature per form, strictly in order.

    Each pad is bound to its form's localized attestation text. Moving back
    is allowed; ``on_complete`` fires once, when the last signature is
    accepted for the first time.

    Args:
        definitions: Forms needing a signature, in capture order.
        language: Language for titles and attestations.
        config: Pad canvas and stroke settings.
        on_complete: Called with all accepted artifacts.
        clock: Wall-clock source for pad metadata.
    """

    def __init__(
        self,
        definitions: list[FormDefinition],
        language: str = "en",
        config: SignatureConfig | None = None,
        on_complete: Callable[[dict[str, SignatureArtifact]], None] | None = None,
        clock: Clock = utcnow,
    ) -> None:
        if not definitions:
            raise SignatureError("A signature sequence needs at least one form")
        self.definitions = definitions
        self.pads = [
            SignaturePad(d.signature_key, config=config, clock=clock)
            for d in definitions
        ]
        self.on_complete = on_complete
        self.index = 0
        self.accepted: dict[str, SignatureArtifact] = {}
        self.completed = False
        self.set_language(language)

    def set_language(self, language: str) -> None:
        """Localize titles and attestations of signatures not yet accepted.

        Captured strokes are kept.
        """
        locale = resolve_locale(language)
        self.titles = [
            locale.text(f"signature.{d.form_type}.title") for d in self.definitions
        ]
        for definition, pad in zip(self.definitions, self.pads):
            if pad.form_key in self.accepted:
                continue
            pad.attestation = locale.text(definition.attestation_key)
            if pad.artifact is not None:
                pad.artifact = pad.artifact.model_copy(
                    update={"attestation": pad.attestation}
                )

    @property
    def current(self) -> SignaturePad:
        return self.pads[self.index]

    @property
    def form_keys(self) -> list[str]:
        return [pad.form_key for pad in self.pads]

    def pad(self, form_key: str) -> SignaturePad:
        for pad in self.pads:
            if pad.form_key == form_key:
                return pad
        raise SignatureError(f"No signature required for {form_key}")

    def accept_current(self) -> SignatureArtifact:
        """Accept the current pad's artifact and move to the next form.

        Raises:
            SignatureError: If the current pad holds no signature.
        """
        artifact = self.current.accept()
        self.accepted[artifact.form_key] = artifact
        logger.info("Accepted signature %s", artifact.form_key)

        if self.index < len(self.pads) - 1:
            self.index += 1
        elif not self.completed and len(self.accepted) == len(self.pads):
            self.completed = True
            if self.on_complete:
                self.on_complete(dict(self.accepted))
        return artifact

    def back(self) -> bool:
        if self.index == 0:
            return False
        self.index -= 1
        return True

    def restore(self, artifacts: dict[str, SignatureArtifact]) -> None:
        """Mark signatures from a resumed session as already accepted.

        Restored artifacts are not re-rendered on the pads; the sequence
        resumes at the first form still lacking a signature.
        """
        self.accepted = {k: v for k, v in artifacts.items() if k in self.form_keys}
        missing = [i for i, key in enumerate(self.form_keys) if key not in self.accepted]
        self.index = missing[0] if missing else len(self.pads) - 1
        self.completed = not missing
