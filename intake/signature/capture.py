"""Signature pad state machine and raster encoding.

A pad moves ``empty -> capturing -> captured`` as strokes are drawn and
back to ``empty`` when cleared. Points keep the raw pressure samples; the
rendered stroke width scales with pressure but the metadata does not.
"""

import base64
import io
from datetime import datetime
from enum import StrEnum

from PIL import Image, ImageDraw
from pydantic import BaseModel, Field

from intake.utils.clock import Clock, utcnow
from intake.utils.config import SignatureConfig
from intake.utils.exceptions import SignatureError
from intake.utils.logger import get_logger

logger = get_logger(__name__)

DATA_URL_PREFIX = "data:image/png;base64,"


class PadState(StrEnum):
    EMPTY = "empty"
    CAPTURING = "capturing"
    CAPTURED = "captured"


class Point(BaseModel):
    x: float
    y: float
    pressure: float


class SignatureMetadata(BaseModel):
    """Facts recorded about how a signature was drawn."""

    timestamp: datetime
    duration: float = 0.0
    point_count: int = 0
    pressure_samples: list[float] = Field(default_factory=list)

    @property
    def average_pressure(self) -> float:
        if not self.pressure_samples:
            return 0.0
        return sum(self.pressure_samples) / len(self.pressure_samples)

    def is_pressure_sensitive(self, default_pressure: float = 0.5) -> bool:
        """True when the device reported at least one real pressure sample."""
        return any(sample != default_pressure for sample in self.pressure_samples)


class SignatureArtifact(BaseModel):
    """An accepted-ready signature bound to one form."""

    form_key: str
    image: str
    attestation: str = ""
    metadata: SignatureMetadata


class SignaturePad:
    """Collects strokes for one signature and renders them.

    Args:
        form_key: Key of the form this signature belongs to.
        attestation: Text the employee is attesting to.
        config: Canvas size and stroke settings.
        clock: Wall-clock source for the metadata.
    """

    def __init__(
        self,
        form_key: str,
        attestation: str = "",
        config: SignatureConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.form_key = form_key
        self.attestation = attestation
        self.config = config or SignatureConfig()
        self.clock = clock
        self.state = PadState.EMPTY
        self.strokes: list[list[Point]] = []
        self.started_at: datetime | None = None
        self.artifact: SignatureArtifact | None = None

    @property
    def point_count(self) -> int:
        return sum(len(stroke) for stroke in self.strokes)

    @property
    def is_empty(self) -> bool:
        return self.point_count == 0

    @property
    def can_continue(self) -> bool:
        """Whether the accept action is enabled."""
        return self.state == PadState.CAPTURED and self.artifact is not None

    def _pressure(self, pressure: float | None) -> float:
        if pressure is None or pressure <= 0:
            return self.config.default_pressure
        return min(float(pressure), 1.0)

    def begin(self, x: float, y: float, pressure: float | None = None) -> None:
        """Start a stroke on first contact.

        Contact on an already captured pad adds a stroke to the same
        signature and keeps the original first-contact time.
        """
        if self.state == PadState.CAPTURING:
            self.extend(x, y, pressure)
            return
        if self.started_at is None:
            self.started_at = self.clock()
        self.state = PadState.CAPTURING
        self.strokes.append([Point(x=x, y=y, pressure=self._pressure(pressure))])

    def extend(self, x: float, y: float, pressure: float | None = None) -> bool:
        """Add a point to the current stroke; ignored when not capturing."""
        if self.state != PadState.CAPTURING:
            return False
        self.strokes[-1].append(Point(x=x, y=y, pressure=self._pressure(pressure)))
        return True

    def release(self) -> SignatureArtifact | None:
        """End the current stroke and refresh the artifact.

        Returns:
            The updated artifact, or None when the pad was not capturing
            or holds no points.
        """
        if self.state != PadState.CAPTURING:
            return None
        if self.is_empty or self.started_at is None:
            self.clear()
            return None

        self.state = PadState.CAPTURED
        samples = [point.pressure for stroke in self.strokes for point in stroke]
        metadata = SignatureMetadata(
            timestamp=self.started_at,
            duration=(self.clock() - self.started_at).total_seconds(),
            point_count=len(samples),
            pressure_samples=samples,
        )
        self.artifact = SignatureArtifact(
            form_key=self.form_key,
            image=self.render(),
            attestation=self.attestation,
            metadata=metadata,
        )
        logger.debug(
            "Captured %d points for %s in %.2fs",
            metadata.point_count,
            self.form_key,
            metadata.duration,
        )
        return self.artifact

    def clear(self) -> None:
        self.state = PadState.EMPTY
        self.strokes = []
        self.started_at = None
        self.artifact = None

    def accept(self) -> SignatureArtifact:
        """Return the finished artifact.

        Raises:
            SignatureError: If nothing has been captured yet.
        """
        if not self.can_continue or self.artifact is None:
            raise SignatureError(f"No signature captured for {self.form_key}")
        return self.artifact

    def stroke_width(self, pressure: float) -> float:
        """Rendered width: 1x to 4x the base width, by pressure."""
        return max(1.0, pressure * 4) * self.config.base_stroke_width

    def render(self) -> str:
        """Draw the strokes and encode them as a PNG data URL."""
        image = Image.new(
            "RGBA", (self.config.canvas_width, self.config.canvas_height), (0, 0, 0, 0)
        )
        draw = ImageDraw.Draw(image)
        ink = (0, 0, 0, 255)

        for stroke in self.strokes:
            first = stroke[0]
            radius = self.stroke_width(first.pressure) / 2
            draw.ellipse(
                (first.x - radius, first.y - radius, first.x + radius, first.y + radius),
                fill=ink,
            )
            for prev, point in zip(stroke, stroke[1:]):
                width = max(1, round(self.stroke_width(point.pressure)))
                draw.line((prev.x, prev.y, point.x, point.y), fill=ink, width=width)

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return DATA_URL_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")


def decode_image(data_url: str) -> Image.Image:
    """Decode a signature data URL back into a Pillow image."""
    if not data_url.startswith(DATA_URL_PREFIX):
        raise SignatureError("Signature image is not a PNG data URL")
    raw = base64.b64decode(data_url[len(DATA_URL_PREFIX):])
    return Image.open(io.BytesIO(raw))
