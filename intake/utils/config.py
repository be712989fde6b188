"""Configuration management for the onboarding intake pipeline.

Loads and validates YAML configuration with sensible defaults for the
session controller, document normalization, forms, signature capture,
and the external recognition and persistence services.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class SessionConfig(BaseModel):
    """Timing and storage settings for the session controller.

    All durations are in seconds.
    """

    autosave_interval: float = 15.0
    warning_after: float = 25 * 60
    timeout_after: float = 30 * 60
    snapshot_expiry: float = 24 * 60 * 60
    poll_interval: float = 60.0
    storage_key: str = "onboarding_session"
    access_code_length: int = 6
    autosave_enabled: bool = True


class StorageConfig(BaseModel):
    """Configuration for durable local snapshot storage."""

    snapshot_dir: str = ".onboarding/snapshots"


class NormalizationConfig(BaseModel):
    """Confidence thresholds for recognized document fields."""

    review_mean_threshold: float = 0.85
    review_field_threshold: float = 0.80
    edited_confidence_floor: float = 0.90
    max_suggestions: int = 3


class DocumentsConfig(BaseModel):
    """Upload limits for identity documents."""

    max_documents: int = 5
    max_file_size: int = 10 * 1024 * 1024
    allowed_types: list[str] = Field(
        default_factory=lambda: [
            "drivers_license",
            "ssn_card",
            "passport",
            "birth_certificate",
            "other",
        ]
    )


class FormsConfig(BaseModel):
    """Configuration for the structured form definitions."""

    definitions_path: str = "configs/forms.yaml"


class SignatureConfig(BaseModel):
    """Canvas and stroke settings for signature capture."""

    canvas_width: int = 600
    canvas_height: int = 200
    base_stroke_width: float = 2.0
    default_pressure: float = 0.5


class ServicesConfig(BaseModel):
    """Endpoints and retry policy for external collaborators."""

    recognition_url: str = "http://localhost:8100/recognize"
    backend_url: str = "http://localhost:8200/api/onboarding"
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 1.0
    backoff_multiplier: float = 2.0


class AppConfig(BaseModel):
    """Top-level application configuration."""

    session: SessionConfig = Field(default_factory=SessionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    documents: DocumentsConfig = Field(default_factory=DocumentsConfig)
    forms: FormsConfig = Field(default_factory=FormsConfig)
    signature: SignatureConfig = Field(default_factory=SignatureConfig)
    services: ServicesConfig = Field(default_factory=ServicesConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
