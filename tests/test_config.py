"""Tests for configuration loading and validation."""

from pathlib import Path

import yaml

from intake.utils.config import (
    AppConfig,
    DocumentsConfig,
    NormalizationConfig,
    ServicesConfig,
    SessionConfig,
    load_config,
)


class TestSessionConfig:
    """Tests for SessionConfig defaults and overrides."""

    def test_defaults(self) -> None:
        cfg = SessionConfig()
        assert cfg.autosave_interval == 15.0
        assert cfg.warning_after == 25 * 60
        assert cfg.timeout_after == 30 * 60
        assert cfg.snapshot_expiry == 24 * 60 * 60
        assert cfg.storage_key == "onboarding_session"
        assert cfg.access_code_length == 6

    def test_override(self) -> None:
        cfg = SessionConfig(timeout_after=60, poll_interval=5)
        assert cfg.timeout_after == 60
        assert cfg.poll_interval == 5


class TestNormalizationConfig:
    def test_thresholds(self) -> None:
        cfg = NormalizationConfig()
        assert cfg.review_mean_threshold == 0.85
        assert cfg.review_field_threshold == 0.80
        assert cfg.edited_confidence_floor == 0.90
        assert cfg.max_suggestions == 3


class TestDocumentsConfig:
    def test_limits(self) -> None:
        cfg = DocumentsConfig()
        assert cfg.max_documents == 5
        assert cfg.max_file_size == 10 * 1024 * 1024
        assert "passport" in cfg.allowed_types


class TestServicesConfig:
    def test_retry_policy(self) -> None:
        cfg = ServicesConfig()
        assert cfg.max_retries == 3
        assert cfg.backoff_multiplier == 2.0


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        cfg = load_config(tmp_path / "nope.yaml")
        assert isinstance(cfg, AppConfig)
        assert cfg.log_level == "INFO"

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.dump(
                {
                    "log_level": "DEBUG",
                    "session": {"warning_after": 10, "timeout_after": 20},
                    "documents": {"max_documents": 2},
                }
            )
        )
        cfg = load_config(path)
        assert cfg.log_level == "DEBUG"
        assert cfg.session.warning_after == 10
        assert cfg.session.timeout_after == 20
        assert cfg.documents.max_documents == 2
        assert cfg.session.storage_key == "onboarding_session"

    def test_empty_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")
        cfg = load_config(path)
        assert cfg.session.autosave_interval == 15.0

    def test_shipped_config_matches_defaults(self, config_dir: Path) -> None:
        cfg = load_config(config_dir / "config.yaml")
        assert cfg.session == SessionConfig()
        assert cfg.normalization == NormalizationConfig()
