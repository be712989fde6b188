"""Tests for field resolution and document normalization."""

import pytest

from intake.normalization.field_map import field_kind, normalize_key, resolve_fields
from intake.normalization.models import DocumentStatus, DocumentType, RecognitionOutput
from intake.normalization.normalizer import DocumentNormalizer
from intake.utils.config import NormalizationConfig


class TestResolveFields:
    """Tests for alias-based field resolution."""

    def test_key_folding(self) -> None:
        assert normalize_key("First-Name") == "firstname"
        assert normalize_key("first name") == "firstname"

    def test_first_alias_wins(self) -> None:
        resolved = resolve_fields(
            {"given_name": "Ann", "first_name": "Jane"},
            {"given_name": 0.99, "first_name": 0.9},
        )
        assert resolved["firstName"].value == "Jane"
        assert resolved["firstName"].raw_key == "first_name"
        assert resolved["firstName"].confidence == 0.9

    def test_empty_alias_skipped(self) -> None:
        resolved = resolve_fields({"first_name": "  ", "nombre": "Ana"}, {})
        assert resolved["firstName"].value == "Ana"

    def test_missing_confidence_is_zero(self) -> None:
        resolved = resolve_fields({"ssn": "123456789"}, {})
        assert resolved["ssnNumber"].confidence == 0.0

    def test_spanish_aliases(self) -> None:
        resolved = resolve_fields(
            {"apellido": "García", "fecha_nacimiento": "1990-01-15", "codigo_postal": "90210"},
            {},
        )
        assert resolved["lastName"].value == "García"
        assert "dateOfBirth" in resolved
        assert "zipCode" in resolved

    def test_full_name_fills_missing_parts(self) -> None:
        resolved = resolve_fields(
            {"full_name": "john micheal doe", "last_name": "Smith"},
            {"full_name": 0.8, "last_name": 0.9},
        )
        assert resolved["firstName"].value == "john"
        assert resolved["middleName"].value == "micheal"
        assert resolved["lastName"].value == "Smith"
        assert resolved["firstName"].confidence == 0.8

    def test_unknown_keys_ignored(self) -> None:
        assert resolve_fields({"eye_color": "brown"}, {}) == {}

    def test_field_kind_unknown_is_text(self) -> None:
        assert field_kind("favoriteColor") == "text"


class TestDocumentNormalizer:
    """Tests for DocumentNormalizer."""

    def setup_method(self) -> None:
        self.normalizer = DocumentNormalizer()

    def test_full_name_example(self, ssn_output: RecognitionOutput) -> None:
        capture = self.normalizer.normalize(ssn_output, DocumentType.SSN_CARD)
        assert capture.extracted_fields["firstName"] == "John"
        assert capture.extracted_fields["middleName"] == "Micheal"
        assert capture.extracted_fields["lastName"] == "Doe"
        assert capture.extracted_fields["ssnNumber"] == "123-45-6789"
        assert capture.status == DocumentStatus.COMPLETED

    def test_license_coercions(self, license_output: RecognitionOutput) -> None:
        capture = self.normalizer.normalize(license_output, DocumentType.DRIVERS_LICENSE)
        fields = capture.extracted_fields
        assert fields["state"] == "CA"
        assert fields["dateOfBirth"] == "01/15/1990"
        assert fields["zipCode"] == "90210-1234"
        assert fields["licenseNumber"] == "D1234567"
        assert capture.raw_text == "DRIVER LICENSE JOHN DOE"
        assert capture.requires_review is False

    def test_one_low_field_forces_review(self) -> None:
        output = RecognitionOutput(
            fields={"first_name": "A", "last_name": "B", "city": "C"},
            confidences={"first_name": 0.95, "last_name": 0.92, "city": 0.78},
        )
        capture = self.normalizer.normalize(output)
        assert capture.overall_confidence == pytest.approx(0.8833, abs=1e-3)
        assert capture.requires_review is True

    def test_low_mean_forces_review(self) -> None:
        assert self.normalizer.requires_review({"a": 0.82, "b": 0.84}) is True

    def test_empty_document_requires_review(self) -> None:
        capture = self.normalizer.normalize(RecognitionOutput(fields={}))
        assert capture.requires_review is True
        assert capture.overall_confidence == 0.0

    def test_confidences_clamped(self) -> None:
        output = RecognitionOutput(fields={"city": "X"}, confidences={"city": 1.4})
        capture = self.normalizer.normalize(output)
        assert capture.confidence_scores["city"] == 1.0

    def test_normalization_idempotent(self, license_output: RecognitionOutput) -> None:
        first = self.normalizer.normalize(license_output)
        again = self.normalizer.normalize(
            RecognitionOutput(
                fields=dict(first.extracted_fields),
                confidences=dict(first.confidence_scores),
            )
        )
        assert again.extracted_fields == first.extracted_fields

    def test_edit_raises_confidence_and_clears_review(self) -> None:
        output = RecognitionOutput(
            fields={"first_name": "jon", "last_name": "Doe"},
            confidences={"first_name": 0.5, "last_name": 0.95},
        )
        capture = self.normalizer.normalize(output)
        assert capture.requires_review is True

        self.normalizer.edit_field(capture, "firstName", "john")
        assert capture.extracted_fields["firstName"] == "John"
        assert capture.confidence_scores["firstName"] == 0.90
        assert capture.requires_review is False

    def test_edit_keeps_higher_confidence(self, license_output: RecognitionOutput) -> None:
        capture = self.normalizer.normalize(license_output)
        self.normalizer.edit_field(capture, "firstName", "Jon")
        assert capture.confidence_scores["firstName"] == 0.97

    def test_suggestions_capped(self, license_output: RecognitionOutput) -> None:
        normalizer = DocumentNormalizer(NormalizationConfig(max_suggestions=1))
        capture = normalizer.normalize(license_output)
        assert all(len(s) <= 1 for s in capture.suggestions.values())
        assert "dateOfBirth" in capture.suggestions
        assert "address" not in capture.suggestions

    def test_recognition_output_from_nested_payload(self) -> None:
        output = RecognitionOutput.from_dict(
            {
                "fields": {"ssn": {"value": "123456789", "confidence": 0.88}},
                "rawText": "SOCIAL SECURITY",
            }
        )
        assert output.fields == {"ssn": "123456789"}
        assert output.confidences == {"ssn": 0.88}
        assert output.raw_text == "SOCIAL SECURITY"

    @pytest.mark.parametrize(
        "payload",
        [
            [{"first_name": "john"}],
            {"fields": ["first_name", "john"]},
            {"fields": {"city": "Austin"}, "confidences": [0.9]},
            {"fields": {"city": {"value": "Austin", "confidence": "high"}}},
        ],
    )
    def test_recognition_output_rejects_bad_shape(self, payload) -> None:
        with pytest.raises(ValueError):
            RecognitionOutput.from_dict(payload)
