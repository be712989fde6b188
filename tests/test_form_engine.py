"""Tests for form definitions, the withholding estimate and the form engine."""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from intake.forms.definitions import default_definitions, load_definitions
from intake.forms.engine import FormEngine, FormStatus
from intake.forms.withholding import estimate_withholding
from intake.utils.exceptions import (
    ConfigurationError,
    FormIncompleteError,
    FormLockedError,
)


class TestWithholdingEstimate:
    """Tests for the advisory W-4 estimate."""

    def test_dependent_amount(self) -> None:
        estimate = estimate_withholding({"qualifyingChildren": "2", "otherDependents": 1})
        assert estimate.dependent_amount == Decimal("4500")
        assert estimate.estimated_withholding == Decimal("0")

    def test_adjustments(self) -> None:
        estimate = estimate_withholding(
            {
                "otherIncome": "10,000",
                "deductions": "2000",
                "extraWithholding": "500",
                "qualifyingChildren": "1",
            }
        )
        assert estimate.adjustments == Decimal("8500")
        assert estimate.estimated_withholding == Decimal("6500")

    def test_garbage_counts_as_zero(self) -> None:
        estimate = estimate_withholding({"qualifyingChildren": "two", "otherIncome": ""})
        assert estimate.dependent_amount == 0
        assert estimate.to_dict()["estimated_withholding"] == 0.0


class TestDefinitions:
    def test_default_forms(self) -> None:
        definitions = default_definitions()
        assert set(definitions) == {"i9", "w4"}
        assert definitions["i9"].signature_key == "i9_signature"
        assert definitions["w4"].estimator is not None

    def test_conditional_fields(self) -> None:
        i9 = default_definitions()["i9"]
        citizen = [s.name for s in i9.required_fields({"citizenshipStatus": "us_citizen"})]
        resident = [
            s.name
            for s in i9.required_fields({"citizenshipStatus": "lawful_permanent_resident"})
        ]
        alien = [s.name for s in i9.required_fields({"citizenshipStatus": "alien_authorized"})]
        assert "alienNumber" not in citizen
        assert "alienNumber" in resident
        assert "workAuthorizationExpiration" not in resident
        assert "workAuthorizationExpiration" in alien

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        assert set(load_definitions(tmp_path / "none.yaml")) == {"i9", "w4"}

    def test_yaml_override(self, tmp_path: Path) -> None:
        path = tmp_path / "forms.yaml"
        path.write_text(
            yaml.dump(
                {"w4": {"fields": [{"name": "firstName", "required": True}]}}
            )
        )
        definitions = load_definitions(path)
        assert [s.name for s in definitions["w4"].fields] == ["firstName"]
        assert definitions["w4"].estimator is not None
        assert len(definitions["i9"].fields) > 1

    def test_example_file_loads(self, config_dir: Path) -> None:
        definitions = load_definitions(config_dir / "forms.example.yaml")
        assert definitions["w4"].spec("ssnNumber").formats_identifier

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "forms.yaml"
        path.write_text(yaml.dump({"w4": {"fields": [{"required": True}]}}))
        with pytest.raises(ConfigurationError):
            load_definitions(path)


class TestFormEngine:
    """Tests for FormEngine."""

    def setup_method(self) -> None:
        definitions = default_definitions()
        self.i9 = FormEngine(definitions["i9"])
        self.w4 = FormEngine(definitions["w4"])

    def test_new_record(self) -> None:
        record = self.i9.create_record("emp-1")
        assert record.form_id.startswith("i9-emp-1-")
        assert record.status == FormStatus.DRAFT
        assert record.validation.is_valid is False
        assert record.validation.errors == {}
        assert record.validation.completion_percentage == 0.0

    def test_autofill_once_into_empty_fields(self) -> None:
        record = self.i9.create_record()
        record.values["lastName"] = "Typed"
        filled = self.i9.activate(
            record,
            {"firstName": "John", "lastName": "Doe", "middleName": "Micheal", "city": "Austin"},
        )
        assert set(filled) == {"firstName", "middleInitial", "city"}
        assert record.values["lastName"] == "Typed"
        assert record.values["middleInitial"] == "M"
        assert record.autofill_applied is True

        assert self.i9.activate(record, {"address": "1 Late St"}) == []
        assert "address" not in record.values

    def test_manual_edit_survives_later_activation(self) -> None:
        record = self.w4.create_record()
        self.w4.activate(record, {})
        self.w4.set_field(record, "firstName", "Jane")
        self.w4.activate(record, {"firstName": "John"})
        assert record.values["firstName"] == "Jane"

    def test_inline_errors(self) -> None:
        record = self.i9.create_record()
        self.i9.set_field(record, "zipCode", "123")
        self.i9.set_field(record, "firstName", "")
        assert record.validation.error_rules == {
            "zipCode": "postal_code",
            "firstName": "required",
        }
        assert "lastName" not in record.validation.errors

    def test_identifier_progressive_format(self) -> None:
        record = self.i9.create_record()
        self.i9.set_field(record, "ssnNumber", "123456")
        assert record.values["ssnNumber"] == "123-45-6"
        assert record.validation.error_rules["ssnNumber"] == "identifier"
        self.i9.set_field(record, "ssnNumber", "123456789")
        assert record.values["ssnNumber"] == "123-45-6789"
        assert "ssnNumber" not in record.validation.errors

    def test_completion_percentage(self, i9_values: dict) -> None:
        record = self.i9.create_record()
        self.i9.set_fields(record, {"firstName": "John", "lastName": "Doe", "city": "X"})
        assert record.validation.completion_percentage == round(3 / 9 * 100, 1)
        self.i9.set_fields(record, i9_values)
        assert record.validation.completion_percentage == 100.0
        assert record.validation.is_valid is True

    def test_conditional_field_required_when_active(self, i9_values: dict) -> None:
        record = self.i9.create_record()
        self.i9.set_fields(record, {**i9_values, "citizenshipStatus": "alien_authorized"})
        assert record.validation.is_valid is False
        assert set(record.validation.missing_required) == {
            "alienNumber",
            "workAuthorizationExpiration",
        }

    def test_conditional_errors_dropped(self, i9_values: dict) -> None:
        record = self.i9.create_record()
        self.i9.set_fields(
            record,
            {**i9_values, "citizenshipStatus": "lawful_permanent_resident", "alienNumber": "x"},
        )
        assert "alienNumber" in record.validation.errors
        self.i9.set_field(record, "citizenshipStatus", "us_citizen")
        assert "alienNumber" not in record.validation.errors
        assert record.validation.is_valid is True

    def test_estimate_recomputed(self, w4_values: dict) -> None:
        record = self.w4.create_record()
        self.w4.set_fields(record, {**w4_values, "qualifyingChildren": "2"})
        self.w4.set_field(record, "otherDependents", "1")
        assert record.estimate["dependent_amount"] == 4500.0
        assert record.values["totalDependentAmount"] == 4500.0
        assert record.validation.is_valid is True

    def test_complete_requires_valid(self) -> None:
        record = self.w4.create_record()
        with pytest.raises(FormIncompleteError):
            self.w4.complete(record)
        assert record.validation.error_rules["filingStatus"] == "required"
        assert record.status == FormStatus.DRAFT

    def test_completed_record_is_locked(self, w4_values: dict) -> None:
        record = self.w4.create_record()
        self.w4.set_fields(record, w4_values)
        self.w4.complete(record)
        assert record.status == FormStatus.COMPLETED
        assert record.completed_at is not None
        with pytest.raises(FormLockedError):
            self.w4.set_field(record, "firstName", "Changed")

    def test_timestamps_follow_clock(self, clock, w4_values: dict) -> None:
        engine = FormEngine(default_definitions()["w4"], clock=clock)
        record = engine.create_record("emp-2")
        assert record.created_at == clock.now
        assert record.form_id == f"w4-emp-2-{int(clock.now.timestamp() * 1000)}"

        engine.set_fields(record, w4_values)
        clock.advance(90)
        engine.complete(record)
        assert record.completed_at == clock.now

    def test_language_switch(self) -> None:
        record = self.w4.create_record()
        self.w4.set_language("es")
        self.w4.set_field(record, "firstName", "")
        assert record.validation.errors["firstName"] == "Este campo es requerido"

    def test_unknown_field(self) -> None:
        record = self.w4.create_record()
        with pytest.raises(KeyError):
            self.w4.set_field(record, "favoriteColor", "blue")
