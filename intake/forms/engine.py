"""Form records and the engine that edits, validates and completes them."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from intake.normalization.coercion import format_identifier_input
from intake.utils.clock import Clock, utcnow
from intake.utils.exceptions import FormIncompleteError, FormLockedError
from intake.utils.logger import get_logger

from .definitions import FormDefinition
from .validators import FieldValidator, is_blank

logger = get_logger(__name__)


class FormStatus(StrEnum):
    DRAFT = "draft"
    COMPLETED = "completed"
    SUBMITTED = "submitted"


class FormValidation(BaseModel):
    """Validation state recomputed on every field change."""

    errors: dict[str, str] = Field(default_factory=dict)
    error_rules: dict[str, str] = Field(default_factory=dict)
    warnings: dict[str, str] = Field(default_factory=dict)
    completion_percentage: float = 0.0
    missing_required: list[str] = Field(default_factory=list)
    is_valid: bool = False


class FormRecord(BaseModel):
    """An employee's in-progress or finished structured form."""

    form_id: str
    form_type: str
    values: dict[str, Any] = Field(default_factory=dict)
    validation: FormValidation = Field(default_factory=FormValidation)
    status: FormStatus = FormStatus.DRAFT
    auto_filled: list[str] = Field(default_factory=list)
    edited: list[str] = Field(default_factory=list)
    autofill_applied: bool = False
    estimate: dict[str, float] | None = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None


class FormEngine:
    """Drives one form type through editing, validation and completion.

    Required-field errors are reported only for fields the employee has
    touched until completion is attempted, after which every missing field
    is flagged.

    Args:
        definition: Form definition to enforce.
        language: Language used for validation messages.
        clock: Wall-clock source for record ids and timestamps.
    """

    def __init__(
        self, definition: FormDefinition, language: str = "en", clock: Clock = utcnow
    ) -> None:
        self.definition = definition
        self.clock = clock
        self.validator = FieldValidator(language)

    def set_language(self, language: str) -> None:
        self.validator = FieldValidator(language)

    def create_record(self, employee_id: str = "") -> FormRecord:
        owner = employee_id or "anonymous"
        now = self.clock()
        form_id = f"{self.definition.form_type}-{owner}-{int(now.timestamp() * 1000)}"
        record = FormRecord(
            form_id=form_id, form_type=self.definition.form_type, created_at=now
        )
        self.validate(record)
        return record

    def activate(self, record: FormRecord, normalized: dict[str, str]) -> list[str]:
        """Apply the one-time auto-fill from normalized document fields.

        Only empty fields are filled, and only on the first activation.
        Later calls leave the record untouched.

        Args:
            record: Form record being activated.
            normalized: Merged normalized document fields.

        Returns:
            Names of the fields that were filled.
        """
        if record.autofill_applied or record.status != FormStatus.DRAFT:
            return []

        filled: list[str] = []
        for spec in self.definition.fields:
            if not spec.autofill_from or not is_blank(record.values.get(spec.name)):
                continue
            source = normalized.get(spec.autofill_from)
            if is_blank(source):
                continue
            record.values[spec.name] = spec.autofill_value(str(source))
            filled.append(spec.name)

        record.auto_filled = filled
        record.autofill_applied = True
        self.validate(record)
        logger.info(
            "Auto-filled %d fields on %s form %s",
            len(filled),
            record.form_type,
            record.form_id,
        )
        return filled

    def set_field(self, record: FormRecord, name: str, value: Any) -> FormRecord:
        """Apply a manual edit and revalidate.

        Raises:
            FormLockedError: If the record is no longer a draft.
            KeyError: If the form has no such field.
        """
        if record.status != FormStatus.DRAFT:
            raise FormLockedError(
                f"Form {record.form_id} is {record.status} and cannot be edited"
            )
        spec = self.definition.spec(name)
        if spec is None:
            raise KeyError(f"Form {record.form_type} has no field {name}")

        if spec.formats_identifier and isinstance(value, str):
            value = format_identifier_input(value)
        record.values[name] = value
        if name not in record.edited:
            record.edited.append(name)
        self.validate(record)
        return record

    def set_fields(self, record: FormRecord, values: dict[str, Any]) -> FormRecord:
        for name, value in values.items():
            self.set_field(record, name, value)
        return record

    def validate(self, record: FormRecord, show_all: bool = False) -> FormValidation:
        """Recompute errors, completion and the derived estimate.

        Args:
            record: Record to validate.
            show_all: Report required errors for untouched fields too.

        Returns:
            The record's new validation state.
        """
        values = record.values
        active = self.definition.active_fields(values)
        required = [spec for spec in active if spec.required]
        validation = FormValidation()

        for spec in active:
            touched = show_all or spec.name in record.edited
            result = self.validator.check(
                spec.name, values.get(spec.name), list(spec.rules), spec.required
            )
            if result is None:
                continue
            if result.rule_name == "required" and not touched:
                continue
            validation.errors[spec.name] = result.message
            validation.error_rules[spec.name] = result.rule_name

        validation.missing_required = [
            spec.name for spec in required if is_blank(values.get(spec.name))
        ]
        filled = len(required) - len(validation.missing_required)
        validation.completion_percentage = (
            round(filled / len(required) * 100, 1) if required else 100.0
        )
        validation.is_valid = not validation.errors and not validation.missing_required

        if self.definition.estimator is not None:
            estimate = self.definition.estimator(values)
            record.estimate = estimate.to_dict()
            values["totalDependentAmount"] = record.estimate["dependent_amount"]

        record.validation = validation
        return validation

    def complete(self, record: FormRecord) -> FormRecord:
        """Freeze a valid record.

        Raises:
            FormIncompleteError: If required fields are missing or invalid.
        """
        if record.status != FormStatus.DRAFT:
            return record
        validation = self.validate(record, show_all=True)
        if not validation.is_valid:
            raise FormIncompleteError(
                f"Form {record.form_type} has {len(validation.errors)} invalid fields"
            )
        record.status = FormStatus.COMPLETED
        record.completed_at = self.clock()
        logger.info("Completed %s form %s", record.form_type, record.form_id)
        return record
