"""Field-level validation rules for onboarding forms.

Rules are small dicts such as ``{"type": "identifier"}`` or
``{"type": "choice", "options": [...]}`` so form definitions can be
declared in YAML. Messages are localized at validation time.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from intake.normalization.coercion import VALID_STATE_CODES
from intake.utils.i18n import resolve_locale
from intake.utils.logger import get_logger

logger = get_logger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^\d{3}-?\d{2}-?\d{4}$")
DATE_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$")
POSTAL_CODE_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass
class ValidationResult:
    """Result of a single field validation check."""

    field_name: str
    is_valid: bool
    message: str
    rule_name: str


def is_blank(value: Any) -> bool:
    return value is None or not str(value).strip()


class FieldValidator:
    """Applies declarative rules to form field values.

    Args:
        language: Language used for failure messages.
    """

    def __init__(self, language: str = "en") -> None:
        self.locale = resolve_locale(language)
        self._validators: dict[str, Any] = {
            "required": self._validate_required,
            "identifier": self._validate_identifier,
            "date": self._validate_date,
            "postal_code": self._validate_postal_code,
            "email": self._validate_email,
            "phone": self._validate_phone,
            "state_code": self._validate_state_code,
            "choice": self._validate_choice,
            "non_negative": self._validate_non_negative,
            "regex": self._validate_regex,
        }

    def check(
        self, field_name: str, value: Any, rules: list[dict], required: bool = False
    ) -> ValidationResult | None:
        """Run every rule for one field and return the first failure.

        Blank optional fields are valid. Format rules are skipped for blank
        values; only ``required`` reports them.

        Args:
            field_name: Field being validated.
            value: Current field value.
            rules: Rule dicts to apply in order.
            required: Whether the field must hold a value.

        Returns:
            The first failing result, or None when the value passes.
        """
        if required:
            result = self._validate_required(field_name, value, {})
            if not result.is_valid:
                return result
        if is_blank(value):
            return None

        for rule in rules:
            rule_type = rule.get("type")
            validator = self._validators.get(rule_type)
            if not validator:
                logger.warning("Unknown rule type for %s: %s", field_name, rule_type)
                continue
            result = validator(field_name, value, rule)
            if not result.is_valid:
                return result
        return None

    def _fail(self, field_name: str, rule_name: str, key: str) -> ValidationResult:
        return ValidationResult(field_name, False, self.locale.text(key), rule_name)

    def _validate_required(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        if is_blank(value):
            return self._fail(field_name, "required", "validation.required")
        return ValidationResult(field_name, True, "Required field present", "required")

    def _validate_identifier(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Validate a 9-digit identifier with optional dashes."""
        if IDENTIFIER_PATTERN.match(str(value).strip()):
            return ValidationResult(field_name, True, "Valid identifier", "identifier")
        return self._fail(field_name, "identifier", "validation.identifier")

    def _validate_date(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Validate an MM/DD/YYYY date that exists on the calendar."""
        text = str(value).strip()
        if DATE_PATTERN.match(text):
            try:
                datetime.strptime(text, "%m/%d/%Y")
                return ValidationResult(field_name, True, "Valid date", "date")
            except ValueError:
                pass
        return self._fail(field_name, "date", "validation.date")

    def _validate_postal_code(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        if POSTAL_CODE_PATTERN.match(str(value).strip()):
            return ValidationResult(field_name, True, "Valid postal code", "postal_code")
        return self._fail(field_name, "postal_code", "validation.postal_code")

    def _validate_email(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        if EMAIL_PATTERN.match(str(value).strip()):
            return ValidationResult(field_name, True, "Valid email format", "email")
        return self._fail(field_name, "email", "validation.email")

    def _validate_phone(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        cleaned = re.sub(r"[\s\-\(\)\.]", "", str(value))
        if re.match(r"^\+?1?\d{10,11}$", cleaned):
            return ValidationResult(field_name, True, "Valid phone format", "phone")
        return self._fail(field_name, "phone", "validation.phone")

    def _validate_state_code(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        if str(value).strip().upper() in VALID_STATE_CODES:
            return ValidationResult(field_name, True, "Valid state code", "state_code")
        return self._fail(field_name, "state_code", "validation.state_code")

    def _validate_choice(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        options = rule.get("options", [])
        if str(value) in options:
            return ValidationResult(field_name, True, "Valid choice", "choice")
        return self._fail(field_name, "choice", "validation.choice")

    def _validate_non_negative(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Check that a count or amount is zero or greater."""
        try:
            amount = Decimal(str(value).replace(",", "").replace("$", "").strip())
        except InvalidOperation:
            return self._fail(field_name, "non_negative", "validation.non_negative")
        if amount.is_finite() and amount >= 0:
            return ValidationResult(field_name, True, "Valid amount", "non_negative")
        return self._fail(field_name, "non_negative", "validation.non_negative")

    def _validate_regex(
        self, field_name: str, value: Any, rule: dict
    ) -> ValidationResult:
        """Validate a field value against a custom regex pattern."""
        pattern = rule.get("pattern", "")
        if re.match(pattern, str(value).strip()):
            return ValidationResult(field_name, True, "Matches pattern", "regex")
        return self._fail(field_name, "regex", "validation.invalid_format")
