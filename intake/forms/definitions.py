"""Declarative definitions of the onboarding forms.

A form is an ordered set of field specs. Each spec lists its validation
rules, whether it is required, an optional condition on another field's
value, and the normalized document field it is auto-filled from.
Definitions can be overridden from a YAML file.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from intake.utils.exceptions import ConfigurationError
from intake.utils.logger import get_logger

from .withholding import estimate_withholding

logger = get_logger(__name__)

CITIZENSHIP_STATUSES = [
    "us_citizen",
    "noncitizen_national",
    "lawful_permanent_resident",
    "alien_authorized",
]

FILING_STATUSES = [
    "single",
    "married_filing_jointly",
    "married_filing_separately",
    "head_of_household",
]

TRANSFORMS: dict[str, Callable[[str], str]] = {
    "initial": lambda value: value.strip()[:1].upper(),
    "upper": lambda value: value.strip().upper(),
}

ESTIMATORS: dict[str, Callable[[dict[str, Any]], Any]] = {
    "w4": estimate_withholding,
}


@dataclass(frozen=True)
class FieldCondition:
    """Makes a field active only while another field holds certain values."""

    field: str
    values: tuple[str, ...]

    def is_met(self, values: dict[str, Any]) -> bool:
        return str(values.get(self.field) or "") in self.values


@dataclass(frozen=True)
class FieldSpec:
    """One form field."""

    name: str
    required: bool = False
    rules: tuple[dict, ...] = ()
    condition: FieldCondition | None = None
    autofill_from: str | None = None
    transform: str | None = None

    def is_active(self, values: dict[str, Any]) -> bool:
        return self.condition is None or self.condition.is_met(values)

    @property
    def formats_identifier(self) -> bool:
        return any(rule.get("type") == "identifier" for rule in self.rules)

    def autofill_value(self, value: str) -> str:
        fn = TRANSFORMS.get(self.transform) if self.transform else None
        return fn(value) if fn else value


@dataclass(frozen=True)
class FormDefinition:
    """A structured form and the signature it requires."""

    form_type: str
    fields: tuple[FieldSpec, ...]
    title_key: str = ""
    attestation_key: str = ""
    estimator: Callable[[dict[str, Any]], Any] | None = None
    field_index: dict[str, FieldSpec] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        self.field_index.update({spec.name: spec for spec in self.fields})

    @property
    def signature_key(self) -> str:
        return f"{self.form_type}_signature"

    def spec(self, name: str) -> FieldSpec | None:
        return self.field_index.get(name)

    def active_fields(self, values: dict[str, Any]) -> list[FieldSpec]:
        return [spec for spec in self.fields if spec.is_active(values)]

    def required_fields(self, values: dict[str, Any]) -> list[FieldSpec]:
        return [spec for spec in self.active_fields(values) if spec.required]


def _required(name: str, *rules: dict, source: str | None = None) -> FieldSpec:
    return FieldSpec(name, True, tuple(rules), autofill_from=source)


def _optional(name: str, *rules: dict, source: str | None = None) -> FieldSpec:
    return FieldSpec(name, False, tuple(rules), autofill_from=source)


def _address_fields() -> list[FieldSpec]:
    return [
        _required("address", source="address"),
        _required("city", source="city"),
        _required("state", {"type": "state_code"}, source="state"),
        _required("zipCode", {"type": "postal_code"}, source="zipCode"),
    ]


def default_definitions() -> dict[str, FormDefinition]:
    """Built-in I-9 and W-4 definitions."""
    i9 = FormDefinition(
        form_type="i9",
        title_key="forms.i9.title",
        attestation_key="signature.i9.attestation",
        fields=(
            _required("firstName", source="firstName"),
            _required("lastName", source="lastName"),
            FieldSpec(
                "middleInitial",
                rules=({"type": "regex", "pattern": r"^[A-Za-z]$"},),
                autofill_from="middleName",
                transform="initial",
            ),
            _optional("otherLastNames"),
            *_address_fields(),
            _required("dateOfBirth", {"type": "date"}, source="dateOfBirth"),
            _required("ssnNumber", {"type": "identifier"}, source="ssnNumber"),
            _optional("email", {"type": "email"}, source="email"),
            _optional("phone", {"type": "phone"}, source="phone"),
            _required(
                "citizenshipStatus", {"type": "choice", "options": CITIZENSHIP_STATUSES}
            ),
            FieldSpec(
                "alienNumber",
                required=True,
                rules=({"type": "regex", "pattern": r"^[Aa]?-?\d{7,9}$"},),
                condition=FieldCondition(
                    "citizenshipStatus",
                    ("lawful_permanent_resident", "alien_authorized"),
                ),
            ),
            FieldSpec(
                "workAuthorizationExpiration",
                required=True,
                rules=({"type": "date"},),
                condition=FieldCondition("citizenshipStatus", ("alien_authorized",)),
            ),
        ),
    )
    w4 = FormDefinition(
        form_type="w4",
        title_key="forms.w4.title",
        attestation_key="signature.w4.attestation",
        estimator=estimate_withholding,
        fields=(
            _required("firstName", source="firstName"),
            _required("lastName", source="lastName"),
            *_address_fields(),
            _required("ssnNumber", {"type": "identifier"}, source="ssnNumber"),
            _required("filingStatus", {"type": "choice", "options": FILING_STATUSES}),
            _optional("multipleJobsSpouseWorks"),
            _optional("qualifyingChildren", {"type": "non_negative"}),
            _optional("otherDependents", {"type": "non_negative"}),
            _optional("otherIncome", {"type": "non_negative"}),
            _optional("deductions", {"type": "non_negative"}),
            _optional("extraWithholding", {"type": "non_negative"}),
        ),
    )
    return {"i9": i9, "w4": w4}


def _parse_field(raw: dict) -> FieldSpec:
    condition = None
    if raw.get("condition"):
        cond = raw["condition"]
        condition = FieldCondition(cond["field"], tuple(cond.get("values", [])))
    return FieldSpec(
        name=raw["name"],
        required=bool(raw.get("required", False)),
        rules=tuple(raw.get("rules", [])),
        condition=condition,
        autofill_from=raw.get("autofill_from"),
        transform=raw.get("transform"),
    )


def _parse_definition(form_type: str, raw: dict) -> FormDefinition:
    try:
        fields = tuple(_parse_field(item) for item in raw.get("fields", []))
    except (KeyError, TypeError) as exc:
        raise ConfigurationError(f"Invalid field in form {form_type}: {exc}") from exc
    if not fields:
        raise ConfigurationError(f"Form {form_type} declares no fields")
    return FormDefinition(
        form_type=form_type,
        fields=fields,
        title_key=raw.get("title_key", f"forms.{form_type}.title"),
        attestation_key=raw.get("attestation_key", f"signature.{form_type}.attestation"),
        estimator=ESTIMATORS.get(form_type),
    )


def load_definitions(path: Path | None = None) -> dict[str, FormDefinition]:
    """Load form definitions from YAML, falling back to the built-in ones.

    Forms declared in the file replace the built-in form of the same type.

    Args:
        path: Path to the form definitions file.

    Returns:
        Form type to definition.

    Raises:
        ConfigurationError: If the file declares a malformed form.
    """
    if path is not None and path.exists():
        with open(path) as f:
            data = yaml.safe_load(f)
        if data:
            logger.info("Loaded form definitions from %s", path)
            definitions = default_definitions()
            definitions.update(
                {
                    form_type: _parse_definition(form_type, raw)
                    for form_type, raw in data.items()
                }
            )
            return definitions
    logger.debug("Using default form definitions")
    return default_definitions()
