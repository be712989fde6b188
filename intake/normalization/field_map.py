"""Alias tables mapping raw recognition keys to canonical form fields.

Each canonical field lists the raw keys it accepts, in priority order.
Keys are compared case-insensitively with ``_``, ``-`` and spaces removed.
"""

import re
from dataclasses import dataclass
from typing import Any

from intake.utils.logger import get_logger

from .coercion import FieldKind, split_full_name

logger = get_logger(__name__)


@dataclass(frozen=True)
class CanonicalField:
    """A canonical field with its coercion kind and raw-key aliases."""

    name: str
    kind: FieldKind
    aliases: tuple[str, ...]


CANONICAL_FIELDS: tuple[CanonicalField, ...] = (
    CanonicalField(
        "firstName",
        FieldKind.NAME,
        ("firstName", "first_name", "given_name", "nombre", "fname"),
    ),
    CanonicalField(
        "middleName",
        FieldKind.NAME,
        ("middleName", "middle_name", "middle", "segundo_nombre", "mname"),
    ),
    CanonicalField(
        "lastName",
        FieldKind.NAME,
        ("lastName", "last_name", "surname", "family_name", "apellido", "lname"),
    ),
    CanonicalField(
        "address",
        FieldKind.TEXT,
        ("address", "street_address", "direccion", "street", "addr"),
    ),
    CanonicalField("city", FieldKind.TEXT, ("city", "ciudad", "town", "municipio")),
    CanonicalField(
        "state", FieldKind.STATE, ("state", "province", "estado", "region")
    ),
    CanonicalField(
        "zipCode",
        FieldKind.ZIP,
        ("zipCode", "zip_code", "postal_code", "zip", "codigo_postal"),
    ),
    CanonicalField(
        "dateOfBirth",
        FieldKind.DATE,
        (
            "dateOfBirth",
            "dob",
            "date_of_birth",
            "birth_date",
            "fecha_nacimiento",
            "birthday",
        ),
    ),
    CanonicalField(
        "ssnNumber",
        FieldKind.IDENTIFIER,
        (
            "ssnNumber",
            "ssn",
            "social_security",
            "social_security_number",
            "seguro_social",
        ),
    ),
    CanonicalField(
        "licenseNumber",
        FieldKind.TEXT,
        ("licenseNumber", "license_number", "dl_number", "dl", "licencia"),
    ),
    CanonicalField(
        "documentNumber",
        FieldKind.TEXT,
        (
            "documentNumber",
            "document_number",
            "doc_number",
            "passport_number",
            "numero_documento",
        ),
    ),
    CanonicalField(
        "expirationDate",
        FieldKind.DATE,
        ("expirationDate", "expiration_date", "expires", "exp", "fecha_vencimiento"),
    ),
    CanonicalField(
        "issuedDate",
        FieldKind.DATE,
        ("issuedDate", "issued_date", "issue_date", "iss", "fecha_emision"),
    ),
    CanonicalField("email", FieldKind.TEXT, ("email", "email_address", "correo")),
    CanonicalField(
        "phone", FieldKind.TEXT, ("phone", "phone_number", "telephone", "telefono")
    ),
)

FULL_NAME_ALIASES: tuple[str, ...] = ("full_name", "name", "nombre_completo")

FIELDS_BY_NAME: dict[str, CanonicalField] = {f.name: f for f in CANONICAL_FIELDS}


@dataclass
class ResolvedField:
    """A canonical field resolved from a raw recognition key."""

    name: str
    raw_key: str
    value: str
    confidence: float


def normalize_key(key: str) -> str:
    """Fold a raw key for alias comparison."""
    return re.sub(r"[\s_\-]", "", str(key)).lower()


def field_kind(name: str) -> FieldKind:
    """Return the coercion kind of a canonical field (TEXT if unknown)."""
    canonical = FIELDS_BY_NAME.get(name)
    return canonical.kind if canonical else FieldKind.TEXT


def _has_value(value: Any) -> bool:
    return value is not None and bool(str(value).strip())


def resolve_fields(
    raw_fields: dict[str, Any], confidences: dict[str, float]
) -> dict[str, ResolvedField]:
    """Resolve raw recognition keys to canonical fields.

    For each canonical field the first alias with a non-empty value wins.
    A full-name value fills whichever name parts were not found directly.

    Args:
        raw_fields: Raw key to value map from the recognition service.
        confidences: Raw key to confidence map; missing keys count as 0.0.

    Returns:
        Canonical field name to resolved field.
    """
    index: dict[str, str] = {}
    for key in raw_fields:
        index.setdefault(normalize_key(key), key)

    resolved: dict[str, ResolvedField] = {}
    for canonical in CANONICAL_FIELDS:
        for alias in canonical.aliases:
            raw_key = index.get(normalize_key(alias))
            if raw_key is None or not _has_value(raw_fields[raw_key]):
                continue
            resolved[canonical.name] = ResolvedField(
                name=canonical.name,
                raw_key=raw_key,
                value=str(raw_fields[raw_key]).strip(),
                confidence=float(confidences.get(raw_key, 0.0)),
            )
            break

    if "firstName" not in resolved or "lastName" not in resolved:
        _resolve_full_name(raw_fields, confidences, index, resolved)

    logger.debug(
        "Resolved %d canonical fields from %d raw keys", len(resolved), len(raw_fields)
    )
    return resolved


def _resolve_full_name(
    raw_fields: dict[str, Any],
    confidences: dict[str, float],
    index: dict[str, str],
    resolved: dict[str, ResolvedField],
) -> None:
    for alias in FULL_NAME_ALIASES:
        raw_key = index.get(normalize_key(alias))
        if raw_key is None or not _has_value(raw_fields[raw_key]):
            continue
        parts = split_full_name(str(raw_fields[raw_key]))
        confidence = float(confidences.get(raw_key, 0.0))
        for name, part in zip(("firstName", "middleName", "lastName"), parts):
            if part and name not in resolved:
                resolved[name] = ResolvedField(name, raw_key, part, confidence)
        return
