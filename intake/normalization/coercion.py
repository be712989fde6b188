"""Value coercion rules for recognized document fields.

Every function here is idempotent: feeding an already-normalized value
back in returns it unchanged.
"""

import re
from datetime import datetime
from enum import StrEnum


class FieldKind(StrEnum):
    """How a canonical field's value is coerced."""

    NAME = "name"
    DATE = "date"
    IDENTIFIER = "identifier"
    STATE = "state"
    ZIP = "zip"
    TEXT = "text"


# Formats tried after the numeric patterns below fail.
_NAMED_DATE_FORMATS: list[str] = [
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
]

_US_DATE = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})$")
_ISO_DATE = re.compile(r"^(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})$")
_COMPACT_DATE = re.compile(r"^\d{8}$")

STATE_CODES: dict[str, str] = {
    "alabama": "AL",
    "alaska": "AK",
    "arizona": "AZ",
    "arkansas": "AR",
    "california": "CA",
    "colorado": "CO",
    "connecticut": "CT",
    "delaware": "DE",
    "district of columbia": "DC",
    "florida": "FL",
    "georgia": "GA",
    "hawaii": "HI",
    "idaho": "ID",
    "illinois": "IL",
    "indiana": "IN",
    "iowa": "IA",
    "kansas": "KS",
    "kentucky": "KY",
    "louisiana": "LA",
    "maine": "ME",
    "maryland": "MD",
    "massachusetts": "MA",
    "michigan": "MI",
    "minnesota": "MN",
    "mississippi": "MS",
    "missouri": "MO",
    "montana": "MT",
    "nebraska": "NE",
    "nevada": "NV",
    "new hampshire": "NH",
    "new jersey": "NJ",
    "new mexico": "NM",
    "new york": "NY",
    "north carolina": "NC",
    "north dakota": "ND",
    "ohio": "OH",
    "oklahoma": "OK",
    "oregon": "OR",
    "pennsylvania": "PA",
    "rhode island": "RI",
    "south carolina": "SC",
    "south dakota": "SD",
    "tennessee": "TN",
    "texas": "TX",
    "utah": "UT",
    "vermont": "VT",
    "virginia": "VA",
    "washington": "WA",
    "west virginia": "WV",
    "wisconsin": "WI",
    "wyoming": "WY",
    "american samoa": "AS",
    "guam": "GU",
    "northern mariana islands": "MP",
    "puerto rico": "PR",
    "virgin islands": "VI",
}

VALID_STATE_CODES: frozenset[str] = frozenset(STATE_CODES.values())


def _format_date(month: int, day: int, year: int) -> str | None:
    try:
        parsed = datetime(year, month, day)
    except ValueError:
        return None
    return parsed.strftime("%m/%d/%Y")


def normalize_date(value: str) -> str:
    """Normalize a date to ``MM/DD/YYYY``.

    Slash, dash and dot separators are accepted, as are ISO ordering,
    compact ``MMDDYYYY``/``YYYYMMDD`` digits and spelled-out month names.
    Values that cannot be parsed are returned trimmed.
    """
    text = str(value).strip()

    match = _US_DATE.match(text)
    if match:
        month, day, year = (int(g) for g in match.groups())
        return _format_date(month, day, year) or text

    match = _ISO_DATE.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _format_date(month, day, year) or text

    if _COMPACT_DATE.match(text):
        formatted = _format_date(int(text[:2]), int(text[2:4]), int(text[4:]))
        if formatted:
            return formatted
        formatted = _format_date(int(text[4:6]), int(text[6:]), int(text[:4]))
        return formatted or text

    for fmt in _NAMED_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%m/%d/%Y")
        except ValueError:
            continue

    return text


def normalize_identifier(value: str) -> str:
    """Regroup a 9-digit identifier into the dashed 3-2-4 pattern."""
    text = str(value).strip()
    digits = re.sub(r"\D", "", text)
    if len(digits) == 9:
        return f"{digits[:3]}-{digits[3:5]}-{digits[5:]}"
    return text


def format_identifier_input(value: str) -> str:
    """Progressively dash an identifier while it is being typed."""
    digits = re.sub(r"\D", "", str(value))[:9]
    if len(digits) >= 6:
        return f"{digits[:3]}-{digits[3:5]}-{digits[5:]}"
    if len(digits) >= 4:
        return f"{digits[:3]}-{digits[3:]}"
    return digits


def title_case_name(value: str) -> str:
    """Collapse whitespace and title-case a free-text name."""
    return " ".join(str(value).split()).title()


def normalize_state(value: str) -> str:
    """Map a state name to its 2-letter code; valid codes pass through."""
    text = " ".join(str(value).split())
    if len(text) == 2 and text.isalpha():
        return text.upper()
    return STATE_CODES.get(text.lower(), text)


def normalize_zip(value: str) -> str:
    """Keep 5-digit ZIP codes and dash 9-digit ZIP+4 codes."""
    text = str(value).strip()
    digits = re.sub(r"\D", "", text)
    if len(digits) == 5:
        return digits
    if len(digits) == 9:
        return f"{digits[:5]}-{digits[5:]}"
    return text


def split_full_name(value: str) -> tuple[str, str, str]:
    """Split a full name into ``(first, middle, last)``.

    ``LAST, FIRST MIDDLE`` ordering is recognized by the comma.
    """
    text = " ".join(str(value).split())
    if "," in text:
        last, _, rest = text.partition(",")
        tokens = rest.split()
        first = tokens[0] if tokens else ""
        return first, " ".join(tokens[1:]), last.strip()

    tokens = text.split()
    if not tokens:
        return "", "", ""
    if len(tokens) == 1:
        return tokens[0], "", ""
    return tokens[0], " ".join(tokens[1:-1]), tokens[-1]


_COERCERS = {
    FieldKind.NAME: title_case_name,
    FieldKind.DATE: normalize_date,
    FieldKind.IDENTIFIER: normalize_identifier,
    FieldKind.STATE: normalize_state,
    FieldKind.ZIP: normalize_zip,
}


def coerce(kind: FieldKind, value: object) -> str:
    """Apply the coercion rule for a field kind."""
    coercer = _COERCERS.get(kind)
    if coercer is None:
        return str(value).strip()
    return coercer(str(value))


def alternate_renderings(kind: FieldKind, value: str, limit: int = 3) -> list[str]:
    """Offer alternate renderings of a format-ambiguous value.

    Args:
        kind: Field kind; only dates, identifiers, ZIP codes and names
            produce suggestions.
        value: Current field value.
        limit: Maximum number of suggestions.

    Returns:
        Distinct alternates, excluding the current value.
    """
    candidates: list[str] = []

    if kind == FieldKind.DATE:
        if "/" in value:
            candidates.append(value.replace("/", "-"))
        if "-" in value:
            candidates.append(value.replace("-", "/"))
        match = _US_DATE.match(value)
        if match:
            month, day, year = match.groups()
            candidates.append(f"{year}-{int(month):02d}-{int(day):02d}")
    elif kind == FieldKind.IDENTIFIER:
        digits = re.sub(r"\D", "", value)
        if len(digits) == 9:
            candidates.append(f"{digits[:3]}-{digits[3:5]}-{digits[5:]}")
            candidates.append(f"{digits[:3]} {digits[3:5]} {digits[5:]}")
            candidates.append(digits)
    elif kind == FieldKind.ZIP:
        digits = re.sub(r"\D", "", value)
        if len(digits) == 5:
            candidates.append(f"{digits}-0000")
        elif len(digits) == 9:
            candidates.append(digits[:5])
            candidates.append(f"{digits[:5]}-{digits[5:]}")
    elif kind == FieldKind.NAME:
        candidates.extend([value.lower(), value.upper(), value.capitalize()])

    suggestions: list[str] = []
    for candidate in candidates:
        if candidate and candidate != value and candidate not in suggestions:
            suggestions.append(candidate)
    return suggestions[:limit]
