"""Field validation and coercion for model-extracted metadata.

Every validator returns ``None`` (or an empty list) for values it cannot make
sense of instead of raising, so one bad field never sinks a whole record.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable

STRING = "string"
NUMBER = "number"
INTEGER = "integer"
DATE = "date"
BOOLEAN = "boolean"
ARRAY = "array"

_SPANISH_MONTHS = {
    "enero": 1,
    "febrero": 2,
    "marzo": 3,
    "abril": 4,
    "mayo": 5,
    "junio": 6,
    "julio": 7,
    "agosto": 8,
    "septiembre": 9,
    "setiembre": 9,
    "octubre": 10,
    "noviembre": 11,
    "diciembre": 12,
}

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
_EU_DATE_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})$")
_LONG_DATE_RE = re.compile(r"^(\d{1,2})\s+de\s+([a-z]+)\s+(?:de|del)\s+(\d{4})$")
_THOUSANDS_DOT_RE = re.compile(r"^-?\d{1,3}(\.\d{3})+$")
_TRUE_WORDS = frozenset({"true", "yes", "si", "sí", "1"})


@dataclass(frozen=True)
class FieldSpec:
    """Declared shape of one metadata field.

    Attributes:
        name: Key in the extracted record.
        kind: One of STRING, NUMBER, INTEGER, DATE, BOOLEAN, ARRAY.
        max_length: Cap for strings (and for each string item of an array).
        max_items: Cap on array length.
        item_fields: For arrays of objects, the fields of each item.
        required: Counted when deciding whether a record is complete.
    """

    name: str
    kind: str = STRING
    max_length: int | None = 500
    max_items: int | None = 100
    item_fields: tuple[FieldSpec, ...] = ()
    required: bool = False


# ---------------------------------------------------------------------------
# Scalar validators
# ---------------------------------------------------------------------------


def validate_string(value: Any, max_length: int | None = None) -> str | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if max_length and len(trimmed) > max_length:
        return trimmed[:max_length].rstrip()
    return trimmed


def validate_number(value: Any, integer: bool = False) -> float | int | None:
    """Parse numbers, including European formats such as ``1.234,56 €``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = re.sub(r"[^\d,.\-]", "", value).strip(".,")
        if not cleaned or not re.search(r"\d", cleaned):
            return None
        if "," in cleaned and "." in cleaned:
            # whichever separator comes last is the decimal one
            if cleaned.rfind(",") > cleaned.rfind("."):
                cleaned = cleaned.replace(".", "").replace(",", ".")
            else:
                cleaned = cleaned.replace(",", "")
        elif "," in cleaned:
            cleaned = cleaned.replace(",", ".") if cleaned.count(",") == 1 else cleaned.replace(",", "")
        elif _THOUSANDS_DOT_RE.match(cleaned):
            cleaned = cleaned.replace(".", "")
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None

    if number != number:  # NaN
        return None
    if integer:
        return int(round(number))
    return number


def validate_date(value: Any) -> str | None:
    """Return an ISO ``YYYY-MM-DD`` date, or None.

    Accepts ISO dates (optionally with a time part), European ``DD/MM/YYYY``
    and Spanish long form ``12 de marzo de 2024``.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None
    text = _strip_accents(value.strip().lower())
    if not text:
        return None

    if m := _ISO_DATE_RE.match(text):
        year, month, day = int(m.group(1)), int(m.group(2)), int(m.group(3))
    elif m := _EU_DATE_RE.match(text):
        day, month, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    elif m := _LONG_DATE_RE.match(text):
        month = _SPANISH_MONTHS.get(m.group(2), 0)
        day, year = int(m.group(1)), int(m.group(3))
    else:
        return None

    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def validate_boolean(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_WORDS
    return None


def validate_array(
    value: Any,
    max_items: int | None = None,
    item: Callable[[Any], Any] | None = None,
) -> list:
    if isinstance(value, str):
        # "a; b; c" from a sloppy model or a salvaged line
        value = [part for part in re.split(r"[;\n]", value) if part.strip()]
    if not isinstance(value, list):
        return []
    result = value
    if item is not None:
        result = [v for v in (item(x) for x in value) if v is not None]
    if max_items and len(result) > max_items:
        result = result[:max_items]
    return result


# ---------------------------------------------------------------------------
# Schema coercion
# ---------------------------------------------------------------------------


def coerce_value(spec: FieldSpec, value: Any) -> Any:
    """Coerce *value* to the shape declared by *spec* (None when impossible)."""
    if spec.kind == STRING:
        return validate_string(value, spec.max_length)
    if spec.kind == NUMBER:
        return validate_number(value)
    if spec.kind == INTEGER:
        return validate_number(value, integer=True)
    if spec.kind == DATE:
        return validate_date(value)
    if spec.kind == BOOLEAN:
        return validate_boolean(value)
    if spec.kind == ARRAY:
        if spec.item_fields:
            return validate_array(value, spec.max_items, lambda x: _coerce_item(spec.item_fields, x))
        return validate_array(value, spec.max_items, lambda x: validate_string(x, spec.max_length))
    raise ValueError(f"Unknown field kind {spec.kind!r} for {spec.name!r}")


def coerce_fields(data: dict[str, Any], schema: tuple[FieldSpec, ...]) -> dict[str, Any]:
    """Return every schema field coerced from *data*; keys outside the schema are dropped."""
    return {spec.name: coerce_value(spec, data.get(spec.name)) for spec in schema}


def is_filled(value: Any) -> bool:
    return value is not None and value != []


def _coerce_item(fields: tuple[FieldSpec, ...], value: Any) -> dict[str, Any] | None:
    if not isinstance(value, dict):
        return None
    item = coerce_fields(value, fields)
    return item if any(is_filled(v) for v in item.values()) else None


def _strip_accents(text: str) -> str:
    return "".join(
        ch for ch in unicodedata.normalize("NFKD", text) if not unicodedata.combining(ch)
    )
