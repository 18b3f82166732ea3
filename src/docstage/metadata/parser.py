"""Two-phase parser for language-model responses.

Phase one is strict: strip Markdown fences, take the outermost ``{...}`` span
and decode it as JSON. Phase two runs only when that fails: a bounded set of
declared per-field regular expressions is applied to the raw response.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from docstage.errors import MetadataParseError

_FENCE_OPEN_RE = re.compile(r"^```(?:json|JSON)?\s*")
_FENCE_CLOSE_RE = re.compile(r"\s*```\s*$")


@dataclass(frozen=True)
class FieldRule:
    """Salvage rule: the first capture group of *pattern* is the field's raw value."""

    field_name: str
    pattern: re.Pattern[str]

    @classmethod
    def compile(cls, field_name: str, regex: str) -> FieldRule:
        return cls(field_name, re.compile(regex, re.IGNORECASE | re.MULTILINE))

    @classmethod
    def json_key(cls, field_name: str) -> FieldRule:
        """Match ``"key": "value"`` or ``"key": 123.4`` inside broken JSON."""
        return cls.compile(
            field_name,
            rf'"{re.escape(field_name)}"\s*:\s*(?:"((?:[^"\\]|\\.)*)"|(-?\d(?:[\d.,]*\d)?))',
        )

    def search(self, text: str) -> str | None:
        m = self.pattern.search(text)
        if not m:
            return None
        value = next((g for g in m.groups() if g is not None), None)
        if value is None:
            return None
        value = value.strip()
        return value or None


@dataclass
class ParsedResponse:
    data: dict[str, Any]
    salvaged: bool = False
    salvaged_fields: list[str] = field(default_factory=list)


def strip_fences(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = _FENCE_CLOSE_RE.sub("", _FENCE_OPEN_RE.sub("", text))
    return text


def extract_json_object(raw: str) -> dict[str, Any] | None:
    """Return the JSON object embedded in *raw*, fenced or not, or None."""
    if not raw:
        return None
    text = strip_fences(raw)
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        obj = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None
    return obj if isinstance(obj, dict) else None


def salvage(raw: str, rules: list[FieldRule]) -> dict[str, str]:
    """Apply *rules* in order; the first match per field wins."""
    found: dict[str, str] = {}
    for rule in rules:
        if rule.field_name in found:
            continue
        value = rule.search(raw)
        if value is not None:
            found[rule.field_name] = value
    return found


def parse_response(raw: str, rules: list[FieldRule], *, agent: str = "agent") -> ParsedResponse:
    """Parse *raw* strictly, falling back to salvage rules.

    Raises:
        MetadataParseError: Neither phase produced any field.
    """
    obj = extract_json_object(raw)
    if obj is not None:
        return ParsedResponse(data=obj)

    found = salvage(raw or "", rules)
    if not found:
        preview = (raw or "").strip().replace("\n", " ")[:120]
        raise MetadataParseError(f"No JSON object in {agent} response: {preview!r}")
    return ParsedResponse(data=dict(found), salvaged=True, salvaged_fields=sorted(found))
