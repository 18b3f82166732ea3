"""Tests for strict JSON parsing with regex salvage."""

from __future__ import annotations

import pytest

from docstage.errors import MetadataParseError
from docstage.metadata.parser import (
    FieldRule,
    extract_json_object,
    parse_response,
    salvage,
    strip_fences,
)


def test_strip_fences():
    assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_fences('{"a": 1}') == '{"a": 1}'


@pytest.mark.parametrize(
    "raw",
    [
        '{"a": 1}',
        '```json\n{"a": 1}\n```',
        'Aquí tienes el resultado:\n{"a": 1}\nEspero que ayude.',
    ],
)
def test_extract_json_object(raw):
    assert extract_json_object(raw) == {"a": 1}


@pytest.mark.parametrize("raw", ["", "no json here", '{"a": 1', "[1, 2]", '{"a": }'])
def test_extract_json_object_none(raw):
    assert extract_json_object(raw) is None


def test_json_key_rule_matches_broken_json():
    rule = FieldRule.json_key("invoice_number")
    assert rule.search('{"invoice_number": "F-2024/118", "total": 12,') == "F-2024/118"
    assert FieldRule.json_key("total").search('"total": 1.210,50 }') == "1.210,50"


def test_compiled_rule_is_case_insensitive():
    rule = FieldRule.compile("subject", r"asunto\s*:\s*([^\n]+)")
    assert rule.search("ASUNTO: Corte de agua\nresto") == "Corte de agua"


def test_salvage_first_match_wins():
    rules = [
        FieldRule.compile("total", r"total\s*:\s*(\d+)"),
        FieldRule.compile("total", r"importe\s*:\s*(\d+)"),
    ]
    assert salvage("importe: 5\ntotal: 9", rules) == {"total": "9"}


def test_parse_response_strict():
    parsed = parse_response('{"total": 10}', [])
    assert parsed.data == {"total": 10}
    assert not parsed.salvaged


def test_parse_response_salvaged():
    rules = [FieldRule.json_key("total"), FieldRule.json_key("currency")]
    parsed = parse_response('{"total": 10, "currency": "EUR"', rules)
    assert parsed.salvaged
    assert parsed.data == {"total": "10", "currency": "EUR"}
    assert parsed.salvaged_fields == ["currency", "total"]


def test_parse_response_nothing_raises():
    with pytest.raises(MetadataParseError, match="invoice_extractor"):
        parse_response("Lo siento, no puedo.", [FieldRule.json_key("total")], agent="invoice_extractor")
