"""Meeting minutes (acta de junta de propietarios)."""

from __future__ import annotations

from typing import Any

from docstage.metadata.base import BaseStrategy
from docstage.metadata.parser import FieldRule
from docstage.metadata.validators import ARRAY, DATE, STRING, FieldSpec


class MinutesStrategy(BaseStrategy):
    document_type = "minutes"
    agent_name = "minutes_extractor"
    fields = (
        FieldSpec("meeting_date", DATE, required=True),
        FieldSpec("meeting_type", STRING, max_length=50),
        FieldSpec("location", STRING, max_length=200),
        FieldSpec("community_name", STRING, max_length=200, required=True),
        FieldSpec("president_in", STRING, max_length=200),
        FieldSpec("president_out", STRING, max_length=200),
        FieldSpec("administrator", STRING, max_length=200),
        FieldSpec("agenda", ARRAY, max_items=50),
        FieldSpec("agreements", ARRAY, max_items=50, max_length=1000),
        FieldSpec("summary", STRING, max_length=2000),
    )
    salvage_rules = (
        FieldRule.compile("president_in", r"presidente(?:\s+entrante)?\s*[:=]\s*([^\n.]+)"),
        FieldRule.compile("administrator", r"administrador(?:a)?\s*[:=]\s*([^\n.]+)"),
        FieldRule.compile("community_name", r"comunidad\s+de\s+propietarios\s+([^\n.]+)"),
        FieldRule.compile("meeting_type", r"\b(extraordinaria|ordinaria)\b"),
        FieldRule.compile(
            "meeting_date",
            r"\b(\d{1,2}\s+de\s+[a-z]+\s+de\s+\d{4}|\d{1,2}/\d{1,2}/\d{4}|\d{4}-\d{2}-\d{2})\b",
        ),
    )

    def postprocess(self, data: dict[str, Any]) -> dict[str, Any]:
        if data.get("meeting_type"):
            data["meeting_type"] = data["meeting_type"].lower()
        return data
