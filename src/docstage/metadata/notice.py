"""Notices and announcements to residents (comunicados)."""

from __future__ import annotations

from typing import Any

from docstage.metadata.base import BaseStrategy
from docstage.metadata.parser import FieldRule
from docstage.metadata.validators import ARRAY, DATE, STRING, FieldSpec

URGENCY_LEVELS = ("baja", "media", "alta")


class NoticeStrategy(BaseStrategy):
    document_type = "notice"
    agent_name = "notice_extractor"
    fields = (
        FieldSpec("notice_date", DATE, required=True),
        FieldSpec("sender", STRING, max_length=200),
        FieldSpec("subject", STRING, max_length=300, required=True),
        FieldSpec("notice_type", STRING, max_length=50),
        FieldSpec("urgency", STRING, max_length=10),
        FieldSpec("recipients", ARRAY, max_items=50, max_length=200),
        FieldSpec("deadline", DATE),
        FieldSpec("required_action", STRING, max_length=1000),
        FieldSpec("summary", STRING, max_length=2000),
    )
    salvage_rules = (
        FieldRule.compile("subject", r"(?:asunto|subject)\s*[:=]\s*([^\n]+)"),
        FieldRule.compile("sender", r"(?:de|from|remitente)\s*:\s*([^\n]+)"),
    )

    def postprocess(self, data: dict[str, Any]) -> dict[str, Any]:
        urgency = (data.get("urgency") or "").lower()
        data["urgency"] = urgency if urgency in URGENCY_LEVELS else None
        return data
