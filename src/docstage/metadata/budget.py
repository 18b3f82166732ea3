"""Budgets and quotations (presupuestos)."""

from __future__ import annotations

from typing import Any

from docstage.metadata.base import BaseStrategy
from docstage.metadata.invoice import LINE_ITEM
from docstage.metadata.parser import FieldRule
from docstage.metadata.validators import ARRAY, DATE, NUMBER, STRING, FieldSpec


class BudgetStrategy(BaseStrategy):
    document_type = "budget"
    agent_name = "budget_extractor"
    fields = (
        FieldSpec("budget_number", STRING, max_length=100),
        FieldSpec("issuer", STRING, max_length=200, required=True),
        FieldSpec("client", STRING, max_length=200),
        FieldSpec("issue_date", DATE, required=True),
        FieldSpec("valid_until", DATE),
        FieldSpec("subtotal", NUMBER),
        FieldSpec("taxes", NUMBER),
        FieldSpec("total", NUMBER, required=True),
        FieldSpec("currency", STRING, max_length=3),
        FieldSpec("line_items", ARRAY, item_fields=LINE_ITEM),
    )
    salvage_rules = (
        FieldRule.compile(
            "budget_number",
            r"presupuesto\s*(?:n[º°o.]*|n[uú]m(?:ero)?\.?)\s*[:.]?\s*([A-Z0-9][\w/-]*)",
        ),
        FieldRule.compile("total", r"total(?:\s+presupuesto)?\s*[:=]?\s*(-?[\d.,]+)"),
        FieldRule.compile("valid_until", r"v[aá]lido\s+hasta\s*[:]?\s*(\d{1,2}/\d{1,2}/\d{4})"),
    )

    def postprocess(self, data: dict[str, Any]) -> dict[str, Any]:
        if data.get("currency"):
            data["currency"] = data["currency"].upper()
        return data
