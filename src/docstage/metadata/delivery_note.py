"""Delivery notes (albaranes)."""

from __future__ import annotations

from typing import Any

from docstage.metadata.base import BaseStrategy
from docstage.metadata.parser import FieldRule
from docstage.metadata.validators import ARRAY, DATE, NUMBER, STRING, FieldSpec

GOODS_ITEM = (
    FieldSpec("description", STRING, max_length=300),
    FieldSpec("quantity", NUMBER),
)


class DeliveryNoteStrategy(BaseStrategy):
    document_type = "delivery_note"
    agent_name = "delivery_note_extractor"
    fields = (
        FieldSpec("note_number", STRING, max_length=100, required=True),
        FieldSpec("issuer", STRING, max_length=200, required=True),
        FieldSpec("receiver", STRING, max_length=200),
        FieldSpec("issue_date", DATE, required=True),
        FieldSpec("order_number", STRING, max_length=100),
        FieldSpec("goods", ARRAY, item_fields=GOODS_ITEM),
        FieldSpec("total_quantity", NUMBER),
        FieldSpec("carrier", STRING, max_length=200),
    )
    salvage_rules = (
        FieldRule.compile(
            "note_number",
            r"albar[aá]n\s*(?:n[º°o.]*|n[uú]m(?:ero)?\.?)?\s*[:.]?\s*([A-Z0-9][\w/-]*\d[\w/-]*)",
        ),
        FieldRule.compile("order_number", r"pedido\s*(?:n[º°o.]*)?\s*[:.]?\s*([A-Z0-9][\w/-]*)"),
    )

    def postprocess(self, data: dict[str, Any]) -> dict[str, Any]:
        goods = data.get("goods") or []
        quantities = [g["quantity"] for g in goods if g.get("quantity") is not None]
        if data.get("total_quantity") is None and quantities:
            data["total_quantity"] = sum(quantities)
        return data
