"""Supplier invoices (facturas)."""

from __future__ import annotations

from typing import Any

from docstage.metadata.base import BaseStrategy
from docstage.metadata.parser import FieldRule
from docstage.metadata.validators import ARRAY, DATE, NUMBER, STRING, FieldSpec

LINE_ITEM = (
    FieldSpec("description", STRING, max_length=300),
    FieldSpec("quantity", NUMBER),
    FieldSpec("unit_price", NUMBER),
    FieldSpec("amount", NUMBER),
)


class InvoiceStrategy(BaseStrategy):
    document_type = "invoice"
    agent_name = "invoice_extractor"
    fields = (
        FieldSpec("invoice_number", STRING, max_length=100, required=True),
        FieldSpec("provider_name", STRING, max_length=200, required=True),
        FieldSpec("provider_tax_id", STRING, max_length=20),
        FieldSpec("client_name", STRING, max_length=200),
        FieldSpec("client_tax_id", STRING, max_length=20),
        FieldSpec("issue_date", DATE, required=True),
        FieldSpec("due_date", DATE),
        FieldSpec("subtotal", NUMBER),
        FieldSpec("tax_amount", NUMBER),
        FieldSpec("total_amount", NUMBER, required=True),
        FieldSpec("currency", STRING, max_length=3),
        FieldSpec("products", ARRAY, item_fields=LINE_ITEM),
    )
    salvage_rules = (
        FieldRule.compile(
            "invoice_number",
            r"(?:factura|invoice)\s*(?:n[º°o.]*|n[uú]m(?:ero)?\.?|number|#)\s*[:.]?\s*([A-Z0-9][\w/-]*)",
        ),
        FieldRule.compile("total_amount", r"total(?:\s+(?:a\s+pagar|factura|amount))?\s*[:=]?\s*(-?[\d.,]+)"),
        FieldRule.compile("tax_amount", r"(?:i\.?v\.?a\.?|tax)[^\n\d]{0,20}(-?[\d.,]+)"),
        FieldRule.compile("provider_tax_id", r"\b(?:cif|nif)\s*[:.]?\s*([A-Z]\d{7}[A-Z0-9]|\d{8}[A-Z])\b"),
    )

    def postprocess(self, data: dict[str, Any]) -> dict[str, Any]:
        if data.get("currency"):
            data["currency"] = data["currency"].upper()
        if data.get("subtotal") is None and None not in (data.get("total_amount"), data.get("tax_amount")):
            data["subtotal"] = round(data["total_amount"] - data["tax_amount"], 2)
        return data
