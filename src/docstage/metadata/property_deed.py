"""Notarial deeds of sale (escrituras)."""

from __future__ import annotations

from docstage.metadata.base import BaseStrategy
from docstage.metadata.parser import FieldRule
from docstage.metadata.validators import DATE, NUMBER, STRING, FieldSpec


class PropertyDeedStrategy(BaseStrategy):
    document_type = "property_deed"
    agent_name = "property_deed_extractor"
    fields = (
        FieldSpec("seller", STRING, max_length=300, required=True),
        FieldSpec("buyer", STRING, max_length=300, required=True),
        FieldSpec("property_address", STRING, max_length=500),
        FieldSpec("sale_price", NUMBER),
        FieldSpec("deed_date", DATE, required=True),
        FieldSpec("notary", STRING, max_length=200),
        FieldSpec("cadastral_reference", STRING, max_length=20),
    )
    salvage_rules = (
        FieldRule.compile("cadastral_reference", r"\b(\d{7}[A-Z]{2}\d{4}[A-Z]\d{4}[A-Z]{2})\b"),
        FieldRule.compile("notary", r"notari[oa]\s*(?:de\s+[^\n,]+,\s*)?(?:d\.|don|doña)?\s*([^\n,]+)"),
        FieldRule.compile("sale_price", r"precio(?:\s+de\s+(?:la\s+)?compraventa)?\s*[:=]?\s*(-?[\d.,]+)"),
    )
