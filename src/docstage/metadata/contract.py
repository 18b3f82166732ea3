"""Service and supply contracts (contratos)."""

from __future__ import annotations

from typing import Any

from docstage.metadata.base import BaseStrategy
from docstage.metadata.parser import FieldRule
from docstage.metadata.validators import ARRAY, DATE, NUMBER, STRING, FieldSpec


class ContractStrategy(BaseStrategy):
    document_type = "contract"
    agent_name = "contract_extractor"
    fields = (
        FieldSpec("title", STRING, max_length=300),
        FieldSpec("party_a", STRING, max_length=200, required=True),
        FieldSpec("party_b", STRING, max_length=200, required=True),
        FieldSpec("object", STRING, max_length=1000),
        FieldSpec("start_date", DATE, required=True),
        FieldSpec("end_date", DATE),
        FieldSpec("total_amount", NUMBER),
        FieldSpec("currency", STRING, max_length=3),
        FieldSpec("payment_terms", STRING, max_length=1000),
        FieldSpec("obligations", ARRAY, max_items=30, max_length=1000),
    )
    salvage_rules = (
        FieldRule.compile("title", r"^\s*(contrato\s+de\s+[^\n]+)"),
        FieldRule.compile("object", r"objeto(?:\s+del\s+contrato)?\s*[:=]\s*([^\n]+)"),
        FieldRule.compile("total_amount", r"(?:importe|precio)\s+total\s*[:=]?\s*(-?[\d.,]+)"),
    )

    def postprocess(self, data: dict[str, Any]) -> dict[str, Any]:
        if data.get("currency"):
            data["currency"] = data["currency"].upper()
        return data
