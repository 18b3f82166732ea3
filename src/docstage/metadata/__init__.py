"""Typed metadata extraction: strategies per document type and basic fallback."""

from docstage.metadata.base import BaseStrategy, StrategyResult
from docstage.metadata.basic import basic_metadata
from docstage.metadata.factory import ExtractorFactory
from docstage.metadata.parser import FieldRule, extract_json_object, parse_response

__all__ = [
    "BaseStrategy",
    "ExtractorFactory",
    "FieldRule",
    "StrategyResult",
    "basic_metadata",
    "extract_json_object",
    "parse_response",
]
