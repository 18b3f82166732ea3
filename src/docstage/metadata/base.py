"""Base class for per-document-type metadata extraction strategies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

import structlog

from docstage.errors import MetadataParseError
from docstage.llm_client import LanguageModelClient
from docstage.metadata.parser import FieldRule, parse_response
from docstage.metadata.validators import FieldSpec, coerce_fields, is_filled
from docstage.prompts.registry import PromptRegistry

log = structlog.get_logger(__name__)

VALID = "valid"
PARTIAL = "partial"
SALVAGED = "salvaged"
BASIC = "basic"

# Salvaged records are trusted half as much as strictly parsed ones.
SALVAGE_CONFIDENCE_FACTOR = 0.5


@dataclass
class StrategyResult:
    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.0
    error: str | None = None
    validation_status: str = VALID


class BaseStrategy:
    """Extract typed fields for one document type through a named prompt.

    Subclasses declare:

    - ``document_type``: taxonomy key handled by the strategy.
    - ``agent_name``: prompt template used for the extraction.
    - ``fields``: the field schema the response is coerced to.
    - ``salvage_rules``: label regexes tried when the response is not JSON
      (a ``"key": value`` rule for every field is always tried first).

    Args:
        prompts: Registry the agent template is resolved from.
        llm:     Language-model client.
    """

    document_type: ClassVar[str]
    agent_name: ClassVar[str]
    fields: ClassVar[tuple[FieldSpec, ...]]
    salvage_rules: ClassVar[tuple[FieldRule, ...]] = ()

    def __init__(self, prompts: PromptRegistry, llm: LanguageModelClient) -> None:
        self._prompts = prompts
        self._llm = llm

    def rules(self) -> list[FieldRule]:
        return [FieldRule.json_key(spec.name) for spec in self.fields] + list(self.salvage_rules)

    def process(self, document_id: str, text: str) -> StrategyResult:
        """Run the agent over *text* and return coerced fields.

        Template and service errors propagate. An unparseable response is
        returned as an unsuccessful result carrying the error detail.
        """
        prompt = self._prompts.render(self.agent_name, {"document_text": text})
        raw = self._llm.complete(prompt, operation=self.agent_name)

        try:
            parsed = parse_response(raw, self.rules(), agent=self.agent_name)
        except MetadataParseError as exc:
            log.warning("metadata parse failed", document_id=document_id, agent=self.agent_name)
            return StrategyResult(success=False, error=str(exc))

        data = self.postprocess(coerce_fields(parsed.data, self.fields))
        filled = sum(1 for spec in self.fields if is_filled(data.get(spec.name)))
        confidence = round(0.5 + 0.5 * filled / len(self.fields), 3)

        if parsed.salvaged and filled == 0:
            return StrategyResult(
                success=False,
                error=(
                    f"Salvaged values from {self.agent_name} response failed validation: "
                    f"{', '.join(parsed.salvaged_fields)}"
                ),
            )
        if parsed.salvaged:
            status = SALVAGED
            confidence = round(confidence * SALVAGE_CONFIDENCE_FACTOR, 3)
        elif all(is_filled(data.get(s.name)) for s in self.fields if s.required):
            status = VALID
        else:
            status = PARTIAL

        log.info(
            "metadata extracted",
            document_id=document_id,
            agent=self.agent_name,
            filled=filled,
            status=status,
        )
        return StrategyResult(
            success=True, data=data, confidence=confidence, validation_status=status
        )

    def postprocess(self, data: dict[str, Any]) -> dict[str, Any]:
        """Hook for type-specific derivations after coercion."""
        return data
