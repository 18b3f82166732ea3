"""Document type classification through the ``document_classifier`` prompt."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Any

import structlog

from docstage.config import ClassificationCfg
from docstage.errors import (
    ClassificationError,
    ServiceError,
    TransientServiceError,
    describe,
)
from docstage.llm_client import LanguageModelClient
from docstage.metadata.parser import extract_json_object
from docstage.prompts.registry import PromptRegistry

log = structlog.get_logger(__name__)

TEMPLATE_NAME = "document_classifier"
TEXT_SLOT = "document_text"
UNKNOWN = "unknown"

DOCUMENT_TYPES: tuple[str, ...] = (
    "minutes",
    "invoice",
    "contract",
    "notice",
    "delivery_note",
    "budget",
    "property_deed",
)

# Spanish labels used by the source system and by models prompted in Spanish.
LABEL_ALIASES: dict[str, str] = {
    "acta": "minutes",
    "factura": "invoice",
    "contrato": "contract",
    "comunicado": "notice",
    "albaran": "delivery_note",
    "presupuesto": "budget",
    "escritura": "property_deed",
    "desconocido": UNKNOWN,
}

_LABEL_KEYS = ("type", "document_type", "tipo", "tipo_documento", "label")
_CONFIDENCE_RE = re.compile(r"confi[a-z]*\s*[:=]?\s*(\d+(?:[.,]\d+)?)\s*(%?)", re.IGNORECASE)


@dataclass
class ClassificationResult:
    document_type: str
    confidence: float
    reasoning: str = ""
    raw_label: str | None = None


def _normalize_label(label: str) -> str:
    text = unicodedata.normalize("NFKD", label.strip().lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return re.sub(r"[\s\-]+", "_", text)


def coerce_confidence(value: Any) -> float:
    """Clamp a model-reported confidence to [0, 1]; values in (1, 100] are percentages."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip().rstrip("%").replace(",", ".")
        try:
            value = float(value)
        except ValueError:
            return 0.0
    if not isinstance(value, (int, float)) or value != value:
        return 0.0
    number = float(value)
    if 1.0 < number <= 100.0:
        number /= 100.0
    return min(1.0, max(0.0, number))


class Classifier:
    """Classify extracted text into the document taxonomy.

    Args:
        prompts: Registry holding the ``document_classifier`` template.
        llm:     Language-model client.
        cfg:     Confidence floor, text limit and taxonomy additions.
    """

    def __init__(
        self,
        prompts: PromptRegistry,
        llm: LanguageModelClient,
        cfg: ClassificationCfg | None = None,
    ) -> None:
        self._prompts = prompts
        self._llm = llm
        self._cfg = cfg or ClassificationCfg()
        self._taxonomy = frozenset(
            DOCUMENT_TYPES + tuple(_normalize_label(t) for t in self._cfg.extra_types) + (UNKNOWN,)
        )

    @property
    def taxonomy(self) -> frozenset[str]:
        return self._taxonomy

    def canonical_type(self, label: str) -> str | None:
        """Map a model label (or Spanish alias) to a taxonomy key, None if unrecognised."""
        key = _normalize_label(label)
        key = LABEL_ALIASES.get(key, key)
        return key if key in self._taxonomy else None

    def classify(self, text: str) -> ClassificationResult:
        """Classify *text*.

        Raises:
            ClassificationError: The service is unavailable, or the response has
                neither a JSON object nor a recognisable label.
            TemplateResolutionError: The classifier template is missing or broken.
        """
        prompt = self._prompts.render(
            TEMPLATE_NAME, {TEXT_SLOT: text[: self._cfg.max_text_chars]}
        )
        try:
            raw = self._llm.complete(prompt, operation="classify")
        except (TransientServiceError, ServiceError) as exc:
            raise ClassificationError(f"Classification service failed: {describe(exc)}") from exc
        return self.parse(raw)

    def parse(self, raw: str) -> ClassificationResult:
        """Turn a raw model response into a classification."""
        obj = extract_json_object(raw)
        if obj is not None:
            label = next((str(obj[k]) for k in _LABEL_KEYS if obj.get(k)), None)
            confidence = coerce_confidence(obj.get("confidence"))
            reasoning = str(obj.get("reasoning") or obj.get("razonamiento") or "")
        else:
            label = self._find_label(raw or "")
            if label is None:
                preview = (raw or "").strip().replace("\n", " ")[:120]
                raise ClassificationError(f"Unparseable classification response: {preview!r}")
            m = _CONFIDENCE_RE.search(raw)
            confidence = coerce_confidence(m.group(1) + m.group(2) if m else None)
            reasoning = (raw or "").strip()[:500]

        document_type = self.canonical_type(label) if label else None
        if document_type is None:
            log.info("unrecognised classification label", label=label)
            document_type = UNKNOWN
        elif confidence < self._cfg.confidence_floor:
            log.info(
                "classification below confidence floor",
                label=document_type,
                confidence=confidence,
            )
            document_type = UNKNOWN

        return ClassificationResult(
            document_type=document_type,
            confidence=confidence,
            reasoning=reasoning,
            raw_label=label,
        )

    def _find_label(self, raw: str) -> str | None:
        """Return the first taxonomy label or alias mentioned in free text."""
        text = _normalize_label(raw)
        candidates = sorted(set(self._taxonomy) | set(LABEL_ALIASES), key=len, reverse=True)
        best: tuple[int, str] | None = None
        for label in candidates:
            m = re.search(rf"(?<![a-z]){re.escape(label)}(?![a-z])", text)
            if m and (best is None or m.start() < best[0]):
                best = (m.start(), label)
        return best[1] if best else None
