"""Registry mapping a document type to its metadata extraction strategy."""

from __future__ import annotations

from docstage.errors import UnsupportedDocumentTypeError
from docstage.llm_client import LanguageModelClient
from docstage.metadata.base import BaseStrategy
from docstage.metadata.budget import BudgetStrategy
from docstage.metadata.contract import ContractStrategy
from docstage.metadata.delivery_note import DeliveryNoteStrategy
from docstage.metadata.invoice import InvoiceStrategy
from docstage.metadata.minutes import MinutesStrategy
from docstage.metadata.notice import NoticeStrategy
from docstage.metadata.property_deed import PropertyDeedStrategy
from docstage.prompts.registry import PromptRegistry

_STRATEGY_CLASSES: tuple[type[BaseStrategy], ...] = (
    MinutesStrategy,
    InvoiceStrategy,
    ContractStrategy,
    NoticeStrategy,
    DeliveryNoteStrategy,
    BudgetStrategy,
    PropertyDeedStrategy,
)


class ExtractorFactory:
    """Resolve document types to strategy instances.

    Additional strategy classes can be registered at runtime; a later
    registration for the same type replaces the earlier one.
    """

    def __init__(self, prompts: PromptRegistry, llm: LanguageModelClient) -> None:
        self._prompts = prompts
        self._llm = llm
        self._classes: dict[str, type[BaseStrategy]] = {
            cls.document_type: cls for cls in _STRATEGY_CLASSES
        }

    def register(self, strategy_cls: type[BaseStrategy]) -> None:
        self._classes[strategy_cls.document_type] = strategy_cls

    def is_supported(self, document_type: str | None) -> bool:
        return document_type in self._classes

    def supported_types(self) -> list[str]:
        return sorted(self._classes)

    def resolve(self, document_type: str | None) -> BaseStrategy:
        """Return a strategy for *document_type*.

        Raises:
            UnsupportedDocumentTypeError: No strategy handles the type
                (including ``unknown`` and ``None``).
        """
        cls = self._classes.get(document_type) if document_type else None
        if cls is None:
            raise UnsupportedDocumentTypeError(document_type)
        return cls(self._prompts, self._llm)
