"""Prompt template registry."""

from docstage.prompts.registry import PromptRegistry, placeholders, render

__all__ = ["PromptRegistry", "placeholders", "render"]
