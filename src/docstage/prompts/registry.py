"""Versioned prompt template registry.

Templates are stored in the ``agents`` table. Each name has exactly one active
version; publishing a new version deactivates the previous one atomically.
"""

from __future__ import annotations

import re
from pathlib import Path

import structlog
import yaml

from docstage.db.models import PromptTemplate
from docstage.db.repository import Repository
from docstage.errors import TemplateResolutionError
from docstage.prompts.defaults import DEFAULT_TEMPLATES

log = structlog.get_logger(__name__)

# A placeholder is an identifier in single braces: {document_text}
_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def placeholders(body: str) -> list[str]:
    """Return the distinct placeholder names in *body*, in order of appearance."""
    return list(dict.fromkeys(_PLACEHOLDER_RE.findall(body)))


def render(template: PromptTemplate, variables: dict[str, str]) -> str:
    """Substitute every placeholder of *template* with its value.

    Substitution is a single pass over the template body, so braces inside
    substituted values are left alone.

    Raises:
        TemplateResolutionError: A declared variable has no value, or the body
            contains a placeholder that is not declared.
    """
    missing = [v for v in template.variables if v not in variables]
    if missing:
        raise TemplateResolutionError(
            f"Template {template.name!r} v{template.version} is missing variables: "
            f"{', '.join(missing)}"
        )
    undeclared = [p for p in placeholders(template.body) if p not in template.variables]
    if undeclared:
        raise TemplateResolutionError(
            f"Template {template.name!r} v{template.version} has unresolved placeholders: "
            f"{', '.join('{' + p + '}' for p in undeclared)}"
        )
    return _PLACEHOLDER_RE.sub(lambda m: str(variables[m.group(1)]), template.body)


class PromptRegistry:
    """Resolve, publish and seed named prompt templates.

    Args:
        repo: Open Repository instance.
    """

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def resolve(self, name: str) -> PromptTemplate:
        """Return the active template for *name*.

        Raises:
            TemplateResolutionError: No active template exists for *name*.
        """
        template = self._repo.get_active_prompt(name)
        if template is None:
            raise TemplateResolutionError(f"No active prompt template named {name!r}")
        return template

    def render(self, name: str, variables: dict[str, str]) -> str:
        """Resolve *name* and render it with *variables*."""
        return render(self.resolve(name), variables)

    def register(self, name: str, body: str, variables: list[str] | None = None) -> PromptTemplate:
        """Publish *body* as the new active version of *name*.

        When *variables* is omitted, the placeholders found in the body are
        declared as its variables.

        Raises:
            TemplateResolutionError: The body uses placeholders that are not declared.
        """
        declared = list(variables) if variables is not None else placeholders(body)
        undeclared = [p for p in placeholders(body) if p not in declared]
        if undeclared:
            raise TemplateResolutionError(
                f"Template {name!r} uses undeclared placeholders: {', '.join(undeclared)}"
            )
        template = self._repo.add_prompt_version(name, body, declared)
        log.info("prompt registered", name=name, version=template.version)
        return template

    def seed_defaults(self) -> list[str]:
        """Install the built-in templates for names that have no active version.

        Returns:
            Names that were installed (empty when everything was present).
        """
        installed = []
        for name, (body, variables) in DEFAULT_TEMPLATES.items():
            if self._repo.get_active_prompt(name) is None:
                self.register(name, body, variables)
                installed.append(name)
        return installed

    def load_yaml(self, path: Path) -> list[PromptTemplate]:
        """Register every template in a YAML file.

        The file holds a ``prompts`` list of mappings with ``name``, ``body``
        and optional ``variables`` keys.

        Raises:
            TemplateResolutionError: The file is malformed or a template is invalid.
        """
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        entries = data.get("prompts") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise TemplateResolutionError(f"{path}: expected a top-level 'prompts' list")

        loaded = []
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict) or "name" not in entry or "body" not in entry:
                raise TemplateResolutionError(f"{path}: prompt #{i + 1} needs 'name' and 'body'")
            loaded.append(
                self.register(str(entry["name"]), str(entry["body"]), entry.get("variables"))
            )
        return loaded

    def list_templates(self, *, include_inactive: bool = False) -> list[PromptTemplate]:
        return self._repo.list_prompts(active_only=not include_inactive)
