"""docstage init: create the project database, config and object store.

Creates:
  .docstage.db        document + prompt registry with schema
  docstage.yaml       project config (commented defaults), if missing
  <storage.root>/     object store directory
and installs the built-in prompt templates for names that have none.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from docstage.cli.common import DEFAULT_DB, console, load_settings, open_db
from docstage.db.repository import Repository
from docstage.prompts.registry import PromptRegistry

_PROJECT_YAML = """\
# docstage project configuration. Every key is optional.
llm:
  model: "gemini/gemini-2.0-flash"
#  temperature: 0.1
#  max_tokens: 3000
#  timeout: 60
# extraction:
#   quality_threshold: 70
#   ocr_batch_size: 5
#   ocr_page_limit: 50
#   ocr_language: "spa+eng"
# classification:
#   confidence_floor: 0.5
#   extra_types: []
# chunking:
#   chunk_size: 800
#   strategy: "fixed-size"
# retry:
#   max_attempts: 3
# storage:
#   root: ".docstage/objects"
# logging:
#   level: "INFO"
#   json: false
"""


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = Path("."),
) -> None:
    """Initialize a docstage project: database, prompt templates, config."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    config_path = project_dir / "docstage.yaml"
    if not config_path.exists():
        config_path.write_text(_PROJECT_YAML, encoding="utf-8")
        console.print("  [green]✓[/] docstage.yaml")

    cfg = load_settings(project_dir)

    storage_root = project_dir / cfg.storage.root
    storage_root.mkdir(parents=True, exist_ok=True)
    console.print(f"  [green]✓[/] {cfg.storage.root}/")

    conn = open_db(project_dir / DEFAULT_DB, must_exist=False)
    try:
        installed = PromptRegistry(Repository(conn)).seed_defaults()
    finally:
        conn.close()
    console.print(f"  [green]✓[/] {DEFAULT_DB}")
    if installed:
        console.print(f"  [green]✓[/] {len(installed)} prompt templates installed")
    else:
        console.print("  [dim]prompt templates already present[/]")

    console.print("\n[bold green]✓ docstage project initialized.[/]")
    console.print("\nNext steps:")
    console.print("  1. docstage add <file.pdf>        (register a document)")
    console.print("  2. docstage process               (run the pipeline)")
    console.print("  3. docstage status                (inspect results)")
