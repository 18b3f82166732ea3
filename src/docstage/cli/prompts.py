"""docstage prompts: inspect and publish prompt templates.

Subcommands:
    docstage prompts list [--all]
    docstage prompts load FILE
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from docstage.cli.common import DEFAULT_DB, console, open_db
from docstage.cli.errors import err_file_not_found, err_prompt_file
from docstage.db.repository import Repository
from docstage.errors import TemplateResolutionError
from docstage.prompts.registry import PromptRegistry

prompts_app = typer.Typer(
    name="prompts",
    help="Manage versioned prompt templates.",
    no_args_is_help=True,
)


@prompts_app.command("list")
def prompts_list(
    show_all: Annotated[
        bool,
        typer.Option("--all", help="Include inactive versions."),
    ] = False,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .docstage.db."),
    ] = DEFAULT_DB,
) -> None:
    """List prompt templates."""
    conn = open_db(db)
    try:
        templates = PromptRegistry(Repository(conn)).list_templates(include_inactive=show_all)
    finally:
        conn.close()

    if not templates:
        console.print("[dim]No prompt templates.[/]  Run: docstage init")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Version", justify="right")
    table.add_column("Active", justify="center")
    table.add_column("Variables")
    for t in templates:
        table.add_row(
            t.name,
            str(t.version),
            "[green]✓[/]" if t.is_active else "",
            ", ".join(t.variables),
        )
    console.print(table)


@prompts_app.command("load")
def prompts_load(
    file: Annotated[Path, typer.Argument(help="YAML file with a 'prompts' list.")],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .docstage.db."),
    ] = DEFAULT_DB,
) -> None:
    """Publish every template in FILE as a new active version."""
    if not file.is_file():
        console.print(err_file_not_found(str(file)))
        raise typer.Exit(1)

    conn = open_db(db)
    try:
        loaded = PromptRegistry(Repository(conn)).load_yaml(file)
    except TemplateResolutionError as exc:
        console.print(err_prompt_file(str(file), str(exc)))
        raise typer.Exit(1) from exc
    finally:
        conn.close()

    for t in loaded:
        console.print(f"  [green]✓[/] {t.name} v{t.version}")
