"""docstage status: per-stage progress for registered documents."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from docstage.cli.common import DEFAULT_DB, console, open_db
from docstage.cli.errors import err_document_not_found
from docstage.db.models import COMPLETED, FAILED, PROCESSING, STAGES, Document
from docstage.db.repository import Repository

_STATUS_STYLE = {
    COMPLETED: "[green]✓[/]",
    FAILED: "[red]✗[/]",
    PROCESSING: "[yellow]…[/]",
}


def _mark(status: str) -> str:
    return _STATUS_STYLE.get(status, "[dim]·[/]")


def status_cmd(
    document_id: Annotated[
        str | None,
        typer.Argument(help="Show details for one document."),
    ] = None,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .docstage.db."),
    ] = DEFAULT_DB,
) -> None:
    """List documents with their stage statuses, or detail one document."""
    conn = open_db(db)
    repo = Repository(conn)
    try:
        if document_id is None:
            _print_overview(repo.list_documents())
            return
        doc = repo.get_document(document_id)
        if doc is None:
            console.print(err_document_not_found(document_id))
            raise typer.Exit(1)
        _print_detail(repo, doc)
    finally:
        conn.close()


def _print_overview(documents: list[Document]) -> None:
    if not documents:
        console.print("[dim]No documents registered.[/]  Run: docstage add <file>")
        return

    table = Table(title="Documents", show_header=True, header_style="bold")
    table.add_column("ID", style="bold")
    table.add_column("File")
    table.add_column("Level", justify="right")
    for stage in STAGES:
        table.add_column(stage.capitalize(), justify="center")
    table.add_column("Type")

    for doc in documents:
        table.add_row(
            doc.id,
            doc.filename,
            f"{doc.processing_level}/{len(STAGES)}",
            *(_mark(doc.status(stage)) for stage in STAGES),
            doc.document_type or "",
        )
    console.print(table)


def _print_detail(repo: Repository, doc: Document) -> None:
    lines = [
        f"[bold]File:[/]   {doc.filename} ({doc.mime_type}, {doc.file_size} bytes)",
        f"[bold]Level:[/]  {doc.processing_level}/{len(STAGES)}",
    ]
    errors = doc.stage_errors_dict
    for stage in STAGES:
        line = f"  {_mark(doc.status(stage))} {stage:<15} {doc.status(stage)}"
        if stage in errors:
            line += f"  [red]{errors[stage]}[/]"
        lines.append(line)

    if doc.extraction_method:
        lines.append(
            f"[bold]Text:[/]   {doc.text_length} chars, {doc.page_count} pages "
            f"via {doc.extraction_method}"
        )

    current = repo.get_current_classification(doc.id)
    if current is not None:
        lines.append(
            f"[bold]Type:[/]   {current.document_type} (confidence {current.confidence:.2f})"
        )

    extraction = repo.get_extraction(doc.id)
    if extraction is not None:
        lines.append(
            f"[bold]Metadata:[/] {extraction.extraction_method}, "
            f"{extraction.validation_status}, confidence {extraction.confidence:.2f}"
        )
        lines.append(json.dumps(extraction.fields_dict, ensure_ascii=False, indent=2))

    if doc.chunks_count:
        lines.append(f"[bold]Chunks:[/] {doc.chunks_count}")

    console.print(Panel("\n".join(lines), title=doc.id, border_style="cyan", expand=False))
