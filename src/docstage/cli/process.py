"""docstage process: run the ingestion pipeline over registered documents."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Annotated

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from docstage.cli.common import DEFAULT_DB, console, load_settings, open_db
from docstage.cli.errors import (
    err_document_not_found,
    err_no_api_key,
    warn_interrupted,
    warn_stage_failed,
)
from docstage.db.repository import Repository
from docstage.errors import AuthenticationError
from docstage.llm_client import validate_api_key
from docstage.pipeline.orchestrator import MAX_LEVEL, PipelineOrchestrator, PipelineResult


def process_cmd(
    document_ids: Annotated[
        list[str] | None,
        typer.Argument(help="Document ids. Defaults to every document below the target level."),
    ] = None,
    level: Annotated[
        int,
        typer.Option("--level", "-l", min=1, max=MAX_LEVEL, help="Target processing level (1-4)."),
    ] = MAX_LEVEL,
    workers: Annotated[
        int,
        typer.Option("--workers", "-w", min=1, help="Documents processed concurrently."),
    ] = 1,
    retry_failed: Annotated[
        bool,
        typer.Option("--retry-failed", help="Reset and re-run failed or interrupted stages."),
    ] = False,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .docstage.db."),
    ] = DEFAULT_DB,
) -> None:
    """Advance documents through extraction, classification, metadata and chunking."""
    cfg = load_settings()
    conn = open_db(db)
    repo = Repository(conn)
    try:
        if document_ids:
            for doc_id in document_ids:
                if repo.get_document(doc_id) is None:
                    console.print(err_document_not_found(doc_id))
                    raise typer.Exit(1)
            ids = list(document_ids)
        else:
            ids = [d.id for d in repo.list_documents() if d.processing_level < level]

        if not ids:
            console.print("[dim]Nothing to process.[/]")
            raise typer.Exit(0)

        if level >= 2:
            try:
                validate_api_key(cfg.llm.model)
            except AuthenticationError as exc:
                console.print(err_no_api_key(str(exc), cfg.llm.model))
                raise typer.Exit(1) from exc

        orchestrator = PipelineOrchestrator.from_config(cfg, repo)
        cancel = threading.Event()
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task(f"Processing {len(ids)} document(s)…", total=None)
                results = orchestrator.process_many(
                    ids,
                    target_level=level,
                    max_workers=workers,
                    cancel=cancel,
                    retry_failed=retry_failed,
                )
        except KeyboardInterrupt:
            console.print(warn_interrupted())
            raise typer.Exit(130) from None
    finally:
        conn.close()

    _print_results(list(results.values()))
    if any(not r.success for r in results.values()):
        raise typer.Exit(1)


def _print_results(results: list[PipelineResult]) -> None:
    table = Table(title="Pipeline results", show_header=True, header_style="bold")
    table.add_column("Document", style="bold")
    table.add_column("Level", justify="right")
    table.add_column("Result")
    table.add_column("Error")

    for r in results:
        if r.success:
            outcome = "[green]✓ done[/]"
        elif r.cancelled:
            outcome = "[yellow]cancelled[/]"
        else:
            outcome = "[red]✗ failed[/]"
        table.add_row(r.document_id, f"{r.processing_level}/{r.target_level}", outcome, r.error or "")
    console.print(table)

    for r in results:
        failed = next((s.stage for s in r.stages if s.status in ("failed", "halted")), None)
        if failed:
            console.print(warn_stage_failed(r.document_id, failed))
