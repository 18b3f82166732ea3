"""docstage reset: return a stage and every later stage to pending."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from docstage.cli.common import DEFAULT_DB, console, open_db
from docstage.cli.errors import err_document_not_found, err_invalid_stage
from docstage.db.models import STAGES
from docstage.db.repository import Repository


def reset_cmd(
    document_id: Annotated[str, typer.Argument(help="Document id.")],
    from_stage: Annotated[
        str,
        typer.Option("--from-stage", "-s", help=f"First stage to reset ({', '.join(STAGES)})."),
    ] = STAGES[0],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .docstage.db."),
    ] = DEFAULT_DB,
) -> None:
    """Reset a document so the given stage and later ones run again."""
    if from_stage not in STAGES:
        console.print(err_invalid_stage(from_stage))
        raise typer.Exit(1)

    conn = open_db(db)
    repo = Repository(conn)
    try:
        if repo.get_document(document_id) is None:
            console.print(err_document_not_found(document_id))
            raise typer.Exit(1)
        repo.reset_stages(document_id, from_stage)
        level = repo.require_document(document_id).processing_level
    finally:
        conn.close()

    console.print(
        f"[green]✓[/] Reset {document_id} from '{from_stage}' (processing level now {level})."
    )
