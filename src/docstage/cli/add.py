"""docstage add: store document bytes and register them as pending."""

from __future__ import annotations

import mimetypes
import uuid
from pathlib import Path
from typing import Annotated

import typer

from docstage.cli.common import DEFAULT_DB, console, load_settings, open_db
from docstage.cli.errors import err_file_not_found
from docstage.db.models import Document
from docstage.db.repository import Repository
from docstage.storage import LocalObjectStore, content_hash


def add_cmd(
    files: Annotated[
        list[Path],
        typer.Argument(help="Document file(s) to register."),
    ],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to .docstage.db."),
    ] = DEFAULT_DB,
    organization: Annotated[
        str | None,
        typer.Option("--organization", help="Organization identifier."),
    ] = None,
    community: Annotated[
        str | None,
        typer.Option("--community", help="Community identifier."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", help="Register even if identical content exists."),
    ] = False,
) -> None:
    """Register documents for processing. Prints the new document ids."""
    for path in files:
        if not path.is_file():
            console.print(err_file_not_found(str(path)))
            raise typer.Exit(1)

    cfg = load_settings()
    store = LocalObjectStore(Path.cwd() / cfg.storage.root)
    conn = open_db(db)
    repo = Repository(conn)
    try:
        for path in files:
            data = path.read_bytes()
            digest = content_hash(data)
            existing = repo.get_document_by_hash(digest)
            if existing and not force:
                console.print(
                    f"[yellow]Skipped[/] {path.name}: identical to document {existing.id}"
                )
                continue

            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            document = Document(
                id=str(uuid.uuid4()),
                filename=path.name,
                file_path=store.put(path.name, data),
                mime_type=mime_type,
                file_size=len(data),
                content_hash=digest,
                organization_id=organization,
                community_id=community,
            )
            repo.add_document(document)
            console.print(f"  [green]✓[/] {path.name}  [bold]{document.id}[/]")
    finally:
        conn.close()
