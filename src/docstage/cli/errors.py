"""docstage rich error messages: actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from docstage.cli.errors import err_no_db
    console.print(err_no_db(".docstage.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations

from docstage.db.models import STAGES


def err_no_db(db_path: str = ".docstage.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  docstage init"
    )


def err_no_api_key(detail: str, model: str) -> str:
    """Provider credentials missing for the configured model."""
    return (
        f"[red]Error:[/] {detail}\n"
        f"  Model in use: {model}\n"
        "  Or choose another model:  export DOCSTAGE_LLM_MODEL=<provider/model>"
    )


def err_config(detail: str) -> str:
    """Config file could not be loaded."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {detail}\n"
        "  Fix docstage.yaml (or ~/.docstage/config.yaml) and retry."
    )


def err_document_not_found(document_id: str) -> str:
    """Unknown document identifier."""
    return (
        f"[yellow]Document not found:[/] '{document_id}'.\n"
        "  Run:  docstage status  to list registered documents."
    )


def err_file_not_found(path: str) -> str:
    """File passed to docstage add does not exist."""
    return (
        f"[red]Error:[/] File not found: '{path}'\n"
        "  Check the path and retry."
    )


def err_invalid_stage(stage: str) -> str:
    """--from-stage is not a pipeline stage."""
    return (
        f"[red]Error:[/] Unknown stage '{stage}'.\n"
        f"  Valid stages: {', '.join(STAGES)}"
    )


def err_prompt_file(path: str, detail: str) -> str:
    """Prompt YAML could not be loaded."""
    return (
        f"[red]Error:[/] Could not load prompts from '{path}'.\n"
        f"  {detail}\n"
        "  Expected:\n"
        "    prompts:\n"
        "      - name: invoice_extractor\n"
        "        body: \"... {document_text} ...\""
    )


def warn_stage_failed(document_id: str, stage: str) -> str:
    """Shown after a run halted on a failed stage."""
    return (
        f"[yellow]⚠[/] Document '{document_id}' stopped at stage '{stage}'.\n"
        f"  Inspect:  docstage status {document_id}\n"
        f"  Retry:    docstage process {document_id} --retry-failed"
    )


def warn_interrupted() -> str:
    """Shown when a process run is stopped with Ctrl-C."""
    return (
        "[yellow]Interrupted:[/] queued documents were skipped and running ones "
        "stopped at their next stage boundary.\n"
        "  Inspect:  docstage status\n"
        "  Resume:   docstage process --retry-failed"
    )
