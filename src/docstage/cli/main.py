"""docstage CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from docstage.cli.add import add_cmd
from docstage.cli.init import init_cmd
from docstage.cli.process import process_cmd
from docstage.cli.prompts import prompts_app
from docstage.cli.reset import reset_cmd
from docstage.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("docstage")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"docstage {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="docstage",
    help=(
        "docstage: progressive document ingestion.\n\n"
        "  docstage add      Register documents.\n"
        "  docstage process  Extract, classify, extract metadata and chunk."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """docstage: progressive document ingestion."""


app.command("init")(init_cmd)
app.command("add")(add_cmd)
app.command("process")(process_cmd)
app.command("status")(status_cmd)
app.command("reset")(reset_cmd)
app.add_typer(prompts_app, name="prompts")


@app.command("version")
def version_cmd() -> None:
    """Show the installed docstage version."""
    typer.echo(f"docstage {_installed_version()}")


if __name__ == "__main__":
    app()
