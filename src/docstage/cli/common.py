"""Shared helpers for docstage CLI commands."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import typer
from rich.console import Console

from docstage.cli.errors import err_config, err_no_db
from docstage.config import ConfigError, DocstageConfig, load_config
from docstage.db.connection import Database
from docstage.db.schema import initialize
from docstage.logging_config import configure_logging

console = Console()

DEFAULT_DB = Path(".docstage.db")


def open_db(db_path: Path, *, must_exist: bool = True) -> sqlite3.Connection:
    """Open the project database and run migrations.

    Exits with an actionable message when *must_exist* and the file is missing.
    """
    if must_exist and not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)
    conn = Database(db_path).connect()
    initialize(conn)
    return conn


def load_settings(project_dir: Path | None = None) -> DocstageConfig:
    """Load config and configure logging, exiting cleanly on ConfigError."""
    try:
        cfg = load_config(project_dir)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    configure_logging(cfg.logging.level, cfg.logging.json)
    return cfg
