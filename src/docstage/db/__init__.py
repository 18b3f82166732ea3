"""docstage database layer."""

from docstage.db.connection import Database
from docstage.db.migrations import MIGRATIONS, run_migrations
from docstage.db.repository import Repository
from docstage.db.schema import initialize

__all__ = [
    "Database",
    "Repository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
