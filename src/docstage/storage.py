"""Binary object store for uploaded documents.

Documents are addressed by an opaque storage reference; the pipeline only ever
reads bytes back through :meth:`LocalObjectStore.get`.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path

import structlog

from docstage.errors import ObjectNotFoundError

log = structlog.get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class LocalObjectStore:
    """Filesystem-backed object store rooted at a single directory.

    References have the form ``<sha256-prefix>/<sanitised-filename>`` and are
    always relative to the root.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def put(self, filename: str, data: bytes) -> str:
        """Store *data* and return its storage reference."""
        digest = hashlib.sha256(data).hexdigest()
        safe_name = _UNSAFE_CHARS.sub("_", Path(filename).name) or "document"
        reference = f"{digest[:16]}/{safe_name}"
        path = self._resolve(reference)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        log.debug("object stored", reference=reference, size=len(data))
        return reference

    def get(self, reference: str) -> bytes:
        """Return the bytes stored under *reference*.

        Raises:
            ObjectNotFoundError: If nothing is stored under the reference.
        """
        path = self._resolve(reference)
        if not path.is_file():
            raise ObjectNotFoundError(f"No object stored at {reference!r}")
        return path.read_bytes()

    def exists(self, reference: str) -> bool:
        return self._resolve(reference).is_file()

    def _resolve(self, reference: str) -> Path:
        root = self.root.resolve()
        path = (root / reference).resolve()
        if root != path and root not in path.parents:
            raise ObjectNotFoundError(f"Reference escapes the object store: {reference!r}")
        return path


def content_hash(data: bytes) -> str:
    """Return the SHA-256 hex digest used for duplicate detection."""
    return hashlib.sha256(data).hexdigest()
