"""Tests for the local object store."""

from __future__ import annotations

import hashlib

import pytest

from docstage.errors import ObjectNotFoundError
from docstage.storage import LocalObjectStore, content_hash


@pytest.fixture
def store(tmp_path):
    return LocalObjectStore(tmp_path / "objects")


def test_put_then_get(store):
    ref = store.put("factura 2024.pdf", b"%PDF-1.4 data")
    assert store.get(ref) == b"%PDF-1.4 data"
    assert store.exists(ref)


def test_reference_is_content_addressed_and_sanitised(store):
    data = b"abc"
    ref = store.put("Acta (junio)/2024.pdf", data)
    prefix, name = ref.split("/")
    assert prefix == hashlib.sha256(data).hexdigest()[:16]
    assert name == "2024.pdf"


def test_unsafe_characters_replaced(store):
    ref = store.put("acta junta ñ.pdf", b"x")
    assert ref.endswith("/acta_junta_.pdf")


def test_get_missing_raises(store):
    with pytest.raises(ObjectNotFoundError):
        store.get("0000/missing.pdf")
    assert not store.exists("0000/missing.pdf")


def test_reference_cannot_escape_root(store, tmp_path):
    (tmp_path / "secret.txt").write_text("x")
    with pytest.raises(ObjectNotFoundError, match="escapes"):
        store.get("../secret.txt")


def test_content_hash():
    assert content_hash(b"hola") == hashlib.sha256(b"hola").hexdigest()
