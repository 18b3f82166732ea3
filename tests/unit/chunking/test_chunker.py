"""Tests for the fixed-window chunker."""

from __future__ import annotations

import pytest

from docstage.chunking.chunker import TextChunker, chunk_type, page_numbers, quality_score
from docstage.config import ChunkingCfg
from docstage.errors import ChunkingError


def _chunker(**cfg) -> TextChunker:
    return TextChunker(ChunkingCfg(**cfg))


# ------------------------------------------------------------------
# chunk_type
# ------------------------------------------------------------------


def test_first_chunk_is_header():
    assert chunk_type("Tabla de contenidos", 0, 1000) == "header"


def test_tail_chunk_is_conclusion():
    assert chunk_type("texto", 950, 1000) == "conclusion"


@pytest.mark.parametrize(
    "content, expected",
    [
        ("Ver la tabla adjunta con los importes", "table"),
        ("Puntos:\n- cuentas\n- obras", "list"),
        ("Orden del día:\n1. Cuentas\n2. Obras", "list"),
        ("• primer punto", "list"),
        ("En resumen, se aprueba todo", "summary"),
        ("Texto normal sin marcas especiales", "content"),
        ("El coste total-neto es alto", "content"),
    ],
)
def test_lexical_chunk_types(content, expected):
    assert chunk_type(content, 100, 1000) == expected


# ------------------------------------------------------------------
# quality_score and pages
# ------------------------------------------------------------------


def test_quality_score_bounds():
    assert quality_score("x") == 0.5
    good = "Primera frase completa. Segunda frase completa.\n\n" + "palabra " * 20
    assert quality_score(good) == pytest.approx(0.9)
    assert 0.1 <= quality_score("@@@@ ### $$$") <= 1.0


def test_quality_score_penalises_symbols():
    assert quality_score("@#$%^&*~" * 2) == pytest.approx(0.4)


def test_page_numbers():
    assert page_numbers(0, 100, 2000) == [1]
    assert page_numbers(1900, 2100, 2000) == [1, 2]
    assert page_numbers(4000, 4001, 2000) == [3]


# ------------------------------------------------------------------
# TextChunker
# ------------------------------------------------------------------


def test_contiguous_chunks_reproduce_text():
    text = ("Acta de la junta ordinaria. " * 40).strip()
    chunks = _chunker(chunk_size=100).chunk("doc-1", text)

    assert "".join(c.content for c in chunks) == text
    assert [c.chunk_number for c in chunks] == list(range(1, len(chunks) + 1))
    assert chunks[0].start_offset == 0
    assert chunks[-1].end_offset == len(text)
    for prev, cur in zip(chunks, chunks[1:]):
        assert prev.end_offset == cur.start_offset
    assert all(c.content_length <= 100 for c in chunks)
    assert chunks[0].chunk_type == "header"
    assert all(c.document_id == "doc-1" for c in chunks)
    assert all(c.chunking_method == "fixed-size" for c in chunks)


def test_deterministic():
    text = "Texto de prueba. " * 100
    first = _chunker(chunk_size=64).chunk("d", text)
    second = _chunker(chunk_size=64).chunk("d", text)
    assert first == second


def test_short_text_single_chunk():
    chunks = _chunker(chunk_size=800).chunk("d", "Aviso breve.")
    assert len(chunks) == 1
    assert chunks[0].content == "Aviso breve."
    assert chunks[0].page_numbers == [1]


def test_default_size_windows():
    text = ("Lorem ipsum dolor sit amet. " * 80)[:2000]
    chunks = _chunker(chunk_size=800).chunk("d", text)
    assert [(c.start_offset, c.end_offset) for c in chunks] == [(0, 800), (800, 1600), (1600, 2000)]
    assert chunks[0].chunk_type == "header"


def test_whitespace_window_merged_into_previous():
    text = "a" * 10 + " " * 10 + "b" * 5
    chunks = _chunker(chunk_size=10).chunk("d", text)
    assert [(c.start_offset, c.end_offset) for c in chunks] == [(0, 20), (20, 25)]
    assert "".join(c.content for c in chunks) == text


def test_leading_whitespace_merged_into_next():
    text = " " * 10 + "contenido"
    chunks = _chunker(chunk_size=10).chunk("d", text)
    assert [(c.start_offset, c.end_offset) for c in chunks] == [(0, 19)]


def test_overlap():
    text = "0123456789" * 3
    chunks = _chunker(chunk_size=10, overlap=5).chunk("d", text)
    assert [(c.start_offset, c.end_offset) for c in chunks] == [
        (0, 10),
        (5, 15),
        (10, 20),
        (15, 25),
        (20, 30),
    ]


def test_max_chunks_truncates():
    text = "x" * 100
    chunks = _chunker(chunk_size=10, max_chunks=3).chunk("d", text)
    assert len(chunks) == 3
    assert chunks[-1].end_offset == 30


def test_max_chunks_with_overlap():
    chunks = _chunker(chunk_size=10, overlap=5, max_chunks=2).chunk("d", "y" * 100)
    assert len(chunks) == 2


def test_page_numbers_follow_offsets():
    text = "z" * 5000
    chunks = _chunker(chunk_size=1500, chars_per_page=2000).chunk("d", text)
    assert chunks[1].page_numbers == [1, 2]
    assert chunks[-1].page_numbers == [3]


def test_unknown_strategy_falls_back():
    chunker = _chunker(strategy="semantic")
    assert chunker.method == "semantic"
    assert _chunker(strategy="bogus").method == "fixed-size"
    chunks = chunker.chunk("d", "texto " * 10)
    assert chunks[0].chunking_method == "semantic"


@pytest.mark.parametrize("text", ["", "   \n\n  "])
def test_empty_text_raises(text):
    with pytest.raises(ChunkingError, match="empty"):
        _chunker().chunk("d", text)


def test_non_positive_chunk_size_raises():
    with pytest.raises(ChunkingError, match="chunk_size"):
        _chunker(chunk_size=0).chunk("d", "texto")
