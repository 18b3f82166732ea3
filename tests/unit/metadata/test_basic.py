"""Tests for basic metadata used when no strategy applies."""

from __future__ import annotations

from docstage.metadata.basic import basic_metadata, detect_language, first_date, title_from_filename


def test_title_from_filename():
    assert title_from_filename("acta_junta-2024.06.pdf") == "acta junta 2024 06"
    assert title_from_filename("Informe   anual.pdf") == "Informe anual"


def test_detect_language():
    assert detect_language("Se aprueba la propuesta de la comunidad para el año") == "es"
    assert detect_language("The board approved the budget for the year") == "en"
    assert detect_language("12345 ###") is None


def test_first_date_picks_earliest_position():
    text = "Firmado el 3/4/2024. Reunión del 12 de marzo de 2024."
    assert first_date(text) == "2024-04-03"


def test_first_date_skips_invalid():
    assert first_date("Fecha 31/02/2024 y luego 2024-01-15") == "2024-01-15"
    assert first_date("sin fecha") is None


def test_basic_metadata():
    text = "Circular informativa de la comunidad. Fecha: 01/02/2024"
    meta = basic_metadata("circular_vecinos.pdf", text, page_count=1)
    assert meta == {
        "title": "circular vecinos",
        "page_count": 1,
        "text_length": len(text),
        "word_count": 7,
        "language": "es",
        "document_date": "2024-02-01",
    }
