from datetime import date
from io import BytesIO

import pytest
from docx import Document

from bqcgen.docgen import pipeline
from bqcgen.docgen.nodes import DocumentTree, Table, cell, para
from bqcgen.docgen.pipeline import (
    DOCX_CONTENT_TYPE,
    DocumentGenerationError,
    UnsupportedFormatError,
    build_filename,
    check_format,
    generate_document,
)
from bqcgen.docgen.record import from_payload
from bqcgen.docgen.writer import write_docx

TODAY = date(2024, 3, 5)


def _document_text(content: bytes) -> str:
    document = Document(BytesIO(content))
    lines = [p.text for p in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            lines.extend(c.text for c in row.cells)
    return "\n".join(lines)


def test_generate_goods_document(goods_payload):
    document = generate_document(from_payload(goods_payload), today=TODAY)

    assert document.filename == "BQC_CPO-2024-001_05-03-2024.docx"
    assert document.content_type == DOCX_CONTENT_TYPE
    assert document.size == len(document.content) > 0

    body = _document_text(document.content)
    assert "PREAMBLE" in body
    assert "Rs. 2.5 Lakh" in body
    assert "Rs. 0.54 Crore" in body
    assert "30 Units" in body


def test_generated_document_title_and_font(goods_payload):
    document = Document(BytesIO(generate_document(from_payload(goods_payload), today=TODAY).content))
    assert document.core_properties.title == "BQC CPO-2024-001"
    assert document.styles["Normal"].font.name == "Arial"


def test_lot_wise_document_round_trips_through_word(lot_wise_payload):
    content = generate_document(from_payload(lot_wise_payload), today=TODAY).content
    body = _document_text(content)
    assert "Lot 2: South region" in body
    assert "45 Units" in body


@pytest.mark.parametrize(
    "ref, expected",
    [
        ("CPO-2024-001", "BQC_CPO-2024-001_05-03-2024.docx"),
        ("CPO/2024/1", "BQC_CPO/2024/1_05-03-2024.docx"),
        (" CPO 2024 001 ", "BQC_CPO 2024 001_05-03-2024.docx"),
        ('A"B\r\nC', "BQC_A_B__C_05-03-2024.docx"),
        ("", "BQC_document_05-03-2024.docx"),
        ("   ", "BQC_document_05-03-2024.docx"),
    ],
)
def test_build_filename(ref, expected):
    assert build_filename(ref, TODAY) == expected


def test_check_format():
    assert check_format(None) == "docx"
    assert check_format("") == "docx"
    assert check_format(" DOCX ") == "docx"
    with pytest.raises(UnsupportedFormatError, match="Only DOCX format is currently supported"):
        check_format("pdf")


@pytest.mark.parametrize("value", [1, True, ["docx"], {"type": "docx"}])
def test_check_format_rejects_non_string_values(value):
    with pytest.raises(UnsupportedFormatError):
        check_format(value)


def test_unsupported_format_is_rejected_before_rendering(goods_payload, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("renderer should not run")

    monkeypatch.setattr(pipeline, "render_document", fail)
    with pytest.raises(UnsupportedFormatError):
        generate_document(from_payload(goods_payload), output_format="pdf")


def test_render_failure_raises_generation_error(goods_payload, monkeypatch):
    def broken(record, today=None):
        raise KeyError("boom")

    monkeypatch.setattr(pipeline, "render_document", broken)
    with pytest.raises(DocumentGenerationError):
        generate_document(from_payload(goods_payload), today=TODAY)


def test_writer_merges_spanning_cells_and_breaks_lines():
    tree = DocumentTree(
        nodes=[
            para("first\nsecond"),
            Table(rows=[[cell("A"), cell("B")], [cell("Merged", span=2)]], widths=[1.0, 2.0]),
        ],
        title="Sample",
    )
    document = Document(BytesIO(write_docx(tree)))

    assert document.paragraphs[0].text == "first\nsecond"
    table = document.tables[0]
    assert table.style.name == "Table Grid"
    assert table.cell(1, 0).text == "Merged"
    assert table.cell(1, 1).text == "Merged"
