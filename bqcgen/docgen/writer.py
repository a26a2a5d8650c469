"""
bqcgen/docgen/writer.py

Serialise a DocumentTree into .docx bytes with python-docx.
"""

from __future__ import annotations

import logging
from io import BytesIO

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt

from .nodes import CENTER, DEFAULT_FONT, DEFAULT_SIZE, JUSTIFY, LEFT, RIGHT, Cell, DocumentTree, Paragraph, Run, Table

logger = logging.getLogger(__name__)

_ALIGNMENTS = {
    LEFT: WD_ALIGN_PARAGRAPH.LEFT,
    CENTER: WD_ALIGN_PARAGRAPH.CENTER,
    RIGHT: WD_ALIGN_PARAGRAPH.RIGHT,
    JUSTIFY: WD_ALIGN_PARAGRAPH.JUSTIFY,
}


def _write_run(target, run: Run) -> None:
    parts = run.text.split("\n")
    for index, part in enumerate(parts):
        if index:
            target.add_run().add_break()
        if not part and len(parts) > 1:
            continue
        docx_run = target.add_run(part)
        docx_run.bold = run.bold
        docx_run.italic = run.italic
        docx_run.underline = run.underline
        docx_run.font.name = run.font
        docx_run.font.size = Pt(run.size)


def _write_paragraph(target, node: Paragraph) -> None:
    target.alignment = _ALIGNMENTS.get(node.alignment, WD_ALIGN_PARAGRAPH.LEFT)
    if node.spacing_after is not None:
        target.paragraph_format.space_after = Pt(node.spacing_after)
    for run in node.runs:
        _write_run(target, run)


def _fill_cell(target, node: Cell) -> None:
    for index, paragraph in enumerate(node.paragraphs):
        docx_paragraph = target.paragraphs[0] if index == 0 else target.add_paragraph()
        _write_paragraph(docx_paragraph, paragraph)


def _write_table(document, node: Table) -> None:
    columns = node.column_count
    if columns == 0:
        return

    table = document.add_table(rows=len(node.rows), cols=columns)
    if node.borders:
        table.style = "Table Grid"

    for row_index, row in enumerate(node.rows):
        column = 0
        for cell in row:
            target = table.cell(row_index, column)
            if cell.span > 1:
                target = target.merge(table.cell(row_index, column + cell.span - 1))
            _fill_cell(target, cell)
            column += cell.span

        # Merged rows share one cell object, so widths only apply to plain rows.
        if node.widths and all(cell.span == 1 for cell in row):
            for column_index, width in enumerate(node.widths[:columns]):
                table.cell(row_index, column_index).width = Inches(width)


def write_docx(tree: DocumentTree) -> bytes:
    document = Document()

    style = document.styles["Normal"]
    style.font.name = DEFAULT_FONT
    style.font.size = Pt(DEFAULT_SIZE)

    if tree.title:
        document.core_properties.title = tree.title

    for node in tree.nodes:
        if isinstance(node, Table):
            _write_table(document, node)
        else:
            _write_paragraph(document.add_paragraph(), node)

    buffer = BytesIO()
    document.save(buffer)
    content = buffer.getvalue()
    logger.debug("Serialised %d nodes into %d bytes", len(tree.nodes), len(content))
    return content
