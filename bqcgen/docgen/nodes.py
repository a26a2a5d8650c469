"""
bqcgen/docgen/nodes.py

Format-neutral document primitives produced by the renderer and consumed by
the writer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union

DEFAULT_FONT = "Arial"
DEFAULT_SIZE = 11.0

LEFT = "left"
CENTER = "center"
RIGHT = "right"
JUSTIFY = "justify"


@dataclass
class Run:
    text: str
    bold: bool = False
    italic: bool = False
    underline: bool = False
    font: str = DEFAULT_FONT
    size: float = DEFAULT_SIZE


@dataclass
class Paragraph:
    runs: List[Run] = field(default_factory=list)
    alignment: str = LEFT
    spacing_after: Optional[float] = 6.0

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass
class Cell:
    paragraphs: List[Paragraph] = field(default_factory=list)
    span: int = 1

    @property
    def text(self) -> str:
        return "\n".join(p.text for p in self.paragraphs)


@dataclass
class Table:
    rows: List[List[Cell]] = field(default_factory=list)
    borders: bool = True
    widths: Optional[List[float]] = None  # inches per column

    @property
    def column_count(self) -> int:
        return max((sum(cell.span for cell in row) for row in self.rows), default=0)


Node = Union[Paragraph, Table]


@dataclass
class DocumentTree:
    nodes: List[Node] = field(default_factory=list)
    title: str = ""

    def paragraphs(self) -> Iterator[Paragraph]:
        """Every paragraph in reading order, including those inside tables."""
        for node in self.nodes:
            if isinstance(node, Table):
                for row in node.rows:
                    for cell in row:
                        yield from cell.paragraphs
            else:
                yield node

    @property
    def text(self) -> str:
        return "\n".join(p.text for p in self.paragraphs())


# ---------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------
def text(value: str, bold: bool = False, italic: bool = False, underline: bool = False) -> Run:
    return Run(text=value, bold=bold, italic=italic, underline=underline)


def para(*parts: Union[str, Run], alignment: str = JUSTIFY, bold: bool = False, spacing_after: Optional[float] = 6.0) -> Paragraph:
    runs = [part if isinstance(part, Run) else Run(text=part, bold=bold) for part in parts]
    return Paragraph(runs=runs, alignment=alignment, spacing_after=spacing_after)


def heading(value: str) -> Paragraph:
    return Paragraph(runs=[Run(text=value, bold=True)], alignment=LEFT, spacing_after=6.0)


def cell(*parts: Union[str, Run, Paragraph], bold: bool = False, span: int = 1) -> Cell:
    paragraphs = []
    for part in parts:
        if isinstance(part, Paragraph):
            paragraphs.append(part)
        else:
            paragraphs.append(para(part, alignment=LEFT, bold=bold, spacing_after=0))
    return Cell(paragraphs=paragraphs, span=span)
