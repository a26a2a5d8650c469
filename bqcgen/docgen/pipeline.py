"""
bqcgen/docgen/pipeline.py

Single entry point for document generation.

generate_document() either returns a complete document or raises
DocumentGenerationError; a partially rendered buffer is never returned.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .formatting import filename_date
from .record import ProcurementRecord
from .render import render_document
from .writer import write_docx

logger = logging.getLogger(__name__)

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
SUPPORTED_FORMATS = ("docx",)

# Characters that would break the quoted Content-Disposition filename.
_HEADER_UNSAFE_CHARS = re.compile(r'["\\\r\n]')


class DocumentGenerationError(Exception):
    """Rendering or serialisation failed; nothing was produced."""


class UnsupportedFormatError(ValueError):
    pass


@dataclass(frozen=True)
class GeneratedDocument:
    content: bytes
    filename: str
    content_type: str = DOCX_CONTENT_TYPE

    @property
    def size(self) -> int:
        return len(self.content)


def build_filename(ref_number: str, today: date) -> str:
    """BQC_<ref>_<dd-mm-yyyy>.docx, keeping the reference as typed apart from header-breaking characters."""
    ref = _HEADER_UNSAFE_CHARS.sub("_", (ref_number or "").strip()) or "document"
    return f"BQC_{ref}_{filename_date(today)}.docx"


def check_format(output_format: Optional[str]) -> str:
    if output_format is None:
        return "docx"
    if not isinstance(output_format, str):
        raise UnsupportedFormatError("Only DOCX format is currently supported")
    fmt = output_format.strip().lower() or "docx"
    if fmt not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError("Only DOCX format is currently supported")
    return fmt


def generate_document(
    record: ProcurementRecord,
    today: Optional[date] = None,
    output_format: Optional[str] = "docx",
) -> GeneratedDocument:
    check_format(output_format)
    today = today or date.today()

    try:
        tree = render_document(record, today=today)
        content = write_docx(tree)
    except Exception as exc:
        logger.error("Error generating BQC document for ref %s", record.ref_number, exc_info=True)
        raise DocumentGenerationError(str(exc)) from exc

    document = GeneratedDocument(content=content, filename=build_filename(record.ref_number, today))
    logger.info("Generated BQC document for ref %s (%d bytes)", record.ref_number, document.size)
    return document
