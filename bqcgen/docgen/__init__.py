"""
bqcgen/docgen

Document assembly pipeline: normalize -> calculate -> number -> render -> write.
Nothing in this package touches Flask or the database.
"""

from .pipeline import (
    DOCX_CONTENT_TYPE,
    DocumentGenerationError,
    GeneratedDocument,
    UnsupportedFormatError,
    generate_document,
)
from .record import ProcurementRecord, from_payload, to_payload
from .validation import validate_record

__all__ = [
    "DOCX_CONTENT_TYPE",
    "DocumentGenerationError",
    "GeneratedDocument",
    "ProcurementRecord",
    "UnsupportedFormatError",
    "from_payload",
    "generate_document",
    "to_payload",
    "validate_record",
]
