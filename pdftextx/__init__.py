"""Resilient text extraction for damaged and non-conformant PDF files."""

from __future__ import annotations

from .exceptions import InvalidPDFError, PdfTextExtractError, StructuralError
from .extractor import PdfTextExtractor, extract_text, extract_text_from_path
from .resilience import FAILURE_POLICIES, FailureClass, WarningEvent, WarningLog
from .types import ExtractionOptions, ExtractionResult

__all__ = [
    "ExtractionOptions",
    "ExtractionResult",
    "FAILURE_POLICIES",
    "FailureClass",
    "InvalidPDFError",
    "PdfTextExtractError",
    "PdfTextExtractor",
    "StructuralError",
    "WarningEvent",
    "WarningLog",
    "extract_text",
    "extract_text_from_path",
]

__version__ = "0.1.0"
