"""Shared type definitions for text extraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .resilience import WarningEvent

__all__ = [
    "ExtractionOptions",
    "ExtractionResult",
]


@dataclass(slots=True)
class ExtractionOptions:
    """Options controlling how text is extracted from a PDF."""

    page_numbers: Sequence[int] | None = None
    page_separator: str = "\f"
    detect_breaks: bool = False
    word_gap_ratio: float = 0.15
    max_xobject_depth: int = 8
    password: str | None = None


@dataclass(slots=True)
class ExtractionResult:
    """Extracted text together with what had to be recovered on the way."""

    text: str
    pages: tuple[str, ...]
    page_count: int
    skipped_pages: tuple[int, ...] = ()
    warnings: tuple[WarningEvent, ...] = ()
