"""High level PDF → text extraction pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from .assembler import TextAssembler
from .fonts import FontResolver
from .interpreter import ContentInterpreter
from .objects import Document, PageRecord
from .resilience import FailureClass, WarningLog
from .types import ExtractionOptions, ExtractionResult

__all__ = [
    "PdfTextExtractor",
    "extract_text",
    "extract_text_from_path",
]

LOGGER = logging.getLogger(__name__)


class PdfTextExtractor:
    """Extract text from in-memory PDF data, recovering from damage."""

    def __init__(self, options: ExtractionOptions | None = None) -> None:
        self.options = options or ExtractionOptions()

    def extract(self, data: bytes | bytearray | memoryview) -> ExtractionResult:
        """Run the whole pipeline on ``data``.

        Structural damage raises :class:`~pdftextx.exceptions.StructuralError`;
        everything else is recorded in :attr:`ExtractionResult.warnings`.
        """

        options = self.options
        document = Document.load(data, password=options.password)
        page_numbers = self._resolve_page_numbers(document.page_count, options.page_numbers)
        log = WarningLog()
        fonts = FontResolver(document.resolver, log)
        assembler = TextAssembler(detect_breaks=options.detect_breaks, word_gap_ratio=options.word_gap_ratio)

        pages: list[str] = []
        skipped: list[int] = []
        for index in page_numbers:
            page = document.pages[index]
            with log.scope(page=index):
                text = self._extract_page(document, page, fonts, log, assembler)
            if text is None:
                skipped.append(index)
                text = ""
            pages.append(text)

        LOGGER.debug(
            "Extracted %d page(s) with %d warning(s) and %d font(s)",
            len(pages),
            len(log),
            len(fonts),
        )
        return ExtractionResult(
            text=assembler.join_pages(pages, options.page_separator),
            pages=tuple(pages),
            page_count=document.page_count,
            skipped_pages=tuple(skipped),
            warnings=tuple(log.events),
        )

    def _extract_page(
        self,
        document: Document,
        page: PageRecord,
        fonts: FontResolver,
        log: WarningLog,
        assembler: TextAssembler,
    ) -> str | None:
        try:
            data = document.resolver.content_bytes(page.contents)
        except Exception as exc:
            log.recover(FailureClass.CONTENT_STREAM_DECODE, error=exc)
            return None
        interpreter = ContentInterpreter(
            document.resolver,
            fonts,
            log,
            max_xobject_depth=self.options.max_xobject_depth,
        )
        runs = interpreter.run(data, page.resources)
        return assembler.assemble(runs)

    def _resolve_page_numbers(
        self,
        total_pages: int,
        requested_pages: Sequence[int] | None,
    ) -> list[int]:
        if requested_pages is None:
            return list(range(total_pages))
        result: list[int] = []
        for page in requested_pages:
            if page < 0 or page >= total_pages:
                raise ValueError(f"Page index {page} out of bounds for document with {total_pages} pages")
            result.append(page)
        return result


def extract_text(
    data: bytes | bytearray | memoryview,
    *,
    options: ExtractionOptions | None = None,
) -> str:
    """Convenience wrapper around :class:`PdfTextExtractor`."""

    return PdfTextExtractor(options).extract(data).text


def extract_text_from_path(
    path: str | Path,
    *,
    options: ExtractionOptions | None = None,
) -> ExtractionResult:
    """Read ``path`` into memory and extract its text."""

    return PdfTextExtractor(options).extract(Path(path).read_bytes())
