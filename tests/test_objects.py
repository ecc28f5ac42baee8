from __future__ import annotations

from io import BytesIO

import pytest
from pypdf import PdfReader
from pypdf.generic import DictionaryObject, IndirectObject, NameObject, NumberObject

from pdftextx import PdfTextExtractor
from pdftextx.exceptions import InvalidPDFError, StructuralError
from pdftextx.objects import UNRESOLVED, Document, ObjectResolver, reference_of

CATALOG = b"<< /Type /Catalog /Pages 2 0 R >>"
PAGES = b"<< /Type /Pages /Kids [3 0 R] /Count 1 /Resources << /Font << /F1 6 0 R >> >> /MediaBox [0 0 200 300] >>"
PAGE = b"<< /Type /Page /Parent 2 0 R /Contents 4 0 R >>"
CONTENT = b"<< /Length 5 >>\nstream\nq Q  \nendstream"
FONT = b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>"


def _reader(data: bytes) -> PdfReader:
    return PdfReader(BytesIO(data), strict=False)


def test_resolve_follows_references_and_is_idempotent(raw_pdf) -> None:
    data = raw_pdf({1: CATALOG, 2: PAGES, 3: PAGE, 4: CONTENT, 6: FONT, 7: b"6 0 R"}, root=1)
    resolver = ObjectResolver(_reader(data))

    first = resolver.resolve((7, 0))
    second = resolver.resolve((7, 0))

    assert isinstance(first, DictionaryObject)
    assert first == second
    assert resolver.resolve_name(dict.get(first, "/BaseFont")) == "/Helvetica"


def test_reference_chain_reaches_font_during_extraction(raw_pdf) -> None:
    content = b"BT /F1 12 Tf (Chained) Tj ET"
    stream = b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream"
    pages = PAGES.replace(b"/F1 6 0 R", b"/F1 7 0 R")
    data = raw_pdf({1: CATALOG, 2: pages, 3: PAGE, 4: stream, 6: FONT, 7: b"10 0 R", 10: b"6 0 R"}, root=1)

    result = PdfTextExtractor().extract(data)

    assert result.text == "Chained"
    assert result.warnings == ()


def test_dangling_and_cyclic_references_are_unresolved(raw_pdf) -> None:
    data = raw_pdf({1: CATALOG, 2: PAGES, 3: PAGE, 4: CONTENT, 8: b"9 0 R", 9: b"8 0 R"}, root=1)
    reader = _reader(data)
    resolver = ObjectResolver(reader)

    assert resolver.resolve(IndirectObject(42, 0, reader)) is UNRESOLVED
    assert resolver.resolve((8, 0)) is UNRESOLVED
    assert resolver.resolve_dict((8, 0)) is None
    assert resolver.get(DictionaryObject({NameObject("/X"): IndirectObject(42, 0, reader)}), "/X", "d") == "d"
    assert not UNRESOLVED


def test_resolve_number_and_array_helpers(raw_pdf) -> None:
    data = raw_pdf({1: CATALOG, 2: PAGES, 3: PAGE, 4: CONTENT, 5: b"[1 2 5 0 R]"}, root=1)
    resolver = ObjectResolver(_reader(data))

    assert resolver.resolve_number(NumberObject(7)) == 7.0
    assert resolver.resolve_number(NameObject("/Nope"), 3.0) == 3.0
    # The self reference inside the array resolves to the array itself.
    items = resolver.resolve_array((5, 0))
    assert items is not None and items[:2] == [1, 2]


def test_document_walk_inherits_resources(raw_pdf) -> None:
    data = raw_pdf({1: CATALOG, 2: PAGES, 3: PAGE, 4: CONTENT, 6: FONT}, root=1)
    document = Document.load(data)

    assert document.page_count == 1
    page = document.pages[0]
    assert page.reference == (3, 0)
    assert page.media_box == (0.0, 0.0, 200.0, 300.0)
    fonts = document.resolver.resolve_dict(dict.get(page.resources, "/Font"))
    assert fonts is not None and "/F1" in fonts
    assert document.resolver.content_bytes(page.contents).strip() == b"q Q"


def test_broken_kids_are_skipped_when_one_page_survives(raw_pdf) -> None:
    pages = b"<< /Type /Pages /Kids [3 0 R 40 0 R 2 0 R] /Count 3 >>"
    data = raw_pdf({1: CATALOG, 2: pages, 3: PAGE, 4: CONTENT}, root=1)

    document = Document.load(data)

    assert [page.index for page in document.pages] == [0]


def test_missing_header_is_invalid() -> None:
    with pytest.raises(InvalidPDFError):
        Document.load(b"hello world")


def test_dangling_root_is_structural(raw_pdf) -> None:
    data = raw_pdf({2: PAGES, 3: PAGE, 4: CONTENT}, root=1)

    with pytest.raises(StructuralError) as excinfo:
        Document.load(data)

    assert excinfo.value.reference == (1, 0)
    assert "1 0 R" in str(excinfo.value)


def test_unreachable_page_tree_is_structural(raw_pdf) -> None:
    data = raw_pdf({1: b"<< /Type /Catalog /Pages 2 0 R >>", 2: b"<< /Type /Pages /Kids [7 0 R] /Count 1 >>"}, root=1)

    with pytest.raises(StructuralError, match="no reachable pages"):
        Document.load(data)


def test_reference_of_reads_indirect_reference(pdf_builder) -> None:
    pdf_builder.page(b"q Q")
    document = Document.load(pdf_builder.to_bytes())

    assert reference_of(document.pages[0].dictionary) == document.pages[0].reference
    assert reference_of(NumberObject(1)) is None
