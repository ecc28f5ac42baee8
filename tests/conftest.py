from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Any, Callable, Mapping
import sys

import pytest
from fontTools.fontBuilder import FontBuilder
from fontTools.misc import eexec
from fontTools.pens.t2CharStringPen import T2CharStringPen
from fontTools.pens.ttGlyphPen import TTGlyphPen
from pypdf import PdfWriter
from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    FloatObject,
    IndirectObject,
    NameObject,
    NumberObject,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

DEMO_TEXT = "This is a small demonstration"
DEMO_GLYPHS = {char: ("space" if char == " " else char) for char in set(DEMO_TEXT + "Hello World")}


def _name(value: str) -> NameObject:
    return NameObject(value if value.startswith("/") else f"/{value}")


def _number(value: float) -> NumberObject | FloatObject:
    return NumberObject(value) if isinstance(value, int) else FloatObject(value)


def _item(value: Any) -> Any:
    if isinstance(value, str) and not isinstance(value, NameObject):
        return _name(value)
    if isinstance(value, (int, float)) and not isinstance(value, (NumberObject, FloatObject)):
        return _number(value)
    if isinstance(value, list) and not isinstance(value, ArrayObject):
        return ArrayObject(_item(item) for item in value)
    return value


def pdf_dict(entries: Mapping[str, Any]) -> DictionaryObject:
    """``DictionaryObject`` from plain keys; str values become names."""

    result = DictionaryObject()
    for key, value in entries.items():
        if isinstance(value, str):
            value = _name(value)
        elif isinstance(value, bool):
            raise TypeError("booleans are not used in fixtures")
        else:
            value = _item(value)
        result[_name(key)] = value
    return result


class PdfBuilder:
    """Small wrapper over :class:`PdfWriter` for building fixture documents."""

    def __init__(self) -> None:
        self.writer = PdfWriter()

    def add(self, obj: Any) -> IndirectObject:
        return self.writer._add_object(obj)

    def stream(self, data: bytes, entries: Mapping[str, Any] | None = None) -> IndirectObject:
        stream = DecodedStreamObject()
        stream.set_data(data)
        for key, value in pdf_dict(entries or {}).items():
            stream[key] = value
        return self.add(stream)

    def standard_font(self, base_font: str = "Helvetica", **entries: Any) -> IndirectObject:
        font = pdf_dict({"Type": "Font", "Subtype": "Type1", "BaseFont": base_font, **entries})
        return self.add(font)

    def page(
        self,
        content: bytes | None,
        resources: DictionaryObject | None = None,
        *,
        fonts: Mapping[str, IndirectObject] | None = None,
    ) -> DictionaryObject:
        page = self.writer.add_blank_page(width=612, height=792)
        if resources is None:
            resources = DictionaryObject()
        if fonts:
            resources[NameObject("/Font")] = DictionaryObject({_name(key): value for key, value in fonts.items()})
        page[NameObject("/Resources")] = resources
        if content is not None:
            page[NameObject("/Contents")] = self.stream(content)
        return page

    def to_bytes(self) -> bytes:
        buffer = BytesIO()
        self.writer.write(buffer)
        return buffer.getvalue()


@pytest.fixture()
def pdf_builder() -> PdfBuilder:
    return PdfBuilder()


@pytest.fixture()
def helvetica_pdf(pdf_builder: PdfBuilder) -> Callable[..., bytes]:
    """Single-font document factory: one page per content stream."""

    def _create(*contents: bytes) -> bytes:
        font = pdf_builder.standard_font("Helvetica")
        for content in contents:
            pdf_builder.page(content, fonts={"F1": font})
        return pdf_builder.to_bytes()

    return _create


def build_raw_pdf(objects: Mapping[int, bytes], *, root: int | None) -> bytes:
    """Hand-written PDF with a classic cross-reference table.

    ``objects`` maps object numbers to their bodies; gaps become free
    entries so that dangling references stay dangling.
    """

    output = bytearray(b"%PDF-1.4\n")
    offsets: dict[int, int] = {}
    for number in sorted(objects):
        offsets[number] = len(output)
        output += b"%d 0 obj\n" % number + objects[number] + b"\nendobj\n"
    size = max(objects) + 1 if objects else 1
    xref_offset = len(output)
    output += b"xref\n0 %d\n" % size
    output += b"0000000000 65535 f \n"
    for number in range(1, size):
        if number in offsets:
            output += b"%010d 00000 n \n" % offsets[number]
        else:
            output += b"0000000000 65535 f \n"
    trailer = b"<< /Size %d" % size
    if root is not None:
        trailer += b" /Root %d 0 R" % root
    output += b"trailer\n" + trailer + b" >>\nstartxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(output)


@pytest.fixture()
def raw_pdf() -> Callable[..., bytes]:
    return build_raw_pdf


# -- Font programs -----------------------------------------------------------


def _font_names(family: str) -> dict[str, str]:
    return {
        "familyName": family,
        "styleName": "Regular",
        "uniqueFontIdentifier": f"fixtures: {family}",
        "fullName": f"{family}-Regular",
        "psName": f"{family}-Regular",
        "version": "Version 1.0",
    }


@pytest.fixture(scope="session")
def truetype_program() -> bytes:
    """TrueType font with empty outlines: space 250 units, letters 500."""

    glyph_order = [".notdef"] + sorted(set(DEMO_GLYPHS.values()))
    builder = FontBuilder(1000, isTTF=True)
    builder.setupGlyphOrder(glyph_order)
    builder.setupCharacterMap({ord(char): glyph for char, glyph in DEMO_GLYPHS.items()})
    empty = TTGlyphPen(None).glyph()
    builder.setupGlyf({glyph: empty for glyph in glyph_order})
    builder.setupHorizontalMetrics(
        {glyph: (250 if glyph == "space" else 500, 0) for glyph in glyph_order}
    )
    builder.setupHorizontalHeader(ascent=800, descent=-200)
    builder.setupNameTable(_font_names("DemoSans"))
    builder.setupOS2(sTypoAscender=800, usWinAscent=800, usWinDescent=200)
    builder.setupPost()
    buffer = BytesIO()
    builder.save(buffer)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def cff_program() -> bytes:
    """Bare CFF table with ``A`` (600) and ``B`` (650) glyphs."""

    glyph_order = [".notdef", "space", "A", "B"]
    widths = {".notdef": 500, "space": 250, "A": 600, "B": 650}
    builder = FontBuilder(1000, isTTF=False)
    builder.setupGlyphOrder(glyph_order)
    charstrings = {}
    for glyph in glyph_order:
        pen = T2CharStringPen(widths[glyph], None)
        pen.moveTo((0, 0))
        pen.lineTo((100, 0))
        pen.lineTo((100, 100))
        pen.closePath()
        charstrings[glyph] = pen.getCharString()
    builder.setupCFF("DemoCFF-Regular", {"FullName": "DemoCFF-Regular"}, charstrings, {})
    return builder.font["CFF "].compile(builder.font)


def _charstring(width: int) -> bytes:
    """Encrypted ``0 width hsbw endchar`` with the default lenIV of 4."""

    if 108 <= width <= 1131:
        value = width - 108
        number = bytes([247 + value // 256, value % 256])
    else:
        number = bytes([width + 139])
    plain = b"\x00\x00\x00\x00" + bytes([139]) + number + bytes([13, 14])
    return eexec.encrypt(plain, 4330)[0]


def _rd(name: bytes, data: bytes) -> bytes:
    return b"/" + name + b" %d RD " % len(data) + data + b" ND\n"


@pytest.fixture(scope="session")
def type1_program() -> tuple[bytes, int, int]:
    """Type1 program with ``A`` (500) and ``B`` (600); returns data, Length1, Length2."""

    cleartext = (
        b"%!PS-AdobeFont-1.0: DemoType1 001.000\n"
        b"11 dict begin\n"
        b"/FontName /DemoType1 def\n"
        b"/FontType 1 def\n"
        b"/PaintType 0 def\n"
        b"/FontMatrix [0.001 0 0 0.001 0 0] readonly def\n"
        b"/FontBBox {0 0 600 700} readonly def\n"
        b"/Encoding 256 array\n"
        b"0 1 255 {1 index exch /.notdef put} for\n"
        b"dup 65 /A put\n"
        b"dup 66 /B put\n"
        b"readonly def\n"
        b"currentdict end\n"
        b"currentfile eexec\n"
    )
    subr = eexec.encrypt(b"\x00\x00\x00\x00" + bytes([11]), 4330)[0]
    private = (
        b"dup /Private 8 dict dup begin\n"
        b"/RD {string currentfile exch readstring pop} executeonly def\n"
        b"/ND {noaccess def} executeonly def\n"
        b"/NP {noaccess put} executeonly def\n"
        b"/lenIV 4 def\n"
        b"/password 5839 def\n"
        b"/BlueValues [] def\n"
        b"/Subrs 1 array\n"
        b"dup 0 %d RD " % len(subr) + subr + b" NP\n"
        b"ND\n"
        b"2 index /CharStrings 3 dict dup begin\n"
        + _rd(b".notdef", _charstring(250))
        + _rd(b"A", _charstring(500))
        + _rd(b"B", _charstring(600))
        + b"end\n"
        b"end\n"
        b"readonly put\n"
        b"noaccess put\n"
        b"dup /FontName get exch definefont pop\n"
        b"mark currentfile closefile\n"
    )
    encrypted = eexec.encrypt(b"\x00\x00\x00\x00" + private, 55665)[0]
    trailer = (b"0" * 64 + b"\n") * 8 + b"cleartomark\n"
    return cleartext + encrypted + trailer, len(cleartext), len(encrypted)
