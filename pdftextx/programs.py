"""Embedded font program decoders.

Each decoder turns the bytes of a ``FontFile``, ``FontFile2`` or
``FontFile3`` stream into a :class:`FontProgram`: glyph names, built-in
encoding, advance widths and whatever Unicode data the program carries.
Widths are expressed in glyph-space thousandths like PDF ``Widths``.

All parsing is delegated to fontTools.  :func:`decode_program` runs every
decoder inside :func:`~pdftextx.resilience.isolate`, so a broken program
costs one warning and leaves the font with PDF-level data only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from io import BytesIO
import logging
import re
from typing import Any, Callable

from fontTools.cffLib import CFFFontSet
from fontTools.misc import eexec, psCharStrings, psLib
from fontTools.pens.basePen import NullPen
from fontTools.ttLib import TTFont

from .resilience import FailureClass, WarningLog, isolate

__all__ = [
    "FontProgram",
    "decode_cff",
    "decode_program",
    "decode_truetype",
    "decode_type1",
    "split_type1",
]

LOGGER = logging.getLogger(__name__)

_EEXEC_KEYWORD = re.compile(rb"currentfile\s+eexec")
_EEXEC_TRAILER = re.compile(rb"(0[ \t\r\n]*){64}")
_HEX_DIGITS = re.compile(rb"[0-9A-Fa-f\s]*$")


@dataclass(slots=True)
class FontProgram:
    """Outline-independent data recovered from an embedded font program."""

    kind: str
    name: str | None = None
    builtin_encoding: dict[int, str] = field(default_factory=dict)
    glyph_order: list[str] = field(default_factory=list)
    widths: dict[str, float] = field(default_factory=dict)
    cid_to_gid: dict[int, int] = field(default_factory=dict)
    unicode_glyphs: dict[int, str] = field(default_factory=dict)
    code_glyphs: dict[int, str] = field(default_factory=dict)
    glyph_unicode: dict[str, str] = field(default_factory=dict)
    cid_keyed: bool = False

    def glyph_name(self, gid: int) -> str | None:
        if 0 <= gid < len(self.glyph_order):
            return self.glyph_order[gid]
        return None

    def width_for_name(self, name: str | None) -> float | None:
        if name is None:
            return None
        return self.widths.get(name)

    def width_for_gid(self, gid: int) -> float | None:
        return self.width_for_name(self.glyph_name(gid))

    def glyph_for_code(self, code: int) -> str | None:
        """Glyph for a single-byte code through the (3,0)/(1,0) subtables."""

        for candidate in (code, 0xF000 + code, 0xF100 + code, 0xF200 + code):
            name = self.code_glyphs.get(candidate)
            if name is not None:
                return name
        return None

    def glyph_for_unicode(self, text: str | None) -> str | None:
        if not text or len(text) != 1:
            return None
        return self.unicode_glyphs.get(ord(text))

    def unicode_for_glyph(self, name: str | None) -> str | None:
        if name is None:
            return None
        return self.glyph_unicode.get(name)


# -- Type1 --------------------------------------------------------------------


def split_type1(data: bytes, length1: int | None, length2: int | None) -> tuple[bytes, bytes]:
    """Return the cleartext and still-encrypted portions of a Type1 program.

    ``Length1``/``Length2`` are trusted only when they point at the
    ``eexec`` switch; otherwise the boundary is located by searching.
    """

    marker = _EEXEC_KEYWORD.search(data)
    if length1 is None or not 0 < length1 <= len(data) or b"eexec" not in data[:length1]:
        if marker is None:
            raise ValueError("Type1 program has no eexec section")
        length1 = marker.end()
        while length1 < len(data) and data[length1] in b"\r\n\t ":
            length1 += 1
    cleartext = data[:length1]
    if length2 is not None and 0 < length2 <= len(data) - length1:
        encrypted = data[length1 : length1 + length2]
    else:
        trailer = _EEXEC_TRAILER.search(data, length1)
        encrypted = data[length1 : trailer.start() if trailer else len(data)]
    return cleartext, encrypted


def _decrypt_private(encrypted: bytes) -> bytes:
    head = encrypted[:4]
    if len(head) == 4 and _HEX_DIGITS.match(encrypted[:64]):
        encrypted = eexec.deHexString(b"".join(encrypted.split()))
    plaintext, _ = eexec.decrypt(encrypted, 55665)
    return plaintext[4:]


def decode_type1(data: bytes, *, length1: int | None = None, length2: int | None = None) -> FontProgram:
    """Decrypt and interpret a Type1 (``FontFile``) program."""

    cleartext, encrypted = split_type1(data, length1, length2)
    private = _decrypt_private(encrypted)
    source = _EEXEC_KEYWORD.sub(b"", cleartext) + b"\n" + private
    font = psLib.suckfont(source, encoding="latin-1")

    program = FontProgram(kind="Type1", name=font.get("FontName"))
    encoding = font.get("Encoding")
    if isinstance(encoding, (list, tuple)):
        for code, glyph in enumerate(encoding[:256]):
            if glyph and glyph != ".notdef":
                program.builtin_encoding[code] = str(glyph)

    matrix = font.get("FontMatrix") or (0.001, 0, 0, 0.001, 0, 0)
    scale = float(matrix[0]) * 1000.0 if matrix and matrix[0] else 1.0
    private_dict = font.get("Private") or {}
    len_iv = int(private_dict.get("lenIV", 4))
    subrs: list[Any] = []
    for raw in private_dict.get("Subrs") or []:
        decrypted, _ = eexec.decrypt(raw or b"", 4330)
        subrs.append(psCharStrings.T1CharString(decrypted[len_iv:], subrs=subrs))

    charstrings = font.get("CharStrings") or {}
    for glyph, raw in charstrings.items():
        decrypted, _ = eexec.decrypt(raw, 4330)
        charstring = psCharStrings.T1CharString(decrypted[len_iv:], subrs=subrs)
        program.glyph_order.append(glyph)
        try:
            charstring.draw(NullPen())
        except Exception as exc:
            LOGGER.debug("Type1 glyph %s in %s has no usable width: %s", glyph, program.name, exc)
            continue
        if charstring.width is not None:
            program.widths[glyph] = float(charstring.width) * scale
    return program


# -- CFF ----------------------------------------------------------------------


def decode_cff(data: bytes, *, log: WarningLog, font: str = "?") -> FontProgram:
    """Decode a bare CFF (``Type1C`` / ``CIDFontType0C``) program."""

    font_set = CFFFontSet()
    font_set.decompile(BytesIO(data), otFont=TTFont())
    top = font_set[font_set.fontNames[0]]
    program = FontProgram(kind="CFF", name=font_set.fontNames[0])
    program.cid_keyed = hasattr(top, "ROS")

    try:
        charset = list(top.charset)
    except Exception as exc:
        log.recover(FailureClass.FONT_TABLE_PARSE, font=font, table="CFF charset", error=exc)
        charset = []
    program.glyph_order = charset
    if program.cid_keyed:
        for gid, glyph in enumerate(charset):
            if glyph.startswith("cid") and glyph[3:].isdigit():
                program.cid_to_gid[int(glyph[3:])] = gid
            elif glyph == ".notdef":
                program.cid_to_gid[0] = gid
    else:
        try:
            encoding = top.Encoding
        except Exception as exc:
            log.recover(FailureClass.FONT_TABLE_PARSE, font=font, table="CFF encoding", error=exc)
            encoding = None
        if isinstance(encoding, list):
            for code, glyph in enumerate(encoding[:256]):
                if glyph and glyph != ".notdef":
                    program.builtin_encoding[code] = glyph

    matrix = getattr(top, "FontMatrix", None) or [0.001, 0, 0, 0.001, 0, 0]
    scale = float(matrix[0]) * 1000.0 if matrix[0] else 1.0
    try:
        charstrings = top.CharStrings
        for glyph in charstrings.keys():
            charstring = charstrings[glyph]
            charstring.draw(NullPen())
            if charstring.width is not None:
                program.widths[glyph] = float(charstring.width) * scale
    except Exception as exc:
        log.recover(FailureClass.FONT_TABLE_PARSE, font=font, table="CFF CharStrings", error=exc)
    return program


# -- TrueType / OpenType ------------------------------------------------------


def decode_truetype(data: bytes, *, log: WarningLog, font: str = "?") -> FontProgram:
    """Decode a TrueType (``FontFile2``) or OpenType program."""

    tt = TTFont(BytesIO(data), lazy=True, fontNumber=0)
    program = FontProgram(kind="TrueType")

    def table(tag: str) -> Any:
        if tag not in tt:
            return None
        try:
            return tt[tag]
        except Exception as exc:
            log.recover(FailureClass.FONT_TABLE_PARSE, font=font, table=tag, error=exc)
            return None

    head = table("head")
    units_per_em = getattr(head, "unitsPerEm", None) or 1000
    scale = 1000.0 / units_per_em

    try:
        program.glyph_order = list(tt.getGlyphOrder())
    except Exception as exc:
        log.recover(FailureClass.FONT_TABLE_PARSE, font=font, table="post", error=exc)
        program.glyph_order = []

    hmtx = table("hmtx")
    if hmtx is not None:
        for glyph, (advance, _lsb) in hmtx.metrics.items():
            program.widths[glyph] = advance * scale

    cmap = table("cmap")
    if cmap is not None:
        for subtable in cmap.tables:
            key = (subtable.platformID, subtable.platEncID)
            mapping = getattr(subtable, "cmap", None) or {}
            if key == (3, 0) or key == (1, 0):
                for code, glyph in mapping.items():
                    program.code_glyphs.setdefault(code, glyph)
            elif subtable.isUnicode():
                for codepoint, glyph in mapping.items():
                    program.unicode_glyphs.setdefault(codepoint, glyph)
    for codepoint in sorted(program.unicode_glyphs):
        program.glyph_unicode.setdefault(program.unicode_glyphs[codepoint], chr(codepoint))
    if "CFF " in tt:
        program.kind = "OpenType"
    return program


# -- Dispatcher ---------------------------------------------------------------


def decode_program(
    kind: str,
    data: bytes,
    *,
    log: WarningLog,
    font: str = "?",
    length1: int | None = None,
    length2: int | None = None,
) -> FontProgram | None:
    """Decode an embedded program behind the fault-isolation boundary.

    ``kind`` is ``"FontFile"``, ``"FontFile2"`` or the ``FontFile3``
    subtype (``"Type1C"``, ``"CIDFontType0C"``, ``"OpenType"``).
    """

    if not data:
        return None
    operation: Callable[..., FontProgram]
    if kind == "FontFile":
        return isolate(
            decode_type1,
            data,
            length1=length1,
            length2=length2,
            log=log,
            failure=FailureClass.TYPE1_PROGRAM,
            context={"font": font},
        )
    if kind in ("Type1C", "CIDFontType0C"):
        operation, table = decode_cff, kind
    elif kind in ("FontFile2", "OpenType"):
        operation, table = decode_truetype, kind
    else:
        LOGGER.debug("Font %s: unsupported program type %s", font, kind)
        return None
    return isolate(
        partial(operation, log=log, font=font),
        data,
        log=log,
        failure=FailureClass.FONT_TABLE_PARSE,
        context={"font": font, "table": table},
    )
