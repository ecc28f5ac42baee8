"""Simple-font encodings: base vectors, ``Differences`` and glyph names."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import logging
from typing import Any, Iterable, Mapping
import unicodedata

from fontTools import agl
from fontTools.encodings.MacRoman import MacRoman
from fontTools.encodings.StandardEncoding import StandardEncoding
from pypdf._codecs import adobe_glyphs, charset_encoding

from .glyphlist import ALTERNATE_GLYPHS, DINGBAT_GLYPHS

__all__ = [
    "STANDARD_ENCODING",
    "BaseEncoding",
    "EncodingTable",
    "base_encoding",
    "glyph_to_unicode",
    "select_base_encoding",
    "strip_subset_prefix",
]

LOGGER = logging.getLogger(__name__)

STANDARD_ENCODING = "/StandardEncoding"
WIN_ANSI_ENCODING = "/WinAnsiEncoding"
MAC_ROMAN_ENCODING = "/MacRomanEncoding"
SYMBOL_ENCODING = "/Symbol"
DINGBATS_ENCODING = "/ZapfDingbats"

# Names accepted in /Encoding or /BaseEncoding.
_ENCODING_NAMES = {
    "/StandardEncoding": STANDARD_ENCODING,
    "/WinAnsiEncoding": WIN_ANSI_ENCODING,
    "/MacRomanEncoding": MAC_ROMAN_ENCODING,
    "/PDFDocEncoding": "/PDFDocEncoding",
    "/MacExpertEncoding": STANDARD_ENCODING,
    "/SymbolEncoding": SYMBOL_ENCODING,
    "/ZapfDingbatsEncoding": DINGBATS_ENCODING,
}

# pypdf appends ``/a0``..``/a255`` and ``/.notdef`` to its glyph list; those
# clash with the ZapfDingbats names and are left out of the primary table.
_PRIMARY_GLYPHS: dict[str, str] = {
    name[1:]: text
    for name, text in adobe_glyphs.items()
    if name != "/.notdef" and not (name[:2] == "/a" and name[2:].isdigit())
}

_UNICODE_TO_ALTERNATE = {text: name for name, text in ALTERNATE_GLYPHS.items() if text}


def strip_subset_prefix(name: str | None) -> str:
    """``ABCDEF+Helvetica`` → ``Helvetica``."""

    if not name:
        return ""
    name = name.lstrip("/")
    if len(name) > 7 and name[6] == "+" and name[:6].isupper() and name[:6].isalpha():
        return name[7:]
    return name


def glyph_to_unicode(name: str) -> str | None:
    """Map a glyph name to text, or ``None`` when no table knows it.

    The Adobe Glyph List is consulted first, then the Symbol/ZapfDingbats
    names, then the algorithmic ``uniXXXX`` / ``uXXXX[XX]`` forms and
    underscore ligatures.
    """

    name = name.lstrip("/")
    base = name.split(".", 1)[0]
    if not base:
        return None
    text = _PRIMARY_GLYPHS.get(base)
    if text:
        return text
    text = ALTERNATE_GLYPHS.get(base)
    if text:
        return text
    text = agl.toUnicode(base)
    return text or None


@dataclass(frozen=True, slots=True)
class BaseEncoding:
    """A named 256-entry vector of glyph names and their text."""

    name: str
    glyph_names: tuple[str | None, ...]
    unicode: tuple[str | None, ...]


def _printable(char: str) -> str | None:
    if not char or unicodedata.category(char[0]) == "Cc":
        return None
    return char


def _name_for_char(char: str | None) -> str | None:
    if char is None:
        return None
    name = agl.UV2AGL.get(ord(char[0]))
    if name is None:
        name = _UNICODE_TO_ALTERNATE.get(char)
    return name


@lru_cache(maxsize=None)
def base_encoding(name: str) -> BaseEncoding:
    """Return the base vector ``name`` (one of the pypdf charset names)."""

    name = _ENCODING_NAMES.get(name, name)
    chars = charset_encoding.get(name) or charset_encoding[STANDARD_ENCODING]
    unicode = tuple(_printable(char) for char in chars)
    if name == STANDARD_ENCODING:
        names = tuple(None if glyph == ".notdef" else glyph for glyph in StandardEncoding)
    elif name == MAC_ROMAN_ENCODING:
        names = tuple(None if glyph == ".notdef" else glyph for glyph in MacRoman)
    else:
        names = tuple(_name_for_char(char) for char in unicode)
    if name == DINGBATS_ENCODING:
        by_text = {text: glyph for glyph, text in DINGBAT_GLYPHS.items()}
        names = tuple(by_text.get(char or "", names[code]) for code, char in enumerate(unicode))
    return BaseEncoding(name=name, glyph_names=names, unicode=unicode)


def select_base_encoding(
    encoding_name: str | None,
    *,
    base_font: str | None,
    subtype: str | None,
    has_builtin: bool,
) -> str | None:
    """Pick the base vector for a simple font.

    Returns a charset name, or ``None`` when the embedded program's built-in
    encoding should be the base.
    """

    plain = strip_subset_prefix(base_font)
    if plain == "Symbol":
        return SYMBOL_ENCODING
    if plain == "ZapfDingbats":
        return DINGBATS_ENCODING
    if encoding_name is not None:
        if encoding_name in _ENCODING_NAMES:
            return _ENCODING_NAMES[encoding_name]
        LOGGER.debug("Unrecognised encoding %s for %s; using StandardEncoding", encoding_name, plain)
        return STANDARD_ENCODING
    if has_builtin and subtype != "/TrueType":
        return None
    return STANDARD_ENCODING


@dataclass(slots=True)
class EncodingTable:
    """Layered code → glyph name / text table of a simple font."""

    glyph_names: dict[int, str] = field(default_factory=dict)
    unicode: dict[int, str] = field(default_factory=dict)
    unknown: dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_base(cls, name: str | None, builtin: Mapping[int, str] | None = None) -> "EncodingTable":
        table = cls()
        if name is None and builtin:
            for code, glyph in builtin.items():
                if not 0 <= code <= 255 or not glyph or glyph == ".notdef":
                    continue
                table.glyph_names[code] = glyph
                text = glyph_to_unicode(glyph)
                if text is not None:
                    table.unicode[code] = text
            return table
        vector = base_encoding(name or STANDARD_ENCODING)
        for code in range(256):
            glyph = vector.glyph_names[code]
            if glyph is not None:
                table.glyph_names[code] = glyph
            text = vector.unicode[code]
            if text is not None:
                table.unicode[code] = text
        return table

    def apply_differences(self, differences: Iterable[Any]) -> None:
        """Overlay a ``Differences`` array (``[code name name ... code ...]``).

        Glyph names unknown to every table are recorded in :attr:`unknown`
        and leave the code without text.
        """

        code: int | None = None
        for item in differences:
            if isinstance(item, bool):
                continue
            if isinstance(item, (int, float)):
                code = int(item)
                continue
            if code is None or not isinstance(item, str):
                continue
            glyph = str(item).lstrip("/")
            if 0 <= code <= 255:
                self.glyph_names[code] = glyph
                text = glyph_to_unicode(glyph)
                if text is None:
                    self.unicode.pop(code, None)
                    self.unknown[code] = glyph
                else:
                    self.unicode[code] = text
                    self.unknown.pop(code, None)
            code += 1

    def apply_unicode_map(self, mapping: Mapping[int, str]) -> None:
        """Let ``mapping`` (a parsed ToUnicode CMap) win code by code."""

        for code, text in mapping.items():
            self.unicode[code] = text
            self.unknown.pop(code, None)

    def text(self, code: int) -> str | None:
        return self.unicode.get(code)

    def glyph_name(self, code: int) -> str | None:
        return self.glyph_names.get(code)
