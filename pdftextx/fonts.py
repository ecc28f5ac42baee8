"""Font resolution: encodings, CMaps, widths and embedded programs combined.

A :class:`FontResolver` turns a font resource into a :class:`Font` once per
document.  PDF-declared data always wins over what the embedded program
says; program data only fills gaps.  Every layer that fails falls back to
the layer below it with a single warning.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import logging
from typing import Any, Mapping

from pypdf._codecs.core_font_metrics import CORE_FONT_METRICS
from pypdf.generic import DictionaryObject, NameObject, StreamObject

from .cmap import IDENTITY_H, CMap, CMapError, ToUnicodeMap, parse_cmap, parse_to_unicode, predefined_cmap
from .encodings import (
    STANDARD_ENCODING,
    EncodingTable,
    glyph_to_unicode,
    select_base_encoding,
    strip_subset_prefix,
)
from .objects import ObjectResolver, reference_of
from .programs import FontProgram, decode_program
from .resilience import FailureClass, WarningLog, isolate

__all__ = [
    "CharInfo",
    "CompositeFont",
    "Font",
    "FontResolver",
    "SimpleFont",
]

LOGGER = logging.getLogger(__name__)

_SYMBOLIC_FLAG = 1 << 2
_DEFAULT_VERTICAL = (880.0, -1000.0)

# Common names for the standard 14 fonts.
_CORE_FONT_ALIASES = {
    "Arial": "Helvetica",
    "Arial,Bold": "Helvetica-Bold",
    "Arial,Italic": "Helvetica-Oblique",
    "Arial,BoldItalic": "Helvetica-BoldOblique",
    "ArialMT": "Helvetica",
    "Arial-BoldMT": "Helvetica-Bold",
    "Arial-ItalicMT": "Helvetica-Oblique",
    "Arial-BoldItalicMT": "Helvetica-BoldOblique",
    "CourierNew": "Courier",
    "CourierNew,Bold": "Courier-Bold",
    "CourierNew,Italic": "Courier-Oblique",
    "CourierNew,BoldItalic": "Courier-BoldOblique",
    "TimesNewRoman": "Times-Roman",
    "TimesNewRoman,Bold": "Times-Bold",
    "TimesNewRoman,Italic": "Times-Italic",
    "TimesNewRoman,BoldItalic": "Times-BoldItalic",
    "Times": "Times-Roman",
}


@dataclass(frozen=True, slots=True)
class CharInfo:
    """One decoded character code.

    ``width`` is the horizontal advance in glyph-space thousandths;
    ``vertical_advance`` is set for fonts in vertical writing mode.
    """

    code: int
    text: str
    width: float
    is_space: bool = False
    vertical_advance: float | None = None


@dataclass(slots=True)
class Font(ABC):
    name: str
    subtype: str
    to_unicode: ToUnicodeMap | None = None
    program: FontProgram | None = None
    vertical: bool = False
    log: WarningLog | None = field(default=None, repr=False, compare=False)

    @abstractmethod
    def decode(self, data: bytes) -> list[CharInfo]:
        """Split ``data`` into character codes and describe each one."""


# -- Simple fonts ------------------------------------------------------------


@dataclass(slots=True)
class SimpleFont(Font):
    """Type1, MMType1, TrueType and Type3 fonts: one byte per code."""

    encoding: EncodingTable = field(default_factory=EncodingTable)
    widths: dict[int, float] = field(default_factory=dict)
    missing_width: float | None = None
    core_widths: Mapping[str, int] | None = None
    symbolic: bool = False

    @classmethod
    def fallback(cls, name: str) -> "SimpleFont":
        """StandardEncoding font used when a font dictionary is unusable."""

        return cls(name=name, subtype="/Type1", encoding=EncodingTable.from_base(STANDARD_ENCODING))

    def text_for(self, code: int) -> str:
        text = self.encoding.text(code)
        if text is not None:
            return text
        if self.program is not None:
            glyph = self.encoding.glyph_name(code)
            text = self.program.unicode_for_glyph(glyph)
            if text is not None:
                return text
        return ""

    def width_for(self, code: int, text: str) -> float:
        width = self.widths.get(code)
        if width is not None:
            return width
        if self.program is not None:
            width = self._program_width(code, text)
            if width is not None:
                return width
        if self.core_widths is not None and text:
            core = self.core_widths.get(text)
            if core is not None:
                return float(core)
        if self.missing_width is not None:
            return self.missing_width
        return 0.0

    def _program_width(self, code: int, text: str) -> float | None:
        program = self.program
        assert program is not None
        width = program.width_for_name(self.encoding.glyph_name(code))
        if width is not None:
            return width
        if program.kind in ("TrueType", "OpenType"):
            glyph = program.glyph_for_unicode(text)
            if glyph is None and self.symbolic:
                glyph = program.glyph_for_code(code)
            return program.width_for_name(glyph)
        return None

    def decode(self, data: bytes) -> list[CharInfo]:
        chars = []
        for code in data:
            text = self.text_for(code)
            chars.append(CharInfo(code=code, text=text, width=self.width_for(code, text), is_space=code == 32))
        return chars


# -- Composite fonts ---------------------------------------------------------


@dataclass(slots=True)
class CompositeFont(Font):
    """Type0 font with a CMap and a CIDFont descendant."""

    cmap: CMap = field(default_factory=lambda: IDENTITY_H)
    widths: dict[int, float] = field(default_factory=dict)
    default_width: float = 1000.0
    vertical_widths: dict[int, float] = field(default_factory=dict)
    default_vertical: tuple[float, float] = _DEFAULT_VERTICAL
    cid_to_gid: dict[int, int] | None = None
    _identity_logged: bool = False
    _utf16_warned: bool = False

    def gid_for(self, cid: int) -> int:
        if self.cid_to_gid is not None:
            return self.cid_to_gid.get(cid, 0)
        if self.program is not None and self.program.cid_keyed:
            return self.program.cid_to_gid.get(cid, 0)
        return cid

    def text_for(self, code: bytes, cid: int) -> str:
        if self.to_unicode is not None:
            text = self.to_unicode.get(int.from_bytes(code, "big"))
            if text is not None:
                return text
        if self.program is not None:
            glyph = self.program.glyph_name(self.gid_for(cid))
            text = self.program.unicode_for_glyph(glyph)
            if text is None and glyph is not None:
                text = glyph_to_unicode(glyph)
            if text is not None:
                return text
        if not self._identity_logged:
            LOGGER.debug("Font %s has no Unicode data; mapping codes as UTF-16", self.name)
            self._identity_logged = True
        if len(code) == 1:
            return chr(code[0])
        try:
            return code.decode("utf-16-be")
        except UnicodeDecodeError:
            if self.log is not None and not self._utf16_warned:
                self.log.recover(FailureClass.UTF16_DECODE, font=self.name, data=code, source="character codes")
            self._utf16_warned = True
            return code.decode("utf-16-be", "replace")

    def width_for(self, cid: int) -> float:
        width = self.widths.get(cid)
        if width is not None:
            return width
        if self.program is not None:
            width = self.program.width_for_gid(self.gid_for(cid))
            if width is not None:
                return width
        return self.default_width

    def decode(self, data: bytes) -> list[CharInfo]:
        chars = []
        for code, cid in self.cmap.decode(data):
            vertical = None
            if self.vertical:
                vertical = self.vertical_widths.get(cid, self.default_vertical[1])
            chars.append(
                CharInfo(
                    code=int.from_bytes(code, "big"),
                    text=self.text_for(code, cid),
                    width=self.width_for(cid),
                    is_space=code == b" ",
                    vertical_advance=vertical,
                )
            )
        return chars


# -- Resolver ----------------------------------------------------------------


class FontResolver:
    """Lazily build and cache :class:`Font` objects for one document."""

    def __init__(self, resolver: ObjectResolver, log: WarningLog) -> None:
        self.resolver = resolver
        self.log = log
        self._cache: dict[Any, tuple[Any, Font]] = {}

    def load(self, entry: Any, resource_name: str = "?") -> Font:
        """Return the font for a ``/Font`` resource entry.

        Unusable entries produce a StandardEncoding fallback font so text
        showing can continue.
        """

        dictionary = self.resolver.resolve_dict(entry)
        if dictionary is None:
            LOGGER.debug("Font resource %s does not resolve to a dictionary", resource_name)
            return SimpleFont.fallback(resource_name)
        key = reference_of(entry) or id(dictionary)
        cached = self._cache.get(key)
        if cached is not None:
            return cached[1]
        name = strip_subset_prefix(self.resolver.resolve_name(dict.get(dictionary, "/BaseFont"))) or resource_name
        with self.log.scope(font=name):
            font = isolate(
                self._build,
                dictionary,
                name,
                log=self.log,
                failure=FailureClass.FONT_TABLE_PARSE,
                context={"table": "font dictionary"},
            )
        if font is None:
            font = SimpleFont.fallback(name)
        self._cache[key] = (dictionary, font)
        return font

    def __len__(self) -> int:
        return len(self._cache)

    def _build(self, dictionary: DictionaryObject, name: str) -> Font:
        subtype = self.resolver.resolve_name(dict.get(dictionary, "/Subtype")) or "/Type1"
        if subtype == "/Type0":
            return self._build_composite(dictionary, name)
        return self._build_simple(dictionary, name, subtype)

    # -- shared layers

    def _load_program(self, descriptor: DictionaryObject | None, name: str) -> FontProgram | None:
        if descriptor is None:
            return None
        resolver = self.resolver
        for key in ("/FontFile", "/FontFile2", "/FontFile3"):
            stream = resolver.resolve(dict.get(descriptor, key))
            if not isinstance(stream, StreamObject):
                continue
            kind = key[1:]
            if key == "/FontFile3":
                kind = (resolver.resolve_name(dict.get(stream, "/Subtype")) or "/Type1C")[1:]
            data = isolate(
                stream.get_data,
                log=self.log,
                failure=FailureClass.FONT_TABLE_PARSE,
                context={"font": name, "table": key[1:]},
            )
            if not data:
                return None
            length1 = resolver.resolve_number(dict.get(stream, "/Length1"))
            length2 = resolver.resolve_number(dict.get(stream, "/Length2"))
            return decode_program(
                kind,
                data,
                log=self.log,
                font=name,
                length1=int(length1) if length1 is not None else None,
                length2=int(length2) if length2 is not None else None,
            )
        return None

    def _load_to_unicode(self, dictionary: DictionaryObject, name: str) -> ToUnicodeMap | None:
        value = self.resolver.resolve(dict.get(dictionary, "/ToUnicode"))
        if not isinstance(value, StreamObject):
            if isinstance(value, NameObject):
                LOGGER.debug("Font %s: ignoring ToUnicode name %s", name, value)
            return None
        try:
            mapping = parse_to_unicode(value.get_data())
        except Exception as exc:
            self.log.recover(FailureClass.TOUNICODE_PARSE, font=name, error=exc)
            return None
        for code in mapping.invalid:
            self.log.recover(FailureClass.UTF16_DECODE, font=name, data=code, source="ToUnicode")
        return mapping

    # -- simple fonts

    def _build_simple(self, dictionary: DictionaryObject, name: str, subtype: str) -> SimpleFont:
        resolver = self.resolver
        descriptor = resolver.resolve_dict(dict.get(dictionary, "/FontDescriptor"))
        base_font = resolver.resolve_name(dict.get(dictionary, "/BaseFont"))
        flags = int(resolver.resolve_number(dict.get(descriptor, "/Flags") if descriptor else None, 0) or 0)
        program = self._load_program(descriptor, name)

        encoding_obj = resolver.resolve(dict.get(dictionary, "/Encoding"))
        encoding_name: str | None = None
        differences: list[Any] | None = None
        if isinstance(encoding_obj, NameObject):
            encoding_name = str(encoding_obj)
        elif isinstance(encoding_obj, DictionaryObject):
            encoding_name = resolver.resolve_name(dict.get(encoding_obj, "/BaseEncoding"))
            differences = resolver.resolve_array(dict.get(encoding_obj, "/Differences"))

        builtin = program.builtin_encoding if program is not None else {}
        base = select_base_encoding(
            encoding_name,
            base_font=base_font,
            subtype=subtype,
            has_builtin=bool(builtin),
        )
        table = EncodingTable.from_base(base, builtin)
        symbolic = bool(flags & _SYMBOLIC_FLAG)
        if subtype == "/TrueType" and symbolic and encoding_obj is None and program is not None:
            _apply_symbolic_cmap(table, program)
        if differences:
            table.apply_differences(differences)

        font = SimpleFont(name=name, subtype=subtype, program=program, encoding=table, symbolic=symbolic)
        font.to_unicode = self._load_to_unicode(dictionary, name)
        if font.to_unicode is not None:
            table.apply_unicode_map({code: text for code, text in font.to_unicode.mapping.items() if code < 256})
        for code, glyph in sorted(table.unknown.items()):
            text = program.unicode_for_glyph(glyph) if program is not None else None
            if text is not None:
                table.unicode[code] = text
                continue
            self.log.recover(FailureClass.UNKNOWN_GLYPH_NAME, font=name, glyph=glyph, code=code)

        scale = 1.0
        if subtype == "/Type3":
            matrix = resolver.resolve_array(dict.get(dictionary, "/FontMatrix")) or []
            first = resolver.resolve_number(matrix[0]) if matrix else None
            scale = first * 1000.0 if first else 1.0
        font.widths = self._simple_widths(dictionary, name, scale)
        if descriptor is not None:
            missing = resolver.resolve_number(dict.get(descriptor, "/MissingWidth"))
            if missing is not None:
                font.missing_width = missing * scale
        if program is None and subtype != "/Type3":
            font.core_widths = _core_widths(base_font)
        return font

    def _simple_widths(self, dictionary: DictionaryObject, name: str, scale: float) -> dict[int, float]:
        resolver = self.resolver
        values = resolver.resolve_array(dict.get(dictionary, "/Widths"))
        if not values:
            return {}
        first_char = int(resolver.resolve_number(dict.get(dictionary, "/FirstChar"), 0) or 0)
        last_char = resolver.resolve_number(dict.get(dictionary, "/LastChar"))
        expected = int(last_char) - first_char + 1 if last_char is not None else len(values)
        if expected <= 0:
            expected = len(values)
        if len(values) < expected:
            missing = resolver.get(resolver.get(dictionary, "/FontDescriptor"), "/MissingWidth", 0)
            self.log.recover(
                FailureClass.WIDTHS_MISMATCH,
                font=name,
                count=len(values),
                expected=expected,
                missing=missing,
            )
        widths: dict[int, float] = {}
        for offset, value in enumerate(values[:expected]):
            number = resolver.resolve_number(value)
            if number is not None:
                widths[first_char + offset] = number * scale
        return widths

    # -- composite fonts

    def _build_composite(self, dictionary: DictionaryObject, name: str) -> CompositeFont:
        resolver = self.resolver
        font = CompositeFont(name=name, subtype="/Type0", log=self.log)
        font.cmap = self._load_cmap(dictionary, name)
        font.vertical = font.cmap.vertical

        descendants = resolver.resolve_array(dict.get(dictionary, "/DescendantFonts")) or []
        descendant = descendants[0] if descendants and isinstance(descendants[0], DictionaryObject) else None
        if descendant is None:
            LOGGER.debug("Font %s has no usable DescendantFonts", name)
            descendant = DictionaryObject()

        descriptor = resolver.resolve_dict(dict.get(descendant, "/FontDescriptor"))
        font.program = self._load_program(descriptor, name)
        font.to_unicode = self._load_to_unicode(dictionary, name)

        font.default_width = resolver.resolve_number(dict.get(descendant, "/DW"), 1000.0) or 0.0
        font.widths = _parse_cid_widths(resolver, dict.get(descendant, "/W"))
        if font.vertical:
            dw2 = resolver.resolve_array(dict.get(descendant, "/DW2")) or []
            numbers = [resolver.resolve_number(item) for item in dw2]
            if len(numbers) == 2 and None not in numbers:
                font.default_vertical = (numbers[0], numbers[1])  # type: ignore[assignment]
            font.vertical_widths = _parse_cid_vertical(resolver, dict.get(descendant, "/W2"))

        gid_map = resolver.resolve(dict.get(descendant, "/CIDToGIDMap"))
        if isinstance(gid_map, StreamObject):
            data = isolate(
                gid_map.get_data,
                log=self.log,
                failure=FailureClass.FONT_TABLE_PARSE,
                context={"font": name, "table": "CIDToGIDMap"},
            )
            if data:
                font.cid_to_gid = {
                    index // 2: int.from_bytes(data[index : index + 2], "big")
                    for index in range(0, len(data) - 1, 2)
                }
        return font

    def _load_cmap(self, dictionary: DictionaryObject, name: str) -> CMap:
        value = self.resolver.resolve(dict.get(dictionary, "/Encoding"))
        if isinstance(value, NameObject):
            try:
                return predefined_cmap(str(value))
            except CMapError as exc:
                return self.log.recover(FailureClass.MISSING_CMAP, font=name, cmap=str(value)[1:], error=exc)
        if isinstance(value, StreamObject):
            try:
                return parse_cmap(value.get_data(), resolve_parent=predefined_cmap)
            except Exception as exc:
                return self.log.recover(FailureClass.MISSING_CMAP, font=name, cmap="(embedded)", error=exc)
        return self.log.recover(FailureClass.MISSING_CMAP, font=name, cmap="(none)", error="no /Encoding entry")


def _apply_symbolic_cmap(table: EncodingTable, program: FontProgram) -> None:
    """Symbolic TrueType fonts address glyphs through the (3,0) subtable."""

    for code in range(256):
        glyph = program.glyph_for_code(code)
        if glyph is None:
            continue
        table.glyph_names[code] = glyph
        text = program.unicode_for_glyph(glyph) or glyph_to_unicode(glyph)
        if text is not None:
            table.unicode[code] = text


def _core_widths(base_font: str | None) -> Mapping[str, int] | None:
    plain = strip_subset_prefix(base_font)
    metrics = CORE_FONT_METRICS.get(_CORE_FONT_ALIASES.get(plain, plain))
    if metrics is None:
        return None
    return metrics.character_widths


def _parse_cid_widths(resolver: ObjectResolver, value: Any) -> dict[int, float]:
    """``W`` array: ``c [w1 w2 ...]`` and ``cfirst clast w`` groups."""

    items = resolver.resolve_array(value) or []
    widths: dict[int, float] = {}
    index = 0
    while index < len(items):
        first = resolver.resolve_number(items[index])
        if first is None:
            index += 1
            continue
        following = items[index + 1] if index + 1 < len(items) else None
        if isinstance(following, list):
            for offset, item in enumerate(following):
                width = resolver.resolve_number(item)
                if width is not None:
                    widths[int(first) + offset] = width
            index += 2
            continue
        if index + 2 >= len(items):
            break
        last = resolver.resolve_number(following)
        width = resolver.resolve_number(items[index + 2])
        if last is not None and width is not None and 0 <= last - first <= 0xFFFF:
            for cid in range(int(first), int(last) + 1):
                widths[cid] = width
        index += 3
    return widths


def _parse_cid_vertical(resolver: ObjectResolver, value: Any) -> dict[int, float]:
    """``W2`` array; only the vertical displacement ``w1y`` is kept."""

    items = resolver.resolve_array(value) or []
    advances: dict[int, float] = {}
    index = 0
    while index < len(items):
        first = resolver.resolve_number(items[index])
        if first is None:
            index += 1
            continue
        following = items[index + 1] if index + 1 < len(items) else None
        if isinstance(following, list):
            for offset in range(0, len(following) - 2, 3):
                advance = resolver.resolve_number(following[offset])
                if advance is not None:
                    advances[int(first) + offset // 3] = advance
            index += 2
            continue
        if index + 4 >= len(items):
            break
        last = resolver.resolve_number(following)
        advance = resolver.resolve_number(items[index + 2])
        if last is not None and advance is not None and 0 <= last - first <= 0xFFFF:
            for cid in range(int(first), int(last) + 1):
                advances[cid] = advance
        index += 5
    return advances
