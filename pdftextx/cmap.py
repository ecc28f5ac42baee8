"""CMaps: code → CID tables for composite fonts and ToUnicode maps.

Both kinds share the PostScript-flavoured CMap syntax, which is tokenized
with :func:`pdftextx.content.iter_operations`.  Parsing never consults the
warning log; callers decide which failure class a :class:`CMapError` maps to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Iterator

from pypdf.generic import NameObject

from .content import iter_operations

__all__ = [
    "CMap",
    "CMapError",
    "CodespaceRange",
    "IDENTITY_H",
    "IDENTITY_V",
    "ToUnicodeMap",
    "parse_cmap",
    "parse_to_unicode",
    "predefined_cmap",
]

LOGGER = logging.getLogger(__name__)


class CMapError(ValueError):
    """Raised when CMap data cannot be used."""


def _code_value(code: bytes) -> int:
    return int.from_bytes(code, "big") if code else 0


@dataclass(frozen=True, slots=True)
class CodespaceRange:
    low: bytes
    high: bytes

    def __len__(self) -> int:
        return len(self.low)

    def contains(self, code: bytes) -> bool:
        if len(code) != len(self.low):
            return False
        return all(lo <= byte <= hi for byte, lo, hi in zip(code, self.low, self.high))


@dataclass(slots=True)
class CMap:
    """Code → CID mapping with its code-space ranges."""

    name: str = ""
    vertical: bool = False
    codespace: list[CodespaceRange] = field(default_factory=list)
    singles: dict[bytes, int] = field(default_factory=dict)
    ranges: list[tuple[bytes, bytes, int]] = field(default_factory=list)
    identity_width: int | None = None

    @property
    def is_identity(self) -> bool:
        return self.identity_width is not None

    def _code_length(self, data: bytes, offset: int) -> int:
        if self.identity_width is not None and not self.codespace:
            return self.identity_width
        if not self.codespace:
            return 1
        for candidate in sorted({len(item) for item in self.codespace}):
            code = data[offset : offset + candidate]
            if any(item.contains(code) for item in self.codespace):
                return candidate
        # No range matches: use the narrowest range whose first byte fits.
        first = data[offset]
        for item in sorted(self.codespace, key=len):
            if item.low[0] <= first <= item.high[0]:
                return len(item)
        return min(len(item) for item in self.codespace)

    def split(self, data: bytes) -> Iterator[bytes]:
        """Cut ``data`` into character codes."""

        offset = 0
        while offset < len(data):
            width = max(1, self._code_length(data, offset))
            yield data[offset : offset + width]
            offset += width

    def lookup(self, code: bytes) -> int:
        """CID for ``code``; unmapped codes give CID 0."""

        if code in self.singles:
            return self.singles[code]
        value = _code_value(code)
        for low, high, start in self.ranges:
            if len(low) == len(code) and _code_value(low) <= value <= _code_value(high):
                return start + value - _code_value(low)
        if self.identity_width is not None:
            return value
        return 0

    def decode(self, data: bytes) -> list[tuple[bytes, int]]:
        return [(code, self.lookup(code)) for code in self.split(data)]

    def merge(self, parent: "CMap") -> None:
        """Fill gaps from a ``usecmap`` parent."""

        if not self.codespace:
            self.codespace = list(parent.codespace)
        for code, cid in parent.singles.items():
            self.singles.setdefault(code, cid)
        self.ranges.extend(parent.ranges)
        if self.identity_width is None:
            self.identity_width = parent.identity_width


def _identity(name: str, width: int, vertical: bool) -> CMap:
    low, high = b"\x00" * width, b"\xff" * width
    return CMap(
        name=name,
        vertical=vertical,
        codespace=[CodespaceRange(low, high)],
        identity_width=width,
    )


IDENTITY_H = _identity("Identity-H", 2, False)
IDENTITY_V = _identity("Identity-V", 2, True)

_PREDEFINED: dict[str, tuple[int, bool]] = {
    "Identity-H": (2, False),
    "Identity-V": (2, True),
    "DLIdent-H": (2, False),
    "DLIdent-V": (2, True),
    "OneByteIdentityH": (1, False),
    "OneByteIdentityV": (1, True),
}


def predefined_cmap(name: str) -> CMap:
    """Return one of the identity CMaps by name.

    Other predefined CMaps (the Adobe character collections) are not bundled
    and raise :class:`CMapError`.
    """

    plain = name.lstrip("/")
    try:
        width, vertical = _PREDEFINED[plain]
    except KeyError:
        raise CMapError(f"Predefined CMap {plain} is not available") from None
    if plain == "Identity-H":
        return IDENTITY_H
    if plain == "Identity-V":
        return IDENTITY_V
    return _identity(plain, width, vertical)


def _as_code(value: Any) -> bytes | None:
    if isinstance(value, bytes):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("latin-1", "replace")
    return None


def _pairs(operands: list[Any], size: int) -> Iterator[tuple[Any, ...]]:
    for index in range(0, len(operands) - size + 1, size):
        yield tuple(operands[index : index + size])


_CID_SECTIONS = {
    b"begincodespacerange",
    b"begincidchar",
    b"begincidrange",
    b"beginnotdefchar",
    b"beginnotdefrange",
}


def parse_cmap(data: bytes, *, resolve_parent: Any = None) -> CMap:
    """Parse an embedded (code → CID) CMap stream.

    ``resolve_parent`` is called with the name given to ``usecmap`` and
    must return a :class:`CMap`.
    """

    cmap = CMap()
    parent: CMap | None = None
    pending: list[Any] = []
    section: bytes | None = None
    seen_section = False
    for operands, operator in iter_operations(data):
        if section is not None and operator.startswith(b"end"):
            _apply_cid_section(cmap, section, pending + operands)
            section, pending = None, []
            continue
        if operator in _CID_SECTIONS:
            section, pending = operator, []
            seen_section = True
            continue
        if section is not None:
            pending.extend(operands)
            continue
        if operator == b"def" and len(operands) >= 2:
            key, value = operands[-2], operands[-1]
            if key == "/CMapName" and isinstance(value, NameObject):
                cmap.name = str(value)[1:]
            elif key == "/WMode" and isinstance(value, int):
                cmap.vertical = int(value) == 1
        elif operator == b"usecmap" and operands and isinstance(operands[-1], NameObject):
            if resolve_parent is None:
                raise CMapError(f"usecmap {operands[-1]} cannot be resolved")
            parent = resolve_parent(str(operands[-1]))
    if parent is not None:
        cmap.merge(parent)
    elif not seen_section:
        raise CMapError("CMap stream has no mapping sections")
    if not cmap.codespace and not cmap.is_identity:
        lengths = {len(code) for code in cmap.singles} | {len(low) for low, _, _ in cmap.ranges}
        if not lengths:
            raise CMapError("CMap stream defines no code space")
        cmap.codespace = [CodespaceRange(b"\x00" * size, b"\xff" * size) for size in sorted(lengths)]
    return cmap


def _apply_cid_section(cmap: CMap, section: bytes, operands: list[Any]) -> None:
    if section == b"begincodespacerange":
        for low, high in _pairs(operands, 2):
            low_code, high_code = _as_code(low), _as_code(high)
            if low_code and high_code and len(low_code) == len(high_code):
                cmap.codespace.append(CodespaceRange(low_code, high_code))
    elif section == b"begincidchar":
        for code, cid in _pairs(operands, 2):
            code_bytes = _as_code(code)
            if code_bytes is not None and isinstance(cid, (int, float)):
                cmap.singles[code_bytes] = int(cid)
    elif section == b"begincidrange":
        for low, high, cid in _pairs(operands, 3):
            low_code, high_code = _as_code(low), _as_code(high)
            if low_code and high_code and isinstance(cid, (int, float)):
                cmap.ranges.append((low_code, high_code, int(cid)))


# -- ToUnicode ---------------------------------------------------------------


@dataclass(slots=True)
class ToUnicodeMap:
    """Code → text overrides from a ``ToUnicode`` stream."""

    mapping: dict[int, str] = field(default_factory=dict)
    invalid: list[bytes] = field(default_factory=list)

    def __contains__(self, code: int) -> bool:
        return code in self.mapping

    def __len__(self) -> int:
        return len(self.mapping)

    def get(self, code: int) -> str | None:
        return self.mapping.get(code)


def _utf16(data: bytes) -> tuple[str, bool]:
    """Decode a UTF-16BE destination; the flag is ``False`` when lossy."""

    if len(data) % 2:
        return (b"\x00" + data).decode("utf-16-be", "replace"), False
    try:
        return data.decode("utf-16-be"), True
    except UnicodeDecodeError:
        return data.decode("utf-16-be", "replace"), False


def _increment(destination: bytes, step: int) -> bytes:
    """Add ``step`` to the last UTF-16 unit of ``destination``."""

    if len(destination) < 2:
        return bytes([(destination[-1] + step) & 0xFF]) if destination else destination
    last = int.from_bytes(destination[-2:], "big") + step
    return destination[:-2] + (last & 0xFFFF).to_bytes(2, "big")


def parse_to_unicode(data: bytes) -> ToUnicodeMap:
    """Parse ``bfchar`` / ``bfrange`` entries of a ToUnicode CMap.

    Destination strings are UTF-16BE; undecodable ones are kept with
    replacement characters and their source codes listed once per entry in
    :attr:`ToUnicodeMap.invalid`.  Ranges accept both the incrementing and
    the array destination forms.
    """

    result = ToUnicodeMap()
    pending: list[Any] = []
    section: bytes | None = None
    seen_section = False
    for operands, operator in iter_operations(data):
        if section is not None and operator.startswith(b"end"):
            _apply_bf_section(result, section, pending + operands)
            section, pending = None, []
            continue
        if operator in (b"beginbfchar", b"beginbfrange", b"begincodespacerange"):
            section, pending = operator, []
            seen_section = True
            continue
        if section is not None:
            pending.extend(operands)
    if not seen_section:
        raise CMapError("ToUnicode stream has no bfchar or bfrange section")
    return result


def _apply_bf_section(result: ToUnicodeMap, section: bytes, operands: list[Any]) -> None:
    if section == b"beginbfchar":
        for source, destination in _pairs(operands, 2):
            if isinstance(destination, NameObject):
                continue
            code, target = _as_code(source), _as_code(destination)
            if code is None or target is None:
                continue
            text, clean = _utf16(target)
            result.mapping[_code_value(code)] = text
            if not clean:
                result.invalid.append(code)
    elif section == b"beginbfrange":
        for low, high, destination in _pairs(operands, 3):
            low_code, high_code = _as_code(low), _as_code(high)
            if low_code is None or high_code is None:
                continue
            first, last = _code_value(low_code), _code_value(high_code)
            if last < first or last - first > 0xFFFF:
                LOGGER.debug("Ignoring bfrange %r..%r", low_code, high_code)
                continue
            lossy = False
            if isinstance(destination, list):
                targets = [_as_code(item) for item in destination[: last - first + 1]]
            else:
                start = _as_code(destination)
                if start is None:
                    continue
                targets = [_increment(start, offset) for offset in range(last - first + 1)]
            for offset, target in enumerate(targets):
                if target is None:
                    continue
                text, clean = _utf16(target)
                result.mapping[first + offset] = text
                lossy = lossy or not clean
            if lossy:
                result.invalid.append(low_code)
