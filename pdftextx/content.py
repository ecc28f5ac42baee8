"""Lazy tokenizer for content streams and embedded CMaps."""

from __future__ import annotations

from io import BytesIO
import logging
import re
from typing import Any, Callable, Iterator

from pypdf.generic import BooleanObject, NullObject, read_object

__all__ = [
    "Operation",
    "iter_operations",
    "TEXT_CONTROL_OPS",
    "TEXT_STATE_OPS",
    "TEXT_POSITION_OPS",
    "TEXT_SHOW_OPS",
    "GRAPHICS_STATE_OPS",
    "COLOR_OPS",
    "PATH_CONSTRUCTION_OPS",
    "PATH_PAINTING_OPS",
    "XOBJECT_OPS",
    "MARKED_CONTENT_OPS",
]

LOGGER = logging.getLogger(__name__)

Operation = tuple[list[Any], bytes]

TEXT_CONTROL_OPS = {b"BT", b"ET"}
TEXT_STATE_OPS = {b"Tc", b"Tw", b"TL", b"Tz", b"Tr", b"Ts", b"Tf", b"d0", b"d1"}
TEXT_POSITION_OPS = {b"Td", b"TD", b"Tm", b"T*"}
TEXT_SHOW_OPS = {b"Tj", b"TJ", b"'", b'"'}
GRAPHICS_STATE_OPS = {b"q", b"Q", b"cm", b"gs", b"w", b"J", b"j", b"M", b"d", b"ri", b"i"}
COLOR_OPS = {b"RG", b"rg", b"G", b"g", b"K", b"k", b"CS", b"cs", b"SC", b"sc", b"SCN", b"scn"}
PATH_CONSTRUCTION_OPS = {b"m", b"l", b"c", b"v", b"y", b"h", b"re"}
PATH_PAINTING_OPS = {b"S", b"s", b"f", b"F", b"f*", b"B", b"B*", b"b", b"b*", b"n"}
XOBJECT_OPS = {b"Do"}
MARKED_CONTENT_OPS = {b"BMC", b"BDC", b"EMC", b"MP", b"DP", b"BX", b"EX"}

_WHITESPACE = b"\x00\t\n\r\f "
_DELIMITERS = b"()<>[]{}/%"
_OPERATOR_LIMIT = 64
_NEWLINE = re.compile(rb"[\r\n]")
_INLINE_IMAGE_DATA = re.compile(rb"ID[\x00\t\n\r\f ]")
_INLINE_IMAGE_END = re.compile(rb"[\x00\t\n\r\f ]EI(?=[\x00\t\n\r\f /<\[(%]|$)")
_KEYWORD_OPERANDS = {
    b"true": BooleanObject(True),
    b"false": BooleanObject(False),
    b"null": NullObject(),
}

ErrorHandler = Callable[[int, Exception], None]


def _read_keyword(data: bytes, index: int) -> tuple[bytes, int]:
    end = index
    while (
        end < len(data)
        and data[end] not in _WHITESPACE
        and data[end] not in _DELIMITERS
        and end - index < _OPERATOR_LIMIT
    ):
        end += 1
    return data[index:end], end


def _skip_inline_image(data: bytes, index: int) -> int:
    """Return the offset just past the ``EI`` closing an inline image."""

    marker = _INLINE_IMAGE_DATA.search(data, index)
    if marker is None:
        return len(data)
    end = _INLINE_IMAGE_END.search(data, marker.end())
    if end is None:
        return len(data)
    return end.end()


def iter_operations(data: bytes, *, on_error: ErrorHandler | None = None) -> Iterator[Operation]:
    """Yield ``(operands, operator)`` groups from ``data`` one at a time.

    Strings are produced as :class:`~pypdf.generic.ByteStringObject` so the
    font layer sees the raw character codes.  Inline images are consumed
    without being yielded.  A token that cannot be parsed is reported to
    ``on_error`` with its byte offset and skipped.
    """

    stream = BytesIO(data)
    length = len(data)
    operands: list[Any] = []
    index = 0
    while True:
        while index < length and data[index] in _WHITESPACE:
            index += 1
        if index >= length:
            break
        byte = data[index : index + 1]
        if byte == b"%":
            newline = _NEWLINE.search(data, index)
            index = newline.end() if newline else length
            continue
        if byte.isalpha() or byte in (b"'", b'"'):
            keyword, index = _read_keyword(data, index)
            if not keyword:
                index += 1
                continue
            if keyword in _KEYWORD_OPERANDS:
                operands.append(_KEYWORD_OPERANDS[keyword])
                continue
            if keyword == b"BI":
                index = _skip_inline_image(data, index)
                operands = []
                continue
            yield operands, keyword
            operands = []
            continue
        stream.seek(index)
        try:
            operands.append(read_object(stream, None, "bytes"))
        except Exception as exc:
            if on_error is not None:
                on_error(index, exc)
            else:
                LOGGER.debug("Skipping malformed token at byte %d: %s", index, exc)
            index = max(stream.tell(), index + 1)
            continue
        index = max(stream.tell(), index + 1)
