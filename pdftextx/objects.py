"""Object graph access for text extraction.

This module wraps :class:`pypdf.PdfReader` so the rest of the package never
touches an :class:`~pypdf.generic.IndirectObject` directly.  Reference
chains are followed with an explicit visited set; a dangling or cyclic
reference yields :data:`UNRESOLVED` instead of an exception.  Only the
document loader raises, and only for structural damage that leaves no page
content reachable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
import logging
from typing import Any, Iterator
import zlib

from pypdf import PdfReader
from pypdf.errors import PdfStreamError
from pypdf.generic import (
    ArrayObject,
    DictionaryObject,
    IndirectObject,
    NameObject,
    NullObject,
    StreamObject,
    read_object,
)

from .exceptions import InvalidPDFError, StructuralError

__all__ = [
    "UNRESOLVED",
    "Document",
    "ObjectResolver",
    "PageRecord",
    "reference_of",
]

LOGGER = logging.getLogger(__name__)

_INHERITABLE_KEYS = ("/Resources", "/MediaBox", "/CropBox", "/Rotate")
_FLATE_FILTERS = ("/FlateDecode", "/Fl")


class _Unresolved:
    """Marker returned for references that cannot be followed."""

    _instance: "_Unresolved | None" = None

    def __new__(cls) -> "_Unresolved":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNRESOLVED"


UNRESOLVED = _Unresolved()


def reference_of(obj: Any) -> tuple[int, int] | None:
    """Return ``(id, generation)`` for an indirect object or ``None``."""

    if isinstance(obj, IndirectObject):
        return (obj.idnum, obj.generation)
    indirect = getattr(obj, "indirect_reference", None)
    if isinstance(indirect, IndirectObject):
        return (indirect.idnum, indirect.generation)
    return None


# -- Resolution --------------------------------------------------------------


@dataclass(slots=True)
class ObjectResolver:
    """Follow indirect reference chains on demand."""

    reader: PdfReader

    def resolve(self, obj: Any) -> Any:
        """Return the concrete value behind ``obj`` or :data:`UNRESOLVED`.

        ``obj`` may be a direct object, an :class:`IndirectObject` or a
        ``(id, generation)`` tuple.  A reference that re-enters the chain
        being followed is treated as unresolved.
        """

        if isinstance(obj, tuple) and len(obj) == 2:
            obj = IndirectObject(obj[0], obj[1], self.reader)
        visited: set[tuple[int, int]] = set()
        current = obj
        while isinstance(current, IndirectObject):
            key = (current.idnum, current.generation)
            if key in visited:
                LOGGER.debug("Reference cycle through object %s %s R", *key)
                return UNRESOLVED
            visited.add(key)
            try:
                current = self.reader.get_object(current)
            except Exception as exc:
                # pypdf cannot cache an object whose body is a bare reference.
                link = self._read_link(current)
                if link is None:
                    LOGGER.debug("Object %s %s R could not be read: %s", key[0], key[1], exc)
                    return UNRESOLVED
                current = link
        if current is None or isinstance(current, NullObject):
            return UNRESOLVED
        return current

    def _read_link(self, reference: IndirectObject) -> IndirectObject | None:
        """Read the body of ``reference`` when it is itself a reference."""

        reader = self.reader
        try:
            if reference.generation == 0 and reference.idnum in reader.xref_objStm:
                body = self._read_from_object_stream(reference.idnum)
            else:
                offset = reader.xref.get(reference.generation, {}).get(reference.idnum)
                if offset is None:
                    return None
                reader.stream.seek(offset, 0)
                reader.read_object_header(reader.stream)
                body = read_object(reader.stream, reader)
        except Exception as exc:
            LOGGER.debug("Object %s %s R body could not be read: %s", reference.idnum, reference.generation, exc)
            return None
        return body if isinstance(body, IndirectObject) else None

    def _read_from_object_stream(self, idnum: int) -> Any:
        stream_number, _index = self.reader.xref_objStm[idnum]
        container = self.resolve((stream_number, 0))
        if not isinstance(container, StreamObject):
            return None
        data = container.get_data()
        first = int(container.get("/First", 0))
        header = data[:first].split()
        for number, offset in zip(header[0::2], header[1::2]):
            if int(number) == idnum:
                start = first + int(offset)
                while data[start : start + 1].isspace():
                    start += 1
                stream = BytesIO(data)
                stream.seek(start)
                return read_object(stream, self.reader)
        return None

    def resolve_dict(self, obj: Any) -> DictionaryObject | None:
        value = self.resolve(obj)
        return value if isinstance(value, DictionaryObject) else None

    def resolve_array(self, obj: Any) -> list[Any] | None:
        value = self.resolve(obj)
        if isinstance(value, (ArrayObject, list)):
            return [self.resolve(item) for item in value]
        return None

    def resolve_number(self, obj: Any, default: float | None = None) -> float | None:
        value = self.resolve(obj)
        if isinstance(value, bool):
            return default
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    def resolve_name(self, obj: Any) -> str | None:
        value = self.resolve(obj)
        if isinstance(value, NameObject):
            return str(value)
        return None

    def get(self, dictionary: Any, key: str, default: Any = None) -> Any:
        """Resolved ``dictionary[key]`` without triggering pypdf's own lookups."""

        if not isinstance(dictionary, dict):
            return default
        value = self.resolve(dict.get(dictionary, key))
        if value is UNRESOLVED:
            return default
        return value

    def content_data(self, stream: StreamObject) -> bytes:
        """Decoded content stream payload.

        pypdf hands back whatever prefix of a damaged Flate payload it can
        inflate.  Content operators cut off mid-stream cannot be tokenized
        safely, so an incomplete Flate payload raises
        :class:`~pypdf.errors.PdfStreamError` instead.
        """

        filters = self.resolve(dict.get(stream, "/Filter"))
        if isinstance(filters, (ArrayObject, list)):
            filters = self.resolve(filters[0]) if filters else None
        if filters in _FLATE_FILTERS:
            decompressor = zlib.decompressobj()
            try:
                decompressor.decompress(stream._data)  # type: ignore[attr-defined]
            except zlib.error as exc:
                raise PdfStreamError(f"Corrupt FlateDecode payload: {exc}") from exc
            if not decompressor.eof:
                raise PdfStreamError("Truncated FlateDecode payload")
        return stream.get_data()

    def content_bytes(self, contents: Any) -> bytes:
        """Concatenate a page's ``/Contents`` stream or array of streams."""

        value = self.resolve(contents)
        if value is UNRESOLVED:
            return b""
        if isinstance(value, StreamObject):
            return self.content_data(value)
        chunks: list[bytes] = []
        if isinstance(value, (ArrayObject, list)):
            for item in value:
                stream = self.resolve(item)
                if isinstance(stream, StreamObject):
                    chunks.append(self.content_data(stream))
        return b"\n".join(chunks)


# -- Document and page tree --------------------------------------------------


@dataclass(slots=True)
class PageRecord:
    """Leaf of the page tree with its inherited attributes."""

    index: int
    reference: tuple[int, int] | None
    dictionary: DictionaryObject
    resources: DictionaryObject
    contents: Any
    media_box: tuple[float, float, float, float] | None = None
    rotate: int = 0


@dataclass(slots=True)
class Document:
    """An opened PDF: the reader, its resolver, catalog and page list."""

    reader: PdfReader
    resolver: ObjectResolver
    catalog: DictionaryObject
    pages: list[PageRecord] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @classmethod
    def load(cls, data: bytes | bytearray | memoryview, *, password: str | None = None) -> "Document":
        """Open ``data`` and walk its page tree.

        Raises :class:`InvalidPDFError` when the buffer has no PDF header and
        :class:`StructuralError` when no page is reachable from the trailer.
        """

        payload = bytes(data)
        if b"%PDF-" not in payload[:1024]:
            raise InvalidPDFError("Input does not start with a %PDF- header")
        try:
            reader = PdfReader(BytesIO(payload), strict=False)
            if reader.is_encrypted:
                reader.decrypt(password or "")
        except Exception as exc:
            raise StructuralError(f"Unable to read PDF structure: {exc}") from exc

        resolver = ObjectResolver(reader)
        root_entry = dict.get(reader.trailer, "/Root")
        catalog = resolver.resolve_dict(root_entry)
        if catalog is None:
            raise StructuralError("Document root cannot be resolved", reference=reference_of(root_entry))

        pages_entry = dict.get(catalog, "/Pages")
        pages_root = resolver.resolve_dict(pages_entry)
        if pages_root is None:
            raise StructuralError("Page tree root cannot be resolved", reference=reference_of(pages_entry))

        document = cls(reader=reader, resolver=resolver, catalog=catalog)
        document.pages = list(document._walk_pages(pages_entry))
        if not document.pages:
            raise StructuralError("Page tree contains no reachable pages", reference=reference_of(pages_entry))
        LOGGER.debug("Loaded document with %d page(s)", len(document.pages))
        return document

    def _walk_pages(self, pages_entry: Any) -> Iterator[PageRecord]:
        resolver = self.resolver
        visited: set[tuple[int, int] | int] = set()
        stack: list[tuple[Any, dict[str, Any]]] = [(pages_entry, {})]
        index = 0
        while stack:
            entry, inherited = stack.pop()
            node = resolver.resolve_dict(entry)
            if node is None:
                LOGGER.debug("Skipping unreadable page tree node %r", entry)
                continue
            key = reference_of(entry) or id(node)
            if key in visited:
                LOGGER.debug("Skipping page tree node %r seen before", entry)
                continue
            visited.add(key)

            attributes = dict(inherited)
            for name in _INHERITABLE_KEYS:
                value = resolver.get(node, name)
                if value is not None:
                    attributes[name] = value

            kids = dict.get(node, "/Kids")
            node_type = resolver.resolve_name(dict.get(node, "/Type"))
            if node_type == "/Pages" or (node_type != "/Page" and kids is not None):
                children = resolver.resolve(kids)
                if not isinstance(children, (ArrayObject, list)):
                    LOGGER.debug("Page tree node %r has no usable /Kids", entry)
                    continue
                for child in reversed(children):
                    stack.append((child, attributes))
                continue

            resources = attributes.get("/Resources")
            yield PageRecord(
                index=index,
                reference=reference_of(entry),
                dictionary=node,
                resources=resources if isinstance(resources, DictionaryObject) else DictionaryObject(),
                contents=dict.get(node, "/Contents"),
                media_box=_as_box(resolver, attributes.get("/MediaBox")),
                rotate=int(resolver.resolve_number(attributes.get("/Rotate"), 0) or 0),
            )
            index += 1


def _as_box(resolver: ObjectResolver, value: Any) -> tuple[float, float, float, float] | None:
    items = resolver.resolve_array(value)
    if not items or len(items) != 4:
        return None
    numbers = [resolver.resolve_number(item) for item in items]
    if any(number is None for number in numbers):
        return None
    return tuple(numbers)  # type: ignore[return-value]
