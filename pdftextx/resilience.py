"""Recoverable failure classes and the fault-isolation boundary.

Every recoverable problem met during extraction is one of the
:class:`FailureClass` members.  :data:`FAILURE_POLICIES` binds each class to
a single fallback value and a message template, so the code that detects a
failure only has to call :meth:`WarningLog.recover` and use whatever it
returns.  The log keeps the ordered :class:`WarningEvent` history and forwards
each event to :mod:`logging`.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
import logging
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping, TypeVar

from .cmap import IDENTITY_H
from .colorspace import DEVICE_RGB

__all__ = [
    "FailureClass",
    "FallbackPolicy",
    "FAILURE_POLICIES",
    "WarningEvent",
    "WarningLog",
    "isolate",
]

LOGGER = logging.getLogger("pdftextx.warnings")

T = TypeVar("T")


class FailureClass(str, Enum):
    """Named recoverable failures."""

    UNKNOWN_GLYPH_NAME = "unknown_glyph_name"
    FONT_TABLE_PARSE = "font_table_parse"
    MISSING_CMAP = "missing_cmap"
    TOUNICODE_PARSE = "tounicode_parse"
    MALFORMED_COLORSPACE = "malformed_colorspace"
    WIDTHS_MISMATCH = "widths_mismatch"
    PATH_OPERANDS = "path_operands"
    EMPTY_PATH_POINT = "empty_path_point"
    CONTENT_STREAM_DECODE = "content_stream_decode"
    CONTENT_STREAM_TOKEN = "content_stream_token"
    NO_FONT_SELECTED = "no_font_selected"
    UTF16_DECODE = "utf16_decode"
    TYPE1_PROGRAM = "type1_program"
    XOBJECT = "xobject"


@dataclass(frozen=True, slots=True)
class FallbackPolicy:
    """Fallback value factory and warning template for a failure class."""

    fallback: Callable[[], Any]
    template: str
    level: int = logging.WARNING


def _nothing() -> None:
    return None


FAILURE_POLICIES: Mapping[FailureClass, FallbackPolicy] = MappingProxyType(
    {
        FailureClass.UNKNOWN_GLYPH_NAME: FallbackPolicy(
            _nothing,
            "Font {font}: glyph name {glyph!r} for code {code} is not in any glyph table; code skipped",
        ),
        FailureClass.FONT_TABLE_PARSE: FallbackPolicy(
            _nothing,
            "Font {font}: could not parse {table}: {error}; continuing without it",
        ),
        FailureClass.MISSING_CMAP: FallbackPolicy(
            lambda: IDENTITY_H,
            "Font {font}: CMap {cmap} is missing or unusable ({error}); substituting Identity-H",
        ),
        FailureClass.TOUNICODE_PARSE: FallbackPolicy(
            _nothing,
            "Font {font}: ToUnicode CMap could not be parsed ({error}); using the font encoding",
        ),
        FailureClass.MALFORMED_COLORSPACE: FallbackPolicy(
            lambda: DEVICE_RGB,
            "Page {page}: colour space {name} is malformed ({error}); substituting DeviceRGB",
        ),
        FailureClass.WIDTHS_MISMATCH: FallbackPolicy(
            _nothing,
            "Font {font}: Widths has {count} entries for {expected} codes; using MissingWidth {missing} beyond",
        ),
        FailureClass.PATH_OPERANDS: FallbackPolicy(
            _nothing,
            "Page {page}: operator {operator} needs {required} operands but got {count}; operator skipped",
        ),
        FailureClass.EMPTY_PATH_POINT: FallbackPolicy(
            lambda: (0.0, 0.0),
            "Page {page}: current point requested on an empty path; using the origin",
            logging.DEBUG,
        ),
        FailureClass.CONTENT_STREAM_DECODE: FallbackPolicy(
            _nothing,
            "Page {page}: content stream could not be decoded ({error}); page skipped",
        ),
        FailureClass.CONTENT_STREAM_TOKEN: FallbackPolicy(
            _nothing,
            "Page {page}: malformed content stream token at byte {offset} ({error}); token skipped",
        ),
        FailureClass.NO_FONT_SELECTED: FallbackPolicy(
            _nothing,
            "Page {page}: operator {operator} shows text before any font was selected; ignored",
        ),
        FailureClass.UTF16_DECODE: FallbackPolicy(
            _nothing,
            "Font {font}: invalid UTF-16 data {data!r} in {source}; undecodable units replaced",
        ),
        FailureClass.TYPE1_PROGRAM: FallbackPolicy(
            _nothing,
            "Font {font}: embedded Type1 program could not be decoded ({error}); program ignored",
        ),
        FailureClass.XOBJECT: FallbackPolicy(
            _nothing,
            "Page {page}: form XObject {name} skipped ({error})",
        ),
    }
)


@dataclass(frozen=True, slots=True)
class WarningEvent:
    """A single recoverable failure, in emission order."""

    failure: FailureClass
    message: str
    context: Mapping[str, Any] = field(default_factory=dict)

    @property
    def font(self) -> str | None:
        value = self.context.get("font")
        return str(value) if value is not None else None

    @property
    def page(self) -> int | None:
        value = self.context.get("page")
        return value if isinstance(value, int) else None


class _TemplateContext(dict):
    def __missing__(self, key: str) -> str:
        return "?"


class WarningLog:
    """Append-only record of :class:`WarningEvent` objects."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.events: list[WarningEvent] = []
        self._logger = logger or LOGGER
        self._scopes: list[dict[str, Any]] = []

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[WarningEvent]:
        return iter(self.events)

    @contextmanager
    def scope(self, **context: Any) -> Iterator["WarningLog"]:
        """Attach ``context`` (page index, font name, ...) to nested events."""

        self._scopes.append(context)
        try:
            yield self
        finally:
            self._scopes.pop()

    def recover(self, failure: FailureClass, **context: Any) -> Any:
        """Record ``failure`` and return the fallback its policy prescribes."""

        policy = FAILURE_POLICIES[failure]
        merged: dict[str, Any] = {}
        for scope in self._scopes:
            merged.update(scope)
        merged.update(context)
        message = policy.template.format_map(_TemplateContext(merged))
        event = WarningEvent(failure=failure, message=message, context=merged)
        self.events.append(event)
        self._emit(policy.level, event)
        return policy.fallback()

    def count(self, failure: FailureClass) -> int:
        return sum(1 for event in self.events if event.failure is failure)

    def debug(self, message: str, *args: Any) -> None:
        try:
            self._logger.debug(message, *args)
        except Exception:
            pass

    def _emit(self, level: int, event: WarningEvent) -> None:
        try:
            self._logger.log(level, "[%s] %s", event.failure.value, event.message)
        except Exception:
            # Logging sinks must never interrupt extraction.
            pass


def isolate(
    operation: Callable[..., T],
    *args: Any,
    log: WarningLog,
    failure: FailureClass,
    context: Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> T | Any:
    """Run ``operation`` and turn any escaping fault into its fallback."""

    try:
        return operation(*args, **kwargs)
    except Exception as exc:
        log.debug(
            "Fault isolated in %s: %r",
            getattr(operation, "__qualname__", repr(operation)),
            exc,
        )
        return log.recover(failure, error=exc, **dict(context or {}))
