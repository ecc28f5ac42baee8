"""Content stream interpreter producing positioned glyph runs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from math import hypot
import logging
from typing import Any, ClassVar, Iterable

from pypdf.generic import DictionaryObject, NameObject, StreamObject

from .colorspace import DEVICE_CMYK, DEVICE_GRAY, DEVICE_RGB, ColorSpace, parse_colorspace
from .content import (
    COLOR_OPS,
    GRAPHICS_STATE_OPS,
    PATH_CONSTRUCTION_OPS,
    PATH_PAINTING_OPS,
    TEXT_CONTROL_OPS,
    TEXT_POSITION_OPS,
    TEXT_SHOW_OPS,
    TEXT_STATE_OPS,
    XOBJECT_OPS,
    iter_operations,
)
from .fonts import Font, FontResolver
from .objects import ObjectResolver, reference_of
from .resilience import FailureClass, WarningLog

__all__ = [
    "ContentInterpreter",
    "GlyphFragment",
    "GlyphRun",
    "GraphicsState",
    "PathBuilder",
    "matrix_multiply",
]

LOGGER = logging.getLogger(__name__)

Matrix = tuple[float, float, float, float, float, float]

# Minimum operand counts for path construction and line width.
PATH_OPERAND_COUNTS = {
    b"m": 2,
    b"l": 2,
    b"c": 6,
    b"v": 4,
    b"y": 4,
    b"re": 4,
    b"h": 0,
    b"w": 1,
}

_DEVICE_COLOR_OPS: dict[bytes, tuple[ColorSpace, bool]] = {
    b"G": (DEVICE_GRAY, True),
    b"g": (DEVICE_GRAY, False),
    b"RG": (DEVICE_RGB, True),
    b"rg": (DEVICE_RGB, False),
    b"K": (DEVICE_CMYK, True),
    b"k": (DEVICE_CMYK, False),
}


def matrix_multiply(lhs: Matrix, rhs: Matrix) -> Matrix:
    """Compose so that ``rhs`` is applied first, then ``lhs``."""

    a1, b1, c1, d1, e1, f1 = lhs
    a2, b2, c2, d2, e2, f2 = rhs
    return (
        a1 * a2 + c1 * b2,
        b1 * a2 + d1 * b2,
        a1 * c2 + c1 * d2,
        b1 * c2 + d1 * d2,
        a1 * e2 + c1 * f2 + e1,
        b1 * e2 + d1 * f2 + f1,
    )


def _matrix_apply(matrix: Matrix, x: float, y: float) -> tuple[float, float]:
    a, b, c, d, e, f = matrix
    return a * x + c * y + e, b * x + d * y + f


def _translate(tx: float, ty: float) -> Matrix:
    return (1.0, 0.0, 0.0, 1.0, tx, ty)


def _numbers(operands: list[Any], count: int) -> list[float] | None:
    """Last ``count`` operands as floats, or ``None`` when unusable."""

    if len(operands) < count:
        return None
    values = []
    for value in operands[len(operands) - count :]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        values.append(float(value))
    return values


def _string_bytes(value: Any) -> bytes | None:
    if isinstance(value, bytes):
        return bytes(value)
    if isinstance(value, str) and not isinstance(value, NameObject):
        original = getattr(value, "original_bytes", None)
        if isinstance(original, bytes):
            return original
        return value.encode("latin-1", "replace")
    return None


# -- Output records ----------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GlyphFragment:
    """Text of one glyph at its user-space origin."""

    text: str
    x: float
    y: float
    advance: float
    font_size: float
    vertical: bool = False


@dataclass(frozen=True, slots=True)
class GlyphRun:
    """Fragments emitted by a single text-show operator."""

    operator: str
    fragments: tuple[GlyphFragment, ...] = ()

    @property
    def text(self) -> str:
        return "".join(fragment.text for fragment in self.fragments)


# -- State -------------------------------------------------------------------


@dataclass(slots=True)
class GraphicsState:
    """Graphics state saved and restored by ``q`` / ``Q``."""

    IDENTITY_MATRIX: ClassVar[Matrix] = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)

    ctm: Matrix = IDENTITY_MATRIX
    font: Font | None = None
    font_size: float = 0.0
    character_spacing: float = 0.0
    word_spacing: float = 0.0
    horizontal_scaling: float = 100.0
    leading: float = 0.0
    rise: float = 0.0
    render_mode: int = 0
    line_width: float = 1.0
    fill_space: ColorSpace = DEVICE_GRAY
    stroke_space: ColorSpace = DEVICE_GRAY
    fill_color: tuple[float, ...] = (0.0,)
    stroke_color: tuple[float, ...] = (0.0,)

    def copy(self) -> "GraphicsState":
        return replace(self)


@dataclass(slots=True)
class PathBuilder:
    """Subpaths under construction, in user space."""

    subpaths: list[list[tuple[float, float]]] = field(default_factory=list)

    def __bool__(self) -> bool:
        return any(self.subpaths)

    def last_point(self) -> tuple[float, float] | None:
        for subpath in reversed(self.subpaths):
            if subpath:
                return subpath[-1]
        return None

    def move_to(self, x: float, y: float) -> None:
        self.subpaths.append([(x, y)])

    def line_to(self, x: float, y: float) -> None:
        if not self.subpaths:
            self.subpaths.append([])
        self.subpaths[-1].append((x, y))

    def close(self) -> None:
        if self.subpaths and self.subpaths[-1]:
            self.subpaths[-1].append(self.subpaths[-1][0])

    def clear(self) -> None:
        self.subpaths = []


# -- Interpreter -------------------------------------------------------------


class ContentInterpreter:
    """Run the operators of one page (and its form XObjects).

    Create one interpreter per page: token warnings are limited to one per
    instance.
    """

    def __init__(
        self,
        resolver: ObjectResolver,
        fonts: FontResolver,
        log: WarningLog,
        *,
        max_xobject_depth: int = 8,
    ) -> None:
        self.resolver = resolver
        self.fonts = fonts
        self.log = log
        self.max_xobject_depth = max_xobject_depth
        self.state = GraphicsState()
        self.stack: list[GraphicsState] = []
        self.text_matrix: Matrix = GraphicsState.IDENTITY_MATRIX
        self.line_matrix: Matrix = GraphicsState.IDENTITY_MATRIX
        self.path = PathBuilder()
        self.runs: list[GlyphRun] = []
        self._resources: list[DictionaryObject] = []
        self._forms: list[Any] = []
        self._token_warned = False

    # -- entry points

    def run(self, data: bytes, resources: DictionaryObject | None) -> list[GlyphRun]:
        """Interpret ``data`` and return every glyph run emitted so far."""

        self._resources.append(resources if resources is not None else DictionaryObject())
        try:
            for operands, operator in iter_operations(data, on_error=self._token_error):
                self.execute(operands, operator)
        finally:
            self._resources.pop()
        return self.runs

    def execute(self, operands: list[Any], operator: bytes) -> None:
        if operator in TEXT_SHOW_OPS:
            self._show_operator(operands, operator)
        elif operator in PATH_OPERAND_COUNTS:
            self._path_operator(operands, operator)
        elif operator in TEXT_POSITION_OPS:
            self._position_operator(operands, operator)
        elif operator in TEXT_STATE_OPS:
            self._text_state_operator(operands, operator)
        elif operator in TEXT_CONTROL_OPS:
            if operator == b"BT":
                self.text_matrix = self.line_matrix = GraphicsState.IDENTITY_MATRIX
        elif operator in GRAPHICS_STATE_OPS:
            self._graphics_operator(operands, operator)
        elif operator in COLOR_OPS:
            self._color_operator(operands, operator)
        elif operator in PATH_PAINTING_OPS:
            self.path.clear()
        elif operator in XOBJECT_OPS:
            if operands and isinstance(operands[-1], NameObject):
                self._draw_xobject(str(operands[-1]))
        elif operator in (b"W", b"W*"):
            pass
        else:
            LOGGER.debug("Ignoring operator %r", operator)

    def current_point(self) -> tuple[float, float]:
        point = self.path.last_point()
        if point is None:
            return self.log.recover(FailureClass.EMPTY_PATH_POINT)
        return point

    # -- helpers

    @property
    def resources(self) -> DictionaryObject:
        return self._resources[-1] if self._resources else DictionaryObject()

    def _resource(self, category: str, name: str) -> Any:
        table = self.resolver.resolve_dict(dict.get(self.resources, category))
        if table is None:
            return None
        return dict.get(table, name)

    def _token_error(self, offset: int, exc: Exception) -> None:
        if self._token_warned:
            LOGGER.debug("Skipping malformed token at byte %d: %s", offset, exc)
            return
        self._token_warned = True
        self.log.recover(FailureClass.CONTENT_STREAM_TOKEN, offset=offset, error=exc)

    # -- text

    def _text_state_operator(self, operands: list[Any], operator: bytes) -> None:
        state = self.state
        if operator == b"Tf":
            if len(operands) < 2 or not isinstance(operands[-2], NameObject):
                LOGGER.debug("Tf with unusable operands %r", operands)
                return
            size = _numbers(operands, 1)
            self._select_font(str(operands[-2]), size[0] if size else state.font_size)
            return
        if operator in (b"d0", b"d1"):
            return
        values = _numbers(operands, 1)
        if values is None:
            LOGGER.debug("%s needs a numeric operand, got %r", operator.decode(), operands)
            return
        value = values[0]
        if operator == b"Tc":
            state.character_spacing = value
        elif operator == b"Tw":
            state.word_spacing = value
        elif operator == b"TL":
            state.leading = value
        elif operator == b"Tz":
            state.horizontal_scaling = value
        elif operator == b"Ts":
            state.rise = value
        elif operator == b"Tr":
            state.render_mode = int(value)

    def _select_font(self, name: str, size: float) -> None:
        entry = self._resource("/Font", name)
        if entry is None:
            LOGGER.debug("Font resource %s not found", name)
            self.state.font = None
        else:
            self.state.font = self.fonts.load(entry, name[1:])
        self.state.font_size = size

    def _position_operator(self, operands: list[Any], operator: bytes) -> None:
        if operator == b"T*":
            self._next_line(0.0, -self.state.leading)
            return
        if operator == b"Tm":
            values = _numbers(operands, 6)
            if values is None:
                LOGGER.debug("Tm needs six numbers, got %r", operands)
                return
            self.text_matrix = self.line_matrix = tuple(values)  # type: ignore[assignment]
            return
        values = _numbers(operands, 2)
        if values is None:
            LOGGER.debug("%s needs two numbers, got %r", operator.decode(), operands)
            return
        if operator == b"TD":
            self.state.leading = -values[1]
        self._next_line(values[0], values[1])

    def _next_line(self, tx: float, ty: float) -> None:
        self.line_matrix = matrix_multiply(self.line_matrix, _translate(tx, ty))
        self.text_matrix = self.line_matrix

    def _show_operator(self, operands: list[Any], operator: bytes) -> None:
        if self.state.font is None:
            self.log.recover(FailureClass.NO_FONT_SELECTED, operator=operator.decode())
            return
        if operator == b"TJ":
            items = operands[-1] if operands and isinstance(operands[-1], list) else None
            if items is None:
                LOGGER.debug("TJ without an array operand")
                return
            self._show(items, operator)
            return
        if not operands:
            LOGGER.debug("%s without a string operand", operator.decode())
            return
        if operator == b'"':
            spacing = _numbers(operands[:-1], 2)
            if spacing is not None:
                self.state.word_spacing, self.state.character_spacing = spacing
        if operator in (b"'", b'"'):
            self._next_line(0.0, -self.state.leading)
        self._show([operands[-1]], operator)

    def _show(self, items: Iterable[Any], operator: bytes) -> None:
        state = self.state
        font = state.font
        assert font is not None
        size = state.font_size
        scaling = state.horizontal_scaling / 100.0
        fragments: list[GlyphFragment] = []
        for item in items:
            data = _string_bytes(item)
            if data is None:
                if isinstance(item, (int, float)) and not isinstance(item, bool):
                    offset = -float(item) / 1000.0 * size
                    if font.vertical:
                        self.text_matrix = matrix_multiply(self.text_matrix, _translate(0.0, offset))
                    else:
                        self.text_matrix = matrix_multiply(self.text_matrix, _translate(offset * scaling, 0.0))
                continue
            for char in font.decode(data):
                render = matrix_multiply(state.ctm, self.text_matrix)
                x, y = _matrix_apply(render, 0.0, state.rise)
                spacing = state.character_spacing + (state.word_spacing if char.is_space else 0.0)
                if font.vertical:
                    advance = (char.vertical_advance or 0.0) / 1000.0 * size + spacing
                    step = _translate(0.0, advance)
                else:
                    advance = (char.width / 1000.0 * size + spacing) * scaling
                    step = _translate(advance, 0.0)
                self.text_matrix = matrix_multiply(self.text_matrix, step)
                if not char.text:
                    continue
                end_x, end_y = _matrix_apply(matrix_multiply(state.ctm, self.text_matrix), 0.0, state.rise)
                a, b, c, d, _e, _f = render
                scale = hypot(c, d) if font.vertical else hypot(a, b)
                fragments.append(
                    GlyphFragment(
                        text=char.text,
                        x=x,
                        y=y,
                        advance=hypot(end_x - x, end_y - y),
                        font_size=abs(size * (scale or 1.0)),
                        vertical=font.vertical,
                    )
                )
        self.runs.append(GlyphRun(operator=operator.decode(), fragments=tuple(fragments)))

    # -- graphics state

    def _graphics_operator(self, operands: list[Any], operator: bytes) -> None:
        if operator == b"q":
            self.stack.append(self.state.copy())
        elif operator == b"Q":
            if self.stack:
                self.state = self.stack.pop()
            else:
                LOGGER.debug("Q without matching q; keeping the current state")
        elif operator == b"cm":
            values = _numbers(operands, 6)
            if values is None:
                LOGGER.debug("cm needs six numbers, got %r", operands)
                return
            self.state.ctm = matrix_multiply(self.state.ctm, tuple(values))  # type: ignore[arg-type]
        elif operator == b"gs":
            if operands and isinstance(operands[-1], NameObject):
                self._apply_ext_gstate(str(operands[-1]))

    def _apply_ext_gstate(self, name: str) -> None:
        params = self.resolver.resolve_dict(self._resource("/ExtGState", name))
        if params is None:
            LOGGER.debug("ExtGState %s not found", name)
            return
        width = self.resolver.resolve_number(dict.get(params, "/LW"))
        if width is not None:
            self.state.line_width = width
        font_entry = self.resolver.resolve_array(dict.get(params, "/Font"))
        if font_entry and len(font_entry) == 2:
            size = self.resolver.resolve_number(font_entry[1], self.state.font_size) or 0.0
            self.state.font = self.fonts.load(font_entry[0], name[1:])
            self.state.font_size = size

    # -- colour

    def _color_operator(self, operands: list[Any], operator: bytes) -> None:
        state = self.state
        if operator in _DEVICE_COLOR_OPS:
            space, stroke = _DEVICE_COLOR_OPS[operator]
            values = _numbers(operands, space.components)
            if values is None:
                LOGGER.debug("%s needs %d numbers, got %r", operator.decode(), space.components, operands)
                return
            self._set_color(space, tuple(values), stroke)
        elif operator in (b"CS", b"cs"):
            if not operands:
                LOGGER.debug("%s without a colour space operand", operator.decode())
                return
            space = self._colorspace(operands[-1])
            self._set_color(space, space.initial_color(), operator == b"CS")
        else:
            stroke = operator in (b"SC", b"SCN")
            space = state.stroke_space if stroke else state.fill_space
            values = [float(item) for item in operands if isinstance(item, (int, float)) and not isinstance(item, bool)]
            self._set_color(space, tuple(values[: space.components] or space.initial_color()), stroke)

    def _colorspace(self, value: Any) -> ColorSpace:
        named = dict.get(self.resources, "/ColorSpace")
        try:
            return parse_colorspace(value, self.resolver, named)
        except Exception as exc:
            return self.log.recover(FailureClass.MALFORMED_COLORSPACE, name=value, error=exc)

    def _set_color(self, space: ColorSpace, color: tuple[float, ...], stroke: bool) -> None:
        if stroke:
            self.state.stroke_space, self.state.stroke_color = space, color
        else:
            self.state.fill_space, self.state.fill_color = space, color

    # -- paths

    def _path_operator(self, operands: list[Any], operator: bytes) -> None:
        required = PATH_OPERAND_COUNTS[operator]
        values = _numbers(operands, required) if required else []
        if values is None:
            self.log.recover(
                FailureClass.PATH_OPERANDS,
                operator=operator.decode(),
                required=required,
                count=len(operands),
            )
            return
        path = self.path
        if operator == b"m":
            path.move_to(values[0], values[1])
        elif operator == b"l":
            if not path:
                path.move_to(*self.current_point())
            path.line_to(values[0], values[1])
        elif operator in (b"c", b"y"):
            if not path:
                path.move_to(*self.current_point())
            path.line_to(values[-2], values[-1])
        elif operator == b"v":
            # The first control point is the current point.
            start = self.current_point()
            if not path:
                path.move_to(*start)
            path.line_to(values[2], values[3])
        elif operator == b"re":
            x, y, width, height = values
            path.move_to(x, y)
            path.line_to(x + width, y)
            path.line_to(x + width, y + height)
            path.line_to(x, y + height)
            path.close()
        elif operator == b"h":
            path.close()
        elif operator == b"w":
            self.state.line_width = values[0]

    # -- XObjects

    def _draw_xobject(self, name: str) -> None:
        entry = self._resource("/XObject", name)
        xobject = self.resolver.resolve(entry)
        if not isinstance(xobject, StreamObject):
            LOGGER.debug("XObject %s not found", name)
            return
        if self.resolver.resolve_name(dict.get(xobject, "/Subtype")) != "/Form":
            return
        key = reference_of(entry) or id(xobject)
        if key in self._forms:
            self.log.recover(FailureClass.XOBJECT, name=name, error="form XObject draws itself")
            return
        if len(self._forms) >= self.max_xobject_depth:
            self.log.recover(
                FailureClass.XOBJECT,
                name=name,
                error=f"nesting deeper than {self.max_xobject_depth} levels",
            )
            return
        try:
            data = self.resolver.content_data(xobject)
        except Exception as exc:
            self.log.recover(FailureClass.XOBJECT, name=name, error=exc)
            return

        resources = self.resolver.resolve_dict(dict.get(xobject, "/Resources")) or self.resources
        matrix = self.resolver.resolve_array(dict.get(xobject, "/Matrix")) or []
        values = [self.resolver.resolve_number(item) for item in matrix]

        saved_state, saved_depth = self.state.copy(), len(self.stack)
        saved_text = (self.text_matrix, self.line_matrix)
        if len(values) == 6 and None not in values:
            self.state.ctm = matrix_multiply(self.state.ctm, tuple(values))  # type: ignore[arg-type]
        self._forms.append(key)
        try:
            self.run(data, resources)
        finally:
            self._forms.pop()
            del self.stack[saved_depth:]
            self.state = saved_state
            self.text_matrix, self.line_matrix = saved_text
