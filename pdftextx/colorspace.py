"""Colour space families used by the colour operators.

Text extraction only needs to know how many operands a colour takes, so a
colour space is reduced to its family name and component count.  Anything
that does not parse raises :class:`ColorSpaceError`; the interpreter maps
that to DeviceRGB.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pypdf.generic import ArrayObject, DictionaryObject, NameObject, StreamObject

__all__ = [
    "ColorSpace",
    "ColorSpaceError",
    "DEVICE_CMYK",
    "DEVICE_GRAY",
    "DEVICE_RGB",
    "PATTERN",
    "parse_colorspace",
]


class ColorSpaceError(ValueError):
    """Raised for colour space definitions that cannot be interpreted."""


@dataclass(frozen=True, slots=True)
class ColorSpace:
    family: str
    components: int
    base: "ColorSpace | None" = None

    def initial_color(self) -> tuple[float, ...]:
        if self.family == "DeviceCMYK":
            return (0.0, 0.0, 0.0, 1.0)
        if self.family == "Indexed":
            return (0.0,)
        if self.family in ("Separation", "DeviceN"):
            return (1.0,) * self.components
        return (0.0,) * self.components


DEVICE_GRAY = ColorSpace("DeviceGray", 1)
DEVICE_RGB = ColorSpace("DeviceRGB", 3)
DEVICE_CMYK = ColorSpace("DeviceCMYK", 4)
PATTERN = ColorSpace("Pattern", 0)

_DEVICE_SPACES = {
    "/DeviceGray": DEVICE_GRAY,
    "/G": DEVICE_GRAY,
    "/CalGray": ColorSpace("CalGray", 1),
    "/DeviceRGB": DEVICE_RGB,
    "/RGB": DEVICE_RGB,
    "/CalRGB": ColorSpace("CalRGB", 3),
    "/Lab": ColorSpace("Lab", 3),
    "/DeviceCMYK": DEVICE_CMYK,
    "/CMYK": DEVICE_CMYK,
    "/Pattern": PATTERN,
}

_MAX_NESTING = 8


def parse_colorspace(value: Any, resolver: Any, named: Any = None, *, _depth: int = 0) -> ColorSpace:
    """Interpret ``value`` (a name or a colour space array).

    ``resolver`` is an :class:`~pdftextx.objects.ObjectResolver`; ``named``
    is the ``/ColorSpace`` resource dictionary used for non-device names.
    """

    if _depth > _MAX_NESTING:
        raise ColorSpaceError("Colour space nesting is too deep")
    value = resolver.resolve(value)
    if isinstance(value, NameObject):
        name = str(value)
        if name in _DEVICE_SPACES:
            return _DEVICE_SPACES[name]
        resources = resolver.resolve_dict(named)
        if resources is not None and name in resources:
            return parse_colorspace(dict.get(resources, name), resolver, None, _depth=_depth + 1)
        raise ColorSpaceError(f"Unknown colour space {name}")
    if not isinstance(value, (ArrayObject, list)) or not value:
        raise ColorSpaceError(f"Colour space must be a name or array, got {type(value).__name__}")

    family = resolver.resolve_name(value[0])
    if family is None:
        raise ColorSpaceError("Colour space array does not start with a name")
    operands = [resolver.resolve(item) for item in value[1:]]

    if family in ("/CalGray", "/CalRGB", "/Lab"):
        if not operands or not isinstance(operands[0], DictionaryObject):
            raise ColorSpaceError(f"{family} requires a parameter dictionary")
        return _DEVICE_SPACES[family]
    if family == "/ICCBased":
        if not operands or not isinstance(operands[0], StreamObject):
            raise ColorSpaceError("ICCBased requires a profile stream")
        components = resolver.resolve_number(dict.get(operands[0], "/N"))
        if components not in (1.0, 3.0, 4.0):
            raise ColorSpaceError(f"ICCBased has invalid /N {components!r}")
        return ColorSpace("ICCBased", int(components))
    if family in ("/Indexed", "/I"):
        if len(operands) < 3:
            raise ColorSpaceError("Indexed requires base, hival and lookup")
        base = parse_colorspace(value[1], resolver, named, _depth=_depth + 1)
        return ColorSpace("Indexed", 1, base)
    if family == "/Separation":
        if len(operands) < 3:
            raise ColorSpaceError("Separation requires name, alternate and tint transform")
        base = parse_colorspace(value[2], resolver, named, _depth=_depth + 1)
        return ColorSpace("Separation", 1, base)
    if family == "/DeviceN":
        if len(operands) < 3 or not isinstance(operands[0], (ArrayObject, list)):
            raise ColorSpaceError("DeviceN requires names, alternate and tint transform")
        base = parse_colorspace(value[2], resolver, named, _depth=_depth + 1)
        return ColorSpace("DeviceN", len(operands[0]), base)
    if family == "/Pattern":
        if operands:
            base = parse_colorspace(value[1], resolver, named, _depth=_depth + 1)
            return ColorSpace("Pattern", base.components, base)
        return PATTERN
    if family in _DEVICE_SPACES and not operands:
        return _DEVICE_SPACES[family]
    raise ColorSpaceError(f"Unsupported colour space family {family}")
