"""Linearise glyph runs into text."""

from __future__ import annotations

from typing import Iterable

from .interpreter import GlyphFragment, GlyphRun

__all__ = ["TextAssembler"]


class TextAssembler:
    """Concatenate fragments in emission order.

    No layout is reconstructed by default.  With ``detect_breaks`` a newline
    is inserted when the baseline moves by more than half the font size, and
    a space when the gap to the previous fragment exceeds ``word_gap_ratio``
    times the font size.
    """

    def __init__(self, *, detect_breaks: bool = False, word_gap_ratio: float = 0.15) -> None:
        self.detect_breaks = detect_breaks
        self.word_gap_ratio = word_gap_ratio

    def assemble(self, runs: Iterable[GlyphRun]) -> str:
        parts: list[str] = []
        previous: GlyphFragment | None = None
        for run in runs:
            for fragment in run.fragments:
                if self.detect_breaks and previous is not None:
                    separator = self._separator(previous, fragment)
                    if separator == "\n" and not _ends_with(parts, "\n"):
                        parts.append(separator)
                    elif separator == " " and not _ends_with_space(parts) and not fragment.text[:1].isspace():
                        parts.append(separator)
                parts.append(fragment.text)
                previous = fragment
        return "".join(parts)

    def join_pages(self, pages: Iterable[str], separator: str) -> str:
        return separator.join(pages)

    def _separator(self, previous: GlyphFragment, current: GlyphFragment) -> str:
        size = max(previous.font_size, current.font_size) or 1.0
        if current.vertical:
            line_shift = current.x - previous.x
            gap = (previous.y - previous.advance) - current.y
        else:
            line_shift = current.y - previous.y
            gap = current.x - (previous.x + previous.advance)
        if abs(line_shift) > 0.5 * size:
            return "\n"
        if gap > self.word_gap_ratio * size:
            return " "
        return ""


def _ends_with_space(parts: list[str]) -> bool:
    return bool(parts) and parts[-1][-1:].isspace()


def _ends_with(parts: list[str], suffix: str) -> bool:
    return bool(parts) and parts[-1].endswith(suffix)
