"""Custom exceptions raised by :mod:`pdftextx`."""

from __future__ import annotations


class PdfTextExtractError(Exception):
    """Base exception for all errors raised by :mod:`pdftextx`."""


class StructuralError(PdfTextExtractError):
    """Raised when the object graph leaves no page content reachable."""

    def __init__(self, message: str, *, reference: tuple[int, int] | None = None) -> None:
        self.reference = reference
        if reference is not None:
            message = f"{message} (object {reference[0]} {reference[1]} R)"
        super().__init__(message)


class InvalidPDFError(StructuralError):
    """Raised when the input buffer is not a PDF document at all."""
