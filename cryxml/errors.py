"""
errors.py – exception types raised by the CryXmlB codec and converters.

Every codec error derives from ``CryXmlError`` which is itself a
``ValueError``, so callers catching ``ValueError`` around a decode/encode keep
working.  Plain I/O problems surface as the built-in ``OSError``.
"""

from __future__ import annotations


class CryXmlError(ValueError):
    """Base class for all CryXmlB conversion errors."""


class UnknownFormatError(CryXmlError):
    """File is neither XML text (``<``) nor packed CryXmlB (``C``)."""


class AlreadyTargetFormatError(CryXmlError):
    """File is already in the requested representation (informational)."""


class InvalidSignatureError(CryXmlError):
    """Buffer does not start with the ``CryXmlB\\0`` signature."""


# Alias kept for callers that think of it as "not a CryXmlB file".
NotCryXmlFormat = InvalidSignatureError


class TruncatedOrCorruptError(CryXmlError):
    """A table, record or string lies outside the buffer, or is malformed."""


class XmlParseError(CryXmlError):
    """The XML text could not be parsed."""

    def __init__(self, message: str, position: tuple[int, int] | None = None):
        super().__init__(message)
        self.position = position


class EncodeError(CryXmlError):
    """A tree or value cannot be represented in the output format."""


class BackupError(CryXmlError):
    """The backup copy of a file about to be overwritten could not be written."""
