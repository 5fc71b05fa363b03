"""
convert.py – format detection and in-place CryXmlB ↔ XML file conversion.

Detection looks only at the first byte of a file:
  ``<`` → XML text
  ``C`` → CryXmlB (the signature is checked later by the decoder)

Converting a file replaces it in place.  Before the file is overwritten its
original bytes are preserved next to it:
  CryXmlB → XML   ``<name>.bak``
  XML → CryXmlB   ``<name>.xml.bak``
If the backup cannot be written, ``BackupError`` is raised and the file is
left alone.
"""

from __future__ import annotations

import os
import re
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path

from .decode import decode
from .encode import build_tables
from .errors import (
    AlreadyTargetFormatError,
    BackupError,
    EncodeError,
    TruncatedOrCorruptError,
    UnknownFormatError,
    XmlParseError,
)
from .tables import write_tables


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FORMAT_XML     = "xml"
FORMAT_CRYXMLB = "cryxmlb"

XML_BACKUP_SUFFIX     = ".bak"        # written when converting to XML
CRYXMLB_BACKUP_SUFFIX = ".xml.bak"    # written when converting to CryXmlB

_XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# XML 1.0 Char and Name productions.
_NAME_START = (
    ":A-Z_a-z\\u00c0-\\u00d6\\u00d8-\\u00f6\\u00f8-\\u02ff\\u0370-\\u037d"
    "\\u037f-\\u1fff\\u200c-\\u200d\\u2070-\\u218f\\u2c00-\\u2fef"
    "\\u3001-\\ud7ff\\uf900-\\ufdcf\\ufdf0-\\ufffd\\U00010000-\\U000effff"
)
_NAME_CHAR = _NAME_START + "\\-.0-9\\u00b7\\u0300-\\u036f\\u203f-\\u2040"
_NAME = f"[{_NAME_START}][{_NAME_CHAR}]*"
# ElementTree spells a namespaced name as {uri}local
_NAME_RE = re.compile(rf"(?:\{{[^}}]*\}})?{_NAME}")
_ILLEGAL_CHAR_RE = re.compile(
    "[^\\t\\n\\r\\u0020-\\ud7ff\\ue000-\\ufffd\\U00010000-\\U0010ffff]"
)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def detect_format(data: bytes | bytearray) -> str:
    """Return FORMAT_XML or FORMAT_CRYXMLB based on the first byte of *data*."""
    if not data:
        raise UnknownFormatError("file is empty")
    first = data[:1]
    if first == b"<":
        return FORMAT_XML
    if first == b"C":
        return FORMAT_CRYXMLB
    raise UnknownFormatError(f"unknown file format (first byte {first!r})")


def is_cryxmlb(path: str | os.PathLike) -> bool:
    """Return True if the file at *path* looks like a CryXmlB file."""
    try:
        with open(path, "rb") as fh:
            return fh.read(1) == b"C"
    except OSError:
        return False


# ---------------------------------------------------------------------------
# XML text
# ---------------------------------------------------------------------------

def _drop_layout_whitespace(elem: ET.Element) -> None:
    """Clear whitespace-only text on elements that have children (indentation)."""
    for e in elem.iter():
        if len(e) and e.text is not None and not e.text.strip():
            e.text = None


def parse_xml(data: bytes | str) -> ET.Element:
    """Parse XML text and return its root element."""
    try:
        root = ET.fromstring(data)
    except ET.ParseError as exc:
        raise XmlParseError(f"XML parse error: {exc}", getattr(exc, "position", None)) from exc
    _drop_layout_whitespace(root)
    return root


def _check_name(name, what: str) -> None:
    if not isinstance(name, str) or not _NAME_RE.fullmatch(name):
        raise TruncatedOrCorruptError(f"{what} {name!r} is not a legal XML name")


def _check_chars(text: str | None, what: str) -> None:
    if text is None:
        return
    m = _ILLEGAL_CHAR_RE.search(text)
    if m:
        raise TruncatedOrCorruptError(
            f"{what} contains character {m.group()!r} which XML cannot represent"
        )


def check_xml_legal(root: ET.Element) -> None:
    """Raise TruncatedOrCorruptError if *root* cannot be written as XML 1.0."""
    for elem in root.iter():
        if callable(elem.tag):
            continue
        _check_name(elem.tag, "element name")
        _check_chars(elem.text, f"text of <{elem.tag}>")
        for name, value in elem.attrib.items():
            _check_name(name, f"attribute name on <{elem.tag}>")
            _check_chars(value, f"attribute {name!r} of <{elem.tag}>")


def to_xml_text(root: ET.Element, indent: str | None = "  ") -> bytes:
    """Serialise *root* as UTF-8 XML with a declaration, indented by *indent*."""
    check_xml_legal(root)
    tree = ET.ElementTree(root)
    try:
        if indent:
            ET.indent(tree, space=indent)
        body = ET.tostring(root, encoding="unicode")
    except RecursionError as exc:
        raise EncodeError("element tree is nested too deeply to write as XML text") from exc
    return (_XML_DECLARATION + body + "\n").encode("utf-8")


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------

def backup_path(path: str | os.PathLike, suffix: str) -> Path:
    path = Path(path)
    return path.with_name(path.name + suffix)


def _write_backup(path: Path, data: bytes, suffix: str, verbose: bool) -> Path:
    dest = backup_path(path, suffix)
    try:
        dest.write_bytes(data)
    except OSError as exc:
        raise BackupError(f"cannot write backup file {dest}: {exc}") from exc
    if verbose:
        print(f"Backed up {path.name} to {dest.name}")
    return dest


def _atomic_write(path: Path, data: bytes) -> None:
    """Write *data* to *path* atomically (via a temp file + rename)."""
    fd, tmp_path = tempfile.mkstemp(suffix=".cryxml.tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------

def _cryxmlb_to_xml(path: Path, data: bytes, verbose: bool) -> None:
    if detect_format(data) == FORMAT_XML:
        raise AlreadyTargetFormatError(f"File {path} is already XML")
    root = decode(data)
    text = to_xml_text(root)
    _write_backup(path, data, XML_BACKUP_SUFFIX, verbose)
    _atomic_write(path, text)
    if verbose:
        print(f"Wrote {path.name} ({sum(1 for _ in root.iter())} elements)")


def _xml_to_cryxmlb(path: Path, data: bytes, verbose: bool) -> None:
    if detect_format(data) == FORMAT_CRYXMLB:
        raise AlreadyTargetFormatError(f"File {path} is already in CryXmlB format")
    tables = build_tables(parse_xml(data))
    packed = write_tables(tables)
    _write_backup(path, data, CRYXMLB_BACKUP_SUFFIX, verbose)
    _atomic_write(path, packed)
    if verbose:
        print(
            f"Wrote {path.name}: {len(tables.nodes)} nodes, "
            f"{len(tables.attributes)} attributes, {len(tables.data)} bytes of strings"
        )


def convert_to_xml(path: str | os.PathLike, verbose: bool = False) -> None:
    """Replace the CryXmlB file at *path* with its XML text."""
    path = Path(path)
    _cryxmlb_to_xml(path, path.read_bytes(), verbose)


def convert_to_cryxmlb(path: str | os.PathLike, verbose: bool = False) -> None:
    """Replace the XML file at *path* with its CryXmlB encoding."""
    path = Path(path)
    _xml_to_cryxmlb(path, path.read_bytes(), verbose)


def convert_file(
    path: str | os.PathLike,
    direction: str | None = None,
    verbose: bool = False,
) -> str:
    """
    Convert *path* in place and return the format it was converted to.

    *direction* is FORMAT_XML, FORMAT_CRYXMLB or None; with None the file is
    converted to CryXmlB when it starts with ``<`` and to XML otherwise.
    """
    path = Path(path)
    data = path.read_bytes()
    if direction is None:
        direction = FORMAT_CRYXMLB if data[:1] == b"<" else FORMAT_XML
    if direction == FORMAT_CRYXMLB:
        _xml_to_cryxmlb(path, data, verbose)
    elif direction == FORMAT_XML:
        _cryxmlb_to_xml(path, data, verbose)
    else:
        raise ValueError(f"unknown conversion direction {direction!r}")
    return direction
