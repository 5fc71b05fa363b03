"""
datablob.py – the shared string blob of a CryXmlB file.

Every element name, text content, attribute name and attribute value is stored
as a NUL-terminated byte string in one contiguous blob and referenced by its
byte offset from the start of the blob.  Strings are not deduplicated: the
writer appends a fresh copy for each occurrence.
"""

from __future__ import annotations

from .errors import EncodeError, TruncatedOrCorruptError


class DataBlobWriter:
    """Append-only string blob used by the encoder."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)

    def add(self, text: str | None) -> int:
        """Append *text* plus a NUL terminator; return its offset."""
        try:
            raw = (text or "").encode(self.encoding)
        except UnicodeEncodeError as exc:
            raise EncodeError(f"string {text!r} is not encodable as {self.encoding}: {exc}") from exc
        if b"\x00" in raw:
            raise EncodeError(f"string {text!r} contains a NUL byte")
        offset = len(self._buf)
        self._buf.extend(raw)
        self._buf.append(0)
        return offset

    def getvalue(self) -> bytes:
        return bytes(self._buf)


class DataBlobReader:
    """
    Read-only window ``data[offset:offset+size]`` onto the input buffer.

    The blob is never copied; strings are resolved straight from *data*.
    """

    def __init__(self, data: bytes | bytearray, offset: int, size: int,
                 encoding: str = "utf-8"):
        self.data = data
        self.start = offset
        self.end = offset + size
        self.encoding = encoding

    def __len__(self) -> int:
        return self.end - self.start

    def view(self) -> memoryview:
        return memoryview(self.data)[self.start:self.end]

    def string_at(self, offset: int) -> str:
        """Return the NUL-terminated string at blob-relative *offset*."""
        if offset < 0 or offset >= len(self):
            raise TruncatedOrCorruptError(
                f"string offset {offset} outside the {len(self)}-byte data blob"
            )
        pos = self.start + offset
        nul = self.data.find(b"\x00", pos, self.end)
        if nul == -1:
            raise TruncatedOrCorruptError(
                f"string at offset {offset} is not terminated inside the data blob"
            )
        try:
            return self.data[pos:nul].decode(self.encoding)
        except UnicodeDecodeError as exc:
            raise TruncatedOrCorruptError(
                f"string at offset {offset} is not valid {self.encoding}: {exc}"
            ) from exc
