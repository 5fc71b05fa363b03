"""
tables.py – CryXmlB header and fixed-size table records.

CryXmlB file layout
-------------------
  [0x00..0x07]  signature: b'CryXmlB\\x00'
  [0x08..0x2b]  header, 9 × int32 LE:
                  file_size,
                  node_offset,  node_count,
                  attr_offset,  attr_count,
                  child_offset, child_count,
                  data_offset,  data_size
  [0x2c..]      node table, attribute table, child-index table, data blob

Node record (28 bytes):
  int32 name_offset, int32 content_offset,
  int16 attribute_count, int16 child_count,
  int32 parent_index (-1 = root), int32 first_attr_index,
  int32 first_child_slot, int32 reserved (0)

Attribute record (8 bytes):  int32 name_offset, int32 value_offset
Child entry (4 bytes):       int32 node_index

All string offsets are relative to the start of the data blob.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .errors import EncodeError, InvalidSignatureError, TruncatedOrCorruptError


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SIGNATURE = b"CryXmlB\x00"

_HEADER  = struct.Struct("<9i")
_NODE    = struct.Struct("<iihhiiii")
_ATTR    = struct.Struct("<ii")
_CHILD   = struct.Struct("<i")

HEADER_SIZE = len(SIGNATURE) + _HEADER.size   # 44 bytes
NODE_SIZE   = _NODE.size                      # 28 bytes
ATTR_SIZE   = _ATTR.size                      # 8 bytes
CHILD_SIZE  = _CHILD.size                     # 4 bytes

_INT16_MAX = 0x7fff
_INT32_MAX = 0x7fffffff


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class Header:
    file_size: int = 0
    node_offset: int = 0
    node_count: int = 0
    attr_offset: int = 0
    attr_count: int = 0
    child_offset: int = 0
    child_count: int = 0
    data_offset: int = 0
    data_size: int = 0


@dataclass
class Node:
    name_offset: int = 0
    content_offset: int = 0
    attribute_count: int = 0
    child_count: int = 0
    parent_index: int = -1
    first_attr_index: int = 0
    first_child_slot: int = 0
    reserved: int = 0


@dataclass
class AttributeRef:
    name_offset: int = 0
    value_offset: int = 0


@dataclass
class PackedTables:
    """The four tables of one document, without the header."""
    nodes: list[Node] = field(default_factory=list)
    attributes: list[AttributeRef] = field(default_factory=list)
    children: list[int] = field(default_factory=list)
    data: bytes = b""


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

def check_range(data: bytes | bytearray | memoryview, offset: int, size: int,
                what: str) -> None:
    """Raise TruncatedOrCorruptError unless ``data[offset:offset+size]`` exists."""
    if offset < 0 or size < 0 or offset + size > len(data):
        raise TruncatedOrCorruptError(
            f"{what} (offset {offset}, {size} bytes) lies outside the "
            f"{len(data)}-byte buffer"
        )


def read_header(data: bytes | bytearray | memoryview) -> Header:
    """Validate the signature and return the parsed header."""
    if bytes(data[:len(SIGNATURE)]) != SIGNATURE:
        raise InvalidSignatureError("missing CryXmlB signature")
    check_range(data, 0, HEADER_SIZE, "header")
    return Header(*_HEADER.unpack_from(data, len(SIGNATURE)))


def _read_node(data, pos: int) -> tuple[Node, int]:
    return Node(*_NODE.unpack_from(data, pos)), pos + NODE_SIZE


def _read_attr(data, pos: int) -> tuple[AttributeRef, int]:
    return AttributeRef(*_ATTR.unpack_from(data, pos)), pos + ATTR_SIZE


def _read_child(data, pos: int) -> tuple[int, int]:
    v, = _CHILD.unpack_from(data, pos)
    return v, pos + CHILD_SIZE


def _check_table(data, offset: int, count: int, record_size: int, what: str) -> None:
    if count < 0:
        raise TruncatedOrCorruptError(f"{what} has negative count {count}")
    check_range(data, offset, count * record_size, what)


def read_nodes(data, offset: int, count: int) -> list[Node]:
    _check_table(data, offset, count, NODE_SIZE, "node table")
    nodes: list[Node] = []
    pos = offset
    for _ in range(count):
        node, pos = _read_node(data, pos)
        nodes.append(node)
    return nodes


def read_attributes(data, offset: int, count: int) -> list[AttributeRef]:
    _check_table(data, offset, count, ATTR_SIZE, "attribute table")
    attrs: list[AttributeRef] = []
    pos = offset
    for _ in range(count):
        attr, pos = _read_attr(data, pos)
        attrs.append(attr)
    return attrs


def read_children(data, offset: int, count: int) -> list[int]:
    _check_table(data, offset, count, CHILD_SIZE, "child table")
    children: list[int] = []
    pos = offset
    for _ in range(count):
        idx, pos = _read_child(data, pos)
        children.append(idx)
    return children


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

def _check_int(value: int, limit: int, what: str) -> int:
    if not -limit - 1 <= value <= limit:
        raise EncodeError(f"{what} {value} does not fit the CryXmlB record field")
    return value


def pack_node(node: Node) -> bytes:
    return _NODE.pack(
        _check_int(node.name_offset,      _INT32_MAX, "name offset"),
        _check_int(node.content_offset,   _INT32_MAX, "content offset"),
        _check_int(node.attribute_count,  _INT16_MAX, "attribute count"),
        _check_int(node.child_count,      _INT16_MAX, "child count"),
        _check_int(node.parent_index,     _INT32_MAX, "parent index"),
        _check_int(node.first_attr_index, _INT32_MAX, "attribute index"),
        _check_int(node.first_child_slot, _INT32_MAX, "child slot"),
        _check_int(node.reserved,         _INT32_MAX, "reserved field"),
    )


def pack_attribute(attr: AttributeRef) -> bytes:
    return _ATTR.pack(
        _check_int(attr.name_offset,  _INT32_MAX, "attribute name offset"),
        _check_int(attr.value_offset, _INT32_MAX, "attribute value offset"),
    )


def pack_children(children: list[int]) -> bytes:
    return b"".join(_CHILD.pack(_check_int(c, _INT32_MAX, "child index"))
                    for c in children)


def compute_header(tables: PackedTables) -> Header:
    """Lay the tables out back to back after the header."""
    node_offset  = HEADER_SIZE
    attr_offset  = node_offset  + len(tables.nodes) * NODE_SIZE
    child_offset = attr_offset  + len(tables.attributes) * ATTR_SIZE
    data_offset  = child_offset + len(tables.children) * CHILD_SIZE
    file_size    = data_offset  + len(tables.data)
    _check_int(file_size, _INT32_MAX, "file size")
    return Header(
        file_size=file_size,
        node_offset=node_offset,   node_count=len(tables.nodes),
        attr_offset=attr_offset,   attr_count=len(tables.attributes),
        child_offset=child_offset, child_count=len(tables.children),
        data_offset=data_offset,   data_size=len(tables.data),
    )


def pack_header(header: Header) -> bytes:
    return SIGNATURE + _HEADER.pack(
        header.file_size,
        header.node_offset,  header.node_count,
        header.attr_offset,  header.attr_count,
        header.child_offset, header.child_count,
        header.data_offset,  header.data_size,
    )


def write_tables(tables: PackedTables) -> bytes:
    """Serialise *tables* into a complete CryXmlB buffer."""
    header = compute_header(tables)
    out = bytearray(pack_header(header))
    for node in tables.nodes:
        out.extend(pack_node(node))
    for attr in tables.attributes:
        out.extend(pack_attribute(attr))
    out.extend(pack_children(tables.children))
    out.extend(tables.data)
    assert len(out) == header.file_size
    return bytes(out)
