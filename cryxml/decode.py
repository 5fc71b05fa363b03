"""
decode.py – CryXmlB binary → ElementTree.

The node table is stored in pre-order, so every node's parent precedes it and
elements can be created and linked in a single pass over the table.  Parent
linkage follows each node's ``parent_index``; the child-index table is only
range-checked, or cross-checked against the parent links when ``strict`` is
set.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

from .datablob import DataBlobReader
from .errors import TruncatedOrCorruptError
from .tables import (
    ATTR_SIZE,
    CHILD_SIZE,
    NODE_SIZE,
    Header,
    PackedTables,
    check_range,
    read_attributes,
    read_children,
    read_header,
    read_nodes,
)


# ---------------------------------------------------------------------------
# Table loading
# ---------------------------------------------------------------------------

def read_tables(data: bytes | bytearray) -> tuple[Header, PackedTables]:
    """
    Parse the header and the three record tables of a CryXmlB buffer.

    Every table range is validated before any record is read.  The returned
    ``PackedTables.data`` is a read-only view of the blob, not a copy.
    """
    hdr = read_header(data)
    for offset, count, size, what in (
        (hdr.node_offset,  hdr.node_count,  NODE_SIZE,  "node table"),
        (hdr.attr_offset,  hdr.attr_count,  ATTR_SIZE,  "attribute table"),
        (hdr.child_offset, hdr.child_count, CHILD_SIZE, "child table"),
        (hdr.data_offset,  hdr.data_size,   1,          "data blob"),
    ):
        if count < 0:
            raise TruncatedOrCorruptError(f"{what} has negative size {count}")
        check_range(data, offset, count * size, what)

    tables = PackedTables(
        nodes=read_nodes(data, hdr.node_offset, hdr.node_count),
        attributes=read_attributes(data, hdr.attr_offset, hdr.attr_count),
        children=read_children(data, hdr.child_offset, hdr.child_count),
        data=memoryview(data)[hdr.data_offset: hdr.data_offset + hdr.data_size],
    )
    return hdr, tables


# ---------------------------------------------------------------------------
# Tree construction
# ---------------------------------------------------------------------------

def _run(first: int, count: int, table_len: int, what: str, index: int) -> slice:
    if first < 0 or count < 0 or first + count > table_len:
        raise TruncatedOrCorruptError(
            f"node {index}: {what} run [{first}, {first + count}) outside "
            f"table of {table_len} entries"
        )
    return slice(first, first + count)


def _build_element(index: int, node, tables: PackedTables,
                   blob: DataBlobReader) -> ET.Element:
    name = blob.string_at(node.name_offset)
    if not name:
        raise TruncatedOrCorruptError(f"node {index} has an empty name")
    elem = ET.Element(name)
    run = _run(node.first_attr_index, node.attribute_count,
               len(tables.attributes), "attribute", index)
    for ref in tables.attributes[run]:
        elem.set(blob.string_at(ref.name_offset), blob.string_at(ref.value_offset))
    text = blob.string_at(node.content_offset)
    if text:
        elem.text = text
    return elem


def _cross_check_children(tables: PackedTables) -> None:
    """Require each child-table run to list exactly the nodes parented to it."""
    expected: list[list[int]] = [[] for _ in tables.nodes]
    for i, node in enumerate(tables.nodes):
        if node.parent_index >= 0:
            expected[node.parent_index].append(i)
    for i, node in enumerate(tables.nodes):
        run = _run(node.first_child_slot, node.child_count,
                   len(tables.children), "child", i)
        if tables.children[run] != expected[i]:
            raise TruncatedOrCorruptError(
                f"node {i}: child table lists {tables.children[run]}, "
                f"parent links give {expected[i]}"
            )


def build_tree(tables: PackedTables, blob: DataBlobReader,
               strict: bool = False) -> ET.Element:
    """Rebuild the element tree described by *tables*; return its root."""
    if not tables.nodes:
        raise TruncatedOrCorruptError("node table is empty (no root element)")

    elements: list[ET.Element] = []
    for i, node in enumerate(tables.nodes):
        parent = node.parent_index
        if parent == -1:
            if i != 0:
                raise TruncatedOrCorruptError(
                    f"node {i} is a second root element"
                )
        elif not 0 <= parent < i:
            raise TruncatedOrCorruptError(
                f"node {i} has parent index {parent}, expected 0..{i - 1}"
            )
        _run(node.first_child_slot, node.child_count,
             len(tables.children), "child", i)
        elem = _build_element(i, node, tables, blob)
        if parent != -1:
            elements[parent].append(elem)
        elements.append(elem)

    if strict:
        _cross_check_children(tables)
    return elements[0]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def decode(data: bytes | bytearray, *, encoding: str = "utf-8",
           strict: bool = False) -> ET.Element:
    """Decode a CryXmlB buffer and return the root element."""
    if isinstance(data, memoryview):
        data = data.tobytes()
    hdr, tables = read_tables(data)
    blob = DataBlobReader(data, hdr.data_offset, hdr.data_size, encoding)
    return build_tree(tables, blob, strict=strict)


def decode_file(path: str | Path, **kwargs) -> ET.ElementTree:
    """Decode the CryXmlB file at *path*."""
    return ET.ElementTree(decode(Path(path).read_bytes(), **kwargs))
