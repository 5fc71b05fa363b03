"""
encode.py – ElementTree → CryXmlB binary.

The tree is flattened with a pre-order walk driven by an explicit stack of
(element, parent index, child slot) entries.  Each visit appends the
element's node record, its attribute records and a run of placeholder child
slots; the element's node index is then written into the slot its parent
reserved for it.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

from .datablob import DataBlobWriter
from .errors import EncodeError
from .tables import AttributeRef, Node, PackedTables, write_tables


def _child_elements(elem: ET.Element) -> list[ET.Element]:
    # Comments and processing instructions carry a callable as their tag.
    return [child for child in elem if not callable(child.tag)]


def validate_tree(root: ET.Element) -> None:
    """Reject elements without a usable name before anything is encoded."""
    stack = [root]
    while stack:
        elem = stack.pop()
        if not isinstance(elem.tag, str) or not elem.tag:
            raise EncodeError(f"element has no name: {elem.tag!r}")
        stack.extend(_child_elements(elem))


class _TableBuilder:

    def __init__(self, encoding: str):
        self.nodes: list[Node] = []
        self.attributes: list[AttributeRef] = []
        self.children: list[int] = []
        self.blob = DataBlobWriter(encoding)

    def _append(self, elem: ET.Element, parent_index: int,
                children: list[ET.Element]) -> Node:
        node = Node(
            name_offset=self.blob.add(elem.tag),
            content_offset=self.blob.add(elem.text),
            parent_index=parent_index,
            first_attr_index=len(self.attributes),
            attribute_count=len(elem.attrib),
            first_child_slot=len(self.children),
            child_count=len(children),
        )
        for name, value in elem.attrib.items():
            self.attributes.append(AttributeRef(
                name_offset=self.blob.add(name),
                value_offset=self.blob.add(value),
            ))
        self.children.extend([0] * len(children))
        self.nodes.append(node)
        return node

    def visit(self, root: ET.Element) -> None:
        """Append *root* and its subtree in pre-order."""
        # slot -1: the root has no entry in the child table
        stack = [(root, -1, -1)]
        while stack:
            elem, parent_index, slot = stack.pop()
            index = len(self.nodes)
            if slot >= 0:
                self.children[slot] = index
            children = _child_elements(elem)
            node = self._append(elem, parent_index, children)
            # reversed so the first child is popped (and numbered) first
            for child_slot, child in reversed(list(enumerate(children, node.first_child_slot))):
                stack.append((child, index, child_slot))

    def tables(self) -> PackedTables:
        return PackedTables(
            nodes=self.nodes,
            attributes=self.attributes,
            children=self.children,
            data=self.blob.getvalue(),
        )


def build_tables(root: ET.Element | ET.ElementTree, *,
                 encoding: str = "utf-8") -> PackedTables:
    """Flatten the tree under *root* into CryXmlB tables."""
    if isinstance(root, ET.ElementTree):
        root = root.getroot()
    if root is None:
        raise EncodeError("tree has no root element")
    validate_tree(root)
    builder = _TableBuilder(encoding)
    builder.visit(root)
    return builder.tables()


def encode(root: ET.Element | ET.ElementTree, *, encoding: str = "utf-8") -> bytes:
    """Serialise an element tree to a CryXmlB buffer."""
    return write_tables(build_tables(root, encoding=encoding))


def encode_file(tree: ET.Element | ET.ElementTree, path: str | Path, **kwargs) -> None:
    """Write *tree* to *path* as CryXmlB."""
    Path(path).write_bytes(encode(tree, **kwargs))
