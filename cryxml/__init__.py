"""
cryxml – CryEngine CryXmlB packed XML ↔ XML text converter.

Public API re-exports:

  from cryxml.decode  import decode, decode_file, read_tables
  from cryxml.encode  import encode, encode_file, build_tables
  from cryxml.tables  import write_tables
  from cryxml.convert import (detect_format, is_cryxmlb, parse_xml, to_xml_text,
                              convert_file, convert_to_xml, convert_to_cryxmlb)
"""

from .errors  import (
    CryXmlError,
    UnknownFormatError,
    AlreadyTargetFormatError,
    InvalidSignatureError,
    NotCryXmlFormat,
    TruncatedOrCorruptError,
    XmlParseError,
    EncodeError,
    BackupError,
)
from .tables  import Header, Node, AttributeRef, PackedTables, write_tables
from .decode  import decode, decode_file, read_tables
from .encode  import encode, encode_file, build_tables
from .convert import (
    detect_format,
    is_cryxmlb,
    parse_xml,
    to_xml_text,
    convert_file,
    convert_to_xml,
    convert_to_cryxmlb,
)

__all__ = [
    "CryXmlError", "UnknownFormatError", "AlreadyTargetFormatError",
    "InvalidSignatureError", "NotCryXmlFormat", "TruncatedOrCorruptError",
    "XmlParseError", "EncodeError", "BackupError",
    "Header", "Node", "AttributeRef", "PackedTables", "write_tables",
    "decode", "decode_file", "read_tables",
    "encode", "encode_file", "build_tables",
    "detect_format",
    "is_cryxmlb",
    "parse_xml",
    "to_xml_text",
    "convert_file",
    "convert_to_xml",
    "convert_to_cryxmlb",
]
