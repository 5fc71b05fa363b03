"""
__main__.py – CLI entry-point for the cryxml package.

Usage:  python -m cryxml FILE [FILE …] [--to-xml | --to-cryxmlb] [-v]

Each file is converted in place.  Without a direction flag the direction is
picked per file: files starting with ``<`` are packed to CryXmlB, everything
else is unpacked to XML.

Exit status is 0 even when individual files fail (they are reported on
stderr and skipped); it is 1 only when a backup file cannot be written, in
which case the run is aborted.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from cryxml.convert import FORMAT_CRYXMLB, FORMAT_XML, convert_file
from cryxml.errors import AlreadyTargetFormatError, BackupError, CryXmlError


# ---------------------------------------------------------------------------
# Per-file processing
# ---------------------------------------------------------------------------

def process_file(path: Path, direction: str | None, verbose: bool) -> bool:
    """Convert one file; return False if it failed (already-converted is not a failure)."""
    print(f"Processing file: {path}")
    try:
        target = convert_file(path, direction, verbose=verbose)
    except BackupError:
        raise
    except AlreadyTargetFormatError as exc:
        print(exc)
        return True
    except (CryXmlError, OSError, MemoryError, RecursionError) as exc:
        print(f"Error: {path}: {exc}", file=sys.stderr)
        return False

    label = "CryXmlB" if target == FORMAT_CRYXMLB else "XML"
    print(f"Successfully converted {path} to {label} format")
    return True


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m cryxml",
        description="Convert CryEngine CryXmlB packed XML files to and from XML text.",
    )
    parser.add_argument("files", nargs="+", metavar="FILE",
                        help="Files to convert in place.")
    direction = parser.add_mutually_exclusive_group()
    direction.add_argument("--to-xml", dest="direction", action="store_const",
                           const=FORMAT_XML,
                           help="Unpack CryXmlB files to XML text.")
    direction.add_argument("--to-cryxmlb", dest="direction", action="store_const",
                           const=FORMAT_CRYXMLB,
                           help="Pack XML text files to CryXmlB.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Print progress messages.")
    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args   = parser.parse_args(argv)

    for fp in (Path(f) for f in args.files):
        try:
            process_file(fp, args.direction, args.verbose)
        except BackupError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            print("Aborting.", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
