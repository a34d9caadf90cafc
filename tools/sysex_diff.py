#!/usr/bin/env python3
"""Utility to diff two SY22 voice dumps.

Usage (from the project root, or anywhere once installed):
    python -m tools.sysex_diff voice_before.syx voice_after.syx

Reads two .syx files (a full single voice dump, or a bare 0x23E-byte voice
block), compares them field by field using the voice layout table and prints
which parameters changed, with their block offsets and logical values.
Checksums are not validated, so hand-edited dumps can be inspected too.
"""

from __future__ import annotations
import sys
from pathlib import Path

from midi.checksum import VOICE_BLOCK_SIZE, verify_voice_block
from midi.sysex import extract_voice_block
from model.layout import VOICE_FIELDS, FieldDef
from model.voice import Voice


def load_block(path: Path) -> bytes:
    data = path.read_bytes()
    if len(data) == VOICE_BLOCK_SIZE:
        return data
    block = extract_voice_block(data)
    if block is None:
        raise ValueError(f"{path.name} is not an SY22 voice dump")
    return block


def diff_fields(before: bytes, after: bytes) -> list[tuple[FieldDef, int | str, int | str]]:
    """Return (field, old_value, new_value) for every parameter that differs."""
    old_voice = Voice.from_bytes(before)
    new_voice = Voice.from_bytes(after)
    diffs = []
    for fd in VOICE_FIELDS:
        if before[fd.offset:fd.end] != after[fd.offset:fd.end]:
            diffs.append((fd, old_voice.get(fd.name), new_voice.get(fd.name)))
    return diffs


def main() -> None:
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)

    path_before = Path(sys.argv[1])
    path_after = Path(sys.argv[2])
    for path in (path_before, path_after):
        if not path.exists():
            print(f"File not found: {path}")
            sys.exit(1)

    try:
        before = load_block(path_before)
        after = load_block(path_after)
    except ValueError as exc:
        print(exc)
        sys.exit(1)

    for label, path, block in (("Before", path_before, before), ("After", path_after, after)):
        status = "ok" if verify_voice_block(block) else "BAD"
        print(f"{label + ':':7} {path.name}  voice checksum {status}")
    print()

    diffs = diff_fields(before, after)
    if not diffs:
        print("No differences found.")
        return

    print(f"Found {len(diffs)} difference(s):")
    print(f"{'Offset':>8}  {'Field':<40}  {'Before':>10}  {'After':>10}")
    print("-" * 74)
    for fd, old, new in diffs:
        print(f"  0x{fd.offset:03X}  {fd.name:<40}  {old!s:>10}  {new!s:>10}")


if __name__ == "__main__":
    main()
