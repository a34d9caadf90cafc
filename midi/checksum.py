"""SY22 checksums.

Two different checksums protect a single voice dump:

* the 8-bit *voice* checksum embedded at the end of the voice block
  (offsets 0x23C-0x23D), and
* the 7-bit *message* checksum the SysEx envelope carries after the block.

For the voice checksum every byte of the block is summed, except that the
overflow byte of each wide parameter holds the 8th bit of the byte that
follows it and is therefore weighted by 128.  Missing one of these offsets
(the first byte of every vector step is one) breaks the checksum.
"""
from __future__ import annotations
from typing import Iterable

from midi.bytepair import BytePair, to_pair

VOICE_BLOCK_SIZE = 0x23E
CHECKSUM_OFFSET = 0x23C  # (23C) 8th bit, 23D low 7 bits

OVERFLOW_OFFSETS: frozenset[int] = frozenset((
    # Common
    0x0B, 0x0E, 0x11, 0x13,
    # Element A
    0x16, 0x19, 0x1B, 0x1D, 0x24, 0x26, 0x28,
    # Element B
    0x30, 0x32, 0x35, 0x37, 0x39, 0x3F, 0x43, 0x45, 0x47, 0x4F,
    0x53, 0x55, 0x57,
    # Element C
    0x60, 0x63, 0x65, 0x67, 0x6E, 0x70, 0x72,
    # Element D
    0x7A, 0x7C, 0x7F, 0x81, 0x83, 0x89, 0x8D, 0x8F, 0x91, 0x99,
    0x9D, 0x9F, 0xA1,
    # Vector level step lengths (AB, AF, ... 16F)
    *range(0xAB, 0x173, 4),
    # Vector detune step lengths (173, 177, ... 237)
    *range(0x173, 0x23B, 4),
))


def voice_block_sum(block: bytes | bytearray) -> int:
    """Sum the voice block up to (not including) its checksum field."""
    total = 0
    for offset in range(min(len(block), CHECKSUM_OFFSET)):
        b = block[offset]
        if offset in OVERFLOW_OFFSETS:
            b = (b << 7) & 0xFF
        total += b
    return total


def voice_checksum(block: bytes | bytearray) -> BytePair:
    return to_pair(-voice_block_sum(block))


def embedded_voice_checksum(block: bytes | bytearray) -> BytePair:
    return BytePair(block[CHECKSUM_OFFSET], block[CHECKSUM_OFFSET + 1])


def verify_voice_block(block: bytes | bytearray) -> bool:
    if len(block) != VOICE_BLOCK_SIZE:
        return False
    return embedded_voice_checksum(block) == voice_checksum(block)


def message_checksum(*chunks: Iterable[int]) -> int:
    """7-bit two's complement checksum over the raw bytes of *chunks*."""
    total = 0
    for chunk in chunks:
        total += sum(chunk)
    return -total & 0x7F
