from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class BytePair:
    """Two 7-bit MIDI data bytes carrying one 8-bit value.

    The SY22 stores values wider than 7 bits as an "overflow" byte holding
    the 8th bit, followed by a byte holding the low 7 bits.
    """

    msb: int = 0
    lsb: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "msb", self.msb & 0x7F)
        object.__setattr__(self, "lsb", self.lsb & 0x7F)

    def to_bytes(self) -> bytes:
        return bytes((self.msb, self.lsb))


def to_value(pair: BytePair, signed: bool = False) -> int:
    """Return the logical value of *pair*.

    Unsigned reads are not narrowed, so a received msb above 1 is visible
    to the caller.  Signed reads interpret the low 8 bits as two's complement.
    """
    value = (pair.msb << 7) | (pair.lsb & 0x7F)
    if signed:
        value &= 0xFF
        return value - 0x100 if value & 0x80 else value
    return value


def to_pair(value: int, signed: bool = False) -> BytePair:
    """Split *value* into a BytePair after narrowing it to 8 bits.

    Out-of-range values wrap silently (300 -> 44, -1 -> 255).  ``signed`` is
    accepted for symmetry with `to_value`; the 8-bit pattern is the same.
    """
    narrowed = value & 0xFF
    return BytePair(narrowed >> 7, narrowed & 0x7F)


def add(pair: BytePair, amount: int, signed: bool = False) -> BytePair:
    return to_pair(to_value(pair, signed) + amount, signed)
