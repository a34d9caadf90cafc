from __future__ import annotations

from midi.bytepair import BytePair, to_value
from midi.checksum import (
    VOICE_BLOCK_SIZE, embedded_voice_checksum, message_checksum, voice_checksum,
)
from model.layout import FIELD_MAP
from model.voice import Voice

SYSEX_START = 0xF0
SYSEX_END = 0xF7
YAMAHA_ID = 0x43
SUB_STATUS = 0x7E  # SY22 bulk dump

FORMAT_TAG = b"PK  2203AE"  # single voice dump header
# len(FORMAT_TAG) + VOICE_BLOCK_SIZE = 0x248, sent as the pair 04 48
BYTE_COUNT = (0x04, 0x48)

_HEADER_LEN = 6
_TAG_END = _HEADER_LEN + len(FORMAT_TAG)
_BLOCK_END = _TAG_END + VOICE_BLOCK_SIZE
MESSAGE_LENGTH = _BLOCK_END + 2  # + checksum + F7


class VoiceDumpError(ValueError):
    """A received SY22 voice dump failed validation."""


class TruncatedMessage(VoiceDumpError):
    pass


class FramingError(VoiceDumpError):
    pass


class FormatTagMismatch(VoiceDumpError):
    pass


class EnvelopeChecksumMismatch(VoiceDumpError):
    pass


class VoiceChecksumMismatch(VoiceDumpError):
    pass


def encode_voice_dump(voice: Voice, channel: int = 0) -> bytes:
    """Frame *voice* as a single voice dump: F0 43 0n 7E 04 48 <tag> <block> <sum> F7.

    The voice is checksum-stamped on a copy, so the caller's object is left
    untouched.  Channel is masked to 0-15.
    """
    stamped = voice.copy()
    stamped.update_checksum()
    block = stamped.to_bytes()
    return bytes([SYSEX_START, YAMAHA_ID, channel & 0x0F, SUB_STATUS, *BYTE_COUNT]
                 + list(FORMAT_TAG)
                 + list(block)
                 + [message_checksum(FORMAT_TAG, block), SYSEX_END])


def is_voice_dump(message: bytes | list[int]) -> bool:
    """Cheap header check; does not validate checksums."""
    return (len(message) >= _HEADER_LEN
            and message[0] == SYSEX_START
            and message[1] == YAMAHA_ID
            and message[3] == SUB_STATUS
            and tuple(message[4:6]) == BYTE_COUNT)


def _check_framing(message: bytes) -> None:
    if len(message) < MESSAGE_LENGTH:
        raise TruncatedMessage(
            f"Voice dump needs {MESSAGE_LENGTH} bytes, got {len(message)}"
        )
    if len(message) > MESSAGE_LENGTH:
        raise FramingError(
            f"Voice dump must be {MESSAGE_LENGTH} bytes, got {len(message)}"
        )
    if message[0] != SYSEX_START:
        raise FramingError(f"Bad start marker 0x{message[0]:02X} (expected 0xF0)")
    if message[1] != YAMAHA_ID:
        raise FramingError(f"Bad manufacturer id 0x{message[1]:02X} (expected 0x43)")
    if message[3] != SUB_STATUS:
        raise FramingError(f"Bad sub-status 0x{message[3]:02X} (expected 0x7E)")
    if tuple(message[4:6]) != BYTE_COUNT:
        count = to_value(BytePair(message[4], message[5]))
        raise FramingError(f"Bad byte count 0x{count:X} (expected 0x248)")
    tag = message[_HEADER_LEN:_TAG_END]
    if tag != FORMAT_TAG:
        raise FormatTagMismatch(f"Bad format tag {tag!r} (expected {FORMAT_TAG!r})")
    if message[-1] != SYSEX_END:
        raise FramingError(f"Bad end marker 0x{message[-1]:02X} (expected 0xF7)")
    for pos in range(_TAG_END, MESSAGE_LENGTH - 1):
        if message[pos] & 0x80:
            raise FramingError(f"Data byte 0x{message[pos]:02X} at {pos} has bit 7 set")


def parse_voice_dump(message: bytes | list[int]) -> tuple[int, Voice]:
    """Validate a single voice dump and return (channel, voice).

    Raises a `VoiceDumpError` subclass naming the first check that failed.
    Both checksums must hold.  A damaged voice block is reported as
    `VoiceChecksumMismatch` even when the message checksum is off too;
    `EnvelopeChecksumMismatch` means the block itself is consistent.
    The channel byte is returned as received and not range-checked.
    """
    message = bytes(message)
    _check_framing(message)
    block = message[_TAG_END:_BLOCK_END]
    stored = embedded_voice_checksum(block)
    computed = voice_checksum(block)
    if stored != computed:
        raise VoiceChecksumMismatch(
            f"Voice checksum 0x{to_value(stored):02X} != computed 0x{to_value(computed):02X}"
        )
    expected = message_checksum(FORMAT_TAG, block)
    if message[_BLOCK_END] != expected:
        raise EnvelopeChecksumMismatch(
            f"Message checksum 0x{message[_BLOCK_END]:02X} != computed 0x{expected:02X}"
        )
    return message[2], Voice.from_bytes(block)


def decode_voice_dump(message: bytes | list[int]) -> Voice:
    return parse_voice_dump(message)[1]


def extract_voice_block(message: bytes | list[int]) -> bytes | None:
    """Return the raw voice block of a dump without validating checksums."""
    if not is_voice_dump(message) or len(message) < _BLOCK_END:
        return None
    return bytes(message[_TAG_END:_BLOCK_END])


def extract_voice_name(message: bytes | list[int]) -> str | None:
    block = extract_voice_block(message)
    if block is None:
        return None
    fd = FIELD_MAP.get("name")
    name = bytes(b for b in block[fd.offset:fd.end] if 0x20 <= b <= 0x7E).decode("ascii").strip()
    return name or None
