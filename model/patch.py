from __future__ import annotations
import re
from dataclasses import dataclass
from pathlib import Path

import mido

from midi.sysex import encode_voice_dump, is_voice_dump, parse_voice_dump
from model.voice import Voice


@dataclass
class Patch:
    """A voice together with the channel its dump is addressed to."""

    voice: Voice
    channel: int = 0

    @property
    def name(self) -> str:
        return self.voice.name_text.strip()

    @property
    def slug(self) -> str:
        slug = re.sub(r"[^\w-]", "-", self.name.lower()).strip("-")
        return slug or "voice"

    def to_sysex(self) -> bytes:
        return encode_voice_dump(self.voice, self.channel)

    @classmethod
    def from_sysex(cls, message: bytes | list[int]) -> Patch:
        channel, voice = parse_voice_dump(message)
        return cls(voice=voice, channel=channel)

    def save(self, path: Path) -> None:
        save_patches(path, [self])

    @classmethod
    def load(cls, path: Path) -> Patch:
        """Load the first voice dump of a .syx file."""
        patches = load_patches(path)
        if not patches:
            raise ValueError(f"No SY22 voice dump found in {path}")
        return patches[0]


def load_patches(path: Path) -> list[Patch]:
    """Read every SY22 voice dump from a .syx file (binary or hex text).

    Other SysEx messages in the file are skipped; a voice dump that fails
    validation raises.
    """
    messages = mido.read_syx_file(str(path))
    result = []
    for msg in messages:
        raw = bytes(msg.bytes())
        if is_voice_dump(raw):
            result.append(Patch.from_sysex(raw))
    return result


def save_patches(path: Path, patches: list[Patch]) -> None:
    # mido carries SysEx payload without the F0/F7 markers
    messages = [mido.Message("sysex", data=p.to_sysex()[1:-1]) for p in patches]
    mido.write_syx_file(str(path), messages)
