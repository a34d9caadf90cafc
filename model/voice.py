from __future__ import annotations
import copy
import re
from dataclasses import dataclass, field

from midi.bytepair import BytePair, to_pair, to_value
from midi.checksum import VOICE_BLOCK_SIZE, voice_checksum
from model.layout import FIELD_MAP, NAME_LENGTH, VECTOR_STEPS, VOICE_FIELDS, FieldDef

DEFAULT_RESERVED = (0x01, 0x25, 0x00)  # reserved_0, reserved_1, effect

STEP_REPEAT = 0xFE
STEP_END = 0xFF
STEP_CENTER = 31  # vector x/y are stored offset by +31

_PATH_PART = re.compile(r"^(\w+)(?:\[(\d+)\])?$")


@dataclass
class Envelope:
    level_rate_scaling: BytePair = BytePair()
    delay_attack_rate: BytePair = BytePair()
    peak_decay_rate_1: BytePair = BytePair()
    decay_rate_2: int = 0
    release_rate: int = 0
    initial_level: int = 0
    attack_level: int = 0
    decay_level_1: int = 0
    decay_level_2: int = 0


@dataclass
class LFO:
    wave_speed: BytePair = BytePair()
    delay: BytePair = BytePair()
    rate: BytePair = BytePair()
    am_depth: int = 0
    pm_depth: int = 0


@dataclass
class WaveElement:
    """AWM oscillator element (A and C)."""

    wave: int = 0
    pitch_shift: BytePair = BytePair()
    velocity_after_touch: int = 0
    lfo: LFO = field(default_factory=LFO)
    env_type_pan: int = 0
    tone_volume: int = 0
    temperament_detune: int = 0
    envelope: Envelope = field(default_factory=Envelope)


@dataclass
class Operator:
    fixed_waveform_freq: BytePair = BytePair()
    level: int = 0
    temperament_detune: int = 0
    envelope: Envelope = field(default_factory=Envelope)


@dataclass
class FMElement:
    """FM element (B and D): a modulator/carrier operator pair."""

    wave: BytePair = BytePair()
    pitch_shift: BytePair = BytePair()
    velocity_after_touch: int = 0
    lfo: LFO = field(default_factory=LFO)
    env_type_pan: int = 0
    feedback: int = 0
    modulator: Operator = field(default_factory=Operator)
    carrier: Operator = field(default_factory=Operator)


@dataclass
class VectorStep:
    length: BytePair = BytePair()
    x: int = 0
    y: int = 0

    @classmethod
    def from_offsets(cls, length: int, x_offset: int = 0, y_offset: int = 0) -> VectorStep:
        return cls(to_pair(length), x_offset + STEP_CENTER, y_offset + STEP_CENTER)

    @property
    def x_offset(self) -> int:
        return self.x - STEP_CENTER

    @property
    def y_offset(self) -> int:
        return self.y - STEP_CENTER

    @property
    def is_repeat(self) -> bool:
        return to_value(self.length) == STEP_REPEAT

    @property
    def is_end(self) -> bool:
        return to_value(self.length) == STEP_END


def _steps() -> list[VectorStep]:
    return [VectorStep() for _ in range(VECTOR_STEPS)]


@dataclass
class VectorInfo:
    level_rate: int = 0
    detune_rate: int = 0
    level_steps: list[VectorStep] = field(default_factory=_steps)
    detune_steps: list[VectorStep] = field(default_factory=_steps)


def _split(part: str) -> tuple[str, int | None]:
    m = _PATH_PART.match(part)
    if m is None:
        raise KeyError(f"Malformed field path segment '{part}'")
    return m.group(1), int(m.group(2)) if m.group(2) is not None else None


def _get_path(obj, path: str):
    for part in path.split("."):
        name, index = _split(part)
        obj = getattr(obj, name)
        if index is not None:
            obj = obj[index]
    return obj


def _set_path(obj, path: str, value) -> None:
    head, _, last = path.rpartition(".")
    if head:
        obj = _get_path(obj, head)
    name, index = _split(last)
    if index is None:
        setattr(obj, name, value)
    else:
        getattr(obj, name)[index] = value


@dataclass
class Voice:
    """One SY22 voice, laid out in the same order as the 0x23E-byte block.

    Wide parameters hold `BytePair`s exactly as transmitted.  Use `get` and
    `set` for logical (signed where applicable) values.  The checksum is
    derived data: it takes no part in equality and is rewritten by
    `update_checksum`.
    """

    reserved_0: int = 0
    reserved_1: int = 0
    effect: int = 0
    name: bytes = bytes(NAME_LENGTH)
    pitch_bend: BytePair = BytePair()
    after_touch_mod_wheel: int = 0
    after_touch_pitch_shift: BytePair = BytePair()
    env_delay: int = 0
    common_attack_rate: BytePair = BytePair()
    common_release_rate: BytePair = BytePair()
    element_a: WaveElement = field(default_factory=WaveElement)
    element_b: FMElement = field(default_factory=FMElement)
    element_c: WaveElement = field(default_factory=WaveElement)
    element_d: FMElement = field(default_factory=FMElement)
    vector: VectorInfo = field(default_factory=VectorInfo)
    null: int = 0
    checksum: BytePair = field(default=BytePair(), compare=False)

    # -- name --

    @property
    def name_text(self) -> str:
        return bytes(b & 0x7F for b in self.name).decode("ascii")

    def set_name(self, text: str) -> None:
        raw = text.encode("ascii", errors="replace")[:NAME_LENGTH]
        self.name = raw.ljust(NAME_LENGTH, b" ")

    # -- named parameter access --

    @staticmethod
    def _field(name: str) -> FieldDef:
        fd = FIELD_MAP.get(name)
        if fd is None:
            raise KeyError(f"Unknown voice field '{name}'")
        return fd

    def get(self, name: str) -> int | str:
        fd = self._field(name)
        raw = _get_path(self, fd.name)
        if fd.is_text:
            return self.name_text
        if fd.is_pair:
            return to_value(raw, fd.signed)
        return raw

    def set(self, name: str, value: int | str) -> None:
        """Write a logical value.  Out-of-range values are truncated, never rejected."""
        fd = self._field(name)
        if fd.is_text:
            self.set_name(str(value))
        elif fd.is_pair:
            _set_path(self, fd.name, to_pair(value, fd.signed))
        else:
            _set_path(self, fd.name, value & 0x7F)

    def get_bits(self, name: str) -> int:
        bf = FIELD_MAP.get_bits(name)
        if bf is None:
            raise KeyError(f"Unknown voice bit field '{name}'")
        return ((self.get(bf.field) & 0xFF) & bf.mask) >> bf.shift

    def set_bits(self, name: str, value: int) -> None:
        bf = FIELD_MAP.get_bits(name)
        if bf is None:
            raise KeyError(f"Unknown voice bit field '{name}'")
        current = self.get(bf.field) & 0xFF
        new_val = (current & ~bf.mask) | ((value << bf.shift) & bf.mask)
        self.set(bf.field, new_val)

    # -- serialization --

    def to_bytes(self) -> bytes:
        block = bytearray(VOICE_BLOCK_SIZE)
        for fd in VOICE_FIELDS:
            value = _get_path(self, fd.name)
            if fd.is_text:
                raw = bytes(value).ljust(NAME_LENGTH, b" ")[:NAME_LENGTH]
                block[fd.offset:fd.end] = bytes(b & 0x7F for b in raw)
            elif fd.is_pair:
                if not isinstance(value, BytePair):
                    value = to_pair(value, fd.signed)
                block[fd.offset] = value.msb
                block[fd.offset + 1] = value.lsb
            else:
                block[fd.offset] = value & 0x7F
        return bytes(block)

    @classmethod
    def from_bytes(cls, block: bytes | bytearray) -> Voice:
        if len(block) != VOICE_BLOCK_SIZE:
            raise ValueError(
                f"Voice block must be {VOICE_BLOCK_SIZE} bytes, got {len(block)}"
            )
        voice = cls()
        for fd in VOICE_FIELDS:
            if fd.is_text:
                value = bytes(block[fd.offset:fd.end])
            elif fd.is_pair:
                value = BytePair(block[fd.offset], block[fd.offset + 1])
            else:
                value = block[fd.offset] & 0x7F
            _set_path(voice, fd.name, value)
        return voice

    # -- checksum --

    def update_checksum(self) -> BytePair:
        """Stamp the 8-bit voice checksum; call after any edit and before sending."""
        self.checksum = voice_checksum(self.to_bytes())
        return self.checksum

    @property
    def checksum_valid(self) -> bool:
        return self.checksum == voice_checksum(self.to_bytes())

    def copy(self) -> Voice:
        return copy.deepcopy(self)


def make_voice() -> Voice:
    """Return a blank voice with the reserved bytes the synth needs to make sound."""
    voice = Voice()
    voice.reserved_0, voice.reserved_1, voice.effect = DEFAULT_RESERVED
    return voice
