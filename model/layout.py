"""Byte layout of the SY22 voice block.

Offsets follow the SY35/SY22 voice format notes
(http://worsa.republika.pl/yamaha-sy35/sy35form.txt).  Every parameter of the
block is listed once in `VOICE_FIELDS`; the serializer, the deserializer and
named parameter access all walk this table.

Width 2 fields are BytePairs: an overflow byte holding the 8th bit followed
by a byte holding the low 7 bits.
"""
from __future__ import annotations
from dataclasses import dataclass

from midi.checksum import CHECKSUM_OFFSET

NAME_LENGTH = 8
VECTOR_STEPS = 50

WAVE_ELEMENT_SIZE = 0x1B
FM_ELEMENT_SIZE = 0x2F
VECTOR_STEP_SIZE = 4

ELEMENT_A_OFFSET = 0x15
ELEMENT_B_OFFSET = 0x30
ELEMENT_C_OFFSET = 0x5F
ELEMENT_D_OFFSET = 0x7A
VECTOR_OFFSET = 0xA9
LEVEL_STEPS_OFFSET = 0xAB
DETUNE_STEPS_OFFSET = 0x173
NULL_OFFSET = 0x23B


@dataclass(frozen=True)
class FieldDef:
    name: str          # attribute path into Voice, e.g. "element_b.modulator.level"
    offset: int
    width: int         # serialized bytes: 1, 2 (BytePair) or NAME_LENGTH (text)
    min_val: int
    max_val: int
    signed: bool = False
    section: str = ""
    description: str = ""

    @property
    def is_pair(self) -> bool:
        return self.width == 2

    @property
    def is_text(self) -> bool:
        return self.width == NAME_LENGTH

    @property
    def end(self) -> int:
        return self.offset + self.width


@dataclass(frozen=True)
class BitField:
    """A packed sub-field of a FieldDef, read as (value & mask) >> shift."""

    name: str
    field: str
    mask: int
    shift: int = 0


def _envelope(prefix: str, base: int, section: str) -> list[FieldDef]:
    return [
        FieldDef(f"{prefix}.level_rate_scaling", base + 0x00, 2, 0, 0xFF, section=section,
                 description="(L)LLL0RRR  L=level scaling  R=rate scaling"),
        FieldDef(f"{prefix}.delay_attack_rate", base + 0x02, 2, 0, 0xFF, section=section,
                 description="(D)0AAAAAA  D=envelope delay on/off  A=attack rate"),
        FieldDef(f"{prefix}.peak_decay_rate_1", base + 0x04, 2, 0, 0xFF, section=section,
                 description="(P)PDDDDDD  P=peak level number  D=decay rate 1"),
        FieldDef(f"{prefix}.decay_rate_2", base + 0x06, 1, 0, 0x3F, section=section),
        FieldDef(f"{prefix}.release_rate", base + 0x07, 1, 0, 0x3F, section=section),
        FieldDef(f"{prefix}.initial_level", base + 0x08, 1, 0, 0x7F, section=section,
                 description="0=max  0x7F=min"),
        FieldDef(f"{prefix}.attack_level", base + 0x09, 1, 0, 0x7F, section=section),
        FieldDef(f"{prefix}.decay_level_1", base + 0x0A, 1, 0, 0x7F, section=section),
        FieldDef(f"{prefix}.decay_level_2", base + 0x0B, 1, 0, 0x7F, section=section),
    ]


def _lfo(prefix: str, base: int, section: str, fm: bool) -> list[FieldDef]:
    return [
        FieldDef(f"{prefix}.wave_speed", base + 0x00, 2, 0, 0xFF, section=section,
                 description="(L)LLSSSSS  L=LFO wave  S=LFO speed"),
        FieldDef(f"{prefix}.delay", base + 0x02, 2, 0, 0xFF, section=section),
        FieldDef(f"{prefix}.rate", base + 0x04, 2, 0, 0xFF, section=section),
        FieldDef(f"{prefix}.am_depth", base + 0x06, 1, 0, 0x3F if fm else 0x1F,
                 section=section),
        FieldDef(f"{prefix}.pm_depth", base + 0x07, 1, 0, 0x7F if fm else 0x3F,
                 section=section),
    ]


def _operator(prefix: str, base: int, section: str) -> list[FieldDef]:
    return [
        FieldDef(f"{prefix}.fixed_waveform_freq", base + 0x00, 2, 0, 0xFF, section=section,
                 description="(X)WWWFFFF  X=fixed freq mode  W=waveform  F=harmonic"),
        FieldDef(f"{prefix}.level", base + 0x02, 1, 0, 0x7F, section=section),
        FieldDef(f"{prefix}.temperament_detune", base + 0x03, 1, 0, 0x3F, section=section),
        *_envelope(f"{prefix}.envelope", base + 0x04, section),
    ]


def _wave_element(prefix: str, base: int) -> list[FieldDef]:
    return [
        FieldDef(f"{prefix}.wave", base + 0x00, 1, 0, 0x7F, section=prefix),
        FieldDef(f"{prefix}.pitch_shift", base + 0x01, 2, -12, 12, signed=True,
                 section=prefix),
        FieldDef(f"{prefix}.velocity_after_touch", base + 0x03, 1, 0, 0x7A, section=prefix,
                 description="VVVAAAA  V=velocity response  A=after touch response"),
        *_lfo(f"{prefix}.lfo", base + 0x04, prefix, fm=False),
        FieldDef(f"{prefix}.env_type_pan", base + 0x0C, 1, 0, 0x7F, section=prefix,
                 description="EEE0PPP  E=env type  P=pan"),
        FieldDef(f"{prefix}.tone_volume", base + 0x0D, 1, 0, 0x7F, section=prefix,
                 description="0=max  0x7F=min"),
        FieldDef(f"{prefix}.temperament_detune", base + 0x0E, 1, 0, 0x3F, section=prefix),
        *_envelope(f"{prefix}.envelope", base + 0x0F, prefix),
    ]


def _fm_element(prefix: str, base: int) -> list[FieldDef]:
    return [
        FieldDef(f"{prefix}.wave", base + 0x00, 2, 0, 0xFF, section=prefix,
                 description="display name only"),
        FieldDef(f"{prefix}.pitch_shift", base + 0x02, 2, -12, 12, signed=True,
                 section=prefix),
        FieldDef(f"{prefix}.velocity_after_touch", base + 0x04, 1, 0, 0x7A, section=prefix),
        *_lfo(f"{prefix}.lfo", base + 0x05, prefix, fm=True),
        FieldDef(f"{prefix}.env_type_pan", base + 0x0D, 1, 0, 0x7F, section=prefix),
        FieldDef(f"{prefix}.feedback", base + 0x0E, 1, 0, 0x07, section=prefix),
        *_operator(f"{prefix}.modulator", base + 0x0F, prefix),
        *_operator(f"{prefix}.carrier", base + 0x1F, prefix),
    ]


def _vector_steps(prefix: str, base: int) -> list[FieldDef]:
    fields: list[FieldDef] = []
    for i in range(VECTOR_STEPS):
        off = base + i * VECTOR_STEP_SIZE
        fields += [
            FieldDef(f"{prefix}[{i}].length", off, 2, 0, 0xFF, section="vector",
                     description="0xFE=repeat  0xFF=end"),
            FieldDef(f"{prefix}[{i}].x", off + 2, 1, 0, 0x3E, section="vector",
                     description="-31..+31 stored as 0..0x3E"),
            FieldDef(f"{prefix}[{i}].y", off + 3, 1, 0, 0x3E, section="vector"),
        ]
    return fields


VOICE_FIELDS: tuple[FieldDef, ...] = (
    FieldDef("reserved_0", 0x00, 1, 0, 0x7F, section="common",
             description="must be 0x01 or the synth goes quiet"),
    FieldDef("reserved_1", 0x01, 1, 0, 0x7F, section="common",
             description="must be 0x25 or the synth goes quiet"),
    FieldDef("effect", 0x02, 1, 0, 0x7F, section="common",
             description="DDDTTTT  D=depth  T=type"),
    FieldDef("name", 0x03, NAME_LENGTH, 0x20, 0x7E, section="common"),
    FieldDef("pitch_bend", 0x0B, 2, 0, 0xFF, section="common",
             description="(T)00PPPPP  T=configuration AB/ABCD  P=pitch bend range"),
    FieldDef("after_touch_mod_wheel", 0x0D, 1, 0, 0x7F, section="common",
             description="LPA00PA  after touch level/PM/AM, mod wheel PM/AM"),
    FieldDef("after_touch_pitch_shift", 0x0E, 2, -12, 12, signed=True, section="common"),
    FieldDef("env_delay", 0x10, 1, 0, 0x7F, section="common"),
    FieldDef("common_attack_rate", 0x11, 2, -64, 63, signed=True, section="common"),
    FieldDef("common_release_rate", 0x13, 2, -64, 63, signed=True, section="common"),
    *_wave_element("element_a", ELEMENT_A_OFFSET),
    *_fm_element("element_b", ELEMENT_B_OFFSET),
    *_wave_element("element_c", ELEMENT_C_OFFSET),
    *_fm_element("element_d", ELEMENT_D_OFFSET),
    FieldDef("vector.level_rate", VECTOR_OFFSET, 1, 0, 0x7F, section="vector"),
    FieldDef("vector.detune_rate", VECTOR_OFFSET + 1, 1, 0, 0x7F, section="vector"),
    *_vector_steps("vector.level_steps", LEVEL_STEPS_OFFSET),
    *_vector_steps("vector.detune_steps", DETUNE_STEPS_OFFSET),
    FieldDef("null", NULL_OFFSET, 1, 0, 0, section="footer"),
    FieldDef("checksum", CHECKSUM_OFFSET, 2, 0, 0xFF, section="footer"),
)


def _envelope_bits(prefix: str) -> list[BitField]:
    return [
        BitField(f"{prefix}.level_scaling", f"{prefix}.level_rate_scaling", 0xF0, 4),
        BitField(f"{prefix}.rate_scaling", f"{prefix}.level_rate_scaling", 0x07),
        BitField(f"{prefix}.delay_on", f"{prefix}.delay_attack_rate", 0x80, 7),
        BitField(f"{prefix}.attack_rate", f"{prefix}.delay_attack_rate", 0x3F),
        BitField(f"{prefix}.peak", f"{prefix}.peak_decay_rate_1", 0xC0, 6),
        BitField(f"{prefix}.decay_rate_1", f"{prefix}.peak_decay_rate_1", 0x3F),
    ]


def _element_bits(prefix: str, fm: bool) -> list[BitField]:
    bits = [
        BitField(f"{prefix}.velocity_response", f"{prefix}.velocity_after_touch", 0x70, 4),
        BitField(f"{prefix}.after_touch_response", f"{prefix}.velocity_after_touch", 0x0F),
        BitField(f"{prefix}.lfo.wave", f"{prefix}.lfo.wave_speed", 0xE0, 5),
        BitField(f"{prefix}.lfo.speed", f"{prefix}.lfo.wave_speed", 0x1F),
        BitField(f"{prefix}.env_type", f"{prefix}.env_type_pan", 0x70, 4),
        BitField(f"{prefix}.pan", f"{prefix}.env_type_pan", 0x07),
    ]
    if fm:
        lfo = f"{prefix}.lfo"
        bits += [
            BitField(f"{lfo}.am_carrier", f"{lfo}.am_depth", 0x20, 5),
            BitField(f"{lfo}.am_modulator", f"{lfo}.am_depth", 0x10, 4),
            BitField(f"{lfo}.am_level", f"{lfo}.am_depth", 0x0F),
            BitField(f"{lfo}.pm_carrier", f"{lfo}.pm_depth", 0x40, 6),
            BitField(f"{lfo}.pm_modulator", f"{lfo}.pm_depth", 0x20, 5),
            BitField(f"{lfo}.pm_level", f"{lfo}.pm_depth", 0x1F),
        ]
        for op in ("modulator", "carrier"):
            path = f"{prefix}.{op}"
            bits += [
                BitField(f"{path}.fixed_mode", f"{path}.fixed_waveform_freq", 0x80, 7),
                BitField(f"{path}.waveform", f"{path}.fixed_waveform_freq", 0x70, 4),
                BitField(f"{path}.frequency", f"{path}.fixed_waveform_freq", 0x0F),
                BitField(f"{path}.temperament", f"{path}.temperament_detune", 0x30, 4),
                BitField(f"{path}.detune", f"{path}.temperament_detune", 0x0F),
                *_envelope_bits(f"{path}.envelope"),
            ]
    else:
        bits += [
            BitField(f"{prefix}.temperament", f"{prefix}.temperament_detune", 0x30, 4),
            BitField(f"{prefix}.detune", f"{prefix}.temperament_detune", 0x0F),
            *_envelope_bits(f"{prefix}.envelope"),
        ]
    return bits


BIT_FIELDS: tuple[BitField, ...] = (
    BitField("effect_depth", "effect", 0x70, 4),
    BitField("effect_type", "effect", 0x0F),
    BitField("configuration", "pitch_bend", 0x80, 7),
    BitField("pitch_bend_range", "pitch_bend", 0x1F),
    BitField("after_touch_level", "after_touch_mod_wheel", 0x40, 6),
    BitField("after_touch_pm", "after_touch_mod_wheel", 0x20, 5),
    BitField("after_touch_am", "after_touch_mod_wheel", 0x10, 4),
    BitField("mod_wheel_pm", "after_touch_mod_wheel", 0x02, 1),
    BitField("mod_wheel_am", "after_touch_mod_wheel", 0x01),
    *_element_bits("element_a", fm=False),
    *_element_bits("element_b", fm=True),
    *_element_bits("element_c", fm=False),
    *_element_bits("element_d", fm=True),
)


class FieldMap:
    def __init__(self) -> None:
        self._fields = {f.name: f for f in VOICE_FIELDS}
        self._bits = {b.name: b for b in BIT_FIELDS}
        self._by_offset: dict[int, FieldDef] = {}
        for f in VOICE_FIELDS:
            for off in range(f.offset, f.end):
                self._by_offset[off] = f

    def get(self, name: str) -> FieldDef | None:
        return self._fields.get(name)

    def get_bits(self, name: str) -> BitField | None:
        return self._bits.get(name)

    def list_all(self) -> list[FieldDef]:
        return list(self._fields.values())

    def names(self) -> list[str]:
        return list(self._fields.keys())

    def by_section(self, section: str) -> list[FieldDef]:
        return [f for f in self._fields.values() if f.section == section]

    def pair_fields(self) -> list[FieldDef]:
        return [f for f in self._fields.values() if f.is_pair]

    def field_at(self, offset: int) -> FieldDef | None:
        """Return the field covering block *offset*, or None past the block."""
        return self._by_offset.get(offset)


FIELD_MAP = FieldMap()
