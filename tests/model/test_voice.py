import pytest
from midi.bytepair import BytePair, to_pair
from midi.checksum import CHECKSUM_OFFSET, OVERFLOW_OFFSETS, VOICE_BLOCK_SIZE
from model.layout import VOICE_FIELDS
from model.voice import (
    STEP_END, STEP_REPEAT, Voice, VectorStep, make_voice,
)


def _busy_voice() -> Voice:
    v = make_voice()
    v.set_name("BrassPad")
    v.set("effect", 0x35)
    v.set("after_touch_pitch_shift", -12)
    v.set("common_attack_rate", -64)
    v.set("common_release_rate", 63)
    v.set("element_a.wave", 17)
    v.set("element_a.pitch_shift", 7)
    v.set("element_b.wave", 0x90)
    v.set("element_b.modulator.level", 99)
    v.set("element_d.carrier.envelope.peak_decay_rate_1", 0xC5)
    v.set("vector.level_steps[0].length", 20)
    v.set("vector.level_steps[1].length", STEP_END)
    v.set("vector.detune_steps[0].length", STEP_REPEAT)
    return v


def test_make_voice_reserved_bytes():
    v = make_voice()
    block = v.to_bytes()
    assert block[:3] == bytes([0x01, 0x25, 0x00])
    assert block[3:] == bytes(VOICE_BLOCK_SIZE - 3)


def test_raw_voice_is_all_zero():
    assert Voice().to_bytes() == bytes(VOICE_BLOCK_SIZE)


def test_block_length_is_fixed():
    assert len(make_voice().to_bytes()) == VOICE_BLOCK_SIZE
    assert len(_busy_voice().to_bytes()) == VOICE_BLOCK_SIZE


def test_name():
    v = make_voice()
    v.set_name("Pad")
    assert v.name == b"Pad     "
    assert v.name_text == "Pad     "
    assert v.to_bytes()[3:11] == b"Pad     "
    v.set_name("TooLongName")
    assert v.name_text == "TooLongN"


def test_get_set_signed_pair():
    v = make_voice()
    v.set("element_c.pitch_shift", -5)
    assert v.get("element_c.pitch_shift") == -5
    assert v.element_c.pitch_shift == to_pair(-5, signed=True)


def test_set_truncates_silently():
    v = make_voice()
    v.set("element_b.wave", 0x1FF)
    assert v.get("element_b.wave") == 0xFF
    v.set("env_delay", 0xFF)
    assert v.get("env_delay") == 0x7F


def test_unknown_field_raises():
    v = make_voice()
    with pytest.raises(KeyError):
        v.get("element_e.wave")
    with pytest.raises(KeyError):
        v.set_bits("no_such_bits", 1)


def test_bit_fields():
    v = make_voice()
    v.set_bits("effect_depth", 5)
    v.set_bits("effect_type", 9)
    assert v.effect == 0x59
    assert v.get_bits("effect_depth") == 5
    v.set_bits("element_a.envelope.peak", 3)
    v.set_bits("element_a.envelope.decay_rate_1", 0x21)
    assert v.element_a.envelope.peak_decay_rate_1 == BytePair(1, 0x61)
    v.set_bits("element_a.envelope.decay_rate_1", 0)
    assert v.get_bits("element_a.envelope.peak") == 3


def test_after_touch_mod_wheel_bits():
    v = make_voice()
    v.set_bits("after_touch_level", 1)
    v.set_bits("after_touch_am", 1)
    v.set_bits("mod_wheel_pm", 1)
    assert v.after_touch_mod_wheel == 0b1010010
    assert v.get_bits("after_touch_pm") == 0
    assert v.get_bits("mod_wheel_am") == 0
    v.set_bits("after_touch_level", 0)
    assert v.after_touch_mod_wheel == 0b0010010


def test_fm_lfo_routing_bits():
    v = make_voice()
    v.set_bits("element_b.lfo.am_carrier", 1)
    v.set_bits("element_b.lfo.am_level", 0x0A)
    v.set_bits("element_b.lfo.pm_modulator", 1)
    v.set_bits("element_b.lfo.pm_level", 0x1F)
    assert v.element_b.lfo.am_depth == 0x2A
    assert v.element_b.lfo.pm_depth == 0x3F
    assert v.get_bits("element_b.lfo.am_modulator") == 0
    assert v.get_bits("element_b.lfo.pm_carrier") == 0
    assert v.element_d.lfo.am_depth == 0
    with pytest.raises(KeyError):
        v.get_bits("element_a.lfo.am_carrier")


def test_bytes_round_trip():
    v = _busy_voice()
    v.update_checksum()
    block = v.to_bytes()
    restored = Voice.from_bytes(block)
    assert restored == v
    assert restored.checksum == v.checksum
    assert restored.to_bytes() == block


def test_from_bytes_wrong_size():
    with pytest.raises(ValueError):
        Voice.from_bytes(bytes(100))


def test_every_field_round_trips():
    # Write a distinct value into each field in turn and read it back
    for fd in VOICE_FIELDS:
        if fd.is_text or fd.name in ("checksum", "null"):
            continue
        v = make_voice()
        value = fd.max_val if fd.max_val else fd.min_val
        v.set(fd.name, value)
        restored = Voice.from_bytes(v.to_bytes())
        assert restored.get(fd.name) == value, fd.name


def test_update_checksum_default_voice():
    v = make_voice()
    assert v.update_checksum() == BytePair(1, 0x5A)
    assert v.to_bytes()[CHECKSUM_OFFSET:CHECKSUM_OFFSET + 2] == b"\x01\x5a"
    assert v.checksum_valid


def test_update_checksum_idempotent():
    v = _busy_voice()
    first = v.update_checksum()
    second = v.update_checksum()
    assert first == second
    assert v.to_bytes() == v.to_bytes()


def test_checksum_tracks_edits():
    v = _busy_voice()
    v.update_checksum()
    v.set("element_b.feedback", 5)
    assert not v.checksum_valid
    v.update_checksum()
    assert v.checksum_valid


def test_block_sums_to_zero_with_checksum():
    v = _busy_voice()
    v.update_checksum()
    block = v.to_bytes()
    total = 0
    for off, b in enumerate(block):
        total += (b << 7) if off in OVERFLOW_OFFSETS or off == CHECKSUM_OFFSET else b
    assert total & 0xFF == 0


def test_checksum_not_part_of_equality():
    a = make_voice()
    b = make_voice()
    b.update_checksum()
    assert a == b


def test_vector_step_sentinels():
    v = make_voice()
    v.vector.level_steps[3] = VectorStep.from_offsets(STEP_REPEAT, -31, 31)
    v.vector.detune_steps[7] = VectorStep.from_offsets(STEP_END)
    block = v.to_bytes()
    assert block[0xAB + 3 * 4:0xAB + 3 * 4 + 4] == bytes([0x01, 0x7E, 0x00, 0x3E])
    assert block[0x173 + 7 * 4:0x173 + 7 * 4 + 2] == bytes([0x01, 0x7F])
    restored = Voice.from_bytes(block)
    assert restored.vector.level_steps[3].is_repeat
    assert restored.vector.level_steps[3].x_offset == -31
    assert restored.vector.level_steps[3].y_offset == 31
    assert restored.vector.detune_steps[7].is_end
    assert not restored.vector.detune_steps[7].is_repeat


def test_copy_is_independent():
    v = _busy_voice()
    c = v.copy()
    c.vector.level_steps[0].x = 10
    c.set("element_a.wave", 1)
    assert v.vector.level_steps[0].x == 0
    assert v.get("element_a.wave") == 17
