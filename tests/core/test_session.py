import pytest
from unittest.mock import MagicMock, patch
from core.config import AppConfig
from core.session import VoiceSession
from model.library import Library
from model.patch import Patch
from model.voice import make_voice


@pytest.fixture
def config(tmp_path):
    cfg = AppConfig(path=tmp_path / "config.json")
    cfg.midi_channel = 4
    cfg.sysex_write_debounce_ms = 20
    cfg.library_dir = str(tmp_path / "voices")
    return cfg


@pytest.fixture
def device():
    dev = MagicMock()
    dev.connected = True
    return dev


def _session(config, device, tmp_path):
    return VoiceSession(config, device=device, library=Library(tmp_path / "lib"))


def test_edits_are_sent_once_after_debounce(qtbot, config, device, tmp_path):
    session = _session(config, device, tmp_path)
    with qtbot.waitSignal(session.voice_sent, timeout=1000):
        session.edit("env_delay", 9)
        session.edit("element_b.carrier.level", 0x30)
        session.edit_bits("effect_depth", 3)
    device.send_voice.assert_called_once()
    voice, channel = device.send_voice.call_args.args
    assert channel == 4
    assert voice.env_delay == 9
    assert voice.get("element_b.carrier.level") == 0x30
    assert voice.get_bits("effect_depth") == 3
    assert not session.buffer.dirty


def test_nothing_sent_while_disconnected(qtbot, config, device, tmp_path):
    device.connected = False
    session = _session(config, device, tmp_path)
    session.edit("env_delay", 9)
    qtbot.wait(100)
    device.send_voice.assert_not_called()
    assert session.buffer.dirty


def test_unchanged_value_does_not_send(qtbot, config, device, tmp_path):
    session = _session(config, device, tmp_path)
    session.edit("env_delay", 0)
    qtbot.wait(100)
    device.send_voice.assert_not_called()


def test_debounce_interval_comes_from_config(qtbot, config, device, tmp_path):
    config.sysex_write_debounce_ms = 275
    session = _session(config, device, tmp_path)
    assert session._sysex_writer.debounce_ms == 275


def test_library_defaults_to_config_dir(qtbot, config, device, tmp_path):
    session = VoiceSession(config, device=device)
    assert session.library.root == tmp_path / "voices"
    assert session.library.root.is_dir()


def test_received_voice_replaces_buffer(qtbot, config, device, tmp_path):
    session = _session(config, device, tmp_path)
    device.set_voice_callback.assert_called_once()
    voice = make_voice()
    voice.set_name("Brass")
    session.voice_received.emit(2, voice)
    assert session.buffer.voice == voice
    assert not session.buffer.dirty
    assert session.library.list_patches() == []


def test_received_voice_stored_when_enabled(qtbot, config, device, tmp_path):
    session = _session(config, device, tmp_path)
    session.set_store_received(True)
    voice = make_voice()
    voice.set_name("Brass")
    session.voice_received.emit(2, voice)
    stored = session.library.list_patches()
    assert [p.name for p in stored] == ["Brass"]
    assert stored[0].channel == 2


def test_load_file_and_store_current(qtbot, config, device, tmp_path):
    voice = make_voice()
    voice.set_name("Pad")
    path = tmp_path / "pad.syx"
    Patch(voice).save(path)
    session = _session(config, device, tmp_path)
    session.load_file(path)
    assert session.buffer.voice == voice
    stored_path = session.store_current()
    assert stored_path.exists()
    stored = Patch.load(stored_path)
    assert stored.voice == voice
    assert stored.channel == 4
    assert stored.voice.checksum_valid


def test_send_now_uses_configured_channel(qtbot, config, device, tmp_path):
    session = _session(config, device, tmp_path)
    session.edit("env_delay", 5)
    session.send_now()
    device.send_voice.assert_called_once_with(session.buffer.voice, 4)
    assert not session.buffer.dirty


def test_connect_device_prefers_configured_port(qtbot, config, device, tmp_path):
    config.midi_port = "UM-ONE"
    session = _session(config, device, tmp_path)
    with patch("core.session.list_midi_ports", return_value=["SY22 thru", "UM-ONE"]):
        assert session.connect_device() == "UM-ONE"
    device.connect.assert_called_once_with(1, "UM-ONE")


def test_connect_device_without_port_raises(qtbot, config, device, tmp_path):
    session = _session(config, device, tmp_path)
    with patch("core.session.list_midi_ports", return_value=["Port A"]):
        with pytest.raises(RuntimeError, match="No MIDI port"):
            session.connect_device()
    device.connect.assert_not_called()
