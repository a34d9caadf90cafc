import json
from core.config import AppConfig


def test_config_defaults(tmp_path):
    cfg = AppConfig(path=tmp_path / "config.json")
    assert cfg.midi_port is None
    assert cfg.midi_channel == 0
    assert cfg.sysex_write_debounce_ms == 150
    assert cfg.library_dir


def test_config_save_and_load(tmp_path):
    path = tmp_path / "config.json"
    cfg = AppConfig(path=path)
    cfg.midi_port = "UM-ONE"
    cfg.midi_channel = 3
    cfg.save()
    cfg2 = AppConfig(path=path)
    assert cfg2.midi_port == "UM-ONE"
    assert cfg2.midi_channel == 3


def test_config_does_not_crash_on_missing_file(tmp_path):
    cfg = AppConfig(path=tmp_path / "nonexistent" / "config.json")
    assert cfg.midi_channel == 0


def test_config_save_creates_parent(tmp_path):
    path = tmp_path / "nested" / "config.json"
    AppConfig(path=path).save()
    assert json.loads(path.read_text())["midi_channel"] == 0


def test_config_ignores_corrupt_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    cfg = AppConfig(path=path)
    assert cfg.midi_port is None


def test_config_rejects_out_of_range_channel(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"midi_channel": 16}))
    assert AppConfig(path=path).midi_channel == 0


def test_config_ignores_non_object_json(tmp_path):
    path = tmp_path / "config.json"
    for payload in ("42", '"UM-ONE"', "[1, 2]", "null"):
        path.write_text(payload)
        cfg = AppConfig(path=path)
        assert cfg.midi_port is None
        assert cfg.midi_channel == 0
