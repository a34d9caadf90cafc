from __future__ import annotations
import json
from pathlib import Path

_DEFAULTS = {
    "midi_port": None,
    "midi_channel": 0,
    "library_dir": str(Path.home() / "sy22panel" / "voices"),
    "sysex_write_debounce_ms": 150,
}


class AppConfig:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "sy22panel" / "config.json"
        self.midi_port: str | None = _DEFAULTS["midi_port"]
        self.midi_channel: int = _DEFAULTS["midi_channel"]
        self.library_dir: str = _DEFAULTS["library_dir"]
        self.sysex_write_debounce_ms: int = _DEFAULTS["sysex_write_debounce_ms"]
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text())
        except (json.JSONDecodeError, OSError):
            data = {}
        if isinstance(data, dict):
            for key in _DEFAULTS:
                if key in data:
                    setattr(self, key, data[key])
        # SY22 receives on basic channel 1-16, sent as 0-15 in the dump header
        if not isinstance(self.midi_channel, int) or not (0 <= self.midi_channel <= 15):
            self.midi_channel = _DEFAULTS["midi_channel"]

    def save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {key: getattr(self, key) for key in _DEFAULTS}
        self._path.write_text(json.dumps(data, indent=2))
