from __future__ import annotations
from pathlib import Path
from PyQt6.QtCore import QObject, pyqtSignal

from core.config import AppConfig
from core.logger import AppLogger
from midi.device import MidiDevice, find_sy22_port, list_midi_ports
from midi.sysex_buffer import DebouncedSysExWriter, VoiceEditBuffer
from model.library import Library
from model.patch import Patch
from model.voice import Voice


class VoiceSession(QObject):
    """Ties the configured SY22 port, the edit buffer and the voice library together.

    Edits land in the buffer and are sent as one debounced voice dump on the
    configured channel.  Dumps arriving from the synth replace the buffer and
    can be stored to the library.
    """

    voice_received = pyqtSignal(int, object)  # channel, Voice
    voice_sent = pyqtSignal()

    def __init__(
        self,
        config: AppConfig,
        device: MidiDevice | None = None,
        library: Library | None = None,
        logger: AppLogger | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._config = config
        self._logger = logger or AppLogger()
        self._device = device or MidiDevice(logger=self._logger)
        self._library = library or Library(
            Path(config.library_dir).expanduser(), logger=self._logger
        )
        self._buffer = VoiceEditBuffer(logger=self._logger)
        self._sysex_writer = DebouncedSysExWriter(
            debounce_ms=config.sysex_write_debounce_ms, parent=self
        )
        self._sysex_writer.write_requested.connect(self._flush_sysex)
        self._store_received = False
        # rtmidi calls back on its own thread; the signal hops to the Qt thread
        self._device.set_voice_callback(self.voice_received.emit)
        self.voice_received.connect(self._on_voice_received)

    @property
    def buffer(self) -> VoiceEditBuffer:
        return self._buffer

    @property
    def library(self) -> Library:
        return self._library

    @property
    def device(self) -> MidiDevice:
        return self._device

    @property
    def channel(self) -> int:
        return self._config.midi_channel

    def connect_device(self) -> str:
        """Open the configured port, or the first one that looks like an SY22."""
        ports = list_midi_ports()
        index = find_sy22_port(ports, preferred=self._config.midi_port)
        if index is None:
            raise RuntimeError(
                f"No MIDI port found (configured: {self._config.midi_port or 'none'})"
            )
        self._device.connect(index, ports[index])
        return ports[index]

    def set_store_received(self, enabled: bool) -> None:
        self._store_received = enabled

    def load_voice(self, voice: Voice) -> None:
        self._sysex_writer.cancel()
        self._buffer.load(voice)

    def load_file(self, path: Path) -> Patch:
        patch = Patch.load(path)
        self.load_voice(patch.voice)
        self._logger.general(f"loaded voice '{patch.name}' from {Path(path).name}")
        return patch

    def edit(self, name: str, value: int | str) -> None:
        self._buffer.set(name, value)
        if self._buffer.dirty:
            self._sysex_writer.schedule()

    def edit_bits(self, name: str, value: int) -> None:
        self._buffer.set_bits(name, value)
        if self._buffer.dirty:
            self._sysex_writer.schedule()

    def send_now(self) -> None:
        self._sysex_writer.cancel()
        self._device.send_voice(self._buffer.voice, self.channel)
        self._buffer.mark_clean()
        self.voice_sent.emit()

    def store_current(self) -> Path:
        return self._library.save_patch(Patch(self._buffer.snapshot(), self.channel))

    def _flush_sysex(self) -> None:
        if not self._buffer.dirty or not self._device.connected:
            return
        self.send_now()

    def _on_voice_received(self, channel: int, voice: Voice) -> None:
        self.load_voice(voice)
        if self._store_received:
            self._library.save_patch(Patch(voice, channel))
