from __future__ import annotations
from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from core.logger import AppLogger
from midi.sysex import SYSEX_END, SYSEX_START, encode_voice_dump, parse_voice_dump
from model.voice import Voice, make_voice


class SysExAssembler:
    """Reassembles complete F0..F7 messages from a chunked input stream.

    Some MIDI drivers deliver a long dump in several pieces.  Bytes seen
    outside a message are dropped; a new F0 abandons any partial message.
    """

    def __init__(self) -> None:
        self._pending: bytearray | None = None

    @property
    def in_message(self) -> bool:
        return self._pending is not None

    def reset(self) -> None:
        self._pending = None

    def feed(self, chunk: bytes | list[int]) -> list[bytes]:
        complete: list[bytes] = []
        for b in chunk:
            if b == SYSEX_START:
                self._pending = bytearray([b])
            elif self._pending is None:
                continue
            elif b == SYSEX_END:
                self._pending.append(b)
                complete.append(bytes(self._pending))
                self._pending = None
            elif b >= 0xF8:
                continue  # real-time bytes may interleave with SysEx
            else:
                self._pending.append(b)
        return complete


class VoiceEditBuffer:
    """Working copy of the voice being edited.

    Provides named access to voice parameters via the layout table and
    tracks dirty state so callers know when to send the voice again.
    """

    def __init__(self, voice: Voice | None = None, logger: AppLogger | None = None) -> None:
        self._voice = voice.copy() if voice is not None else make_voice()
        self._dirty = False
        self._logger = logger

    @property
    def voice(self) -> Voice:
        return self._voice

    @property
    def dirty(self) -> bool:
        return self._dirty

    def mark_clean(self) -> None:
        self._dirty = False

    def load(self, voice: Voice) -> None:
        self._voice = voice.copy()
        self._dirty = False

    def load_sysex(self, message: bytes | list[int]) -> int:
        """Replace the buffer with a received dump; returns its channel byte."""
        channel, voice = parse_voice_dump(message)
        self.load(voice)
        if self._logger is not None:
            self._logger.sysex(f"loaded voice '{voice.name_text.strip()}' (ch {channel})")
        return channel

    def get(self, name: str) -> int | str:
        return self._voice.get(name)

    def set(self, name: str, value: int | str) -> None:
        before = self._voice.get(name)
        self._voice.set(name, value)
        if self._voice.get(name) != before:
            self._dirty = True

    def get_bits(self, name: str) -> int:
        return self._voice.get_bits(name)

    def set_bits(self, name: str, value: int) -> None:
        before = self._voice.get_bits(name)
        self._voice.set_bits(name, value)
        if self._voice.get_bits(name) != before:
            self._dirty = True

    def snapshot(self) -> Voice:
        """Checksum-stamped copy, safe to hand to another thread."""
        voice = self._voice.copy()
        voice.update_checksum()
        return voice

    def to_sysex(self, channel: int = 0) -> bytes:
        return encode_voice_dump(self._voice, channel)


class DebouncedSysExWriter(QObject):
    """Debounces voice dump writes to avoid flooding the synth.

    Every edit calls `schedule()`.  After the debounce interval elapses with
    no further calls, `write_requested` is emitted so the caller can send a
    single dump of the current voice.
    """

    write_requested = pyqtSignal()

    def __init__(self, debounce_ms: int = 150, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(debounce_ms)
        self._timer.timeout.connect(self.write_requested.emit)

    @property
    def debounce_ms(self) -> int:
        return self._timer.interval()

    @debounce_ms.setter
    def debounce_ms(self, value: int) -> None:
        self._timer.setInterval(value)

    def schedule(self) -> None:
        self._timer.start()

    def cancel(self) -> None:
        self._timer.stop()

    @property
    def is_pending(self) -> bool:
        return self._timer.isActive()
