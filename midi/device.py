from __future__ import annotations
import rtmidi
from core.logger import AppLogger
from midi.sysex import VoiceDumpError, encode_voice_dump, is_voice_dump, parse_voice_dump
from midi.sysex_buffer import SysExAssembler
from model.voice import Voice

DEVICE_NAME_FRAGMENT = "SY22"


def list_midi_ports() -> list[str]:
    midi_out = rtmidi.MidiOut()
    ports = midi_out.get_ports()
    midi_out.delete()
    return ports


def find_sy22_port(ports: list[str], preferred: str | None = None) -> int | None:
    # A configured port name wins; the SY22 itself has no USB so the port is
    # usually named after the interface, not the synth.
    if preferred:
        for i, name in enumerate(ports):
            if name == preferred:
                return i
    for i, name in enumerate(ports):
        if DEVICE_NAME_FRAGMENT in name.upper():
            return i
    return None


class MidiDevice:
    def __init__(self, logger: AppLogger | None = None) -> None:
        self._midi_out = rtmidi.MidiOut()
        self._midi_in = rtmidi.MidiIn()
        self._connected = False
        self._port_name: str | None = None
        self._logger = logger or AppLogger()
        self._assembler = SysExAssembler()
        self._voice_callback = None
        self._error_callback = None

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def port_name(self) -> str | None:
        return self._port_name

    def connect(self, port_index: int, port_name: str) -> None:
        if self._connected:
            self.disconnect()
        try:
            self._midi_out.open_port(port_index)
        except rtmidi.SystemError as exc:
            raise RuntimeError(
                f"Could not open MIDI output port '{port_name}'. "
                "It may be in use by another application."
            ) from exc
        self._logger.midi(f"OUT: {port_name} (index {port_index})")
        try:
            # Input and output port indices are independent; match by name.
            in_ports = self._midi_in.get_ports()
            in_index = find_sy22_port(in_ports, preferred=port_name)
            if in_index is None:
                raise RuntimeError(f"No MIDI input port found matching '{port_name}'")
            try:
                self._midi_in.open_port(in_index)
            except rtmidi.SystemError as exc:
                raise RuntimeError(
                    f"Could not open MIDI input port '{in_ports[in_index]}'. "
                    "It may be in use by another application."
                ) from exc
            self._logger.midi(f"IN:  {in_ports[in_index]} (index {in_index})")
            self._midi_in.ignore_types(sysex=False)
            self._midi_in.set_callback(self._dispatch_midi_input)
        except Exception:
            self._midi_out.close_port()
            raise
        self._assembler.reset()
        self._connected = True
        self._port_name = port_name

    def disconnect(self) -> None:
        if self._connected:
            self._midi_out.close_port()
            self._midi_in.close_port()
        self._connected = False
        self._port_name = None

    def send(self, message: list[int] | bytes) -> None:
        if not self._connected:
            raise RuntimeError("Not connected to a MIDI device")
        self._midi_out.send_message(list(message))

    def send_voice(self, voice: Voice, channel: int = 0) -> None:
        """Send *voice* as a single voice dump to the edit buffer of the synth."""
        message = encode_voice_dump(voice, channel)
        self.send(message)
        self._logger.sysex(
            f"TX voice '{voice.name_text.strip()}' ch {channel & 0x0F}: {len(message)} bytes"
        )

    def _dispatch_midi_input(self, event, _data=None) -> None:
        """Route incoming MIDI to the voice callback; rtmidi calls this on its own thread."""
        msg = event[0]
        if not msg:
            return
        if msg[0] != 0xF0 and not self._assembler.in_message:
            self._logger.midi(f"RX raw: {[hex(b) for b in msg]}")
            return
        for sysex in self._assembler.feed(msg):
            self._handle_sysex(sysex)

    def _handle_sysex(self, message: bytes) -> None:
        if not is_voice_dump(message):
            self._logger.sysex(f"RX sysex ignored: {len(message)} bytes")
            return
        try:
            channel, voice = parse_voice_dump(message)
        except VoiceDumpError as exc:
            self._logger.sysex(f"RX voice dump rejected ({type(exc).__name__}): {exc}")
            if self._error_callback is not None:
                self._error_callback(exc)
            return
        self._logger.sysex(f"RX voice '{voice.name_text.strip()}' ch {channel}")
        if self._voice_callback is not None:
            self._voice_callback(channel, voice)

    def set_voice_callback(self, callback) -> None:
        """Register a callback for received voice dumps: callback(channel, voice)."""
        self._voice_callback = callback

    def set_error_callback(self, callback) -> None:
        """Register a callback for rejected voice dumps: callback(exc)."""
        self._error_callback = callback
