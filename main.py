import argparse
import signal
import sys
from pathlib import Path
from PyQt6.QtCore import QCoreApplication, QTimer

from core.config import AppConfig
from core.session import VoiceSession
from midi.device import list_midi_ports
from model.layout import FIELD_MAP


def parse_assignment(text: str) -> tuple[str, int | str, bool]:
    """Split NAME=VALUE into (name, value, is_bit_field).

    Values accept any int literal (``0x40``, ``-12``); the voice name is
    taken verbatim.
    """
    name, sep, raw = text.partition("=")
    if not sep or not name:
        raise ValueError(f"Expected NAME=VALUE, got '{text}'")
    if FIELD_MAP.get_bits(name) is not None:
        return name, int(raw, 0), True
    fd = FIELD_MAP.get(name)
    if fd is None:
        raise ValueError(f"Unknown voice parameter '{name}'")
    if fd.is_text:
        return name, raw, False
    return name, int(raw, 0), False


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Yamaha SY22 voice librarian")
    parser.add_argument("--config", type=Path, default=None,
                        help="Config file (default: ~/.config/sy22panel/config.json)")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("ports", help="List MIDI ports")
    sub.add_parser("library", help="List voices stored in the library")
    send = sub.add_parser("send", help="Send a .syx voice to the synth")
    send.add_argument("file", type=Path)
    edit = sub.add_parser("edit", help="Edit parameters of a .syx voice and send it")
    edit.add_argument("file", type=Path)
    edit.add_argument("assignments", nargs="+", metavar="NAME=VALUE")
    edit.add_argument("--store", action="store_true", help="Store the edited voice in the library")
    receive = sub.add_parser("receive", help="Wait for voice dumps from the synth")
    receive.add_argument("--store", action="store_true", help="Store every received voice")
    return parser


def _run_event_loop(app: QCoreApplication) -> int:
    # Qt's event loop blocks Python's signal handling; a timer lets Ctrl+C through.
    previous = signal.signal(signal.SIGINT, lambda *_: app.quit())
    timer = QTimer()
    timer.start(200)
    timer.timeout.connect(lambda: None)
    try:
        return app.exec()
    finally:
        timer.stop()
        signal.signal(signal.SIGINT, previous)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    config = AppConfig(path=args.config)

    if args.command == "ports":
        for i, name in enumerate(list_midi_ports()):
            print(f"{i}: {name}")
        return 0

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    session = VoiceSession(config)

    if args.command == "library":
        for patch in session.library.list_patches():
            print(patch.name or "(unnamed)")
        return 0

    try:
        edits = [parse_assignment(a) for a in getattr(args, "assignments", [])]
        if args.command in ("send", "edit"):
            session.load_file(args.file)
        port = session.connect_device()
    except (ValueError, OSError, RuntimeError) as exc:
        print(exc, file=sys.stderr)
        return 1
    print(f"Connected to {port}, channel {session.channel + 1}")

    try:
        if args.command == "send":
            session.send_now()
            return 0
        if args.command == "edit":
            session.voice_sent.connect(app.quit)
            for name, value, is_bits in edits:
                if is_bits:
                    session.edit_bits(name, value)
                else:
                    session.edit(name, value)
            if not session.buffer.dirty:
                print("Nothing changed.")
                return 0
            _run_event_loop(app)
            if args.store:
                print(f"Stored {session.store_current()}")
            return 0
        session.set_store_received(args.store)
        print("Waiting for voice dumps, Ctrl+C to stop.")
        return _run_event_loop(app)
    finally:
        session.device.disconnect()


if __name__ == "__main__":
    sys.exit(main())
