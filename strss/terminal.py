from __future__ import annotations

import os
import re
import select
import sys
import termios
import tty
from contextlib import contextmanager
from typing import Any, Iterator

# xterm button tracking with SGR coordinates.
MOUSE_ON = "\x1b[?1000h\x1b[?1006h"
MOUSE_OFF = "\x1b[?1006l\x1b[?1000l"

SGR_MOUSE_RE = re.compile(r"^\[<(\d+);(\d+);(\d+)([Mm])$")

_SEQUENCES = {
    "[A": "UP",
    "[B": "DOWN",
    "[C": "RIGHT",
    "[D": "LEFT",
    "OA": "UP",
    "OB": "DOWN",
    "OC": "RIGHT",
    "OD": "LEFT",
    "[5~": "PGUP",
    "[6~": "PGDN",
    "[H": "HOME",
    "[F": "END",
    "[Z": "SHTAB",
}

Event = tuple[str, Any]


def decode_sequence(sequence: str) -> Event | None:
    """Decode what followed an ESC byte. Unknown sequences read as ESC."""
    if sequence in _SEQUENCES:
        return ("key", _SEQUENCES[sequence])
    match = SGR_MOUSE_RE.match(sequence)
    if match:
        button, column, row, kind = match.groups()
        code = int(button)
        # SGR coordinates are 1-based.
        position = (int(column) - 1, int(row) - 1)
        if code == 64:
            return ("wheel", "UP")
        if code == 65:
            return ("wheel", "DOWN")
        if code == 0 and kind == "M":
            return ("click", position)
        return None
    return ("key", "ESC")


def decode_key(key: str) -> Event:
    if key in {"\r", "\n"}:
        return ("key", "ENTER")
    if key == "\t":
        return ("key", "TAB")
    if key in {"\x7f", "\b"}:
        return ("key", "BACKSPACE")
    if key == "\x03":
        return ("key", "QUIT")
    return ("key", key)


def _read_sequence(fd: int) -> str:
    sequence = ""
    while select.select([fd], [], [], 0.001)[0]:
        sequence += os.read(fd, 1).decode("utf-8", errors="ignore")
        if not sequence:
            continue
        if sequence.startswith("[<"):
            if sequence[-1] in "Mm" or len(sequence) >= 24:
                break
            continue
        if sequence == "O":
            continue
        if sequence[-1].isalpha() or sequence.endswith("~") or len(sequence) >= 6:
            break
    return sequence


def read_event(fd: int | None, timeout: float) -> Event | None:
    """Wait up to *timeout* seconds for one key or mouse event."""
    if fd is None:
        return None
    ready, _, _ = select.select([fd], [], [], max(0.0, timeout))
    if not ready:
        return None
    data = os.read(fd, 1)
    if not data:
        return None
    key = data.decode("utf-8", errors="ignore")
    if not key:
        return None
    if key == "\x1b":
        return decode_sequence(_read_sequence(fd))
    return decode_key(key)


@contextmanager
def terminal_mode() -> Iterator[int | None]:
    """cbreak input plus mouse reporting for the duration of the block."""
    if not sys.stdin.isatty():
        yield None
        return

    fd = sys.stdin.fileno()
    old_settings = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        sys.stdout.write(MOUSE_ON)
        sys.stdout.flush()
        yield fd
    finally:
        sys.stdout.write(MOUSE_OFF)
        sys.stdout.flush()
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
