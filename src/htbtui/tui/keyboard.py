"""
Raw terminal input for the TUI.

Puts stdin into cbreak mode and registers it with the event loop, so key
presses (and mouse wheel reports) become bus events without a blocking read.
Terminal resizes arrive through SIGWINCH.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import re
import shutil
import signal
import sys
from typing import List, Optional, TextIO

from ..events import Event, EventBus, KeyPress, PointerEvent, Resize

logger = logging.getLogger(__name__)

MOUSE_ON = "\x1b[?1000h\x1b[?1006h"
MOUSE_OFF = "\x1b[?1000l\x1b[?1006l"

_SGR_MOUSE = re.compile(r"\x1b\[<(\d+);(\d+);(\d+)([mM])")
_CSI = re.compile(r"\x1b\[[0-9;?]*[@-~]")
_SS3 = re.compile(r"\x1bO[@-~]")

_CSI_KEYS = {"A": "up", "B": "down", "C": "right", "D": "left", "H": "home", "F": "end"}
_CONTROL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\t": "tab",
    "\x03": "ctrl_c",
    "\x04": "ctrl_d",
}


def decode_keys(data: str) -> List[Event]:
    """Translate a chunk of terminal input into KeyPress/PointerEvent events."""
    events: List[Event] = []
    i = 0
    while i < len(data):
        ch = data[i]
        if ch == "\x1b":
            mouse = _SGR_MOUSE.match(data, i)
            if mouse:
                events.append(_mouse_event(mouse))
                i = mouse.end()
                continue
            seq = _CSI.match(data, i) or _SS3.match(data, i)
            if seq:
                key = _CSI_KEYS.get(seq.group()[-1])
                if key:
                    events.append(KeyPress(key))
                i = seq.end()
                continue
            events.append(KeyPress("esc"))
            i += 1
            continue
        if ch in _CONTROL_KEYS:
            events.append(KeyPress(_CONTROL_KEYS[ch]))
        elif ch.isprintable():
            events.append(KeyPress(ch))
        i += 1
    return events


def _mouse_event(match: re.Match) -> PointerEvent:
    button, x, y, final = match.groups()
    code = int(button)
    if code == 64:
        kind = "scroll_up"
    elif code == 65:
        kind = "scroll_down"
    elif final == "M":
        kind = "press"
    else:
        kind = "release"
    return PointerEvent(kind=kind, x=int(x), y=int(y))


class KeyboardInput:
    """Context manager wiring stdin and SIGWINCH into the event bus."""

    def __init__(self, bus: EventBus, stream: Optional[TextIO] = None, mouse: bool = True):
        self.bus = bus
        self.stream = stream or sys.stdin
        self.mouse = mouse
        self.fd = self.stream.fileno()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="ignore")
        self._old_settings = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def __enter__(self) -> "KeyboardInput":
        import termios
        import tty

        if os.isatty(self.fd):
            self._old_settings = termios.tcgetattr(self.fd)
            tty.setcbreak(self.fd)
            if self.mouse:
                sys.stdout.write(MOUSE_ON)
                sys.stdout.flush()

        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(self.fd, self._on_readable)
        try:
            self._loop.add_signal_handler(signal.SIGWINCH, self._on_resize)
        except (NotImplementedError, RuntimeError, AttributeError):
            logger.debug("SIGWINCH not available; resize events disabled")
        self._on_resize()
        return self

    def __exit__(self, *args) -> None:
        import termios

        if self._loop:
            self._loop.remove_reader(self.fd)
            try:
                self._loop.remove_signal_handler(signal.SIGWINCH)
            except (NotImplementedError, RuntimeError, AttributeError):
                pass
        if self._old_settings is not None:
            if self.mouse:
                sys.stdout.write(MOUSE_OFF)
                sys.stdout.flush()
            termios.tcsetattr(self.fd, termios.TCSADRAIN, self._old_settings)
            self._old_settings = None

    def _on_readable(self) -> None:
        try:
            raw = os.read(self.fd, 1024)
        except (InterruptedError, BlockingIOError):
            return
        except OSError as e:
            logger.error("stdin read failed: %s", e)
            self._loop.remove_reader(self.fd)
            return
        if not raw:
            # EOF: nothing more will arrive, treat it as a quit request.
            self._loop.remove_reader(self.fd)
            self.bus.post(KeyPress("ctrl_c"))
            return
        for event in decode_keys(self._decoder.decode(raw)):
            self.bus.post(event)

    def _on_resize(self) -> None:
        size = shutil.get_terminal_size(fallback=(100, 30))
        self.bus.post(Resize(columns=size.columns, rows=size.lines))


__all__ = ["KeyboardInput", "decode_keys"]
