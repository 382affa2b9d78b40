"""Console input line discipline and output to a CGA text screen and a serial line."""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Union

from sixfs.kbd import control
from sixfs.printf import format_kernel

BACKSPACE = 0x100
INPUT_BUF = 128
COLS = 80
ROWS = 25
_ATTR = 0x0700  # black on white
_NEWLINE = ord("\n")
_EOF = control("D")


class CgaScreen:
    """An 80x25 text-mode screen held as a list of character cells."""

    def __init__(self):
        self.cells = [0] * (COLS * ROWS)
        self.pos = 0

    def put(self, c):
        """Draw one character, handling newline, backspace and scrolling."""
        pos = self.pos
        if c == _NEWLINE:
            pos += COLS - pos % COLS
        elif c == BACKSPACE:
            if pos > 0:
                pos -= 1
        else:
            self.cells[pos] = (c & 0xFF) | _ATTR
            pos += 1

        if not 0 <= pos <= ROWS * COLS:
            raise RuntimeError("pos under/overflow")

        if pos // COLS >= 24:  # scroll up
            self.cells[0:23 * COLS] = self.cells[COLS:24 * COLS]
            pos -= COLS
            self.cells[pos:24 * COLS] = [0] * (24 * COLS - pos)

        self.pos = pos
        self.cells[pos] = ord(" ") | _ATTR

    def rows(self):
        """Return the text of every row, trailing blanks removed."""
        return [
            "".join(
                chr(cell & 0xFF) if cell & 0xFF else " "
                for cell in self.cells[row * COLS:(row + 1) * COLS]
            ).rstrip()
            for row in range(ROWS)
        ]


def _codes(chars: Union[str, bytes, Iterable[int]]) -> Iterable[int]:
    if isinstance(chars, str):
        return (ord(ch) for ch in chars)
    return iter(chars)


class Console:
    """Line-edited console input with echo to the screen and serial output."""

    def __init__(self, on_procdump: Optional[Callable[[], None]] = None):
        self.screen = CgaScreen()
        self.serial = bytearray()
        self.on_procdump = on_procdump
        self._buf = [0] * INPUT_BUF
        self._r = 0  # read index
        self._w = 0  # write index
        self._e = 0  # edit index

    def put(self, c):
        """Emit one character on the serial line and the screen."""
        if c == BACKSPACE:
            self.serial += b"\b \b"
        else:
            self.serial.append(c & 0xFF)
        self.screen.put(c)

    def interrupt(self, chars):
        """Process typed characters: editing keys, echo and line completion."""
        procdump = False
        for c in _codes(chars):
            if c == control("P"):
                procdump = True
            elif c == control("U"):
                while self._e != self._w and \
                        self._buf[(self._e - 1) % INPUT_BUF] != _NEWLINE:
                    self._e -= 1
                    self.put(BACKSPACE)
            elif c in (control("H"), 0x7F):
                if self._e != self._w:
                    self._e -= 1
                    self.put(BACKSPACE)
            elif c != 0 and self._e - self._r < INPUT_BUF:
                c = _NEWLINE if c == ord("\r") else c & 0xFF
                self._buf[self._e % INPUT_BUF] = c
                self._e += 1
                self.put(c)
                if c in (_NEWLINE, _EOF) or self._e == self._r + INPUT_BUF:
                    self._w = self._e
        if procdump and self.on_procdump is not None:
            self.on_procdump()

    def read(self, n):
        """Read up to ``n`` bytes of completed input, stopping after a newline.

        Control-D ends the read; an empty result means end of file. Raises
        BlockingIOError when no completed input is waiting.
        """
        if n <= 0:
            return b""
        if self._r == self._w:
            raise BlockingIOError("no console input available")
        target = n
        out = bytearray()
        while n > 0 and self._r != self._w:
            c = self._buf[self._r % INPUT_BUF]
            self._r += 1
            if c == _EOF:
                if n < target:
                    # Keep ^D so the next read returns 0 bytes.
                    self._r -= 1
                break
            out.append(c)
            n -= 1
            if c == _NEWLINE:
                break
        return bytes(out)

    def write(self, data):
        """Write every byte of ``data`` and return how many were written."""
        if isinstance(data, str):
            data = data.encode("latin-1")
        for b in data:
            self.put(b & 0xFF)
        return len(data)

    def printf(self, fmt, *args):
        """Format with the kernel printf rules, print, and return the text."""
        text = format_kernel(fmt, *args)
        for ch in text:
            self.put(ord(ch))
        return text