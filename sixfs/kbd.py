"""Translation of PC keyboard scan codes into characters."""

from __future__ import annotations

from typing import Iterable

SHIFT = 1 << 0
CTL = 1 << 1
ALT = 1 << 2
CAPSLOCK = 1 << 3
NUMLOCK = 1 << 4
SCROLLLOCK = 1 << 5
E0ESC = 1 << 6

KEY_HOME = 0xE0
KEY_END = 0xE1
KEY_UP = 0xE2
KEY_DN = 0xE3
KEY_LF = 0xE4
KEY_RT = 0xE5
KEY_PGUP = 0xE6
KEY_PGDN = 0xE7
KEY_INS = 0xE8
KEY_DEL = 0xE9


def control(ch: str) -> int:
    """Code produced by Control plus ``ch``."""
    return (ord(ch) - ord("@")) & 0xFF


_SHIFTCODE = {0x1D: CTL, 0x2A: SHIFT, 0x36: SHIFT, 0x38: ALT, 0x9D: CTL, 0xB8: ALT}
_TOGGLECODE = {0x3A: CAPSLOCK, 0x45: NUMLOCK, 0x46: SCROLLLOCK}

_NAVIGATION = {
    0xC8: KEY_UP, 0xD0: KEY_DN,
    0xC9: KEY_PGUP, 0xD1: KEY_PGDN,
    0xCB: KEY_LF, 0xCD: KEY_RT,
    0x97: KEY_HOME, 0xCF: KEY_END,
    0xD2: KEY_INS, 0xD3: KEY_DEL,
}

_KEYPAD_TAIL = "\x00" * 7 + "789-456+1" + "230." + "\x00" * 4


def _build(low: list[int], extras: dict[int, int]) -> tuple[int, ...]:
    table = low + [0] * (256 - len(low))
    for code, value in {**extras, **_NAVIGATION}.items():
        table[code] = value
    return tuple(table)


_NORMALMAP = _build(
    [ord(c) for c in (
        "\x00\x1b1234567890-=\b\t"
        "qwertyuiop[]\n\x00as"
        "dfghjkl;'`\x00\\zxcv"
        "bnm,./\x00*\x00 " + "\x00" * 6 + _KEYPAD_TAIL
    )],
    {0x9C: ord("\n"), 0xB5: ord("/")},
)

_SHIFTMAP = _build(
    [ord(c) for c in (
        "\x00\x1b!@#$%^&*()_+\b\t"
        "QWERTYUIOP{}\n\x00AS"
        'DFGHJKL:"~\x00|ZXCV'
        "BNM<>?\x00*\x00 " + "\x00" * 6 + _KEYPAD_TAIL
    )],
    {0x9C: ord("\n"), 0xB5: ord("/")},
)

_CTLMAP = _build(
    [0] * 16
    + [control(c) for c in "QWERTYUI"]
    + [control("O"), control("P"), 0, 0, ord("\r"), 0, control("A"), control("S")]
    + [control(c) for c in "DFGHJKL"] + [0]
    + [0, 0, 0, control("\\"), control("Z"), control("X"), control("C"), control("V")]
    + [control("B"), control("N"), control("M"), 0, 0, control("/"), 0, 0],
    {0x9C: ord("\r"), 0xB5: control("/")},
)

_CHARCODE = (_NORMALMAP, _SHIFTMAP, _CTLMAP, _CTLMAP)


class KeyboardDecoder:
    """Tracks modifier state across scan codes and yields character codes."""

    def __init__(self):
        self.state = 0

    def feed(self, data):
        """Process one scan code; return its character code, or 0 for none."""
        if not 0 <= data <= 0xFF:
            raise ValueError(f"scan code {data} is not a byte")
        if data == 0xE0:
            self.state |= E0ESC
            return 0
        if data & 0x80:
            # Key released.
            data = data if self.state & E0ESC else data & 0x7F
            self.state &= ~(_SHIFTCODE.get(data, 0) | E0ESC)
            return 0
        if self.state & E0ESC:
            data |= 0x80
            self.state &= ~E0ESC

        self.state |= _SHIFTCODE.get(data, 0)
        self.state ^= _TOGGLECODE.get(data, 0)
        c = _CHARCODE[self.state & (CTL | SHIFT)][data]
        if self.state & CAPSLOCK:
            ch = chr(c)
            if "a" <= ch <= "z":
                c = ord(ch.upper())
            elif "A" <= ch <= "Z":
                c = ord(ch.lower())
        return c

    def decode(self, scancodes: Iterable[int]) -> list[int]:
        """Feed every scan code and return the character codes produced."""
        return [c for c in map(self.feed, scancodes) if c]