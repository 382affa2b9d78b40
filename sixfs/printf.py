"""Minimal printf-style formatting for %d, %x, %p, %s (and %c in user space)."""

from __future__ import annotations

UPPER_DIGITS = "0123456789ABCDEF"
LOWER_DIGITS = "0123456789abcdef"


def format_int(value, base=10, signed=True, digits=LOWER_DIGITS):
    """Render ``value`` as a 32-bit integer in ``base``."""
    if not 2 <= base <= len(digits):
        raise ValueError(f"base {base} is not supported")
    x = int(value) & 0xFFFFFFFF
    negative = signed and bool(x & 0x80000000)
    if negative:
        x = (1 << 32) - x
    out = []
    while True:
        x, rem = divmod(x, base)
        out.append(digits[rem])
        if not x:
            break
    if negative:
        out.append("-")
    return "".join(reversed(out))


def _char(arg) -> str:
    if isinstance(arg, str):
        return arg[:1]
    return chr(int(arg) & 0xFF)


def _format(fmt: str, args: tuple, digits: str, with_char: bool) -> str:
    values = iter(args)

    def take():
        try:
            return next(values)
        except StopIteration:
            raise TypeError("not enough arguments for format string") from None

    out = []
    chars = iter(fmt)
    for c in chars:
        if c != "%":
            out.append(c)
            continue
        c = next(chars, "")
        if not c:
            break
        if c == "d":
            out.append(format_int(take(), 10, True, digits))
        elif c in "xp":
            out.append(format_int(take(), 16, False, digits))
        elif c == "s":
            s = take()
            out.append("(null)" if s is None else str(s))
        elif c == "c" and with_char:
            out.append(_char(take()))
        elif c == "%":
            out.append("%")
        else:
            out.append("%" + c)
    return "".join(out)


def format_user(fmt, *args):
    """Format as the user-space printf does: upper-case hex, %c supported."""
    return _format(fmt, args, UPPER_DIGITS, with_char=True)


def format_kernel(fmt, *args):
    """Format as the kernel's console printf does: lower-case hex, no %c."""
    if fmt is None:
        raise ValueError("null fmt")
    return _format(fmt, args, LOWER_DIGITS, with_char=False)