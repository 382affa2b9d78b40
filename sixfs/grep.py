"""A small grep supporting the ^ . * $ operators."""

from __future__ import annotations

import sys
from typing import Iterator, TextIO

BUF_SIZE = 1024


def match(regex: str, text: str) -> bool:
    """Search for ``regex`` anywhere in ``text``."""
    if regex.startswith("^"):
        return match_here(regex[1:], text)
    return any(match_here(regex, text[i:]) for i in range(len(text) + 1))


def match_here(regex: str, text: str) -> bool:
    """Search for ``regex`` at the beginning of ``text``."""
    while True:
        if not regex:
            return True
        if len(regex) > 1 and regex[1] == "*":
            return match_star(regex[0], regex[2:], text)
        if regex == "$":
            return text == ""
        if text and (regex[0] == "." or regex[0] == text[0]):
            regex, text = regex[1:], text[1:]
            continue
        return False


def match_star(c: str, regex: str, text: str) -> bool:
    """Search for ``c*regex`` at the beginning of ``text``."""
    i = 0
    while True:
        if match_here(regex, text[i:]):
            return True
        if i < len(text) and (text[i] == c or c == "."):
            i += 1
            continue
        return False


def grep(pattern: str, stream: TextIO) -> Iterator[str]:
    """Yield the newline-terminated lines of ``stream`` that match ``pattern``.

    Input is read through a fixed buffer: a final line without a newline is
    not reported, and a buffer full of text with no newline is discarded.
    """
    pending = ""
    while chunk := stream.read(BUF_SIZE - 1 - len(pending)):
        pending += chunk
        *lines, rest = pending.split("\n")
        for line in lines:
            if match(pattern, line):
                yield line + "\n"
        pending = rest if lines else ""


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("usage: grep pattern [file ...]", file=sys.stderr)
        return 1
    pattern, *paths = args
    if not paths:
        sys.stdout.writelines(grep(pattern, sys.stdin))
        return 0
    for path in paths:
        try:
            stream = open(path, encoding="latin-1", newline="")
        except OSError:
            print(f"grep: cannot open {path}")
            return 1
        with stream:
            sys.stdout.writelines(grep(pattern, stream))
    return 0