"""Switching a terminal between line-based and character-at-a-time input."""

from __future__ import annotations

import sys
import termios
from contextlib import contextmanager
from typing import Iterator


@contextmanager
def raw_mode(stream=None) -> Iterator[None]:
    """Turn off echo and line buffering on *stream* until the block ends.

    *stream* is a file descriptor or an object with ``fileno()``; it defaults
    to standard input. Raises OSError if it is not a terminal.
    """
    if stream is None:
        stream = sys.stdin
    fd = stream if isinstance(stream, int) else stream.fileno()
    try:
        saved = termios.tcgetattr(fd)
        attrs = termios.tcgetattr(fd)
    except termios.error as exc:
        raise OSError(f"cannot read terminal attributes: {exc}") from exc
    attrs[3] &= ~(termios.ECHO | termios.ICANON)
    attrs[6][termios.VMIN] = 1
    attrs[6][termios.VTIME] = 0
    termios.tcsetattr(fd, termios.TCSADRAIN, attrs)
    try:
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSANOW, saved)