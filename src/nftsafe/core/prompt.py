"""Bounded single-key terminal input.

A terminal is switched to cbreak mode so a single keystroke is returned
without waiting for Enter. Non-terminal input (pipes, test streams) is read
as one line. Either way the wait is bounded with select().
"""

import os
import select
import sys
import termios
import tty
from typing import Optional, TextIO


# Upper bound for one non-terminal read
_PIPE_READ_SIZE = 1024


def read_key(*, timeout: float, stream: Optional[TextIO] = None) -> Optional[str]:
    """Read one answer from ``stream`` within ``timeout`` seconds.

    Args:
        timeout: Seconds to wait
        stream: Input stream (defaults to stdin)

    Returns:
        On a terminal, the single character typed. Otherwise the first line
        of input without its line ending (which may be empty or longer than
        one character). None on timeout or end of input.
    """
    stream = stream if stream is not None else sys.stdin
    fd = stream.fileno()

    if not os.isatty(fd):
        return _read_line(fd, timeout)

    saved = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        ready, _, _ = select.select([fd], [], [], timeout)
        if not ready:
            return None
        data = os.read(fd, 1)
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)

    if not data:
        return None
    return data.decode(errors="replace")


def _read_line(fd: int, timeout: float) -> Optional[str]:
    ready, _, _ = select.select([fd], [], [], timeout)
    if not ready:
        return None

    data = os.read(fd, _PIPE_READ_SIZE)
    if not data:
        return None

    line = data.decode(errors="replace").split("\n", 1)[0]
    return line.rstrip("\r")
