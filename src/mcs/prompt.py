"""
Interactive confirmation for destructive commands.

Answers are read from stdin when it is a terminal, otherwise from the
controlling terminal (/dev/tty). Without either, the confirmation is treated
as declined.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from typing import IO, Iterator, Optional

__all__ = ["confirmation_source", "confirm_word"]

logger = logging.getLogger(__name__)

TTY_PATH = "/dev/tty"


@contextlib.contextmanager
def confirmation_source(stdin: Optional[IO[str]] = None, tty_path: str = TTY_PATH) -> Iterator[Optional[IO[str]]]:
    """
    Yield a readable interactive stream, or None when there is none.
    """
    stream = stdin if stdin is not None else sys.stdin
    if stream is not None and stream.isatty():
        yield stream
        return

    try:
        tty = open(tty_path, "r", encoding="utf-8")
    except OSError as e:
        logger.debug("No controlling terminal available: %s", e)
        yield None
        return
    with tty:
        yield tty


def confirm_word(
    prompt: str,
    expected: str,
    *,
    stdin: Optional[IO[str]] = None,
    out: Optional[IO[str]] = None,
    tty_path: str = TTY_PATH,
) -> bool:
    """
    Ask the user to type `expected`. Any other answer, EOF, or the absence of
    a terminal counts as "no".
    """
    sink = out or sys.stderr
    with confirmation_source(stdin, tty_path) as source:
        if source is None:
            sink.write("No interactive terminal available; refusing to continue.\n")
            return False
        sink.write(prompt)
        sink.flush()
        answer = source.readline()
    return answer.strip() == expected
