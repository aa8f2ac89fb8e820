"""Interactive output helpers."""

from __future__ import annotations

import os
import shlex
import subprocess
import sys
import termios
from contextlib import contextmanager
from typing import IO, Iterator

DEFAULT_PAGER = "less -R"


@contextmanager
def preserved_terminal(stream: IO[str] | None = None) -> Iterator[None]:
    """Restore the terminal attributes of ``stream`` however the block exits."""
    stream = stream or sys.stdin
    if not stream.isatty():
        yield
        return
    fd = stream.fileno()
    saved = termios.tcgetattr(fd)
    try:
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def page_text(text: str, *, out: IO[str] | None = None) -> int:
    out = out or sys.stdout
    if not out.isatty():
        out.write(text + "\n")
        return 0
    command = shlex.split(os.environ.get("PAGER") or DEFAULT_PAGER)
    try:
        with preserved_terminal():
            subprocess.run(command, input=text + "\n", text=True, check=False)
    except KeyboardInterrupt:
        return 0
    except FileNotFoundError:
        out.write(text + "\n")
    return 0


__all__ = ["page_text", "preserved_terminal"]
