"""Loggers that write build output in the formats a job log expects."""

from __future__ import annotations

import os
import re
import sys
from typing import TextIO, Union

_Data = Union[str, bytes, bytearray]


def _ansi_color(text: str, attributes: str) -> str:
    return f"\033[{attributes}m{text}\033[0m"


def _prompt_symbol() -> str:
    return ">" if os.name == "nt" else "$"


def _as_text(data: _Data) -> str:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8", errors="replace")
    return data


class _DiscardWriter:
    """A text sink that drops everything written to it."""

    def write(self, text: str) -> int:
        return len(text)

    def flush(self) -> None:
        pass


class WriterLogger:
    """A logger that writes formatted lines to a text stream."""

    def __init__(self, writer: TextIO, ansi: bool = False) -> None:
        self.writer = writer
        self.ansi = ansi

    def write(self, data: _Data) -> int:
        """Log raw output as a line and report it fully consumed."""
        self.print(_as_text(data))
        return len(data)

    def print(self, message: str) -> None:
        """Print a line of output."""
        self.writer.write(message + "\n")

    def header(self, message: str) -> None:
        """Print a collapsible section header."""
        self.writer.write(f"~~~ {message}\n")

    def comment(self, message: str) -> None:
        """Print a comment line such as ``# my comment``."""
        line = f"# {message}"
        self.print(_ansi_color(line, "90") if self.ansi else line)

    def error(self, message: str) -> None:
        """Print an error and expand the previous section."""
        line = f"🚨 Error: {message}"
        self.print(_ansi_color(line, "31") if self.ansi else line)
        self.print("^^^ +++")

    def warning(self, message: str) -> None:
        """Print a warning and expand the previous section."""
        line = f"⚠️ Warning: {message}"
        self.print(_ansi_color(line, "33") if self.ansi else line)
        self.print("^^^ +++")

    def prompt(self, message: str) -> None:
        """Print a shell prompt followed by ``message``."""
        symbol = _prompt_symbol()
        if self.ansi:
            symbol = _ansi_color(symbol, "90")
        self.print(f"{symbol} {message}")


def discard_logger() -> WriterLogger:
    """Return a logger that discards every message."""
    return WriterLogger(_DiscardWriter(), ansi=False)


def stderr_logger() -> WriterLogger:
    """Return a colourised logger writing to standard error."""
    return WriterLogger(sys.stderr, ansi=True)


_LINE = re.compile(rb"(?m)^(.*)\r?\n")


class LoggerStreamer:
    """Splits a stream of output into lines and sends each to a logger."""

    def __init__(self, logger: WriterLogger, prefix: str = "") -> None:
        self.logger = logger
        self.prefix = prefix
        self._started = False
        self._buffer = bytearray()
        self._offset = 0

    def write(self, data: _Data) -> int:
        """Buffer ``data`` and log every complete line seen so far."""
        raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        if b"\n" in raw:
            self._started = True
        self._buffer.extend(raw)
        self.output()
        return len(data)

    def output(self) -> None:
        """Log all complete, not yet logged lines in the buffer."""
        if not self._started:
            return
        pending = bytes(self._buffer[self._offset:])
        for match in _LINE.finditer(pending):
            line = match.group(1).decode("utf-8", errors="replace")
            self.logger.print(f"{self.prefix}{line}")
            self._offset += len(match.group(0))

    def close(self) -> None:
        """Log whatever remains in the buffer and empty it."""
        remaining = bytes(self._buffer[self._offset:])
        if remaining:
            text = remaining.decode("utf-8", errors="replace")
            self.logger.print(f"{self.prefix}{text}")
        self._buffer = bytearray()
        self._offset = 0

    def __enter__(self) -> "LoggerStreamer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()