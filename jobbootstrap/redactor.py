"""A stream filter that replaces sensitive values in output."""

from __future__ import annotations

from typing import BinaryIO, Iterable, Union

_Data = Union[str, bytes, bytearray]


class Redactor:
    """Writes data to ``output`` with every needle replaced.

    Matching uses a Boyer-Moore style skip table. The tail of each write is
    held back in case a needle crosses a write boundary, so ``flush`` must be
    called after the last write.
    """

    def __init__(self, output: BinaryIO, replacement: _Data, needles: Iterable[_Data]) -> None:
        self.output = output
        self.replacement = _as_bytes(replacement)
        self._outbuf = bytearray()
        self.reset(needles)

    def reset(self, needles: Iterable[_Data]) -> None:
        """Replace the set of needles and clear any retained output."""
        encoded = [_as_bytes(needle) for needle in needles]
        encoded = [needle for needle in encoded if needle]

        self._minlen = min((len(n) for n in encoded), default=0)
        self._maxlen = max((len(n) for n in encoded), default=0)
        self._offset = self._minlen - 1
        self._outbuf.clear()

        self._skip = [self._minlen] * 256
        self._needles: list[list[bytes]] = [[] for _ in range(256)]
        for needle in encoded:
            for index, byte in enumerate(needle):
                skip = len(needle) - index - 1
                if skip < self._skip[byte]:
                    self._skip[byte] = skip
                if skip == 0:
                    self._needles[byte].append(needle)

    def write(self, data: _Data) -> int:
        """Redact ``data`` and pass through everything known to be safe."""
        raw = _as_bytes(data)
        if not raw:
            return 0

        if self._maxlen == 0:
            self._outbuf.extend(raw)
            self.output.write(bytes(self._outbuf))
            self._outbuf.clear()
            return len(data)

        outbuf = self._outbuf
        size = len(raw)
        cursor = self._offset
        done_to = 0

        while cursor < size:
            byte = raw[cursor]
            skip = self._skip[byte]

            if skip:
                cursor += skip
                confirmed_to = min(cursor - self._maxlen, size)
                if confirmed_to > done_to:
                    outbuf.extend(raw[done_to:confirmed_to])
                    done_to = confirmed_to
                continue

            cursor += 1
            for needle in self._needles[byte]:
                start = cursor - len(needle)
                if start >= 0:
                    candidate = raw[start:cursor]
                elif -start <= len(outbuf):
                    candidate = bytes(outbuf[len(outbuf) + start:]) + raw[:cursor]
                else:
                    continue

                if candidate == needle:
                    if start < 0:
                        del outbuf[len(outbuf) + start:]
                    elif start > done_to:
                        outbuf.extend(raw[done_to:start])
                    outbuf.extend(self.replacement)
                    done_to = cursor
                    cursor += self._minlen - 1
                    break

        # Push line endings through immediately so line-buffered output is not held back.
        for index in range(done_to, size):
            if raw[index] in (0x0D, 0x0A):
                outbuf.extend(raw[done_to:index + 1])
                done_to = index + 1

        if done_to > 0:
            self.output.write(bytes(outbuf))
            self._outbuf = bytearray(raw[done_to:])
        else:
            outbuf.extend(raw)

        self._offset = cursor - size
        return len(data)

    def flush(self) -> None:
        """Write out anything retained for a possible partial match."""
        self.output.write(bytes(self._outbuf))
        self._outbuf.clear()

    def __enter__(self) -> "Redactor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.flush()


def _as_bytes(data: _Data) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)