"""Size-guarded, buffered adapters around arbitrary byte streams.

The codecs never talk to a stream directly. They read through
:class:`SizeGuardedReader` and write through :class:`SizeGuardedWriter`, which

- enforce a byte ceiling per read/write call (raising
  :class:`~bank_transactions.errors.SizeLimitExceeded` instead of continuing),
- buffer I/O in chunks so per-field access does not hit the stream each time,
- translate ``OSError`` from the stream into
  :class:`~bank_transactions.errors.StreamError`.

Sources only need ``read(n) -> bytes``; sinks only need ``write(b)``. Files,
``io.BytesIO`` and ``sys.stdin.buffer`` all qualify. A guard instance belongs
to exactly one call; nothing here is shared or global.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from .config import default_limit
from .errors import SizeLimitExceeded, StreamError, StructuralError
from .logging_setup import get_logger

logger = get_logger("bank_transactions.io_guard")

CHUNK_SIZE = 64 * 1024


def _resolve_limit(limit: int | None) -> int:
    resolved = default_limit() if limit is None else limit
    if resolved <= 0:
        raise ValueError(f"byte limit must be positive, got {resolved}")
    return resolved


def _declared_size(source: Any) -> int | None:
    """Bytes remaining in ``source`` when it can report them cheaply, else ``None``."""

    seekable = getattr(source, "seekable", None)
    if seekable is None:
        return None
    try:
        if not seekable():
            return None
        start = source.tell()
        end = source.seek(0, os.SEEK_END)
        source.seek(start)
    except (OSError, ValueError):
        # io.UnsupportedOperation is both; closed files raise ValueError.
        return None
    return max(0, end - start)


class SizeGuardedReader:
    """Buffered reader that refuses to consume more than ``limit`` bytes."""

    def __init__(self, source: Any, limit: int | None = None, *, chunk_size: int = CHUNK_SIZE):
        self._source = source
        self.limit = _resolve_limit(limit)
        self._chunk_size = max(1, chunk_size)
        self._buffer = bytearray()
        self._start = 0  # index of the first unread byte in ``_buffer``
        self._consumed = 0
        self._pulled = 0
        self._eof = False
        self.declared_size = _declared_size(source)

    @property
    def position(self) -> int:
        """Number of bytes handed out so far (absolute offset of the next byte)."""

        return self._consumed

    def _available(self) -> int:
        return len(self._buffer) - self._start

    def _pull(self, max_bytes: int) -> bytes:
        try:
            data = self._source.read(max_bytes)
        except OSError as exc:
            raise StreamError(f"failed to read from source: {exc}", offset=self._pulled) from exc
        if not data:
            self._eof = True
            return b""
        self._pulled += len(data)
        return data

    def _fill(self, needed: int) -> None:
        """Buffer at least ``needed`` unread bytes unless the source ends first."""

        if self._available() >= needed:
            return
        if self._start:
            del self._buffer[: self._start]
            self._start = 0
        while len(self._buffer) < needed and not self._eof:
            # Never pull past limit + 1: the extra byte is what reveals an overflow.
            room = self.limit + 1 - self._pulled
            if room <= 0:
                break
            want = min(max(self._chunk_size, needed - len(self._buffer)), room)
            self._buffer += self._pull(want)

    def read_exact(self, n: int, what: str = "data") -> bytes:
        """Return exactly ``n`` bytes.

        Raises ``SizeLimitExceeded`` when the read would cross the ceiling and
        ``StructuralError`` (with the offset) when the stream ends early.
        """

        if n < 0:
            raise ValueError("n must be non-negative")
        wanted = self._consumed + n
        if wanted > self.limit:
            raise SizeLimitExceeded(wanted, self.limit)
        self._fill(n)
        available = self._available()
        if available < n:
            raise StructuralError(
                f"unexpected end of stream while reading {what}: "
                f"needed {n} bytes, {available} available",
                offset=self._consumed,
            )
        data = bytes(self._buffer[self._start : self._start + n])
        self._start += n
        self._consumed += n
        return data

    def ensure_available(self, n: int, what: str = "data") -> None:
        """Check that ``n`` more bytes fit the ceiling and the declared size.

        Used before trusting a length prefix, so a corrupt length fails here
        instead of driving an allocation.
        """

        wanted = self._consumed + n
        if wanted > self.limit:
            logger.debug("rejecting %s of %d bytes at offset %d: over limit", what, n, self._consumed)
            raise SizeLimitExceeded(wanted, self.limit)
        if self.declared_size is not None and wanted > self.declared_size:
            logger.debug(
                "rejecting %s of %d bytes at offset %d: source holds %d bytes",
                what,
                n,
                self._consumed,
                self.declared_size,
            )
            raise SizeLimitExceeded(wanted, self.declared_size)

    def at_eof(self) -> bool:
        self._fill(1)
        return self._available() == 0

    def read_all(self) -> bytes:
        """Read the rest of the source, failing once it exceeds the ceiling."""

        while not self._eof:
            room = self.limit + 1 - self._pulled
            if room <= 0:
                break
            self._buffer += self._pull(min(self._chunk_size, room))
        total = self._consumed + self._available()
        if total > self.limit:
            raise SizeLimitExceeded(total, self.limit)
        data = bytes(self._buffer[self._start :])
        self._consumed += len(data)
        self._buffer.clear()
        self._start = 0
        return data


class SizeGuardedWriter:
    """In-memory write buffer that reaches the sink only on :meth:`commit`.

    Callers therefore never observe a truncated output: either everything is
    written or nothing is.
    """

    def __init__(self, sink: Any, limit: int | None = None):
        self._sink = sink
        self.limit = _resolve_limit(limit)
        self._buffer = bytearray()
        self.committed = False

    @property
    def size(self) -> int:
        return len(self._buffer)

    def write(self, data: bytes) -> int:
        total = len(self._buffer) + len(data)
        if total > self.limit:
            raise SizeLimitExceeded(total, self.limit)
        self._buffer += data
        return len(data)

    def commit(self) -> int:
        """Flush the buffered bytes to the sink; return how many were written."""

        if self.committed:
            raise RuntimeError("writer already committed")
        payload = bytes(self._buffer)
        try:
            self._sink.write(payload)
            flush = getattr(self._sink, "flush", None)
            if flush is not None:
                flush()
        except OSError as exc:
            raise StreamError(f"failed to write to sink: {exc}") from exc
        self._buffer.clear()
        self.committed = True
        return len(payload)

    def discard(self) -> None:
        self._buffer.clear()


@contextmanager
def guarded_writer(sink: Any, limit: int | None = None) -> Iterator[SizeGuardedWriter]:
    """Provide an all-or-nothing write scope around ``sink``.

    The buffer is committed when the block exits normally and dropped when it
    raises.
    """

    writer = SizeGuardedWriter(sink, limit)
    try:
        yield writer
    except Exception:
        writer.discard()
        raise
    writer.commit()


__all__ = [
    "CHUNK_SIZE",
    "SizeGuardedReader",
    "SizeGuardedWriter",
    "guarded_writer",
]
