"""Synchronous in-process byte pipe used to stream request bodies.

A :class:`BodyPipe` connects one producing thread (the *writer* end) with one
consuming thread (the *reader* end). Every write hands its bytes over directly
and blocks until the reader has taken all of them, so at most one write buffer
is alive at any time.

Closing the writer with an error *poisons* the pipe: the reader no longer sees
a clean end of stream but a :class:`ClosedPipeError` chained to that error.
Closing the reader makes pending and future writes fail, which is how a
consumer that gave up releases a blocked producer.
"""
from __future__ import annotations

import threading
from typing import Iterator, Optional


class ClosedPipeError(OSError):
    """Raised on a read or write against a closed or poisoned pipe."""


class ErrorCell:
    """Hold the first error reported to it; later reports are ignored."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._error: Optional[BaseException] = None

    def set(self, error: Optional[BaseException]) -> bool:
        """Store *error* if nothing was stored yet. Return True if it was kept."""

        if error is None:
            return False
        with self._lock:
            if self._error is not None:
                return False
            self._error = error
            return True

    @property
    def error(self) -> Optional[BaseException]:
        with self._lock:
            return self._error

    def __bool__(self) -> bool:
        return self.error is not None


class BodyPipe:
    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._write_lock = threading.Lock()
        self._pending: Optional[memoryview] = None
        self._write_closed = False
        self._write_error: Optional[BaseException] = None
        self._read_closed = False
        self.reader = PipeReader(self)
        self.writer = PipeWriter(self)

    def _write(self, data: bytes) -> int:
        if not data:
            return 0
        with self._write_lock, self._cond:
            if self._write_closed:
                raise ClosedPipeError("write on closed pipe")
            if self._read_closed:
                raise ClosedPipeError("write on pipe whose read end is closed")
            self._pending = memoryview(bytes(data))
            self._cond.notify_all()
            while self._pending is not None and not self._read_closed:
                self._cond.wait()
            if self._pending is not None:
                self._pending = None
                raise ClosedPipeError("read end closed before the data was consumed")
            return len(data)

    def _read(self, size: int = -1) -> bytes:
        with self._cond:
            while self._pending is None and not self._write_closed and not self._read_closed:
                self._cond.wait()
            if self._read_closed:
                raise ClosedPipeError("read on closed pipe")
            if self._write_error is not None:
                raise ClosedPipeError(f"pipe closed by writer: {self._write_error}") from self._write_error
            if self._pending is None:
                return b""
            if size is None or size < 0 or size >= len(self._pending):
                chunk, self._pending = self._pending, None
            else:
                chunk, self._pending = self._pending[:size], self._pending[size:]
            if self._pending is None:
                self._cond.notify_all()
            return chunk.tobytes()

    def _close_writer(self, error: Optional[BaseException]) -> None:
        with self._cond:
            if not self._write_closed:
                self._write_closed = True
                self._write_error = error
            self._cond.notify_all()

    def _close_reader(self) -> None:
        with self._cond:
            self._read_closed = True
            self._cond.notify_all()


class PipeReader:
    """Read end of a :class:`BodyPipe`; usable as a streaming request body."""

    def __init__(self, pipe: BodyPipe) -> None:
        self._pipe = pipe

    def read(self, size: int = -1) -> bytes:
        return self._pipe._read(size)

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read()
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        self._pipe._close_reader()


class PipeWriter:
    def __init__(self, pipe: BodyPipe) -> None:
        self._pipe = pipe

    def write(self, data: bytes) -> int:
        return self._pipe._write(data)

    def close(self, error: Optional[BaseException] = None) -> None:
        """Close the write end; a non-None *error* poisons subsequent reads."""

        self._pipe._close_writer(error)


__all__ = ["BodyPipe", "ClosedPipeError", "ErrorCell", "PipeReader", "PipeWriter"]
