"""
Body streams used by wire requests and responses.

Bodies are file-like objects exposing `read(size)` and `close()`. Two concrete
kinds exist: `StreamBody` reads lazily from a live transport response, and
`BufferedBody` is an in-memory cursor obtained from a `ReplayableBody`, which
owns an immutable byte buffer and can hand out any number of fresh cursors.
"""

from __future__ import annotations

import io
from collections.abc import Iterator
from contextlib import suppress
from typing import Protocol, runtime_checkable

import httpx

from .exceptions import ResponseClosedError, TransportError


@runtime_checkable
class BodyStream(Protocol):
    def read(self, size: int = -1) -> bytes: ...

    def close(self) -> None: ...


class BufferedBody:
    """Read cursor over an in-memory buffer."""

    def __init__(self, data: bytes):
        self._buffer = io.BytesIO(data)

    @property
    def closed(self) -> bool:
        return self._buffer.closed

    def read(self, size: int = -1) -> bytes:
        if self._buffer.closed:
            raise ResponseClosedError("body is closed")
        return self._buffer.read(size)

    def close(self) -> None:
        self._buffer.close()


class ReplayableBody:
    """
    Immutable byte buffer that can be read any number of times.

    Each call to `open()` returns an independent cursor positioned at the start,
    so consumers never observe a partially-read or exhausted body.
    """

    __slots__ = ("_data",)

    def __init__(self, data: bytes):
        self._data = bytes(data)

    @classmethod
    def from_stream(cls, stream: BodyStream) -> ReplayableBody:
        """
        Read `stream` to the end and close it.

        A close error is raised only when the read itself succeeded.
        """
        try:
            data = stream.read()
        except BaseException:
            with suppress(Exception):
                stream.close()
            raise
        stream.close()
        return cls(data)

    @property
    def data(self) -> bytes:
        return self._data

    def open(self) -> BufferedBody:
        return BufferedBody(self._data)

    def __len__(self) -> int:
        return len(self._data)


class StreamBody:
    """
    Lazy body reading from a live `httpx.Response`.

    `read(size)` returns at most `size` bytes and never merges bytes from two
    different transport chunks into a single read.
    """

    def __init__(self, response: httpx.Response):
        self._response = response
        self._chunks: Iterator[bytes] | None = None
        self._pending = b""
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _next_chunk(self) -> bytes:
        if self._chunks is None:
            self._chunks = self._response.iter_bytes()
        try:
            for chunk in self._chunks:
                if chunk:
                    return chunk
        except httpx.TransportError as e:
            raise TransportError(f"error reading response body: {e}", cause=e) from e
        return b""

    def read(self, size: int = -1) -> bytes:
        if self._closed:
            raise ResponseClosedError("body is closed")
        if size is None or size < 0:
            parts = [self._pending]
            self._pending = b""
            while chunk := self._next_chunk():
                parts.append(chunk)
            return b"".join(parts)
        if not self._pending:
            self._pending = self._next_chunk()
        out, self._pending = self._pending[:size], self._pending[size:]
        return out

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._pending = b""
        self._response.close()
