"""
Response handle.

A `Response` either owns a live body streamed from the transport (the
`Client.do_stream` path, caller closes it) or a replayable in-memory copy (the
buffered `Client.do` path). The read-fully helpers consume the body once and
close it; the chunked helpers leave closing to the caller.
"""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Iterator
from contextlib import suppress
from types import TracebackType
from typing import Any, TypeVar, overload

import httpx
from pydantic import TypeAdapter

from .body import BodyStream, BufferedBody
from .clients.pipeline import WireResponse

DEFAULT_CHUNK_SIZE = 4096
_COPY_CHUNK_SIZE = 64 * 1024

T = TypeVar("T")


class Response:
    def __init__(self, wire: WireResponse):
        self._wire = wire

    @property
    def wire(self) -> WireResponse:
        return self._wire

    @property
    def status_code(self) -> int:
        return self._wire.status_code

    @property
    def reason_phrase(self) -> str:
        return self._wire.reason_phrase

    @property
    def http_version(self) -> str:
        return self._wire.http_version

    @property
    def headers(self) -> httpx.Headers:
        return self._wire.headers

    @property
    def body(self) -> BodyStream:
        return self._wire.body

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    @property
    def is_buffered(self) -> bool:
        return isinstance(self._wire.body, BufferedBody)

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"

    # =========================================================================
    # Read-fully operations (single use, close the body)
    # =========================================================================

    def _consume(self, reader: Callable[[BodyStream], T]) -> T:
        try:
            result = reader(self.body)
        except BaseException:
            with suppress(Exception):
                self.close()
            raise
        self.close()
        return result

    def read_bytes(self) -> bytes:
        """Read the whole body and close it."""
        return self._consume(lambda body: body.read())

    def read_text(self, encoding: str | None = None) -> str:
        """Read the whole body as text, using the `Content-Type` charset when present."""
        data = self.read_bytes()
        return data.decode(encoding or self._charset() or "utf-8", errors="replace")

    def _charset(self) -> str | None:
        content_type = self.headers.get("Content-Type", "")
        for param in content_type.split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.lower() == "charset" and value:
                return value.strip('"')
        return None

    @overload
    def read_json(self) -> Any: ...

    @overload
    def read_json(self, model: type[T]) -> T: ...

    def read_json(self, model: type[T] | None = None) -> Any:
        """
        Decode the body as JSON and close it.

        Args:
            model: Optional type (pydantic model, dataclass, `list[int]`, ...) to
                validate the decoded value against.

        Raises:
            json.JSONDecodeError: If the body is not valid JSON.
            pydantic.ValidationError: If `model` is given and validation fails.
        """
        data = self._consume(lambda body: json.loads(body.read()))
        if model is None:
            return data
        return TypeAdapter(model).validate_python(data)

    def save_to_file(self, path: str | os.PathLike[str]) -> None:
        """Write the body to `path` (created or truncated) and close it."""

        def copy(body: BodyStream) -> None:
            with open(path, "wb") as fh:
                while chunk := body.read(_COPY_CHUNK_SIZE):
                    fh.write(chunk)

        self._consume(copy)

    # =========================================================================
    # Streaming operations (caller closes)
    # =========================================================================

    def iter_chunks(self, buffer_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the body in reads of at most `buffer_size` bytes. Does not close the body."""
        if buffer_size <= 0:
            buffer_size = DEFAULT_CHUNK_SIZE
        while chunk := self.body.read(buffer_size):
            yield chunk

    def stream_chunks(
        self,
        callback: Callable[[bytes], object],
        buffer_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """
        Pass the body to `callback` in reads of at most `buffer_size` bytes.

        Chunks are delivered in order and never merged across transport reads.
        The body is not closed; call `close()` (or use the response as a context
        manager) when done. A non-positive `buffer_size` falls back to 4096.
        """
        for chunk in self.iter_chunks(buffer_size):
            callback(chunk)

    def close(self) -> None:
        self.body.close()

    def __enter__(self) -> Response:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
