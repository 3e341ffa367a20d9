"""
Request/response dump middleware.

Writes a human-readable HTTP/1.1 rendition of every exchange to a text sink.
Dumping is purely diagnostic: failures while producing a dump are written to
the sink and never abort the call. Errors raised by the inner executor are
written and re-raised unchanged.
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from ..body import ReplayableBody
from ..clients.pipeline import Executor, Middleware, WireRequest, WireResponse
from ..policies import LoggingConfig


class Sink(Protocol):
    def write(self, text: str, /) -> object: ...


class LoggerSink:
    """Sink forwarding each dump to a stdlib logger as a single record."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.DEBUG):
        self._logger = logger or logging.getLogger("restchain.http")
        self._level = level

    def write(self, text: str, /) -> None:
        self._logger.log(self._level, text.rstrip("\n"))


def _header_lines(headers: httpx.Headers) -> list[str]:
    return [
        f"{key.decode(headers.encoding)}: {value.decode(headers.encoding)}"
        for key, value in headers.raw
    ]


def _render(start_line: str, headers: list[str], body: bytes | None) -> str:
    head = "\r\n".join([start_line, *headers]) + "\r\n\r\n"
    if body:
        return head + body.decode("utf-8", errors="replace")
    return head


def dump_request(request: WireRequest, body: bytes | None) -> str:
    target = request.url.raw_path.decode("ascii")
    lines = []
    if "host" not in request.headers:
        lines.append(f"Host: {request.url.netloc.decode('ascii')}")
    lines.extend(_header_lines(request.headers))
    return _render(f"{request.method} {target} HTTP/1.1", lines, body)


def dump_response(response: WireResponse, body: bytes | None) -> str:
    status_line = f"{response.http_version} {response.status_code} {response.reason_phrase}"
    return _render(status_line.rstrip(), _header_lines(response.headers), body)


def logging_middleware(sink: Sink, config: LoggingConfig | None = None) -> Middleware:
    """
    Build a middleware dumping each request and response to `sink`.

    Args:
        sink: Anything with a `write(str)` method: a text stream, or a `LoggerSink`.
            Each message is written with a single call; the sink must tolerate
            concurrent writers when shared between threads.
        config: What to include. Defaults to dumping both bodies, unredacted.
    """
    config = config or LoggingConfig()
    redact = config.redactor

    def middleware(next: Executor) -> Executor:
        def execute(request: WireRequest) -> WireResponse:
            try:
                body: bytes | None = None
                if config.dump_request_body and request.body is not None:
                    buffered = ReplayableBody.from_stream(request.body)
                    request = request.clone(body=buffered.open())
                    body = buffered.data
                sink.write(f"=== Request ===\n{redact(dump_request(request, body))}\n")
            except Exception as e:
                sink.write(f"=== Request Dump Error: {e} ===\n")

            try:
                response = next(request)
            except Exception as e:
                sink.write(f"=== Request Error: {e} ===\n")
                raise

            try:
                body = None
                if config.dump_response_body:
                    buffered = ReplayableBody.from_stream(response.body)
                    response = response.with_body(buffered.open())
                    body = buffered.data
                sink.write(f"=== Response ===\n{redact(dump_response(response, body))}\n")
            except Exception as e:
                sink.write(f"=== Response Dump Error: {e} ===\n")
            return response

        return execute

    return middleware
