"""
HTTP client.

Ties the pieces together: builds wire requests, runs them through the
middleware chain around a terminal executor, and returns response handles
either fully buffered (`do`) or live for manual streaming (`do_stream`), with
thread-backed async variants of both.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import Future
from dataclasses import dataclass, field, replace
from functools import partial
from typing import Any

import httpx

from .body import ReplayableBody
from .clients.pipeline import (
    Executor,
    Middleware,
    WireRequest,
    WireResponse,
    chain,
    drain_and_close,
)
from .clients.transport import HTTPXExecutor
from .context import Context
from .dispatch import AsyncResult, dispatch_async, dispatch_group
from .dispatch import join as join_results
from .exceptions import TooManyRedirectsError, TransportError
from .request import Request
from .response import Response

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """
    Client configuration.

    Attributes:
        transport: httpx transport used by the default terminal executor. When
            omitted a pooled `httpx.HTTPTransport` is created and owned by the client.
        executor: Caller-supplied terminal executor; overrides `transport`.
        middlewares: Applied around the terminal executor, first = outermost.
        timeout: Per-request timeout in seconds handed to the transport.
        auto_buffer: Whether `do` reads the whole body into memory before returning.
        default_headers: Sent with every request unless the request sets them.
        follow_redirects: Whether 3xx responses carrying a `Location` are followed.
            Each hop runs through the full middleware chain.
        max_redirects: Redirects followed before `TooManyRedirectsError` is raised.
    """

    transport: httpx.BaseTransport | None = None
    executor: Executor | None = None
    middlewares: Sequence[Middleware] = ()
    timeout: float | None = 30.0
    auto_buffer: bool = True
    default_headers: Mapping[str, str] = field(default_factory=dict)
    follow_redirects: bool = True
    max_redirects: int = 10


class Client:
    """
    Synchronous HTTP client with a middleware pipeline.

    Example:
        ```python
        from restchain import Client, Request, retry_middleware

        with Client(middlewares=[retry_middleware(3, 0.5)]) as client:
            response = client.get("https://api.example.com/status")
            print(response.read_json())
        ```
    """

    def __init__(self, config: ClientConfig | None = None, **overrides: Any):
        config = config or ClientConfig()
        if overrides:
            config = replace(config, **overrides)
        self._config = config

        self._owned: HTTPXExecutor | None = None
        terminal: Executor
        if config.executor is not None:
            terminal = config.executor
        else:
            self._owned = HTTPXExecutor(config.transport)
            terminal = self._owned
        self._executor = chain(terminal, *config.middlewares)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def executor(self) -> Executor:
        """The fully decorated executor (middlewares + terminal)."""
        return self._executor

    def __enter__(self) -> Client:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the transport if the client created it."""
        if self._owned is not None:
            self._owned.close()

    # =========================================================================
    # Synchronous calls
    # =========================================================================

    def _send(self, request: Request, context: Context | None) -> WireResponse:
        wire = request.build(context=context, timeout=self._config.timeout)
        for key, value in self._config.default_headers.items():
            if key not in wire.headers:
                wire.headers[key] = value
        if not self._config.follow_redirects:
            logger.debug("Dispatching %s %s", wire.method, wire.url)
            return self._executor(wire)

        buffered = ReplayableBody.from_stream(wire.body) if wire.body is not None else None
        for _ in range(self._config.max_redirects + 1):
            hop = wire.clone(body=buffered.open() if buffered is not None else None)
            logger.debug("Dispatching %s %s", hop.method, hop.url)
            response = self._executor(hop)
            location = response.headers.get("Location")
            if response.status_code not in REDIRECT_STATUSES or not location:
                return response
            drain_and_close(response)
            wire = _redirect_request(wire, response.status_code, location)
            if wire.body is None:
                buffered = None
        raise TooManyRedirectsError(self._config.max_redirects)

    def do(self, request: Request, context: Context | None = None) -> Response:
        """
        Send `request` and return its response.

        With `auto_buffer` enabled (the default) the body is read completely and
        the live connection released before returning; the returned handle reads
        from an in-memory copy with status and headers preserved verbatim.

        Raises:
            BuildError: If the request cannot be built.
            RestChainError: Whatever the middleware chain or transport raises.
        """
        wire = self._send(request, context)
        if not self._config.auto_buffer:
            return Response(wire)
        buffered = ReplayableBody.from_stream(wire.body)
        return Response(wire.with_body(buffered.open()))

    def do_stream(self, request: Request, context: Context | None = None) -> Response:
        """Send `request` and return a live response. The caller must close it."""
        return Response(self._send(request, context))

    def get(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        *,
        context: Context | None = None,
    ) -> Response:
        return self.do(Request("GET", url).with_headers(headers), context)

    def post(
        self,
        url: str,
        body: bytes | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        context: Context | None = None,
    ) -> Response:
        req = Request("POST", url).with_headers(headers)
        if body is not None:
            req.with_body(body)
        return self.do(req, context)

    # =========================================================================
    # Asynchronous calls
    # =========================================================================

    def do_async(self, request: Request, context: Context | None = None) -> Future[AsyncResult]:
        return dispatch_async(lambda: self.do(request, context))

    def do_stream_async(
        self, request: Request, context: Context | None = None
    ) -> Future[AsyncResult]:
        return dispatch_async(lambda: self.do_stream(request, context))

    def do_group_async(
        self, *requests: Request, context: Context | None = None
    ) -> Future[list[AsyncResult]]:
        """Send every request concurrently; results come back in argument order."""
        return dispatch_group(*(partial(self.do, req, context) for req in requests))

    def join(self, *futures: Future[AsyncResult]) -> Future[list[AsyncResult]]:
        return join_results(*futures)

    def get_async(
        self,
        url: str,
        headers: Mapping[str, str] | None = None,
        *,
        context: Context | None = None,
    ) -> Future[AsyncResult]:
        return self.do_async(Request("GET", url).with_headers(headers), context)

    def post_async(
        self,
        url: str,
        body: bytes | None = None,
        headers: Mapping[str, str] | None = None,
        *,
        context: Context | None = None,
    ) -> Future[AsyncResult]:
        req = Request("POST", url).with_headers(headers)
        if body is not None:
            req.with_body(body)
        return self.do_async(req, context)


def _redirect_request(wire: WireRequest, status_code: int, location: str) -> WireRequest:
    """
    Build the follow-up request for a redirect response.

    303 turns anything but HEAD into a bodiless GET, and 301/302 do the same
    for POST. 307 and 308 keep the method and body. Credentials are dropped
    when the redirect leaves the original host.
    """
    try:
        url = wire.url.join(location)
    except httpx.InvalidURL as e:
        raise TransportError(f"invalid redirect location {location!r}: {e}", cause=e) from e

    method = wire.method
    if (status_code == 303 and method != "HEAD") or (
        status_code in (301, 302) and method == "POST"
    ):
        method = "GET"

    headers = wire.headers.copy()
    body = wire.body
    if method != wire.method:
        body = None
        for name in ("Content-Length", "Content-Type", "Transfer-Encoding"):
            headers.pop(name, None)
    if url.host != wire.url.host:
        for name in ("Authorization", "Host"):
            headers.pop(name, None)
    return replace(wire, method=method, url=url, headers=headers, body=body)
