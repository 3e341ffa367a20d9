"""
Request pipeline primitives.

restchain models wire requests/responses independently of the underlying HTTP
transport so cross-cutting behavior (retry, logging, header injection) can be
implemented as middleware. An executor performs one request/response exchange;
a middleware turns one executor into another with the same call signature.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass, field, replace
from typing import Protocol, TypeAlias

import httpx

from ..body import BodyStream, BufferedBody
from ..context import Context


@dataclass(slots=True)
class WireRequest:
    method: str
    url: httpx.URL
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: BodyStream | None = None
    context: Context = field(default_factory=Context.background)
    timeout: float | None = None

    def clone(self, *, body: BodyStream | None = None) -> WireRequest:
        """
        Copy this request with its own header map.

        When `body` is given it replaces the current body stream; otherwise the
        clone shares the (single-use) stream of the original.
        """
        return replace(
            self,
            headers=self.headers.copy(),
            body=body if body is not None else self.body,
        )


@dataclass(slots=True)
class WireResponse:
    status_code: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: BodyStream = field(default_factory=lambda: BufferedBody(b""))
    reason_phrase: str = ""
    http_version: str = "HTTP/1.1"
    request: WireRequest | None = None

    def with_body(self, body: BodyStream) -> WireResponse:
        return replace(self, body=body)


class Executor(Protocol):
    def __call__(self, request: WireRequest) -> WireResponse: ...


Middleware: TypeAlias = Callable[[Executor], Executor]


class FunctionExecutor:
    """Adapter allowing a plain function to be used wherever an `Executor` is expected."""

    __slots__ = ("_fn",)

    def __init__(self, fn: Callable[[WireRequest], WireResponse]):
        self._fn = fn

    def __call__(self, request: WireRequest) -> WireResponse:
        return self._fn(request)


def chain(terminal: Executor, *middlewares: Middleware) -> Executor:
    """
    Wrap `terminal` with `middlewares`.

    The first middleware is the outermost: it sees the request first and the
    response last. The last middleware sits directly in front of `terminal`.
    """
    executor = terminal
    for middleware in reversed(middlewares):
        executor = middleware(executor)
    return executor


def drain_and_close(response: WireResponse) -> None:
    """Discard whatever is left of the response body and close it."""
    with suppress(Exception):
        response.body.read()
    with suppress(Exception):
        response.body.close()
