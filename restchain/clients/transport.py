"""
Terminal executors backed by httpx transports.

`HTTPXExecutor` is the only place where a `WireRequest` meets the network. Any
`httpx.BaseTransport` can sit underneath it: the default pooled transport, a
TLS/HTTP2-configured transport built by `tls_transport`, or an
`httpx.MockTransport` in tests.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass
from typing import Any

import httpx

from ..body import StreamBody
from ..exceptions import TransportError
from .pipeline import WireRequest, WireResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TLSConfig:
    """
    TLS transport settings.

    Attributes:
        ssl_context: Pre-built SSL context (client certificates, pinned CAs, ...).
            Takes precedence over `verify`.
        verify: Verify server certificates (True), skip verification (False), or
            a path to a CA bundle.
        http2: Negotiate HTTP/2 via ALPN when the server supports it.
        handshake_timeout: Seconds allowed for connect + TLS handshake.
        max_idle_connections: Idle (keep-alive) connections kept in the pool.
        idle_connection_timeout: Seconds an idle connection is kept before closing.
    """

    ssl_context: ssl.SSLContext | None = None
    verify: bool | str = True
    http2: bool = True
    handshake_timeout: float | None = 10.0
    max_idle_connections: int = 100
    idle_connection_timeout: float = 90.0


def default_transport() -> httpx.HTTPTransport:
    return httpx.HTTPTransport()


def tls_transport(config: TLSConfig | None = None) -> httpx.HTTPTransport:
    """Build an `httpx.HTTPTransport` configured for TLS and (optionally) HTTP/2."""
    config = config or TLSConfig()
    verify: ssl.SSLContext | bool | str = (
        config.ssl_context if config.ssl_context is not None else config.verify
    )
    return httpx.HTTPTransport(
        verify=verify,
        http2=config.http2,
        limits=httpx.Limits(
            max_keepalive_connections=config.max_idle_connections,
            keepalive_expiry=config.idle_connection_timeout,
        ),
    )


class HTTPXExecutor:
    """
    Terminal executor performing the exchange over an httpx transport.

    The response body is left unread: it is exposed as a `StreamBody`, and
    whoever ends up holding the response is responsible for closing it.
    """

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        *,
        connect_timeout: float | None = None,
    ):
        self._transport = transport if transport is not None else default_transport()
        self._connect_timeout = connect_timeout

    @classmethod
    def with_tls(cls, config: TLSConfig | None = None) -> HTTPXExecutor:
        config = config or TLSConfig()
        return cls(tls_transport(config), connect_timeout=config.handshake_timeout)

    @property
    def transport(self) -> httpx.BaseTransport:
        return self._transport

    def _extensions(self, request: WireRequest) -> dict[str, Any]:
        if request.timeout is None and self._connect_timeout is None:
            return {}
        timeout = httpx.Timeout(request.timeout)
        if self._connect_timeout is not None:
            timeout = httpx.Timeout(request.timeout, connect=self._connect_timeout)
        return {"timeout": timeout.as_dict()}

    def __call__(self, request: WireRequest) -> WireResponse:
        content = request.body.read() if request.body is not None else None
        http_request = httpx.Request(
            request.method,
            request.url,
            headers=request.headers,
            content=content,
            extensions=self._extensions(request),
        )
        try:
            http_response = self._transport.handle_request(http_request)
        except httpx.TransportError as e:
            logger.debug("Transport error for %s %s: %s", request.method, request.url, e)
            raise TransportError(f"{request.method} {request.url}: {e}", cause=e) from e

        return WireResponse(
            status_code=http_response.status_code,
            headers=http_response.headers,
            body=StreamBody(http_response),
            reason_phrase=http_response.reason_phrase,
            http_version=http_response.http_version,
            request=request,
        )

    def close(self) -> None:
        self._transport.close()
