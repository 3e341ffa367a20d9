from __future__ import annotations

import json
import ssl

import httpx
import pytest

from restchain import (
    BufferedBody,
    HTTPXExecutor,
    StreamBody,
    TLSConfig,
    TransportError,
    WireRequest,
    tls_transport,
)


def _request(method: str = "GET", body: bytes | None = None) -> WireRequest:
    return WireRequest(
        method,
        httpx.URL("https://api.example/items"),
        headers=httpx.Headers({"X-Trace": "abc"}),
        body=BufferedBody(body) if body is not None else None,
    )


def test_httpx_executor_maps_request_and_streams_response() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"ok": True})

    executor = HTTPXExecutor(httpx.MockTransport(handler))
    response = executor(_request("POST", b"payload"))

    assert seen[0].method == "POST"
    assert seen[0].headers["X-Trace"] == "abc"
    assert seen[0].content == b"payload"
    assert response.status_code == 201
    assert response.reason_phrase == "Created"
    assert isinstance(response.body, StreamBody)
    assert json.loads(response.body.read()) == {"ok": True}


def test_httpx_transport_errors_become_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    executor = HTTPXExecutor(httpx.MockTransport(handler))

    with pytest.raises(TransportError, match="connection refused") as excinfo:
        executor(_request())
    assert isinstance(excinfo.value.cause, httpx.ConnectError)


def test_connect_timeout_is_applied_separately() -> None:
    seen: list[dict[str, float | None]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.extensions["timeout"])
        return httpx.Response(204)

    executor = HTTPXExecutor(httpx.MockTransport(handler), connect_timeout=1.0)
    executor(_request())

    assert seen[0] == {"connect": 1.0, "read": None, "write": None, "pool": None}


def test_tls_transport_uses_supplied_context() -> None:
    context = ssl.create_default_context()
    transport = tls_transport(TLSConfig(ssl_context=context, max_idle_connections=5))
    try:
        assert isinstance(transport, httpx.HTTPTransport)
    finally:
        transport.close()


def test_executor_with_tls_owns_its_transport() -> None:
    executor = HTTPXExecutor.with_tls(TLSConfig(http2=False, handshake_timeout=3.0))
    try:
        assert isinstance(executor.transport, httpx.HTTPTransport)
    finally:
        executor.close()
