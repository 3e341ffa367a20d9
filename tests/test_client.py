from __future__ import annotations

import io
import threading

import httpx
import pytest

from restchain import (
    BuildError,
    Client,
    ClientConfig,
    Context,
    Executor,
    FunctionExecutor,
    Middleware,
    Request,
    RequestCancelledError,
    RetryExhaustedError,
    StreamBody,
    TooManyRedirectsError,
    WireRequest,
    WireResponse,
    logging_middleware,
    retry_middleware,
)


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/json":
        return httpx.Response(200, json={"message": "ok"})
    if request.url.path == "/text":
        return httpx.Response(200, text="Hello, World!")
    if request.url.path == "/echo":
        return httpx.Response(200, content=request.content, headers=request.headers)
    if request.url.path == "/stream":
        return httpx.Response(200, content=iter([b"chunk0\n", b"chunk1\n", b"chunk2\n"]))
    return httpx.Response(404)


def _client(**overrides: object) -> Client:
    return Client(transport=httpx.MockTransport(_handler), **overrides)


def test_get_reads_buffered_response() -> None:
    with _client() as client:
        response = client.get("https://api.example/text", {"X-Test": "value"})

        assert response.status_code == 200
        assert response.is_buffered
        assert response.read_bytes() == b"Hello, World!"


def test_buffered_response_preserves_status_and_headers() -> None:
    with _client() as client:
        response = client.do(Request("GET", "https://api.example/json"))

        assert response.headers["Content-Type"] == "application/json"
        assert response.reason_phrase == "OK"
        assert response.read_json() == {"message": "ok"}


def test_post_echoes_body() -> None:
    with _client() as client:
        response = client.post("https://api.example/echo", b"post data")

        assert response.read_bytes() == b"post data"


def test_do_stream_returns_live_caller_closed_response() -> None:
    with _client() as client:
        response = client.do_stream(Request("GET", "https://api.example/stream"))
        try:
            assert isinstance(response.body, StreamBody)
            chunks: list[bytes] = []
            response.stream_chunks(chunks.append)
            assert b"".join(chunks) == b"chunk0\nchunk1\nchunk2\n"
        finally:
            response.close()


def test_auto_buffer_disabled_returns_live_body() -> None:
    with _client(auto_buffer=False) as client:
        response = client.get("https://api.example/text")

        assert not response.is_buffered
        assert response.read_bytes() == b"Hello, World!"


def test_build_error_is_raised_before_any_exchange() -> None:
    calls: list[WireRequest] = []

    def terminal(request: WireRequest) -> WireResponse:
        calls.append(request)
        return WireResponse(200)

    client = Client(executor=FunctionExecutor(terminal))

    with pytest.raises(BuildError):
        client.do(Request("GET", ""))
    assert calls == []


def test_caller_supplied_executor_replaces_transport() -> None:
    client = Client(
        ClientConfig(executor=FunctionExecutor(lambda request: WireResponse(201))),
    )

    response = client.get("http://dummy")

    assert response.status_code == 201
    assert response.read_bytes() == b""


def test_middlewares_wrap_in_configured_order() -> None:
    def appender(letter: str) -> Middleware:
        def middleware(next: Executor) -> Executor:
            def execute(request: WireRequest) -> WireResponse:
                request.headers["X-Mw"] = request.headers.get("X-Mw", "") + letter
                return next(request)

            return execute

        return middleware

    with _client(middlewares=[appender("A"), appender("B")]) as client:
        response = client.get("https://api.example/echo")

        assert response.headers["X-Mw"] == "AB"


def test_default_headers_do_not_override_request_headers() -> None:
    with _client(default_headers={"User-Agent": "restchain-tests", "X-Env": "ci"}) as client:
        response = client.get("https://api.example/echo", {"X-Env": "local"})

        assert response.headers["User-Agent"] == "restchain-tests"
        assert response.headers["X-Env"] == "local"


def test_timeout_is_handed_to_the_transport() -> None:
    seen: list[dict[str, float | None]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.extensions["timeout"])
        return httpx.Response(204)

    with Client(transport=httpx.MockTransport(handler), timeout=2.5) as client:
        client.get("https://api.example/anything")

    assert seen[0]["read"] == 2.5


def test_retry_and_logging_through_the_client() -> None:
    attempts: list[int] = []

    def flaky(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) < 3:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json={"attempt": len(attempts)})

    sink = io.StringIO()
    client = Client(
        transport=httpx.MockTransport(flaky),
        middlewares=[
            retry_middleware(3, 0, sleep=lambda _: None),
            logging_middleware(sink),
        ],
    )

    response = client.post("https://api.example/jobs", b"job")

    assert response.read_json() == {"attempt": 3}
    assert sink.getvalue().count("=== Request ===") == 3
    assert "HTTP/1.1 503 Service Unavailable" in sink.getvalue()


def test_exhausted_retries_surface_to_the_caller() -> None:
    client = Client(
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        middlewares=[retry_middleware(2, 0, sleep=lambda _: None)],
    )

    with pytest.raises(RetryExhaustedError) as excinfo:
        client.get("https://api.example/broken")
    assert excinfo.value.last_status_code == 500


def test_cancelled_context_skips_the_network() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    client = Client(
        transport=httpx.MockTransport(handler),
        middlewares=[retry_middleware(3, 0, sleep=lambda _: None)],
    )
    ctx = Context()
    ctx.cancel()

    with pytest.raises(RequestCancelledError):
        client.get("https://api.example/anything", context=ctx)
    assert calls == []


def test_do_async_and_stream_async() -> None:
    with _client() as client:
        result = client.get_async("https://api.example/text").result(timeout=5)
        assert result.unwrap().read_bytes() == b"Hello, World!"

        streamed = client.do_stream_async(Request("GET", "https://api.example/stream"))
        with streamed.result(timeout=5).unwrap() as response:
            assert b"".join(response.iter_chunks(3)) == b"chunk0\nchunk1\nchunk2\n"

        posted = client.post_async("https://api.example/echo", b"async body").result(timeout=5)
        assert posted.unwrap().read_bytes() == b"async body"


def test_async_build_error_is_delivered_as_a_value() -> None:
    with _client() as client:
        result = client.do_async(Request("GET", "")).result(timeout=5)

    assert isinstance(result.error, BuildError)
    assert result.response is None


def test_do_group_async_returns_results_in_request_order() -> None:
    slow_release = threading.Event()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/slow":
            assert slow_release.wait(timeout=5)
        if request.url.path == "/fast":
            slow_release.set()
        return httpx.Response(200, text=request.url.path)

    with Client(transport=httpx.MockTransport(handler)) as client:
        results = client.do_group_async(
            Request("GET", "https://api.example/slow"),
            Request("GET", "https://api.example/fast"),
            Request("GET", ""),
        ).result(timeout=5)

    assert results[0].unwrap().read_bytes() == b"/slow"
    assert results[1].unwrap().read_bytes() == b"/fast"
    assert isinstance(results[2].error, BuildError)


def test_join_combines_separately_dispatched_calls() -> None:
    with _client() as client:
        first = client.get_async("https://api.example/json")
        second = client.get_async("https://api.example/missing")
        results = client.join(first, second).result(timeout=5)

    assert [r.unwrap().status_code for r in results] == [200, 404]


def _redirecting(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/old":
        return httpx.Response(302, headers={"Location": "/new"})
    if request.url.path == "/see-other":
        return httpx.Response(303, headers={"Location": "/new"})
    if request.url.path == "/temporary":
        return httpx.Response(307, headers={"Location": "/new"})
    if request.url.path == "/elsewhere":
        return httpx.Response(301, headers={"Location": "https://other.example/new"})
    if request.url.path == "/loop":
        return httpx.Response(302, headers={"Location": "/loop"})
    return httpx.Response(
        200,
        json={
            "method": request.method,
            "host": request.url.host,
            "body": request.content.decode(),
            "auth": request.headers.get("Authorization"),
        },
    )


def test_redirects_are_followed_by_default() -> None:
    with Client(transport=httpx.MockTransport(_redirecting)) as client:
        response = client.get("https://api.example/old")

        assert response.status_code == 200
        assert response.read_json()["method"] == "GET"


def test_redirect_hops_each_run_the_middleware_chain() -> None:
    sink = io.StringIO()
    client = Client(
        transport=httpx.MockTransport(_redirecting),
        middlewares=[logging_middleware(sink)],
    )

    client.get("https://api.example/old")

    assert sink.getvalue().count("=== Request ===") == 2
    assert "GET /old HTTP/1.1" in sink.getvalue()
    assert "GET /new HTTP/1.1" in sink.getvalue()


def test_see_other_switches_to_bodiless_get() -> None:
    with Client(transport=httpx.MockTransport(_redirecting)) as client:
        response = client.post("https://api.example/see-other", b"payload")

        assert response.read_json()["method"] == "GET"


def test_temporary_redirect_resends_method_and_body() -> None:
    with Client(transport=httpx.MockTransport(_redirecting)) as client:
        response = client.post("https://api.example/temporary", b"payload")

        data = response.read_json()
        assert data["method"] == "POST"
        assert data["body"] == "payload"


def test_cross_host_redirect_drops_credentials() -> None:
    with Client(transport=httpx.MockTransport(_redirecting)) as client:
        response = client.get("https://api.example/elsewhere", {"Authorization": "Bearer t"})

        data = response.read_json()
        assert data["host"] == "other.example"
        assert data["auth"] is None


def test_redirect_loop_is_cut_off() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return _redirecting(request)

    with Client(transport=httpx.MockTransport(handler), max_redirects=3) as client:
        with pytest.raises(TooManyRedirectsError, match="stopped after 3 redirects"):
            client.get("https://api.example/loop")

    assert len(calls) == 4


def test_redirects_can_be_disabled() -> None:
    with Client(transport=httpx.MockTransport(_redirecting), follow_redirects=False) as client:
        response = client.get("https://api.example/old")

        assert response.status_code == 302
        assert response.headers["Location"] == "/new"


def test_undecodable_retry_after_returns_the_rate_limited_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, headers=[(b"Retry-After", b"\xb2")], text="slow down")

    client = Client(
        transport=httpx.MockTransport(handler),
        middlewares=[retry_middleware(2, 0, sleep=lambda _: None)],
    )

    response = client.get("https://api.example/limited")

    assert response.status_code == 429
    assert response.read_bytes() == b"slow down"
