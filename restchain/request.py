"""
Request builder.

`Request` collects method, URL, headers, query parameters and body through a
fluent interface. Problems found while assembling the body (JSON encoding,
unreadable multipart files) are recorded rather than raised, and reported by
`build()` as a `BuildError` before any network activity happens.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from typing import Any

import httpx

from .body import BodyStream, BufferedBody
from .clients.pipeline import WireRequest
from .context import Context
from .exceptions import BuildError

# Only used to drive httpx's multipart encoder; never sent anywhere.
_MULTIPART_PLACEHOLDER_URL = "http://multipart.invalid/"


class Request:
    """
    Fluent request builder.

    Example:
        ```python
        req = (
            Request("POST", "https://api.example.com/items")
            .with_header("Authorization", "Bearer token")
            .with_query_param("dry_run", "1")
            .with_json_body({"name": "widget"})
        )
        response = client.do(req)
        ```
    """

    def __init__(self, method: str, url: str):
        self.method = method.upper()
        self.url = url
        self.headers = httpx.Headers()
        self.query_params: list[tuple[str, str]] = []
        self.body: bytes | BodyStream | None = None
        self.context: Context | None = None
        self.is_multipart = False
        self.build_error: BaseException | None = None

    def with_header(self, key: str, value: str) -> Request:
        self.headers[key] = value
        return self

    def with_headers(self, headers: Mapping[str, str] | None) -> Request:
        for key, value in (headers or {}).items():
            self.headers[key] = value
        return self

    def with_query_param(self, key: str, value: str) -> Request:
        self.query_params.append((key, value))
        return self

    def with_context(self, context: Context) -> Request:
        self.context = context
        return self

    def with_body(self, body: bytes | BodyStream) -> Request:
        self.body = body
        return self

    def with_json_body(self, data: Any) -> Request:
        """Encode `data` as JSON and set `Content-Type: application/json`."""
        try:
            encoded = json.dumps(data).encode("utf-8")
        except (TypeError, ValueError) as e:
            self.build_error = BuildError(f"json encoding failed: {e}", cause=e)
            return self
        self.body = encoded
        return self.with_header("Content-Type", "application/json")

    def with_multipart_form(
        self,
        form_fields: Mapping[str, str] | None = None,
        file_fields: Mapping[str, str | os.PathLike[str]] | None = None,
    ) -> Request:
        """
        Build a `multipart/form-data` body.

        Args:
            form_fields: Plain form values keyed by field name.
            file_fields: Paths of files to upload keyed by field name. The file's
                base name is used as the part's filename.
        """
        files: dict[str, tuple[str, bytes]] = {}
        for field, path in (file_fields or {}).items():
            try:
                with open(path, "rb") as fh:
                    files[field] = (os.path.basename(os.fspath(path)), fh.read())
            except OSError as e:
                self.build_error = BuildError(f"multipart file {field!r}: {e}", cause=e)
                return self

        encoder = httpx.Request(
            "POST", _MULTIPART_PLACEHOLDER_URL, data=dict(form_fields or {}), files=files
        )
        self.body = encoder.read()
        self.is_multipart = True
        return self.with_header("Content-Type", encoder.headers["Content-Type"])

    def _resolve_url(self) -> httpx.URL:
        if not self.url:
            raise BuildError("request URL is empty")
        try:
            url = httpx.URL(self.url)
        except httpx.InvalidURL as e:
            raise BuildError(f"invalid URL: {e}", cause=e) from e
        if not url.scheme or not url.host:
            raise BuildError(f"invalid URL: {self.url!r} is not absolute")
        if self.query_params:
            url = url.copy_with(
                params=httpx.QueryParams([*url.params.multi_items(), *self.query_params])
            )
        return url

    def build(self, *, context: Context | None = None, timeout: float | None = None) -> WireRequest:
        """
        Produce the wire request.

        Raises:
            BuildError: For a deferred construction error, or an empty/invalid URL.
        """
        if self.build_error is not None:
            if isinstance(self.build_error, BuildError):
                raise self.build_error
            raise BuildError(str(self.build_error), cause=self.build_error)

        url = self._resolve_url()
        body: BodyStream | None
        if isinstance(self.body, (bytes, bytearray)):
            body = BufferedBody(bytes(self.body))
        else:
            body = self.body

        return WireRequest(
            method=self.method,
            url=url,
            headers=self.headers.copy(),
            body=body,
            context=context or self.context or Context.background(),
            timeout=timeout,
        )
