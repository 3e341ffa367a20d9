"""
restchain: HTTP client toolkit with a composable middleware pipeline.

Provides request building, retry with backoff (honouring `Retry-After`),
request/response dumping, thread-backed async dispatch with ordered fan-in, and
response handles supporting buffered or streamed consumption.
"""

from __future__ import annotations

from .body import BufferedBody, ReplayableBody, StreamBody
from .client import Client, ClientConfig
from .clients.pipeline import (
    Executor,
    FunctionExecutor,
    Middleware,
    WireRequest,
    WireResponse,
    chain,
    drain_and_close,
)
from .clients.transport import HTTPXExecutor, TLSConfig, default_transport, tls_transport
from .context import Context
from .dispatch import AsyncResult, dispatch_async, dispatch_group, join
from .exceptions import (
    BuildError,
    ContextError,
    DeadlineExceededError,
    InvalidRetryAfterError,
    RequestCancelledError,
    ResponseClosedError,
    RestChainError,
    RetryExhaustedError,
    TooManyRedirectsError,
    TransportError,
)
from .middleware.logging import LoggerSink, logging_middleware
from .middleware.retry import parse_retry_after, retry_middleware, retry_policy_middleware
from .policies import LoggingConfig, RetryPolicy
from .request import Request
from .response import Response

__version__ = "0.1.0"

__all__ = [
    # Client
    "Client",
    "ClientConfig",
    "Request",
    "Response",
    "Context",
    # Pipeline
    "Executor",
    "FunctionExecutor",
    "Middleware",
    "WireRequest",
    "WireResponse",
    "chain",
    "drain_and_close",
    # Transports
    "HTTPXExecutor",
    "TLSConfig",
    "default_transport",
    "tls_transport",
    # Middleware
    "LoggerSink",
    "LoggingConfig",
    "RetryPolicy",
    "logging_middleware",
    "parse_retry_after",
    "retry_middleware",
    "retry_policy_middleware",
    # Async dispatch
    "AsyncResult",
    "dispatch_async",
    "dispatch_group",
    "join",
    # Bodies
    "BufferedBody",
    "ReplayableBody",
    "StreamBody",
    # Exceptions
    "BuildError",
    "ContextError",
    "DeadlineExceededError",
    "InvalidRetryAfterError",
    "RequestCancelledError",
    "ResponseClosedError",
    "RestChainError",
    "RetryExhaustedError",
    "TooManyRedirectsError",
    "TransportError",
]
