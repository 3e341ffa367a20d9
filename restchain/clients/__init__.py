"""Executors, middleware composition and transport adapters."""

from .pipeline import (
    Executor,
    FunctionExecutor,
    Middleware,
    WireRequest,
    WireResponse,
    chain,
    drain_and_close,
)
from .transport import HTTPXExecutor, TLSConfig, default_transport, tls_transport

__all__ = [
    "Executor",
    "FunctionExecutor",
    "HTTPXExecutor",
    "Middleware",
    "TLSConfig",
    "WireRequest",
    "WireResponse",
    "chain",
    "default_transport",
    "drain_and_close",
    "tls_transport",
]
