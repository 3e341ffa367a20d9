"""Built-in middleware: retry with backoff and request/response dumping."""

from .logging import LoggerSink, Sink, dump_request, dump_response, logging_middleware
from .retry import parse_retry_after, retry_middleware, retry_policy_middleware

__all__ = [
    "LoggerSink",
    "Sink",
    "dump_request",
    "dump_response",
    "logging_middleware",
    "parse_retry_after",
    "retry_middleware",
    "retry_policy_middleware",
]
