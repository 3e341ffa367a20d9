"""
Exception hierarchy for restchain.

Every error raised by the request pipeline derives from `RestChainError`, so
callers can catch the whole family with a single `except` clause while still
distinguishing build, transport, retry and cancellation failures.
"""

from __future__ import annotations


class RestChainError(Exception):
    """Base class for all restchain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class BuildError(RestChainError):
    """A request could not be turned into a wire request (bad URL, encoding, files)."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class TransportError(RestChainError):
    """The terminal executor failed to complete the exchange (connect, read, timeout)."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class RetryExhaustedError(RestChainError):
    """
    Every retry attempt failed.

    Attributes:
        attempts: Total number of attempts made.
        last_error: The error raised by the final attempt, if it raised.
        last_status_code: The status of the final retryable response, if it returned one.
    """

    def __init__(
        self,
        *,
        attempts: int,
        last_error: BaseException | None = None,
        last_status_code: int | None = None,
    ) -> None:
        if last_error is not None:
            message = f"all {attempts} retry attempts failed: {last_error}"
        else:
            message = (
                f"all {attempts} retry attempts exhausted: last status code {last_status_code}"
            )
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
        self.last_status_code = last_status_code


class InvalidRetryAfterError(RestChainError, ValueError):
    """A `Retry-After` header was neither delay-seconds nor an HTTP-date."""

    def __init__(self, value: str) -> None:
        super().__init__(f"invalid Retry-After header: {value}")
        self.value = value


class ResponseClosedError(RestChainError):
    """A response body was read after it had been consumed and closed."""


class ContextError(RestChainError):
    """Base class for errors reported by a cancelled or expired `Context`."""


class RequestCancelledError(ContextError):
    def __init__(self, message: str = "context canceled") -> None:
        super().__init__(message)


class DeadlineExceededError(ContextError):
    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


class TooManyRedirectsError(RestChainError):
    """A request was redirected more often than `ClientConfig.max_redirects` allows."""

    def __init__(self, max_redirects: int) -> None:
        super().__init__(f"stopped after {max_redirects} redirects")
        self.max_redirects = max_redirects
