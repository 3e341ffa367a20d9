"""
Retry middleware.

Retries executor errors, 5xx responses, and 429 responses that carry a
parseable `Retry-After` header. The request body is buffered once up front so
every attempt sends the complete body.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime

from ..body import ReplayableBody
from ..clients.pipeline import Executor, Middleware, WireRequest, WireResponse, drain_and_close
from ..exceptions import ContextError, InvalidRetryAfterError, RetryExhaustedError
from ..policies import RetryPolicy

logger = logging.getLogger(__name__)

TOO_MANY_REQUESTS = 429


def parse_retry_after(value: str, now: datetime | None = None) -> timedelta:
    """
    Parse a `Retry-After` header value.

    Args:
        value: Either delay-seconds (`"120"`) or an HTTP-date
            (`"Wed, 21 Oct 2015 07:28:00 GMT"`).
        now: Reference time for HTTP-date values. Defaults to the current UTC time.

    Returns:
        How long to wait. A date in the past yields a zero delay.

    Raises:
        InvalidRetryAfterError: If the value is in neither format.
    """
    text = value.strip()
    if text.isascii() and text.isdigit():
        try:
            return timedelta(seconds=int(text))
        except OverflowError:
            raise InvalidRetryAfterError(value) from None

    try:
        deadline = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        raise InvalidRetryAfterError(value) from None
    if deadline is None:
        raise InvalidRetryAfterError(value)
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)

    reference = now if now is not None else datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    return max(deadline - reference, timedelta(0))


def retry_middleware(
    attempts: int,
    delay: float | timedelta,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> Middleware:
    """
    Build a middleware making up to `attempts` tries in total.

    Args:
        attempts: Total number of tries including the first (1 disables retrying).
        delay: Fixed wait before each attempt after the first.
        sleep: Blocking sleep used for backoff (injectable for tests).

    Any error raised by the inner executor is retried, except `ContextError`,
    which propagates immediately. The wait after a 5xx response or a 429 with
    `Retry-After` is skipped when no attempt remains, so exhausting the retries
    never sleeps before raising.

    Raises:
        ValueError: If `attempts` is less than 1.
    """
    policy = RetryPolicy(attempts=attempts, delay=delay)
    delay_seconds = policy.delay_seconds

    def middleware(next: Executor) -> Executor:
        def execute(request: WireRequest) -> WireResponse:
            buffered: ReplayableBody | None = None
            if request.body is not None:
                buffered = ReplayableBody.from_stream(request.body)

            last_error: Exception | None = None
            last_status: int | None = None

            for attempt in range(policy.attempts):
                cancelled = request.context.err()
                if cancelled is not None:
                    raise cancelled

                attempt_request = request.clone(
                    body=buffered.open() if buffered is not None else None
                )
                if attempt > 0:
                    sleep(delay_seconds)

                remaining = policy.attempts - attempt - 1
                try:
                    response = next(attempt_request)
                except ContextError:
                    raise
                except Exception as e:
                    last_error, last_status = e, None
                    logger.warning(
                        "Attempt %d/%d for %s %s failed: %s",
                        attempt + 1,
                        policy.attempts,
                        request.method,
                        request.url,
                        e,
                    )
                    continue

                if response.status_code == TOO_MANY_REQUESTS:
                    header = response.headers.get("Retry-After")
                    if header:
                        try:
                            wait = parse_retry_after(header)
                        except InvalidRetryAfterError:
                            logger.debug("Ignoring unparseable Retry-After %r", header)
                        else:
                            drain_and_close(response)
                            last_error, last_status = None, response.status_code
                            logger.info(
                                "Rate limited on %s %s, retrying after %.2fs",
                                request.method,
                                request.url,
                                wait.total_seconds(),
                            )
                            if remaining:
                                sleep(wait.total_seconds())
                            continue
                elif response.status_code >= 500:
                    drain_and_close(response)
                    last_error, last_status = None, response.status_code
                    logger.warning(
                        "Attempt %d/%d for %s %s returned %d",
                        attempt + 1,
                        policy.attempts,
                        request.method,
                        request.url,
                        response.status_code,
                    )
                    if remaining:
                        sleep(delay_seconds)
                    continue

                return response

            raise RetryExhaustedError(
                attempts=policy.attempts,
                last_error=last_error,
                last_status_code=last_status,
            ) from last_error

        return execute

    return middleware


def retry_policy_middleware(
    policy: RetryPolicy, *, sleep: Callable[[float], None] = time.sleep
) -> Middleware:
    """Build a retry middleware from a `RetryPolicy`."""
    return retry_middleware(policy.attempts, policy.delay, sleep=sleep)
