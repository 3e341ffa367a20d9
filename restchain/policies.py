"""
Client policies (cross-cutting behavioral controls).

Policies are orthogonal and composable. Each one is turned into a middleware
and applied by the request pipeline.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta


def _identity(text: str) -> str:
    return text


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """
    Bounded retry with a fixed backoff.

    Attributes:
        attempts: Total number of tries, including the first one (1 = no retry).
        delay: Wait inserted before every attempt after the first, in seconds.
    """

    attempts: int = 3
    delay: float | timedelta = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got {self.attempts}")

    @property
    def delay_seconds(self) -> float:
        if isinstance(self.delay, timedelta):
            return self.delay.total_seconds()
        return float(self.delay)


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """
    What the logging middleware writes for each exchange.

    Attributes:
        dump_request_body: Include the request body in the request dump.
        dump_response_body: Include the response body in the response dump.
        redactor: Applied to each dump before it is written (e.g. to mask tokens).

    Warning: dumping full HTTP messages may include credentials or personal data.
    """

    dump_request_body: bool = True
    dump_response_body: bool = True
    redactor: Callable[[str], str] = field(default=_identity)
