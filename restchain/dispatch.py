"""
Asynchronous dispatch and fan-out/fan-in.

Every dispatched call runs on its own daemon thread and publishes exactly one
`AsyncResult` through a `concurrent.futures.Future`. The future is completed
even if nobody ever waits on it, so a slow or absent consumer never blocks the
producing thread. `join` aggregates several futures into one ordered list.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .exceptions import RestChainError

if TYPE_CHECKING:
    from .response import Response

logger = logging.getLogger(__name__)

Call = Callable[[], "Response"]


@dataclass(frozen=True, slots=True)
class AsyncResult:
    """Outcome of a dispatched call: a response on success, an error otherwise."""

    response: Response | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Response:
        """Return the response, or raise the captured error."""
        if self.error is not None:
            raise self.error
        if self.response is None:
            raise RestChainError("async result carries neither a response nor an error")
        return self.response


def _spawn(target: Callable[[], None], name: str) -> None:
    threading.Thread(target=target, name=name, daemon=True).start()


def dispatch_async(call: Call) -> Future[AsyncResult]:
    """
    Run `call` on a new thread.

    Errors raised by `call` are captured in `AsyncResult.error`; the returned
    future itself always completes normally.
    """
    future: Future[AsyncResult] = Future()
    future.set_running_or_notify_cancel()

    def run() -> None:
        try:
            result = AsyncResult(response=call())
        except BaseException as e:
            logger.debug("Dispatched call failed: %s", e)
            result = AsyncResult(error=e)
        future.set_result(result)

    _spawn(run, "restchain-dispatch")
    return future


def join(*futures: Future[AsyncResult]) -> Future[list[AsyncResult]]:
    """
    Wait for every future and publish their results as one list.

    Index `i` of the list holds the result of `futures[i]`, whatever order the
    underlying calls completed in.
    """
    out: Future[list[AsyncResult]] = Future()
    out.set_running_or_notify_cancel()

    def run() -> None:
        results: list[AsyncResult] = []
        for future in futures:
            try:
                results.append(future.result())
            except BaseException as e:
                results.append(AsyncResult(error=e))
        out.set_result(results)

    _spawn(run, "restchain-join")
    return out


def dispatch_group(*calls: Call) -> Future[list[AsyncResult]]:
    """Dispatch each call concurrently and join the results in input order."""
    return join(*(dispatch_async(call) for call in calls))
