"""
Call-scoped cancellation.

A `Context` travels with a wire request through every middleware. It is only
consulted at attempt boundaries (see the retry middleware); an exchange that is
already on the wire runs to completion or to the transport's own timeout.
"""

from __future__ import annotations

import threading
import time

from .exceptions import ContextError, DeadlineExceededError, RequestCancelledError


class Context:
    """
    Cancellation signal with an optional deadline.

    Example:
        ```python
        ctx = Context.with_timeout(5.0)
        response = client.do(Request("GET", url), context=ctx)
        ```
    """

    def __init__(self, *, deadline: float | None = None, parent: Context | None = None):
        self._event = threading.Event()
        self._deadline = deadline
        self._parent = parent

    @classmethod
    def background(cls) -> Context:
        """A context that is never cancelled and has no deadline."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float, *, parent: Context | None = None) -> Context:
        """A context whose deadline is `seconds` from now (monotonic clock)."""
        deadline = time.monotonic() + seconds
        if parent is not None and parent.deadline is not None:
            deadline = min(deadline, parent.deadline)
        return cls(deadline=deadline, parent=parent)

    def child(self) -> Context:
        """A context cancelled whenever this one is, and cancellable on its own."""
        return Context(deadline=self._deadline, parent=self)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self.err() is not None

    def err(self) -> ContextError | None:
        """Return the error describing why the context is done, or None while it is live."""
        if self._parent is not None:
            parent_err = self._parent.err()
            if parent_err is not None:
                return parent_err
        if self._event.is_set():
            return RequestCancelledError()
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceededError()
        return None
