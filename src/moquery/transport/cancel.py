"""Cooperative cancellation for long-running calls."""
from __future__ import annotations

import threading

from moquery.errors import OperationCancelledError


class CancellationToken:
    """A thread-safe, one-way cancellation flag.

    The token is handed to the invoker with every call so that a
    transport can abort an in-flight long poll, and is checked between
    poll rounds by :class:`~moquery.collector.waiter.ChangeWaiter`.

    Example
    -------
    ::

        token = CancellationToken()
        threading.Timer(30.0, token.cancel).start()
        client.wait_for_properties(vm, ["runtime.powerState"], is_on, cancel=token)
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation.  Calling it again has no further effect."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Return True once :meth:`cancel` has been called."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; return the flag."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationCancelledError` if cancellation was requested."""
        if self._event.is_set():
            raise OperationCancelledError("Operation was cancelled.")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
