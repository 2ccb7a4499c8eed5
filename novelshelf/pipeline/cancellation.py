"""Cooperative cancellation and timeouts for network-bound coroutines.

:class:`CancellationToken` is a caller-owned flag: the caller calls
:meth:`~CancellationToken.cancel` and every operation that was handed the
token stops at its next checkpoint.

:class:`TimeoutScope` is the timer that enforces a deadline.  On entry it
schedules a callback on the event loop; when the deadline passes, or the
linked token fires, it cancels the task running inside the scope, which
interrupts whatever I/O that task is awaiting (a request, a chunk read).
On exit the timer and the token callback are always removed, and an
interruption the scope caused is re-raised as
:class:`~novelshelf.utils.errors.OperationTimeoutError` or
:class:`~novelshelf.utils.errors.OperationCancelledError`.

Example::

    token = CancellationToken()
    async with TimeoutScope(30.0, token):
        await client.get(url)
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from types import TracebackType

from novelshelf.utils.errors import OperationCancelledError, OperationTimeoutError


class CancellationToken:
    """Single-use cancellation flag with callbacks.

    ``cancel`` is idempotent; callbacks registered after cancellation run
    immediately.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason = ""
        self._callbacks: list[Callable[[], None]] = []

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        for callback in list(self._callbacks):
            callback()
        self._callbacks.clear()

    def is_cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationCancelledError` if the token has fired."""
        if self._cancelled:
            raise OperationCancelledError(message=f"Operation cancelled: {self._reason}")

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register *callback*; returns a function that unregisters it."""
        if self._cancelled:
            callback()
            return lambda: None

        self._callbacks.append(callback)

        def _remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _remove


class TimeoutScope:
    """Async context manager bounding the enclosed block by *timeout* seconds.

    Parameters
    ----------
    timeout:
        Deadline in seconds.  ``None`` or a non-positive value disables the
        timer; the scope then only reacts to *token*.
    token:
        Optional :class:`CancellationToken` linked to the scope.
    """

    def __init__(self, timeout: float | None, token: CancellationToken | None = None) -> None:
        self._timeout = timeout
        self._token = token
        self._task: asyncio.Task | None = None
        self._handle: asyncio.TimerHandle | None = None
        self._unlink: Callable[[], None] | None = None
        self.timed_out = False
        self.cancelled = False

    async def __aenter__(self) -> TimeoutScope:
        if self._token is not None:
            self._token.raise_if_cancelled()

        self._task = asyncio.current_task()
        loop = asyncio.get_running_loop()
        if self._timeout is not None and self._timeout > 0:
            self._handle = loop.call_later(self._timeout, self._on_timeout)
        if self._token is not None:
            self._unlink = self._token.add_callback(self._on_cancel)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._unlink is not None:
            self._unlink()
            self._unlink = None

        if exc_type is asyncio.CancelledError and (self.timed_out or self.cancelled):
            uncancel = getattr(self._task, "uncancel", None)
            if uncancel is not None:
                uncancel()
            if self.cancelled:
                reason = self._token.reason if self._token is not None else "cancelled"
                raise OperationCancelledError(message=f"Operation cancelled: {reason}") from None
            raise OperationTimeoutError(
                message=f"Operation exceeded {self._timeout:g}s timeout"
            ) from None
        return False

    def _on_timeout(self) -> None:
        if self.cancelled or self._task is None:
            return
        self.timed_out = True
        self._task.cancel()

    def _on_cancel(self) -> None:
        if self.timed_out or self._task is None:
            return
        self.cancelled = True
        if _running_task() is self._task:
            # Cancelled from inside the scope (e.g. by a progress listener):
            # the next raise_if_cancelled() checkpoint stops the work.
            return
        self._task.cancel()


def _running_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
