"""
Cancellation tokens shared by the batch, location and coordinate levels.

A token is triggered at most once. Cancelling a token cancels all tokens
derived from it, and a deadline is just a timer that cancels the token.
"""

import asyncio
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from .errors import OperationCancelledError


class CancellationToken:
    """
    Cooperative cancellation signal passed down the call tree.

    Consumers either poll `cancelled`, await `wait()`, or run their
    network call through `guard()` which aborts it when the token fires.
    """

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._event = asyncio.Event()
        self._reason: Optional[BaseException] = None
        self._children: List["CancellationToken"] = []
        self._callbacks: List[Callable[[Optional[BaseException]], Any]] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        if parent is not None:
            parent._attach(self)

    @classmethod
    def with_deadline(
        cls,
        timeout: Optional[float],
        reason: Optional[BaseException] = None,
        parent: Optional["CancellationToken"] = None
    ) -> "CancellationToken":
        """
        Create a token that cancels itself after `timeout` seconds.

        Args:
            timeout: Seconds until cancellation, None for no deadline
            reason: Exception recorded as the cancellation reason
            parent: Optional parent token

        Returns:
            New token
        """
        token = cls(parent)
        if timeout is not None:
            loop = asyncio.get_running_loop()
            token._timer = loop.call_later(timeout, token.cancel, reason)
        return token

    def child(self) -> "CancellationToken":
        """Derive a token that is cancelled together with this one."""
        return CancellationToken(parent=self)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[BaseException]:
        return self._reason

    def cancel(self, reason: Optional[BaseException] = None) -> bool:
        """
        Trigger the token.

        Returns:
            True if this call cancelled the token, False if it was already cancelled
        """
        if self._event.is_set():
            return False

        self._reason = reason
        self._event.set()
        self._clear_timer()

        for child in self._children:
            child.cancel(reason)

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback(reason)
        return True

    def add_callback(self, callback: Callable[[Optional[BaseException]], Any]) -> None:
        """Call `callback(reason)` once the token fires (immediately if it already has)."""
        if self._event.is_set():
            callback(self._reason)
        else:
            self._callbacks.append(callback)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(self._reason)

    async def wait(self) -> Optional[BaseException]:
        """Suspend until the token fires and return the cancellation reason."""
        await self._event.wait()
        return self._reason

    async def guard(self, awaitable: Awaitable[Any]) -> Any:
        """
        Await `awaitable` unless the token fires first.

        When the token fires the wrapped operation is cancelled and
        OperationCancelledError is raised. A result that is already
        available wins over a cancellation observed at the same time.
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise OperationCancelledError(self._reason)

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task.done():
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise OperationCancelledError(self._reason)

    def close(self) -> None:
        """Release the deadline timer without cancelling."""
        self._clear_timer()

    def _attach(self, child: "CancellationToken") -> None:
        if self._event.is_set():
            child.cancel(self._reason)
        else:
            self._children.append(child)

    def _clear_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<CancellationToken {state} reason={self._reason!r}>"


async def drain(tasks: Iterable["asyncio.Future[Any]"], grace: float = 0.0) -> None:
    """
    Wait for tasks that were told to stop through their token.

    Tasks still running after `grace` seconds are cancelled outright.
    Their outcomes are collected and dropped.
    """
    tasks = list(tasks)
    if not tasks:
        return

    try:
        running = [task for task in tasks if not task.done()]
        if running and grace > 0:
            await asyncio.wait(running, timeout=grace)
    finally:
        for task in tasks:
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
