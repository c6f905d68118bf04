"""
Request gate.

Routes independent feed/query requests through one in-flight task per
key. Starting a newer request for a key cancels the older one, and a
result that completes after being superseded is discarded instead of
being delivered, so the caller's state only ever reflects the latest
request.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, TypeVar

import structlog

from cruxfeed.domain.shared.errors import DomainError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class RequestSupersededError(DomainError):
    """A newer request for the same key replaced this one."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Request superseded: {key}")


class RequestGate:
    """
    Last-request-wins gate keyed by request kind.

    Example:
        >>> gate = RequestGate()
        >>> page = await gate.run("feed:u1", lambda: composer.following_feed_page("u1", 20))

    A second gate.run("feed:u1", ...) issued while the first is in flight
    makes the first one raise RequestSupersededError.
    """

    def __init__(self) -> None:
        self._tasks: Dict[str, "asyncio.Task[object]"] = {}

    def in_flight(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    async def run(self, key: str, request: Callable[[], Awaitable[T]]) -> T:
        """
        Run request() as the current request for key.

        Raises:
            RequestSupersededError: A newer request for key started first
                finished or cancelled this one
        """
        previous = self._tasks.get(key)
        if previous is not None and not previous.done():
            previous.cancel()
            logger.debug("Request superseded", key=key)

        task: "asyncio.Task[T]" = asyncio.ensure_future(request())
        self._tasks[key] = task  # type: ignore[assignment]
        try:
            result = await task
        except asyncio.CancelledError:
            if task.cancelled() and self._tasks.get(key) is not task:
                raise RequestSupersededError(key) from None
            raise
        finally:
            if self._tasks.get(key) is task:
                del self._tasks[key]

        if key in self._tasks:
            raise RequestSupersededError(key)
        return result

    def cancel(self, key: str) -> bool:
        """Cancel the in-flight request for key; its run() raises RequestSupersededError."""
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_all(self) -> int:
        return sum(1 for key in list(self._tasks) if self.cancel(key))
