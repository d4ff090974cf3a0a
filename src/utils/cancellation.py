"""Cooperative cancellation for pipeline operations.

A CancellationToken is created by the caller and threaded through every
suspend point of generate_recipe() / generate_recipe_image() / parse().
The caller decides when to give up by calling cancel(); in-flight awaits are
abandoned and PipelineCancelledError is raised.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from src.models.errors import PipelineCancelledError


T = TypeVar("T")


class CancellationToken:
    """Cancellation signal shared between a caller and one pipeline run."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Operation cancelled") -> None:
        """Fire the token. Idempotent; the first reason wins."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelledError(self.reason or "Operation cancelled")

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable` unless the token fires first.

        Raises:
            PipelineCancelledError: If the token fired before or during the await.
                The in-flight task is cancelled.
        """
        self.raise_if_cancelled()
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
        try:
            await task
        except asyncio.CancelledError:
            pass
        raise PipelineCancelledError(self.reason or "Operation cancelled")


async def guarded(awaitable: Awaitable[T], token: Optional[CancellationToken]) -> T:
    """Await through `token` when one is given, directly otherwise."""
    if token is None:
        return await awaitable
    return await token.run(awaitable)
