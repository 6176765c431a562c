"""Cooperative cancellation signal threaded through every suspension point."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from toolplan.exceptions import RunCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """A one-shot cancellation signal.

    Pass the same token into every awaited call of a run. Work is wrapped
    with :meth:`guard`, which races the operation against the token and
    abandons it as soon as the token fires.

    Usage::

        token = CancellationToken()
        reply = await token.guard(client.post(url, json=payload))
        ...
        token.cancel("user pressed Ctrl-C")
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = ""

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "") -> None:
        """Fire the token. Later calls are no-ops."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.info("Cancellation requested%s", f": {reason}" if reason else "")

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelledError(self._reason)

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        Raises:
            RunCancelledError: If the token is (or becomes) cancelled. The
                in-flight operation is cancelled before this is raised.
        """
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()
        if work.done():
            return work.result()
        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        raise RunCancelledError(self._reason)


async def guarded(awaitable: Awaitable[T], cancel: CancellationToken | None) -> T:
    """Await through ``cancel.guard`` when a token is supplied."""
    if cancel is None:
        return await awaitable
    return await cancel.guard(awaitable)
