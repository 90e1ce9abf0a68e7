"""
Concurrent fan-out where the first failure cancels the rest.

asyncio.gather() propagates the first exception but leaves the other
awaitables running, so their upstream calls continue after the caller has
already failed. gather_or_cancel() cancels and drains them before raising.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Awaitable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _cancel_all(tasks: list[asyncio.Future[T]]) -> None:
    pending = [t for t in tasks if not t.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


async def gather_or_cancel(*aws: Awaitable[T]) -> list[T]:
    """
    Run awaitables concurrently and return their results in order.

    Raises:
        The exception of the first awaitable to fail, after every other
        awaitable has been cancelled and has finished.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []

    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        await _cancel_all(tasks)
        raise

    # Every finished task's exception is read so none is reported as unretrieved
    errors = [t.exception() for t in tasks if t in done and not t.cancelled()]
    error = next((e for e in errors if e is not None), None)
    if error is not None:
        if pending:
            logger.debug("Cancelling sibling tasks", extra={"cancelled": len(pending)})
        await _cancel_all(tasks)
        raise error
    return [t.result() for t in tasks]
