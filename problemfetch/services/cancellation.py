"""Cooperative cancellation through an ``asyncio.Event``."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from problemfetch.core.errors import FetchCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_cancellable(
    awaitable: Awaitable[T],
    identifier: str,
    cancel_event: asyncio.Event | None,
) -> T:
    """Await *awaitable*, aborting it if *cancel_event* fires first.

    Args:
        awaitable: Coroutine or future to run.
        identifier: Problem identifier, used in the error.
        cancel_event: Optional event; ``None`` awaits plainly.

    Returns:
        Whatever *awaitable* returns.

    Raises:
        FetchCancelledError: If the event was set before
            *awaitable* finished.  The awaitable is cancelled.
    """
    if cancel_event is None:
        return await awaitable

    work = asyncio.ensure_future(awaitable)
    if cancel_event.is_set():
        work.cancel()
        raise FetchCancelledError(identifier)

    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait(
            {work, waiter},
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        waiter.cancel()
        if not work.done():
            work.cancel()

    if work not in done:
        logger.info("Loading problem %s cancelled", identifier)
        raise FetchCancelledError(identifier)
    return work.result()
