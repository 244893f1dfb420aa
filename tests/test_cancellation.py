"""Tests for event-driven cancellation."""

from __future__ import annotations

import asyncio

import pytest

from problemfetch.core.errors import FetchCancelledError
from problemfetch.services.cancellation import run_cancellable


async def _value(result, delay: float = 0.0):
    await asyncio.sleep(delay)
    return result


class TestRunCancellable:
    """Tests for ``run_cancellable``."""

    async def test_without_event(self):
        """No event: the awaitable is awaited plainly."""
        assert await run_cancellable(_value(42), "1", None) == 42

    async def test_event_never_set(self):
        """An unset event does not interfere."""
        assert await run_cancellable(_value(42), "1", asyncio.Event()) == 42

    async def test_event_already_set(self):
        """A pre-set event aborts without running the work."""
        event = asyncio.Event()
        event.set()
        ran = []

        async def work():
            ran.append(True)

        with pytest.raises(FetchCancelledError) as exc_info:
            await run_cancellable(work(), "1000", event)

        assert exc_info.value.identifier == "1000"
        await asyncio.sleep(0)
        assert ran == []

    async def test_event_set_during_work(self):
        """Setting the event cancels the pending work."""
        event = asyncio.Event()
        cancelled = asyncio.Event()

        async def work():
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.set()
                raise

        async def trigger():
            await asyncio.sleep(0.01)
            event.set()

        trigger_task = asyncio.create_task(trigger())
        with pytest.raises(FetchCancelledError):
            await run_cancellable(work(), "1000", event)
        await trigger_task

        await asyncio.wait_for(cancelled.wait(), timeout=1)

    async def test_work_error_propagates(self):
        """Exceptions from the work are re-raised unchanged."""

        async def work():
            raise KeyError("boom")

        with pytest.raises(KeyError):
            await run_cancellable(work(), "1", asyncio.Event())
