"""
Progress reporting for streamed turns.

``ProgressEmitter`` coalesces text updates into at most one event per
interval and forwards tool-start events immediately. ``ProgressChannel`` is
a pull-based sink: the engine pushes into it and the caller iterates it.
"""

from __future__ import annotations

import asyncio as _asyncio
import inspect as _inspect
import logging as _logging
import time as _time
import typing as _typing

import skald.constants as _constants
import skald.core.types as types

ProgressSink = _typing.Callable[[types.ProgressEvent], _typing.Any]
"""Receives progress events. May be a plain function or a coroutine function."""

_logger = _logging.getLogger(__name__)


class ProgressEmitter:
    """Throttled progress emitter for one turn."""

    def __init__(
        self,
        sink: ProgressSink | None,
        interval_ms: int = _constants.DEFAULT_STREAMING_INTERVAL_MS,
        clock: _typing.Callable[[], float] = _time.monotonic,
        logger: _logging.Logger | None = None,
    ) -> None:
        """
        Args:
            sink: Where events go. None disables emission.
            interval_ms: Minimum spacing between text events.
            clock: Monotonic clock in seconds.
            logger: Logger for sink failures.
        """
        self._sink = sink
        self._interval = interval_ms / 1000.0
        self._clock = clock
        self._logger = logger or _logger
        self._last_emit: float | None = None
        self.emitted = 0

    async def text(self, delta: str, snapshot: str) -> None:
        """Report new text. Emits only if the interval has passed."""
        if self._sink is None:
            return
        now = self._clock()
        if self._last_emit is not None and now - self._last_emit < self._interval:
            return
        self._last_emit = now
        await self._emit(
            types.ProgressEvent(
                type="message",
                content=snapshot[: _constants.PROGRESS_PREVIEW_CHARS],
                content_delta=delta,
                content_snapshot=snapshot,
            )
        )

    async def tool_use(self, name: str) -> None:
        """Report a function call as soon as it is seen."""
        await self._emit(types.ProgressEvent(type="tool_use", tool_name=name))

    async def complete(self, snapshot: str) -> None:
        """Flush the final event, regardless of the throttle window."""
        await self._emit(
            types.ProgressEvent(
                type="message",
                content=snapshot[: _constants.PROGRESS_PREVIEW_CHARS],
                content_snapshot=snapshot,
                is_complete=True,
            )
        )

    async def _emit(self, event: types.ProgressEvent) -> None:
        if self._sink is None:
            return
        try:
            result = self._sink(event)
            if _inspect.isawaitable(result):
                await result
            self.emitted += 1
        except Exception:
            self._logger.warning("Progress sink failed for %s event", event.type, exc_info=True)


class _Closed:
    pass


_CLOSED = _Closed()


class ProgressChannel:
    """
    Async iterator of progress events.

    Pass ``channel.send`` as the progress sink and iterate the channel from
    another task. ``close()`` ends the iteration once queued events drain.

    Usage:
        channel = ProgressChannel()
        task = asyncio.create_task(engine.run_turn(group, req, ctx, channel.send))
        task.add_done_callback(lambda _: channel.close())
        async for event in channel:
            ...
    """

    def __init__(self) -> None:
        self._queue: _asyncio.Queue[types.ProgressEvent | _Closed] = _asyncio.Queue()
        self._closed = False

    def send(self, event: types.ProgressEvent) -> None:
        """Queue an event. Events sent after close are discarded."""
        if self._closed:
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> ProgressChannel:
        return self

    async def __anext__(self) -> types.ProgressEvent:
        item = await self._queue.get()
        if isinstance(item, _Closed):
            # Keep later iterations terminating too.
            self._queue.put_nowait(item)
            raise StopAsyncIteration
        return item
