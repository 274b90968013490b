"""Per-event-type listener registry."""

from __future__ import annotations

import asyncio
import inspect
from typing import Callable

from janus_signal.models import Listener, Signal

ErrorCallback = Callable[[str, BaseException], None]


class EventRegistry:
    def __init__(self):
        self._handlers: dict[str, list[Listener]] = {}
        self._pending: set[asyncio.Future] = set()

    def __len__(self) -> int:
        return len(self._handlers)

    def __contains__(self, event: object) -> bool:
        return event in self._handlers

    def on(self, event: str, listener: Listener) -> None:
        self._handlers.setdefault(event, []).append(listener)

    def listeners(self, event: str) -> list[Listener]:
        return list(self._handlers.get(event, ()))

    def clear(self) -> None:
        self._handlers.clear()

    def dispatch(self, signal: Signal, on_error: ErrorCallback) -> int:
        """Call every listener for signal["janus"] in registration order.

        Returns the number of listeners invoked. A failing listener is
        reported through on_error and never stops the rest.
        """
        event = signal.get("janus")
        handlers = self._handlers.get(event) if isinstance(event, str) else None
        if not handlers:
            return 0

        # Listeners registered during dispatch wait for the next signal.
        handlers = list(handlers)
        for listener in handlers:
            try:
                result = listener(signal)
            except Exception as e:
                on_error(event, e)
                continue
            if inspect.isawaitable(result):
                self._schedule(event, result, on_error)
        return len(handlers)

    def _schedule(self, event: str, awaitable, on_error: ErrorCallback) -> None:
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def _done(fut: asyncio.Future) -> None:
            self._pending.discard(fut)
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                on_error(event, exc)

        task.add_done_callback(_done)
