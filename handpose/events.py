"""Minimal synchronous event channel.

Listeners run in registration order on the emitting call stack, which keeps
the per-frame ``"pose"`` hand-off free of extra scheduling.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Callable
from typing import Any

Listener = Callable[..., Any]


class EventEmitter:
    """Named-event publisher with persistent and one-shot listeners.

    Usage:
        >>> emitter = EventEmitter()
        >>> emitter.on("pose", lambda result: print(len(result)))
        >>> emitter.emit("pose", [])
    """

    def __init__(self) -> None:
        self._listeners: defaultdict[str, list[tuple[Listener, bool]]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> Listener:
        """Subscribe ``listener`` to every emission of ``event``."""
        self._listeners[event].append((listener, False))
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Subscribe ``listener`` to the next emission of ``event`` only."""
        self._listeners[event].append((listener, True))
        return listener

    def off(self, event: str, listener: Listener) -> None:
        """Remove the first registration of ``listener`` for ``event``."""
        entries = self._listeners.get(event, [])
        for i, (fn, _) in enumerate(entries):
            if fn == listener:
                del entries[i]
                return

    def emit(self, event: str, *args: Any) -> bool:
        """Call the listeners of ``event``. Returns True if any ran."""
        entries = list(self._listeners.get(event, []))
        if not entries:
            return False
        # One-shot listeners are dropped before they run so re-entrant
        # emissions cannot call them twice.
        self._listeners[event] = [e for e in self._listeners[event] if not e[1]]
        for listener, _ in entries:
            listener(*args)
        return True

    def listeners(self, event: str) -> list[Listener]:
        return [fn for fn, _ in self._listeners.get(event, [])]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def wait_for(self, event: str) -> asyncio.Future[Any]:
        """Future resolved with the first argument of the next ``event``.

        Cancelling the future drops the subscription. Must be called with a
        running event loop.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def _resolve(*args: Any) -> None:
            if not future.done():
                future.set_result(args[0] if args else None)

        self.once(event, _resolve)

        def _unsubscribe(done: asyncio.Future[Any]) -> None:
            if done.cancelled():
                self.off(event, _resolve)

        future.add_done_callback(_unsubscribe)
        return future
