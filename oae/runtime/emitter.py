import asyncio
import logging
from typing import Any, Callable, Hashable, Optional, Set, TypeVar, overload

from oae.config import EmitterConfig
from oae.runtime.dispatch import Dispatcher
from oae.runtime.events import DispatchMode, EventKey
from oae.runtime.registry import ListenerRegistry, MISSING

logger = logging.getLogger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class Emitter:
    """
    Async event emitter.

    Listeners may be plain functions or coroutine functions. emit() and
    emit_serial() schedule dispatch on the running event loop and return
    the task, which can be awaited to wait for the listeners or to catch
    their errors, or ignored for fire-and-forget publishing.

    Every instance owns its own listeners; nothing is shared.
    """

    def __init__(self, config: Optional[EmitterConfig] = None):
        self.config = config or EmitterConfig()
        self._registry = ListenerRegistry()
        self._dispatcher = Dispatcher(self._registry, self.config)
        self._pending: Set["asyncio.Task[None]"] = set()

    # =====================================================
    # SUBSCRIPTION
    # =====================================================
    @overload
    def on(self, event_name: EventKey[T], listener: Callable[[T], Any]) -> Unsubscribe: ...

    @overload
    def on(self, event_name: Hashable, listener: Callable[..., Any]) -> Unsubscribe: ...

    def on(self, event_name, listener):
        """
        Subscribe to an event.

        Subscribing the same listener twice for the same event keeps a
        single subscription, so it is called once per emission.

        Returns a function that removes this subscription.
        """
        return self._registry.subscribe(event_name, listener)

    @overload
    def once(self, event_name: EventKey[T]) -> "asyncio.Future[T]": ...

    @overload
    def once(self, event_name: Hashable) -> "asyncio.Future[Any]": ...

    def once(self, event_name):
        """
        Future for the payload of the next emission of event_name.

        Resolves with None for an emission without payload. The internal
        listener stays registered until the event fires, even if the
        future is cancelled; off(event_name) or clear() removes it.
        """
        future = asyncio.get_running_loop().create_future()

        def resolve(*args):
            if not future.done():
                future.set_result(args[0] if args else None)

        self._registry.subscribe(event_name, resolve, once=True)
        return future

    def off(self, event_name: Hashable, listener: Optional[Callable[..., Any]] = None):
        """
        Unsubscribe a listener, or every listener of the event when
        listener is omitted.
        """
        self._registry.unsubscribe(event_name, listener)

    def on_any(self, listener: Callable[..., Any]) -> Unsubscribe:
        """
        Subscribe to every event. The listener receives the event name
        and, when one was emitted, the payload.
        """
        return self._registry.subscribe_any(listener)

    def off_any(self, listener: Optional[Callable[..., Any]] = None):
        """Unsubscribe an any-listener, or all of them when omitted."""
        self._registry.unsubscribe_any(listener)

    # =====================================================
    # EMISSION
    # =====================================================
    @overload
    def emit(self, event_name: EventKey[T], payload: T) -> "asyncio.Task[None]": ...

    @overload
    def emit(self, event_name: Hashable, payload: Any = ...) -> "asyncio.Task[None]": ...

    def emit(self, event_name, payload=MISSING):
        """
        Emit an event. Listeners are called in subscription order on the
        next loop turn, and run concurrently.

        The returned task completes when every listener is done. If any
        listener raises, the task fails with the first error to occur;
        the other listeners are not affected.
        """
        return self._schedule(DispatchMode.CONCURRENT, event_name, payload)

    @overload
    def emit_serial(self, event_name: EventKey[T], payload: T) -> "asyncio.Task[None]": ...

    @overload
    def emit_serial(self, event_name: Hashable, payload: Any = ...) -> "asyncio.Task[None]": ...

    def emit_serial(self, event_name, payload=MISSING):
        """
        Same as emit(), but each listener is awaited before the next one
        is called. The first error stops the dispatch: the remaining
        listeners are not called and the task fails with that error.
        """
        return self._schedule(DispatchMode.SERIAL, event_name, payload)

    def _schedule(self, mode: DispatchMode, event_name, payload) -> "asyncio.Task[None]":
        loop = asyncio.get_running_loop()
        snapshot = self._registry.snapshot(event_name)
        task = loop.create_task(self._dispatcher.dispatch(mode, event_name, snapshot, payload))
        # The loop holds tasks weakly; keep fire-and-forget emissions alive.
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    # =====================================================
    # HOUSEKEEPING
    # =====================================================
    def clear(self):
        """Remove every listener, including any-listeners and pending once() listeners."""
        self._registry.clear()
        logger.debug(f"Cleared listeners of {self!r}")

    def listener_count(self, event_name: Hashable = MISSING) -> int:
        """
        Number of listeners for event_name, or for all events plus
        any-listeners when event_name is omitted.
        """
        return self._registry.count(event_name)

    def __repr__(self) -> str:
        name = f" {self.config.name!r}" if self.config.name else ""
        return f"<{type(self).__name__}{name} listeners={self.listener_count()}>"
