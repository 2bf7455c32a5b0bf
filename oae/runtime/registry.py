import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Iterator, Optional, Tuple

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for an omitted argument: no payload, or no event name."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


@dataclass(eq=False)
class Registration:
    """
    A single listener subscription.

    Identity is the object itself: two registrations of equal callbacks
    are still distinct registrations, and removal goes by identity.
    """
    callback: Callable[..., Any]
    event_name: Optional[Hashable] = None
    once: bool = False
    wildcard: bool = False

    def invoke(self, event_name: Hashable, payload: Any = MISSING) -> Any:
        """Call the listener with the signature matching its collection."""
        if self.wildcard:
            if payload is MISSING:
                return self.callback(event_name)
            return self.callback(event_name, payload)

        if payload is MISSING:
            return self.callback()
        return self.callback(payload)


class _Listeners:
    """
    Ordered collection of registrations for one event, or for wildcards.

    Order is kept by registration identity. Hashable callbacks are also
    indexed for duplicate lookup; unhashable ones are matched by scan.
    """

    def __init__(self):
        self._order: Dict[Registration, None] = {}
        self._index: Dict[Callable, Registration] = {}

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Registration]:
        return iter(self._order)

    def find(self, callback: Callable[..., Any]) -> Optional[Registration]:
        if _is_hashable(callback):
            return self._index.get(callback)
        for registration in self._order:
            if registration.callback is callback or registration.callback == callback:
                return registration
        return None

    def add(self, registration: Registration):
        self._order[registration] = None
        if _is_hashable(registration.callback):
            self._index[registration.callback] = registration

    def remove(self, registration: Registration) -> bool:
        if registration not in self._order:
            return False
        del self._order[registration]
        callback = registration.callback
        if _is_hashable(callback) and self._index.get(callback) is registration:
            del self._index[callback]
        return True


class ListenerRegistry:
    """
    Per-emitter listener storage.

    Holds one ordered collection per event name plus one wildcard
    collection. Subscribing a callback equal to one already present
    collapses into the first registration.
    """

    def __init__(self):
        self._events: Dict[Hashable, _Listeners] = {}
        self._wildcards = _Listeners()

    # =====================================================
    # SUBSCRIBE
    # =====================================================
    def subscribe(
        self,
        event_name: Hashable,
        callback: Callable[..., Any],
        once: bool = False,
    ) -> Callable[[], None]:
        """
        Add a listener for event_name.

        Returns a token that removes exactly this registration. Calling
        the token more than once is a no-op.
        """
        _assert_listener(callback)
        listeners = self._events.get(event_name)
        registration = listeners.find(callback) if listeners else None
        if registration is None:
            registration = Registration(callback, event_name=event_name, once=once)
            self._events.setdefault(event_name, _Listeners()).add(registration)
            logger.debug(f"Subscribed {callback!r} to '{event_name}' (once={once})")
        return self._token(registration)

    def subscribe_any(self, callback: Callable[..., Any]) -> Callable[[], None]:
        """Add a wildcard listener, called for every event."""
        _assert_listener(callback)
        registration = self._wildcards.find(callback)
        if registration is None:
            registration = Registration(callback, wildcard=True)
            self._wildcards.add(registration)
            logger.debug(f"Subscribed {callback!r} to any event")
        return self._token(registration)

    # =====================================================
    # UNSUBSCRIBE
    # =====================================================
    def unsubscribe(self, event_name: Hashable, callback: Optional[Callable[..., Any]] = None):
        """
        Remove callback from event_name, or every listener of event_name
        when callback is None. Unknown events and callbacks are ignored.
        """
        if callback is None:
            removed = self._events.pop(event_name, None)
            if removed:
                logger.debug(f"Removed {len(removed)} listener(s) from '{event_name}'")
            return

        listeners = self._events.get(event_name)
        if not listeners:
            return
        registration = listeners.find(callback)
        if registration is not None:
            self.discard(registration)
            logger.debug(f"Unsubscribed {callback!r} from '{event_name}'")

    def unsubscribe_any(self, callback: Optional[Callable[..., Any]] = None):
        """Remove a wildcard listener, or all of them when callback is None."""
        if callback is None:
            if self._wildcards:
                logger.debug(f"Removed {len(self._wildcards)} wildcard listener(s)")
            self._wildcards = _Listeners()
            return

        registration = self._wildcards.find(callback)
        if registration is not None:
            self._wildcards.remove(registration)
            logger.debug(f"Unsubscribed {callback!r} from any event")

    def discard(self, registration: Registration) -> bool:
        """
        Remove registration by identity.

        Returns False when it had already been removed, including when an
        equal callback was registered again afterwards.
        """
        if registration.wildcard:
            return self._wildcards.remove(registration)

        listeners = self._events.get(registration.event_name)
        if listeners is None or not listeners.remove(registration):
            return False
        if not listeners:
            del self._events[registration.event_name]
        return True

    def clear(self):
        self._events.clear()
        self._wildcards = _Listeners()

    # =====================================================
    # QUERIES
    # =====================================================
    def count(self, event_name: Hashable = MISSING) -> int:
        """Listeners of event_name, or of every event plus wildcards when omitted."""
        if event_name is not MISSING:
            return len(self._events.get(event_name, ()))
        return sum(len(listeners) for listeners in self._events.values()) + len(self._wildcards)

    def snapshot(self, event_name: Hashable) -> Tuple[Registration, ...]:
        """
        Copy of the registrations applicable to event_name: specific
        listeners in subscription order, then wildcard listeners.

        Later registry mutations do not affect a snapshot already taken.
        """
        specific = tuple(self._events.get(event_name, ()))
        return specific + tuple(self._wildcards)

    # =====================================================
    # INTERNALS
    # =====================================================
    def _token(self, registration: Registration) -> Callable[[], None]:
        def unsubscribe() -> None:
            if self.discard(registration):
                logger.debug(f"Unsubscribed {registration.callback!r} via token")

        return unsubscribe


def _assert_listener(callback):
    if not callable(callback):
        raise TypeError(f"listener must be callable, got {type(callback).__name__}")


def _is_hashable(callback) -> bool:
    try:
        hash(callback)
    except TypeError:
        return False
    return True
