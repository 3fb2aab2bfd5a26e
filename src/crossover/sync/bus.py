"""Notification bus fanning preference changes out to every open surface.

The bus is owned by the preference owner. Surfaces subscribe when they open
and unsubscribe when they close; the surface that caused a change receives
the resulting notification like any other surface.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Generic, TypeVar, TYPE_CHECKING
from weakref import WeakMethod, ref

from .events import Event, PlaySound, decode_notification

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

__all__ = ["NotificationBus", "Handler"]

LOGGER = logging.getLogger(__name__)

E = TypeVar("E", bound=Event)

Handler = Callable[[E], None]

# Notifications too chatty to log on every publish
_QUIET_EVENT_TYPES: set[type] = {PlaySound}


class NotificationBus(Generic[E]):
    """A typed publish-subscribe bus.

    Handlers registered for a class receive instances of that class and of
    its subclasses, so a surface can subscribe once to
    :class:`~crossover.sync.events.FieldChanged` and see every field topic.
    Delivery is synchronous and follows publish order, which keeps
    per-topic ordering intact. Bound-method handlers are held weakly.

    Thread Safety:
        Not thread-safe. Publish and subscribe from the event loop thread.
    """

    __slots__ = ("_handlers", "_published")

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)
        self._published = 0

    @property
    def published_count(self) -> int:
        """Number of events published since creation."""

        return self._published

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for ``event_type`` and its subclasses.

        Subscribing the same handler twice results in two invocations.
        """

        self._handlers[event_type].append(_HandlerRef.create(handler))
        LOGGER.debug("Subscribed %s to %s", _handler_name(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""

        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                LOGGER.debug("Unsubscribed %s from %s", _handler_name(handler), event_type.__name__)
                return

    def publish(self, event: E) -> int:
        """Deliver ``event`` to every matching handler and return the delivery count.

        A handler that raises is logged and the remaining handlers still run.
        """

        self._published += 1
        event_type = type(event)
        is_quiet = event_type in _QUIET_EVENT_TYPES
        delivered = 0

        for registered_type in event_type.__mro__:
            handlers = self._handlers.get(registered_type)
            if not handlers:
                continue
            found_dead = False
            # Copy so handlers may (un)subscribe while we iterate
            for handler_ref in list(handlers):
                handler = handler_ref.resolve()
                if handler is None:
                    found_dead = True
                    continue
                delivered += 1
                try:
                    handler(event)
                except Exception:
                    LOGGER.exception(
                        "Handler %s raised for %s",
                        _handler_name(handler),
                        event_type.__name__,
                    )
            if found_dead:
                handlers[:] = [entry for entry in handlers if entry.resolve() is not None]

        if not is_quiet:
            LOGGER.debug("Published %s to %d handler(s)", event_type.__name__, delivered)
        return delivered

    def emit(self, topic: str, payload: Any = None) -> int:
        """Publish a wire-level ``(topic, payload)`` pair."""

        return self.publish(decode_notification(topic, payload))  # type: ignore[arg-type]

    def clear(self) -> None:
        """Remove all registered handlers."""

        self._handlers.clear()
        LOGGER.debug("Cleared all notification handlers")

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return the number of handlers, optionally for one registered type."""

        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for plain callables."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | ref | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)
