"""Synchronous event bus for batch run observability.

BatchDriver emits run and checkpoint events (batchscan.contracts.events)
on the thread running the batch. Progress reporters, task monitors and
tests subscribe by event class.
"""

from collections import defaultdict
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

E = TypeVar("E")


class EventBusProtocol(Protocol):
    """What the driver needs from a bus: subscribe by type, emit an instance."""

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None: ...

    def emit(self, event: object) -> None: ...


class EventBus:
    """Dispatches each event to the handlers subscribed to its exact class.

    Handlers run synchronously in subscription order. A handler that raises
    aborts dispatch and the exception reaches the emitter, so a failing
    progress handler aborts the run like any other failure.

    Example:
        bus = EventBus()
        bus.subscribe(CheckpointCompleted, lambda e: print(f"committed through {e.position}"))
        BatchDriver(session, Account, event_bus=bus).run(ids, 100, work_unit)
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[type, list[Callable[[Any], None]]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        """Remove one subscription of handler.

        Raises:
            ValueError: If handler is not subscribed to event_type
        """
        self._handlers[event_type].remove(handler)

    def emit(self, event: object) -> None:
        # Exact class match; subclasses of a subscribed type are not delivered
        for handler in tuple(self._handlers.get(type(event), ())):
            handler(event)


class NullEventBus:
    """Bus that drops everything. The driver's default when nobody observes.

    Kept separate from EventBus: subscribing here silently does nothing,
    which must never be mistaken for a working subscription.
    """

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        return None

    def emit(self, event: object) -> None:
        return None
